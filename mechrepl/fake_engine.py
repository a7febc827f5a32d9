"""
fake_engine — a scripted stand-in runtime core for the test modules.

Source is one block per line:

    #name = cell, cell; cell, cell      rows split by ';', cells by ','

where a cell is `true`, `false`, a "string", or a sum of numbers such as
`1 + 2.5`. Lines starting with `--` are comments. Use it with
`--core mechrepl.fake_engine` or `load_engine("mechrepl.fake_engine")`.
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass

from .core import hash_string
from .table import Table

ASSIGN_RE = re.compile(r"^(#?[A-Za-z_][A-Za-z0-9_/\-]*)\s*=\s*(.+)$")
NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")

SERVED: list[dict] = []


@dataclass(frozen=True)
class Block:
    name: str
    rows: tuple


def parse_cell(text: str):
    text = text.strip()
    if text == "true":
        return True
    if text == "false":
        return False
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return ast.literal_eval(text)
    terms = [t.strip() for t in text.split("+")]
    if terms and all(NUMBER_RE.match(t) for t in terms):
        return float(sum(float(t) for t in terms))
    raise ValueError(f"bad cell: {text!r}")


def parse_block(line: str) -> Block:
    m = ASSIGN_RE.match(line)
    if not m:
        raise ValueError(f"not an assignment: {line!r}")
    rows = tuple(tuple(parse_cell(c) for c in row.split(","))
                 for row in m.group(2).split(";"))
    if any(len(r) != len(rows[0]) for r in rows):
        raise ValueError(f"ragged table: {line!r}")
    return Block(m.group(1).lstrip("#"), rows)


class Compiler:
    def __init__(self):
        self.consumed_all = False

    def compile(self, text: str) -> list[Block]:
        blocks = []
        self.consumed_all = True
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("--"):
                continue
            try:
                blocks.append(parse_block(line))
            except ValueError:
                self.consumed_all = False
                break
        return blocks


class Runtime:
    def __init__(self):
        self.blocks: list[Block] = []

    def __repr__(self):
        return f"Runtime(blocks={len(self.blocks)})"


class Core:
    def __init__(self, capacity: int, history_depth: int):
        self.capacity = capacity
        self.history_depth = history_depth
        self.runtime = Runtime()
        self.tables: dict[int, Table] = {}
        self.steps = 0

    def register(self, blocks):
        self.runtime.blocks.extend(blocks)

    def step(self):
        self.steps += 1
        for block in self.runtime.blocks:
            self.tables[hash_string(block.name)] = Table.from_rows(block.rows)

    def lookup_table(self, identifier: int):
        return self.tables.get(identifier)

    def __repr__(self):
        return f"Core(tables={len(self.tables)}, steps={self.steps})"


def serve(http_address, websocket_address, paths, persistence_path):
    SERVED.append(dict(http_address=http_address,
                       websocket_address=websocket_address,
                       paths=paths, persistence_path=persistence_path))
