"""
batch — non-interactive drivers.

  run   compile each input on a fresh core, step once, print mech/output
  test  compile every .mec file in a directory, count mech/test cells

Both call the engine directly on the calling thread; no runtime thread.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .core import OUTPUT_TABLE, TEST_TABLE, Engine, compile_into, hash_string
from .render import format_value
from .sources import (
    TEST_EXTENSIONS, SourceLoadError, has_source_extension, is_url,
    read_source, scan_directory,
)
from .table import Table, is_false

logger = logging.getLogger(__name__)


def evaluate(engine: Engine, text: str, table_name: str) -> Table | None:
    """Run text for one step on a brand-new core and look up a table."""
    core = engine.new_core()
    count = compile_into(core, engine.new_compiler(), text)
    core.step()
    logger.debug("compiled %d blocks, looking up %s", count, table_name)
    return core.lookup_table(hash_string(table_name))


# ---------------------------------------------------------------------------
# Run mode
# ---------------------------------------------------------------------------

def run_path(engine: Engine, path: str) -> list[str]:
    """Formatted output cells for one input; empty for unrecognized paths."""
    target = path.split("?", 1)[0] if is_url(path) else path
    if not has_source_extension(target):
        logger.debug("skipping %s: not a source file", path)
        return []
    table = evaluate(engine, read_source(path), OUTPUT_TABLE)
    if table is None:
        return []
    return [format_value(value) for value in table.cells()]


def run_paths(engine: Engine, paths: Iterable[str], out=None) -> int:
    out = out or sys.stdout
    for path in paths:
        try:
            lines = run_path(engine, path)
        except SourceLoadError as e:
            print(f"Error: {e}", file=out)
            continue
        for line in lines:
            print(line, file=out)
    return 0


# ---------------------------------------------------------------------------
# Test mode
# ---------------------------------------------------------------------------

@dataclass
class TestTally:
    __test__ = False

    total: int = 0
    passed: int = 0
    failed: int = 0
    ok: bool = True

    def record(self, value) -> None:
        self.total += 1
        if is_false(value):
            self.failed += 1
            self.ok = False
        else:
            self.passed += 1

    def summary(self) -> str:
        result = "ok" if self.ok else "failed"
        return (f"Test result: {result} | total {self.total} | "
                f"passed {self.passed} | failed {self.failed}")


def tally_file(engine: Engine, path: Path, tally: TestTally) -> None:
    table = evaluate(engine, read_source(path), TEST_TABLE)
    if table is None:
        logger.debug("%s has no %s table", path, TEST_TABLE)
        return
    for value in table.cells():
        tally.record(value)


def run_tests(engine: Engine, directory: str | Path = ".", out=None) -> int:
    out = out or sys.stdout
    tally = TestTally()
    for path in scan_directory(directory, TEST_EXTENSIONS):
        try:
            tally_file(engine, path, tally)
        except SourceLoadError as e:
            print(f"Error: {e}", file=out)
    print(tally.summary(), file=out)
    return 0 if tally.ok else 1
