"""
grammar — one input line in, one Command out.

  :quit  :exit  :help  :pause  :resume  :stop
  :core  :runtime  :clear  :table <name>      built-in commands
  (blank)                                      Empty
  anything else                                engine source, tried verbatim
                                               and then as `#ans = <line>`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput

from .core import ANSWER_TABLE, MechError, hash_string


class CommandParseError(MechError):
    pass


class SourceSyntaxError(MechError):
    pass


# ============================================================
# Commands
# ============================================================

@dataclass(frozen=True)
class Help:
    pass

@dataclass(frozen=True)
class Quit:
    pass

@dataclass(frozen=True)
class Pause:
    pass

@dataclass(frozen=True)
class Resume:
    pass

@dataclass(frozen=True)
class Stop:
    pass

@dataclass(frozen=True)
class PrintCore:
    pass

@dataclass(frozen=True)
class PrintRuntime:
    pass

@dataclass(frozen=True)
class Clear:
    pass

@dataclass(frozen=True)
class ShowTable:
    identifier: int
    name: str = ""

@dataclass(frozen=True)
class Code:
    text: str
    anonymous: bool = False  # wrapped as an assignment to #ans

@dataclass(frozen=True)
class Empty:
    pass


COMMAND_PREFIX = ":"

HELP_TEXT = ("Available commands are: :help, :quit, :exit, :pause, :resume, "
             ":stop, :core, :runtime, :clear, :table <name>")


# ============================================================
# Built-in command grammar (LALR)
# ============================================================

GRAMMAR = r"""
    start: ":" command

    ?command: quit
            | help
            | pause
            | resume
            | stop
            | core
            | runtime
            | clear
            | table

    quit: "quit" | "exit"
    help: "help"
    pause: "pause"
    resume: "resume"
    stop: "stop"
    core: "core"
    runtime: "runtime"
    clear: "clear"
    table: "table" NAME

    NAME: /#?[A-Za-z_][A-Za-z0-9_\/\-]*/

    %ignore /\s+/
"""

parser = Lark(GRAMMAR, parser="lalr")


@v_args(inline=True)
class CommandBuilder(Transformer):
    def quit(self):
        return Quit()

    def help(self):
        return Help()

    def pause(self):
        return Pause()

    def resume(self):
        return Resume()

    def stop(self):
        return Stop()

    def core(self):
        return PrintCore()

    def runtime(self):
        return PrintRuntime()

    def clear(self):
        return Clear()

    def table(self, tok):
        name = str(tok).lstrip("#")
        return ShowTable(hash_string(name), name)

    def start(self, command):
        return command


command_builder = CommandBuilder()


def parse_command(text: str):
    """Parse a ':'-prefixed built-in command."""
    try:
        tree = parser.parse(text)
    except UnexpectedInput as e:
        word = text[len(COMMAND_PREFIX):].strip()
        raise CommandParseError(f"unknown command: {word or text}") from e
    return command_builder.transform(tree)


# ============================================================
# Engine source fallback
# ============================================================

def _verbatim(line: str) -> tuple[str, bool]:
    return line, False


def _anonymous_assignment(line: str) -> tuple[str, bool]:
    return f"#{ANSWER_TABLE} = {line}", True


# tried in order; the first one the compiler fully consumes wins
SOURCE_ATTEMPTS: tuple[Callable[[str], tuple[str, bool]], ...] = (
    _verbatim,
    _anonymous_assignment,
)


def parse_source(line: str, compiler_factory) -> Code:
    for attempt in SOURCE_ATTEMPTS:
        text, anonymous = attempt(line)
        compiler = compiler_factory()
        compiler.compile(text)
        if compiler.consumed_all:
            return Code(text, anonymous)
    raise SourceSyntaxError(f"syntax error: {line}")


def parse_line(line: str, compiler_factory):
    """Turn one input line into a Command.

    compiler_factory builds a fresh engine compiler; it is only used when
    the line is not a built-in command.
    """
    line = line.strip()
    if line.startswith(COMMAND_PREFIX):
        return parse_command(line)
    if not line:
        return Empty()
    return parse_source(line, compiler_factory)
