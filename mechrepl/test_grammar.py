"""
Tests for the REPL command grammar.

Run with pytest, or directly: python -m mechrepl.test_grammar
"""

from __future__ import annotations

import sys

from mechrepl.core import ANSWER_TABLE, hash_string
from mechrepl.fake_engine import Compiler
from mechrepl.grammar import (
    Clear, Code, CommandParseError, Empty, Help, Pause, PrintCore,
    PrintRuntime, Quit, Resume, ShowTable, SourceSyntaxError, Stop,
    SOURCE_ATTEMPTS, parse_line,
)


class CountingCompiler(Compiler):
    """Records every text it is asked to compile."""
    seen: list[str] = []

    def compile(self, text):
        CountingCompiler.seen.append(text)
        return super().compile(text)


KEYWORDS = {
    ":quit": Quit(),
    ":exit": Quit(),
    ":help": Help(),
    ":pause": Pause(),
    ":resume": Resume(),
    ":stop": Stop(),
    ":core": PrintCore(),
    ":runtime": PrintRuntime(),
    ":clear": Clear(),
}


# ---------------------------------------------------------------------------
# Built-in commands
# ---------------------------------------------------------------------------

def test_keywords():
    for text, expected in KEYWORDS.items():
        assert parse_line(text, Compiler) == expected, text


def test_quit_and_exit_are_the_same():
    assert parse_line(":quit", Compiler) == parse_line(":exit", Compiler) == Quit()


def test_surrounding_whitespace():
    assert parse_line("   :help  \n", Compiler) == Help()
    assert parse_line(":  pause", Compiler) == Pause()


def test_builtins_never_reach_the_compiler():
    CountingCompiler.seen = []
    for text in KEYWORDS:
        parse_line(text, CountingCompiler)
    assert CountingCompiler.seen == []


def test_unknown_command_is_an_error():
    for text in (":quitx", ":bogus", ":", ":help me", ":table"):
        try:
            parse_line(text, Compiler)
        except CommandParseError:
            continue
        raise AssertionError(f"{text!r} should not parse")


def test_table_command():
    cmd = parse_line(":table #mech/output", Compiler)
    assert cmd == ShowTable(hash_string("mech/output"), "mech/output")
    # keywords are plain names after 'table'
    assert parse_line(":table quit", Compiler) == ShowTable(hash_string("quit"), "quit")


# ---------------------------------------------------------------------------
# Empty input and engine source
# ---------------------------------------------------------------------------

def test_empty_line():
    CountingCompiler.seen = []
    assert parse_line("", CountingCompiler) == Empty()
    assert parse_line("   ", CountingCompiler) == Empty()
    assert CountingCompiler.seen == []


def test_verbatim_source():
    assert parse_line("#x = 1 + 1", Compiler) == Code("#x = 1 + 1")


def test_anonymous_assignment_fallback():
    CountingCompiler.seen = []
    cmd = parse_line("1 + 2", CountingCompiler)
    assert cmd == Code(f"#{ANSWER_TABLE} = 1 + 2", anonymous=True)
    assert CountingCompiler.seen == ["1 + 2", f"#{ANSWER_TABLE} = 1 + 2"]


def test_syntax_error_when_nothing_consumes_the_line():
    CountingCompiler.seen = []
    try:
        parse_line("1 +", CountingCompiler)
    except SourceSyntaxError as e:
        assert "1 +" in str(e)
    else:
        raise AssertionError("expected a syntax error")
    assert len(CountingCompiler.seen) == len(SOURCE_ATTEMPTS)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    tests = [v for k, v in globals().items() if k.startswith("test_") and callable(v)]
    failures = 0
    for test in tests:
        try:
            test()
            print(f"  ok    {test.__name__}")
        except AssertionError as e:
            failures += 1
            print(f"  FAIL  {test.__name__}: {e}")
    print(f"{len(tests) - failures}/{len(tests)} passed")
    return failures == 0


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
