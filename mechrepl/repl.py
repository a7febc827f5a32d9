"""
repl — the interactive Mech loop.

Reads a line, parses it, performs at most one exchange with the runtime
thread per engine interaction, prints the result, repeats.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Iterable

from .core import ANSWER_TABLE, Engine, hash_string
from .grammar import (
    Clear, Code, Empty, Help, Pause, PrintCore, PrintRuntime, Quit, Resume,
    ShowTable, Stop, HELP_TEXT, parse_line,
)
from .render import render_table
from .runloop import (
    ClearRequest, CodeRequest, Failure, NewBlocksCompiled, PauseRequest,
    PrintCoreRequest, PrintRuntimeRequest, ResumeRequest, RunLoopClient,
    RuntimeUnavailable, StopRequest, TableRequest, TableResponse,
    TextResponse, start_runloop,
)
from .sources import SourceLoadError, collect_sources, read_source

logger = logging.getLogger(__name__)

GREY = "\x1b[90m"
YELLOW = "\x1b[33m"
BRIGHT_YELLOW = "\x1b[93m"
RED = "\x1b[31m"
RESET = "\x1b[0m"

PROMPT = f"{YELLOW}~> {RESET}"


def banner() -> str:
    return (f"\n {GREY}╔════════════════╗{RESET}\n"
            f" {GREY}║{RESET}      {BRIGHT_YELLOW}MECH{RESET}      {GREY}║{RESET}\n"
            f" {GREY}╚════════════════╝{RESET}\n")


def print_error(message: str, out=None) -> None:
    print(f"{RED}Error:{RESET} {message}", file=out or sys.stdout)


# ============================================================
# Command dispatch
# ============================================================

_SIMPLE_REQUESTS = {
    Pause: (PauseRequest, "Paused."),
    Resume: (ResumeRequest, "Resumed."),
    Clear: (ClearRequest, "Cleared the core."),
}


def show_table(client: RunLoopClient, identifier: int, name: str) -> bool:
    reply = client.request(TableRequest(identifier))
    if isinstance(reply, Failure):
        print_error(reply.message)
        return False
    if isinstance(reply, TableResponse) and reply.table is not None:
        print(render_table(reply.table))
        return True
    if name:
        print(f"No table named {name}.")
    return False


def dispatch(command, client: RunLoopClient) -> bool:
    """Carry out one command. Returns False when the session should end."""
    if isinstance(command, Empty):
        return True

    if isinstance(command, Quit):
        return False

    if isinstance(command, Help):
        print(HELP_TEXT)
        return True

    if isinstance(command, Code):
        reply = client.request(CodeRequest(command.text))
        if isinstance(reply, Failure):
            print_error(reply.message)
        elif isinstance(reply, NewBlocksCompiled):
            print(f"Compiled {reply.count} blocks.")
            if command.anonymous:
                show_table(client, hash_string(ANSWER_TABLE), "")
        return True

    if isinstance(command, ShowTable):
        show_table(client, command.identifier, command.name)
        return True

    if isinstance(command, (PrintCore, PrintRuntime)):
        request = PrintCoreRequest() if isinstance(command, PrintCore) else PrintRuntimeRequest()
        reply = client.request(request)
        if isinstance(reply, TextResponse):
            print(reply.text)
        elif isinstance(reply, Failure):
            print_error(reply.message)
        return True

    if isinstance(command, Stop):
        client.request(StopRequest())
        print("Runtime stopped.")
        return False

    request_type, acknowledgement = _SIMPLE_REQUESTS[type(command)]
    reply = client.request(request_type())
    if isinstance(reply, Failure):
        print_error(reply.message)
    else:
        print(acknowledgement)
    return True


# ============================================================
# Loop
# ============================================================

def preload(client: RunLoopClient, paths: Iterable[str]) -> None:
    """Send every source file under paths to the runtime before prompting."""
    for path in collect_sources(paths):
        try:
            text = read_source(path)
        except SourceLoadError as e:
            print_error(str(e))
            continue
        reply = client.request(CodeRequest(text))
        if isinstance(reply, Failure):
            print_error(f"{path}: {reply.message}")
        else:
            print(f"Loaded {reply.count} blocks from {path}.")


def run_repl(engine: Engine, paths: Iterable[str] = (),
             read_line: Callable[[str], str] = input) -> int:
    """Interactive session. Returns the process exit code."""
    print(banner())
    client = start_runloop(engine)
    history: list[str] = []

    try:
        preload(client, paths)
        while True:
            try:
                line = read_line(PROMPT)
            except (EOFError, KeyboardInterrupt):
                print()
                break

            history.append(line)
            try:
                command = parse_line(line, engine.new_compiler)
                if not dispatch(command, client):
                    break
            except RuntimeUnavailable:
                raise
            except Exception as e:
                print_error(str(e))
    except RuntimeUnavailable as e:
        print_error(str(e))
        logger.debug("session ended after %d lines", len(history))
        return 1
    finally:
        client.close()

    logger.debug("session ended after %d lines", len(history))
    return 0
