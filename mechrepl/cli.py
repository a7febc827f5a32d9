"""
The Mech REPL. Default values for options are in parentheses.

Usage:
  mech [paths...]                  interactive REPL, preloading .mec files
  mech --serve [-p 3012] [-t 8081] [-a 127.0.0.1] [-r PERSIST]
  mech run <paths...>              run programs, print mech/output
  mech test                        run ./*.mec, report mech/test results

The runtime core is the module named by --core or $MECH_CORE.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import urllib.error

from .batch import run_paths, run_tests
from .core import DEFAULT_CAPACITY, DEFAULT_HISTORY, EngineNotFound, load_engine
from .repl import banner, print_error, run_repl

logger = logging.getLogger(__name__)

VERSION = "0.0.1"
SUBCOMMANDS = ("run", "test")

# options that consume the following word ("--opt=value" needs no entry)
VALUE_OPTIONS = (
    "--core", "--capacity", "--history",
    "--port", "-p", "--http-port", "-t", "--address", "-a", "--persist", "-r",
)


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--core", default=None,
                        help="Module providing the runtime core ($MECH_CORE)")
    common.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY,
                        help=f"Core table capacity ({DEFAULT_CAPACITY})")
    common.add_argument("--history", type=int, default=DEFAULT_HISTORY,
                        help=f"Core history depth ({DEFAULT_HISTORY})")
    common.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug output to stderr")
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mech",
        description="The Mech REPL. Default values for options are in parentheses.",
        epilog="Subcommands: 'mech run <paths...>', 'mech test'",
        parents=[_common_options()],
    )
    parser.add_argument("--version", action="version", version=f"mech {VERSION}")
    parser.add_argument("mech_file_paths", nargs="*", metavar="PATH",
                        help="The files and folders from which to load .mec files")
    parser.add_argument("--serve", "-s", action="store_true",
                        help="Starts a Mech HTTP and websocket server (false)")
    parser.add_argument("--port", "-p", default="3012",
                        help="Sets the port for the Mech server (3012)")
    parser.add_argument("--http-port", "-t", default="8081",
                        help="Sets the port for the HTTP server (8081)")
    parser.add_argument("--address", "-a", default="127.0.0.1",
                        help="Sets the address of the server (127.0.0.1)")
    parser.add_argument("--persist", "-r", default="",
                        help="The path for the file to load from and persist changes")
    return parser


def build_subcommand_parser(mode: str) -> argparse.ArgumentParser:
    if mode == "run":
        run_p = argparse.ArgumentParser(
            prog="mech run", parents=[_common_options()],
            description="Run .mec programs and print mech/output")
        run_p.add_argument("paths", nargs="+", metavar="PATH",
                           help="Files or https:// URLs to run")
        return run_p
    return argparse.ArgumentParser(
        prog="mech test", parents=[_common_options()],
        description="Run every .mec file in the current directory as a test")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def serve(engine, args) -> int:
    if engine.serve is None:
        print_error(f"runtime core {engine.name} does not provide a server")
        return 1
    print(banner())
    engine.serve(
        http_address=f"{args.address}:{args.http_port}",
        websocket_address=f"{args.address}:{args.port}",
        paths=list(args.mech_file_paths),
        persistence_path=args.persist,
    )
    return 0


def split_subcommand(argv: list[str]) -> tuple[str | None, list[str]]:
    """Find 'run'/'test' as the first positional word, skipping options.

    Positional REPL paths and subcommands share the command line, so the
    subcommand is located here and removed; options given before it are
    kept for the subcommand's parser.
    """
    i = 0
    while i < len(argv):
        word = argv[i]
        if word == "--":
            break
        if word.startswith("-"):
            if word in VALUE_OPTIONS:
                i += 1  # skip the option's value
            i += 1
            continue
        if word in SUBCOMMANDS:
            return word, argv[:i] + argv[i + 1:]
        break
    return None, argv


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    mode, argv = split_subcommand(argv)
    if mode:
        args = build_subcommand_parser(mode).parse_args(argv)
    else:
        args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    logger.debug("mode=%s args=%s", mode or ("serve" if args.serve else "repl"), args)

    try:
        engine = load_engine(args.core, args.capacity, args.history)
    except EngineNotFound as e:
        print_error(str(e), out=sys.stderr)
        return 1

    if mode == "run":
        try:
            return run_paths(engine, args.paths)
        except (urllib.error.URLError, OSError) as e:
            # a failed fetch stops the whole run
            print_error(str(e))
            return 1
    if mode == "test":
        return run_tests(engine, os.getcwd())
    if args.serve:
        return serve(engine, args)
    return run_repl(engine, args.mech_file_paths)


if __name__ == "__main__":
    sys.exit(main())
