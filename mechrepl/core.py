"""
core — the runtime core as seen from the client.

The engine itself lives elsewhere. The client only needs a module exposing:

  Core(capacity, history_depth)   register(blocks), step(), lookup_table(id)
  Compiler()                      compile(text) -> blocks, consumed_all
  serve(...)                      optional, used by --serve

Table identifiers are derived from human-readable names with hash_string().
"""

from __future__ import annotations

import hashlib
import importlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


class MechError(Exception):
    """Base class for client-side failures."""


class EngineNotFound(MechError):
    pass


# ---------------------------------------------------------------------------
# Table names
# ---------------------------------------------------------------------------

OUTPUT_TABLE = "mech/output"
TEST_TABLE = "mech/test"
ANSWER_TABLE = "ans"

_ID_MASK = 0x00FF_FFFF_FFFF_FFFF  # 56-bit identifiers


def hash_string(name: str) -> int:
    """Deterministic table identifier for a name (leading '#' ignored)."""
    digest = hashlib.blake2b(name.lstrip("#").encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") & _ID_MASK


# ---------------------------------------------------------------------------
# Engine loading
# ---------------------------------------------------------------------------

DEFAULT_CAPACITY = 100_000
DEFAULT_HISTORY = 100
ENGINE_ENV = "MECH_CORE"


@dataclass(frozen=True)
class Engine:
    """Factories for a runtime core and its source compiler."""
    name: str
    core_factory: Callable[[int, int], Any]
    compiler_factory: Callable[[], Any]
    serve: Callable[..., Any] | None = None
    capacity: int = DEFAULT_CAPACITY
    history: int = DEFAULT_HISTORY

    def new_core(self):
        return self.core_factory(self.capacity, self.history)

    def new_compiler(self):
        return self.compiler_factory()


def load_engine(module_name: str | None = None,
                capacity: int = DEFAULT_CAPACITY,
                history: int = DEFAULT_HISTORY) -> Engine:
    """Import the engine module named explicitly or by $MECH_CORE."""
    module_name = module_name or os.environ.get(ENGINE_ENV)
    if not module_name:
        raise EngineNotFound(
            f"no runtime core configured (use --core or set {ENGINE_ENV})")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise EngineNotFound(f"cannot import runtime core {module_name!r}: {e}") from e

    missing = [attr for attr in ("Core", "Compiler") if not hasattr(module, attr)]
    if missing:
        raise EngineNotFound(
            f"runtime core {module_name!r} lacks {', '.join(missing)}")

    logger.debug("loaded runtime core %s (capacity=%d, history=%d)",
                 module_name, capacity, history)
    return Engine(
        name=module_name,
        core_factory=module.Core,
        compiler_factory=module.Compiler,
        serve=getattr(module, "serve", None),
        capacity=capacity,
        history=history,
    )


def compile_into(core, compiler, text: str) -> int:
    """Compile text, register the blocks with core, return how many."""
    blocks = list(compiler.compile(text))
    core.register(blocks)
    return len(blocks)
