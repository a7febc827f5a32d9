"""
runloop — the runtime core on its own thread, driven over two pipes.

The client sends one request and blocks until its response arrives. Only one
request may be outstanding, so responses match requests by arrival order.

    client ──requests──▶ runtime thread
    client ◀─responses── runtime thread
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from multiprocessing import Pipe
from typing import Any

from .core import Engine, MechError, compile_into
from .table import Table

logger = logging.getLogger(__name__)


class ProtocolError(MechError):
    pass


class RuntimeUnavailable(MechError):
    pass


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableRequest:
    identifier: int

@dataclass(frozen=True)
class ClearRequest:
    pass

@dataclass(frozen=True)
class PrintCoreRequest:
    pass

@dataclass(frozen=True)
class PrintRuntimeRequest:
    pass

@dataclass(frozen=True)
class PauseRequest:
    pass

@dataclass(frozen=True)
class ResumeRequest:
    pass

@dataclass(frozen=True)
class CodeRequest:
    text: str

@dataclass(frozen=True)
class StopRequest:
    pass


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableResponse:
    table: Table | None

@dataclass(frozen=True)
class PauseResponse:
    pass

@dataclass(frozen=True)
class ResumeResponse:
    pass

@dataclass(frozen=True)
class ClearResponse:
    pass

@dataclass(frozen=True)
class NewBlocksCompiled:
    count: int

@dataclass(frozen=True)
class TextResponse:
    text: str

@dataclass(frozen=True)
class Stopped:
    pass

@dataclass(frozen=True)
class Failure:
    message: str


# ---------------------------------------------------------------------------
# Runtime side
# ---------------------------------------------------------------------------

class RunLoop:
    """Owns the runtime core and answers requests on a dedicated thread."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.core = engine.new_core()
        self.paused = False
        self.stepped = True  # false while blocks registered during a pause wait

    def handle(self, msg) -> Any:
        if isinstance(msg, CodeRequest):
            count = compile_into(self.core, self.engine.new_compiler(), msg.text)
            if self.paused:
                self.stepped = False
            else:
                self.core.step()
            return NewBlocksCompiled(count)

        if isinstance(msg, TableRequest):
            return TableResponse(self.core.lookup_table(msg.identifier))

        if isinstance(msg, ClearRequest):
            self.core = self.engine.new_core()
            self.stepped = True
            return ClearResponse()

        if isinstance(msg, PauseRequest):
            self.paused = True
            return PauseResponse()

        if isinstance(msg, ResumeRequest):
            self.paused = False
            if not self.stepped:
                self.core.step()
                self.stepped = True
            return ResumeResponse()

        if isinstance(msg, PrintCoreRequest):
            return TextResponse(repr(self.core))

        if isinstance(msg, PrintRuntimeRequest):
            return TextResponse(repr(getattr(self.core, "runtime", self.core)))

        return Failure(f"unknown request: {msg!r}")

    def serve(self, requests, responses) -> None:
        """Answer requests until Stop arrives or the client goes away."""
        try:
            while True:
                try:
                    msg = requests.recv()
                except EOFError:
                    logger.debug("request pipe closed, runtime thread exiting")
                    break

                if isinstance(msg, StopRequest):
                    responses.send(Stopped())
                    break

                try:
                    reply = self.handle(msg)
                except Exception as e:
                    logger.debug("runtime failed on %r", msg, exc_info=True)
                    reply = Failure(f"{type(e).__name__}: {e}")
                responses.send(reply)
        finally:
            requests.close()
            responses.close()


# ---------------------------------------------------------------------------
# Client side
# ---------------------------------------------------------------------------

class RunLoopClient:
    """Lockstep request/response channel to a RunLoop thread."""

    def __init__(self, requests, responses, thread: threading.Thread | None = None):
        self._requests = requests      # write end
        self._responses = responses    # read end
        self._thread = thread
        self._outstanding: Any = None

    def send(self, msg) -> None:
        if self._outstanding is not None:
            raise ProtocolError(
                f"request {self._outstanding!r} still awaiting its response")
        try:
            self._requests.send(msg)
        except (OSError, ValueError) as e:
            raise RuntimeUnavailable("runtime unavailable") from e
        self._outstanding = msg

    def receive(self):
        if self._outstanding is None:
            raise ProtocolError("no request outstanding")
        # an interrupted recv leaves the request outstanding; its reply is
        # still on the way and belongs to the next receive()
        try:
            reply = self._responses.recv()
        except (EOFError, OSError) as e:
            self._outstanding = None
            raise RuntimeUnavailable("runtime unavailable") from e
        self._outstanding = None
        return reply

    def request(self, msg):
        self.send(msg)
        return self.receive()

    def close(self) -> None:
        """Stop the runtime thread (if still alive) and release the pipes."""
        try:
            if self._outstanding is None and not self._requests.closed:
                self.request(StopRequest())
        except RuntimeUnavailable:
            pass
        finally:
            self._requests.close()
            self._responses.close()
            if self._thread is not None:
                self._thread.join()


def start_runloop(engine: Engine) -> RunLoopClient:
    """Build a core, start its thread, return the client end."""
    request_reader, request_writer = Pipe(duplex=False)
    response_reader, response_writer = Pipe(duplex=False)
    runloop = RunLoop(engine)
    thread = threading.Thread(
        target=runloop.serve, args=(request_reader, response_writer),
        name="mech-runloop", daemon=True)
    thread.start()
    logger.debug("runtime thread started for %s", engine.name)
    return RunLoopClient(request_writer, response_reader, thread)
