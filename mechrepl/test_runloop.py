"""
Tests for the runtime thread and its lockstep request/response protocol.
"""

from __future__ import annotations

import sys
from multiprocessing import Pipe

from mechrepl.core import hash_string, load_engine
from mechrepl.fake_engine import Core
from mechrepl.runloop import (
    ClearRequest, ClearResponse, CodeRequest, Failure, NewBlocksCompiled,
    PauseRequest, PauseResponse, PrintCoreRequest, PrintRuntimeRequest,
    ProtocolError, ResumeRequest, ResumeResponse, RunLoopClient,
    RuntimeUnavailable, Stopped, StopRequest, TableRequest, TableResponse,
    TextResponse, start_runloop,
)
from mechrepl.table import Table


def fake_engine():
    return load_engine("mechrepl.fake_engine")


class BrokenCore(Core):
    def step(self):
        raise ZeroDivisionError("boom")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

def test_code_reports_compiled_blocks():
    client = start_runloop(fake_engine())
    try:
        reply = client.request(CodeRequest("x = 1 + 1"))
        assert reply == NewBlocksCompiled(1)
        reply = client.request(CodeRequest("#a = 1\n#b = 2\n-- comment"))
        assert reply == NewBlocksCompiled(2)
    finally:
        client.close()


def test_table_lookup():
    client = start_runloop(fake_engine())
    try:
        client.request(CodeRequest("#x = 1, 2; 3, 4"))
        reply = client.request(TableRequest(hash_string("x")))
        assert isinstance(reply, TableResponse)
        assert reply.table == Table.from_rows([[1.0, 2.0], [3.0, 4.0]])
        assert client.request(TableRequest(hash_string("missing"))) == TableResponse(None)
    finally:
        client.close()


def test_pause_defers_step_until_resume():
    client = start_runloop(fake_engine())
    try:
        assert client.request(PauseRequest()) == PauseResponse()
        assert client.request(CodeRequest("#y = 5")) == NewBlocksCompiled(1)
        assert client.request(TableRequest(hash_string("y"))) == TableResponse(None)
        assert client.request(ResumeRequest()) == ResumeResponse()
        reply = client.request(TableRequest(hash_string("y")))
        assert reply.table == Table.from_rows([[5.0]])
    finally:
        client.close()


def test_clear_replaces_the_core():
    client = start_runloop(fake_engine())
    try:
        client.request(CodeRequest("#z = true"))
        assert client.request(ClearRequest()) == ClearResponse()
        assert client.request(TableRequest(hash_string("z"))) == TableResponse(None)
    finally:
        client.close()


def test_print_core_and_runtime():
    client = start_runloop(fake_engine())
    try:
        client.request(CodeRequest("#z = true"))
        assert client.request(PrintCoreRequest()) == TextResponse("Core(tables=1, steps=1)")
        assert client.request(PrintRuntimeRequest()) == TextResponse("Runtime(blocks=1)")
    finally:
        client.close()


def test_engine_failure_becomes_a_response():
    engine = fake_engine()
    engine = type(engine)(engine.name, BrokenCore, engine.compiler_factory)
    client = start_runloop(engine)
    try:
        reply = client.request(CodeRequest("#x = 1"))
        assert isinstance(reply, Failure)
        assert "boom" in reply.message
        # still serving afterwards
        assert client.request(PauseRequest()) == PauseResponse()
    finally:
        client.close()


# ---------------------------------------------------------------------------
# Lockstep and shutdown
# ---------------------------------------------------------------------------

def test_second_send_without_receive_is_rejected():
    client = start_runloop(fake_engine())
    try:
        client.send(PauseRequest())
        try:
            client.send(ResumeRequest())
        except ProtocolError:
            pass
        else:
            raise AssertionError("pipelined request accepted")
        assert client.receive() == PauseResponse()
    finally:
        client.close()


def test_receive_without_request_is_rejected():
    client = start_runloop(fake_engine())
    try:
        client.receive()
    except ProtocolError:
        pass
    else:
        raise AssertionError("receive without a request should fail")
    finally:
        client.close()


def test_stop_then_runtime_unavailable():
    client = start_runloop(fake_engine())
    try:
        assert client.request(StopRequest()) == Stopped()
        try:
            client.request(CodeRequest("#x = 1"))
        except RuntimeUnavailable:
            pass
        else:
            raise AssertionError("request after stop should fail")
    finally:
        client.close()


def test_closed_response_pipe_is_fatal():
    _, request_writer = Pipe(duplex=False)
    response_reader, response_writer = Pipe(duplex=False)
    response_writer.close()
    client = RunLoopClient(request_writer, response_reader)
    try:
        client.request(PauseRequest())
    except RuntimeUnavailable:
        pass
    else:
        raise AssertionError("closed response pipe should be fatal")
    finally:
        client.close()


class ScriptedConnection:
    """Connection stand-in: records sends, replays scripted recv results."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.sent = []
        self.closed = False

    def send(self, msg):
        self.sent.append(msg)

    def recv(self):
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def close(self):
        self.closed = True


def test_interrupted_receive_keeps_request_outstanding():
    requests = ScriptedConnection()
    responses = ScriptedConnection([KeyboardInterrupt(), PauseResponse(), Stopped()])
    client = RunLoopClient(requests, responses)
    client.send(PauseRequest())
    try:
        client.receive()
    except KeyboardInterrupt:
        pass
    else:
        raise AssertionError("interrupt should propagate")
    try:
        client.send(ResumeRequest())
    except ProtocolError:
        pass
    else:
        raise AssertionError("request sent while a reply is still due")
    # the late reply answers the original request
    assert client.receive() == PauseResponse()
    client.close()
    assert requests.sent == [PauseRequest(), StopRequest()]
    assert responses.replies == []


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
