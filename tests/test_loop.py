import io

import pytest

from clob_bridge.core.loop import LineProtocolLoop

from tests.conftest import read_responses


class BrokenStream:
    """Serves canned lines, then EOF"""

    def __init__(self, lines):
        self.lines = list(lines)

    def readline(self):
        return self.lines.pop(0) if self.lines else b""


@pytest.mark.asyncio
async def test_reads_until_eof(logger, dispatcher, output):
    stream = io.BytesIO(b'{"cmd":"markets"}\n\n{"cmd":"balance"}\n')
    await LineProtocolLoop(logger, dispatcher, stream).run()

    responses = read_responses(output)
    assert len(responses) == 2
    assert all(r["success"] for r in responses)


@pytest.mark.asyncio
async def test_exit_stops_reading(logger, dispatcher, output):
    stream = io.BytesIO(b'{"cmd":"exit"}\n{"cmd":"markets"}\n')
    loop = LineProtocolLoop(logger, dispatcher, stream)
    await loop.run()

    assert read_responses(output) == [{"success": True, "data": {"status": "exiting"}}]
    assert loop.lines_read == 1


@pytest.mark.asyncio
async def test_bad_lines_get_error_responses_and_loop_continues(logger, dispatcher, output):
    stream = io.BytesIO(b'garbage\n{"cmd":"nope"}\n{"cmd":"quit"}\n')
    await LineProtocolLoop(logger, dispatcher, stream).run()

    responses = read_responses(output)
    assert [r["success"] for r in responses] == [False, False, True]


@pytest.mark.asyncio
async def test_undecodable_line_is_skipped(logger, dispatcher, output):
    stream = BrokenStream([b"\xff\xfe\n", b'{"cmd":"markets"}\n'])
    await LineProtocolLoop(logger, dispatcher, stream).run()

    responses = read_responses(output)
    assert len(responses) == 1
    assert responses[0]["data"]["count"] == 2


@pytest.mark.asyncio
async def test_final_line_without_newline(logger, dispatcher, output):
    stream = io.BytesIO(b'{"cmd":"markets"}')
    await LineProtocolLoop(logger, dispatcher, stream).run()
    assert len(read_responses(output)) == 1


class FailingStream:
    """readline always raises"""

    def __init__(self):
        self.reads = 0

    def readline(self):
        self.reads += 1
        raise OSError("Input/output error")


@pytest.mark.asyncio
async def test_oversized_integer_does_not_stop_loop(logger, dispatcher, output):
    line = b'{"cmd":"auth","signature_type":' + b"1" * 5000 + b"}\n"
    stream = io.BytesIO(line + b'{"cmd":"exit"}\n')
    await LineProtocolLoop(logger, dispatcher, stream).run()

    responses = read_responses(output)
    assert [r["success"] for r in responses] == [False, True]
    assert responses[0]["error"].startswith("Invalid JSON")


@pytest.mark.asyncio
async def test_persistent_read_errors_stop_loop(logger, dispatcher, output):
    stream = FailingStream()
    await LineProtocolLoop(logger, dispatcher, stream, max_read_failures=3).run()

    assert stream.reads == 3
    assert output.getvalue() == ""


@pytest.mark.asyncio
async def test_read_error_count_resets_after_good_line(logger, dispatcher, output):
    class FlakyStream:
        def __init__(self):
            self.script = [OSError("eio"), b'{"cmd":"markets"}\n', OSError("eio"), b'{"cmd":"markets"}\n']

        def readline(self):
            if not self.script:
                return b""
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

    await LineProtocolLoop(logger, dispatcher, FlakyStream(), max_read_failures=2).run()

    assert len(read_responses(output)) == 2
