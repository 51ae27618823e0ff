import asyncio
import sys
from typing import BinaryIO, Optional

from clob_bridge.core.dispatcher import CommandDispatcher

MAX_READ_FAILURES = 5


class LineProtocolLoop:
    """
    Reads one command per line until exit or end of input. The next line is not
    read until the current command's response has been written.
    """

    def __init__(self, logger, dispatcher: CommandDispatcher, stream: Optional[BinaryIO] = None,
                 max_read_failures: int = MAX_READ_FAILURES):
        self.logger = logger
        self.dispatcher = dispatcher
        self.stream = stream if stream is not None else sys.stdin.buffer
        self.lines_read = 0
        self.max_read_failures = max_read_failures

    async def _read_line(self) -> Optional[str]:
        raw = await asyncio.to_thread(self.stream.readline)
        if not raw:
            return None
        self.lines_read += 1
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return raw

    async def run(self):
        self.logger.debug("Line protocol loop started")
        failures = 0
        while True:
            try:
                line = await self._read_line()
            except (OSError, UnicodeDecodeError) as e:
                failures += 1
                self.logger.error(f"Failed to read stdin: {e}")
                if failures >= self.max_read_failures:
                    self.logger.critical(f"Giving up after {failures} consecutive read failures")
                    break
                continue
            failures = 0

            if line is None:
                self.logger.info("End of input reached")
                break
            if not await self.dispatcher.dispatch(line):
                break
        self.logger.debug(f"Line protocol loop stopped after {self.lines_read} lines")
