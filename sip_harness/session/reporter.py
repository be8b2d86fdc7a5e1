"""
Per-exchange output.

Modes:
- raw: wire text of every request and response
- table: aligned field display of every request and response
- summary: one character per event ('>' sent, '<' received, 'x' failed)
- silent: nothing; timing is still collected in the run report
"""

import sys
from typing import Optional, TextIO

from ..config.schema import OutputMode
from ..core.report import Exchange, RunReport
from ..protocol.fields import MESSAGE_TERMINATOR
from ..protocol.message import Message


MARK_REQUEST = '>'
MARK_RESPONSE = '<'
MARK_FAILURE = 'x'


def _visible(message: Message) -> str:
    """Wire text as sent or received, without the terminator."""
    wire = message.raw if message.raw is not None else message.to_wire()
    return wire.rstrip(MESSAGE_TERMINATOR)


class Reporter:
    """Writes exchanges to a text stream in one output mode."""

    def __init__(self, mode: OutputMode = OutputMode.table, stream: Optional[TextIO] = None):
        self.mode = OutputMode(mode)
        self.stream = stream if stream is not None else sys.stdout
        self._markers = 0

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def request(self, exchange: Exchange) -> None:
        if self.mode is OutputMode.raw:
            self._write(f"> {_visible(exchange.request)}\n")
        elif self.mode is OutputMode.table:
            self._write(f"--> {exchange.transaction}\n{exchange.request.to_display()}\n")
        elif self.mode is OutputMode.summary:
            self._mark(MARK_REQUEST)

    def response(self, exchange: Exchange) -> None:
        latency_ms = (exchange.latency or 0.0) * 1000
        response = exchange.response

        if self.mode is OutputMode.raw:
            self._write(f"< {_visible(response)}  [{latency_ms:.3f} ms]\n")
        elif self.mode is OutputMode.table:
            self._write(
                f"<-- {exchange.transaction} ({latency_ms:.3f} ms)\n"
                f"{response.to_display()}\n\n"
            )
        elif self.mode is OutputMode.summary:
            self._mark(MARK_RESPONSE)

    def failure(self, exchange: Exchange) -> None:
        if self.mode in (OutputMode.raw, OutputMode.table):
            self._write(f"!! {exchange.transaction}: {exchange.error}\n")
        elif self.mode is OutputMode.summary:
            self._mark(MARK_FAILURE)

    def finish(self, report: RunReport) -> None:
        """Terminate the marker line in summary mode."""
        if self.mode is OutputMode.summary and self._markers:
            self._write('\n')
            self._markers = 0

    def _mark(self, marker: str) -> None:
        self._markers += 1
        self._write(marker)
