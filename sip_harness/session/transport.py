"""
Transport interface and TCP implementation.

The driver treats a transport as a synchronous request/response channel.
Transports own socket buffering; they never retry or reconnect.
"""

import logging
import socket
from abc import ABC, abstractmethod
from typing import Optional

from ..core.errors import (
    ProtocolError,
    TransportConnectionError,
    TransportError,
    TransportTimeout,
)
from ..protocol.fields import MESSAGE_TERMINATOR
from ..protocol.message import Message, parse


logger = logging.getLogger(__name__)


class Transport(ABC):
    """Minimal contract for a SIP2 connection."""

    @abstractmethod
    def connect(self) -> None:
        """
        Establish the connection.

        Raises:
            TransportConnectionError: connection could not be made
        """

    @abstractmethod
    def send(self, message: Message) -> str:
        """Send one message and return the exact wire text written."""

    @abstractmethod
    def receive(self) -> Optional[Message]:
        """
        Receive the next message.

        Returns None when the peer closed the connection.

        Raises:
            TransportTimeout: nothing arrived in time
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection. Safe to call more than once."""

    @property
    def is_connected(self) -> bool:
        return False


class SocketTransport(Transport):
    """
    SIP2 over a plain TCP connection.

    Messages are read up to the '\\r' terminator; a '\\n' some servers send
    after it is discarded. With error detection enabled every outgoing
    message carries an AY sequence number cycling 0-9 and an AZ checksum.

    Usage:
        transport = SocketTransport('sip.example.org', 6001, timeout=10)
        transport.connect()
        transport.send(msg)
        response = transport.receive()
    """

    RECV_SIZE = 4096

    def __init__(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = 30.0,
        encoding: str = 'utf-8',
        error_detection: bool = False,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.encoding = encoding
        self.error_detection = error_detection

        self.socket: Optional[socket.socket] = None
        self._buffer = b''
        self._sequence = 0

    @property
    def is_connected(self) -> bool:
        return self.socket is not None

    def connect(self) -> None:
        try:
            self.socket = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise TransportConnectionError(
                f"cannot connect: {e}",
                host=self.host,
                port=self.port,
            ) from e

        self._buffer = b''
        self._sequence = 0
        logger.info(f"Connected to {self.host}:{self.port}")

    def _next_sequence(self) -> Optional[int]:
        if not self.error_detection:
            return None
        sequence = self._sequence
        self._sequence = (sequence + 1) % 10
        return sequence

    def send(self, message: Message) -> str:
        if self.socket is None:
            raise TransportError("not connected")

        wire = message.to_wire(sequence=self._next_sequence())
        logger.debug(f"send {wire!r}")

        try:
            self.socket.sendall(wire.encode(self.encoding))
        except socket.timeout as e:
            raise TransportTimeout("send timed out") from e
        except OSError as e:
            raise TransportError(f"send failed: {e}") from e

        return wire

    def receive(self) -> Optional[Message]:
        line = self._read_line()
        if line is None:
            logger.warning(f"Connection closed by {self.host}:{self.port}")
            return None

        logger.debug(f"recv {line!r}")
        return parse(line)

    def _read_line(self) -> Optional[str]:
        """Read up to and including the next message terminator."""
        if self.socket is None:
            raise TransportError("not connected")

        terminator = MESSAGE_TERMINATOR.encode(self.encoding)

        while True:
            index = self._buffer.find(terminator)
            if index >= 0:
                end = index + len(terminator)
                line, self._buffer = self._buffer[:end], self._buffer[end:]
                try:
                    return line.decode(self.encoding).lstrip('\n')
                except UnicodeDecodeError as e:
                    raise ProtocolError(f"undecodable response: {e}") from e

            try:
                chunk = self.socket.recv(self.RECV_SIZE)
            except socket.timeout as e:
                raise TransportTimeout(
                    "no data before timeout",
                    timeout=self.timeout,
                ) from e
            except OSError as e:
                raise TransportError(f"receive failed: {e}") from e

            if not chunk:
                return None

            self._buffer += chunk

    def disconnect(self) -> None:
        if self.socket is None:
            return

        try:
            self.socket.close()
        finally:
            self.socket = None
            self._buffer = b''
            logger.info(f"Disconnected from {self.host}:{self.port}")
