"""Pytest fixtures: canned SIP2 responses, a scripted transport, a TCP server."""

import socketserver
import threading
from typing import Callable, List, Optional, Union

import pytest

from sip_harness.config import DefaultsConfig, HarnessConfig, LoginConfig
from sip_harness.core.errors import TransportConnectionError, TransportTimeout
from sip_harness.protocol import Message, build, parse
from sip_harness.session import Transport


TS = '20261017    101500'


def fixed_timestamp() -> str:
    return TS


def respond(request: Message) -> Message:
    """Answer a request the way a cooperative ACS would."""
    institution = request.get('AO', '')
    item = request.get('AB', '')
    patron = request.get('AA', '')

    if request.code == '93':
        return build('94', ['1'])
    if request.code == '99':
        return build('98', ['Y', 'Y', 'Y', 'Y', 'N', 'N', '030', '003', TS, '2.00'], [
            ('AO', 'myplace'),
            ('AM', 'My Library'),
            ('BX', 'YYYYYYYYYYYYYYYY'),
        ])
    if request.code == '17':
        return build('18', ['03', '00', '01', TS], [
            ('AB', item),
            ('AJ', 'Moby Dick'),
            ('AQ', 'main'),
        ])
    if request.code == '09':
        return build('10', ['1', 'Y', 'N', 'N', TS], [
            ('AO', institution),
            ('AB', item),
            ('AQ', 'main'),
        ])
    if request.code == '11':
        return build('12', ['1', 'N', 'N', 'Y', TS], [
            ('AO', institution),
            ('AA', patron),
            ('AB', item),
            ('AJ', 'Moby Dick'),
            ('AH', TS),
        ])
    if request.code == '23':
        return build('24', [' ' * 14, '001', TS], [
            ('AO', institution),
            ('AA', patron),
            ('AE', 'Jane Doe'),
            ('BL', 'Y'),
        ])
    if request.code == '63':
        return build('64', [' ' * 14, '001', TS] + ['0000'] * 6, [
            ('AO', institution),
            ('AA', patron),
            ('AE', 'Jane Doe'),
            ('BL', 'Y'),
        ])
    if request.code == '35':
        return build('36', ['Y', TS], [('AO', institution), ('AA', patron)])
    raise AssertionError(f"no canned response for {request.code}")


class ScriptedTransport(Transport):
    """
    In-memory transport that answers from a responder. The responder
    returns a Message or the exact wire text to deliver.

    Fails the test if a second request is sent while a response is
    still pending, or if receive is called with nothing outstanding.
    """

    def __init__(
        self,
        responder: Callable[[Message], Union[Message, str]] = respond,
        timeout_codes=(),
        closed_codes=(),
        fail_connect: bool = False,
    ):
        self.responder = responder
        self.timeout_codes = set(timeout_codes)
        self.closed_codes = set(closed_codes)
        self.fail_connect = fail_connect

        self.sent: List[Message] = []
        self.events: List[tuple] = []
        self.pending = False
        self.connected = False
        self.disconnect_calls = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def sent_codes(self) -> List[str]:
        return [m.code for m in self.sent]

    def connect(self) -> None:
        if self.fail_connect:
            raise TransportConnectionError("connection refused", host='test', port=0)
        self.connected = True
        self.events.append(('connect',))

    def send(self, message: Message) -> str:
        if self.pending:
            raise AssertionError("send called while a response is pending")
        self.pending = True
        self.sent.append(message)
        self.events.append(('send', message.code))
        return message.to_wire()

    def receive(self) -> Optional[Message]:
        if not self.pending:
            raise AssertionError("receive called with no request outstanding")
        self.pending = False
        request = self.sent[-1]
        self.events.append(('receive', request.code))

        if request.code in self.timeout_codes:
            raise TransportTimeout("no data before timeout")
        if request.code in self.closed_codes:
            return None
        reply = self.responder(request)
        return parse(reply if isinstance(reply, str) else reply.to_wire())

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False
        self.events.append(('disconnect',))


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def config() -> HarnessConfig:
    """Credentials and defaults for the standard scenario."""
    return HarnessConfig(
        login=LoginConfig(username='siplogin', password='sippassword'),
        defaults=DefaultsConfig(institution='myplace', item_id='123456789'),
    )


# === TCP server ===

class _SIPHandler(socketserver.BaseRequestHandler):
    """Reads '\\r'-terminated messages and writes the server's replies."""

    def handle(self):
        buffer = b''
        while True:
            try:
                chunk = self.request.recv(1024)
            except OSError:
                return
            if not chunk:
                return
            buffer += chunk
            while b'\r' in buffer:
                line, buffer = buffer.split(b'\r', 1)
                text = line.decode('utf-8') + '\r'
                self.server.received.append(text)
                reply = self.server.reply(text)
                if reply is None:
                    return
                if reply:
                    self.request.sendall(reply.encode('utf-8'))


class SIPServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self):
        super().__init__(('127.0.0.1', 0), _SIPHandler)
        self.received: List[str] = []
        self.reply: Callable[[str], Optional[str]] = self.default_reply

    @property
    def port(self) -> int:
        return self.server_address[1]

    @staticmethod
    def default_reply(raw: str) -> str:
        """Parse the request, answer with the canned response plus CRLF."""
        return respond(parse(raw)).to_wire() + '\n'


@pytest.fixture
def sip_server():
    server = SIPServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
