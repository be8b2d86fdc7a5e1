"""
Session driver.

Owns one connection: connect, login, then a sequence of transactions,
each sent and answered before the next is built. SIP2 has no message
identifiers, so a response is correlated with its request only by
keeping at most one request in flight.

States:
    DISCONNECTED -> CONNECTED -> AUTHENTICATED
        -> (SENDING -> AWAITING_RESPONSE -> AUTHENTICATED)* -> DISCONNECTED

Usage:
    driver = SessionDriver(config, SocketTransport('localhost', 6001))
    report = driver.session([RunStep('sc-status'), RunStep('item-information')])
    print(report.summary())
"""

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from ..config.schema import (
    ErrorPolicy,
    HarnessConfig,
    LoginPolicy,
    OutputMode,
    RunStep,
)
from ..core.errors import (
    LoginRejectedError,
    NoResponseError,
    SessionStateError,
    SipError,
    TransportTimeout,
)
from ..core.report import Exchange, RunReport
from ..protocol.timestamp import sip_timestamp
from ..transactions.catalog import TransactionRequest, get_transaction
from .reporter import Reporter
from .transport import Transport


class ConnectionState(Enum):
    """Where the session is in its lifecycle."""
    DISCONNECTED = 'disconnected'
    CONNECTED = 'connected'
    AUTHENTICATED = 'authenticated'
    SENDING = 'sending'
    AWAITING_RESPONSE = 'awaiting_response'


@dataclass
class SessionState:
    """Process-scoped session data. Only `authenticated` changes after start."""
    config: HarnessConfig
    request: TransactionRequest
    authenticated: bool = False


class SessionDriver:
    """
    Sequences login and transactions over a single transport.

    Args:
        config: Immutable harness configuration
        transport: Connection to the server
        reporter: Per-exchange output (silent when omitted)
        timestamp: Produces 18-character SIP2 timestamps
        sleep: Pause function for inter-request delays
        clock: Monotonic clock for latency
    """

    def __init__(
        self,
        config: HarnessConfig,
        transport: Transport,
        reporter: Optional[Reporter] = None,
        timestamp: Callable[[], str] = sip_timestamp,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.config = config
        self.transport = transport
        self.reporter = reporter or Reporter(OutputMode.silent)
        self.timestamp = timestamp
        self._sleep = sleep
        self._clock = clock

        self.state = SessionState(config=config, request=config.transaction_request())
        self.phase = ConnectionState.DISCONNECTED
        self.report = RunReport(server=config.server.address)

    def __enter__(self) -> 'SessionDriver':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _require(self, *phases: ConnectionState) -> None:
        if self.phase not in phases:
            raise SessionStateError(
                "operation not allowed",
                phase=self.phase.value,
                allowed=', '.join(p.value for p in phases),
            )

    # === Lifecycle ===

    def connect(self) -> None:
        """DISCONNECTED -> CONNECTED. Transport failures propagate."""
        self._require(ConnectionState.DISCONNECTED)
        self.transport.connect()
        self.phase = ConnectionState.CONNECTED

    def login(self) -> Exchange:
        """
        Send the login message and wait for its response.

        Any response authenticates the session unless the login policy is
        ABORT, in which case a login response whose ok flag is not '1'
        raises LoginRejectedError.
        """
        self._require(ConnectionState.CONNECTED)
        exchange = self._exchange('login')

        response = exchange.response
        if self.config.policy.on_login_failure is LoginPolicy.ABORT:
            ok = response.fixed('ok') if response.code == '94' else None
            if ok != '1':
                exchange.error = LoginRejectedError(
                    "login refused",
                    response_code=response.code,
                    ok=ok,
                )
                self.reporter.failure(exchange)
                raise exchange.error

        self.state.authenticated = True
        self.phase = ConnectionState.AUTHENTICATED
        return exchange

    def disconnect(self) -> None:
        """Release the transport. Idempotent."""
        if self.phase is ConnectionState.DISCONNECTED:
            return
        try:
            self.transport.disconnect()
        finally:
            self.phase = ConnectionState.DISCONNECTED
            self.state.authenticated = False

    # === Transactions ===

    def execute(self, name: str) -> Exchange:
        """Run one transaction. Failures are recorded and raised."""
        self._require(ConnectionState.CONNECTED, ConnectionState.AUTHENTICATED)
        return self._exchange(name)

    def run(
        self,
        sequence: Sequence[str],
        repeat_count: int = 1,
        inter_request_delay: float = 0.0,
    ) -> RunReport:
        """Run each named transaction repeat_count times, in order."""
        steps = [RunStep(name, repeat_count, inter_request_delay) for name in sequence]
        return self.run_steps(steps)

    def run_steps(self, steps: Iterable[RunStep]) -> RunReport:
        """
        Run steps in order under the configured error policy.

        Every request after the first waits its step's delay before being
        sent. With ErrorPolicy.ABORT the first failure is raised; with
        CONTINUE it is recorded and the run carries on.
        """
        start = self._clock()
        sent = 0
        try:
            for step in steps:
                for _ in range(step.repeat):
                    if sent and step.delay > 0:
                        self._sleep(step.delay)
                    sent += 1
                    try:
                        self.execute(step.transaction)
                    except SessionStateError:
                        raise
                    except SipError:
                        if self.config.policy.on_error is ErrorPolicy.ABORT:
                            raise
        finally:
            self.report.duration_seconds += self._clock() - start

        return self.report

    def session(self, steps: Optional[Iterable[RunStep]] = None) -> RunReport:
        """
        Connect, log in, run steps (the configured run by default), and
        always disconnect.
        """
        if steps is None:
            steps = self.config.run

        try:
            self.connect()
            self.login()
            self.run_steps(steps)
        finally:
            self.disconnect()
            self.reporter.finish(self.report)

        return self.report

    def _exchange(self, name: str) -> Exchange:
        """Build, send, and wait for exactly one response."""
        exchange = self.report.add(Exchange(transaction=name))

        try:
            transaction = get_transaction(name)
            exchange.transaction = transaction.name
            exchange.request = transaction.builder(self.state.request, self.timestamp)
        except SipError as e:
            exchange.error = e
            self.reporter.failure(exchange)
            raise

        resting = self.phase
        self.phase = ConnectionState.SENDING
        start = self._clock()

        try:
            wire = self.transport.send(exchange.request)
            exchange.request = replace(exchange.request, raw=wire)
            self.reporter.request(exchange)
            self.phase = ConnectionState.AWAITING_RESPONSE
            try:
                response = self.transport.receive()
            except TransportTimeout as e:
                raise NoResponseError(
                    "timed out waiting for response",
                    transaction=exchange.transaction,
                ) from e
            if response is None:
                raise NoResponseError(
                    "connection closed before response",
                    transaction=exchange.transaction,
                )
        except SipError as e:
            exchange.error = e
            self.phase = resting
            self.reporter.failure(exchange)
            raise

        exchange.latency = self._clock() - start
        exchange.response = response
        self.phase = resting
        self.reporter.response(exchange)
        return exchange
