"""
Configuration schema for SIP Harness.

Supports:
- YAML file loading
- Environment variable substitution (${VAR_NAME})
- Validation with error messages
- Secret redaction for safe logging

Example config (sip-harness.yml):
    version: 1

    server:
      host: sip.example.org
      port: 6001

    login:
      username: siplogin
      password: ${SIP_PASSWORD}

    defaults:
      institution: myplace
      item_id: "123456789"

    run:
      - transaction: sc-status
      - transaction: item-information
        repeat: 10
        delay: 0.5
"""

import os
import re
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml

from ..core.errors import ConfigError, UnknownTransactionError
from ..transactions.catalog import TransactionRequest, get_transaction


def _substitute_env_vars(value: Any) -> Any:
    """
    Substitute ${VAR_NAME} with environment variable values.

    Example:
        ${SIP_PASSWORD} → os.environ.get('SIP_PASSWORD')
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'

        def replace_var(match):
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                return match.group(0)  # Keep original if not found
            return env_value

        return re.sub(pattern, replace_var, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]

    return value


def _numbers(section: Any, **kinds) -> Any:
    """
    Convert numeric settings given as text, as ${VAR} substitution leaves them.

    Raises:
        ConfigError: a value is not a number
    """
    if not isinstance(section, dict):
        return section

    section = dict(section)
    for key, kind in kinds.items():
        value = section.get(key)
        if isinstance(value, str):
            try:
                section[key] = kind(value)
            except ValueError as e:
                raise ConfigError(f"Invalid {key}: {value!r}", field=key) from e
    return section


def _text(value: Any) -> Optional[str]:
    """YAML turns barcodes into ints; the wire wants text."""
    return None if value is None else str(value)


class OutputMode(str, Enum):
    raw = "raw"
    table = "table"
    summary = "summary"
    silent = "silent"


class ErrorPolicy(str, Enum):
    """What the driver does when one transaction fails."""
    ABORT = "abort"
    CONTINUE = "continue"


class LoginPolicy(str, Enum):
    """What the driver does when the login response reports failure."""
    IGNORE = "ignore"
    ABORT = "abort"


@dataclass(frozen=True)
class ServerConfig:
    """Server address."""
    host: str = 'localhost'
    port: int = 6001
    timeout: Optional[float] = 30.0
    encoding: str = 'utf-8'

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class LoginConfig:
    """Login credentials."""
    username: Optional[str] = None
    password: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class DefaultsConfig:
    """Default transaction inputs."""
    institution: Optional[str] = None
    terminal_password: Optional[str] = None
    location: Optional[str] = None
    item_id: Optional[str] = None
    patron_id: Optional[str] = None
    patron_password: Optional[str] = None
    summary: Optional[str] = None
    cancel: Optional[bool] = None
    start_item: Optional[str] = None
    end_item: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class RunStep:
    """One run directive: a transaction, how often, and the pause between."""
    transaction: str
    repeat: int = 1
    delay: float = 0.0


@dataclass(frozen=True)
class ProtocolConfig:
    """Protocol options."""
    error_detection: bool = False


@dataclass(frozen=True)
class OutputConfig:
    """Per-transaction output."""
    mode: OutputMode = OutputMode.table


@dataclass(frozen=True)
class PolicyConfig:
    """Failure policies."""
    on_error: ErrorPolicy = ErrorPolicy.ABORT
    on_login_failure: LoginPolicy = LoginPolicy.IGNORE


@dataclass(frozen=True)
class HarnessConfig:
    """Root configuration."""

    version: int = 1
    server: ServerConfig = field(default_factory=ServerConfig)
    login: LoginConfig = field(default_factory=LoginConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    run: Tuple[RunStep, ...] = ()

    @classmethod
    def load(cls, path: Path) -> 'HarnessConfig':
        """Load from YAML file with env var substitution."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML: {e}", path=str(path)) from e

        data = _substitute_env_vars(data)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'HarnessConfig':
        """Create from dictionary."""
        try:
            output = data.get('output') or {}
            policy = data.get('policy') or {}
            return cls(
                version=data.get('version', 1),
                server=ServerConfig(**_numbers(data.get('server') or {}, port=int, timeout=float)),
                login=LoginConfig(**(data.get('login') or {})),
                defaults=DefaultsConfig(**(data.get('defaults') or {})),
                protocol=ProtocolConfig(**(data.get('protocol') or {})),
                output=OutputConfig(mode=OutputMode(output.get('mode', 'table'))),
                policy=PolicyConfig(
                    on_error=ErrorPolicy(policy.get('on_error', 'abort')),
                    on_login_failure=LoginPolicy(policy.get('on_login_failure', 'ignore')),
                ),
                run=tuple(
                    parse_step(step) if isinstance(step, str)
                    else RunStep(**_numbers(step, repeat=int, delay=float))
                    for step in data.get('run') or []
                ),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = asdict(self)
        data['output']['mode'] = self.output.mode.value
        data['policy']['on_error'] = self.policy.on_error.value
        data['policy']['on_login_failure'] = self.policy.on_login_failure.value
        data['run'] = [asdict(step) for step in self.run]
        return data

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate config. Returns list of errors (empty if valid)."""
        errors = []

        if not self.server.host:
            errors.append("Server host is empty")

        port = self.server.port
        if not isinstance(port, int) or not 0 < port < 65536:
            errors.append(f"Invalid server port: {port}")

        timeout = self.server.timeout
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            errors.append(f"Invalid timeout: {timeout}")

        if self.login.username is None or self.login.password is None:
            errors.append("Login username and password are required")

        for step in self.run:
            try:
                get_transaction(step.transaction)
            except UnknownTransactionError:
                errors.append(f"Unknown transaction: {step.transaction}")
            if step.repeat < 1:
                errors.append(f"Invalid repeat for {step.transaction}: {step.repeat}")
            if step.delay < 0:
                errors.append(f"Invalid delay for {step.transaction}: {step.delay}")

        summary = _text(self.defaults.summary)
        if summary is not None and len(summary) != 10:
            errors.append(f"Summary must be 10 characters, got {len(summary)}")

        return errors

    def redacted(self) -> 'HarnessConfig':
        """Return copy with secrets redacted."""
        login = self.login
        if login.password:
            login = replace(login, password='***REDACTED***')

        defaults = self.defaults
        if defaults.terminal_password:
            defaults = replace(defaults, terminal_password='***REDACTED***')
        if defaults.patron_password:
            defaults = replace(defaults, patron_password='***REDACTED***')

        return replace(self, login=login, defaults=defaults)

    def transaction_request(self) -> TransactionRequest:
        """Resolve the inputs every transaction builder sees."""
        d = self.defaults
        location = d.location if d.location is not None else self.login.location
        return TransactionRequest(
            institution=_text(d.institution),
            location=_text(location),
            item_id=_text(d.item_id),
            patron_id=_text(d.patron_id),
            patron_password=_text(d.patron_password),
            username=_text(self.login.username),
            password=_text(self.login.password),
            terminal_password=_text(d.terminal_password),
            summary=_text(d.summary),
            cancel=d.cancel,
            start_item=_text(d.start_item),
            end_item=_text(d.end_item),
            language=_text(d.language),
        )


def parse_step(text: str) -> RunStep:
    """
    Parse a run directive of the form name[:repeat[:delay]].

    Example:
        parse_step('item-information:5:0.25')
    """
    parts = text.split(':')
    if not parts[0] or len(parts) > 3:
        raise ConfigError("run directive must be name[:repeat[:delay]]", directive=text)

    try:
        repeat = int(parts[1]) if len(parts) > 1 and parts[1] else 1
        delay = float(parts[2]) if len(parts) > 2 and parts[2] else 0.0
    except ValueError as e:
        raise ConfigError(f"Invalid run directive: {e}", directive=text) from e

    return RunStep(parts[0], repeat, delay)


def load_config(path: Optional[Path] = None) -> HarnessConfig:
    """Load config from file or return defaults."""
    if path and Path(path).exists():
        return HarnessConfig.load(path)

    search_paths = [
        Path('./sip-harness.yml'),
        Path('./sip-harness.yaml'),
        Path.home() / '.sip-harness' / 'config.yml',
    ]

    for p in search_paths:
        if p.exists():
            return HarnessConfig.load(p)

    return HarnessConfig()


def generate_default_config() -> str:
    """Generate default config as YAML."""
    return """# SIP Harness Configuration
version: 1

server:
  host: localhost
  port: 6001
  timeout: 30.0

login:
  username: ${SIP_USERNAME}
  password: ${SIP_PASSWORD}
  location: null

defaults:
  institution: myplace
  terminal_password: null
  item_id: null
  patron_id: null
  patron_password: null
  summary: null

protocol:
  error_detection: false

output:
  mode: table

policy:
  on_error: abort
  on_login_failure: ignore

run:
  - transaction: sc-status
    repeat: 1
    delay: 0.0
"""
