"""Configuration management for SIP Harness."""

from .schema import (
    HarnessConfig,
    ServerConfig,
    LoginConfig,
    DefaultsConfig,
    ProtocolConfig,
    OutputConfig,
    PolicyConfig,
    RunStep,
    OutputMode,
    ErrorPolicy,
    LoginPolicy,
    parse_step,
    load_config,
    generate_default_config,
)

__all__ = [
    'HarnessConfig',
    'ServerConfig',
    'LoginConfig',
    'DefaultsConfig',
    'ProtocolConfig',
    'OutputConfig',
    'PolicyConfig',
    'RunStep',
    'OutputMode',
    'ErrorPolicy',
    'LoginPolicy',
    'parse_step',
    'load_config',
    'generate_default_config',
]
