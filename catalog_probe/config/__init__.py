"""Configuration management."""

from .config import (
    Config,
    DataSourceConfig,
    LoggingConfig,
    ProbeConfig,
    load_config,
    save_config,
)
from .connection import (
    ConnectionBootstrap,
    ConnectionConfiguration,
    ConnectionEventType,
    NetworkHandlerConfig,
    NetworkProfile,
    ShellCommand,
)
from .variables import ConnectionVariableResolver, replace_variables

__all__ = [
    "Config",
    "ConnectionBootstrap",
    "ConnectionConfiguration",
    "ConnectionEventType",
    "ConnectionVariableResolver",
    "DataSourceConfig",
    "LoggingConfig",
    "NetworkHandlerConfig",
    "NetworkProfile",
    "ProbeConfig",
    "ShellCommand",
    "load_config",
    "replace_variables",
    "save_config",
]
