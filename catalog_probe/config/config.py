"""Configuration management for catalog discovery."""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import yaml
from pathlib import Path

from .connection import ConnectionConfiguration


@dataclass
class DataSourceConfig:
    """Configuration for a single data source."""

    name: str
    type: str  # "sqlite", "duckdb", "postgresql"
    connection: ConnectionConfiguration = field(default_factory=ConnectionConfiguration)
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProbeConfig:
    """Configuration for system object discovery."""

    parallel: bool = False
    max_workers: int = 4
    probe_timeout_s: float = 5.0


@dataclass
class LoggingConfig:
    """Configuration for logging output."""

    level: str = "INFO"
    structured: bool = False
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""

    datasources: Dict[str, DataSourceConfig] = field(default_factory=dict)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_CONNECTION_KEYS = (
    "host",
    "port",
    "server",
    "database",
    "user",
    "password",
    "url",
    "client_home_id",
    "config_profile_name",
    "user_profile_name",
    "connection_type",
    "properties",
    "provider_properties",
    "events",
    "handlers",
    "bootstrap",
    "color",
    "keep_alive_interval",
)


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Parsed configuration

    Example YAML format:
        datasources:
          local_sqlite:
            type: sqlite
            database: /data/app.db

          analytics_pg:
            type: postgresql
            host: localhost
            port: 5432
            database: analytics
            user: ${ANALYTICS_USER}
            password: secret
            keep_alive_interval: 30
            properties:
              application_name: catprobe
            options:
              max_connections: 4

        probe:
          parallel: true
          max_workers: 4
          probe_timeout_s: 2.5

        logging:
          level: DEBUG
          structured: true
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Parse data sources
    datasources = {}
    for name, ds_config in (data.get("datasources") or {}).items():
        ds_config = dict(ds_config)
        ds_type = ds_config.pop("type")
        options = ds_config.pop("options", None) or {}
        connection_data = {}
        for key in _CONNECTION_KEYS:
            if key in ds_config:
                connection_data[key] = ds_config.pop(key)
        # Anything else is an engine option
        options.update(ds_config)
        datasources[name] = DataSourceConfig(
            name=name,
            type=ds_type,
            connection=ConnectionConfiguration.from_dict(connection_data),
            options=options,
        )

    probe = ProbeConfig(**(data.get("probe") or {}))
    logging_config = LoggingConfig(**(data.get("logging") or {}))

    return Config(datasources=datasources, probe=probe, logging=logging_config)


def save_config(config: Config, config_path: str) -> None:
    """Write configuration to a YAML file.

    Args:
        config: Configuration to persist
        config_path: Destination path
    """
    datasources: Dict[str, Any] = {}
    for name, ds_config in config.datasources.items():
        entry: Dict[str, Any] = {"type": ds_config.type}
        entry.update(ds_config.connection.to_dict())
        if ds_config.options:
            entry["options"] = dict(ds_config.options)
        datasources[name] = entry

    data = {
        "datasources": datasources,
        "probe": {
            "parallel": config.probe.parallel,
            "max_workers": config.probe.max_workers,
            "probe_timeout_s": config.probe.probe_timeout_s,
        },
        "logging": {
            "level": config.logging.level,
            "structured": config.logging.structured,
            "log_file": config.logging.log_file,
        },
    }

    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)
