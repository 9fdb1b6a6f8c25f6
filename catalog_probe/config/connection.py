"""Connection configuration handed to the session layer."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .variables import VariableResolver, replace_variables

# Endpoint fields compare None and "" as equal
ENDPOINT_FIELDS = ("host", "port", "server", "database", "user", "password", "url")


class ConnectionEventType(Enum):
    """Connection lifecycle events that may trigger a shell command."""

    BEFORE_CONNECT = "before_connect"
    AFTER_CONNECT = "after_connect"
    BEFORE_DISCONNECT = "before_disconnect"
    AFTER_DISCONNECT = "after_disconnect"


@dataclass
class ShellCommand:
    """Shell command bound to a connection event."""

    command: str
    show_panel: bool = True
    wait_process_finish: bool = False
    wait_process_timeout_ms: int = -1
    terminate_at_disconnect: bool = True
    pause_after_execute: int = 0
    working_directory: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "show_panel": self.show_panel,
            "wait_process_finish": self.wait_process_finish,
            "wait_process_timeout_ms": self.wait_process_timeout_ms,
            "terminate_at_disconnect": self.terminate_at_disconnect,
            "pause_after_execute": self.pause_after_execute,
            "working_directory": self.working_directory,
        }


@dataclass
class NetworkHandlerConfig:
    """Configuration of a network handler (tunnel, proxy) in front of the engine."""

    id: str
    enabled: bool = False
    user: Optional[str] = None
    password: Optional[str] = None
    save_password: bool = False
    properties: Dict[str, str] = field(default_factory=dict)

    def resolve_dynamic_variables(self, resolver: VariableResolver) -> None:
        self.user = replace_variables(self.user, resolver)
        self.password = replace_variables(self.password, resolver)
        for key, value in self.properties.items():
            self.properties[key] = replace_variables(value, resolver)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "enabled": self.enabled,
            "user": self.user,
            "password": self.password,
            "save_password": self.save_password,
            "properties": dict(self.properties),
        }


@dataclass
class NetworkProfile:
    """Named group of network handler configurations."""

    name: str
    handlers: List[NetworkHandlerConfig] = field(default_factory=list)


@dataclass
class ConnectionBootstrap:
    """Settings applied right after a connection is opened."""

    default_catalog: Optional[str] = None
    default_schema: Optional[str] = None
    default_auto_commit: Optional[bool] = None
    default_isolation: Optional[int] = None
    init_queries: List[str] = field(default_factory=list)
    ignore_errors: bool = False

    def resolve_dynamic_variables(self, resolver: VariableResolver) -> None:
        self.default_catalog = replace_variables(self.default_catalog, resolver)
        self.default_schema = replace_variables(self.default_schema, resolver)
        self.init_queries = [replace_variables(query, resolver) for query in self.init_queries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_catalog": self.default_catalog,
            "default_schema": self.default_schema,
            "default_auto_commit": self.default_auto_commit,
            "default_isolation": self.default_isolation,
            "init_queries": list(self.init_queries),
            "ignore_errors": self.ignore_errors,
        }


@dataclass(eq=False)
class ConnectionConfiguration:
    """Connection endpoint, credentials and driver properties."""

    host: Optional[str] = None
    port: Optional[str] = None
    server: Optional[str] = None
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    url: Optional[str] = None
    client_home_id: Optional[str] = None
    config_profile_name: Optional[str] = None
    user_profile_name: Optional[str] = None
    connection_type: str = "dev"
    properties: Dict[str, str] = field(default_factory=dict)
    provider_properties: Dict[str, str] = field(default_factory=dict)
    events: Dict[ConnectionEventType, ShellCommand] = field(default_factory=dict)
    handlers: List[NetworkHandlerConfig] = field(default_factory=list)
    bootstrap: ConnectionBootstrap = field(default_factory=ConnectionBootstrap)
    color: Optional[str] = None
    keep_alive_interval: int = 0

    __hash__ = None

    def __post_init__(self):
        if self.port is not None and not isinstance(self.port, str):
            self.port = str(self.port)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConnectionConfiguration):
            return NotImplemented
        for name in ENDPOINT_FIELDS:
            if (getattr(self, name) or "") != (getattr(other, name) or ""):
                return False
        return (
            self.client_home_id == other.client_home_id
            and self.config_profile_name == other.config_profile_name
            and self.user_profile_name == other.user_profile_name
            and self.connection_type == other.connection_type
            and self.properties == other.properties
            and self.provider_properties == other.provider_properties
            and self.events == other.events
            and self.handlers == other.handlers
            and self.bootstrap == other.bootstrap
            and self.color == other.color
            and self.keep_alive_interval == other.keep_alive_interval
        )

    def clone(self) -> "ConnectionConfiguration":
        """Return a deep copy; handlers, events and bootstrap are independent."""
        return copy.deepcopy(self)

    @property
    def keep_alive_enabled(self) -> bool:
        """Keep-alive is disabled for zero or negative intervals."""
        return self.keep_alive_interval > 0

    # Driver properties

    def get_property(self, name: str) -> Optional[str]:
        return self.properties.get(name)

    def set_property(self, name: str, value: str) -> None:
        self.properties[name] = value

    # Provider properties

    def get_provider_property(self, name: str) -> Optional[str]:
        return self.provider_properties.get(name)

    def set_provider_property(self, name: str, value: str) -> None:
        self.provider_properties[name] = value

    def remove_provider_property(self, name: str) -> None:
        self.provider_properties.pop(name, None)

    # Events

    def get_event(self, event_type: ConnectionEventType) -> Optional[ShellCommand]:
        return self.events.get(event_type)

    def set_event(self, event_type: ConnectionEventType, command: Optional[ShellCommand]) -> None:
        if command is None:
            self.events.pop(event_type, None)
        else:
            self.events[event_type] = command

    def declared_events(self) -> List[ConnectionEventType]:
        return list(self.events.keys())

    # Network handlers

    def get_handler(self, handler_id: str) -> Optional[NetworkHandlerConfig]:
        for handler in self.handlers:
            if handler.id == handler_id:
                return handler
        return None

    def update_handler(self, handler: NetworkHandlerConfig) -> None:
        """Replace the handler with the same id, or append it."""
        for index, existing in enumerate(self.handlers):
            if existing.id == handler.id:
                self.handlers[index] = handler
                return
        self.handlers.append(handler)

    def set_config_profile(self, profile: Optional[NetworkProfile]) -> None:
        """Apply a network profile's enabled handlers, or clear the profile name."""
        if profile is None:
            self.config_profile_name = None
            return
        self.config_profile_name = profile.name
        for handler in profile.handlers:
            if handler.enabled:
                self.update_handler(copy.deepcopy(handler))

    def resolve_dynamic_variables(self, resolver: VariableResolver) -> None:
        """Substitute ``${var}`` tokens in place.

        Applies to every endpoint field, every property and provider-property
        value, enabled network handlers and the bootstrap settings.
        """
        for name in ENDPOINT_FIELDS:
            setattr(self, name, replace_variables(getattr(self, name), resolver))
        for key, value in self.properties.items():
            self.properties[key] = replace_variables(value, resolver)
        for key, value in self.provider_properties.items():
            self.provider_properties[key] = replace_variables(value, resolver)
        for handler in self.handlers:
            if handler.enabled:
                handler.resolve_dynamic_variables(resolver)
        self.bootstrap.resolve_dynamic_variables(resolver)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted form of the configuration."""
        data: Dict[str, Any] = {}
        for name in ENDPOINT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        for name in ("client_home_id", "config_profile_name", "user_profile_name", "color"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        data["connection_type"] = self.connection_type
        data["keep_alive_interval"] = self.keep_alive_interval
        data["properties"] = dict(self.properties)
        data["provider_properties"] = dict(self.provider_properties)
        data["events"] = {event.value: command.to_dict() for event, command in self.events.items()}
        data["handlers"] = [handler.to_dict() for handler in self.handlers]
        data["bootstrap"] = self.bootstrap.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionConfiguration":
        """Build a configuration from its persisted form."""
        events = {}
        for key, command in (data.get("events") or {}).items():
            events[ConnectionEventType(key)] = ShellCommand(**command)
        handlers = [NetworkHandlerConfig(**handler) for handler in data.get("handlers") or []]
        bootstrap = ConnectionBootstrap(**(data.get("bootstrap") or {}))
        return cls(
            host=data.get("host"),
            port=data.get("port"),
            server=data.get("server"),
            database=data.get("database"),
            user=data.get("user"),
            password=data.get("password"),
            url=data.get("url"),
            client_home_id=data.get("client_home_id"),
            config_profile_name=data.get("config_profile_name"),
            user_profile_name=data.get("user_profile_name"),
            connection_type=data.get("connection_type", "dev"),
            properties=_string_map(data.get("properties")),
            provider_properties=_string_map(data.get("provider_properties")),
            events=events,
            handlers=handlers,
            bootstrap=bootstrap,
            color=data.get("color"),
            keep_alive_interval=int(data.get("keep_alive_interval", 0)),
        )

    def __str__(self) -> str:
        return f"Connection: {self.url if self.url is not None else self.database}"


def _string_map(values: Optional[Dict[str, Any]]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for key, value in (values or {}).items():
        result[str(key)] = value if value is None else str(value)
    return result
