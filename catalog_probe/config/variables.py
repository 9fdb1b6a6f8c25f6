"""Variable substitution for connection configuration values."""

import re
from typing import Callable, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .connection import ConnectionConfiguration

VariableResolver = Callable[[str], Optional[str]]

VARIABLE_HOST = "host"
VARIABLE_PORT = "port"
VARIABLE_SERVER = "server"
VARIABLE_DATABASE = "database"
VARIABLE_USER = "user"
VARIABLE_PASSWORD = "password"
VARIABLE_URL = "url"
VAR_PROJECT_PATH = "project.path"
VAR_PROJECT_NAME = "project.name"

_VARIABLE_PATTERN = re.compile(r"\$\{([^${}]+)\}")


def replace_variables(text: Optional[str], resolver: VariableResolver) -> Optional[str]:
    """Replace ``${name}`` tokens in text using a resolver.

    Tokens the resolver does not know (returns None for) are left unchanged.

    Args:
        text: Text to process; None is returned as-is
        resolver: Callable mapping a variable name to its value

    Returns:
        Text with known variables substituted
    """
    if not text or "${" not in text:
        return text

    def _substitute(match: "re.Match[str]") -> str:
        value = resolver(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return _VARIABLE_PATTERN.sub(_substitute, text)


class ConnectionVariableResolver:
    """Resolves the declared connection tokens from a configuration."""

    def __init__(
        self,
        configuration: "ConnectionConfiguration",
        project_path: Optional[str] = None,
        project_name: Optional[str] = None,
        extra: Optional[Dict[str, str]] = None,
    ):
        self.configuration = configuration
        self.project_path = project_path
        self.project_name = project_name
        self.extra = dict(extra or {})

    def __call__(self, name: str) -> Optional[str]:
        config = self.configuration
        values = {
            VARIABLE_HOST: config.host,
            VARIABLE_PORT: config.port,
            VARIABLE_SERVER: config.server,
            VARIABLE_DATABASE: config.database,
            VARIABLE_USER: config.user,
            VARIABLE_PASSWORD: config.password,
            VARIABLE_URL: config.url,
            VAR_PROJECT_PATH: self.project_path,
            VAR_PROJECT_NAME: self.project_name,
        }
        if name in values:
            return values[name]
        return self.extra.get(name)
