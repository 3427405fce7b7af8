"""Environment configuration for the RBAC toolkit.

Values come from the process environment after ``load_dotenv()`` so a
local ``.env`` next to ``docker/docker-compose.yml`` is picked up. Bearer
tokens have no defaults: a run without both keys is a configuration error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .models import Identity, Role

# Constants per CODING_PATTERNS_ANALYSIS.md S1192
DEFAULT_SCHEME = "http"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 10.0
DEFAULT_COLLECTION = "Note"
DEFAULT_READ_LIMIT = 10
DEFAULT_ADMIN_USER = "admin-user"
DEFAULT_VIEWER_USER = "viewer-user"

ERROR_MISSING_VAR = "Environment variable {} must be set"
ERROR_INVALID_NUMBER = "Environment variable {} must be a number, got {!r}"


class ConfigError(Exception):
    """Raised when required configuration is missing or malformed."""


def _require(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigError(ERROR_MISSING_VAR.format(name))
    return value


def _number(name: str, default: float, cast: type = int) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(ERROR_INVALID_NUMBER.format(name, raw)) from e


@dataclass
class VerifierConfig:
    """Connection settings and the two credentials of a verification run.

    Per Issue #2.2: Use dataclass instead of long parameter lists.
    """

    admin_key: str
    viewer_key: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    scheme: str = DEFAULT_SCHEME
    admin_user: str = DEFAULT_ADMIN_USER
    viewer_user: str = DEFAULT_VIEWER_USER
    timeout: float = DEFAULT_TIMEOUT
    collection: str = DEFAULT_COLLECTION
    read_limit: int = DEFAULT_READ_LIMIT
    verify_idempotence: bool = True

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def admin(self) -> Identity:
        return Identity(name=self.admin_user, role=Role.ADMIN, token=self.admin_key)

    @property
    def viewer(self) -> Identity:
        return Identity(name=self.viewer_user, role=Role.VIEWER, token=self.viewer_key)

    def identity_for(self, role: Role) -> Identity:
        if role is Role.ADMIN:
            return self.admin
        if role is Role.VIEWER:
            return self.viewer
        return Identity.anonymous()

    @classmethod
    def from_env(cls) -> VerifierConfig:
        """Build configuration from WEAVIATE_* / RBAC_* variables."""
        load_dotenv()

        return cls(
            admin_key=_require("WEAVIATE_ADMIN_KEY"),
            viewer_key=_require("WEAVIATE_VIEWER_KEY"),
            host=os.getenv("WEAVIATE_HOST", DEFAULT_HOST),
            port=int(_number("WEAVIATE_PORT", DEFAULT_PORT)),
            scheme=os.getenv("WEAVIATE_SCHEME", DEFAULT_SCHEME),
            admin_user=os.getenv("WEAVIATE_ADMIN_USER", DEFAULT_ADMIN_USER),
            viewer_user=os.getenv("WEAVIATE_VIEWER_USER", DEFAULT_VIEWER_USER),
            timeout=float(_number("WEAVIATE_TIMEOUT", DEFAULT_TIMEOUT, float)),
            collection=os.getenv("RBAC_COLLECTION", DEFAULT_COLLECTION),
            read_limit=int(_number("RBAC_READ_LIMIT", DEFAULT_READ_LIMIT)),
        )
