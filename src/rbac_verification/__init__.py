"""RBAC verification - admin/viewer policy checks against Weaviate."""

from .client import (
    AuthenticationError,
    PermissionDeniedError,
    TransportFailure,
    UnexpectedResponseError,
    WeaviateClient,
    WeaviateConnectionError,
    WeaviateError,
)
from .config import ConfigError, VerifierConfig
from .models import (
    Expectation,
    Identity,
    Observation,
    Operation,
    Role,
    VerificationOutcome,
    VerificationReport,
)
from .runner import PermissionVerificationRunner

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "Expectation",
    "Identity",
    "Observation",
    "Operation",
    "PermissionDeniedError",
    "PermissionVerificationRunner",
    "Role",
    "TransportFailure",
    "UnexpectedResponseError",
    "VerificationOutcome",
    "VerificationReport",
    "VerifierConfig",
    "WeaviateClient",
    "WeaviateConnectionError",
    "WeaviateError",
]
