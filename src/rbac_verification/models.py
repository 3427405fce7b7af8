"""Domain models for RBAC verification runs.

Identities, the authorization policy table and the per-check outcomes
produced by the verification runner.

The policy is a plain lookup table keyed by (operation, role). Outcomes
carry a tagged observation so that "denied as expected" and "failed for an
unrelated reason" are never confused:

    ALLOWED   - the operation succeeded
    DENIED    - the server answered 403 Forbidden
    AMBIGUOUS - anything else (transport failure, 401 mid-run, 5xx, ...)

Anti-Pattern Audit:
- Per Category 1.1: All functions have type annotations
- Per Issue #6: No duplicate class definitions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Role attached to a credential."""

    ADMIN = "admin"
    VIEWER = "viewer"
    ANONYMOUS = "anonymous"


class Operation(str, Enum):
    """Operations exercised by a verification run."""

    LIVENESS_PROBE = "liveness_probe"
    SCHEMA_CREATE = "schema_create"
    RECORD_WRITE = "record_write"
    RECORD_READ = "record_read"


class Expectation(str, Enum):
    """Outcome the policy demands for an operation."""

    ALLOW = "allow"
    DENY = "deny"


class Observation(str, Enum):
    """Outcome actually observed against the server."""

    ALLOWED = "allowed"
    DENIED = "denied"
    AMBIGUOUS = "ambiguous"


# (operation, role) -> expected outcome
POLICY: dict[tuple[Operation, Role], Expectation] = {
    (Operation.LIVENESS_PROBE, Role.ADMIN): Expectation.ALLOW,
    (Operation.LIVENESS_PROBE, Role.VIEWER): Expectation.ALLOW,
    (Operation.LIVENESS_PROBE, Role.ANONYMOUS): Expectation.DENY,
    (Operation.SCHEMA_CREATE, Role.ADMIN): Expectation.ALLOW,
    (Operation.SCHEMA_CREATE, Role.VIEWER): Expectation.DENY,
    (Operation.SCHEMA_CREATE, Role.ANONYMOUS): Expectation.DENY,
    (Operation.RECORD_WRITE, Role.ADMIN): Expectation.ALLOW,
    (Operation.RECORD_WRITE, Role.VIEWER): Expectation.DENY,
    (Operation.RECORD_WRITE, Role.ANONYMOUS): Expectation.DENY,
    (Operation.RECORD_READ, Role.ADMIN): Expectation.ALLOW,
    (Operation.RECORD_READ, Role.VIEWER): Expectation.ALLOW,
    (Operation.RECORD_READ, Role.ANONYMOUS): Expectation.DENY,
}

_MATCHING_OBSERVATION = {
    Expectation.ALLOW: Observation.ALLOWED,
    Expectation.DENY: Observation.DENIED,
}


def expected_outcome(operation: Operation, role: Role) -> Expectation:
    """Look up the expected outcome of ``operation`` for ``role``.

    Examples:
        >>> expected_outcome(Operation.RECORD_WRITE, Role.VIEWER)
        <Expectation.DENY: 'deny'>
        >>> expected_outcome(Operation.RECORD_READ, Role.VIEWER)
        <Expectation.ALLOW: 'allow'>
    """
    return POLICY[(operation, role)]


@dataclass(frozen=True)
class Identity:
    """A credential used for one side of a verification run.

    The token is excluded from repr so it never ends up in logs.
    """

    name: str
    role: Role
    token: str | None = field(default=None, repr=False)

    @classmethod
    def anonymous(cls) -> Identity:
        """Identity that sends no Authorization header."""
        return cls(name="anonymous", role=Role.ANONYMOUS)


@dataclass
class VerificationOutcome:
    """Result of a single policy check.

    Fields:
        operation: Operation that was attempted
        identity: Name of the identity it was attempted as
        role: Role of that identity
        expected: Outcome demanded by the policy
        observed: Outcome seen against the server
        detail: Human readable context (error text, record count, ...)
        records: Records returned by a read, empty otherwise
    """

    operation: Operation
    identity: str
    role: Role
    expected: Expectation
    observed: Observation
    detail: str = ""
    records: list[dict[str, Any]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.observed is _MATCHING_OBSERVATION[self.expected]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "operation": self.operation.value,
            "identity": self.identity,
            "role": self.role.value,
            "expected": self.expected.value,
            "observed": self.observed.value,
            "passed": self.passed,
            "detail": self.detail,
            "records": len(self.records),
        }


@dataclass
class VerificationReport:
    """Ordered outcomes of one verification run."""

    base_url: str
    collection: str
    outcomes: list[VerificationOutcome] = field(default_factory=list)
    aborted_reason: str | None = None

    def add(self, outcome: VerificationOutcome) -> VerificationOutcome:
        self.outcomes.append(outcome)
        return outcome

    def abort(self, reason: str) -> None:
        self.aborted_reason = reason

    @property
    def aborted(self) -> bool:
        return self.aborted_reason is not None

    @property
    def all_passed(self) -> bool:
        """A run passes only if it completed and every check matched."""
        if self.aborted or not self.outcomes:
            return False
        return all(o.passed for o in self.outcomes)

    @property
    def failures(self) -> list[VerificationOutcome]:
        return [o for o in self.outcomes if not o.passed]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "base_url": self.base_url,
            "collection": self.collection,
            "passed": self.all_passed,
            "aborted_reason": self.aborted_reason,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
