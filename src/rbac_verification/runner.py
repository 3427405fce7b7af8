"""Permission verification runner.

Runs a fixed, strictly sequential sequence of checks against a Weaviate
instance, first as the elevated identity and then as the restricted one,
and records one VerificationOutcome per check.

Every check goes through ``_attempt`` which turns the action into a tagged
observation. Only a 403 counts as a denial (a 401 as well for the
liveness probe, where the credential itself is what is being checked).
A connection reset in the middle of a denied write is AMBIGUOUS and fails
the run. Only an unreachable service aborts it.

Each identity gets its own session; the session is closed before the next
identity connects, on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from .client import (
    AuthenticationError,
    PermissionDeniedError,
    WeaviateClient,
    WeaviateConnectionError,
    WeaviateError,
    text_property,
)
from .config import VerifierConfig
from .models import (
    Identity,
    Observation,
    Operation,
    VerificationOutcome,
    VerificationReport,
    expected_outcome,
)

logger = logging.getLogger(__name__)

PROBE_SUFFIX = "RestrictedProbe"
TEXT_PROPERTY = "text"
ELEVATED_RECORD = {TEXT_PROPERTY: "a"}
RESTRICTED_RECORD = {TEXT_PROPERTY: "b"}
VERSION_FIELD = "version"

ClientFactory = Callable[..., WeaviateClient]


@dataclass
class Session:
    """An open, authenticated connection for one identity."""

    identity: Identity
    client: WeaviateClient
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def version(self) -> str | None:
        return self.meta.get(VERSION_FIELD)


@dataclass
class Attempt:
    """Tagged result of running one action."""

    observed: Observation
    value: Any = None
    detail: str = ""


def _attempt(
    action: Callable[[], Any],
    denial_errors: tuple[type[WeaviateError], ...] = (PermissionDeniedError,),
) -> Attempt:
    """Run ``action`` and classify what happened.

    WeaviateConnectionError is not classified: the service is gone and the
    run cannot continue.
    """
    try:
        value = action()
    except WeaviateConnectionError:
        raise
    except denial_errors as e:
        return Attempt(Observation.DENIED, detail=str(e))
    except (WeaviateError, ValueError) as e:
        return Attempt(Observation.AMBIGUOUS, detail=f"{type(e).__name__}: {e}")
    return Attempt(Observation.ALLOWED, value=value)


class PermissionVerificationRunner:
    """Checks that the server enforces the admin/viewer policy."""

    def __init__(
        self,
        config: VerifierConfig,
        client_factory: ClientFactory = WeaviateClient,
    ):
        self.config = config
        self._client_factory = client_factory
        self._report: VerificationReport | None = None

    @property
    def probe_collection(self) -> str:
        """Collection name the restricted identity tries to create."""
        return f"{self.config.collection}{PROBE_SUFFIX}"

    @property
    def properties(self) -> list[dict[str, Any]]:
        return [text_property(TEXT_PROPERTY)]

    def _open_client(self, identity: Identity) -> WeaviateClient:
        return self._client_factory(
            self.config.base_url,
            token=identity.token,
            timeout=self.config.timeout,
        )

    @contextmanager
    def connect(self, identity: Identity) -> Iterator[Session]:
        """Open a session as ``identity``.

        Raises:
            WeaviateConnectionError: the service is unreachable
            AuthenticationError: the credential was rejected
        """
        client = self._open_client(identity)
        try:
            meta = client.get_meta()
            logger.info(
                f"Connected to {self.config.base_url} as {identity.name} "
                f"(server version {meta.get(VERSION_FIELD, 'unknown')})"
            )
            yield Session(identity=identity, client=client, meta=meta)
        finally:
            client.close()

    def _outcome(
        self,
        operation: Operation,
        identity: Identity,
        attempt: Attempt,
        records: list[dict[str, Any]] | None = None,
    ) -> VerificationOutcome:
        outcome = VerificationOutcome(
            operation=operation,
            identity=identity.name,
            role=identity.role,
            expected=expected_outcome(operation, identity.role),
            observed=attempt.observed,
            detail=attempt.detail,
            records=records or [],
        )
        if attempt.observed is Observation.AMBIGUOUS:
            logger.warning(
                f"{operation.value} as {identity.name} was ambiguous: {attempt.detail}"
            )
        return outcome

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def probe_liveness(self, identity: Identity) -> VerificationOutcome:
        """GET /v1/meta on a fresh connection as ``identity``."""
        with self._open_client(identity) as client:
            attempt = _attempt(
                client.get_meta,
                denial_errors=(AuthenticationError, PermissionDeniedError),
            )
        return self._outcome(Operation.LIVENESS_PROBE, identity, _check_version(attempt))

    def liveness_outcome(self, session: Session) -> VerificationOutcome:
        """Outcome for the probe that opened ``session``."""
        attempt = _check_version(Attempt(Observation.ALLOWED, value=session.meta))
        return self._outcome(Operation.LIVENESS_PROBE, session.identity, attempt)

    def attempt_schema_create(self, session: Session, name: str) -> VerificationOutcome:
        """Create ``name``, deleting a pre-existing collection first.

        The detail of a failed attempt names the step that failed, since a
        leftover collection means the delete is refused before any create
        is sent.
        """
        client = session.client
        step = "lookup"

        def create() -> str:
            nonlocal step
            if client.collection_exists(name):
                step = "delete"
                client.delete_collection(name)
            step = "create"
            client.create_collection(name, self.properties)
            return name

        attempt = _attempt(create)
        if attempt.observed is Observation.ALLOWED:
            attempt.detail = f"created {name}"
        else:
            attempt.detail = f"{step} of {name} failed: {attempt.detail}"
        return self._outcome(Operation.SCHEMA_CREATE, session.identity, attempt)

    def attempt_write(
        self,
        session: Session,
        collection: str,
        record: dict[str, Any],
    ) -> VerificationOutcome:
        attempt = _attempt(lambda: session.client.insert_object(collection, record))
        if attempt.observed is Observation.ALLOWED:
            attempt.detail = f"inserted {attempt.value.get('id', '?')}"
        return self._outcome(Operation.RECORD_WRITE, session.identity, attempt)

    def attempt_read(self, session: Session, collection: str) -> VerificationOutcome:
        attempt = _attempt(
            lambda: session.client.fetch_objects(collection, limit=self.config.read_limit)
        )
        records: list[dict[str, Any]] = []
        if attempt.observed is Observation.ALLOWED:
            records = list(attempt.value)
            attempt.detail = f"{len(records)} record(s)"
        return self._outcome(Operation.RECORD_READ, session.identity, attempt, records)

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def _record_rejected(
        self,
        report: VerificationReport,
        identity: Identity,
        operations: list[Operation],
        error: WeaviateError,
    ) -> None:
        """Record every planned check of an identity that could not connect."""
        logger.error(f"Could not open a session as {identity.name}: {error}")
        attempt = Attempt(
            Observation.AMBIGUOUS,
            detail=f"session not established: {type(error).__name__}: {error}",
        )
        for operation in operations:
            report.add(self._outcome(operation, identity, attempt))

    def _run_elevated(self, report: VerificationReport) -> None:
        admin = self.config.admin
        collection = self.config.collection
        planned = [Operation.LIVENESS_PROBE, Operation.SCHEMA_CREATE]
        if self.config.verify_idempotence:
            planned.append(Operation.SCHEMA_CREATE)
        planned += [Operation.RECORD_WRITE, Operation.RECORD_READ]

        try:
            with self.connect(admin) as session:
                report.add(self.liveness_outcome(session))
                report.add(self.attempt_schema_create(session, collection))
                if self.config.verify_idempotence:
                    report.add(self.attempt_schema_create(session, collection))
                report.add(self.attempt_write(session, collection, ELEVATED_RECORD))
                report.add(self.attempt_read(session, collection))
        except WeaviateConnectionError:
            raise
        except WeaviateError as e:
            self._record_rejected(report, admin, planned, e)

    def _run_restricted(self, report: VerificationReport) -> None:
        viewer = self.config.viewer
        collection = self.config.collection
        planned = [
            Operation.LIVENESS_PROBE,
            Operation.RECORD_READ,
            Operation.RECORD_WRITE,
            Operation.SCHEMA_CREATE,
        ]

        try:
            with self.connect(viewer) as session:
                report.add(self.liveness_outcome(session))
                report.add(self.attempt_read(session, collection))
                report.add(self.attempt_write(session, collection, RESTRICTED_RECORD))
                report.add(self.attempt_schema_create(session, self.probe_collection))
        except WeaviateConnectionError:
            raise
        except WeaviateError as e:
            self._record_rejected(report, viewer, planned, e)

    def _cleanup_probe_collection(self) -> None:
        """Drop the probe collection if a restricted create leaked through."""
        try:
            with self.connect(self.config.admin) as session:
                if session.client.collection_exists(self.probe_collection):
                    logger.warning(f"Removing leaked collection {self.probe_collection}")
                    session.client.delete_collection(self.probe_collection)
        except WeaviateError as e:
            logger.warning(f"Cleanup of {self.probe_collection} failed: {e}")

    def run(self) -> VerificationReport:
        """Execute the full check sequence and return the report."""
        report = VerificationReport(
            base_url=self.config.base_url,
            collection=self.config.collection,
        )
        self._report = report

        try:
            report.add(self.probe_liveness(Identity.anonymous()))
            self._run_elevated(report)
            self._run_restricted(report)
        except WeaviateConnectionError as e:
            logger.error(f"Verification aborted: {e}")
            report.abort(str(e))
            return report

        self._cleanup_probe_collection()
        return report

    def report(self) -> VerificationReport:
        """Report of the most recent run."""
        if self._report is None:
            raise RuntimeError("No verification run has been executed")
        return self._report


def _check_version(attempt: Attempt) -> Attempt:
    """An allowed liveness probe must carry a version field."""
    if attempt.observed is not Observation.ALLOWED:
        return attempt
    meta = attempt.value if isinstance(attempt.value, dict) else {}
    version = meta.get(VERSION_FIELD)
    if not version:
        return Attempt(Observation.AMBIGUOUS, value=meta, detail="response has no version field")
    return Attempt(Observation.ALLOWED, value=meta, detail=f"version {version}")
