"""Pytest configuration and fixtures for the RBAC toolkit."""

from __future__ import annotations

import json
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
import respx

from src.rbac_verification.config import VerifierConfig

# Constants per CODING_PATTERNS_ANALYSIS.md (S1192 - avoid duplicated literals)
TEST_HOST = "weaviate.test"
TEST_PORT = 8080
BASE_URL = f"http://{TEST_HOST}:{TEST_PORT}"
ADMIN_KEY = "admin-test-key"
VIEWER_KEY = "viewer-test-key"
SERVER_VERSION = "1.27.3"


# ============================================================================
# Fake Weaviate
# ============================================================================


class FakeWeaviate:
    """In-memory Weaviate answering the /v1 endpoints through respx routes.

    Admin key: full access. Viewer key: reads only (403 on mutations).
    No key or an unknown key: 401 everywhere.
    ``raw_bodies`` maps (method, path) to a body served as a plain 200 once
    the request is authorized.
    """

    def __init__(self, admin_key: str = ADMIN_KEY, viewer_key: str = VIEWER_KEY):
        self.tokens = {admin_key: "admin", viewer_key: "viewer"}
        self.classes: dict[str, dict[str, Any]] = {}
        self.objects: dict[str, list[dict[str, Any]]] = {}
        self.meta_body: dict[str, Any] = {
            "hostname": "http://[::]:8080",
            "version": SERVER_VERSION,
            "modules": {},
        }
        self.viewer_can_write = False
        self.viewer_write_error: type[httpx.TransportError] | None = None
        self.backup_statuses: list[str] = ["STARTED", "TRANSFERRING", "SUCCESS"]
        self.raw_bodies: dict[tuple[str, str], str] = {}
        self.requests: list[tuple[str, str, str | None]] = []

    # -- auth ---------------------------------------------------------

    def _role(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])

    def _guard(self, request: httpx.Request, write: bool) -> httpx.Response | None:
        role = self._role(request)
        self.requests.append((request.method, request.url.path, role))
        if role is None:
            return httpx.Response(401, json={"error": [{"message": "anonymous access not enabled"}]})
        if write and role == "viewer":
            if self.viewer_write_error is not None:
                raise self.viewer_write_error("Connection reset by peer", request=request)
            if not self.viewer_can_write:
                return httpx.Response(403, json={"error": [{"message": "forbidden: viewer-user"}]})
        raw = self.raw_bodies.get((request.method, request.url.path))
        if raw is not None:
            return httpx.Response(200, text=raw)
        return None

    # -- handlers -----------------------------------------------------

    def meta(self, request: httpx.Request) -> httpx.Response:
        denied = self._guard(request, write=False)
        if denied is not None:
            return denied
        return httpx.Response(200, json=self.meta_body)

    def get_class(self, request: httpx.Request, name: str) -> httpx.Response:
        denied = self._guard(request, write=False)
        if denied is not None:
            return denied
        if name not in self.classes:
            return httpx.Response(404)
        return httpx.Response(200, json=self.classes[name])

    def create_class(self, request: httpx.Request) -> httpx.Response:
        denied = self._guard(request, write=True)
        if denied is not None:
            return denied
        body = json.loads(request.content)
        name = body["class"]
        if name in self.classes:
            return httpx.Response(422, json={"error": [{"message": f"class {name} already exists"}]})
        self.classes[name] = body
        self.objects[name] = []
        return httpx.Response(200, json=body)

    def delete_class(self, request: httpx.Request, name: str) -> httpx.Response:
        denied = self._guard(request, write=True)
        if denied is not None:
            return denied
        self.classes.pop(name, None)
        self.objects.pop(name, None)
        return httpx.Response(200)

    def _store(self, body: dict[str, Any]) -> dict[str, Any]:
        stored = {
            "class": body["class"],
            "id": body.get("id") or str(uuid.uuid4()),
            "properties": body.get("properties") or {},
        }
        self.objects[body["class"]].append(stored)
        return stored

    def create_object(self, request: httpx.Request) -> httpx.Response:
        denied = self._guard(request, write=True)
        if denied is not None:
            return denied
        body = json.loads(request.content)
        if body.get("class") not in self.classes:
            return httpx.Response(422, json={"error": [{"message": "class not found"}]})
        return httpx.Response(200, json=self._store(body))

    def list_objects(self, request: httpx.Request) -> httpx.Response:
        denied = self._guard(request, write=False)
        if denied is not None:
            return denied
        params = request.url.params
        objects = self.objects.get(params.get("class", ""), [])
        after = params.get("after")
        if after:
            ids = [o["id"] for o in objects]
            objects = objects[ids.index(after) + 1:]
        limit = int(params.get("limit", "25"))
        return httpx.Response(200, json={"objects": objects[:limit], "totalResults": len(objects)})

    def batch_objects(self, request: httpx.Request) -> httpx.Response:
        denied = self._guard(request, write=True)
        if denied is not None:
            return denied
        results = []
        for body in json.loads(request.content)["objects"]:
            if body.get("class") not in self.classes:
                results.append({
                    "id": body.get("id"),
                    "result": {"errors": {"error": [{"message": "class not found"}]}},
                })
                continue
            stored = self._store(body)
            results.append({"id": stored["id"], "result": {}})
        return httpx.Response(200, json=results)

    def create_backup(self, request: httpx.Request, backend: str) -> httpx.Response:
        denied = self._guard(request, write=True)
        if denied is not None:
            return denied
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={"id": body["id"], "backend": backend, "status": "STARTED"},
        )

    def backup_status(self, request: httpx.Request, backend: str, backup_id: str) -> httpx.Response:
        denied = self._guard(request, write=False)
        if denied is not None:
            return denied
        status = self.backup_statuses.pop(0) if len(self.backup_statuses) > 1 else self.backup_statuses[0]
        return httpx.Response(
            200,
            json={"id": backup_id, "backend": backend, "status": status, "path": f"/backups/{backup_id}"},
        )

    # -- wiring -------------------------------------------------------

    def install(self, router: respx.MockRouter) -> None:
        router.get(host=TEST_HOST, path="/v1/meta").mock(side_effect=self.meta)
        router.post(host=TEST_HOST, path="/v1/schema").mock(side_effect=self.create_class)
        router.get(host=TEST_HOST, path__regex=r"^/v1/schema/(?P<name>[^/]+)$").mock(
            side_effect=self.get_class
        )
        router.delete(host=TEST_HOST, path__regex=r"^/v1/schema/(?P<name>[^/]+)$").mock(
            side_effect=self.delete_class
        )
        router.post(host=TEST_HOST, path="/v1/objects").mock(side_effect=self.create_object)
        router.get(host=TEST_HOST, path="/v1/objects").mock(side_effect=self.list_objects)
        router.post(host=TEST_HOST, path="/v1/batch/objects").mock(side_effect=self.batch_objects)
        router.post(host=TEST_HOST, path__regex=r"^/v1/backups/(?P<backend>[^/]+)$").mock(
            side_effect=self.create_backup
        )
        router.get(
            host=TEST_HOST,
            path__regex=r"^/v1/backups/(?P<backend>[^/]+)/(?P<backup_id>[^/]+)$",
        ).mock(side_effect=self.backup_status)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fake_weaviate() -> Generator[FakeWeaviate, None, None]:
    """A FakeWeaviate with every /v1 route mocked."""
    fake = FakeWeaviate()
    with respx.mock(assert_all_called=False) as router:
        fake.install(router)
        yield fake


@pytest.fixture
def unreachable_weaviate() -> Generator[respx.MockRouter, None, None]:
    """Every request fails to connect."""

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    with respx.mock(assert_all_called=False) as router:
        router.route().mock(side_effect=refuse)
        yield router


@pytest.fixture
def verifier_config() -> VerifierConfig:
    """Config pointing at the fake server."""
    return VerifierConfig(
        admin_key=ADMIN_KEY,
        viewer_key=VIEWER_KEY,
        host=TEST_HOST,
        port=TEST_PORT,
    )


@pytest.fixture
def weaviate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment equivalent of ``verifier_config``."""
    monkeypatch.setenv("WEAVIATE_HOST", TEST_HOST)
    monkeypatch.setenv("WEAVIATE_PORT", str(TEST_PORT))
    monkeypatch.setenv("WEAVIATE_ADMIN_KEY", ADMIN_KEY)
    monkeypatch.setenv("WEAVIATE_VIEWER_KEY", VIEWER_KEY)
    for name in ("WEAVIATE_SCHEME", "WEAVIATE_TIMEOUT", "RBAC_COLLECTION", "RBAC_READ_LIMIT"):
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Markers
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (deselect with '-m \"not integration\"')",
    )
    config.addinivalue_line(
        "markers",
        "requires_weaviate: marks tests requiring a running Weaviate instance",
    )
