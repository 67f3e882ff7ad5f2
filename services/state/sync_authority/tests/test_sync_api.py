"""HTTP route tests for Sync Authority push/pull adapters."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest
from fastapi import APIRouter, Request
from fastapi.testclient import TestClient

from packages.petcare_shared.http import create_app
from services.state.sync_authority.api import register_routes
from services.state.sync_authority.config import SyncAuthoritySettings
from services.state.sync_authority.data.repository import PostgresSyncRepository
from services.state.sync_authority.implementation import DefaultSyncAuthorityService
from services.state.sync_authority.registry import default_registry

OWNER_HEADERS = {"X-Owner-Id": "owner-1"}
FIDO = "7f1c2b1e-4d7a-4c1e-9a57-3c2f0b5a9e01"
DOC = "c4a1d7e2-5b3f-4a8e-9c6d-7e8f9a0b1c2d"


def _client(repository: Any, **route_kwargs: Any) -> TestClient:
    service = DefaultSyncAuthorityService(
        settings=SyncAuthoritySettings(),
        repository=repository,
        registry=default_registry(),
    )
    app = create_app(title="sync-test")
    router = APIRouter()
    register_routes(router=router, service=service, **route_kwargs)
    app.include_router(router)
    return TestClient(app)


@pytest.fixture
def client(repository: PostgresSyncRepository) -> TestClient:
    return _client(repository)


def _op(**overrides: Any) -> dict[str, Any]:
    op: dict[str, Any] = {
        "op_id": str(uuid4()),
        "entity_type": "pet",
        "entity_id": FIDO,
        "change_type": "upsert",
        "record": {"name": "Fido"},
    }
    op.update(overrides)
    return op


def test_push_then_pull_roundtrip(client: TestClient) -> None:
    """Pushed ops should be pulled back in the documented wire shape."""
    op = _op()
    pushed = client.post(
        "/api/sync/push",
        headers=OWNER_HEADERS,
        json={"device_id": "phone", "ops": [op]},
    )

    assert pushed.status_code == 200
    assert pushed.json() == {"accepted": [op["op_id"]], "rejected": []}

    pulled = client.get("/api/sync/pull", headers=OWNER_HEADERS, params={"since": 0})
    assert pulled.status_code == 200
    assert pulled.json() == {
        "next_cursor": 1,
        "has_more": False,
        "changes": [
            {
                "change_id": 1,
                "entity_type": "pet",
                "entity_id": FIDO,
                "change_type": "upsert",
                "record": {"name": "Fido"},
                "version": 1,
            }
        ],
    }


def test_push_renders_rejections(client: TestClient) -> None:
    """Conflicts carry the current version; other rejections do not."""
    client.post("/api/sync/push", headers=OWNER_HEADERS, json={"ops": [_op()]})
    client.post(
        "/api/sync/push",
        headers=OWNER_HEADERS,
        json={"ops": [_op(record={"name": "Fido Jr."}, base_version=1)]},
    )
    stale = _op(base_version=1)

    response = client.post(
        "/api/sync/push",
        headers=OWNER_HEADERS,
        json={"device_id": "phone", "ops": [stale, {"entity_type": "pet"}]},
    )

    assert response.status_code == 200
    assert response.json() == {
        "accepted": [],
        "rejected": [
            {"op_id": stale["op_id"], "reason": "conflict", "current_version": 2},
            {"op_id": None, "reason": "invalid_op"},
        ],
    }


def test_push_without_op_list_accepts_nothing(client: TestClient) -> None:
    """A body without an ops array should be treated as an empty batch."""
    response = client.post(
        "/api/sync/push", headers=OWNER_HEADERS, json={"ops": "nope"}
    )

    assert response.status_code == 200
    assert response.json() == {"accepted": [], "rejected": []}


def test_push_requires_owner_header(client: TestClient) -> None:
    """Requests without an authenticated owner should be refused."""
    response = client.post("/api/sync/push", json={"ops": []})

    assert response.status_code == 401
    assert response.json()["errors"][0]["code"] == "UNAUTHENTICATED"


def test_push_rejects_malformed_bodies(client: TestClient) -> None:
    """Non-JSON and non-object bodies should fail with 400."""
    invalid_json = client.post(
        "/api/sync/push",
        headers={**OWNER_HEADERS, "Content-Type": "application/json"},
        content=b"{not-json",
    )
    not_object = client.post("/api/sync/push", headers=OWNER_HEADERS, json=[1, 2])

    assert invalid_json.status_code == 400
    assert not_object.status_code == 400


@pytest.mark.parametrize(
    "params",
    [{"since": "-1"}, {"since": "abc"}, {"since": "1.5"}, {"limit": "ten"}],
)
def test_pull_rejects_bad_query_params(client: TestClient, params: dict[str, str]) -> None:
    """Malformed cursors and page sizes should fail with 400."""
    response = client.get("/api/sync/pull", headers=OWNER_HEADERS, params=params)

    assert response.status_code == 400
    assert response.json()["errors"][0]["category"] == "validation"


def test_pull_filters_entity_types_and_pages(client: TestClient) -> None:
    """Query filters and limits should apply to the ledger read."""
    client.post(
        "/api/sync/push",
        headers=OWNER_HEADERS,
        json={
            "ops": [
                _op(),
                _op(entity_type="document", entity_id=DOC, record={"title": "x"}),
                _op(record={"name": "Fido Jr."}),
            ]
        },
    )

    documents = client.get(
        "/api/sync/pull", headers=OWNER_HEADERS, params={"entity_types": "document"}
    ).json()
    first_page = client.get(
        "/api/sync/pull", headers=OWNER_HEADERS, params={"limit": 2}
    ).json()

    assert [change["entity_id"] for change in documents["changes"]] == [DOC]
    assert first_page["has_more"] is True
    assert first_page["next_cursor"] == 2


def test_custom_owner_resolver_is_used(repository: PostgresSyncRepository) -> None:
    """An injected owner resolver should replace the header lookup."""

    def _resolver(request: Request) -> str:
        return request.headers.get("X-Tenant", "tenant-x")

    client = _client(repository, owner_resolver=_resolver)
    client.post("/api/sync/push", json={"ops": [_op()]})

    assert len(client.get("/api/sync/pull").json()["changes"]) == 1
    assert client.get("/api/sync/pull", headers={"X-Tenant": "other"}).json()[
        "changes"
    ] == []


def test_pet_push_prechecks_use_pet_reasons(client: TestClient) -> None:
    """Pet routes should keep their own validation order and vocabulary."""
    valid_id = str(uuid4())
    response = client.post(
        "/api/sync/pets/push",
        headers=OWNER_HEADERS,
        json={
            "device_id": "phone",
            "ops": [
                {"op_id": valid_id, "type": "pet.upsert", "pet_id": FIDO, "patch": {"name": "Fido"}},
                {"op_id": "o1", "type": "pet.upsert"},
                {"op_id": "o2", "type": "pet.upsert", "pet_id": "p1"},
                {"op_id": "o3", "type": "pet.upsert", "pet_id": FIDO},
                {"op_id": str(uuid4()), "type": "pet.archive", "pet_id": FIDO},
                None,
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["accepted"] == [valid_id]
    assert [(item["op_id"], item["reason"]) for item in body["rejected"]] == [
        ("o1", "invalid_op"),
        ("o2", "invalid_pet_id"),
        ("o3", "invalid_op_id"),
        (body["rejected"][3]["op_id"], "unsupported_type"),
        (None, "invalid_op"),
    ]


def test_pet_push_conflicts_and_defaults_missing_patch(client: TestClient) -> None:
    """Pet upserts run through the shared engine, including conflict checks."""
    first = client.post(
        "/api/sync/pets/push",
        headers=OWNER_HEADERS,
        json={"ops": [{"op_id": str(uuid4()), "type": "pet.upsert", "pet_id": FIDO}]},
    ).json()
    assert len(first["accepted"]) == 1

    client.post(
        "/api/sync/pets/push",
        headers=OWNER_HEADERS,
        json={
            "ops": [
                {
                    "op_id": str(uuid4()),
                    "type": "pet.upsert",
                    "pet_id": FIDO,
                    "patch": {"name": "Fido"},
                    "base_version": 1,
                }
            ]
        },
    )
    stale_id = str(uuid4())
    stale = client.post(
        "/api/sync/pets/push",
        headers=OWNER_HEADERS,
        json={
            "ops": [
                {
                    "op_id": stale_id,
                    "type": "pet.upsert",
                    "pet_id": FIDO,
                    "patch": {"name": "Rex"},
                    "base_version": 1,
                }
            ]
        },
    ).json()

    assert stale["rejected"] == [
        {"op_id": stale_id, "reason": "conflict", "current_version": 2}
    ]


def test_pet_pull_renders_pet_changes_only(client: TestClient) -> None:
    """Pet pulls should echo the device and use the pet change shape."""
    client.post(
        "/api/sync/push",
        headers=OWNER_HEADERS,
        json={
            "ops": [
                _op(),
                _op(entity_type="document", entity_id=DOC, record={"title": "x"}),
                _op(change_type="delete", record=None),
            ]
        },
    )

    response = client.get(
        "/api/sync/pets/pull",
        headers=OWNER_HEADERS,
        params={"since": 0, "device_id": "tablet"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "next_cursor": 3,
        "has_more": False,
        "device_id": "tablet",
        "changes": [
            {
                "change_id": 1,
                "type": "pet.upsert",
                "pet_id": FIDO,
                "record": {"name": "Fido"},
                "version": 1,
            },
            {"change_id": 3, "type": "pet.delete", "pet_id": FIDO},
        ],
    }


def test_pet_pull_defaults_device_id(client: TestClient) -> None:
    """A missing device id should be echoed as unknown."""
    response = client.get("/api/sync/pets/pull", headers=OWNER_HEADERS)

    assert response.json() == {
        "next_cursor": 0,
        "has_more": False,
        "device_id": "unknown",
        "changes": [],
    }


def test_health_route(client: TestClient) -> None:
    """Health should report readiness from the repository probe."""
    response = client.get("/api/sync/health")

    assert response.status_code == 200
    assert response.json()["service_ready"] is True


class _UnavailableRepository:
    def list_changes(self, **kwargs: Any) -> Any:
        del kwargs
        raise RuntimeError("connection refused")

    def probe(self) -> None:
        raise RuntimeError("connection refused")


def test_storage_outage_maps_to_service_unavailable() -> None:
    """Dependency failures should surface as HTTP 503."""
    client = _client(_UnavailableRepository())

    pulled = client.get("/api/sync/pull", headers=OWNER_HEADERS)
    health = client.get("/api/sync/health")

    assert pulled.status_code == 503
    assert health.status_code == 503
    assert pulled.json()["errors"][0]["category"] == "dependency"
