"""Note API tests."""

from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from app.models.note import Note
from app.utils.clock import utcnow

VALID_IV = "aaaaaaaaaaaaaaaa"


async def _create(client: AsyncClient, **overrides) -> dict:
    payload = {"message": "QQ==", "iv": VALID_IV, **overrides}
    resp = await client.post("/api/note", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _expire(session_factory, note_id: str) -> None:
    async with session_factory() as session:
        await session.execute(
            update(Note).where(Note.id == note_id).values(expires_at=utcnow() - timedelta(seconds=1))
        )
        await session.commit()


# ── End to end ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_then_retrieve(client: AsyncClient):
    created = await _create(client, expiry=60000)
    assert len(created["id"]) == 22
    assert created["url"] == f"/note/{created['id']}"
    assert len(created["deleteToken"]) == 32

    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code == 200
    assert resp.json() == {
        "id": created["id"],
        "message": "QQ==",
        "iv": VALID_IV,
        "salt": None,
        "deleteToken": created["deleteToken"],
    }


@pytest.mark.asyncio
async def test_round_trip_with_salt(client: AsyncClient):
    message = "U2FsdGVkX1+vupppZksvRf5pq5g5XjFRlipRkwB0K1Y=" * 10
    salt = "c2FsdHNhbHRzYWx0c2FsdA"
    created = await _create(client, message=message, salt=salt, iv="0123456789abcdef0123")

    data = (await client.get(f"/api/note/{created['id']}/data")).json()
    assert data["message"] == message
    assert data["salt"] == salt
    assert data["iv"] == "0123456789abcdef0123"


@pytest.mark.asyncio
async def test_default_expiry_is_one_day(client: AsyncClient, session_factory):
    before = utcnow()
    created = await _create(client)
    async with session_factory() as session:
        note = (await session.execute(select(Note).where(Note.id == created["id"]))).scalar_one()
    lifetime = note.expires_at - before
    assert timedelta(hours=23, minutes=59) < lifetime <= timedelta(hours=24, seconds=5)


@pytest.mark.asyncio
async def test_single_consumption(client: AsyncClient):
    created = await _create(client)
    data = (await client.get(f"/api/note/{created['id']}/data")).json()

    resp = await client.delete(
        f"/api/note/{created['id']}", headers={"x-delete-token": data["deleteToken"]}
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code in (404, 410)


@pytest.mark.asyncio
async def test_expired_note_returns_410_then_404(client: AsyncClient, session_factory):
    created = await _create(client, expiry=60000)
    await _expire(session_factory, created["id"])

    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code == 410
    assert resp.json() == {"error": "Note expired", "statusCode": 410}

    # Lazy expiry removed the row
    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_expired_note_gone_after_sweep(client: AsyncClient, session_factory):
    created = await _create(client, expiry=60000)
    await _expire(session_factory, created["id"])

    resp = await client.post("/api/cleanup")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "deletedCount": 1, "errors": [], "skipped": False}

    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code == 404


# ── Validation ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_message_length_boundary(client: AsyncClient):
    resp = await client.post("/api/note", json={"message": "A" * 140_000, "iv": VALID_IV})
    assert resp.status_code == 200

    resp = await client.post("/api/note", json={"message": "A" * 140_001, "iv": VALID_IV})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_iv_length_boundary(client: AsyncClient):
    resp = await client.post("/api/note", json={"message": "QQ==", "iv": "a" * 15})
    assert resp.status_code == 400
    resp = await client.post("/api/note", json={"message": "QQ==", "iv": "a" * 16})
    assert resp.status_code == 200
    resp = await client.post("/api/note", json={"message": "QQ==", "iv": "a" * 24})
    assert resp.status_code == 200
    resp = await client.post("/api/note", json={"message": "QQ==", "iv": "a" * 25})
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("length, status", [(15, 400), (16, 200), (64, 200), (65, 400)])
async def test_salt_length_boundary(client: AsyncClient, length, status):
    resp = await client.post("/api/note", json={"message": "QQ==", "iv": VALID_IV, "salt": "s" * length})
    assert resp.status_code == status


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"iv": VALID_IV},
        {"message": "", "iv": VALID_IV},
        {"message": "not base64!", "iv": VALID_IV},
        {"message": "QQ==", "iv": "a" * 15 + "+"},
        {"message": "QQ==", "iv": VALID_IV, "salt": "short"},
        {"message": "QQ==", "iv": VALID_IV, "salt": "s" * 65},
        {"message": "QQ==", "iv": VALID_IV, "expiry": 120000},
        {"message": "QQ==", "iv": VALID_IV, "expiry": "60000"},
        {"message": "QQ==", "iv": VALID_IV, "expiry": None},
        {"message": "QQ==", "iv": VALID_IV, "extra": "field"},
        {"message": 12345, "iv": VALID_IV},
    ],
)
async def test_create_rejects_invalid_input(client: AsyncClient, payload):
    resp = await client.post("/api/note", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["statusCode"] == 400
    assert body["error"] == "Invalid request"
    assert body["details"]


@pytest.mark.asyncio
@pytest.mark.parametrize("expiry", [60000, 180000, 300000, 600000, 3600000, 86400000, 604800000])
async def test_create_accepts_every_allowed_expiry(client: AsyncClient, expiry):
    resp = await client.post("/api/note", json={"message": "QQ==", "iv": VALID_IV, "expiry": expiry})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_validation_details_do_not_echo_input(client: AsyncClient):
    resp = await client.post("/api/note", json={"message": "secret!!", "iv": VALID_IV})
    assert resp.status_code == 400
    assert "secret!!" not in resp.text


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["short", "a" * 23, "a" * 21 + "!"])
async def test_retrieve_rejects_malformed_id(client: AsyncClient, bad_id):
    resp = await client.get(f"/api/note/{bad_id}/data")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid note ID format", "statusCode": 400}


@pytest.mark.asyncio
async def test_retrieve_unknown_id(client: AsyncClient):
    resp = await client.get(f"/api/note/{'a' * 22}/data")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Note not found", "statusCode": 404}


# ── Delete ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_with_wrong_token_keeps_note(client: AsyncClient):
    created = await _create(client)
    wrong = "x" * 32
    assert wrong != created["deleteToken"]

    resp = await client.delete(f"/api/note/{created['id']}", headers={"x-delete-token": wrong})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Note not found or invalid delete token"

    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_delete_unknown_id_matches_wrong_token_response(client: AsyncClient):
    created = await _create(client)
    wrong_token = await client.delete(
        f"/api/note/{created['id']}", headers={"x-delete-token": "y" * 32}
    )
    missing = await client.delete(f"/api/note/{'b' * 22}", headers={"x-delete-token": "y" * 32})
    assert wrong_token.status_code == missing.status_code == 404
    assert wrong_token.json() == missing.json()


@pytest.mark.asyncio
async def test_delete_requires_token(client: AsyncClient):
    created = await _create(client)
    resp = await client.delete(f"/api/note/{created['id']}")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Delete token is required"


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["x" * 31, "x" * 33])
async def test_delete_rejects_wrong_token_length(client: AsyncClient, token):
    created = await _create(client)
    resp = await client.delete(f"/api/note/{created['id']}", headers={"x-delete-token": token})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_creator_can_delete_without_reading(client: AsyncClient):
    created = await _create(client)
    resp = await client.delete(
        f"/api/note/{created['id']}", headers={"x-delete-token": created["deleteToken"]}
    )
    assert resp.status_code == 200
    resp = await client.get(f"/api/note/{created['id']}/data")
    assert resp.status_code == 404


# ── Pages, health, cleanup ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_view_page(client: AsyncClient):
    note_id = "A" * 22
    resp = await client.get(f"/note/{note_id}")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert f'data-note-id="{note_id}"' in resp.text


@pytest.mark.asyncio
async def test_view_page_bad_id(client: AsyncClient):
    resp = await client.get("/note/not-an-id")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Note not found", "statusCode": 404}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_cleanup_endpoint_disabled(client: AsyncClient, monkeypatch):
    from app.config import settings

    monkeypatch.setattr(settings, "cleanup_endpoint_enabled", False)
    resp = await client.post("/api/cleanup")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cleanup_hides_storage_error_detail(client: AsyncClient, monkeypatch):
    @asynccontextmanager
    async def unreachable():
        raise OperationalError(
            "connect", {}, Exception("could not connect to server at 10.0.0.5:5432 password=hunter2")
        )
        yield  # pragma: no cover

    monkeypatch.setattr("app.services.sweep_service.open_sweep_storage", unreachable)
    resp = await client.post("/api/cleanup")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["errors"] == ["Storage session error: OperationalError"]
    assert "10.0.0.5" not in resp.text
    assert "hunter2" not in resp.text
