"""HTTP surface, end to end through FastAPI's TestClient."""
import pytest


@pytest.fixture
def room_id(client):
    resp = client.post("/api/rooms", json={"ttl": 3600})
    assert resp.status_code == 201
    return resp.json()["roomId"]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "redis": True}
    assert resp.headers["cache-control"] == "no-store"
    assert resp.headers["x-content-type-options"] == "nosniff"


def test_create_and_get_room(client):
    resp = client.post("/api/rooms", json={"ttl": 600, "pin": "1234", "maxMembers": 3})
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["ttl"] == 600
    assert body["hasPin"] is True
    assert body["maxMembers"] == 3

    resp = client.get(f"/api/rooms/{body['roomId']}")
    assert resp.status_code == 200
    room = resp.json()["room"]
    assert room["id"] == body["roomId"]
    assert room["hasPin"] is True
    assert "pinHash" not in room


def test_create_room_without_body_uses_defaults(client):
    resp = client.post("/api/rooms")
    assert resp.status_code == 201
    assert resp.json()["ttl"] == 3600
    assert resp.json()["hasPin"] is False


def test_create_room_validation(client):
    resp = client.post("/api/rooms", json={"ttl": 5})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"

    resp = client.post("/api/rooms", json={"pin": "12"})
    assert resp.status_code == 400


def test_unknown_room_is_404(client):
    resp = client.get("/api/rooms/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Room not found"}


def test_join_with_pin_and_cap(client):
    room_id = client.post("/api/rooms", json={"pin": "9876", "maxMembers": 2}).json()["roomId"]

    assert client.post(f"/api/rooms/{room_id}/join", json={"pin": "0000"}).status_code == 403
    resp = client.post(f"/api/rooms/{room_id}/join", json={"pin": "9876", "clientId": "alice"})
    assert resp.status_code == 200
    assert resp.json()["memberCount"] == 1
    assert client.post(f"/api/rooms/{room_id}/join",
                       json={"pin": "9876", "clientId": "bob"}).json()["memberCount"] == 2

    resp = client.post(f"/api/rooms/{room_id}/join", json={"pin": "9876", "clientId": "carol"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Room member limit reached"


def test_invite_flow(client, clock, room_id):
    resp = client.post(f"/api/rooms/{room_id}/invite", json={"ttlSeconds": 60})
    assert resp.status_code == 200
    token = resp.json()["token"]
    assert token.count(".") == 2

    assert client.post(f"/api/rooms/{room_id}/join", json={"invite": token}).status_code == 200

    clock.advance(61)
    resp = client.post(f"/api/rooms/{room_id}/join", json={"invite": token})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Invalid token"


def test_delete_room(client, room_id):
    resp = client.delete(f"/api/rooms/{room_id}")
    assert resp.status_code == 200
    assert client.get(f"/api/rooms/{room_id}").status_code == 404


def test_messages_flow(client, clock, room_id):
    for ttl in (30, 300, 300):
        resp = client.post(
            f"/api/rooms/{room_id}/messages",
            json={"ciphertext": f"ct-{ttl}", "iv": "nonce", "senderId": "alice", "ttl": ttl},
        )
        assert resp.status_code == 201
        meta = resp.json()["message"]
        assert "ciphertext" not in meta
        assert meta["ttl"] == ttl
        clock.advance(0.01)

    body = client.get(f"/api/rooms/{room_id}/messages").json()
    assert body["count"] == 3
    first = body["messages"][0]
    assert first["ciphertext"] == "ct-30"
    assert first["senderId"] == "alice"
    assert "salt" not in first

    clock.advance(31)
    body = client.get(f"/api/rooms/{room_id}/messages").json()
    assert body["count"] == 2

    message_id = body["messages"][0]["id"]
    resp = client.delete(f"/api/rooms/{room_id}/messages/{message_id}")
    assert resp.status_code == 200
    assert client.get(f"/api/rooms/{room_id}/messages").json()["count"] == 1


def test_message_validation(client, room_id):
    resp = client.post(f"/api/rooms/{room_id}/messages", json={"ciphertext": "c", "iv": "n", "ttl": 10})
    assert resp.status_code == 400
    resp = client.post(f"/api/rooms/{room_id}/messages", json={"iv": "n"})
    assert resp.status_code == 400
    resp = client.post("/api/rooms/missing/messages", json={"ciphertext": "c", "iv": "n"})
    assert resp.status_code == 404


def test_view_once_attachment_flow(client, room_id):
    resp = client.post(
        f"/api/rooms/{room_id}/attachments/init",
        json={"mimeType": "image/png", "ttlMs": 30000, "viewOnce": True},
    )
    assert resp.status_code == 201
    blob_id = resp.json()["id"]
    upload_token = resp.json()["uploadToken"]

    payload = bytes(range(256)) * 4
    resp = client.put(
        f"/api/rooms/{room_id}/attachments/{blob_id}",
        content=payload,
        headers={**_bearer(upload_token), "Content-Type": "application/octet-stream"},
    )
    assert resp.status_code == 200
    assert resp.json()["size"] == 1024

    resp = client.post(f"/api/rooms/{room_id}/attachments/token",
                       json={"id": blob_id, "ttlSeconds": 300})
    download_token = resp.json()["downloadToken"]

    resp = client.get(f"/api/rooms/{room_id}/attachments/{blob_id}", params={"token": download_token})
    assert resp.status_code == 200
    assert resp.content == payload
    assert resp.headers["content-type"] == "application/octet-stream"
    assert resp.headers["x-attachment-mime"] == "image/png"
    assert resp.headers["x-attachment-size"] == "1024"

    resp = client.get(f"/api/rooms/{room_id}/attachments/{blob_id}", headers=_bearer(download_token))
    assert resp.status_code == 404


def test_attachment_token_errors(client, room_id):
    init = client.post(f"/api/rooms/{room_id}/attachments/init", json={"mimeType": "text/plain"}).json()
    url = f"/api/rooms/{room_id}/attachments/{init['id']}"

    assert client.put(url, content=b"x").status_code == 401
    assert client.put(url, content=b"x", headers=_bearer("bad.token.here")).status_code == 403
    assert client.get(url).status_code == 401
    # not uploaded yet
    assert client.get(url, headers=_bearer(init["uploadToken"])).status_code == 404

    client.put(url, content=b"x", headers=_bearer(init["uploadToken"]))
    # upload token cannot download
    assert client.get(url, headers=_bearer(init["uploadToken"])).status_code == 403


def test_attachment_too_large(client, settings, room_id):
    init = client.post(f"/api/rooms/{room_id}/attachments/init", json={"mimeType": "text/plain"}).json()
    resp = client.put(
        f"/api/rooms/{room_id}/attachments/{init['id']}",
        content=b"x" * (settings.attachment_max_bytes + 1),
        headers=_bearer(init["uploadToken"]),
    )
    assert resp.status_code == 413


def test_oversized_upload_checks_blob_and_token_first(client, settings, room_id):
    init = client.post(f"/api/rooms/{room_id}/attachments/init", json={"mimeType": "text/plain"}).json()
    too_big = b"x" * (settings.attachment_max_bytes + 1)

    resp = client.put(f"/api/rooms/{room_id}/attachments/unknown-id",
                      content=too_big, headers=_bearer(init["uploadToken"]))
    assert resp.status_code == 404
    resp = client.put(f"/api/rooms/{room_id}/attachments/{init['id']}",
                      content=too_big, headers=_bearer("bad.token.here"))
    assert resp.status_code == 403


def test_attachment_init_validation(client, room_id):
    resp = client.post(f"/api/rooms/{room_id}/attachments/init", json={})
    assert resp.status_code == 400
    resp = client.post(f"/api/rooms/{room_id}/attachments/init", json={"mimeType": "not a mime"})
    assert resp.status_code == 400
    resp = client.post("/api/rooms/missing/attachments/init", json={"mimeType": "text/plain"})
    assert resp.status_code == 404


def test_attachment_delete(client, room_id):
    init = client.post(f"/api/rooms/{room_id}/attachments/init", json={"mimeType": "text/plain"}).json()
    resp = client.post(f"/api/rooms/{room_id}/attachments/{init['id']}/delete")
    assert resp.status_code == 200
    resp = client.post(f"/api/rooms/{room_id}/attachments/{init['id']}/delete")
    assert resp.status_code == 404


def test_vault_flow_is_isolated(client, room_id):
    init = client.post(f"/api/rooms/{room_id}/vault/init",
                       json={"mimeType": "application/pdf", "viewOnce": True}).json()
    vault_url = f"/api/rooms/{room_id}/vault/{init['id']}"
    assert client.put(vault_url, content=b"secret", headers=_bearer(init["uploadToken"])).status_code == 200

    # not reachable via the attachment routes
    resp = client.post(f"/api/rooms/{room_id}/attachments/token", json={"id": init["id"]})
    assert resp.status_code == 404

    token = client.post(f"/api/rooms/{room_id}/vault/token", json={"id": init["id"]}).json()["downloadToken"]
    assert client.get(f"/api/rooms/{room_id}/attachments/{init['id']}", headers=_bearer(token)).status_code == 404

    # vault items are never view-once
    for _ in range(2):
        resp = client.get(vault_url, headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.content == b"secret"

    assert client.post(f"{vault_url}/delete", headers=_bearer(token)).status_code == 200
    assert client.get(vault_url, headers=_bearer(token)).status_code == 404


def test_unavailable_cache_is_503(client, redis_server, room_id):
    redis_server.connected = False
    try:
        resp = client.get(f"/api/rooms/{room_id}")
        assert resp.status_code == 503
        assert resp.json()["success"] is False
        assert client.get("/health").json()["redis"] is False
    finally:
        redis_server.connected = True
