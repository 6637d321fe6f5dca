"""End-to-end API flows through the FastAPI app."""

from urllib.parse import urlsplit

API = "/api/v1"
UUID_A = "uuid-device-a-0001"
UUID_B = "uuid-device-b-0002"


def _register(client, device_uuid=UUID_A, **extra):
    r = client.post(f"{API}/device/register", json={"device_uuid": device_uuid, **extra})
    assert r.status_code == 200, r.text
    return r.json()


def _activate(client, admin_headers, code, **body):
    r = client.post(f"{API}/admin/devices/{code}/activate", json=body, headers=admin_headers)
    assert r.status_code == 200, r.text
    return r.json()


def _login(client, device_uuid, code):
    r = client.post(f"{API}/device/auth", json={"device_uuid": device_uuid, "device_code": code})
    assert r.status_code == 200, r.text
    return r.json()


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _active_device(client, admin_headers, device_uuid=UUID_A):
    code = _register(client, device_uuid)["device_code"]
    _activate(client, admin_headers, code, max_streams=2)
    return code, _login(client, device_uuid, code)["access_token"]


# --- Service ---

def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get(f"{API}/health").json() == {"status": "ok"}


# --- Registration & auth ---

def test_register_is_idempotent(client):
    first = _register(client, platform="android")
    second = _register(client, model="Shield TV")
    assert first == second
    assert first["status"] == "pending"


def test_register_accepts_legacy_device_id(client):
    r = client.post(f"{API}/device/register", json={"device_id": UUID_A})
    assert r.status_code == 200
    assert r.json() == _register(client)


def test_register_rejects_bad_uuid(client):
    r = client.post(f"{API}/device/register", json={"device_uuid": "short"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_request"


def test_auth_failures_look_identical(client, admin_headers):
    pending_code = _register(client)["device_code"]

    unknown = client.post(f"{API}/device/auth", json={"device_uuid": UUID_A, "device_code": "NOPE99"})
    pending = client.post(f"{API}/device/auth", json={"device_uuid": UUID_A, "device_code": pending_code})

    assert unknown.status_code == pending.status_code == 401
    assert unknown.json() == pending.json() == {"error": "unauthorized", "detail": "unauthorized"}


def test_auth_flow_and_profile(client, admin_headers):
    code, token = _active_device(client, admin_headers)

    r = client.get(f"{API}/device/profile", headers=_bearer(token))
    assert r.status_code == 200
    profile = r.json()
    assert profile["device_code"] == code
    assert profile["status"] == "active"
    assert profile["max_streams"] == 2


def test_profile_requires_token(client):
    assert client.get(f"{API}/device/profile").status_code == 401
    assert client.get(f"{API}/device/profile", headers=_bearer("garbage")).status_code == 401


def test_suspension_revokes_existing_session(client, admin_headers):
    code, token = _active_device(client, admin_headers)

    r = client.post(f"{API}/admin/devices/{code}/suspend", headers=admin_headers)
    assert r.json() == {"device_code": code, "status": "suspended"}
    assert client.get(f"{API}/device/profile", headers=_bearer(token)).status_code == 401


def test_rebind_conflict(client, admin_headers):
    code_a, _ = _active_device(client, admin_headers, UUID_A)
    _active_device(client, admin_headers, UUID_B)

    r = client.post(f"{API}/device/auth", json={"device_uuid": UUID_B, "device_code": code_a})
    assert r.status_code == 409
    assert r.json()["error"] == "uuid_in_use"


# --- Operator ---

def test_admin_requires_key(client):
    code = _register(client)["device_code"]
    assert client.post(f"{API}/admin/devices/{code}/activate", json={}).status_code == 401
    r = client.post(
        f"{API}/admin/devices/{code}/activate", json={}, headers={"X-Admin-Key": "wrong"}
    )
    assert r.status_code == 401
    assert r.json() == {"error": "unauthorized", "detail": "unauthorized"}


def test_admin_unknown_device(client, admin_headers):
    r = client.post(f"{API}/admin/devices/NOPE99/suspend", headers=admin_headers)
    assert r.status_code == 404


def test_admin_patch_device(client, admin_headers):
    code, _ = _active_device(client, admin_headers)

    r = client.patch(
        f"{API}/admin/devices/{code}",
        json={"max_streams": 4, "expires_at": "2099-01-01T00:00:00Z"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["max_streams"] == 4
    assert r.json()["expires_at"].startswith("2099-01-01")

    r = client.patch(f"{API}/admin/devices/{code}", json={"status": "pending"}, headers=admin_headers)
    assert r.status_code == 409

    r = client.patch(f"{API}/admin/devices/{code}", json={}, headers=admin_headers)
    assert r.status_code == 400


def test_expired_device_cannot_authenticate(client, admin_headers):
    code = _register(client)["device_code"]
    _activate(client, admin_headers, code, expires_at="2000-01-01T00:00:00Z")
    r = client.post(f"{API}/device/auth", json={"device_uuid": UUID_A, "device_code": code})
    assert r.status_code == 401


def test_admin_delete_device(client, admin_headers):
    code = _register(client)["device_code"]
    r = client.delete(f"{API}/admin/devices/{code}", headers=admin_headers)
    assert r.status_code == 204
    assert client.post(f"{API}/admin/devices/{code}/suspend", headers=admin_headers).status_code == 404


# --- Adult PIN ---

def test_adult_pin_endpoints(client, admin_headers):
    _, token = _active_device(client, admin_headers)
    headers = _bearer(token)

    assert client.get(f"{API}/device/adult/status", headers=headers).json() == {"enabled": False}
    assert client.post(f"{API}/device/adult/verify", json={"pin": "1234"}, headers=headers).status_code == 404
    assert client.post(f"{API}/device/adult/set", json={"pin": "12a4"}, headers=headers).status_code == 400

    assert client.post(f"{API}/device/adult/set", json={"pin": "1234"}, headers=headers).json() == {"ok": True}
    assert client.get(f"{API}/device/adult/status", headers=headers).json() == {"enabled": True}
    assert client.post(f"{API}/device/adult/verify", json={"pin": "1234"}, headers=headers).status_code == 200
    assert client.post(f"{API}/device/adult/verify", json={"pin": "0000"}, headers=headers).status_code == 403

    assert client.delete(f"{API}/device/adult/reset", headers=headers).status_code == 200
    assert client.get(f"{API}/device/adult/status", headers=headers).json() == {"enabled": False}


# --- Playback ---

def test_playback_flow(client, admin_headers):
    code, token = _active_device(client, admin_headers)
    r = client.post(
        f"{API}/admin/devices/{code}/upstream",
        json={"upstream_base_url": "panel.example.com:8080", "username": "alice", "password": "pw"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text

    r = client.post(
        f"{API}/playback/token",
        json={"type": "vod", "stream_id": 42},
        headers=_bearer(token),
    )
    assert r.status_code == 200, r.text
    minted = r.json()
    assert minted["urls"]["hls"].startswith("https://gate.example.com/api/v1/playback/stream?")

    # The player follows the minted link without any session credentials
    link = urlsplit(minted["urls"]["dash"])
    r = client.get(f"{link.path}?{link.query}", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "https://panel.example.com:8080/movie/alice/pw/42.mpd"
    assert r.headers["cache-control"] == "no-store"

    r = client.get(
        f"{API}/playback/stream", params={"token": minted["token"]}, follow_redirects=False
    )
    assert r.headers["location"].endswith("/42.m3u8")


def test_playback_token_requires_session(client):
    r = client.post(f"{API}/playback/token", json={"type": "vod", "stream_id": "42"})
    assert r.status_code == 401


def test_playback_series_requires_episode(client, admin_headers):
    _, token = _active_device(client, admin_headers)
    r = client.post(
        f"{API}/playback/token", json={"type": "series", "stream_id": "42"}, headers=_bearer(token)
    )
    assert r.status_code == 400


def test_playback_token_cannot_be_used_as_session(client, admin_headers):
    _, token = _active_device(client, admin_headers)
    playback = client.post(
        f"{API}/playback/token", json={"type": "live", "stream_id": "7"}, headers=_bearer(token)
    ).json()["token"]
    assert client.get(f"{API}/device/profile", headers=_bearer(playback)).status_code == 401


def test_session_token_cannot_be_redeemed(client, admin_headers):
    _, token = _active_device(client, admin_headers)
    r = client.get(f"{API}/playback/stream", params={"token": token}, follow_redirects=False)
    assert r.status_code == 401


def test_redeem_without_upstream(client, admin_headers):
    _, token = _active_device(client, admin_headers)
    playback = client.post(
        f"{API}/playback/token", json={"type": "live", "stream_id": "7"}, headers=_bearer(token)
    ).json()["token"]
    r = client.get(f"{API}/playback/stream", params={"token": playback}, follow_redirects=False)
    assert r.status_code == 404
    assert r.json()["error"] == "upstream_not_configured"
