"""Cross-tenant isolation through the HTTP API.

Each tenant talks to the API with its own bearer token; the fake data store
applies the same policy set the database does.
"""

import pytest

API = "/api/v1"


async def _create_client(client, tenant, **body):
    r = await client.post(f"{API}/clients", json=body, headers=tenant.headers)
    assert r.status_code == 201, r.text
    return r.json()


# ═══════════════════════════════════════════════════════════
# Clients
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_other_coach_cannot_list_client(client, tenants):
    """Coach A's client never shows up in Coach B's list."""
    await _create_client(client, tenants["coach_a"], notes="COACH A CONFIDENTIAL CLIENT")

    r = await client.get(f"{API}/clients", headers=tenants["coach_b"].headers)
    assert r.status_code == 200
    assert "COACH A CONFIDENTIAL CLIENT" not in r.text

    r = await client.get(f"{API}/clients", headers=tenants["coach_a"].headers)
    assert [c["notes"] for c in r.json()] == ["COACH A CONFIDENTIAL CLIENT"]


@pytest.mark.asyncio
async def test_forged_coach_id_is_replaced(client, tenants):
    """A coach cannot file a client under another coach."""
    coach_a, coach_b = tenants["coach_a"], tenants["coach_b"]
    created = await _create_client(client, coach_b, coachId=coach_a.id, notes="mine")

    assert created["coachId"] == coach_b.id
    r = await client.get(f"{API}/clients", headers=coach_a.headers)
    assert r.json() == []


@pytest.mark.asyncio
async def test_forged_created_by_is_replaced(client, db, tenants):
    """createdBy is always the requester's verified id."""
    client_a, coach_a = tenants["client_a"], tenants["coach_a"]
    created = await _create_client(client, client_a, createdBy=coach_a.id, coachId=coach_a.id)

    assert created["createdBy"] == client_a.id
    assert created["userId"] == client_a.id
    assert created["coachId"] is None
    assert db.find("clients", created["id"])["created_by"] == client_a.id


@pytest.mark.asyncio
async def test_coach_cannot_take_over_another_coachs_client(client, db, tenants, managed_client):
    """A userId sent by a coach never links the new profile to that account."""
    coach_b, client_a = tenants["coach_b"], tenants["client_a"]
    taken = await _create_client(client, coach_b, userId=client_a.id, notes="takeover")
    assert taken["userId"] is None
    assert taken["coachId"] == coach_b.id

    r = await client.post(
        f"{API}/weight-logs", json={"weight": 77.7, "loggedOn": "2025-03-01", "notes": "CLIENT A WEIGHT"},
        headers=client_a.headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["clientId"] == managed_client["id"]

    r = await client.get(f"{API}/weight-logs", params={"clientId": taken["id"]}, headers=coach_b.headers)
    assert r.status_code == 200
    assert "CLIENT A WEIGHT" not in r.text
    r = await client.get(
        f"{API}/weight-logs", params={"clientId": managed_client["id"]}, headers=coach_b.headers
    )
    assert r.json() == []


@pytest.mark.asyncio
async def test_client_claims_invitation(client, tenants):
    coach_a, client_a, client_b = tenants["coach_a"], tenants["client_a"], tenants["client_b"]
    invitation = await _create_client(client, coach_a, invitedEmail="Client-A@Example.com", notes="welcome")
    assert invitation["invitedEmail"] == "client-a@example.com"
    assert invitation["userId"] is None

    r = await client.get(f"{API}/clients/invitations", headers=client_b.headers)
    assert r.json() == []
    r = await client.post(f"{API}/clients/{invitation['id']}/claim", headers=client_b.headers)
    assert r.status_code == 404
    r = await client.post(f"{API}/clients/{invitation['id']}/claim", headers=coach_a.headers)
    assert r.status_code == 403

    r = await client.get(f"{API}/clients/invitations", headers=client_a.headers)
    assert [i["id"] for i in r.json()] == [invitation["id"]]
    r = await client.post(f"{API}/clients/{invitation['id']}/claim", headers=client_a.headers)
    assert r.status_code == 200, r.text
    assert r.json()["userId"] == client_a.id
    assert r.json()["coachId"] == coach_a.id

    r = await client.post(f"{API}/clients/{invitation['id']}/claim", headers=client_a.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_second_profile_for_same_account_rejected(client, tenants, managed_client):
    r = await client.post(f"{API}/clients", json={"notes": "again"}, headers=tenants["client_a"].headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_other_coach_cannot_read_update_or_delete(client, tenants):
    record = await _create_client(client, tenants["coach_a"], notes="private")
    coach_b = tenants["coach_b"]

    r = await client.get(f"{API}/clients/{record['id']}", headers=coach_b.headers)
    assert r.status_code == 404
    r = await client.patch(f"{API}/clients/{record['id']}", json={"notes": "x"}, headers=coach_b.headers)
    assert r.status_code == 404
    r = await client.delete(f"{API}/clients/{record['id']}", headers=coach_b.headers)
    assert r.status_code == 404

    r = await client.get(f"{API}/clients/{record['id']}", headers=tenants["coach_a"].headers)
    assert r.json()["notes"] == "private"


@pytest.mark.asyncio
async def test_client_role_cannot_delete(client, tenants, managed_client):
    r = await client.delete(f"{API}/clients/{managed_client['id']}", headers=tenants["client_a"].headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Only coach accounts can perform this action"


# ═══════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_other_client_cannot_read_messages(client, tenants):
    client_a, coach_a, client_b = tenants["client_a"], tenants["coach_a"], tenants["client_b"]
    r = await client.post(
        f"{API}/messages",
        json={"receiverId": coach_a.id, "content": "Client A private note", "senderId": client_b.id},
        headers=client_a.headers,
    )
    assert r.status_code == 201
    message = r.json()
    assert message["senderId"] == client_a.id

    r = await client.get(f"{API}/messages", headers=client_b.headers)
    assert "Client A private note" not in r.text
    r = await client.get(f"{API}/messages", params={"otherUserId": coach_a.id}, headers=client_b.headers)
    assert r.json() == []

    r = await client.get(f"{API}/messages", params={"otherUserId": client_a.id}, headers=coach_a.headers)
    assert [m["content"] for m in r.json()] == ["Client A private note"]


@pytest.mark.asyncio
async def test_only_receiver_marks_read(client, tenants):
    client_a, coach_a = tenants["client_a"], tenants["coach_a"]
    r = await client.post(
        f"{API}/messages", json={"receiverId": coach_a.id, "content": "hello"}, headers=client_a.headers
    )
    message_id = r.json()["id"]

    r = await client.patch(f"{API}/messages/{message_id}/read", headers=tenants["client_b"].headers)
    assert r.status_code == 404
    r = await client.patch(f"{API}/messages/{message_id}/read", headers=client_a.headers)
    assert r.status_code == 404
    r = await client.patch(f"{API}/messages/{message_id}/read", headers=coach_a.headers)
    assert r.status_code == 200
    assert r.json()["isRead"] is True


@pytest.mark.asyncio
async def test_message_to_self_rejected(client, tenants):
    client_a = tenants["client_a"]
    r = await client.post(
        f"{API}/messages", json={"receiverId": client_a.id, "content": "me"}, headers=client_a.headers
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Device integrations
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_other_client_cannot_see_integration_token(client, tenants):
    client_a, client_b = tenants["client_a"], tenants["client_b"]
    body = {"provider": "fitbit", "accessToken": "client-a-secret-token", "refreshToken": "refresh"}
    r = await client.post(f"{API}/integrations", json=body, headers=client_a.headers)
    assert r.status_code == 201
    assert "client-a-secret-token" not in r.text
    assert r.json()["hasRefreshToken"] is True

    r = await client.get(f"{API}/integrations", headers=client_b.headers)
    assert r.json() == []
    assert "client-a-secret-token" not in r.text

    r = await client.get(f"{API}/integrations", headers=tenants["coach_a"].headers)
    assert r.json() == []


@pytest.mark.asyncio
async def test_reconnecting_provider_updates_in_place(client, db, tenants):
    client_a = tenants["client_a"]
    first = await client.post(
        f"{API}/integrations", json={"provider": "garmin", "accessToken": "one"}, headers=client_a.headers
    )
    second = await client.post(
        f"{API}/integrations", json={"provider": "garmin", "accessToken": "two"}, headers=client_a.headers
    )
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert [r["access_token"] for r in db.tables["device_integrations"]] == ["two"]


@pytest.mark.asyncio
async def test_reconnecting_without_refresh_token_keeps_it(client, db, tenants):
    client_a = tenants["client_a"]
    await client.post(
        f"{API}/integrations",
        json={"provider": "whoop", "accessToken": "one", "refreshToken": "keep-me"},
        headers=client_a.headers,
    )
    r = await client.post(
        f"{API}/integrations", json={"provider": "whoop", "accessToken": "two"}, headers=client_a.headers
    )
    assert r.status_code == 200
    assert r.json()["hasRefreshToken"] is True
    stored = db.tables["device_integrations"][0]
    assert stored["access_token"] == "two"
    assert stored["refresh_token"] == "keep-me"


@pytest.mark.asyncio
async def test_other_client_cannot_delete_integration(client, tenants):
    client_a = tenants["client_a"]
    r = await client.post(
        f"{API}/integrations", json={"provider": "oura", "accessToken": "t"}, headers=client_a.headers
    )
    integration_id = r.json()["id"]

    r = await client.delete(f"{API}/integrations/{integration_id}", headers=tenants["client_b"].headers)
    assert r.status_code == 404
    r = await client.delete(f"{API}/integrations/{integration_id}", headers=client_a.headers)
    assert r.status_code == 204


# ═══════════════════════════════════════════════════════════
# Fail closed
# ═══════════════════════════════════════════════════════════


PROTECTED = [
    ("get", "/clients", None),
    ("post", "/clients", {"notes": "x"}),
    ("post", "/messages", {"receiverId": "someone", "content": "x"}),
    ("post", "/integrations", {"provider": "fitbit", "accessToken": "x"}),
    ("post", "/weight-logs", {"weight": 80, "loggedOn": "2025-03-01"}),
    ("get", "/checkins", None),
    ("get", "/workout-assignments", None),
    ("post", "/clients/some-id/claim", None),
    ("get", "/auth/me", None),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("method,path,body", PROTECTED)
async def test_invalid_token_rejected_without_mutation(client, db, tenants, method, path, body):
    before = db.snapshot()
    calls = db.calls
    kwargs = {"headers": {"Authorization": "Bearer invalid-token"}}
    if body is not None:
        kwargs["json"] = body

    r = await client.request(method.upper(), f"{API}{path}", **kwargs)

    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"
    assert db.snapshot() == before
    assert db.calls == calls


@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    r = await client.get(f"{API}/clients")
    assert r.status_code == 401
    assert r.json()["detail"] == "Unauthorized - No token provided"


@pytest.mark.asyncio
async def test_identity_provider_down_fails_closed(client, db, tenants):
    db.auth_down = True
    r = await client.post(f"{API}/clients", json={"notes": "x"}, headers=tenants["coach_a"].headers)
    assert r.status_code == 503
    assert db.tables["clients"] == []


@pytest.mark.asyncio
async def test_data_store_down_fails_closed(client, db, tenants):
    db.data_down = True
    r = await client.get(f"{API}/clients", headers=tenants["coach_a"].headers)
    assert r.status_code == 503
    assert r.json()["detail"] == "data store unavailable, try again later"
