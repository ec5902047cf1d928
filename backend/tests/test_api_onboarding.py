# tests/test_api_onboarding.py
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.clock import utcnow
from app.models.invitation import Invitation

PASSWORD = "s3cure-pass"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def invite(client, token: str, email: str, role: str):
    return await client.post("/api/v1/invitations", json={"email": email, "role": role}, headers=bearer(token))


async def sign_up(client, code: str, name: str):
    return await client.post(
        "/api/v1/onboarding/signup",
        json={"code": code, "name": name, "password": PASSWORD, "confirm_password": PASSWORD},
    )


@pytest.mark.asyncio
async def test_full_onboarding_chain(client):
    # 1) First user becomes superadmin
    r = await client.post(
        "/api/v1/onboarding/bootstrap",
        json={
            "email": "admin@example.com",
            "name": "Platform Admin",
            "password": PASSWORD,
            "confirm_password": PASSWORD,
        },
    )
    assert r.status_code == 201, r.text
    admin_token = r.json()["access_token"]
    assert r.json()["user"]["role"] == "superadmin"
    assert r.json()["default_page"] == "dashboard"

    r = await client.post(
        "/api/v1/onboarding/bootstrap",
        json={"email": "late@example.com", "name": "Too Late", "password": PASSWORD, "confirm_password": PASSWORD},
    )
    assert r.status_code == 403

    # 2) Superadmin may only invite captains
    r = await client.get("/api/v1/invitations/grantable-roles", headers=bearer(admin_token))
    assert r.status_code == 200
    assert [x["value"] for x in r.json()] == ["barangay_captain"]

    r = await invite(client, admin_token, "treasurer@example.com", "treasurer")
    assert r.status_code == 403
    assert r.json()["detail"]["error"] == "FORBIDDEN"

    r = await invite(client, admin_token, "captain@example.com", "barangay_captain")
    assert r.status_code == 201, r.text
    captain_code = r.json()["code"]
    assert r.json()["barangay_id"] is None

    # 3) Captain verifies and signs up
    r = await client.post("/api/v1/onboarding/verify-code", json={"code": f" {captain_code.lower()} "})
    assert r.status_code == 200
    assert r.json()["email"] == "captain@example.com"
    assert r.json()["role_label"] == "Barangay Captain"
    assert r.json()["step"] == "CODE_VERIFIED"

    r = await sign_up(client, captain_code, "Jose Rizal")
    assert r.status_code == 201, r.text
    captain_token = r.json()["access_token"]
    assert r.json()["step"] == "ACCOUNT_CREATED"
    assert r.json()["user"]["barangay_id"] is None

    r = await sign_up(client, captain_code, "Someone Else")
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "INVALID_INVITATION"

    # 4) Captain has no barangay yet: cannot invite, may create
    r = await client.get("/api/v1/barangays/current", headers=bearer(captain_token))
    assert r.json() == {"status": "pending_setup", "can_create": True, "barangay": None}

    r = await invite(client, captain_token, "treasurer@example.com", "treasurer")
    assert r.status_code == 403
    assert r.json()["detail"]["error"] == "PREREQUISITE_MISSING"

    r = await client.post("/api/v1/barangays", json={"name": "Barangay Bagong Silang"}, headers=bearer(captain_token))
    assert r.status_code == 201, r.text
    barangay_id = r.json()["id"]
    assert r.json()["municipality"] == "To be configured"

    r = await client.post("/api/v1/barangays", json={"name": "Again"}, headers=bearer(captain_token))
    assert r.status_code == 200
    assert r.json()["created"] is False
    assert r.json()["barangay_id"] == barangay_id

    r = await client.get("/api/v1/barangays/current", headers=bearer(captain_token))
    assert r.json()["status"] == "ready"
    assert r.json()["barangay"]["id"] == barangay_id

    # 5) Captain invites a treasurer, who lands in the same barangay
    r = await invite(client, captain_token, "treasurer@example.com", "treasurer")
    assert r.status_code == 201, r.text
    assert r.json()["barangay_id"] == barangay_id

    r = await sign_up(client, r.json()["code"], "Andres Bonifacio")
    assert r.status_code == 201, r.text
    treasurer_token = r.json()["access_token"]
    assert r.json()["user"]["barangay_id"] == barangay_id

    r = await client.get("/api/v1/access/pages", headers=bearer(treasurer_token))
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["pages"]] == ["dashboard", "financial", "reports", "settings"]
    assert r.json()["default_page"] == "dashboard"

    r = await client.get("/api/v1/access/check", params={"page": "residents"}, headers=bearer(treasurer_token))
    assert r.json() == {"page": "residents", "allowed": False, "redirect_to": "dashboard"}

    r = await invite(client, treasurer_token, "x@example.com", "staff")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_unknown_and_expired_codes_look_the_same(client, db, captain_with_barangay, auth_headers):
    captain, _ = await captain_with_barangay()
    r = await client.post(
        "/api/v1/invitations",
        json={"email": "slow@example.com", "role": "staff"},
        headers=auth_headers(captain),
    )
    code = r.json()["code"]

    inv = (await db.execute(select(Invitation).where(Invitation.code == code))).scalar_one()
    inv.expires_at = utcnow() - timedelta(seconds=1)
    await db.commit()

    expired = await client.post("/api/v1/onboarding/verify-code", json={"code": code})
    unknown = await client.post("/api/v1/onboarding/verify-code", json={"code": "QQQQQQ" if code != "QQQQQQ" else "WWWWWW"})

    assert expired.status_code == unknown.status_code == 400
    assert expired.json() == unknown.json()
    assert expired.json()["detail"]["message"] == "Invalid or expired invitation code"


@pytest.mark.asyncio
async def test_signup_validation_errors(client, captain_with_barangay, auth_headers):
    captain, _ = await captain_with_barangay()
    r = await client.post(
        "/api/v1/invitations",
        json={"email": "new@example.com", "role": "staff"},
        headers=auth_headers(captain),
    )
    code = r.json()["code"]

    r = await client.post(
        "/api/v1/onboarding/signup",
        json={"code": code, "name": "New Staff", "password": "short", "confirm_password": "short"},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "INVALID_INPUT"
    assert r.json()["detail"]["field"] == "password"

    r = await client.post(
        "/api/v1/onboarding/signup",
        json={"code": code, "name": "New Staff", "password": PASSWORD, "confirm_password": "different-pass"},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "confirm_password"

    # still redeemable
    r = await client.post("/api/v1/onboarding/verify-code", json={"code": code})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_list_and_revoke_invitations(client, captain_with_barangay, auth_headers):
    captain, _ = await captain_with_barangay()
    headers = auth_headers(captain)

    r = await client.post("/api/v1/invitations", json={"email": "a@example.com", "role": "secretary"}, headers=headers)
    invitation_id = r.json()["id"]
    code = r.json()["code"]

    r = await client.get("/api/v1/invitations", headers=headers)
    assert r.status_code == 200
    assert [i["id"] for i in r.json()] == [invitation_id]
    assert "code" not in r.json()[0]

    r = await client.post(f"/api/v1/invitations/{invitation_id}/revoke", headers=headers)
    assert r.status_code == 200
    assert r.json()["status"] == "expired"

    r = await client.post("/api/v1/onboarding/verify-code", json={"code": code})
    assert r.status_code == 400

    r = await client.post(f"/api/v1/invitations/{invitation_id}/revoke", headers=headers)
    assert r.status_code == 409
