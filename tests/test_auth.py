"""Credential issuance, verification and the admin gate."""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from auth import Identity, authenticate, issue_token, verify_token
from errors import Unauthenticated


class TestCredentials:
    def test_round_trip_carries_email(self, settings):
        token = issue_token({"email": "ann@example.com", "name": "Ann"}, settings)
        identity = verify_token(token, settings)
        assert identity.email == "ann@example.com"
        assert identity.claims["name"] == "Ann"

    def test_expiry_is_365_days_after_issuance(self, settings):
        now = datetime(2024, 3, 1, tzinfo=timezone.utc)
        token = issue_token({"email": "ann@example.com"}, settings, now=now)
        claims = jwt.decode(token, options={"verify_signature": False})
        assert claims["exp"] - claims["iat"] == int(timedelta(days=365).total_seconds())

    def test_accepted_just_before_expiry(self, settings):
        issued = datetime.now(timezone.utc) - timedelta(days=364)
        token = issue_token({"email": "ann@example.com"}, settings, now=issued)
        assert verify_token(token, settings).email == "ann@example.com"

    def test_rejected_after_expiry(self, settings):
        issued = datetime.now(timezone.utc) - timedelta(days=366)
        token = issue_token({"email": "ann@example.com"}, settings, now=issued)
        with pytest.raises(Unauthenticated):
            verify_token(token, settings)

    def test_rejects_other_secret(self, settings):
        forged = jwt.encode(
            {"email": "ann@example.com", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
            "some-other-secret-that-is-also-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(Unauthenticated):
            verify_token(forged, settings)

    def test_rejects_tampered_signature(self, settings):
        token = issue_token({"email": "ann@example.com"}, settings)
        head, body, sig = token.split(".")
        tampered = ".".join([head, body, sig[::-1]])
        with pytest.raises(Unauthenticated):
            verify_token(tampered, settings)

    def test_rejects_token_without_email(self, settings):
        token = issue_token({"name": "nobody"}, settings)
        with pytest.raises(Unauthenticated):
            verify_token(token, settings)


class TestJwtEndpoint:
    def test_issues_verifiable_token(self, client, settings):
        resp = client.post("/jwt", json={"email": "ann@example.com"})
        assert resp.status_code == 200
        assert verify_token(resp.json()["token"], settings).email == "ann@example.com"

    def test_requires_email(self, client):
        resp = client.post("/jwt", json={"name": "Ann"})
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "invalid_argument"


class TestAuthenticateGate:
    def test_missing_header(self, client):
        resp = client.post("/create-payment-intent", json={"price": 10})
        assert resp.status_code == 401
        assert resp.json() == {"error": {"kind": "unauthenticated", "message": "Unauthorized access"}}

    def test_garbage_token(self, client):
        resp = client.post("/create-payment-intent", json={"price": 10}, headers={"Authorization": "not.a.jwt"})
        assert resp.status_code == 401
        assert resp.json()["error"]["kind"] == "unauthenticated"

    def test_bearer_prefix_is_tolerated(self, client, make_post, settings):
        post_id = make_post()
        token = issue_token({"email": "ann@example.com"}, settings)
        resp = client.patch(f"/post/{post_id}?upvote", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200

    def test_gate_returns_identity(self, settings):
        token = issue_token({"email": "ann@example.com"}, settings)
        identity = authenticate(authorization=f"Bearer {token}", settings=settings)
        assert isinstance(identity, Identity)
        assert identity.email == "ann@example.com"

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_gate_rejects_blank_header(self, settings, header):
        with pytest.raises(Unauthenticated):
            authenticate(authorization=header, settings=settings)


class TestAdminGate:
    def test_member_is_forbidden(self, client, member):
        resp = client.get("/users", headers=member)
        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "forbidden"

    def test_admin_is_permitted(self, client, admin):
        resp = client.get("/users", headers=admin)
        assert resp.status_code == 200
        assert [u["email"] for u in resp.json()] == ["admin@example.com"]

    def test_unknown_account_is_forbidden(self, client, auth_headers):
        resp = client.get("/reports", headers=auth_headers("ghost@example.com"))
        assert resp.status_code == 403

    def test_unauthenticated_before_admin_check(self, client):
        resp = client.post("/tags", json={"label": "python"})
        assert resp.status_code == 401
