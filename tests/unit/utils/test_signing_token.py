"""Tests for JWT signing links."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from rental_core.enums import SignerRole
from rental_core.exceptions import BaseError, ErrorCode
from rental_core.utils.signing_token import (
    build_signing_url,
    generate_signing_token,
    require_signing_token,
    verify_signing_token,
)

SECRET = "test-signing-secret"
NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def token():
    return generate_signing_token(SECRET, "c-1", SignerRole.TENANT, NOW, 72)


class TestVerify:
    def test_round_trip(self, token):
        payload = verify_signing_token(SECRET, token, NOW + timedelta(hours=1))

        assert payload.contract_id == "c-1"
        assert payload.role == SignerRole.TENANT

    def test_expired(self, token):
        assert verify_signing_token(SECRET, token, NOW + timedelta(hours=72)) is None

    def test_wrong_secret(self, token):
        assert verify_signing_token("other-secret", token, NOW) is None

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c"])
    def test_malformed(self, garbage):
        assert verify_signing_token(SECRET, garbage, NOW) is None

    def test_unknown_role(self):
        forged = jwt.encode(
            {"contract_id": "c-1", "role": "ADMIN", "exp": NOW + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )

        assert verify_signing_token(SECRET, forged, NOW) is None


class TestRequire:
    def test_valid(self, token):
        assert require_signing_token(SECRET, token, "c-1", NOW).role == SignerRole.TENANT

    @pytest.mark.parametrize("contract_id,supplied", [("c-2", True), ("c-1", False)])
    def test_rejected(self, token, contract_id, supplied):
        with pytest.raises(BaseError) as exc_info:
            require_signing_token(SECRET, token if supplied else None, contract_id, NOW)

        assert exc_info.value.status_code == 401
        assert exc_info.value.error_code == ErrorCode.PERMISSION_DENIED


def test_build_signing_url():
    assert (
        build_signing_url("https://rent.example.com/", "c-1", "tok")
        == "https://rent.example.com/sign/c-1?token=tok"
    )
