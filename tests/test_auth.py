"""Tests for stream bearer tokens."""

import pytest

from product_visuals.utils.auth import bearer_from_header, issue_token, verify_token

SECRET = "test-secret"


class TestTokens:
    def test_round_trip(self):
        token = issue_token("owner-42", SECRET)
        assert token.startswith("owner-42.")
        assert verify_token(token, SECRET) == "owner-42"

    def test_wrong_secret(self):
        token = issue_token("owner-42", SECRET)
        assert verify_token(token, "other-secret") is None

    def test_tampered_owner(self):
        token = issue_token("owner-42", SECRET)
        signature = token.rpartition(".")[2]
        assert verify_token(f"owner-43.{signature}", SECRET) is None

    @pytest.mark.parametrize("token", [None, "", "no-dot", ".abc", "owner."])
    def test_malformed(self, token):
        assert verify_token(token, SECRET) is None

    @pytest.mark.parametrize("token", ["owner.é", "ownér.abc", "owner-42.ünïcode"])
    def test_non_ascii(self, token):
        assert verify_token(token, SECRET) is None

    @pytest.mark.parametrize("owner_id", ["", "a.b"])
    def test_invalid_owner_ids(self, owner_id):
        with pytest.raises(ValueError):
            issue_token(owner_id, SECRET)


class TestBearerHeader:
    def test_bearer(self):
        assert bearer_from_header("Bearer abc.def") == "abc.def"
        assert bearer_from_header("bearer  abc ") == "abc"

    @pytest.mark.parametrize("header", [None, "", "Basic xyz", "Bearer "])
    def test_not_bearer(self, header):
        assert bearer_from_header(header) is None
