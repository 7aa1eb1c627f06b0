"""Tests for request signing and verification."""

import hashlib
import hmac
import itertools

import pytest

from pusher_auth.exceptions import AuthenticationError, ConfigurationError, ValidationError
from pusher_auth.signature import (
    AUTH_VERSION,
    Request,
    lookup_from,
    sign,
    verify,
)
from pusher_auth.types import Credential

NOW = 1_700_000_000


def hmac_hex(secret: str, message: str) -> str:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


class TestSign:
    """Tests for sign()."""

    def test_fixed_vector(self):
        """Test the documented example signs a reproducible string."""
        credential = Credential(key="AAAA", secret="aaaaaaaa")

        signed = sign(credential, "POST", "/apps/1/events", {"name": "query"}, clock=lambda: 1234)

        expected_string = (
            "POST\n/apps/1/events\nauth_key=AAAA&auth_timestamp=1234&auth_version=1.0&name=query"
        )
        assert signed.string_to_sign == expected_string
        assert signed.envelope.auth_signature == hmac_hex("aaaaaaaa", expected_string)
        assert signed.params == {
            "name": "query",
            "auth_key": "AAAA",
            "auth_timestamp": 1234,
            "auth_version": AUTH_VERSION,
            "auth_signature": signed.envelope.auth_signature,
        }

    def test_signature_is_hex(self, credential, clock):
        """Test signatures are 64 lower-case hex characters."""
        signed = sign(credential, "GET", "/apps/1/channels", {}, clock=clock)

        assert len(signed.envelope.auth_signature) == 64
        int(signed.envelope.auth_signature, 16)

    def test_original_keys_preserved(self, credential, clock):
        """Test parameter keys keep their case in the output."""
        signed = sign(credential, "GET", "/p", {"Filter_By_Prefix": "presence-"}, clock=clock)

        assert signed.params["Filter_By_Prefix"] == "presence-"

    def test_permutations_sign_identically(self, credential, clock):
        """Test parameter order does not change the signature."""
        items = [("a", "1"), ("b", "2"), ("c", "3")]
        signatures = {
            sign(credential, "GET", "/p", dict(order), clock=clock).envelope.auth_signature
            for order in itertools.permutations(items)
        }

        assert len(signatures) == 1

    def test_key_case_insensitive(self, credential, clock):
        """Test {"Foo": "1"} and {"foo": "1"} sign identically."""
        upper = sign(credential, "GET", "/p", {"Foo": "1"}, clock=clock)
        lower = sign(credential, "GET", "/p", {"foo": "1"}, clock=clock)

        assert upper.envelope.auth_signature == lower.envelope.auth_signature

    @pytest.mark.parametrize(
        "method, path, params",
        [
            ("GET", "/p", {"foo": "1"}),
            ("POST", "/other", {"foo": "1"}),
            ("POST", "/p", {"foo": "2"}),
            ("POST", "/p", {"bar": "1"}),
        ],
    )
    def test_any_change_changes_signature(self, credential, clock, method, path, params):
        """Test method, path, keys and values all feed the signature."""
        base = sign(credential, "POST", "/p", {"foo": "1"}, clock=clock)
        other = sign(credential, method, path, params, clock=clock)

        assert other.envelope.auth_signature != base.envelope.auth_signature

    def test_body_md5(self, credential, clock):
        """Test the body is covered by a body_md5 parameter."""
        body = '{"name":"event"}'

        signed = sign(credential, "POST", "/apps/1/events", {}, body, clock=clock)

        assert signed.params["body_md5"] == hashlib.md5(body.encode()).hexdigest()
        assert f"body_md5={signed.params['body_md5']}" in signed.string_to_sign
        assert signed.body == body

    def test_stale_auth_fields_replaced(self, credential, clock):
        """Test auth fields already present in params are replaced."""
        signed = sign(
            credential,
            "GET",
            "/p",
            {"AUTH_SIGNATURE": "old", "auth_timestamp": "1"},
            clock=clock,
        )

        assert "AUTH_SIGNATURE" not in signed.params
        assert signed.params["auth_timestamp"] == NOW

    def test_missing_credential(self):
        """Test signing without a credential is a configuration error."""
        with pytest.raises(ConfigurationError):
            sign(None, "GET", "/p", {})

    def test_empty_secret(self):
        """Test an empty secret is a configuration error."""
        with pytest.raises(ConfigurationError):
            sign({"key": "k", "secret": ""}, "GET", "/p", {})

    def test_bytes_secret(self, clock):
        """Test an opaque bytes secret signs and verifies."""
        credential = Credential("k", b"opaque\xffbytes")
        signed = sign(credential, "GET", "/p", {}, clock=clock)

        expected = hmac.new(b"opaque\xffbytes", signed.string_to_sign.encode(), hashlib.sha256).hexdigest()
        assert signed.params["auth_signature"] == expected
        assert verify(lookup_from(credential), "GET", "/p", signed.params, clock=clock) == credential

    def test_non_text_secret_rejected(self):
        """Test secrets that are neither str nor bytes are configuration errors."""
        with pytest.raises(ConfigurationError, match="str or bytes"):
            Credential("k", 12345)

    def test_path_must_be_string(self, credential):
        """Test non-string paths are rejected."""
        with pytest.raises(ValidationError, match="path"):
            sign(credential, "GET", 123, {})

    def test_params_must_be_mapping(self, credential):
        """Test non-mapping params are rejected."""
        with pytest.raises(ValidationError, match="mapping"):
            sign(credential, "GET", "/p", [("a", "b")])


class TestVerify:
    """Tests for verify() and Request authentication."""

    def test_round_trip(self, credential, clock):
        """Test verify(sign(...)) recovers the credential."""
        signed = sign(credential, "POST", "/apps/1/events", {"name": "query"}, clock=clock)

        result = verify(lookup_from(credential), "POST", "/apps/1/events", signed.params, clock=clock)

        assert result == credential

    def test_string_params_as_received(self, credential, clock):
        """Test verification of parameters parsed from a query string."""
        signed = sign(credential, "GET", "/p", {"Foo": "1"}, clock=clock)
        received = {k: str(v) for k, v in signed.params.items()}

        assert verify(lookup_from(credential), "GET", "/p", received, clock=clock) == credential

    def test_missing_key(self, credential, clock):
        """Test a request without auth_key is rejected."""
        with pytest.raises(AuthenticationError, match="Authentication key required"):
            verify(lookup_from(credential), "GET", "/p", {"foo": "1"}, clock=clock)

    def test_unknown_key(self, credential, clock):
        """Test a key the lookup does not know is rejected."""
        signed = sign(credential, "GET", "/p", {}, clock=clock)

        with pytest.raises(AuthenticationError, match="Invalid authentication key"):
            verify(lambda key: None, "GET", "/p", signed.params, clock=clock)

    def test_lookup_selects_credential(self, clock):
        """Test the lookup resolves the right secret among several."""
        first = Credential(key="one", secret="s1")
        second = Credential(key="two", secret="s2")
        signed = sign(second, "GET", "/p", {}, clock=clock)

        assert verify(lookup_from(first, second), "GET", "/p", signed.params, clock=clock) == second

    def test_wrong_secret(self, credential, clock):
        """Test a signature from another secret fails and shows the signed string."""
        signed = sign(credential, "GET", "/p", {"foo": "1"}, clock=clock)
        impostor = Credential(key=credential.key, secret="other")

        with pytest.raises(AuthenticationError, match="Invalid signature") as excinfo:
            verify(lookup_from(impostor), "GET", "/p", signed.params, clock=clock)

        assert "HmacSHA256Hex(" in str(excinfo.value)
        assert repr(signed.string_to_sign) in str(excinfo.value)

    def test_tampered_value(self, credential, clock):
        """Test changing a parameter after signing fails verification."""
        params = dict(sign(credential, "GET", "/p", {"foo": "1"}, clock=clock).params)
        params["foo"] = "2"

        with pytest.raises(AuthenticationError, match="Invalid signature"):
            verify(lookup_from(credential), "GET", "/p", params, clock=clock)

    def test_tampered_body(self, credential, clock):
        """Test a body that no longer matches body_md5 fails verification."""
        signed = sign(credential, "POST", "/p", {}, "original", clock=clock)

        with pytest.raises(AuthenticationError, match="Invalid signature"):
            verify(lookup_from(credential), "POST", "/p", signed.params, body="changed", clock=clock)

        assert verify(lookup_from(credential), "POST", "/p", signed.params, body="original", clock=clock)

    def test_unsupported_version(self, credential, clock):
        """Test versions other than 1.0 are rejected."""
        params = dict(sign(credential, "GET", "/p", {}, clock=clock).params)
        params["auth_version"] = "2.0"

        with pytest.raises(AuthenticationError, match="Version not supported"):
            verify(lookup_from(credential), "GET", "/p", params, clock=clock)

    def test_missing_timestamp(self, credential, clock):
        """Test a missing timestamp is rejected when grace is enabled."""
        params = dict(sign(credential, "GET", "/p", {}, clock=clock).params)
        del params["auth_timestamp"]

        with pytest.raises(AuthenticationError, match="Timestamp required"):
            verify(lookup_from(credential), "GET", "/p", params, clock=clock)

    @pytest.mark.parametrize("offset", [-600, 600, 0])
    def test_timestamp_within_grace(self, credential, offset):
        """Test timestamps exactly at the grace boundary are accepted."""
        signed = sign(credential, "GET", "/p", {}, clock=lambda: NOW + offset)

        assert verify(lookup_from(credential), "GET", "/p", signed.params, 600, clock=lambda: NOW)

    @pytest.mark.parametrize("offset", [-601, 601])
    def test_timestamp_outside_grace(self, credential, offset):
        """Test timestamps one second past the boundary are expired."""
        signed = sign(credential, "GET", "/p", {}, clock=lambda: NOW + offset)

        with pytest.raises(AuthenticationError, match="Timestamp expired") as excinfo:
            verify(lookup_from(credential), "GET", "/p", signed.params, 600, clock=lambda: NOW)

        assert "2023-11-14T22:13:20Z" in str(excinfo.value)

    def test_grace_disabled(self, credential):
        """Test a grace of None accepts arbitrarily old timestamps."""
        signed = sign(credential, "GET", "/p", {}, clock=lambda: 0)

        assert verify(lookup_from(credential), "GET", "/p", signed.params, None, clock=lambda: NOW)

    def test_grace_disabled_skips_timestamp_presence(self, credential, clock):
        """Test a grace of None goes straight to the signature check."""
        request = Request("GET", "/p", {})
        request.sign(credential, clock=clock)
        params = request.signed_params
        del params["auth_timestamp"]

        with pytest.raises(AuthenticationError, match="Invalid signature"):
            verify(lookup_from(credential), "GET", "/p", params, None, clock=clock)


class TestRequest:
    """Tests for the Request class."""

    def test_sign_returns_envelope(self, credential, clock):
        """Test sign() returns the auth envelope."""
        request = Request("GET", "/p", {"foo": "1"})

        envelope = request.sign(credential, clock=clock)

        assert envelope.auth_key == credential.key
        assert envelope.auth_timestamp == NOW
        assert envelope.auth_version == "1.0"
        assert envelope.to_params()["auth_timestamp"] == str(NOW)

    def test_unsigned_request(self):
        """Test signed_params requires a signature."""
        with pytest.raises(ValidationError, match="not signed"):
            Request("GET", "/p", {}).signed_params

    def test_is_authentic_for(self, credential, clock):
        """Test the boolean form of authentication."""
        request = Request("GET", "/p", {})
        request.sign(credential, clock=clock)
        received = Request("GET", "/p", request.signed_params)

        assert received.is_authentic_for(credential, clock=clock) is True
        assert received.is_authentic_for(Credential("test-key", "nope"), clock=clock) is False

    def test_query_excludes_auth(self, credential, clock):
        """Test auth fields are held apart from the query."""
        request = Request("GET", "/p", {"foo": "1", "Auth_Key": "x"})

        assert request.query == {"foo": "1"}
