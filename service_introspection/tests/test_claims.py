"""
Unit tests for claim parsing and header mapping.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_introspection.app.introspection.claims import (
    claims_to_headers,
    encode_headers,
    parse_introspection_response,
    stringify_claim,
)
from shared.errors import IntrospectionParseError, NestedClaimError


class TestParseIntrospectionResponse:
    """Test cases for parse_introspection_response."""

    def test_parse_object_preserves_order(self):
        """Test keys come back in document order."""
        claims = parse_introspection_response('{"scope": "read", "active": true, "exp": 1700000000}')

        assert list(claims) == ["scope", "active", "exp"]
        assert claims["active"] is True

    def test_parse_malformed_json(self):
        """Test malformed JSON is reported with the fixed message."""
        with pytest.raises(IntrospectionParseError) as exc_info:
            parse_introspection_response('{"active": tru')

        assert exc_info.value.message == "Failed to parse Keycloak response"
        assert "parse_error" in exc_info.value.details

    def test_parse_rejects_non_object(self):
        """Test a JSON array is not accepted as a claim set."""
        with pytest.raises(IntrospectionParseError):
            parse_introspection_response('["admin", "user"]')

    def test_parse_rejects_nan(self):
        """Test non-standard JSON constants are refused."""
        with pytest.raises(IntrospectionParseError):
            parse_introspection_response('{"score": NaN}')

    def test_parse_empty_body(self):
        """Test an empty body is a parse failure."""
        with pytest.raises(IntrospectionParseError):
            parse_introspection_response("")


class TestStringifyClaim:
    """Test cases for stringify_claim."""

    @pytest.mark.parametrize("value,expected", [
        ("read write", "read write"),
        (True, "true"),
        (False, "false"),
        (1700000000, "1700000000"),
        (1.0, "1"),
        (0.5, "0.5"),
        (-2.5, "-2.5"),
        (100.0, "100"),
        (-0.0, "0"),
        (1e-6, "0.000001"),
        (1e-7, "1e-7"),
        (1.5e-7, "1.5e-7"),
        (1e20, "100000000000000000000"),
        (1e21, "1e+21"),
        (2 ** 60, "1152921504606847000"),
        (10 ** 400, "Infinity"),
        (float("inf"), "Infinity"),
        (None, ""),
        (["admin", "user"], "admin,user"),
        ([1, True, None, "x"], "1,true,,x"),
        ([["a", "b"], "c"], "a,b,c"),
        ([], ""),
    ])
    def test_stringify(self, value, expected):
        """Test header rendering of scalar and array values."""
        assert stringify_claim(value) == expected

    def test_commas_inside_elements_are_not_escaped(self):
        """Test array joining is lossy."""
        assert stringify_claim(["a,b", "c"]) == "a,b,c"

    def test_object_is_rejected(self):
        """Test objects cannot be rendered directly."""
        with pytest.raises(NestedClaimError):
            stringify_claim({"country": "NL"})

    def test_exponent_from_json_body(self):
        """Test numbers parsed from a body render like a JSON-native host."""
        claims = parse_introspection_response('{"ratio": 1E-7, "big": 1e21, "exp": 1.7e9}')

        assert claims_to_headers(claims) == {
            "Token-ratio": "1e-7",
            "Token-big": "1e+21",
            "Token-exp": "1700000000",
        }


class TestClaimsToHeaders:
    """Test cases for claims_to_headers."""

    def test_one_header_per_claim(self):
        """Test every key yields exactly one prefixed header."""
        headers = claims_to_headers({"active": True, "scope": "read write", "roles": ["admin", "user"]})

        assert headers == {
            "Token-active": "true",
            "Token-scope": "read write",
            "Token-roles": "admin,user",
        }

    def test_empty_claims(self):
        """Test an empty object maps to no headers."""
        assert claims_to_headers({}) == {}

    def test_key_case_preserved(self):
        """Test field names are copied verbatim."""
        headers = claims_to_headers({"preferred_Username": "john.doe"})

        assert headers == {"Token-preferred_Username": "john.doe"}

    def test_custom_prefix(self):
        """Test a configured prefix replaces Token-."""
        assert claims_to_headers({"sub": "user1"}, prefix="X-Claim-") == {"X-Claim-sub": "user1"}

    def test_nested_reject(self):
        """Test nested objects are rejected by default."""
        with pytest.raises(NestedClaimError) as exc_info:
            claims_to_headers({"active": True, "realm_access": {"roles": ["user"]}})

        assert exc_info.value.details["claim"] == "realm_access"

    def test_nested_flatten(self):
        """Test nested objects flatten into dash-joined names."""
        headers = claims_to_headers(
            {"active": True, "realm_access": {"roles": ["user", "admin"], "meta": {"level": 2}}},
            nested="flatten"
        )

        assert headers == {
            "Token-active": "true",
            "Token-realm_access-roles": "user,admin",
            "Token-realm_access-meta-level": "2",
        }

    def test_flatten_rejects_objects_inside_arrays(self):
        """Test arrays of objects cannot be flattened."""
        with pytest.raises(NestedClaimError) as exc_info:
            claims_to_headers({"groups": [{"name": "ops"}]}, nested="flatten")

        assert exc_info.value.details["claim"] == "groups"

    def test_unknown_policy(self):
        """Test an unknown nested policy is a programming error."""
        with pytest.raises(ValueError):
            claims_to_headers({"sub": "user1"}, nested="ignore")


class TestEncodeHeaders:
    """Test cases for encode_headers."""

    def test_utf8_values(self):
        """Test values outside latin-1 are sent as UTF-8 bytes."""
        raw = encode_headers({"Token-name": "李雷", "Token-active": "true"})

        assert raw == [
            (b"token-name", "李雷".encode("utf-8")),
            (b"token-active", b"true"),
        ]

    def test_lone_surrogate_does_not_raise(self):
        """Test a JSON \\ud800 escape still produces a header."""
        claims = parse_introspection_response('{"name": "\\ud800"}')

        raw = encode_headers(claims_to_headers(claims))

        assert raw == [(b"token-name", b"\xed\xa0\x80")]
