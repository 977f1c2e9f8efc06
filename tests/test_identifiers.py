"""Unit tests for aadcred.domain.identifiers: pure ID composition and parsing."""

import pytest

from aadcred.domain.identifiers import IdentifierParseError, encode, parse
from aadcred.models import CredentialIdentifier, CredentialKind


class TestEncode:
    def test_joins_components_in_order(self):
        """
        Given an object ID, a kind and a key ID
        When encode is called
        Then the result is objectId/kind/keyId
        """
        assert encode("sp-1", CredentialKind.CERTIFICATE, "key-abc") == "sp-1/certificate/key-abc"

    def test_password_kind_segment(self):
        """
        Given the password kind
        When encode is called
        Then the kind segment is 'password'
        """
        assert encode("sp-1", CredentialKind.PASSWORD, "k") == "sp-1/password/k"

    @pytest.mark.parametrize(
        "object_id,key_id", [("", "k"), ("sp", ""), ("a/b", "k"), ("sp", "k/1")]
    )
    def test_rejects_empty_or_delimited_components(self, object_id, key_id):
        """
        Given a component that is empty or contains '/'
        When encode is called
        Then a ValueError is raised instead of producing an ambiguous ID
        """
        with pytest.raises(ValueError):
            encode(object_id, CredentialKind.CERTIFICATE, key_id)


class TestParse:
    def test_parses_well_formed_id(self):
        """
        Given a well-formed certificate ID
        When parse is called
        Then each component is recovered
        """
        assert parse("sp-1/certificate/key-abc") == CredentialIdentifier(
            object_id="sp-1", kind=CredentialKind.CERTIFICATE, key_id="key-abc"
        )

    @pytest.mark.parametrize(
        "object_id,kind,key_id",
        [
            ("00000000-0000-0000-0000-000000000001", CredentialKind.CERTIFICATE, "9f1c2d3e"),
            ("sp-1", CredentialKind.PASSWORD, "key-abc"),
            ("x", CredentialKind.PASSWORD, "y"),
        ],
    )
    def test_round_trip(self, object_id, kind, key_id):
        """
        Given valid components without delimiters
        When they are encoded and parsed back
        Then the original components are returned
        """
        ident = parse(encode(object_id, kind, key_id))
        assert (ident.object_id, ident.kind, ident.key_id) == (object_id, kind, key_id)

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "sp-1",
            "sp-1/certificate",
            "sp-1/certificate/k/extra",
            "/certificate/k",
            "sp-1/certificate/",
        ],
    )
    def test_malformed_ids_raise_parse_error(self, value):
        """
        Given an ID with the wrong number of components or an empty component
        When parse is called
        Then IdentifierParseError is raised
        """
        with pytest.raises(IdentifierParseError):
            parse(value)

    def test_unknown_kind_raises_parse_error(self):
        """
        Given an ID whose kind segment is not a credential kind
        When parse is called
        Then IdentifierParseError is raised naming the kind
        """
        with pytest.raises(IdentifierParseError, match="secret"):
            parse("sp-1/secret/k")

    def test_expected_kind_mismatch_raises_parse_error(self):
        """
        Given a password ID
        When parse is called expecting a certificate
        Then IdentifierParseError is raised
        """
        with pytest.raises(IdentifierParseError, match="expected certificate"):
            parse("sp-1/password/k", CredentialKind.CERTIFICATE)

    def test_parse_error_is_a_value_error(self):
        """
        Given a malformed ID
        When parse fails
        Then the error can be handled as a ValueError
        """
        with pytest.raises(ValueError):
            parse("nope")

    def test_str_of_parsed_id_is_the_original_id(self):
        """
        Given a persisted certificate ID
        When it is parsed and converted back with str()
        Then the original ID string is returned
        """
        value = "sp-1/certificate/key-abc"
        assert str(parse(value)) == value

    def test_str_matches_encode(self):
        ident = CredentialIdentifier("sp-1", CredentialKind.PASSWORD, "k")
        assert str(ident) == encode("sp-1", CredentialKind.PASSWORD, "k")
