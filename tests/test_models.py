"""Unit tests for domain models."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from aadcred.models import Credential, CredentialKind, ResourceData, format_timestamp


class TestCredential:
    def test_is_immutable(self):
        """
        Given a credential
        When a field is assigned
        Then FrozenInstanceError is raised
        """
        cred = Credential(key_id="a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            cred.key_id = "b"  # type: ignore[misc]

    def test_equality(self):
        assert Credential(key_id="a", type="Symmetric") == Credential(key_id="a", type="Symmetric")

    def test_optional_fields_default_to_none(self):
        cred = Credential(key_id="a")
        assert cred.type is None
        assert cred.start_date is None
        assert cred.end_date is None


class TestCredentialKind:
    def test_values_are_id_segments(self):
        assert CredentialKind("certificate") is CredentialKind.CERTIFICATE
        assert CredentialKind("password") is CredentialKind.PASSWORD


class TestResourceData:
    def test_new_record_is_absent(self):
        assert not ResourceData().exists

    def test_set_id_and_clear(self):
        """
        Given a record
        When set_id and then clear are called
        Then exists follows the ID
        """
        data = ResourceData()
        data.set_id("sp-1/certificate/k")
        assert data.exists
        data.clear()
        assert data.id == ""
        assert not data.exists

    def test_get_and_set(self):
        data = ResourceData()
        data.set("type", "Symmetric")
        assert data.get("type") == "Symmetric"
        assert data.get("missing", "x") == "x"

    def test_unset_removes_attribute(self):
        data = ResourceData(attributes={"description": "old"})
        data.unset("description")
        data.unset("never-set")
        assert data.attributes == {}


class TestFormatTimestamp:
    def test_utc_uses_z(self):
        assert format_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "2024-01-01T00:00:00Z"

    def test_offset_is_kept(self):
        tz = timezone(timedelta(hours=2))
        assert format_timestamp(datetime(2024, 1, 1, 12, tzinfo=tz)) == "2024-01-01T12:00:00+02:00"

    def test_microseconds_are_dropped(self):
        value = datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-01-01T00:00:00Z"

    def test_naive_is_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 1)) == "2024-01-01T00:00:00Z"
