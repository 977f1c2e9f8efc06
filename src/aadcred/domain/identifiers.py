"""Pure functions for composing and parsing credential resource IDs.

A credential is addressed as ``<objectId>/<kind>/<keyId>``, e.g.
``00000000-0000-0000-0000-000000000001/certificate/9f1c...``.  The format is
stored in orchestrator state, so the delimiter and the component order must
never change.
"""

from aadcred.constants import ID_DELIMITER
from aadcred.models import CredentialIdentifier, CredentialKind


class IdentifierParseError(ValueError):
    """Raised when a resource ID is not a well-formed credential ID."""


def encode(object_id: str, kind: CredentialKind, key_id: str) -> str:
    """Compose the resource ID for a credential.

    Raises ``ValueError`` when a component is empty or contains the
    delimiter, since such an ID could not be parsed back unambiguously.
    """
    for label, part in (("object ID", object_id), ("key ID", key_id)):
        if not part:
            raise ValueError(f"{label} must not be empty")
        if ID_DELIMITER in part:
            raise ValueError(f"{label} {part!r} must not contain {ID_DELIMITER!r}")
    return ID_DELIMITER.join((object_id, kind.value, key_id))


def parse(value: str, kind: CredentialKind | None = None) -> CredentialIdentifier:
    """Split a resource ID into its components.

    When ``kind`` is given the kind segment must match it, so a password ID
    cannot be imported as a certificate and vice versa.
    """
    parts = value.split(ID_DELIMITER)
    if len(parts) != 3:
        raise IdentifierParseError(
            f"credential ID should be in the format "
            f"{{objectId}}/{{kind}}/{{keyId}} - but got {value!r}"
        )
    object_id, kind_segment, key_id = parts
    if not object_id:
        raise IdentifierParseError(f"object ID is empty in credential ID {value!r}")
    if not key_id:
        raise IdentifierParseError(f"key ID is empty in credential ID {value!r}")

    try:
        parsed_kind = CredentialKind(kind_segment)
    except ValueError:
        raise IdentifierParseError(
            f"unknown credential kind {kind_segment!r} in credential ID {value!r}"
        ) from None

    if kind is not None and parsed_kind is not kind:
        raise IdentifierParseError(
            f"credential ID {value!r} is a {parsed_kind.value} credential, "
            f"expected {kind.value}"
        )
    return CredentialIdentifier(object_id=object_id, kind=parsed_kind, key_id=key_id)
