"""Pure functions for reconciling a service principal's credential list.

The directory only offers "replace the whole list" updates, so every change
is computed locally against a snapshot and written back in one call.  None
of these functions perform I/O or mutate their inputs.
"""

import base64
import binascii
import re
import uuid
from datetime import datetime, timedelta, timezone

from aadcred.constants import DEFAULT_KEY_USAGE
from aadcred.models import Credential
from aadcred.specs import CertificateSpec, CredentialSpec, PasswordSpec


class AlreadyExistsError(Exception):
    """Raised when a credential with the candidate's key ID is already present."""

    def __init__(self, key_id: str) -> None:
        super().__init__(f"credential with key ID {key_id!r} already exists")
        self.key_id = key_id


class CredentialSpecError(ValueError):
    """Raised when caller-supplied credential fields cannot be turned into a credential."""


def add(existing: list[Credential], candidate: Credential) -> list[Credential]:
    """Return a new list with ``candidate`` appended.

    Raises ``AlreadyExistsError`` if the key ID is already in use; callers
    treat that as "import the existing credential", not as a failure.
    """
    if find_by_key_id(existing, candidate.key_id) is not None:
        raise AlreadyExistsError(candidate.key_id)
    return [*existing, candidate]


def find_by_key_id(credentials: list[Credential], key_id: str) -> Credential | None:
    """Return the credential with ``key_id``, or None if absent."""
    for credential in credentials:
        if credential.key_id == key_id:
            return credential
    return None


def remove_by_key_id(credentials: list[Credential], key_id: str) -> list[Credential]:
    """Return a new list without ``key_id``.  Absent keys are a no-op."""
    return [c for c in credentials if c.key_id != key_id]


def certificate_credential_for(
    spec: CertificateSpec, now: datetime | None = None
) -> Credential:
    """Build the key credential described by ``spec``.

    The certificate is decoded according to ``spec.encoding`` and stored as
    base64 DER, which is what the directory expects in ``key``.
    """
    der = decode_certificate_value(spec.value, spec.encoding)
    start, end = _validity(spec, now)
    return Credential(
        key_id=spec.key_id or str(uuid.uuid4()),
        type=spec.type,
        usage=DEFAULT_KEY_USAGE,
        start_date=start,
        end_date=end,
        value=base64.b64encode(der).decode("ascii"),
    )


def password_credential_for(spec: PasswordSpec, now: datetime | None = None) -> Credential:
    """Build the password credential described by ``spec``."""
    start, end = _validity(spec, now)
    return Credential(
        key_id=spec.key_id or str(uuid.uuid4()),
        start_date=start,
        end_date=end,
        value=spec.value,
        display_name=spec.description,
    )


_PEM_BLOCK = re.compile(r"-----BEGIN [A-Z0-9 ]+-----(.*?)-----END [A-Z0-9 ]+-----", re.S)


def decode_certificate_value(value: str, encoding: str) -> bytes:
    """Decode certificate text into raw DER bytes.

    - ``pem``: the first ``-----BEGIN ...-----`` block is unwrapped.
    - ``base64``: the value is base64 DER (whitespace is ignored).
    - ``hex``: the value is hex-encoded DER.
    """
    if encoding == "pem":
        match = _PEM_BLOCK.search(value)
        if match is None:
            raise CredentialSpecError("value is not a PEM encoded certificate")
        value, encoding = match.group(1), "base64"

    if encoding not in ("base64", "hex"):
        raise CredentialSpecError(f"unsupported certificate encoding {encoding!r}")
    try:
        if encoding == "hex":
            der = bytes.fromhex(value)
        else:
            der = base64.b64decode("".join(value.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CredentialSpecError(f"certificate value could not be decoded: {exc}") from exc

    if not der:
        raise CredentialSpecError("certificate value is empty")
    return der


# Go-style durations, e.g. "8760h", "1h30m", "90s", "1.5h".
_DURATION = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:h|ms|m|s))+")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(h|ms|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_relative_duration(text: str) -> timedelta:
    """Parse a duration such as ``"8760h"`` or ``"1h30m"``."""
    if not _DURATION.fullmatch(text):
        raise CredentialSpecError(
            f"unable to parse end_date_relative {text!r} as a duration (e.g. '8760h')"
        )
    seconds = sum(
        float(amount) * _DURATION_UNITS[unit] for amount, unit in _DURATION_PART.findall(text)
    )
    return timedelta(seconds=seconds)


def _validity(spec: CredentialSpec, now: datetime | None) -> tuple[datetime, datetime]:
    start = spec.start_date or now or datetime.now(timezone.utc)
    if spec.end_date is not None:
        end = spec.end_date
    else:
        # The spec model guarantees one of the two is set.
        end = start + parse_relative_duration(spec.end_date_relative or "")
    if end <= start:
        raise CredentialSpecError("end date must be after start date")
    return start, end
