"""Domain models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from aadcred.constants import ID_DELIMITER


class CredentialKind(Enum):
    CERTIFICATE = "certificate"
    PASSWORD = "password"


@dataclass(frozen=True)
class CredentialIdentifier:
    """Composite ID of a credential: the owning object, its kind and its key."""

    object_id: str
    kind: CredentialKind
    key_id: str

    def __str__(self) -> str:
        return ID_DELIMITER.join((self.object_id, self.kind.value, self.key_id))


@dataclass(frozen=True)
class Credential:
    """A single key or password credential as stored on a service principal.

    Identity is ``key_id`` within one parent.  Instances are immutable: the
    merge functions hand back the very objects fetched from the directory.
    """

    key_id: str
    type: str | None = None
    usage: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    value: str | None = None
    hint: str | None = None
    display_name: str | None = None
    custom_key_identifier: str | None = None


@dataclass(frozen=True)
class ServicePrincipal:
    object_id: str
    app_id: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class Found:
    record: ServicePrincipal


@dataclass(frozen=True)
class NotFound:
    object_id: str


# Result of looking up a parent object.  Transport failures are raised.
ParentLookup = Union[Found, NotFound]


@dataclass
class ResourceData:
    """The orchestrator's persisted record for one resource instance.

    An empty ``id`` means the resource is absent: the orchestrator drops it
    from state after the handler returns.
    """

    id: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def unset(self, name: str) -> None:
        self.attributes.pop(name, None)

    def set_id(self, resource_id: str) -> None:
        self.id = resource_id

    def clear(self) -> None:
        self.id = ""

    @property
    def exists(self) -> bool:
        return bool(self.id)


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as RFC 3339, using ``Z`` for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat(timespec="seconds")
    return text.removesuffix("+00:00") + "Z" if text.endswith("+00:00") else text
