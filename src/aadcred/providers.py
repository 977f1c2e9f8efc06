"""Directory provider protocol and an in-memory implementation."""

import threading
from typing import Protocol

from aadcred.context import OperationContext
from aadcred.models import (
    Credential,
    CredentialKind,
    Found,
    NotFound,
    ParentLookup,
    ServicePrincipal,
)


class DirectoryError(Exception):
    """Raised when a call to the directory fails."""


class DirectoryProvider(Protocol):
    """Protocol that all directory backends must satisfy."""

    def get_service_principal(self, object_id: str, ctx: OperationContext) -> ParentLookup:
        """Return ``Found`` or ``NotFound``; raise ``DirectoryError`` on transport failure."""
        ...

    def list_credentials(
        self, object_id: str, kind: CredentialKind, ctx: OperationContext
    ) -> list[Credential]:
        """Return the current credentials of ``kind`` in directory order."""
        ...

    def update_credentials(
        self,
        object_id: str,
        kind: CredentialKind,
        credentials: list[Credential],
        ctx: OperationContext,
    ) -> None:
        """Replace the whole list of ``kind`` credentials."""
        ...


class InMemoryDirectory:
    """Thread-safe in-memory directory.

    ``replication_lag`` simulates eventual consistency: after each update the
    next ``replication_lag`` list calls for that object and kind still return
    the list as it was before the write.
    """

    def __init__(
        self,
        service_principals: list[ServicePrincipal] | None = None,
        replication_lag: int = 0,
    ) -> None:
        self._lock = threading.Lock()
        self._principals: dict[str, ServicePrincipal] = {}
        self._credentials: dict[tuple[str, CredentialKind], list[Credential]] = {}
        self._stale: dict[tuple[str, CredentialKind], tuple[int, list[Credential]]] = {}
        self.replication_lag = replication_lag
        self.update_calls = 0
        for sp in service_principals or []:
            self.add_service_principal(sp)

    def add_service_principal(self, sp: ServicePrincipal) -> None:
        with self._lock:
            self._principals[sp.object_id] = sp

    def remove_service_principal(self, object_id: str) -> None:
        """Delete a principal and its credentials. No-op if absent."""
        with self._lock:
            self._principals.pop(object_id, None)
            for kind in CredentialKind:
                self._credentials.pop((object_id, kind), None)
                self._stale.pop((object_id, kind), None)

    # ------------------------------------------------------------------
    # DirectoryProvider protocol
    # ------------------------------------------------------------------

    def get_service_principal(self, object_id: str, ctx: OperationContext) -> ParentLookup:
        ctx.check(f"retrieving service principal {object_id!r}")
        with self._lock:
            sp = self._principals.get(object_id)
        return NotFound(object_id) if sp is None else Found(sp)

    def list_credentials(
        self, object_id: str, kind: CredentialKind, ctx: OperationContext
    ) -> list[Credential]:
        ctx.check(f"listing {kind.value} credentials for {object_id!r}")
        key = (object_id, kind)
        with self._lock:
            if object_id not in self._principals:
                raise DirectoryError(f"service principal {object_id!r} does not exist")
            stale = self._stale.get(key)
            if stale is not None:
                remaining, snapshot = stale
                if remaining <= 1:
                    del self._stale[key]
                else:
                    self._stale[key] = (remaining - 1, snapshot)
                return list(snapshot)
            return list(self._credentials.get(key, []))

    def update_credentials(
        self,
        object_id: str,
        kind: CredentialKind,
        credentials: list[Credential],
        ctx: OperationContext,
    ) -> None:
        ctx.check(f"updating {kind.value} credentials for {object_id!r}")
        key = (object_id, kind)
        with self._lock:
            if object_id not in self._principals:
                raise DirectoryError(f"service principal {object_id!r} does not exist")
            previous = self._credentials.get(key, [])
            self._credentials[key] = list(credentials)
            if self.replication_lag > 0:
                self._stale[key] = (self.replication_lag, list(previous))
            self.update_calls += 1
