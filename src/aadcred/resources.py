"""Create/read/delete handlers for service principal credentials.

Each handler works against the orchestrator's ``ResourceData`` record:
``create`` sets its ID, ``read`` refreshes its attributes (or clears the ID
when the credential has drifted away), ``delete`` removes the credential
from the directory.

Create and delete hold the per-principal lock across the whole
read-merge-write sequence, because the directory only supports replacing
the complete credential list.
"""

import logging
import threading
from collections.abc import Callable

from pydantic import ValidationError

from aadcred.config import Settings
from aadcred.constants import (
    CERTIFICATE_RESOURCE,
    PASSWORD_RESOURCE,
    SERVICE_PRINCIPAL_RESOURCE,
)
from aadcred.context import OperationContext
from aadcred.domain.credentials import (
    AlreadyExistsError,
    CredentialSpecError,
    add,
    certificate_credential_for,
    find_by_key_id,
    password_credential_for,
    remove_by_key_id,
)
from aadcred.domain.identifiers import encode, parse
from aadcred.domain.replication import ReplicationTimeoutError, wait_for_visibility
from aadcred.locks import LockTable
from aadcred.models import (
    Credential,
    CredentialIdentifier,
    CredentialKind,
    NotFound,
    ResourceData,
    format_timestamp,
)
from aadcred.providers import DirectoryError, DirectoryProvider
from aadcred.specs import CertificateSpec, CredentialSpec, PasswordSpec

logger = logging.getLogger(__name__)


class ImportAsExistsError(Exception):
    """Raised when the credential to create already exists in the directory.

    The orchestrator should ask the user to import ``resource_id`` instead.
    """

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"A resource with the ID {resource_id!r} already exists - to be managed it "
            f"needs to be imported into state as {resource_type!r}"
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class CredentialOperationError(Exception):
    """Raised when a directory call fails; names the operation and object."""


_SPEC_MODELS: dict[CredentialKind, type[CredentialSpec]] = {
    CredentialKind.CERTIFICATE: CertificateSpec,
    CredentialKind.PASSWORD: PasswordSpec,
}

_BUILDERS: dict[CredentialKind, Callable[..., Credential]] = {
    CredentialKind.CERTIFICATE: certificate_credential_for,
    CredentialKind.PASSWORD: password_credential_for,
}

_RESOURCE_TYPES: dict[CredentialKind, str] = {
    CredentialKind.CERTIFICATE: CERTIFICATE_RESOURCE,
    CredentialKind.PASSWORD: PASSWORD_RESOURCE,
}


class CredentialResource:
    """Lifecycle handlers for one kind of service principal credential.

    Args:
        kind: Certificate or password.
        directory: Backend the credentials live in.
        locks: Lock table shared by every handler that mutates principals.
        settings: Timeouts and poll interval; defaults when omitted.
    """

    def __init__(
        self,
        kind: CredentialKind,
        directory: DirectoryProvider,
        locks: LockTable,
        settings: Settings | None = None,
    ) -> None:
        self.kind = kind
        self.resource_type = _RESOURCE_TYPES[kind]
        self._directory = directory
        self._locks = locks
        self._settings = settings or Settings()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        data: ResourceData,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Add the credential described by ``data`` and record its ID.

        Raises ``ImportAsExistsError`` if the key ID is already present, and
        ``ReplicationTimeoutError`` (with ``resource_id`` set) if the write
        succeeded but never became visible.
        """
        ctx = OperationContext(
            timeout if timeout is not None else self._settings.timeouts.create, cancel
        )
        spec = self._spec_from(data)
        try:
            credential = _BUILDERS[self.kind](spec)
        except CredentialSpecError as exc:
            raise CredentialSpecError(
                f"generating {self.kind.value} credentials for object ID "
                f"{spec.service_principal_id!r}: {exc}"
            ) from exc

        object_id = spec.service_principal_id
        resource_id = encode(object_id, self.kind, credential.key_id)

        with self._locks.held(SERVICE_PRINCIPAL_RESOURCE, object_id, ctx.remaining()):
            existing = self._list(object_id, ctx)
            try:
                updated = add(existing, credential)
            except AlreadyExistsError:
                raise ImportAsExistsError(self.resource_type, resource_id) from None

            self._update(
                object_id,
                updated,
                ctx,
                f"creating {self.kind.value} credential {credential.key_id!r}",
            )

            try:
                wait_for_visibility(
                    credential.key_id,
                    ctx.remaining() or 0.0,
                    lambda: self._directory.list_credentials(object_id, self.kind, ctx),
                    interval=self._settings.replication_poll_interval,
                    cancel=ctx.cancel,
                )
            except ReplicationTimeoutError as exc:
                exc.resource_id = resource_id
                raise

        logger.info("Created %s credential %s", self.kind.value, resource_id)
        data.set_id(resource_id)
        self.read(data, cancel=cancel)

    def read(
        self,
        data: ResourceData,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Refresh ``data`` from the directory, clearing its ID on drift."""
        ctx = OperationContext(
            timeout if timeout is not None else self._settings.timeouts.read, cancel
        )
        ident = self.parse_id(data.id)

        if not self._parent_exists(ident.object_id, ctx):
            data.clear()
            return

        credential = find_by_key_id(self._list(ident.object_id, ctx), ident.key_id)
        if credential is None:
            logger.debug(
                "%s credential %r (ID %r) was not found - removing from state!",
                self.kind.value,
                ident.key_id,
                ident.object_id,
            )
            data.clear()
            return

        data.set("service_principal_id", ident.object_id)
        data.set("key_id", ident.key_id)
        remote = {
            "start_date": credential.start_date and format_timestamp(credential.start_date),
            "end_date": credential.end_date and format_timestamp(credential.end_date),
        }
        if self.kind is CredentialKind.CERTIFICATE:
            remote["type"] = credential.type
        else:
            remote["description"] = credential.display_name
        # Unset remote fields must not leave stale values behind.
        for name, value in remote.items():
            if value is None:
                data.unset(name)
            else:
                data.set(name, value)

    def delete(
        self,
        data: ResourceData,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Remove the credential.  A missing principal or key is a no-op."""
        ctx = OperationContext(
            timeout if timeout is not None else self._settings.timeouts.delete, cancel
        )
        ident = self.parse_id(data.id)

        with self._locks.held(SERVICE_PRINCIPAL_RESOURCE, ident.object_id, ctx.remaining()):
            if not self._parent_exists(ident.object_id, ctx):
                return

            existing = self._list(ident.object_id, ctx)
            updated = remove_by_key_id(existing, ident.key_id)
            if len(updated) == len(existing):
                logger.debug(
                    "%s credential %r (ID %r) is already gone - nothing to write",
                    self.kind.value,
                    ident.key_id,
                    ident.object_id,
                )
                return

            self._update(
                ident.object_id,
                updated,
                ctx,
                f"removing {self.kind.value} credential {ident.key_id!r}",
            )
        logger.info("Deleted %s credential %s", self.kind.value, data.id)

    def parse_id(self, resource_id: str) -> CredentialIdentifier:
        """Parse a resource ID, requiring it to be of this handler's kind."""
        return parse(resource_id, self.kind)

    validate_import_id = parse_id

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _spec_from(self, data: ResourceData) -> CredentialSpec:
        model = _SPEC_MODELS[self.kind]
        try:
            return model.model_validate(data.attributes)
        except ValidationError as exc:
            raise CredentialSpecError(f"Invalid {self.resource_type} attributes: {exc}") from exc

    def _parent_exists(self, object_id: str, ctx: OperationContext) -> bool:
        try:
            lookup = self._directory.get_service_principal(object_id, ctx)
        except DirectoryError as exc:
            raise CredentialOperationError(
                f"retrieving service principal with ID {object_id!r}: {exc}"
            ) from exc
        if isinstance(lookup, NotFound):
            logger.debug(
                "Service Principal with Object ID %r was not found - removing from state!",
                object_id,
            )
            return False
        return True

    def _list(self, object_id: str, ctx: OperationContext) -> list[Credential]:
        try:
            return self._directory.list_credentials(object_id, self.kind, ctx)
        except DirectoryError as exc:
            raise CredentialOperationError(
                f"listing {self.kind.value} credentials for service principal "
                f"with ID {object_id!r}: {exc}"
            ) from exc

    def _update(
        self, object_id: str, credentials: list[Credential], ctx: OperationContext, action: str
    ) -> None:
        try:
            self._directory.update_credentials(object_id, self.kind, credentials, ctx)
        except DirectoryError as exc:
            raise CredentialOperationError(
                f"{action} for service principal with ID {object_id!r}: {exc}"
            ) from exc
