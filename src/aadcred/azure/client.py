"""Thin wrapper around the Azure CLI for service principal credential operations.

All calls shell out to ``az rest`` against Microsoft Graph so no Graph SDK
dependency is required.  The caller is responsible for ensuring ``az`` is
authenticated (``az login`` or a service principal in the environment).

Raises ``AzureClientError`` on any non-zero exit code, and the more specific
``ResourceNotFoundError`` when Graph answers 404.
"""

import json
import logging
import re
import subprocess
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from aadcred.constants import GRAPH_CREDENTIAL_PROPERTIES, GRAPH_URL
from aadcred.context import OperationContext
from aadcred.models import (
    Credential,
    CredentialKind,
    Found,
    NotFound,
    ParentLookup,
    ServicePrincipal,
)
from aadcred.providers import DirectoryError

logger = logging.getLogger(__name__)

_NOT_FOUND = re.compile(r"Request_ResourceNotFound|Not Found\(|\(NotFound\)")
_FRACTION = re.compile(r"\.(\d{6})\d+")


class AzureClientError(DirectoryError):
    """Raised when an ``az`` CLI call returns a non-zero exit code or times out."""


class ResourceNotFoundError(AzureClientError):
    """Raised when Graph reports that the requested object does not exist."""


class AzureClient:
    """Shells out to the Azure CLI to read and replace service principal credentials.

    Implements the ``DirectoryProvider`` protocol.

    Args:
        graph_url: Microsoft Graph base URL including the API version.
        az_path: The ``az`` executable to invoke.
    """

    def __init__(self, graph_url: str = GRAPH_URL, az_path: str = "az") -> None:
        self._graph_url = graph_url.rstrip("/")
        self._az = az_path

    def get_service_principal(self, object_id: str, ctx: OperationContext) -> ParentLookup:
        """Return the principal, or ``NotFound`` if Graph answers 404."""
        try:
            data = self._get(f"servicePrincipals/{object_id}?$select=id,appId,displayName", ctx)
        except ResourceNotFoundError:
            return NotFound(object_id)
        return Found(
            ServicePrincipal(
                object_id=data.get("id", object_id),
                app_id=data.get("appId"),
                display_name=data.get("displayName"),
            )
        )

    def list_credentials(
        self, object_id: str, kind: CredentialKind, ctx: OperationContext
    ) -> list[Credential]:
        """Return the credentials of ``kind`` in the order Graph stores them.

        ``key`` is only returned for key credentials when the property is
        explicitly selected, which is needed to write the list back intact.
        """
        prop = GRAPH_CREDENTIAL_PROPERTIES[kind.value]
        data = self._get(f"servicePrincipals/{object_id}?$select={prop}", ctx)
        return [credential_from_graph(kind, item) for item in data.get(prop) or []]

    def update_credentials(
        self,
        object_id: str,
        kind: CredentialKind,
        credentials: list[Credential],
        ctx: OperationContext,
    ) -> None:
        """Replace the whole credential list of ``kind`` on the principal."""
        prop = GRAPH_CREDENTIAL_PROPERTIES[kind.value]
        body = {prop: [credential_to_graph(kind, c) for c in credentials]}
        logger.info(
            "Writing %d %s credential(s) to service principal %s",
            len(credentials),
            kind.value,
            object_id,
        )
        self._patch_via_file(f"servicePrincipals/{object_id}", body, ctx)

    def _get(self, path: str, ctx: OperationContext) -> dict[str, Any]:
        result = self._run(
            [
                self._az,
                "rest",
                "--method",
                "get",
                "--url",
                f"{self._graph_url}/{path}",
                "--output",
                "json",
            ],
            ctx,
        )
        data: dict[str, Any] = json.loads(result) if result.strip() else {}
        return data

    def _patch_via_file(self, path: str, body: dict[str, Any], ctx: OperationContext) -> None:
        """Send a JSON body through a temporary file.

        Certificate material and secrets never appear on the command line.
        """
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump(body, f)
            tmp = Path(f.name)
        try:
            self._run(
                [
                    self._az,
                    "rest",
                    "--method",
                    "patch",
                    "--url",
                    f"{self._graph_url}/{path}",
                    "--headers",
                    "Content-Type=application/json",
                    "--body",
                    f"@{tmp}",
                ],
                ctx,
            )
        finally:
            tmp.unlink(missing_ok=True)

    def _run(self, cmd: list[str], ctx: OperationContext) -> str:
        """Run a command, returning stdout. Raises AzureClientError on failure."""
        ctx.check(" ".join(cmd[:4]))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=ctx.remaining())
        except subprocess.TimeoutExpired as exc:
            raise AzureClientError(
                f"Command timed out after {exc.timeout:.1f}s:\n  {' '.join(cmd)}"
            ) from exc
        if result.returncode != 0:
            not_found = _NOT_FOUND.search(result.stderr)
            error_cls = ResourceNotFoundError if not_found else AzureClientError
            raise error_cls(
                f"Command failed (exit {result.returncode}):\n"
                f"  {' '.join(cmd)}\n"
                f"  stderr: {result.stderr.strip()}"
            )
        return result.stdout


def credential_from_graph(kind: CredentialKind, data: dict[str, Any]) -> Credential:
    """Convert a Graph ``keyCredential`` / ``passwordCredential`` into a Credential."""
    return Credential(
        key_id=data["keyId"],
        type=data.get("type"),
        usage=data.get("usage"),
        start_date=parse_graph_datetime(data.get("startDateTime")),
        end_date=parse_graph_datetime(data.get("endDateTime")),
        value=data.get("key") if kind is CredentialKind.CERTIFICATE else data.get("secretText"),
        hint=data.get("hint"),
        display_name=data.get("displayName"),
        custom_key_identifier=data.get("customKeyIdentifier"),
    )


def credential_to_graph(kind: CredentialKind, credential: Credential) -> dict[str, Any]:
    """Convert a Credential into the Graph JSON shape, omitting unset fields."""
    fields: dict[str, Any] = {
        "keyId": credential.key_id,
        "startDateTime": _format_graph_datetime(credential.start_date),
        "endDateTime": _format_graph_datetime(credential.end_date),
        "displayName": credential.display_name,
        "customKeyIdentifier": credential.custom_key_identifier,
    }
    if kind is CredentialKind.CERTIFICATE:
        fields.update(type=credential.type, usage=credential.usage, key=credential.value)
    else:
        fields.update(secretText=credential.value, hint=credential.hint)
    return {name: value for name, value in fields.items() if value is not None}


def parse_graph_datetime(value: str | None) -> datetime | None:
    """Parse a Graph timestamp such as ``2024-01-01T00:00:00.1234567Z``."""
    if not value:
        return None
    # Graph emits up to seven fractional digits; fromisoformat accepts six.
    value = _FRACTION.sub(r".\1", value)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_graph_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")
