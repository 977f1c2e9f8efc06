"""Application-wide constants."""

APP_NAME = "aadcred"

ID_DELIMITER = "/"

# Lock namespace shared by every credential handler that mutates a service principal.
SERVICE_PRINCIPAL_RESOURCE = "azuread_service_principal"

CERTIFICATE_RESOURCE = "azuread_service_principal_certificate"
PASSWORD_RESOURCE = "azuread_service_principal_password"

CERTIFICATE_TYPES: list[str] = ["AsymmetricX509Cert", "Symmetric"]
DEFAULT_CERTIFICATE_TYPE: str = "AsymmetricX509Cert"

CERTIFICATE_ENCODINGS: list[str] = ["pem", "base64", "hex"]
DEFAULT_CERTIFICATE_ENCODING: str = "pem"

DEFAULT_KEY_USAGE = "Verify"

GRAPH_URL = "https://graph.microsoft.com/v1.0"

# Graph property holding each credential kind on a servicePrincipal.
GRAPH_CREDENTIAL_PROPERTIES: dict[str, str] = {
    "certificate": "keyCredentials",
    "password": "passwordCredentials",
}

# Seconds.
DEFAULT_CREATE_TIMEOUT: float = 300.0
DEFAULT_READ_TIMEOUT: float = 300.0
DEFAULT_DELETE_TIMEOUT: float = 300.0
DEFAULT_POLL_INTERVAL: float = 2.0
