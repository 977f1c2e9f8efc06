"""Validated input fields for the credential resources.

The orchestrator hands the handlers a loose attribute dict; these models
turn it into typed, checked values before anything is sent to the directory.
"""

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator, model_validator

from aadcred.constants import (
    CERTIFICATE_ENCODINGS,
    CERTIFICATE_TYPES,
    DEFAULT_CERTIFICATE_ENCODING,
    DEFAULT_CERTIFICATE_TYPE,
)


class CredentialSpec(BaseModel):
    """Fields shared by certificate and password credentials."""

    # Computed attributes (e.g. a previously projected ``description``) may
    # be present in the record; they are not inputs.
    model_config = ConfigDict(extra="ignore")

    service_principal_id: str = Field(min_length=1)
    key_id: str | None = Field(default=None, min_length=1)
    start_date: AwareDatetime | None = None
    end_date: AwareDatetime | None = None
    end_date_relative: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _one_end_date(self) -> "CredentialSpec":
        if self.end_date is None and self.end_date_relative is None:
            raise ValueError("one of end_date or end_date_relative must be specified")
        if self.end_date is not None and self.end_date_relative is not None:
            raise ValueError("only one of end_date or end_date_relative may be specified")
        return self


class CertificateSpec(CredentialSpec):
    type: str = DEFAULT_CERTIFICATE_TYPE
    encoding: str = DEFAULT_CERTIFICATE_ENCODING
    value: str = Field(min_length=1)

    @field_validator("type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        if value not in CERTIFICATE_TYPES:
            raise ValueError(f"type must be one of {', '.join(CERTIFICATE_TYPES)}")
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        if value not in CERTIFICATE_ENCODINGS:
            raise ValueError(f"encoding must be one of {', '.join(CERTIFICATE_ENCODINGS)}")
        return value


class PasswordSpec(CredentialSpec):
    value: str = Field(min_length=1)
    description: str | None = None
