"""Cloud KMS data models.

CryptoKeyName identifies a key; the pydantic models describe the JSON
bodies of the encrypt, decrypt and get-key calls.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kmsbulk.config.models import KeyConfig
from kmsbulk.exceptions import ConfigurationError

# Resource ids: letters, digits, underscores and hyphens (project ids also
# allow dots and colons for domain-scoped projects)
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,63}$")
_PROJECT_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,100}$")

_RESOURCE_PATTERN = re.compile(
    r"^projects/(?P<project>[^/]+)/locations/(?P<location>[^/]+)"
    r"/keyRings/(?P<key_ring>[^/]+)/cryptoKeys/(?P<crypto_key>[^/]+)$"
)


@dataclass(frozen=True)
class CryptoKeyName:
    """Fully qualified Cloud KMS crypto key identifier."""

    project: str
    location: str
    key_ring: str
    crypto_key: str

    def __post_init__(self) -> None:
        if not _PROJECT_PATTERN.match(self.project):
            raise ValueError(f"Invalid project id: {self.project!r}")
        for label, value in (
            ("location", self.location),
            ("key ring", self.key_ring),
            ("crypto key", self.crypto_key),
        ):
            if not _ID_PATTERN.match(value):
                raise ValueError(f"Invalid {label} name: {value!r}")

    @property
    def resource_name(self) -> str:
        """The key's REST resource name."""
        return (
            f"projects/{self.project}/locations/{self.location}"
            f"/keyRings/{self.key_ring}/cryptoKeys/{self.crypto_key}"
        )

    def __str__(self) -> str:
        return self.resource_name

    @classmethod
    def parse(cls, name: str) -> CryptoKeyName:
        """Parse "projects/p/locations/l/keyRings/r/cryptoKeys/k".

        Raises:
            ValueError: If the name is not a crypto key resource name.
        """
        match = _RESOURCE_PATTERN.match(name.strip())
        if match is None:
            raise ValueError(f"Not a crypto key resource name: {name!r}")
        return cls(**match.groupdict())

    @classmethod
    def from_config(cls, config: KeyConfig) -> CryptoKeyName:
        """Build the key name from the [key] configuration section.

        Raises:
            ConfigurationError: If a part is missing or malformed.
        """
        if not config.is_complete:
            raise ConfigurationError(
                "Key identifier is incomplete: project, keyring and key are required"
            )
        try:
            return cls(
                project=config.project or "",
                location=config.location,
                key_ring=config.keyring or "",
                crypto_key=config.key or "",
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


def _require_base64(value: str) -> str:
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("must be standard base64") from e
    return value


class EncryptRequest(BaseModel):
    """Body of cryptoKeys.encrypt."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    plaintext: str = Field(min_length=1)

    @field_validator("plaintext")
    @classmethod
    def validate_plaintext(cls, v: str) -> str:
        """Plaintext travels base64 encoded."""
        return _require_base64(v)


class EncryptResponse(BaseModel):
    """Body returned by cryptoKeys.encrypt."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str | None = None
    ciphertext: str = ""


class DecryptRequest(BaseModel):
    """Body of cryptoKeys.decrypt."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ciphertext: str = Field(min_length=1)

    @field_validator("ciphertext")
    @classmethod
    def validate_ciphertext(cls, v: str) -> str:
        """Ciphertext travels base64 encoded."""
        return _require_base64(v.strip())


class DecryptResponse(BaseModel):
    """Body returned by cryptoKeys.decrypt.

    The service omits plaintext when it is empty.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    plaintext: str = ""


class CryptoKeyInfo(BaseModel):
    """Subset of the CryptoKey resource used by the configuration check."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str
    purpose: str | None = None
    create_time: str | None = Field(default=None, alias="createTime")
