"""
Pydantic models for caller-facing records.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from easycdm.common.messages import KeyType, LicenseType, SecurityLevel

KID_SIZE = 16


class Key(BaseModel):
    """A decrypted key from a license response."""

    model_config = ConfigDict(frozen=True)

    kid: bytes
    key: bytes = Field(repr=False)
    type: KeyType
    level: SecurityLevel | None = None
    track_label: str | None = None

    @property
    def kid_uuid(self) -> UUID | None:
        """Key id as a UUID when it is 16 bytes long."""
        return UUID(bytes=self.kid) if len(self.kid) == KID_SIZE else None


class ClientConfig(BaseModel):
    license_url: str
    headers: dict[str, str] = Field(default_factory=dict)
    privacy_mode: bool = False
    service_certificate: str | None = None
    license_type: LicenseType = LicenseType.STREAMING
    protocol_version: int | None = None
    request_timeout: int | None = None
