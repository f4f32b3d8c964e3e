"""
Custom exceptions for the content decryption module.
"""

from __future__ import annotations


class CdmError(Exception):
    """Base exception for every failure raised by easycdm."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(CdmError):
    """Device identity material or a setting is missing or malformed."""


class MalformedMessage(CdmError):
    """A wire message could not be decoded."""


class CryptoError(CdmError):
    """Base exception for cryptographic failures."""


class SignatureInvalid(CryptoError):
    """A certificate or message signature did not verify."""


class DecryptionFailed(CryptoError):
    """RSA-OAEP or AES-CBC decryption failed.

    The message is intentionally the same for every cause.
    """


class MalformedCertificate(CryptoError):
    """A certificate is missing required fields."""


class SessionError(CdmError):
    """Base exception for session usage errors."""


class PrivacyModeRequiresCertificate(SessionError):
    """Privacy mode was requested without a service certificate."""


class NotReady(SessionError):
    """Keys were requested before they were derived."""


class InvalidStateTransition(SessionError):
    """An operation was called in a state that does not allow it."""

    def __init__(self, operation: str, state: object) -> None:
        name = getattr(state, "name", state)
        super().__init__(f"Cannot {operation} while session is {name}")
        self.operation = operation
        self.state = state


class SessionMismatch(SessionError):
    """A license response answers a different request."""


class LicenseRejected(CdmError):
    """The license server answered with an error message."""

    def __init__(self, message: str, payload: bytes = b"") -> None:
        super().__init__(message)
        self.payload = payload


class TransportError(CdmError):
    """The license server could not be reached or refused the challenge."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
