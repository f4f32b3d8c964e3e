"""
License response validation and key derivation.

The order of checks matters: the envelope is authenticated before the
License payload is decoded, and nothing from the payload is used until
then.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from easycdm.common.config import Config
from easycdm.common.crypto import CryptoUtils
from easycdm.common.exceptions import (
    LicenseRejected,
    MalformedMessage,
    SessionMismatch,
)
from easycdm.common.logging_utils import hex_id
from easycdm.common.messages import (
    KeyType,
    License,
    MessageType,
    SecurityLevel,
    decode,
    enum_value,
    message_type,
)
from easycdm.common.models import Key
from easycdm.common.secure_buffer import KeyBuffer
from easycdm.common.trust import verify_response_signature

if TYPE_CHECKING:
    from easycdm.client.device import DeviceIdentity
    from easycdm.common.messages import SignedMessage
    from easycdm.common.trust import TrustedCertificate

logger = logging.getLogger(__name__)

ENCRYPTION_LABEL = b"ENCRYPTION"
AUTHENTICATION_LABEL = b"AUTHENTICATION"
MAC_KEY_SIZE = 32


@dataclass
class SessionKeys:
    """Keys derived from the session key seed."""

    enc_key: KeyBuffer
    mac_key_server: KeyBuffer
    mac_key_client: KeyBuffer

    def wipe(self) -> None:
        self.enc_key.wipe()
        self.mac_key_server.wipe()
        self.mac_key_client.wipe()


def derive_session_keys(seed: bytes | bytearray, context: bytes) -> SessionKeys:
    """Derive the encryption and integrity keys for one request.

    ``context`` is the exact serialized LicenseRequest that was signed and
    sent. The 512-bit authentication output splits into the server key
    (first 32 bytes) and the client key (last 32 bytes).
    """
    config = Config()
    enc = CryptoUtils.cmac_kdf(seed, ENCRYPTION_LABEL, context, config.ENC_KEY_BITS)
    auth = CryptoUtils.cmac_kdf(
        seed, AUTHENTICATION_LABEL, context, config.MAC_KEY_BITS
    )
    keys = SessionKeys(
        enc_key=KeyBuffer(enc),
        mac_key_server=KeyBuffer(auth[:MAC_KEY_SIZE]),
        mac_key_client=KeyBuffer(auth[MAC_KEY_SIZE:]),
    )
    auth[:] = bytes(len(auth))
    return keys


@dataclass
class KeyEntry:
    """One unwrapped key container. The key bytes live in ``key``."""

    kid: bytes
    key: KeyBuffer
    type: KeyType
    level: SecurityLevel | None = None
    track_label: str | None = None

    def to_key(self) -> Key:
        """A caller-owned copy of this key."""
        return Key(
            kid=self.kid,
            key=bytes(self.key),
            type=self.type,
            level=self.level,
            track_label=self.track_label,
        )


@dataclass
class LicenseResult:
    keys: SessionKeys
    license: License
    entries: list[KeyEntry] = field(default_factory=list)
    content_keys: dict[bytes, KeyBuffer] = field(default_factory=dict)

    def wipe(self) -> None:
        """Zero every derived and unwrapped key and drop the references."""
        self.keys.wipe()
        for entry in self.entries:
            entry.key.wipe()
        self.entries.clear()
        self.content_keys.clear()


class ResponseProcessor:
    """Authenticates a LICENSE response and unwraps its keys."""

    def __init__(self, device: DeviceIdentity) -> None:
        self.device = device

    def process(
        self,
        response: SignedMessage,
        request_context: bytes,
        session_id: bytes,
        signer_certificate: TrustedCertificate | None = None,
    ) -> LicenseResult:
        """Validate ``response`` against the request it answers.

        Raises:
            LicenseRejected: the server sent an ERROR_RESPONSE.
            MalformedMessage: required envelope fields are missing or the
                payload does not decode.
            DecryptionFailed: the session key or a content key does not
                decrypt.
            SignatureInvalid: the envelope signature does not verify.
            SessionMismatch: the license answers another session.
        """
        kind = message_type(response)
        if kind is MessageType.ERROR_RESPONSE:
            msg = "License server returned an error response"
            raise LicenseRejected(msg, response.msg)
        if kind is not MessageType.LICENSE:
            msg = f"Expected a LICENSE message, got {kind.name}"
            raise MalformedMessage(msg)
        if not response.msg or not response.signature:
            msg = "License response is missing its payload or signature"
            raise MalformedMessage(msg)
        if not response.session_key:
            msg = "License response carries no session key"
            raise MalformedMessage(msg)

        if signer_certificate is not None:
            verify_response_signature(
                response.msg, response.signature, signer_certificate.public_key
            )

        with KeyBuffer(self.device.decrypt_session_key(response.session_key)) as seed:
            keys = derive_session_keys(seed.value, request_context)

        try:
            if signer_certificate is None:
                CryptoUtils.verify_hmac_sha256(
                    keys.mac_key_server.value,
                    response.oemcrypto_core_message + response.msg,
                    response.signature,
                )
            license_ = decode(License, response.msg)
            self._check_request_id(license_, session_id)
            result = LicenseResult(keys=keys, license=license_)
            self._unwrap_keys(result)
        except BaseException:
            keys.wipe()
            raise

        logger.info(
            "Session %s: unwrapped %d key(s), %d content key(s)",
            hex_id(session_id),
            len(result.entries),
            len(result.content_keys),
        )
        return result

    @staticmethod
    def _check_request_id(license_: License, session_id: bytes) -> None:
        request_id = license_.id.request_id
        if request_id and request_id != session_id:
            msg = (
                f"License answers request {hex_id(request_id)}, "
                f"not session {hex_id(session_id)}"
            )
            raise SessionMismatch(msg)

    @staticmethod
    def _unwrap_keys(result: LicenseResult) -> None:
        """Decrypt every usable container.

        Containers without key bytes, an IV or a key type this client
        knows are skipped. For a repeated content key id the last container
        in wire order wins.
        """
        enc_key = result.keys.enc_key.value
        try:
            for container in result.license.key:
                key_type = enum_value(container, "type", KeyType)
                if not container.key or not container.iv or key_type is None:
                    logger.debug(
                        "Skipping key container %s", hex_id(container.id)
                    )
                    continue
                plaintext = KeyBuffer(
                    bytearray(
                        CryptoUtils.aes_cbc_decrypt(
                            enc_key, container.iv, container.key
                        )
                    )
                )
                entry = KeyEntry(
                    kid=container.id,
                    key=plaintext,
                    type=key_type,
                    level=enum_value(container, "level", SecurityLevel),
                    track_label=container.track_label or None,
                )
                result.entries.append(entry)
                if key_type is KeyType.CONTENT:
                    result.content_keys[entry.kid] = plaintext
                    logger.debug("Content key %s unwrapped", hex_id(entry.kid))
        except BaseException:
            result.wipe()
            raise
