"""
License request construction.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import TYPE_CHECKING, Any

from easycdm.common.config import Config
from easycdm.common.crypto import CryptoUtils
from easycdm.common.exceptions import ConfigError
from easycdm.common.logging_utils import hex_id
from easycdm.common.messages import (
    ContentIdentification,
    EncryptedClientIdentification,
    HashAlgorithm,
    LicenseRequest,
    LicenseType,
    MessageType,
    ProtocolVersion,
    RequestType,
    SignedMessage,
    WidevinePsshData,
)
from easycdm.common.secure_buffer import KeyBuffer

if TYPE_CHECKING:
    from easycdm.client.device import DeviceIdentity
    from easycdm.common.trust import TrustedCertificate

logger = logging.getLogger(__name__)


def hash_for_protocol(version: ProtocolVersion) -> HashAlgorithm:
    """Digest used for request signatures at a given protocol version."""
    if version is ProtocolVersion.VERSION_2_2:
        return HashAlgorithm.SHA_256
    return HashAlgorithm.SHA_1


def resolve_protocol_version(value: int | None = None) -> ProtocolVersion:
    if value is None:
        value = Config().PROTOCOL_VERSION
    try:
        return ProtocolVersion(value)
    except ValueError:
        msg = f"Unsupported protocol version: {value}"
        raise ConfigError(msg) from None


def encrypt_client_id(
    client_id_blob: bytes,
    service_cert: TrustedCertificate,
) -> EncryptedClientIdentification:
    """Wrap the client id toward the holder of ``service_cert``.

    A fresh AES-128 privacy key and IV encrypt the blob with AES-CBC; the
    privacy key itself is RSA-OAEP encrypted under the certificate's key.
    """
    config = Config()
    with KeyBuffer(CryptoUtils.random_bytes(config.PRIVACY_KEY_SIZE)) as privacy_key:
        iv = CryptoUtils.random_bytes(16)
        encrypted = CryptoUtils.aes_cbc_encrypt(privacy_key.value, iv, client_id_blob)
        wrapped_key = CryptoUtils.rsa_oaep_encrypt(
            service_cert.public_key, bytes(privacy_key)
        )
    return EncryptedClientIdentification(
        provider_id=service_cert.provider_id,
        service_certificate_serial_number=service_cert.serial_number,
        encrypted_client_id=encrypted,
        encrypted_client_id_iv=iv,
        encrypted_privacy_key=wrapped_key,
    )


class RequestBuilder:
    """Builds signed LICENSE_REQUEST messages for one device."""

    def __init__(
        self,
        device: DeviceIdentity,
        protocol_version: ProtocolVersion | int | None = None,
    ) -> None:
        self.device = device
        self.protocol_version = resolve_protocol_version(protocol_version)
        self.config = Config()

    def new_nonce(self) -> int:
        """Key control nonce in ``[1, 2**31)``."""
        return 1 + secrets.randbelow(self.config.MAX_KEY_CONTROL_NONCE - 1)

    def build(
        self,
        session_id: bytes,
        content_id: bytes,
        *,
        license_type: LicenseType = LicenseType.STREAMING,
        service_cert: TrustedCertificate | None = None,
    ) -> SignedMessage:
        """Build and sign a license request.

        ``content_id`` is the init data from the content's PSSH and is
        embedded verbatim. With ``service_cert`` the client id is sent
        encrypted, otherwise in the clear. The signature covers exactly the
        serialized LicenseRequest placed in ``msg``.
        """
        if service_cert is not None:
            client_fields: dict[str, Any] = {
                "encrypted_client_id": encrypt_client_id(
                    self.device.client_id_blob, service_cert
                )
            }
        else:
            client_fields = {"client_id": self.device.client_id_blob}

        request = LicenseRequest(
            **client_fields,
            content_id=ContentIdentification(
                widevine_pssh_data=WidevinePsshData(
                    pssh_data=[bytes(content_id)],
                    license_type=license_type,
                    request_id=session_id,
                )
            ),
            type=RequestType.NEW,
            request_time=int(time.time()),
            protocol_version=self.protocol_version,
            key_control_nonce=self.new_nonce(),
        )
        payload = request.SerializeToString()
        signature = self.device.sign(
            payload, hash_for_protocol(self.protocol_version)
        )
        logger.debug(
            "Built license request for session %s (%s, privacy=%s)",
            hex_id(session_id),
            self.protocol_version.name,
            service_cert is not None,
        )
        return SignedMessage(
            type=MessageType.LICENSE_REQUEST,
            msg=payload,
            signature=signature,
        )
