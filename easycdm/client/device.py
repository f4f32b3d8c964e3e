"""
Device identity: the provisioned RSA key and client identification blob.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from easycdm.common.crypto import CryptoUtils
from easycdm.common.exceptions import ConfigError, DecryptionFailed
from easycdm.common.messages import HashAlgorithm

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

logger = logging.getLogger(__name__)


class DeviceIdentity:
    """A provisioned device.

    Read-only after construction and safe to share between sessions and
    threads. The private key is never serialized back out.
    """

    __slots__ = ("_client_id_blob", "_private_key", "security_level")

    def __init__(
        self,
        private_key: RSAPrivateKey,
        client_id_blob: bytes,
        security_level: int | None = None,
    ) -> None:
        if not isinstance(private_key, RSAPrivateKey):
            msg = "Device private key must be an RSA key"
            raise ConfigError(msg)
        if not client_id_blob:
            msg = "Device client identification blob is empty"
            raise ConfigError(msg)
        self._private_key = private_key
        self._client_id_blob = bytes(client_id_blob)
        self.security_level = security_level

    @property
    def client_id_blob(self) -> bytes:
        return self._client_id_blob

    @property
    def public_key(self) -> RSAPublicKey:
        return self._private_key.public_key()

    @property
    def key_size(self) -> int:
        return self._private_key.key_size

    def sign(
        self, data: bytes, hash_algorithm: HashAlgorithm = HashAlgorithm.SHA_1
    ) -> bytes:
        """RSA-PSS signature over ``data``, salt length equal to the digest."""
        return CryptoUtils.rsa_pss_sign(self._private_key, data, hash_algorithm)

    def decrypt_session_key(self, ciphertext: bytes) -> bytearray:
        """Unwrap the RSA-OAEP encrypted session key seed.

        Every failure raises the same DecryptionFailed with no chained cause.
        """
        try:
            return bytearray(CryptoUtils.rsa_oaep_decrypt(self._private_key, ciphertext))
        except DecryptionFailed:
            pass
        msg = "session key decryption failed"
        raise DecryptionFailed(msg)

    def __repr__(self) -> str:
        return (
            f"DeviceIdentity(key_size={self.key_size}, "
            f"client_id=<{len(self._client_id_blob)} bytes>)"
        )


def load_private_key(data: bytes) -> RSAPrivateKey:
    """Load an unencrypted RSA private key from PEM or DER, PKCS#8 or PKCS#1."""
    if not data:
        msg = "Device private key is empty"
        raise ConfigError(msg)
    try:
        if data.lstrip().startswith(b"-----BEGIN"):
            key = serialization.load_pem_private_key(data, password=None)
        else:
            key = serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        msg = f"Could not load device private key: {err}"
        raise ConfigError(msg) from err
    if not isinstance(key, RSAPrivateKey):
        msg = f"Device private key is {type(key).__name__}, expected RSA"
        raise ConfigError(msg)
    return key


def load_device(
    private_key_bytes: bytes,
    client_id_bytes: bytes,
    security_level: int | None = None,
) -> DeviceIdentity:
    """Build a DeviceIdentity from raw key and client id bytes.

    Raises:
        ConfigError: either input is empty, or the key is not a usable RSA
            private key.
    """
    device = DeviceIdentity(
        load_private_key(private_key_bytes), client_id_bytes, security_level
    )
    logger.debug("Loaded device with %d-bit key", device.key_size)
    return device
