"""Cryptographic primitives used by the license exchange.

Thin, stateless wrappers over ``cryptography``. The parameter choices are
part of the protocol and must not drift:

- RSA-PSS: MGF1 with the message digest, salt length equal to the digest
  length.
- RSA-OAEP: SHA-1 for both the label hash and MGF1, empty label.
- AES-CBC: PKCS#7 padding, caller supplied 16 byte IV.
- KDF: AES-CMAC in counter mode, one counter byte starting at 1.
"""

from __future__ import annotations

import hmac
import os
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import cmac, hashes
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from easycdm.common.exceptions import DecryptionFailed, SignatureInvalid
from easycdm.common.messages import HashAlgorithm

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import (
        RSAPrivateKey,
        RSAPublicKey,
    )

AES_BLOCK_SIZE = 16
CMAC_BLOCK_BITS = 128


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def hash_for(algorithm: HashAlgorithm | None) -> hashes.HashAlgorithm:
        """Map a wire hash tag to a digest. Unspecified means SHA-1."""
        if algorithm in (None, HashAlgorithm.UNSPECIFIED, HashAlgorithm.SHA_1):
            return hashes.SHA1()
        if algorithm is HashAlgorithm.SHA_256:
            return hashes.SHA256()
        if algorithm is HashAlgorithm.SHA_384:
            return hashes.SHA384()
        msg = f"Unsupported hash algorithm: {algorithm}"
        raise ValueError(msg)

    @staticmethod
    def _pss(digest: hashes.HashAlgorithm) -> padding.PSS:
        return padding.PSS(
            mgf=padding.MGF1(digest),
            salt_length=padding.PSS.DIGEST_LENGTH,
        )

    @staticmethod
    def rsa_pss_sign(
        private_key: RSAPrivateKey,
        data: bytes,
        algorithm: HashAlgorithm | None = HashAlgorithm.SHA_1,
    ) -> bytes:
        digest = CryptoUtils.hash_for(algorithm)
        return private_key.sign(data, CryptoUtils._pss(digest), digest)

    @staticmethod
    def rsa_pss_verify(
        public_key: RSAPublicKey,
        signature: bytes,
        data: bytes,
        algorithm: HashAlgorithm | None = HashAlgorithm.SHA_1,
    ) -> None:
        """Verify an RSA-PSS signature, raising SignatureInvalid on mismatch."""
        digest = CryptoUtils.hash_for(algorithm)
        try:
            public_key.verify(signature, data, CryptoUtils._pss(digest), digest)
        except InvalidSignature:
            msg = "RSA-PSS signature verification failed"
            raise SignatureInvalid(msg) from None

    @staticmethod
    def _oaep() -> padding.OAEP:
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA1()),
            algorithm=hashes.SHA1(),
            label=None,
        )

    @staticmethod
    def rsa_oaep_encrypt(public_key: RSAPublicKey, plaintext: bytes) -> bytes:
        return public_key.encrypt(plaintext, CryptoUtils._oaep())

    @staticmethod
    def rsa_oaep_decrypt(private_key: RSAPrivateKey, ciphertext: bytes) -> bytes:
        """Decrypt RSA-OAEP.

        Every failure is reported as the same DecryptionFailed, with no
        chained cause, so callers cannot tell padding from format errors.
        """
        try:
            return private_key.decrypt(ciphertext, CryptoUtils._oaep())
        except (ValueError, TypeError):
            pass
        msg = "Decryption failed"
        raise DecryptionFailed(msg)

    @staticmethod
    def aes_cbc_encrypt(
        key: bytes | bytearray, iv: bytes, plaintext: bytes, *, pad: bool = True
    ) -> bytes:
        if pad:
            padder = sym_padding.PKCS7(AES_BLOCK_SIZE * 8).padder()
            plaintext = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(iv)).encryptor()
        return encryptor.update(plaintext) + encryptor.finalize()

    @staticmethod
    def aes_cbc_decrypt(
        key: bytes | bytearray, iv: bytes, ciphertext: bytes, *, unpad: bool = True
    ) -> bytes:
        """Decrypt AES-CBC and strip PKCS#7 padding."""
        try:
            decryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(iv)).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            if unpad:
                unpadder = sym_padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()
                plaintext = unpadder.update(plaintext) + unpadder.finalize()
        except (ValueError, TypeError):
            pass
        else:
            return plaintext
        msg = "Decryption failed"
        raise DecryptionFailed(msg)

    @staticmethod
    def aes_ctr_decrypt(
        key: bytes | bytearray, counter_block: bytes, ciphertext: bytes
    ) -> bytes:
        """Decrypt AES-CTR with a full 16 byte initial counter block."""
        try:
            cipher = Cipher(algorithms.AES(bytes(key)), modes.CTR(counter_block))
            decryptor = cipher.decryptor()
        except ValueError:
            msg = "Decryption failed"
            raise DecryptionFailed(msg) from None
        return decryptor.update(ciphertext) + decryptor.finalize()

    @staticmethod
    def aes_cmac(key: bytes | bytearray, data: bytes) -> bytes:
        c = cmac.CMAC(algorithms.AES(bytes(key)))
        c.update(data)
        return c.finalize()

    @staticmethod
    def cmac_kdf(
        seed: bytes | bytearray, label: bytes, context: bytes, length_bits: int
    ) -> bytearray:
        """Counter-mode KDF built on AES-CMAC.

        Block ``i`` (starting at 1) is
        ``CMAC(seed, i || label || 0x00 || context || length_bits)`` with a
        one byte counter and the length as a 32-bit big endian integer. The
        blocks are concatenated and truncated to ``length_bits``.
        """
        if length_bits <= 0 or length_bits % 8:
            msg = f"Key length must be a positive multiple of 8 bits, got {length_bits}"
            raise ValueError(msg)
        blocks = -(-length_bits // CMAC_BLOCK_BITS)
        if blocks > 0xFF:
            msg = f"Key length too large for a one byte counter: {length_bits}"
            raise ValueError(msg)
        suffix = label + b"\x00" + context + length_bits.to_bytes(4, "big")
        out = bytearray()
        for counter in range(1, blocks + 1):
            out += CryptoUtils.aes_cmac(seed, bytes([counter]) + suffix)
        del out[length_bits // 8 :]
        return out

    @staticmethod
    def hmac_sha256(key: bytes | bytearray, data: bytes) -> bytes:
        return hmac.new(bytes(key), data, "sha256").digest()

    @staticmethod
    def verify_hmac_sha256(
        key: bytes | bytearray, data: bytes, signature: bytes
    ) -> None:
        expected = CryptoUtils.hmac_sha256(key, data)
        if not hmac.compare_digest(expected, signature):
            msg = "HMAC-SHA256 signature verification failed"
            raise SignatureInvalid(msg)

    @staticmethod
    def random_bytes(size: int) -> bytes:
        return os.urandom(size)
