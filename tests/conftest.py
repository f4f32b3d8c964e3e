"""Shared fixtures: device keys, a test certificate chain and a license issuer.

The issuer plays the license server. It derives the session keys and wraps
content keys with pycryptodome, independently of ``CryptoUtils``.
"""

from __future__ import annotations

import hmac
import logging
import os
from collections.abc import Sequence
from typing import Any

import pytest
from Crypto.Cipher import AES
from Crypto.Hash import CMAC
from Crypto.Util import Padding
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from google.protobuf.message import Message

from easycdm.client.device import DeviceIdentity, load_device
from easycdm.common.messages import (
    CertificateType,
    DrmCertificate,
    HashAlgorithm,
    KeyContainer,
    KeyType,
    License,
    LicenseIdentification,
    LicenseRequest,
    LicenseType,
    MessageType,
    Policy,
    SignedDrmCertificate,
    SignedMessage,
)
from easycdm.common.trust import CertificateTrust, TrustedCertificate

CLIENT_ID_BLOB = b"\x0a\x0bclient-id-blob\x12\x04test"
PROVIDER_ID = "license.example.com"
SERVICE_SERIAL = bytes(range(16))

KID_1 = bytes.fromhex("00112233445566778899aabbccddeeff")
KEY_1 = bytes.fromhex("0f0e0d0c0b0a09080706050403020100")
KID_2 = bytes.fromhex("ffeeddccbbaa99887766554433221100")
KEY_2 = bytes.fromhex("a0a1a2a3a4a5a6a7a8a9aaabacadaeaf")

DEFAULT_KEYS = (
    (KID_1, KEY_1, KeyType.CONTENT),
    (KID_2, KEY_2, KeyType.CONTENT),
)


def pss_sign(key: rsa.RSAPrivateKey, data: bytes) -> bytes:
    return key.sign(
        data,
        padding.PSS(mgf=padding.MGF1(hashes.SHA1()), salt_length=20),
        hashes.SHA1(),
    )


def pkcs1_der(key: rsa.RSAPublicKey) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.PKCS1
    )


def independent_session_keys(
    seed: bytes, context: bytes
) -> tuple[bytes, bytes, bytes]:
    """Encryption, server and client keys for a request, via pycryptodome."""
    enc_context = b"ENCRYPTION\x00" + context + b"\x00\x00\x00\x80"
    mac_context = b"AUTHENTICATION\x00" + context + b"\x00\x00\x02\x00"

    def _derive(context: bytes, counter: int) -> bytes:
        mac = CMAC.new(seed, ciphermod=AES)
        mac.update(counter.to_bytes(1, "big") + context)
        return mac.digest()

    enc_key = _derive(enc_context, 1)
    mac_key_server = _derive(mac_context, 1) + _derive(mac_context, 2)
    mac_key_client = _derive(mac_context, 3) + _derive(mac_context, 4)
    return enc_key, mac_key_server, mac_key_client


def cbc_encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    return AES.new(key, AES.MODE_CBC, iv).encrypt(Padding.pad(plaintext, 16))


def cbc_decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    return Padding.unpad(AES.new(key, AES.MODE_CBC, iv).decrypt(ciphertext), 16)


def replace(message: Message, **changes: Any) -> Message:
    """Copy of ``message`` with fields set, or cleared when given None."""
    copy = type(message)()
    copy.CopyFrom(message)
    for name, value in changes.items():
        if value is None:
            copy.ClearField(name)
        else:
            setattr(copy, name, value)
    return copy


def sign_certificate(
    issuer_key: rsa.RSAPrivateKey, certificate: DrmCertificate
) -> SignedDrmCertificate:
    body = certificate.SerializeToString()
    return SignedDrmCertificate(
        drm_certificate=body,
        signature=pss_sign(issuer_key, body),
        hash_algorithm=HashAlgorithm.SHA_1,
    )


class LicenseIssuer:
    """Plays the license server: answers a challenge with a signed License."""

    def __init__(
        self,
        device_public_key: rsa.RSAPublicKey,
        signer_key: rsa.RSAPrivateKey | None = None,
    ) -> None:
        self.device_public_key = device_public_key
        self.signer_key = signer_key
        self.last_seed: bytes | None = None
        self.last_request: LicenseRequest | None = None

    def derive(self, seed: bytes, context: bytes) -> tuple[bytes, bytes, bytes]:
        return independent_session_keys(seed, context)

    def issue(
        self,
        challenge: bytes,
        keys: Sequence[tuple[bytes, bytes, KeyType]] = DEFAULT_KEYS,
        *,
        request_id: bytes | None = None,
        extra_containers: Sequence[KeyContainer] = (),
        session_key: bytes | None = None,
        core_message: bytes | None = None,
        rsa_signature: bool = False,
    ) -> bytes:
        signed_request = SignedMessage.FromString(challenge)
        assert signed_request.type == MessageType.LICENSE_REQUEST
        self.device_public_key.verify(
            signed_request.signature,
            signed_request.msg,
            padding.PSS(mgf=padding.MGF1(hashes.SHA1()), salt_length=20),
            hashes.SHA1(),
        )
        request = LicenseRequest.FromString(signed_request.msg)
        self.last_request = request

        seed = os.urandom(16)
        self.last_seed = seed
        enc_key, server_key, _ = self.derive(seed, signed_request.msg)

        if request_id is None:
            request_id = request.content_id.widevine_pssh_data.request_id

        license_ = License(
            id=LicenseIdentification(
                request_id=request_id,
                session_id=b"server-session",
                type=LicenseType.STREAMING,
                version=0,
            ),
            policy=Policy(can_play=True),
            license_start_time=1700000000,
        )
        for kid, key, key_type in keys:
            iv = os.urandom(16)
            license_.key.add(
                id=kid, iv=iv, key=cbc_encrypt(enc_key, iv, key), type=key_type
            )
        license_.key.extend(extra_containers)
        payload = license_.SerializeToString()

        if rsa_signature:
            assert self.signer_key is not None
            signature = pss_sign(self.signer_key, payload)
        else:
            signature = hmac.new(
                server_key, (core_message or b"") + payload, "sha256"
            ).digest()

        if session_key is None:
            session_key = self.device_public_key.encrypt(
                seed,
                padding.OAEP(
                    mgf=padding.MGF1(hashes.SHA1()),
                    algorithm=hashes.SHA1(),
                    label=None,
                ),
            )
        response = SignedMessage(
            type=MessageType.LICENSE,
            msg=payload,
            signature=signature,
            session_key=session_key,
        )
        if core_message is not None:
            response.oemcrypto_core_message = core_message
        return response.SerializeToString()


@pytest.fixture(scope="session")
def device_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def device_key_pem(device_key: rsa.RSAPrivateKey) -> bytes:
    return device_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def device_key_der(device_key: rsa.RSAPrivateKey) -> bytes:
    return device_key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def device(device_key_pem: bytes) -> DeviceIdentity:
    return load_device(device_key_pem, CLIENT_ID_BLOB)


@pytest.fixture(scope="session")
def root_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def service_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def test_root(root_key: rsa.RSAPrivateKey) -> SignedDrmCertificate:
    return sign_certificate(
        root_key,
        DrmCertificate(
            type=CertificateType.ROOT,
            serial_number=b"\x00",
            public_key=pkcs1_der(root_key.public_key()),
        ),
    )


@pytest.fixture(scope="session")
def test_trust(test_root: SignedDrmCertificate) -> CertificateTrust:
    return CertificateTrust(root=test_root)


@pytest.fixture(scope="session")
def service_certificate(
    root_key: rsa.RSAPrivateKey, service_key: rsa.RSAPrivateKey
) -> SignedDrmCertificate:
    return sign_certificate(
        root_key,
        DrmCertificate(
            type=CertificateType.SERVICE,
            serial_number=SERVICE_SERIAL,
            creation_time_seconds=1700000000,
            public_key=pkcs1_der(service_key.public_key()),
            provider_id=PROVIDER_ID,
        ),
    )


@pytest.fixture(scope="session")
def trusted_service_cert(
    test_trust: CertificateTrust, service_certificate: SignedDrmCertificate
) -> TrustedCertificate:
    return test_trust.verify_service_certificate(service_certificate)


@pytest.fixture
def issuer(
    device: DeviceIdentity, service_key: rsa.RSAPrivateKey
) -> LicenseIssuer:
    return LicenseIssuer(device.public_key, signer_key=service_key)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Any:
    yield
    logger = logging.getLogger("easycdm")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
