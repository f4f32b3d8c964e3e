"""
Service certificate trust.

Service certificates are SignedDrmCertificates issued by the license
authority. They are trusted only after their signature verifies against the
root certificate embedded below; the root is module constant data and has no
runtime mutation path. Callers that need a different root (staging setups,
tests) hand one to ``CertificateTrust`` explicitly.
"""

from __future__ import annotations

import base64
import binascii
import logging
import threading
import textwrap
from dataclasses import dataclass
from typing import Final, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from easycdm.common.crypto import CryptoUtils
from easycdm.common.exceptions import MalformedCertificate, MalformedMessage
from easycdm.common.messages import (
    CertificateType,
    DrmCertificate,
    HashAlgorithm,
    MessageType,
    SignedDrmCertificate,
    SignedMessage,
    decode,
    enum_value,
)

logger = logging.getLogger(__name__)

CertificateInput = Union[SignedDrmCertificate, bytes, str]

ROOT_CERTIFICATE_B64: Final = (
    "CpwDCAASAQAY3ZSIiwUijgMwggGKAoIBgQC0/jnDZZAD2zwRlwnoaM3yw16b8udNI7EQ24dl39z7nzWgVwNTTPZtNX2meNuzNtI/nECplSZy"
    "f7i+Zt/FIZh4FRZoXS9GDkPLioQ5q/uwNYAivjQji6tTW3LsS7VIaVM+R1/9Cf2ndhOPD5LWTN+udqm62SIQqZ1xRdbX4RklhZxTmpfrhNfM"
    "qIiCIHAmIP1+QFAn4iWTb7w+cqD6wb0ptE2CXMG0y5xyfrDpihc+GWP8/YJIK7eyM7l97Eu6iR8nuJuISISqGJIOZfXIbBH/azbkdDTKjDOx"
    "+biOtOYS4AKYeVJeRTP/Edzrw1O6fGAaET0A+9K3qjD6T15Id1sX3HXvb9IZbdy+f7B4j9yCYEy/5CkGXmmMOROtFCXtGbLynwGCDVZEiMg1"
    "7B8RsyTgWQ035Ec86kt/lzEcgXyUikx9aBWE/6UI/Rjn5yvkRycSEbgj7FiTPKwS0ohtQT3F/hzcufjUUT4H5QNvpxLoEve1zqaWVT94tGSC"
    "UNIzX5ECAwEAARKAA1jx1k0ECXvf1+9dOwI5F/oUNnVKOGeFVxKnFO41FtU9v0KG9mkAds2T9Hyy355EzUzUrgkYU0Qy7OBhG+XaE9NVxd0a"
    "y5AeflvG6Q8in76FAv6QMcxrA4S9IsRV+vXyCM1lQVjofSnaBFiC9TdpvPNaV4QXezKHcLKwdpyywxXRESYqI3WZPrl3IjINvBoZwdVlkHZV"
    "dA8OaU1fTY8Zr9/WFjGUqJJfT7x6Mfiujq0zt+kw0IwKimyDNfiKgbL+HIisKmbF/73mF9BiC9yKRfewPlrIHkokL2yl4xyIFIPVxe9enz2F"
    "RXPia1BSV0z7kmxmdYrWDRuu8+yvUSIDXQouY5OcCwEgqKmELhfKrnPsIht5rvagcizfB0fbiIYwFHghESKIrNdUdPnzJsKlVshWTwApHQh7"
    "evuVicPumFSePGuUBRMS9nG5qxPDDJtGCHs9Mmpoyh6ckGLF7RC5HxclzpC5bc3ERvWjYhN0AqdipPpV2d7PouaAdFUGSdUCDA=="
)

# Privacy certificate of the production license server (license.widevine.com),
# wrapped in a SERVICE_CERTIFICATE signed message.
COMMON_PRIVACY_CERT: Final = (
    "CAUSxwUKwQIIAxIQFwW5F8wSBIaLBjM6L3cqjBiCtIKSBSKOAjCCAQoCggEBAJntWzsyfateJO/DtiqVtZhSCtW8yzdQPgZFuBTYdrjfQFEE"
    "Qa2M462xG7iMTnJaXkqeB5UpHVhYQCOn4a8OOKkSeTkwCGELbxWMh4x+Ib/7/up34QGeHleB6KRfRiY9FOYOgFioYHrc4E+shFexN6jWfM3r"
    "M3BdmDoh+07svUoQykdJDKR+ql1DghjduvHK3jOS8T1v+2RC/THhv0CwxgTRxLpMlSCkv5fuvWCSmvzu9Vu69WTi0Ods18Vcc6CCuZYSC4NZ"
    "7c4kcHCCaA1vZ8bYLErF8xNEkKdO7DevSy8BDFnoKEPiWC8La59dsPxebt9k+9MItHEbzxJQAZyfWgkCAwEAAToUbGljZW5zZS53aWRldmlu"
    "ZS5jb20SgAOuNHMUtag1KX8nE4j7e7jLUnfSSYI83dHaMLkzOVEes8y96gS5RLknwSE0bv296snUE5F+bsF2oQQ4RgpQO8GVK5uk5M4PxL/C"
    "CpgIqq9L/NGcHc/N9XTMrCjRtBBBbPneiAQwHL2zNMr80NQJeEI6ZC5UYT3wr8+WykqSSdhV5Cs6cD7xdn9qm9Nta/gr52u/DLpP3lnSq8x2"
    "/rZCR7hcQx+8pSJmthn8NpeVQ/ypy727+voOGlXnVaPHvOZV+WRvWCq5z3CqCLl5+Gf2Ogsrf9s2LFvE7NVV2FvKqcWTw4PIV9Sdqrd+QLeF"
    "Hd/SSZiAjjWyWOddeOrAyhb3BHMEwg2T7eTo/xxvF+YkPj89qPwXCYcOxF+6gjomPwzvofcJOxkJkoMmMzcFBDopvab5tDQsyN9UPLGhGC98"
    "X/8z8QSQ+spbJTYLdgFenFoGq47gLwDS6NWYYQSqzE3Udf2W7pzk4ybyG4PHBYV3s4cyzdq8amvtE/sNSdOKReuHpfQ="
)

# Privacy certificate of the staging license server (staging.google.com).
STAGING_PRIVACY_CERT: Final = (
    "CAUSxQUKvwIIAxIQKHA0VMAI9jYYredEPbbEyBiL5/mQBSKOAjCCAQoCggEBALUhErjQXQI/zF2V4sJRwcZJtBd82NK+7zVbsGdD3mYePSq8"
    "MYK3mUbVX9wI3+lUB4FemmJ0syKix/XgZ7tfCsB6idRa6pSyUW8HW2bvgR0NJuG5priU8rmFeWKqFxxPZmMNPkxgJxiJf14e+baq9a1Nuip+"
    "FBdt8TSh0xhbWiGKwFpMQfCB7/+Ao6BAxQsJu8dA7tzY8U1nWpGYD5LKfdxkagatrVEB90oOSYzAHwBTK6wheFC9kF6QkjZWt9/v70JIZ2fz"
    "PvYoPU9CVKtyWJOQvuVYCPHWaAgNRdiTwryi901goMDQoJk87wFgRwMzTDY4E5SGvJ2vJP1noH+a2UMCAwEAAToSc3RhZ2luZy5nb29nbGUu"
    "Y29tEoADmD4wNSZ19AunFfwkm9rl1KxySaJmZSHkNlVzlSlyH/iA4KrvxeJ7yYDa6tq/P8OG0ISgLIJTeEjMdT/0l7ARp9qXeIoA4qprhM19"
    "ccB6SOv2FgLMpaPzIDCnKVww2pFbkdwYubyVk7jei7UPDe3BKTi46eA5zd4Y+oLoG7AyYw/pVdhaVmzhVDAL9tTBvRJpZjVrKH1lexjOY9Dv"
    "1F/FJp6X6rEctWPlVkOyb/SfEJwhAa/K81uDLyiPDZ1Flg4lnoX7XSTb0s+Cdkxd2b9yfvvpyGH4aTIfat4YkF9Nkvmm2mU224R1hx0WjocL"
    "sjA89wxul4TJPS3oRa2CYr5+DU4uSgdZzvgtEJ0lksckKfjAF0K64rPeytvDPD5fS69eFuy3Tq26/LfGcF96njtvOUA4P5xRFtICogySKe6W"
    "nCUZcYMDtQ0BMMM1LgawFNg4VA+KDCJ8ABHg9bOOTimO0sswHrRWSWX1XF15dXolCk65yEqz5lOfa2/fVomeopkU"
)


@dataclass(frozen=True)
class TrustedCertificate:
    """A service certificate whose signature chained to the root."""

    provider_id: str
    serial_number: bytes
    public_key: RSAPublicKey
    signature: bytes
    hash_algorithm: HashAlgorithm
    certificate: DrmCertificate
    signed_certificate: SignedDrmCertificate

    def encode(self) -> bytes:
        return self.signed_certificate.SerializeToString()


def load_rsa_public_key(der: bytes) -> RSAPublicKey:
    """Load a DER RSA public key, SubjectPublicKeyInfo or PKCS#1."""
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm):
        body = "\n".join(textwrap.wrap(base64.b64encode(der).decode("ascii"), 64))
        pem = f"-----BEGIN RSA PUBLIC KEY-----\n{body}\n-----END RSA PUBLIC KEY-----\n"
        try:
            key = serialization.load_pem_public_key(pem.encode("ascii"))
        except (ValueError, UnsupportedAlgorithm):
            msg = "Certificate public key is not a valid RSA public key"
            raise MalformedCertificate(msg) from None
    if not isinstance(key, RSAPublicKey):
        msg = f"Certificate public key is {type(key).__name__}, expected RSA"
        raise MalformedCertificate(msg)
    return key


def parse_signed_certificate(data: CertificateInput) -> SignedDrmCertificate:
    """Accept a certificate in any of the forms servers hand out.

    ``data`` may be a SignedDrmCertificate, its encoding, the encoding of a
    SERVICE_CERTIFICATE SignedMessage wrapping one, or base64 of either.
    """
    if isinstance(data, SignedDrmCertificate):
        return data
    if isinstance(data, str):
        try:
            data = base64.b64decode("".join(data.split()), validate=True)
        except binascii.Error as err:
            msg = "Certificate text is not valid base64"
            raise MalformedCertificate(msg) from err

    # A SignedDrmCertificate never sets SignedMessage.type: its field 1 is
    # length-delimited and lands in the unknown fields.
    try:
        envelope = decode(SignedMessage, data)
        kind = enum_value(envelope, "type", MessageType)
    except MalformedMessage:
        envelope, kind = None, None
    if envelope is not None and kind is not None:
        if kind is not MessageType.SERVICE_CERTIFICATE:
            msg = f"Expected a SERVICE_CERTIFICATE message, got {kind.name}"
            raise MalformedCertificate(msg)
        if not envelope.msg:
            msg = "SERVICE_CERTIFICATE message carries no certificate"
            raise MalformedCertificate(msg)
        data = envelope.msg

    try:
        return decode(SignedDrmCertificate, data)
    except MalformedMessage as err:
        msg = f"Could not decode SignedDrmCertificate: {err}"
        raise MalformedCertificate(msg) from err


def service_certificate_challenge() -> bytes:
    """Encoded request asking a license server for its service certificate."""
    return SignedMessage(
        type=MessageType.SERVICE_CERTIFICATE_REQUEST
    ).SerializeToString()


ROOT_CERTIFICATE: Final = decode(
    SignedDrmCertificate, base64.b64decode(ROOT_CERTIFICATE_B64)
)


class CertificateTrust:
    """Verifies service certificates and signed responses."""

    def __init__(self, root: SignedDrmCertificate = ROOT_CERTIFICATE) -> None:
        if not root.drm_certificate:
            msg = "Root certificate is empty"
            raise MalformedCertificate(msg)
        try:
            root_certificate = decode(DrmCertificate, root.drm_certificate)
        except MalformedMessage as err:
            msg = f"Could not decode root certificate: {err}"
            raise MalformedCertificate(msg) from err
        if not root_certificate.public_key:
            msg = "Root certificate has no public key"
            raise MalformedCertificate(msg)
        self._root = root
        self._root_key = load_rsa_public_key(root_certificate.public_key)

    @property
    def root(self) -> SignedDrmCertificate:
        return self._root

    @property
    def root_public_key(self) -> RSAPublicKey:
        return self._root_key

    def verify_service_certificate(self, cert: CertificateInput) -> TrustedCertificate:
        """Verify a service certificate against the root.

        Raises:
            SignatureInvalid: the root did not sign this certificate.
            MalformedCertificate: required fields are absent or undecodable,
                or the certificate is not a service certificate.
        """
        signed = parse_signed_certificate(cert)
        if not signed.drm_certificate or not signed.signature:
            msg = "Signed certificate is missing its certificate or signature"
            raise MalformedCertificate(msg)

        hash_algorithm = enum_value(signed, "hash_algorithm", HashAlgorithm)
        CryptoUtils.rsa_pss_verify(
            self._root_key,
            signed.signature,
            signed.drm_certificate,
            hash_algorithm,
        )

        try:
            certificate = decode(DrmCertificate, signed.drm_certificate)
        except MalformedMessage as err:
            msg = f"Could not decode DrmCertificate: {err}"
            raise MalformedCertificate(msg) from err
        cert_type = enum_value(certificate, "type", CertificateType)
        if cert_type is not CertificateType.SERVICE:
            kind = cert_type.name if cert_type is not None else "untyped"
            msg = f"Expected a SERVICE certificate, got {kind}"
            raise MalformedCertificate(msg)
        if not certificate.public_key or not certificate.provider_id:
            msg = "Service certificate is missing its public key or provider id"
            raise MalformedCertificate(msg)

        trusted = TrustedCertificate(
            provider_id=certificate.provider_id,
            serial_number=certificate.serial_number,
            public_key=load_rsa_public_key(certificate.public_key),
            signature=signed.signature,
            hash_algorithm=hash_algorithm or HashAlgorithm.SHA_1,
            certificate=certificate,
            signed_certificate=signed,
        )
        logger.debug("Verified service certificate for %s", trusted.provider_id)
        return trusted

    @staticmethod
    def verify_response_signature(
        message: bytes,
        signature: bytes,
        public_key: RSAPublicKey,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA_1,
    ) -> None:
        """Verify an RSA-PSS signature made by a server key.

        Must be called before any field of ``message`` is trusted.
        """
        CryptoUtils.rsa_pss_verify(public_key, signature, message, hash_algorithm)


class CertificateStore:
    """Process-wide cache of verified certificates keyed by provider id."""

    def __init__(self, trust: CertificateTrust | None = None) -> None:
        self._trust = trust or CertificateTrust()
        self._certificates: dict[str, TrustedCertificate] = {}
        self._lock = threading.Lock()

    def add(self, cert: CertificateInput) -> TrustedCertificate:
        """Verify ``cert`` and cache it under its provider id."""
        trusted = self._trust.verify_service_certificate(cert)
        with self._lock:
            self._certificates[trusted.provider_id] = trusted
        return trusted

    def get(self, provider_id: str) -> TrustedCertificate | None:
        with self._lock:
            return self._certificates.get(provider_id)

    def remove(self, provider_id: str) -> None:
        with self._lock:
            self._certificates.pop(provider_id, None)

    def clear(self) -> None:
        with self._lock:
            self._certificates.clear()

    def __contains__(self, provider_id: object) -> bool:
        with self._lock:
            return provider_id in self._certificates

    def __len__(self) -> int:
        with self._lock:
            return len(self._certificates)


_default_trust = CertificateTrust()


def verify_service_certificate(cert: CertificateInput) -> TrustedCertificate:
    """Verify ``cert`` against the embedded root."""
    return _default_trust.verify_service_certificate(cert)


verify_response_signature = CertificateTrust.verify_response_signature
