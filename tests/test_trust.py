import base64

import pytest
from conftest import (
    PROVIDER_ID,
    SERVICE_SERIAL,
    pkcs1_der,
    pss_sign,
    replace,
    sign_certificate,
)
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from easycdm.common.exceptions import MalformedCertificate, SignatureInvalid
from easycdm.common.messages import (
    CertificateType,
    DrmCertificate,
    HashAlgorithm,
    MessageType,
    SignedDrmCertificate,
    SignedMessage,
    decode,
)
from easycdm.common.trust import (
    COMMON_PRIVACY_CERT,
    ROOT_CERTIFICATE,
    STAGING_PRIVACY_CERT,
    CertificateStore,
    CertificateTrust,
    load_rsa_public_key,
    parse_signed_certificate,
    service_certificate_challenge,
    verify_response_signature,
    verify_service_certificate,
)


def test_embedded_root_is_a_root_certificate() -> None:
    assert ROOT_CERTIFICATE.drm_certificate
    root = decode(DrmCertificate, ROOT_CERTIFICATE.drm_certificate)
    assert root.type == CertificateType.ROOT
    assert CertificateTrust().root_public_key.key_size == 3072  # noqa: PLR2004


def test_production_privacy_certificate_verifies() -> None:
    trusted = verify_service_certificate(COMMON_PRIVACY_CERT)
    assert trusted.provider_id == "license.widevine.com"
    assert trusted.certificate.type == CertificateType.SERVICE
    assert trusted.hash_algorithm is HashAlgorithm.SHA_1


def test_staging_privacy_certificate_verifies() -> None:
    assert verify_service_certificate(STAGING_PRIVACY_CERT).provider_id


def test_certificate_input_forms_agree() -> None:
    wrapped = base64.b64decode(COMMON_PRIVACY_CERT)
    signed = parse_signed_certificate(wrapped)
    for form in (COMMON_PRIVACY_CERT, wrapped, signed, signed.SerializeToString()):
        assert verify_service_certificate(form).serial_number == (
            decode(DrmCertificate, signed.drm_certificate).serial_number
        )


def test_tampered_certificate_rejected() -> None:
    signed = parse_signed_certificate(COMMON_PRIVACY_CERT)
    body = bytearray(signed.drm_certificate)
    body[-1] ^= 0x01
    tampered = replace(signed, drm_certificate=bytes(body))
    with pytest.raises(SignatureInvalid):
        verify_service_certificate(tampered)


def test_certificate_from_other_root_rejected(
    service_certificate: SignedDrmCertificate,
) -> None:
    with pytest.raises(SignatureInvalid):
        verify_service_certificate(service_certificate)


def test_explicit_root(
    test_trust: CertificateTrust, service_certificate: SignedDrmCertificate
) -> None:
    trusted = test_trust.verify_service_certificate(service_certificate)
    assert trusted.provider_id == PROVIDER_ID
    assert trusted.serial_number == SERVICE_SERIAL
    assert trusted.encode() == service_certificate.SerializeToString()
    with pytest.raises(SignatureInvalid):
        test_trust.verify_service_certificate(COMMON_PRIVACY_CERT)


def test_non_service_certificate_rejected(
    root_key: rsa.RSAPrivateKey, test_trust: CertificateTrust
) -> None:
    device_cert = sign_certificate(
        root_key,
        DrmCertificate(
            type=CertificateType.DEVICE,
            public_key=pkcs1_der(root_key.public_key()),
            provider_id=PROVIDER_ID,
        ),
    )
    with pytest.raises(MalformedCertificate, match="SERVICE"):
        test_trust.verify_service_certificate(device_cert)


def test_missing_provider_id_rejected(
    root_key: rsa.RSAPrivateKey, test_trust: CertificateTrust
) -> None:
    cert = sign_certificate(
        root_key,
        DrmCertificate(
            type=CertificateType.SERVICE,
            public_key=pkcs1_der(root_key.public_key()),
        ),
    )
    with pytest.raises(MalformedCertificate, match="provider id"):
        test_trust.verify_service_certificate(cert)


def test_missing_signature_rejected(test_trust: CertificateTrust) -> None:
    with pytest.raises(MalformedCertificate):
        test_trust.verify_service_certificate(
            SignedDrmCertificate(drm_certificate=b"\x08\x03")
        )


def test_wrong_envelope_type_rejected() -> None:
    data = SignedMessage(type=MessageType.LICENSE, msg=b"\x0a\x00").SerializeToString()
    with pytest.raises(MalformedCertificate, match="SERVICE_CERTIFICATE"):
        parse_signed_certificate(data)


def test_invalid_base64_rejected() -> None:
    with pytest.raises(MalformedCertificate, match="base64"):
        verify_service_certificate("not base64!")


def test_load_rsa_public_key_formats(root_key: rsa.RSAPrivateKey) -> None:
    public = root_key.public_key()
    spki = public.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    for der in (spki, pkcs1_der(public)):
        assert load_rsa_public_key(der).public_numbers() == public.public_numbers()

    with pytest.raises(MalformedCertificate):
        load_rsa_public_key(b"\x30\x03\x02\x01\x01")

    ec_key = ec.generate_private_key(ec.SECP256R1()).public_key()
    ec_der = ec_key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    with pytest.raises(MalformedCertificate, match="expected RSA"):
        load_rsa_public_key(ec_der)


def test_verify_response_signature(
    service_key: rsa.RSAPrivateKey,
) -> None:
    signature = pss_sign(service_key, b"response")
    verify_response_signature(b"response", signature, service_key.public_key())
    with pytest.raises(SignatureInvalid):
        verify_response_signature(b"Response", signature, service_key.public_key())


def test_certificate_store(
    test_trust: CertificateTrust, service_certificate: SignedDrmCertificate
) -> None:
    store = CertificateStore(test_trust)
    assert len(store) == 0
    trusted = store.add(service_certificate)
    assert PROVIDER_ID in store
    assert store.get(PROVIDER_ID) == trusted
    assert store.get("other") is None

    with pytest.raises(SignatureInvalid):
        store.add(COMMON_PRIVACY_CERT)
    assert len(store) == 1

    store.remove(PROVIDER_ID)
    assert PROVIDER_ID not in store
    store.add(service_certificate)
    store.clear()
    assert len(store) == 0


def test_service_certificate_challenge() -> None:
    assert service_certificate_challenge() == b"\x08\x04"
