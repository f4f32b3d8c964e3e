"""
License protocol messages.

The message classes are protocol buffers built in ``license_protocol``.
The enumerations the client branches on are mirrored here as IntEnums;
enum fields read back from a message are plain ints and are mapped with
``enum_value``.

Every decoder is proto2: a value outside a nested enum is kept in the
message's unknown fields and the field reads as unset. Only the top-level
``SignedMessage.type`` is a closed variant, checked by ``message_type``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, TypeVar

from google.protobuf.message import DecodeError

from easycdm.common.exceptions import MalformedMessage
from easycdm.common.license_protocol import (
    ContentIdentification,
    DrmCertificate,
    EncryptedClientIdentification,
    KeyContainer,
    License,
    LicenseIdentification,
    LicenseRequest,
    Policy,
    SignedDrmCertificate,
    SignedMessage,
    WidevinePsshData,
)

if TYPE_CHECKING:
    from google.protobuf.message import Message

M = TypeVar("M", bound="Message")
E = TypeVar("E", bound=IntEnum)

__all__ = [
    "CertificateType",
    "ContentIdentification",
    "DrmCertificate",
    "EncryptedClientIdentification",
    "HashAlgorithm",
    "KeyContainer",
    "KeyType",
    "License",
    "LicenseIdentification",
    "LicenseRequest",
    "LicenseType",
    "MessageType",
    "PlatformVerificationStatus",
    "Policy",
    "ProtocolVersion",
    "RequestType",
    "SecurityLevel",
    "SessionKeyType",
    "SignedDrmCertificate",
    "SignedMessage",
    "WidevinePsshData",
    "decode",
    "enum_value",
    "message_type",
]


class MessageType(IntEnum):
    LICENSE_REQUEST = 1
    LICENSE = 2
    ERROR_RESPONSE = 3
    SERVICE_CERTIFICATE_REQUEST = 4
    SERVICE_CERTIFICATE = 5
    SUB_LICENSE = 6
    CAS_LICENSE_REQUEST = 7
    CAS_LICENSE = 8
    EXTERNAL_LICENSE_REQUEST = 9
    EXTERNAL_LICENSE = 10


class SessionKeyType(IntEnum):
    UNDEFINED = 0
    WRAPPED_AES_KEY = 1
    EPHERMERAL_ECC_PUBLIC_KEY = 2


class LicenseType(IntEnum):
    STREAMING = 1
    OFFLINE = 2
    AUTOMATIC = 3


class RequestType(IntEnum):
    NEW = 1
    RENEWAL = 2
    RELEASE = 3


class ProtocolVersion(IntEnum):
    VERSION_2_0 = 20
    VERSION_2_1 = 21
    VERSION_2_2 = 22


class KeyType(IntEnum):
    SIGNING = 1
    CONTENT = 2
    KEY_CONTROL = 3
    OPERATOR_SESSION = 4
    ENTITLEMENT = 5
    OEM_CONTENT = 6


class SecurityLevel(IntEnum):
    SW_SECURE_CRYPTO = 1
    SW_SECURE_DECODE = 2
    HW_SECURE_CRYPTO = 3
    HW_SECURE_DECODE = 4
    HW_SECURE_ALL = 5


class PlatformVerificationStatus(IntEnum):
    PLATFORM_UNVERIFIED = 0
    PLATFORM_TAMPERED = 1
    PLATFORM_SOFTWARE_VERIFIED = 2
    PLATFORM_HARDWARE_VERIFIED = 3
    PLATFORM_NO_VERIFICATION = 4
    PLATFORM_SECURE_STORAGE_SOFTWARE_VERIFIED = 5


class CertificateType(IntEnum):
    ROOT = 0
    DEVICE_MODEL = 1
    DEVICE = 2
    SERVICE = 3
    PROVISIONER = 4


class HashAlgorithm(IntEnum):
    UNSPECIFIED = 0
    SHA_1 = 1
    SHA_256 = 2
    SHA_384 = 3


def decode(message_class: type[M], data: bytes) -> M:
    """Parse ``data`` as ``message_class``.

    Raises:
        MalformedMessage: truncated input, a bad varint or tag, or a length
            running past the end of the buffer.
    """
    message = message_class()
    try:
        message.ParseFromString(bytes(data))
    except DecodeError as err:
        msg = f"Could not decode {message_class.DESCRIPTOR.name}: {err}"
        raise MalformedMessage(msg) from err
    return message


def enum_value(message: Message, field: str, enum_class: type[E]) -> E | None:
    """Read an optional enum field, or None when it is unset."""
    if not message.HasField(field):
        return None
    return enum_class(getattr(message, field))


def message_type(message: Message) -> MessageType:
    """The variant of a SignedMessage.

    An absent type, or one this client does not know, is rejected.
    """
    if not message.HasField("type"):
        msg = "SignedMessage has no known message type"
        raise MalformedMessage(msg)
    return MessageType(message.type)
