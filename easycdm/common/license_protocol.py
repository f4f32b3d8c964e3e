"""
Protocol buffer classes for the license protocol.

The schema below is the subset of ``license_protocol.proto`` this client
reads or writes, expressed as a ``FileDescriptorProto`` in text format. Field
numbers and enum values match the published protocol; fields the client
does not declare survive parsing as unknown fields and are written back out
unchanged.

Two fields that the full protocol types as sub-messages are declared as
``bytes``: ``LicenseRequest.client_id`` (the authority-issued
ClientIdentification, embedded verbatim) and ``KeyContainer.key_control``.
Both encode identically on the wire.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory, text_format

PACKAGE = "license_protocol"

SCHEMA = """
name: "easycdm/license_protocol.proto"
package: "license_protocol"
syntax: "proto2"

enum_type {
  name: "LicenseType"
  value { name: "STREAMING" number: 1 }
  value { name: "OFFLINE" number: 2 }
  value { name: "AUTOMATIC" number: 3 }
}
enum_type {
  name: "PlatformVerificationStatus"
  value { name: "PLATFORM_UNVERIFIED" number: 0 }
  value { name: "PLATFORM_TAMPERED" number: 1 }
  value { name: "PLATFORM_SOFTWARE_VERIFIED" number: 2 }
  value { name: "PLATFORM_HARDWARE_VERIFIED" number: 3 }
  value { name: "PLATFORM_NO_VERIFICATION" number: 4 }
  value { name: "PLATFORM_SECURE_STORAGE_SOFTWARE_VERIFIED" number: 5 }
}
enum_type {
  name: "ProtocolVersion"
  value { name: "VERSION_2_0" number: 20 }
  value { name: "VERSION_2_1" number: 21 }
  value { name: "VERSION_2_2" number: 22 }
}
enum_type {
  name: "HashAlgorithmProto"
  value { name: "HASH_ALGORITHM_UNSPECIFIED" number: 0 }
  value { name: "HASH_ALGORITHM_SHA_1" number: 1 }
  value { name: "HASH_ALGORITHM_SHA_256" number: 2 }
  value { name: "HASH_ALGORITHM_SHA_384" number: 3 }
}

message_type {
  name: "LicenseIdentification"
  field { name: "request_id" number: 1 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field { name: "session_id" number: 2 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field { name: "purchase_id" number: 3 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field {
    name: "type" number: 4 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.LicenseType"
  }
  field { name: "version" number: 5 label: LABEL_OPTIONAL type: TYPE_INT32 }
  field {
    name: "provider_session_token" number: 6 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
}

message_type {
  name: "License"
  nested_type {
    name: "Policy"
    field { name: "can_play" number: 1 label: LABEL_OPTIONAL type: TYPE_BOOL }
    field { name: "can_persist" number: 2 label: LABEL_OPTIONAL type: TYPE_BOOL }
    field { name: "can_renew" number: 3 label: LABEL_OPTIONAL type: TYPE_BOOL }
    field {
      name: "rental_duration_seconds" number: 4 label: LABEL_OPTIONAL type: TYPE_INT64
    }
    field {
      name: "playback_duration_seconds" number: 5 label: LABEL_OPTIONAL
      type: TYPE_INT64
    }
    field {
      name: "license_duration_seconds" number: 6 label: LABEL_OPTIONAL
      type: TYPE_INT64
    }
  }
  nested_type {
    name: "KeyContainer"
    enum_type {
      name: "KeyType"
      value { name: "SIGNING" number: 1 }
      value { name: "CONTENT" number: 2 }
      value { name: "KEY_CONTROL" number: 3 }
      value { name: "OPERATOR_SESSION" number: 4 }
      value { name: "ENTITLEMENT" number: 5 }
      value { name: "OEM_CONTENT" number: 6 }
    }
    enum_type {
      name: "SecurityLevel"
      value { name: "SW_SECURE_CRYPTO" number: 1 }
      value { name: "SW_SECURE_DECODE" number: 2 }
      value { name: "HW_SECURE_CRYPTO" number: 3 }
      value { name: "HW_SECURE_DECODE" number: 4 }
      value { name: "HW_SECURE_ALL" number: 5 }
    }
    field { name: "id" number: 1 label: LABEL_OPTIONAL type: TYPE_BYTES }
    field { name: "iv" number: 2 label: LABEL_OPTIONAL type: TYPE_BYTES }
    field { name: "key" number: 3 label: LABEL_OPTIONAL type: TYPE_BYTES }
    field {
      name: "type" number: 4 label: LABEL_OPTIONAL type: TYPE_ENUM
      type_name: ".license_protocol.License.KeyContainer.KeyType"
    }
    field {
      name: "level" number: 5 label: LABEL_OPTIONAL type: TYPE_ENUM
      type_name: ".license_protocol.License.KeyContainer.SecurityLevel"
    }
    field { name: "key_control" number: 8 label: LABEL_OPTIONAL type: TYPE_BYTES }
    field { name: "track_label" number: 12 label: LABEL_OPTIONAL type: TYPE_STRING }
  }
  field {
    name: "id" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".license_protocol.LicenseIdentification"
  }
  field {
    name: "policy" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".license_protocol.License.Policy"
  }
  field {
    name: "key" number: 3 label: LABEL_REPEATED type: TYPE_MESSAGE
    type_name: ".license_protocol.License.KeyContainer"
  }
  field {
    name: "license_start_time" number: 4 label: LABEL_OPTIONAL type: TYPE_INT64
  }
  field {
    name: "remote_attestation_verified" number: 5 label: LABEL_OPTIONAL
    type: TYPE_BOOL
  }
  field {
    name: "provider_client_token" number: 6 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
  field {
    name: "platform_verification_status" number: 10 label: LABEL_OPTIONAL
    type: TYPE_ENUM type_name: ".license_protocol.PlatformVerificationStatus"
  }
}

message_type {
  name: "EncryptedClientIdentification"
  field { name: "provider_id" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
  field {
    name: "service_certificate_serial_number" number: 2 label: LABEL_OPTIONAL
    type: TYPE_BYTES
  }
  field {
    name: "encrypted_client_id" number: 3 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
  field {
    name: "encrypted_client_id_iv" number: 4 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
  field {
    name: "encrypted_privacy_key" number: 5 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
}

message_type {
  name: "LicenseRequest"
  nested_type {
    name: "ContentIdentification"
    nested_type {
      name: "WidevinePsshData"
      field { name: "pssh_data" number: 1 label: LABEL_REPEATED type: TYPE_BYTES }
      field {
        name: "license_type" number: 2 label: LABEL_OPTIONAL type: TYPE_ENUM
        type_name: ".license_protocol.LicenseType"
      }
      field { name: "request_id" number: 3 label: LABEL_OPTIONAL type: TYPE_BYTES }
    }
    field {
      name: "widevine_pssh_data" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
      type_name: ".license_protocol.LicenseRequest.ContentIdentification.WidevinePsshData"
    }
  }
  enum_type {
    name: "RequestType"
    value { name: "NEW" number: 1 }
    value { name: "RENEWAL" number: 2 }
    value { name: "RELEASE" number: 3 }
  }
  field { name: "client_id" number: 1 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field {
    name: "content_id" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".license_protocol.LicenseRequest.ContentIdentification"
  }
  field {
    name: "type" number: 3 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.LicenseRequest.RequestType"
  }
  field { name: "request_time" number: 4 label: LABEL_OPTIONAL type: TYPE_INT64 }
  field {
    name: "protocol_version" number: 6 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.ProtocolVersion"
  }
  field {
    name: "key_control_nonce" number: 7 label: LABEL_OPTIONAL type: TYPE_UINT32
  }
  field {
    name: "encrypted_client_id" number: 8 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".license_protocol.EncryptedClientIdentification"
  }
}

message_type {
  name: "SignedMessage"
  enum_type {
    name: "MessageType"
    value { name: "LICENSE_REQUEST" number: 1 }
    value { name: "LICENSE" number: 2 }
    value { name: "ERROR_RESPONSE" number: 3 }
    value { name: "SERVICE_CERTIFICATE_REQUEST" number: 4 }
    value { name: "SERVICE_CERTIFICATE" number: 5 }
    value { name: "SUB_LICENSE" number: 6 }
    value { name: "CAS_LICENSE_REQUEST" number: 7 }
    value { name: "CAS_LICENSE" number: 8 }
    value { name: "EXTERNAL_LICENSE_REQUEST" number: 9 }
    value { name: "EXTERNAL_LICENSE" number: 10 }
  }
  enum_type {
    name: "SessionKeyType"
    value { name: "UNDEFINED" number: 0 }
    value { name: "WRAPPED_AES_KEY" number: 1 }
    value { name: "EPHERMERAL_ECC_PUBLIC_KEY" number: 2 }
  }
  field {
    name: "type" number: 1 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.SignedMessage.MessageType"
  }
  field { name: "msg" number: 2 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field { name: "signature" number: 3 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field { name: "session_key" number: 4 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field {
    name: "remote_attestation" number: 5 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
  field {
    name: "session_key_type" number: 8 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.SignedMessage.SessionKeyType"
  }
  field {
    name: "oemcrypto_core_message" number: 9 label: LABEL_OPTIONAL type: TYPE_BYTES
  }
}

message_type {
  name: "DrmCertificate"
  enum_type {
    name: "Type"
    value { name: "ROOT" number: 0 }
    value { name: "DEVICE_MODEL" number: 1 }
    value { name: "DEVICE" number: 2 }
    value { name: "SERVICE" number: 3 }
    value { name: "PROVISIONER" number: 4 }
  }
  field {
    name: "type" number: 1 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.DrmCertificate.Type"
  }
  field { name: "serial_number" number: 2 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field {
    name: "creation_time_seconds" number: 3 label: LABEL_OPTIONAL type: TYPE_UINT32
  }
  field { name: "public_key" number: 4 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field { name: "system_id" number: 5 label: LABEL_OPTIONAL type: TYPE_UINT32 }
  field { name: "provider_id" number: 7 label: LABEL_OPTIONAL type: TYPE_STRING }
}

message_type {
  name: "SignedDrmCertificate"
  field { name: "drm_certificate" number: 1 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field { name: "signature" number: 2 label: LABEL_OPTIONAL type: TYPE_BYTES }
  field {
    name: "signer" number: 3 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".license_protocol.SignedDrmCertificate"
  }
  field {
    name: "hash_algorithm" number: 4 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".license_protocol.HashAlgorithmProto"
  }
}
"""

DESCRIPTOR_PROTO = text_format.Parse(SCHEMA, descriptor_pb2.FileDescriptorProto())

_pool = descriptor_pool.DescriptorPool()
DESCRIPTOR = _pool.AddSerializedFile(DESCRIPTOR_PROTO.SerializeToString())


def _message_class(name: str) -> type:
    return message_factory.GetMessageClass(
        _pool.FindMessageTypeByName(f"{PACKAGE}.{name}")
    )


LicenseIdentification = _message_class("LicenseIdentification")
License = _message_class("License")
Policy = _message_class("License.Policy")
KeyContainer = _message_class("License.KeyContainer")
EncryptedClientIdentification = _message_class("EncryptedClientIdentification")
LicenseRequest = _message_class("LicenseRequest")
ContentIdentification = _message_class("LicenseRequest.ContentIdentification")
WidevinePsshData = _message_class(
    "LicenseRequest.ContentIdentification.WidevinePsshData"
)
SignedMessage = _message_class("SignedMessage")
DrmCertificate = _message_class("DrmCertificate")
SignedDrmCertificate = _message_class("SignedDrmCertificate")
