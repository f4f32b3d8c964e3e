# easycdm content license client

from easycdm.client.device import DeviceIdentity, load_device
from easycdm.client.session import Session, SessionState, open_session
from easycdm.common.trust import (
    CertificateTrust,
    service_certificate_challenge,
    verify_service_certificate,
)

__all__ = [
    "CertificateTrust",
    "DeviceIdentity",
    "Session",
    "SessionState",
    "load_device",
    "open_session",
    "service_certificate_challenge",
    "verify_service_certificate",
]
