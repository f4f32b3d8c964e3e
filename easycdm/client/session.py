"""
License session state machine.

A session walks OPENED -> REQUEST_BUILT -> AWAITING_RESPONSE ->
KEYS_DERIVED -> CLOSED. Any failure while handling a response moves it to
FAILED, which is terminal. Calling an operation in the wrong state raises
InvalidStateTransition and leaves the state alone.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from easycdm.client.request_builder import RequestBuilder
from easycdm.client.response_processor import LicenseResult, ResponseProcessor
from easycdm.common.config import Config
from easycdm.common.crypto import CryptoUtils
from easycdm.common.exceptions import (
    InvalidStateTransition,
    MalformedMessage,
    NotReady,
    PrivacyModeRequiresCertificate,
)
from easycdm.common.logging_utils import hex_id
from easycdm.common.messages import LicenseType, SignedMessage, decode
from easycdm.common.pssh import Pssh
from easycdm.common.trust import TrustedCertificate, verify_service_certificate

if TYPE_CHECKING:
    from collections.abc import Mapping

    from easycdm.client.device import DeviceIdentity
    from easycdm.common.messages import KeyType, License, ProtocolVersion
    from easycdm.common.models import Key
    from easycdm.common.trust import CertificateInput

logger = logging.getLogger(__name__)

_issued_session_ids: set[bytes] = set()
_session_ids_lock = threading.Lock()


def _new_session_id(size: int) -> bytes:
    """Random session id that has not been handed out in this process."""
    with _session_ids_lock:
        while True:
            session_id = CryptoUtils.random_bytes(size)
            if session_id not in _issued_session_ids:
                _issued_session_ids.add(session_id)
                return session_id


class SessionState(Enum):
    OPENED = "opened"
    REQUEST_BUILT = "request_built"
    AWAITING_RESPONSE = "awaiting_response"
    KEYS_DERIVED = "keys_derived"
    CLOSED = "closed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SessionState.CLOSED, SessionState.FAILED})


class Session:
    """One license exchange for one piece of content.

    Not thread-safe; use one session per thread. Sessions share nothing
    but the device identity.
    """

    def __init__(
        self,
        device: DeviceIdentity,
        protocol_version: ProtocolVersion | int | None = None,
    ) -> None:
        self.config = Config()
        self.device = device
        self.session_id = _new_session_id(self.config.SESSION_ID_SIZE)
        self.failure_reason: str | None = None
        self._state = SessionState.OPENED
        self._builder = RequestBuilder(device, protocol_version)
        self._processor = ResponseProcessor(device)
        self._request: SignedMessage | None = None
        self._result: LicenseResult | None = None
        logger.debug("Session %s opened", hex_id(self.session_id))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def request(self) -> SignedMessage | None:
        """The signed request, once built."""
        return self._request

    @property
    def license(self) -> License | None:
        return self._result.license if self._result is not None else None

    def _transition(self, new_state: SessionState) -> None:
        logger.debug(
            "Session %s: %s -> %s",
            hex_id(self.session_id),
            self._state.name,
            new_state.name,
        )
        self._state = new_state

    def _require(self, operation: str, *allowed: SessionState) -> None:
        if self._state not in allowed:
            raise InvalidStateTransition(operation, self._state)

    def _wipe(self) -> None:
        if self._result is not None:
            self._result.wipe()
            self._result = None

    def _fail(self, reason: str) -> None:
        self._wipe()
        self.failure_reason = reason
        self._transition(SessionState.FAILED)
        logger.warning("Session %s failed: %s", hex_id(self.session_id), reason)

    def build_request(
        self,
        content_id: bytes | Pssh,
        privacy_mode: bool = False,  # noqa: FBT001, FBT002
        service_cert: TrustedCertificate | CertificateInput | None = None,
        license_type: LicenseType = LicenseType.STREAMING,
    ) -> SignedMessage:
        """Build the signed license request for ``content_id``.

        In privacy mode the client id is encrypted toward ``service_cert``,
        which is verified against the root first if it is not already a
        TrustedCertificate.

        Raises:
            InvalidStateTransition: the session is not OPENED.
            PrivacyModeRequiresCertificate: privacy mode without a
                certificate.
        """
        self._require("build a request", SessionState.OPENED)
        if privacy_mode and service_cert is None:
            msg = "Privacy mode requires a service certificate"
            raise PrivacyModeRequiresCertificate(msg)
        if isinstance(content_id, Pssh):
            content_id = content_id.init_data
        if not content_id:
            msg = "Content id is empty"
            raise ValueError(msg)

        trusted: TrustedCertificate | None = None
        if privacy_mode and isinstance(service_cert, TrustedCertificate):
            trusted = service_cert
        elif privacy_mode and service_cert is not None:
            trusted = verify_service_certificate(service_cert)

        self._request = self._builder.build(
            self.session_id,
            content_id,
            license_type=license_type,
            service_cert=trusted,
        )
        self._transition(SessionState.REQUEST_BUILT)
        return self._request

    def mark_sent(self) -> None:
        """Record that the built request has gone out."""
        self._require("mark the request sent", SessionState.REQUEST_BUILT)
        self._transition(SessionState.AWAITING_RESPONSE)

    def get_license_challenge(self, content_id: bytes | Pssh, **kwargs: Any) -> bytes:
        """Build the request and return its encoding, ready to send."""
        challenge = self.build_request(content_id, **kwargs).SerializeToString()
        self.mark_sent()
        return challenge

    def ingest_response(
        self,
        data: bytes | SignedMessage,
        signer_certificate: TrustedCertificate | None = None,
    ) -> None:
        """Validate the server's response and derive the session keys.

        On any failure the session wipes its key material, moves to FAILED
        and the original error is re-raised.
        """
        self._require(
            "ingest a response",
            SessionState.REQUEST_BUILT,
            SessionState.AWAITING_RESPONSE,
        )
        if self._request is None:
            raise InvalidStateTransition("ingest a response", self._state)
        request_context = self._request.msg
        try:
            if isinstance(data, SignedMessage):
                response = data
            else:
                if len(data) > self.config.MAX_MESSAGE_SIZE:
                    msg = (
                        f"Response of {len(data)} bytes exceeds the "
                        f"{self.config.MAX_MESSAGE_SIZE} byte limit"
                    )
                    raise MalformedMessage(msg)
                response = decode(SignedMessage, data)
            self._result = self._processor.process(
                response,
                request_context,
                self.session_id,
                signer_certificate=signer_certificate,
            )
        except Exception as err:
            self._fail(f"{type(err).__name__}: {err}")
            raise
        self._transition(SessionState.KEYS_DERIVED)

    def _require_keys(self) -> LicenseResult:
        if self._state is not SessionState.KEYS_DERIVED or self._result is None:
            msg = f"Keys are not available while session is {self._state.name}"
            raise NotReady(msg)
        return self._result

    def keys(self) -> Mapping[bytes, bytearray]:
        """Read-only view of content key id to key.

        The values are zeroed in place when the session closes.
        """
        result = self._require_keys()
        return MappingProxyType(
            {kid: buffer.value for kid, buffer in result.content_keys.items()}
        )

    def key_list(self, key_type: KeyType | None = None) -> list[Key]:
        """Every unwrapped key container, optionally filtered by type.

        The records are copies owned by the caller; closing the session does
        not reach them.
        """
        result = self._require_keys()
        return [
            entry.to_key()
            for entry in result.entries
            if key_type is None or entry.type is key_type
        ]

    def close(self) -> None:
        """Wipe all key material and drop the license. Safe to repeat."""
        self._wipe()
        if self._state not in TERMINAL_STATES:
            self._transition(SessionState.CLOSED)

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_result", None) is not None:
            self._wipe()

    def __repr__(self) -> str:
        return f"Session(id={hex_id(self.session_id)}, state={self._state.name})"


def open_session(
    device: DeviceIdentity,
    protocol_version: ProtocolVersion | int | None = None,
) -> Session:
    """Open a new session with a fresh, process-unique session id."""
    return Session(device, protocol_version)
