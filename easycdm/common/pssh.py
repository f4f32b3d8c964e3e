"""
PSSH (Protection System Specific Header) boxes.

License requests carry the box's init data, not the box itself. Init data
is opaque to this package.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from uuid import UUID

from construct import (
    Bytes,
    Const,
    ConstructError,
    GreedyBytes,
    If,
    Int8ub,
    Int24ub,
    Int32ub,
    Prefixed,
    PrefixedArray,
    Struct,
    this,
)

from easycdm.common.exceptions import MalformedMessage

BOX_HEADER_SIZE = 8

WIDEVINE_SYSTEM_ID = UUID("edef8ba9-79d6-4ace-a3c8-27dcd51d21ed")

PsshBox = Prefixed(
    Int32ub,
    Struct(
        "type" / Const(b"pssh"),
        "version" / Int8ub,
        "flags" / Int24ub,
        "system_id" / Bytes(16),
        "key_ids" / If(this.version == 1, PrefixedArray(Int32ub, Bytes(16))),
        "init_data" / Prefixed(Int32ub, GreedyBytes),
    ),
    includelength=True,
)


@dataclass(frozen=True)
class Pssh:
    init_data: bytes
    system_id: UUID = WIDEVINE_SYSTEM_ID
    key_ids: tuple[UUID, ...] = field(default_factory=tuple)
    version: int = 0

    def dumps(self) -> bytes:
        """Encode as a full ``pssh`` box."""
        version = 1 if self.key_ids else self.version
        return PsshBox.build(
            {
                "version": version,
                "flags": 0,
                "system_id": self.system_id.bytes,
                "key_ids": [kid.bytes for kid in self.key_ids] if version == 1 else None,
                "init_data": self.init_data,
            }
        )


def _is_box(data: bytes) -> bool:
    return len(data) >= BOX_HEADER_SIZE and data[4:8] == b"pssh"


def parse_pssh(data: bytes | str) -> Pssh:
    """Parse a PSSH box, or accept bare init data.

    ``data`` may be base64 text. Input that is not a ``pssh`` box is taken
    to be Widevine init data as is. A box for another DRM system is
    rejected with MalformedMessage.
    """
    if isinstance(data, str):
        try:
            data = base64.b64decode("".join(data.split()), validate=True)
        except binascii.Error as err:
            msg = "PSSH text is not valid base64"
            raise MalformedMessage(msg) from err
    if not data:
        msg = "PSSH is empty"
        raise MalformedMessage(msg)
    if not _is_box(data):
        return Pssh(init_data=bytes(data))

    try:
        box = PsshBox.parse(data)
    except ConstructError as err:
        msg = f"Malformed pssh box: {err}"
        raise MalformedMessage(msg) from err
    system_id = UUID(bytes=box.system_id)
    if system_id != WIDEVINE_SYSTEM_ID:
        msg = f"pssh box is for system {system_id}, not Widevine"
        raise MalformedMessage(msg)
    return Pssh(
        init_data=box.init_data,
        system_id=system_id,
        key_ids=tuple(UUID(bytes=kid) for kid in box.key_ids or ()),
        version=box.version,
    )
