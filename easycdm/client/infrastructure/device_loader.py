"""Infrastructure layer: loading device identities from files.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from pathlib import Path

from construct import (
    BitStruct,
    Bytes,
    Const,
    ConstructError,
    Int8ub,
    Int16ub,
    Padded,
    Padding,
    Struct,
    this,
)
from construct import Enum as CEnum
from construct import Optional as COptional

from easycdm.client.device import DeviceIdentity, load_device
from easycdm.common.exceptions import ConfigError

logger = logging.getLogger(__name__)


class DeviceType(IntEnum):
    CHROME = 1
    ANDROID = 2


WvdStruct = Struct(
    "signature" / Const(b"WVD"),
    "version" / Const(2, Int8ub),
    "type_" / CEnum(Int8ub, **{t.name: t.value for t in DeviceType}),
    "security_level" / Int8ub,
    "flags" / Padded(1, COptional(BitStruct(Padding(8)))),
    "private_key_len" / Int16ub,
    "private_key" / Bytes(this.private_key_len),
    "client_id_len" / Int16ub,
    "client_id" / Bytes(this.client_id_len),
)


def _read(path: Path | str, what: str) -> bytes:
    path = Path(path)
    if not path.is_file():
        msg = f"{what} file not found: {path}"
        raise ConfigError(msg)
    data = path.read_bytes()
    if not data:
        msg = f"{what} file is empty: {path}"
        raise ConfigError(msg)
    return data


def load_device_files(
    private_key_path: Path | str, client_id_path: Path | str
) -> DeviceIdentity:
    """Load a device from a private key file and a client id blob file."""
    device = load_device(
        _read(private_key_path, "Device private key"),
        _read(client_id_path, "Client id"),
    )
    logger.info("Loaded device from %s", private_key_path)
    return device


def parse_wvd(data: bytes) -> DeviceIdentity:
    """Parse a version 2 ``.wvd`` device container."""
    try:
        wvd = WvdStruct.parse(data)
    except ConstructError as err:
        msg = f"Invalid WVD device data: {err}"
        raise ConfigError(msg) from err
    return load_device(wvd.private_key, wvd.client_id, wvd.security_level)


def load_wvd(path: Path | str) -> DeviceIdentity:
    device = parse_wvd(_read(path, "WVD device"))
    logger.info("Loaded WVD device from %s", path)
    return device


def dump_wvd(
    private_key_der: bytes,
    client_id: bytes,
    device_type: DeviceType = DeviceType.ANDROID,
    security_level: int = 3,
) -> bytes:
    """Serialize key material into a version 2 ``.wvd`` container."""
    return WvdStruct.build(
        {
            "version": 2,
            "type_": device_type.name,
            "security_level": security_level,
            "flags": {},
            "private_key_len": len(private_key_der),
            "private_key": private_key_der,
            "client_id_len": len(client_id),
            "client_id": client_id,
        }
    )
