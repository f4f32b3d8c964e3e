from pathlib import Path

import pytest
from conftest import CLIENT_ID_BLOB

from easycdm.client.infrastructure.device_loader import (
    DeviceType,
    dump_wvd,
    load_device_files,
    load_wvd,
    parse_wvd,
)
from easycdm.common.exceptions import ConfigError


def test_wvd_round_trip(tmp_path: Path, device_key_der: bytes) -> None:
    data = dump_wvd(device_key_der, CLIENT_ID_BLOB, DeviceType.ANDROID, 3)
    assert data[:3] == b"WVD"
    assert data[3] == 2  # noqa: PLR2004

    path = tmp_path / "device.wvd"
    path.write_bytes(data)
    device = load_wvd(path)
    assert device.client_id_blob == CLIENT_ID_BLOB
    assert device.security_level == 3  # noqa: PLR2004


def test_wvd_rejects_other_versions(device_key_der: bytes) -> None:
    data = bytearray(dump_wvd(device_key_der, CLIENT_ID_BLOB))
    data[3] = 1
    with pytest.raises(ConfigError, match="Invalid WVD"):
        parse_wvd(bytes(data))


def test_wvd_rejects_truncated_data(device_key_der: bytes) -> None:
    data = dump_wvd(device_key_der, CLIENT_ID_BLOB)
    with pytest.raises(ConfigError, match="Invalid WVD"):
        parse_wvd(data[:-5])
    with pytest.raises(ConfigError, match="Invalid WVD"):
        parse_wvd(b"XYZ\x02")


def test_load_device_files(tmp_path: Path, device_key_pem: bytes) -> None:
    key_path = tmp_path / "private_key.pem"
    client_id_path = tmp_path / "client_id.bin"
    key_path.write_bytes(device_key_pem)
    client_id_path.write_bytes(CLIENT_ID_BLOB)

    device = load_device_files(key_path, str(client_id_path))
    assert device.client_id_blob == CLIENT_ID_BLOB


def test_missing_and_empty_files(tmp_path: Path, device_key_pem: bytes) -> None:
    key_path = tmp_path / "private_key.pem"
    key_path.write_bytes(device_key_pem)
    empty = tmp_path / "empty.bin"
    empty.write_bytes(b"")

    with pytest.raises(ConfigError, match="not found"):
        load_device_files(key_path, tmp_path / "missing.bin")
    with pytest.raises(ConfigError, match="is empty"):
        load_device_files(key_path, empty)
    with pytest.raises(ConfigError, match="not found"):
        load_wvd(tmp_path / "missing.wvd")
