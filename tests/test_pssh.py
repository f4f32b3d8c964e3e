import base64
from uuid import UUID

import pytest

from easycdm.common.exceptions import MalformedMessage
from easycdm.common.pssh import WIDEVINE_SYSTEM_ID, Pssh, parse_pssh

INIT_DATA = b"\x08\x01\x12\x10" + bytes(range(16))


def test_version_0_box() -> None:
    box = Pssh(init_data=INIT_DATA).dumps()
    assert box[:4] == (32 + len(INIT_DATA)).to_bytes(4, "big")
    assert box[4:8] == b"pssh"
    assert box[12:28] == WIDEVINE_SYSTEM_ID.bytes

    parsed = parse_pssh(box)
    assert parsed.init_data == INIT_DATA
    assert parsed.system_id == WIDEVINE_SYSTEM_ID
    assert parsed.version == 0
    assert parsed.key_ids == ()


def test_version_1_box_with_key_ids() -> None:
    kid = UUID("00112233-4455-6677-8899-aabbccddeeff")
    parsed = parse_pssh(Pssh(init_data=INIT_DATA, key_ids=(kid,)).dumps())
    assert parsed.version == 1
    assert parsed.key_ids == (kid,)
    assert parsed.init_data == INIT_DATA


def test_base64_box() -> None:
    text = base64.b64encode(Pssh(init_data=INIT_DATA).dumps()).decode()
    assert parse_pssh(text).init_data == INIT_DATA


def test_bare_init_data_passes_through() -> None:
    assert parse_pssh(INIT_DATA).init_data == INIT_DATA
    assert parse_pssh(base64.b64encode(INIT_DATA).decode()).init_data == INIT_DATA


def test_truncated_box_rejected() -> None:
    box = Pssh(init_data=INIT_DATA).dumps()
    with pytest.raises(MalformedMessage, match="pssh"):
        parse_pssh(box[:-3])


@pytest.mark.parametrize("value", ["", b"", "@@@"])
def test_invalid_input_rejected(value: str | bytes) -> None:
    with pytest.raises(MalformedMessage):
        parse_pssh(value)


def test_box_for_other_system_rejected() -> None:
    playready = UUID("9a04f079-9840-4286-ab92-e65be0885f95")
    box = Pssh(init_data=b"<WRMHEADER/>", system_id=playready).dumps()
    with pytest.raises(MalformedMessage, match="not Widevine"):
        parse_pssh(box)
    with pytest.raises(MalformedMessage, match="not Widevine"):
        parse_pssh(base64.b64encode(box).decode())
