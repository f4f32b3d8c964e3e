"""
Zeroable holders for symmetric key material.
"""

from __future__ import annotations

from typing import Any


class KeyBuffer:
    """Mutable key bytes that are overwritten with zeros when released.

    Use as a context manager, or call ``wipe()`` explicitly; the buffer is
    also wiped when garbage collected. A bytearray passed in is taken over
    rather than copied.
    """

    __slots__ = ("_buf",)

    def __init__(self, data: bytes | bytearray = b"") -> None:
        self._buf = data if isinstance(data, bytearray) else bytearray(data)

    @property
    def value(self) -> bytearray:
        return self._buf

    @property
    def wiped(self) -> bool:
        return not any(self._buf)

    def wipe(self) -> None:
        self._buf[:] = bytes(len(self._buf))

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> KeyBuffer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.wipe()

    def __del__(self) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"KeyBuffer(<{len(self._buf)} bytes>)"
