"""
Configuration settings for the content decryption module.
"""

from __future__ import annotations

import logging
import os

from easycdm.common.exceptions import ConfigError


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as err:
        msg = f"Environment variable {name} must be an integer, got {value!r}"
        raise ConfigError(msg) from err


def _env_log_level(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        msg = f"Environment variable {name} is not a log level: {value!r}"
        raise ConfigError(msg)
    return level


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Protocol settings
        self.PROTOCOL_VERSION: int = _env_int("EASYCDM_PROTOCOL_VERSION", 21)
        self.SESSION_ID_SIZE: int = 16
        self.PRIVACY_KEY_SIZE: int = 16  # AES-128 key wrapping the client id
        self.MAX_KEY_CONTROL_NONCE: int = 2**31

        # Derived key sizes in bits
        self.ENC_KEY_BITS: int = 128
        self.MAC_KEY_BITS: int = 512  # server and client halves

        # Decoder limits
        self.MAX_MESSAGE_SIZE: int = _env_int(
            "EASYCDM_MAX_MESSAGE_SIZE", 1024 * 1024
        )  # 1MB, larger responses are rejected before decoding

        # Transport (collaborator) settings
        self.REQUEST_TIMEOUT: int = _env_int("EASYCDM_REQUEST_TIMEOUT", 10)

        # Logging
        self.LOG_LEVEL: int = _env_log_level("EASYCDM_LOG_LEVEL", logging.INFO)
