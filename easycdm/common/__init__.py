# Common utilities
from easycdm.common.crypto import CryptoUtils as CryptoUtils
from easycdm.common.logging_utils import setup_logger as setup_logger

__all__ = ["CryptoUtils", "setup_logger"]
