"""
SellerPay 实用工具模块
"""

from .logger import get_logger, LogContext, setup_logging
from .errors import (
    PayoutException,
    ConfigurationError,
    DataIntegrityError,
    NotFoundError,
    PersistenceError,
)

__all__ = [
    "get_logger",
    "LogContext",
    "setup_logging",
    "PayoutException",
    "ConfigurationError",
    "DataIntegrityError",
    "NotFoundError",
    "PersistenceError",
]
