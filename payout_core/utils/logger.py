# mypy: disable-error-code="no-untyped-def, assignment, var-annotated"
"""
SellerPay 日志系统
- JSON 格式输出
- 结算上下文字段：ts, level, action, run_id, seller_id
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO
from contextvars import ContextVar

import structlog
from structlog.processors import JSONRenderer, TimeStamper, add_log_level

# Context variables for payout run tracking
run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)
seller_id_var: ContextVar[Optional[int]] = ContextVar("seller_id", default=None)


class PayoutContextProcessor:
    """添加结算运行的上下文字段"""

    def __call__(self, logger, method_name, event_dict):
        event_dict["ts"] = datetime.now(timezone.utc).isoformat()

        if run_id := run_id_var.get():
            event_dict["run_id"] = run_id

        if seller_id := seller_id_var.get():
            event_dict.setdefault("seller_id", seller_id)

        # 重命名标准字段
        if "event" in event_dict:
            event_dict["action"] = event_dict.pop("event")

        if "exception" in event_dict:
            event_dict["err"] = str(event_dict.pop("exception"))

        return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json", stream: Optional[TextIO] = None) -> None:
    """配置日志系统

    structlog 与标准 logging 输出到同一个流，默认 stdout；CLI 传入 stderr，stdout 只留结果。
    """
    level = getattr(logging, log_level.upper())

    processors = [
        TimeStamper(fmt="iso"),
        add_log_level,
        PayoutContextProcessor(),
    ]

    if log_format == "json":
        processors.append(JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 移除已有的 handlers，避免重复
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)

    if log_format == "json":
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt="%Y-%m-%dT%H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("payout_core").setLevel(level)

    # 降低第三方库的日志级别
    for logger_name in ("asyncio", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取日志记录器"""
    return structlog.get_logger(name)


class LogContext:
    """日志上下文管理器，用于绑定一次结算运行的上下文"""

    def __init__(self, run_id: Optional[str] = None, seller_id: Optional[int] = None):
        self.run_id = run_id
        self.seller_id = seller_id
        self._tokens = []

    def __enter__(self):
        if self.run_id:
            self._tokens.append(run_id_var.set(self.run_id))
        if self.seller_id:
            self._tokens.append(seller_id_var.set(self.seller_id))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for token in reversed(self._tokens):
            token.var.reset(token)
        self._tokens = []
