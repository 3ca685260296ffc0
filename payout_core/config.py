"""
SellerPay Configuration Management
遵循约束：环境变量前缀 PAYOUT__
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, validator
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


REFUND_DEDUCTION_MODES = ("immediate", "processed_only")


class Settings(BaseSettings):
    """全局配置类"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYOUT__",
        case_sensitive=False
    )

    # Database
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="sellerpay")
    db_user: str = Field(default="sellerpay")
    db_password: str = Field(default="")
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_echo: bool = Field(default=False)
    # 直接指定连接串时优先使用（测试/本地 SQLite）
    db_url: Optional[str] = Field(default=None)
    slow_query_threshold_ms: int = Field(default=100)

    # Monitoring
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text

    # 结算规则
    require_processed_purchases: bool = Field(default=True)
    refund_deduction: str = Field(default="immediate")
    strict_refund_validation: bool = Field(default=True)
    enforce_payout_day: bool = Field(default=False)
    payout_timezone: str = Field(default="UTC")

    @validator("log_format")
    def validate_log_format(cls, v):
        """日志格式只允许 json / text"""
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @validator("refund_deduction")
    def validate_refund_deduction(cls, v):
        """退款抵扣策略必须是已知取值"""
        if v not in REFUND_DEDUCTION_MODES:
            raise ValueError(
                f"refund_deduction must be one of {', '.join(REFUND_DEDUCTION_MODES)}"
            )
        return v

    @validator("payout_timezone")
    def validate_payout_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown payout_timezone {v!r}")
        return v

    @property
    def database_url(self) -> str:
        """构建数据库连接字符串"""
        if self.db_url:
            return self.db_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
