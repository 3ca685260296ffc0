"""
卖家与结算计划数据模型
"""
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    BigInteger, DateTime, Integer,
    CheckConstraint, ForeignKey, Enum as SAEnum, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, Money

if TYPE_CHECKING:
    from .catalog import Product


class Weekday(str, enum.Enum):
    """结算日（星期）"""
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"
    sunday = "Sunday"

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        return list(cls)[value.weekday()]


class Seller(Base):
    """卖家表"""
    __tablename__ = "sellers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, comment="卖家ID")

    # 累计应付余额（可为负）
    balance: Mapped[Decimal] = mapped_column(
        Money,
        default=Decimal("0.0000"),
        nullable=False,
        comment="卖家余额"
    )

    # 版本号（乐观锁），每次余额写入 +1
    version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="乐观锁版本号"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="更新时间"
    )

    payout_schedule: Mapped[Optional["PayoutSchedule"]] = relationship(
        "PayoutSchedule",
        back_populates="seller",
        uselist=False,
        lazy="raise",
    )
    products: Mapped[list["Product"]] = relationship(
        "Product",
        back_populates="seller",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Seller(id={self.id}, balance={self.balance}, version={self.version})>"


class PayoutSchedule(Base):
    """结算计划表 - 每个卖家至多一条"""
    __tablename__ = "payout_schedules"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    seller_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("sellers.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="卖家ID"
    )

    # 购买至少需要经过的天数才可结算
    buffer_days: Mapped[int] = mapped_column(
        Integer,
        CheckConstraint("buffer_days >= 0", name="ck_payout_schedules_buffer_days"),
        default=7,
        nullable=False,
        comment="缓冲天数"
    )

    # 外部调度使用的结算日
    payout_day: Mapped[Weekday] = mapped_column(
        SAEnum(Weekday, native_enum=False, length=10, values_callable=lambda e: [m.value for m in e]),
        default=Weekday.friday,
        nullable=False,
        comment="结算日"
    )

    seller: Mapped["Seller"] = relationship(
        "Seller",
        back_populates="payout_schedule",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return (
            f"<PayoutSchedule(seller_id={self.seller_id}, "
            f"buffer_days={self.buffer_days}, payout_day={self.payout_day.value})>"
        )
