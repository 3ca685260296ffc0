"""
购买与退款数据模型
结算引擎只写 paid_to_seller，其余字段由上游维护
"""
from datetime import date
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, Money

if TYPE_CHECKING:
    from .catalog import Customer, Product


class Purchase(Base):
    """购买表"""
    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    product_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="商品ID"
    )
    customer_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("customers.id"),
        nullable=False,
        index=True,
        comment="顾客ID"
    )

    # 实收金额（必须使用 Decimal）
    amount: Mapped[Decimal] = mapped_column(
        Money,
        CheckConstraint("amount > 0", name="ck_purchases_amount_positive"),
        nullable=False,
        comment="实收金额"
    )

    purchase_date: Mapped[date] = mapped_column(Date, nullable=False, index=True, comment="购买日期")

    # 上游预处理是否完成
    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否已处理")

    # 只会从 False 变为 True 一次
    paid_to_seller: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="是否已结算给卖家"
    )

    product: Mapped["Product"] = relationship("Product", back_populates="purchases", lazy="raise")
    customer: Mapped["Customer"] = relationship("Customer", back_populates="purchases", lazy="raise")
    refund: Mapped[Optional["Refund"]] = relationship(
        "Refund",
        back_populates="purchase",
        uselist=False,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return (
            f"<Purchase(id={self.id}, amount={self.amount}, purchase_date={self.purchase_date}, "
            f"paid_to_seller={self.paid_to_seller})>"
        )


class Refund(Base):
    """退款表 - 每笔购买至多一条（全额或部分）"""
    __tablename__ = "refunds"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    purchase_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("purchases.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="购买ID"
    )

    amount: Mapped[Decimal] = mapped_column(
        Money,
        CheckConstraint("amount > 0", name="ck_refunds_amount_positive"),
        nullable=False,
        comment="退款金额"
    )

    processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="退款是否已完成")

    purchase: Mapped["Purchase"] = relationship("Purchase", back_populates="refund", lazy="raise")
