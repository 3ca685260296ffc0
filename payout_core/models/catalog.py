"""
商品与顾客数据模型（由上游订单系统写入，结算引擎只读）
"""
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, Money

if TYPE_CHECKING:
    from .sellers import Seller
    from .purchases import Purchase


class Product(Base):
    """商品表"""
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    seller_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("sellers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="卖家ID"
    )

    # 标价仅供展示，结算以购买金额为准
    price: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True, comment="标价")

    seller: Mapped["Seller"] = relationship("Seller", back_populates="products", lazy="raise")
    purchases: Mapped[list["Purchase"]] = relationship(
        "Purchase",
        back_populates="product",
        lazy="raise",
    )


class Customer(Base):
    """顾客表"""
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    purchases: Mapped[list["Purchase"]] = relationship(
        "Purchase",
        back_populates="customer",
        lazy="raise",
    )
