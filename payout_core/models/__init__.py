"""
SellerPay 数据模型包
"""
from .base import Base
from .sellers import Seller, PayoutSchedule, Weekday
from .catalog import Product, Customer
from .purchases import Purchase, Refund

__all__ = [
    "Base",
    "Seller",
    "PayoutSchedule",
    "Weekday",
    "Product",
    "Customer",
    "Purchase",
    "Refund",
]
