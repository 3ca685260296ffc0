"""
Pytest 配置和 fixtures
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from payout_core.config import Settings
from payout_core.database import DatabaseManager
from payout_core.models import Customer, PayoutSchedule, Product, Purchase, Refund, Seller

# 2024-05-10 是星期五
AS_OF = date(2024, 5, 10)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def settings(tmp_path) -> Settings:
    """使用临时 SQLite 文件数据库的配置"""
    return Settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'payout.db'}")


@pytest_asyncio.fixture
async def db_manager(settings) -> AsyncGenerator[DatabaseManager, None]:
    """数据库管理器 fixture"""
    manager = DatabaseManager(settings)
    await manager.create_tables()

    yield manager

    await manager.drop_tables()
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager) -> AsyncGenerator[AsyncSession, None]:
    """数据库会话 fixture"""
    async with db_manager.get_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def seed_marketplace(db_manager, as_of):
    """
    写入一个卖家的示例数据：

    - 商品 20.1：购买于 -14 天、-2 天
    - 商品 45.4：购买于 -7 天，全额退款
    - 商品 50.4：购买于 -8 天

    返回 seller_id
    """
    async def _seed(buffer_days=7, with_schedule=True, balance=Decimal("0")) -> int:
        async with db_manager.get_transaction() as session:
            seller = Seller(balance=balance)
            customer = Customer()
            session.add_all([seller, customer])
            await session.flush()

            if with_schedule:
                session.add(PayoutSchedule(seller_id=seller.id, buffer_days=buffer_days))

            product_1 = Product(seller_id=seller.id, price=Decimal("20.1"))
            product_2 = Product(seller_id=seller.id, price=Decimal("45.4"))
            product_3 = Product(seller_id=seller.id, price=Decimal("50.4"))
            session.add_all([product_1, product_2, product_3])
            await session.flush()

            def purchase(product, days_ago):
                return Purchase(
                    product_id=product.id,
                    customer_id=customer.id,
                    amount=product.price,
                    purchase_date=as_of - timedelta(days=days_ago),
                    processed=True,
                )

            refunded = purchase(product_2, 7)
            session.add_all([
                purchase(product_1, 14),
                purchase(product_1, 2),
                refunded,
                purchase(product_3, 8),
            ])
            await session.flush()

            session.add(Refund(purchase_id=refunded.id, amount=product_2.price))
            return seller.id

    return _seed


@pytest.fixture
def add_purchase(db_manager):
    """为已有卖家追加一笔购买，返回 purchase_id"""
    async def _add(seller_id, amount, purchase_date, processed=True, refund=None, refund_processed=False) -> int:
        async with db_manager.get_transaction() as session:
            customer = Customer()
            product = Product(seller_id=seller_id, price=amount)
            session.add_all([customer, product])
            await session.flush()

            item = Purchase(
                product_id=product.id,
                customer_id=customer.id,
                amount=amount,
                purchase_date=purchase_date,
                processed=processed,
            )
            session.add(item)
            await session.flush()

            if refund is not None:
                session.add(Refund(purchase_id=item.id, amount=refund, processed=refund_processed))
            return item.id

    return _add
