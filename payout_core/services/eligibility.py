"""
可结算购买筛选

一笔购买可以在本次结算中支付，当且仅当：
1. 所属商品属于该卖家
2. 尚未结算（paid_to_seller = False）
3. 已完成上游处理（processed = True，可通过配置关闭）
4. 购买日期 <= today - buffer_days（含当天）
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_core.config import Settings, get_settings
from payout_core.models import PayoutSchedule, Product, Purchase
from payout_core.utils.logger import get_logger

logger = get_logger(__name__)


class EligibilitySelector:
    """可结算购买筛选器"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @staticmethod
    def cutoff_date(schedule: PayoutSchedule, today: date) -> date:
        """截止日期（含）"""
        return today - timedelta(days=schedule.buffer_days)

    def build_query(self, seller_id: int, cutoff: date, lock: bool = True):
        stmt = (
            select(Purchase)
            .join(Product, Purchase.product_id == Product.id)
            .where(
                Product.seller_id == seller_id,
                Purchase.paid_to_seller == False,  # noqa: E712
                Purchase.purchase_date <= cutoff,
            )
        )
        if self.settings.require_processed_purchases:
            stmt = stmt.where(Purchase.processed == True)  # noqa: E712

        stmt = stmt.order_by(Purchase.id)
        # 锁定选中的行，防止同一卖家的并发结算重复选中；预览不加锁
        if lock:
            stmt = stmt.with_for_update(of=Purchase)
        return stmt

    async def select(
        self,
        session: AsyncSession,
        seller_id: int,
        schedule: PayoutSchedule,
        today: date,
        lock: bool = True,
    ) -> list[Purchase]:
        """
        查询本次可结算的购买

        Args:
            session: 数据库会话（应处于结算事务中）
            seller_id: 卖家ID
            schedule: 卖家结算计划
            today: 结算基准日期
            lock: 是否对选中的购买加行锁（预览时为 False）

        Returns:
            按 id 升序的购买列表，无符合条件时为空列表
        """
        cutoff = self.cutoff_date(schedule, today)
        result = await session.execute(self.build_query(seller_id, cutoff, lock=lock))
        purchases = list(result.scalars().all())

        logger.debug(
            "eligible_purchases_selected",
            seller_id=seller_id,
            cutoff_date=cutoff.isoformat(),
            count=len(purchases),
        )
        return purchases
