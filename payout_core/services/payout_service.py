"""
卖家结算服务

对外唯一入口：run_payout(seller_id, as_of) -> PayoutResult
由外部调度（cron / CLI）按卖家、按天调用。

一次结算在同一事务中完成：
1. 读取卖家（加锁），不存在 -> NotFoundError
2. 读取结算计划，不存在 -> ConfigurationError（不读取任何购买）
3. 结算日判定，不满足则直接返回（无写入）
4. 筛选可结算购买 -> 计算净额 -> 标记已结算 + 更新余额
5. 提交；任何失败整体回滚
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_core.config import Settings, get_settings
from payout_core.database import DatabaseManager
from payout_core.models import PayoutSchedule, Seller
from payout_core.services.base import BaseService
from payout_core.services.eligibility import EligibilitySelector
from payout_core.services.schedule import (
    PayoutDayPredicate,
    always_payout_day,
    is_configured_payout_day,
)
from payout_core.services.settlement import SettlementExecutor
from payout_core.utils.errors import ConfigurationError, NotFoundError, PayoutException
from payout_core.utils.logger import LogContext


@dataclass
class PayoutResult:
    """一次结算的结果"""
    seller_id: int
    as_of: date
    cutoff_date: Optional[date]
    settled_count: int = 0
    amount_paid: Decimal = Decimal("0")
    balance_after: Optional[Decimal] = None
    purchase_ids: list[int] = field(default_factory=list)
    skipped: bool = False
    preview: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seller_id": self.seller_id,
            "as_of": self.as_of.isoformat(),
            "cutoff_date": self.cutoff_date.isoformat() if self.cutoff_date else None,
            "settled_count": self.settled_count,
            "amount_paid": str(self.amount_paid),
            "balance_after": str(self.balance_after) if self.balance_after is not None else None,
            "purchase_ids": list(self.purchase_ids),
            "skipped": self.skipped,
            "preview": self.preview,
        }


class PayoutService(BaseService):
    """卖家结算服务"""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        settings: Optional[Settings] = None,
        payout_day_predicate: Optional[PayoutDayPredicate] = None,
        selector: Optional[EligibilitySelector] = None,
        executor: Optional[SettlementExecutor] = None,
    ):
        super().__init__(db_manager)
        self.settings = settings or get_settings()
        if payout_day_predicate is None:
            payout_day_predicate = (
                is_configured_payout_day if self.settings.enforce_payout_day else always_payout_day
            )
        self.payout_day_predicate = payout_day_predicate
        self.selector = selector or EligibilitySelector(self.settings)
        self.executor = executor or SettlementExecutor(self.settings)

    def today(self) -> date:
        """按配置时区取当天日期"""
        return datetime.now(ZoneInfo(self.settings.payout_timezone)).date()

    async def run_payout(self, seller_id: int, as_of: Optional[date] = None) -> PayoutResult:
        """
        执行一次卖家结算

        Args:
            seller_id: 卖家ID
            as_of: 结算基准日期，默认当天

        Returns:
            PayoutResult

        Raises:
            NotFoundError: 卖家不存在
            ConfigurationError: 卖家没有结算计划
            DataIntegrityError: 退款数据不合法
            PersistenceError: 事务提交失败或并发冲突（无部分写入，可整体重试）
        """
        as_of = as_of or self.today()

        with LogContext(run_id=uuid.uuid4().hex[:12], seller_id=seller_id):
            self.logger.info("payout_run_started", as_of=as_of.isoformat())
            try:
                result = await self.execute_with_transaction(self._process, seller_id, as_of)
            except PayoutException as e:
                self.logger.error("payout_run_failed", code=e.code, detail=e.detail)
                raise

            if result.skipped:
                self.logger.info("payout_run_skipped", reason="not_payout_day")
            else:
                self.logger.info(
                    "payout_run_completed",
                    cutoff_date=result.cutoff_date.isoformat(),
                    settled_count=result.settled_count,
                    amount_paid=str(result.amount_paid),
                    balance=str(result.balance_after),
                )
            return result

    async def preview(self, seller_id: int, as_of: Optional[date] = None) -> PayoutResult:
        """计算本次结算会支付多少，不写入任何数据"""
        as_of = as_of or self.today()
        return await self.execute_with_rollback(self._process, seller_id, as_of, preview=True)

    async def _load_seller(self, session: AsyncSession, seller_id: int, lock: bool) -> Seller:
        stmt = select(Seller).where(Seller.id == seller_id)
        if lock:
            stmt = stmt.with_for_update()
        seller = (await session.execute(stmt)).scalar_one_or_none()
        if seller is None:
            raise NotFoundError(code="SELLER_NOT_FOUND", resource=f"seller {seller_id}")
        return seller

    async def _load_schedule(self, session: AsyncSession, seller_id: int) -> PayoutSchedule:
        result = await session.execute(
            select(PayoutSchedule).where(PayoutSchedule.seller_id == seller_id)
        )
        schedule = result.scalar_one_or_none()
        if schedule is None:
            raise ConfigurationError(
                code="PAYOUT_SCHEDULE_MISSING",
                detail=f"seller {seller_id} has no payout schedule; buffer days are undefined",
            )
        return schedule

    async def _process(
        self,
        session: AsyncSession,
        seller_id: int,
        as_of: date,
        preview: bool = False,
    ) -> PayoutResult:
        seller = await self._load_seller(session, seller_id, lock=not preview)
        schedule = await self._load_schedule(session, seller_id)
        cutoff = self.selector.cutoff_date(schedule, as_of)

        if not self.payout_day_predicate(schedule, as_of):
            return PayoutResult(
                seller_id=seller_id,
                as_of=as_of,
                cutoff_date=cutoff,
                balance_after=seller.balance,
                skipped=True,
                preview=preview,
            )

        purchases = await self.selector.select(session, seller_id, schedule, as_of, lock=not preview)

        if preview:
            delta, _ = await self.executor.compute_delta(session, purchases)
            return PayoutResult(
                seller_id=seller_id,
                as_of=as_of,
                cutoff_date=cutoff,
                settled_count=len(purchases),
                amount_paid=delta,
                balance_after=seller.balance + delta,
                purchase_ids=[purchase.id for purchase in purchases],
                preview=True,
            )

        outcome = await self.executor.settle(session, seller, purchases)
        return PayoutResult(
            seller_id=seller_id,
            as_of=as_of,
            cutoff_date=cutoff,
            settled_count=outcome.settled_count,
            amount_paid=outcome.delta,
            balance_after=outcome.balance_after,
            purchase_ids=outcome.purchase_ids,
        )


async def run_payout(seller_id: int, as_of: Optional[date] = None) -> PayoutResult:
    """使用默认数据库管理器执行一次结算"""
    return await PayoutService().run_payout(seller_id, as_of)
