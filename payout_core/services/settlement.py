"""
结算执行

给定卖家及本次可结算的购买：
1. 计算净额 = 购买金额 - 退款金额（无退款为 0）
2. 汇总得到本次应付增量 delta
3. 在同一事务中：标记购买已结算，并更新卖家余额
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from payout_core.config import Settings, get_settings
from payout_core.models import Purchase, Refund, Seller
from payout_core.utils.errors import DataIntegrityError, PersistenceError
from payout_core.utils.logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass
class SettlementOutcome:
    """一次结算写入的结果"""
    purchase_ids: list[int] = field(default_factory=list)
    delta: Decimal = ZERO
    balance_before: Decimal = ZERO
    balance_after: Decimal = ZERO
    refunded_count: int = 0

    @property
    def settled_count(self) -> int:
        return len(self.purchase_ids)


class SettlementExecutor:
    """结算执行器"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def load_refunds(
        self,
        session: AsyncSession,
        purchase_ids: list[int],
    ) -> dict[int, Refund]:
        """按购买ID批量读取退款，返回 {purchase_id: Refund}"""
        if not purchase_ids:
            return {}

        result = await session.execute(
            select(Refund).where(Refund.purchase_id.in_(purchase_ids))
        )
        return {refund.purchase_id: refund for refund in result.scalars().all()}

    def refund_deduction(self, purchase: Purchase, refund: Optional[Refund]) -> Decimal:
        """该笔退款本次应抵扣的金额"""
        if refund is None:
            return ZERO

        if self.settings.strict_refund_validation:
            if refund.amount <= ZERO:
                raise DataIntegrityError(
                    code="REFUND_NOT_POSITIVE",
                    detail=f"refund {refund.id} on purchase {purchase.id} has non-positive amount {refund.amount}",
                    purchase_id=purchase.id,
                )
            if refund.amount > purchase.amount:
                raise DataIntegrityError(
                    code="REFUND_EXCEEDS_PURCHASE",
                    detail=(
                        f"refund {refund.id} amount {refund.amount} exceeds "
                        f"purchase {purchase.id} amount {purchase.amount}"
                    ),
                    purchase_id=purchase.id,
                )

        if self.settings.refund_deduction == "processed_only" and not refund.processed:
            return ZERO

        return refund.amount

    def net_amount(self, purchase: Purchase, refund: Optional[Refund]) -> Decimal:
        """净额 = 购买金额 - 退款抵扣"""
        return purchase.amount - self.refund_deduction(purchase, refund)

    async def compute_delta(
        self,
        session: AsyncSession,
        purchases: list[Purchase],
    ) -> tuple[Decimal, dict[int, Refund]]:
        """汇总净额，只读不写"""
        refunds = await self.load_refunds(session, [purchase.id for purchase in purchases])

        delta = ZERO
        for purchase in purchases:
            delta += self.net_amount(purchase, refunds.get(purchase.id))
        return delta, refunds

    async def settle(
        self,
        session: AsyncSession,
        seller: Seller,
        purchases: list[Purchase],
    ) -> SettlementOutcome:
        """
        结算给定购买（调用方负责事务边界）

        Raises:
            DataIntegrityError: 退款数据不合法
            PersistenceError: 与并发结算冲突
        """
        balance_before = seller.balance
        if not purchases:
            return SettlementOutcome(balance_before=balance_before, balance_after=balance_before)

        purchase_ids = [purchase.id for purchase in purchases]
        delta, refunds = await self.compute_delta(session, purchases)

        # 只翻转仍未结算的行；行数不一致说明已被其他结算占用
        result = await session.execute(
            update(Purchase)
            .where(Purchase.id.in_(purchase_ids))
            .where(Purchase.paid_to_seller == False)  # noqa: E712
            .values(paid_to_seller=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(purchase_ids):
            logger.warning(
                "settlement_conflict",
                seller_id=seller.id,
                expected=len(purchase_ids),
                updated=result.rowcount,
            )
            raise PersistenceError(
                code="SETTLEMENT_CONFLICT",
                detail=(
                    f"{len(purchase_ids) - result.rowcount} of {len(purchase_ids)} purchases "
                    f"for seller {seller.id} were settled concurrently"
                ),
            )
        for purchase in purchases:
            set_committed_value(purchase, "paid_to_seller", True)

        # 乐观锁更新余额
        balance_after = balance_before + delta
        result = await session.execute(
            update(Seller)
            .where(Seller.id == seller.id)
            .where(Seller.version == seller.version)
            .values(balance=balance_after, version=seller.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("balance_conflict", seller_id=seller.id, version=seller.version)
            raise PersistenceError(
                code="BALANCE_CONFLICT",
                detail=f"balance of seller {seller.id} changed during settlement",
            )
        set_committed_value(seller, "balance", balance_after)
        set_committed_value(seller, "version", seller.version + 1)

        return SettlementOutcome(
            purchase_ids=purchase_ids,
            delta=delta,
            balance_before=balance_before,
            balance_after=balance_after,
            refunded_count=sum(1 for purchase_id in purchase_ids if purchase_id in refunds),
        )
