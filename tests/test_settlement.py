"""
结算执行器测试
"""
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from payout_core.config import Settings
from payout_core.models import PayoutSchedule, Purchase, Refund, Seller
from payout_core.services import EligibilitySelector, SettlementExecutor
from payout_core.utils.errors import DataIntegrityError, PersistenceError


def _executor(**overrides) -> SettlementExecutor:
    return SettlementExecutor(Settings(db_url="sqlite+aiosqlite://", **overrides))


def test_net_amount_without_refund():
    purchase = Purchase(id=1, amount=Decimal("20.10"))
    assert _executor().net_amount(purchase, None) == Decimal("20.10")


def test_full_refund_contributes_nothing():
    purchase = Purchase(id=1, amount=Decimal("45.40"))
    refund = Refund(id=1, purchase_id=1, amount=Decimal("45.40"), processed=False)
    assert _executor().net_amount(purchase, refund) == Decimal("0")


def test_partial_refund_is_deducted():
    purchase = Purchase(id=1, amount=Decimal("30.00"))
    refund = Refund(id=1, purchase_id=1, amount=Decimal("12.50"), processed=True)
    assert _executor().net_amount(purchase, refund) == Decimal("17.50")


def test_processed_only_ignores_pending_refunds():
    executor = _executor(refund_deduction="processed_only")
    purchase = Purchase(id=1, amount=Decimal("30.00"))

    pending = Refund(id=1, purchase_id=1, amount=Decimal("30.00"), processed=False)
    assert executor.net_amount(purchase, pending) == Decimal("30.00")

    done = Refund(id=2, purchase_id=1, amount=Decimal("30.00"), processed=True)
    assert executor.net_amount(purchase, done) == Decimal("0")


def test_refund_above_purchase_amount_is_rejected():
    purchase = Purchase(id=7, amount=Decimal("10.00"))
    refund = Refund(id=3, purchase_id=7, amount=Decimal("10.01"))

    with pytest.raises(DataIntegrityError) as exc_info:
        _executor().net_amount(purchase, refund)

    assert exc_info.value.code == "REFUND_EXCEEDS_PURCHASE"
    assert exc_info.value.extra == {"purchase_id": 7}


def test_non_positive_refund_is_rejected():
    purchase = Purchase(id=7, amount=Decimal("10.00"))
    refund = Refund(id=3, purchase_id=7, amount=Decimal("0"))

    with pytest.raises(DataIntegrityError) as exc_info:
        _executor().net_amount(purchase, refund)

    assert exc_info.value.code == "REFUND_NOT_POSITIVE"


def test_validation_can_be_disabled():
    executor = _executor(strict_refund_validation=False)
    purchase = Purchase(id=7, amount=Decimal("10.00"))
    refund = Refund(id=3, purchase_id=7, amount=Decimal("12.00"))

    assert executor.net_amount(purchase, refund) == Decimal("-2.00")


async def test_settle_empty_set_is_noop(db_manager, seed_marketplace):
    seller_id = await seed_marketplace()

    async with db_manager.get_transaction() as session:
        seller = await session.get(Seller, seller_id)
        outcome = await _executor().settle(session, seller, [])

    assert outcome.settled_count == 0
    assert outcome.delta == Decimal("0")
    assert outcome.balance_after == outcome.balance_before == Decimal("0")

    async with db_manager.get_session() as session:
        assert (await session.get(Seller, seller_id)).version == 0


async def test_settle_updates_flags_balance_and_version(db_manager, settings, seed_marketplace, as_of):
    seller_id = await seed_marketplace()

    async with db_manager.get_transaction() as session:
        seller = await session.get(Seller, seller_id)
        schedule = (
            await session.execute(select(PayoutSchedule).where(PayoutSchedule.seller_id == seller_id))
        ).scalar_one()
        purchases = await EligibilitySelector(settings).select(session, seller_id, schedule, as_of)
        outcome = await SettlementExecutor(settings).settle(session, seller, purchases)

    assert outcome.settled_count == 3
    assert outcome.refunded_count == 1
    assert outcome.delta == Decimal("70.5")
    assert all(purchase.paid_to_seller for purchase in purchases)

    async with db_manager.get_session() as session:
        seller = await session.get(Seller, seller_id)
        assert seller.balance == Decimal("70.5")
        assert seller.version == 1


async def test_balance_changed_underneath_raises_conflict(db_manager, settings, seed_marketplace, as_of):
    seller_id = await seed_marketplace()

    async with db_manager.get_session() as session:
        seller = await session.get(Seller, seller_id)
        schedule = (
            await session.execute(select(PayoutSchedule).where(PayoutSchedule.seller_id == seller_id))
        ).scalar_one()
        purchases = await EligibilitySelector(settings).select(session, seller_id, schedule, as_of)
        await session.commit()

        # 另一个事务抢先修改了余额
        async with db_manager.get_transaction() as other:
            await other.execute(
                update(Seller)
                .where(Seller.id == seller_id)
                .values(balance=Decimal("5"), version=Seller.version + 1)
            )

        with pytest.raises(PersistenceError) as exc_info:
            await SettlementExecutor(settings).settle(session, seller, purchases)
        await session.rollback()

    assert exc_info.value.code == "BALANCE_CONFLICT"

    async with db_manager.get_session() as session:
        result = await session.execute(select(Purchase.paid_to_seller))
        assert not any(result.scalars().all())

