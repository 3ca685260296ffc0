"""
SellerPay 服务层
"""
from .eligibility import EligibilitySelector
from .settlement import SettlementExecutor, SettlementOutcome
from .payout_service import PayoutResult, PayoutService, run_payout
from .schedule import always_payout_day, is_configured_payout_day

__all__ = [
    "EligibilitySelector",
    "SettlementExecutor",
    "SettlementOutcome",
    "PayoutResult",
    "PayoutService",
    "run_payout",
    "always_payout_day",
    "is_configured_payout_day",
]
