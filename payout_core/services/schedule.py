"""
结算日判定

结算是否在某天执行由外部决定，这里提供两个可替换的判定函数：
- always_payout_day：永远放行（默认行为）
- is_configured_payout_day：仅在卖家配置的星期执行
"""
from datetime import date
from typing import Callable

from payout_core.models import PayoutSchedule, Weekday

PayoutDayPredicate = Callable[[PayoutSchedule, date], bool]


def always_payout_day(schedule: PayoutSchedule, today: date) -> bool:
    return True


def is_configured_payout_day(schedule: PayoutSchedule, today: date) -> bool:
    """today 是否为卖家配置的结算日"""
    return Weekday(schedule.payout_day) is Weekday.from_date(today)
