"""
SellerPay 命令行入口（供外部调度调用）

结果以单行 JSON 写到 stdout，日志写到 stderr。

使用方式：
payout run --seller-id 1
payout run --seller-id 1 --as-of 2024-05-10
payout run --seller-id 1 --preview
payout init-db
"""
import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Optional, Sequence

from payout_core.config import get_settings
from payout_core.database import get_db_manager
from payout_core.services.payout_service import PayoutService
from payout_core.utils.errors import PayoutException
from payout_core.utils.logger import setup_logging


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="payout", description="卖家结算工具")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="为指定卖家执行一次结算")
    run_parser.add_argument("--seller-id", type=int, required=True, help="卖家ID")
    run_parser.add_argument(
        "--as-of",
        type=_parse_date,
        default=None,
        help="结算基准日期（YYYY-MM-DD格式，不指定则为当天）"
    )
    run_parser.add_argument(
        "--preview",
        action="store_true",
        help="只计算不写入"
    )

    subparsers.add_parser("init-db", help="创建数据表（仅本地/测试环境）")
    return parser


async def _run(args: argparse.Namespace) -> int:
    db_manager = get_db_manager()
    try:
        if args.command == "init-db":
            await db_manager.create_tables()
            print(json.dumps({"ok": True}))
            return 0

        service = PayoutService(db_manager=db_manager)
        try:
            if args.preview:
                result = await service.preview(args.seller_id, args.as_of)
            else:
                result = await service.run_payout(args.seller_id, args.as_of)
        except PayoutException as e:
            print(json.dumps(e.to_dict(), ensure_ascii=False))
            return 1

        print(json.dumps({"ok": True, "data": result.to_dict()}, ensure_ascii=False))
        return 0
    finally:
        await db_manager.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format, stream=sys.stderr)

    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
