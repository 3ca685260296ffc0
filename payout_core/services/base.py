"""
基础服务类
"""
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from payout_core.database import DatabaseManager, get_db_manager
from payout_core.utils.errors import PayoutException, PersistenceError
from payout_core.utils.logger import get_logger


class BaseService:
    """基础服务类"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db_manager = db_manager or get_db_manager()
        self.logger = get_logger(self.__class__.__name__)

    async def execute_with_transaction(
        self,
        operation,
        *args,
        **kwargs
    ) -> Any:
        """在事务中执行操作，正常返回即提交

        存储层异常统一转换为 PersistenceError，事务已回滚。
        """
        try:
            async with self.db_manager.get_transaction() as session:
                return await operation(session, *args, **kwargs)
        except PayoutException:
            raise
        except SQLAlchemyError as e:
            self.logger.error("Transaction operation failed", exc_info=True)
            raise PersistenceError(
                code="TRANSACTION_FAILED",
                detail=f"Database transaction failed: {e}"
            ) from e

    async def execute_with_rollback(
        self,
        operation,
        *args,
        **kwargs
    ) -> Any:
        """在会话中执行操作，结束后总是回滚（用于预览）"""
        try:
            async with self.db_manager.get_session() as session:
                try:
                    return await operation(session, *args, **kwargs)
                finally:
                    await session.rollback()
        except PayoutException:
            raise
        except SQLAlchemyError as e:
            self.logger.error("Session operation failed", exc_info=True)
            raise PersistenceError(
                code="SESSION_OPERATION_FAILED",
                detail=f"Database operation failed: {e}"
            ) from e
