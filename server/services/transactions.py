"""Transaction storage and dashboard invalidation."""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlmodel import select

from core.cache import CacheService
from core.database import Database
from core.exceptions import NotFoundError, ValidationFailedError
from core.logging import get_logger
from models.api import TransactionCreate
from models.database import TRANSACTION_TYPES, Transaction
from services.dashboard import invalidate_dashboard_cache

logger = get_logger(__name__)


class TransactionService:
    """CRUD for income/expense entries.

    Writes invalidate the owner's dashboard cache since every dashboard
    figure is derived from transactions.
    """

    def __init__(self, database: Database, cache: CacheService):
        self.database = database
        self.cache = cache

    async def create(self, user_id: str, data: Dict[str, Any]) -> Transaction:
        if data.get("type") not in TRANSACTION_TYPES:
            raise ValidationFailedError(
                "Transaction type must be income or expense",
                details={"type": data.get("type")},
            )

        txn = Transaction(user_id=user_id, **data)
        async with self.database.get_session() as session:
            session.add(txn)
            await session.commit()
            await session.refresh(txn)

        logger.info("Transaction created", user_id=user_id, transaction_id=txn.id, type=txn.type)
        await self.invalidate_dashboard(user_id)
        return txn

    async def create_batch(self, user_id: str, items: List[Any]) -> List[Transaction]:
        """Insert every item or none of them.

        Each item is validated on its own; any failure rejects the whole
        batch with the errors listed per item index.
        """
        failures = []
        txns = []
        for index, item in enumerate(items):
            try:
                fields = TransactionCreate.model_validate(item).to_fields()
            except ValidationError as e:
                failures.append({
                    "index": index,
                    "errors": [
                        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                        for err in e.errors()
                    ],
                })
                continue
            txns.append(Transaction(user_id=user_id, **fields))

        if failures:
            raise ValidationFailedError(
                "Some transactions failed validation",
                details=failures,
                suggestion="Fix the invalid transactions and try again",
            )

        async with self.database.get_session() as session:
            session.add_all(txns)
            await session.commit()
            for txn in txns:
                await session.refresh(txn)

        logger.info("Transactions created", user_id=user_id, count=len(txns))
        await self.invalidate_dashboard(user_id)
        return txns

    async def find_by_user(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        type: Optional[str] = None,
    ) -> List[Transaction]:
        """Transactions for a user, newest first. Date bounds are inclusive."""
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if start_date is not None:
            stmt = stmt.where(Transaction.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Transaction.date <= end_date)
        if category is not None:
            stmt = stmt.where(Transaction.category == category)
        if type is not None:
            stmt = stmt.where(Transaction.type == type)
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.created_at.desc())

        async with self.database.get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get(self, user_id: str, transaction_id: str) -> Transaction:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(Transaction).where(
                    Transaction.id == transaction_id,
                    Transaction.user_id == user_id,
                )
            )
            txn = result.scalars().first()
        if txn is None:
            raise NotFoundError("Transaction not found", code="TRANSACTION_NOT_FOUND")
        return txn

    async def delete(self, user_id: str, transaction_id: str) -> None:
        txn = await self.get(user_id, transaction_id)
        async with self.database.get_session() as session:
            await session.delete(await session.merge(txn))
            await session.commit()

        logger.info("Transaction deleted", user_id=user_id, transaction_id=transaction_id)
        await self.invalidate_dashboard(user_id)

    async def invalidate_dashboard(self, user_id: str) -> int:
        return await invalidate_dashboard_cache(self.cache, user_id)
