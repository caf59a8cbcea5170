"""Customer records."""

from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlmodel import select

from core.database import Database
from core.exceptions import NotFoundError, ValidationFailedError
from core.logging import get_logger
from models.auth import utcnow
from models.database import CUSTOMER_STATUSES, Customer

logger = get_logger(__name__)


class CustomerService:
    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _check_status(status: Optional[str]) -> None:
        if status is not None and status not in CUSTOMER_STATUSES:
            raise ValidationFailedError(
                "Customer status must be active or inactive",
                details={"status": status},
            )

    async def create(self, user_id: str, data: Dict[str, Any]) -> Customer:
        self._check_status(data.get("status"))
        customer = Customer(user_id=user_id, **{k: v for k, v in data.items() if v is not None})
        async with self.database.get_session() as session:
            session.add(customer)
            await session.commit()
            await session.refresh(customer)
        logger.info("Customer created", user_id=user_id, customer_id=customer.id)
        return customer

    async def list(
        self,
        user_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Customer]:
        stmt = select(Customer).where(Customer.user_id == user_id)
        if status:
            stmt = stmt.where(Customer.status == status)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
            ))
        stmt = stmt.order_by(Customer.name)

        async with self.database.get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def _find(self, session, user_id: str, customer_id: str) -> Customer:
        result = await session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.user_id == user_id)
        )
        customer = result.scalars().first()
        if customer is None:
            raise NotFoundError("Customer not found", code="CUSTOMER_NOT_FOUND")
        return customer

    async def get(self, user_id: str, customer_id: str) -> Customer:
        async with self.database.get_session() as session:
            return await self._find(session, user_id, customer_id)

    async def update(self, user_id: str, customer_id: str, data: Dict[str, Any]) -> Customer:
        self._check_status(data.get("status"))
        async with self.database.get_session() as session:
            customer = await self._find(session, user_id, customer_id)
            for field, value in data.items():
                setattr(customer, field, value)
            customer.updated_at = utcnow()
            await session.commit()
            await session.refresh(customer)
        return customer

    async def delete(self, user_id: str, customer_id: str) -> None:
        async with self.database.get_session() as session:
            customer = await self._find(session, user_id, customer_id)
            await session.delete(customer)
            await session.commit()
        logger.info("Customer deleted", user_id=user_id, customer_id=customer_id)

    async def stats(self, user_id: str) -> Dict[str, int]:
        customers = await self.list(user_id)
        return {
            "total": len(customers),
            "active": sum(1 for c in customers if c.status == "active"),
            "inactive": sum(1 for c in customers if c.status == "inactive"),
        }
