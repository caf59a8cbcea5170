"""Product catalogue queries."""

from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlmodel import select

from core.database import Database
from core.exceptions import NotFoundError, ValidationFailedError
from core.logging import get_logger
from models.auth import utcnow
from models.database import LOW_STOCK_THRESHOLD, PRODUCT_STATUSES, Product

logger = get_logger(__name__)


def _check_status(status: Optional[str]) -> None:
    if status is not None and status not in PRODUCT_STATUSES:
        raise ValidationFailedError(
            f"Product status must be one of: {', '.join(PRODUCT_STATUSES)}",
            details={"status": status},
        )


class ProductService:
    """CRUD and stats for a user's products."""

    def __init__(self, database: Database):
        self.database = database

    async def create(self, user_id: str, data: Dict[str, Any]) -> Product:
        _check_status(data.get("status"))
        product = Product(user_id=user_id, **{k: v for k, v in data.items() if v is not None})
        async with self.database.get_session() as session:
            session.add(product)
            await session.commit()
            await session.refresh(product)
        logger.info("Product created", user_id=user_id, product_id=product.id)
        return product

    async def list(
        self,
        user_id: str,
        status: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Product]:
        stmt = select(Product).where(Product.user_id == user_id)
        if status:
            stmt = stmt.where(Product.status == status)
        if category:
            stmt = stmt.where(Product.category == category)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.sku.ilike(pattern),
            ))
        stmt = stmt.order_by(Product.created_at.desc())
        if limit:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        async with self.database.get_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get(self, user_id: str, product_id: str) -> Product:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(Product).where(Product.id == product_id, Product.user_id == user_id)
            )
            product = result.scalars().first()
        if product is None:
            raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
        return product

    async def update(self, user_id: str, product_id: str, data: Dict[str, Any]) -> Product:
        _check_status(data.get("status"))
        async with self.database.get_session() as session:
            result = await session.execute(
                select(Product).where(Product.id == product_id, Product.user_id == user_id)
            )
            product = result.scalars().first()
            if product is None:
                raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")

            for field, value in data.items():
                setattr(product, field, value)
            product.updated_at = utcnow()
            await session.commit()
            await session.refresh(product)
        return product

    async def delete(self, user_id: str, product_id: str) -> None:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(Product).where(Product.id == product_id, Product.user_id == user_id)
            )
            product = result.scalars().first()
            if product is None:
                raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
            await session.delete(product)
            await session.commit()
        logger.info("Product deleted", user_id=user_id, product_id=product_id)

    async def stats(self, user_id: str) -> Dict[str, Any]:
        products = await self.list(user_id)
        categories: Dict[str, int] = {}
        for product in products:
            if product.category:
                categories[product.category] = categories.get(product.category, 0) + 1

        return {
            "total": len(products),
            "active": sum(1 for p in products if p.status == "active"),
            "inactive": sum(1 for p in products if p.status == "inactive"),
            "discontinued": sum(1 for p in products if p.status == "discontinued"),
            "lowStock": sum(1 for p in products if p.stock_quantity <= LOW_STOCK_THRESHOLD),
            "categories": [
                {"category": name, "count": count}
                for name, count in sorted(categories.items(), key=lambda item: (-item[1], item[0]))
            ],
        }

    async def categories(self, user_id: str) -> List[str]:
        """Distinct category names in use, alphabetical."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(Product.category)
                .where(Product.user_id == user_id, Product.category.is_not(None))
                .distinct()
                .order_by(Product.category)
            )
            return list(result.scalars().all())
