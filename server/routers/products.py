"""Product catalogue routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.container import container
from middleware.auth import current_user_id
from models.api import ProductCreate, ProductUpdate
from services.products import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
async def list_products(
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: Optional[int] = Query(default=None, ge=0),
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    items = await products.list(
        user_id, status=status, category=category, search=search, limit=limit, offset=offset
    )
    return {"success": True, "data": [p.to_dict() for p in items]}


@router.get("/stats")
async def product_stats(
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    return {"success": True, "data": await products.stats(user_id)}


@router.get("/categories")
async def product_categories(
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    return {"success": True, "data": await products.categories(user_id)}


@router.post("", status_code=201)
async def create_product(
    request: ProductCreate,
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    product = await products.create(user_id, request.changes())
    return {"success": True, "data": product.to_dict()}


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    product = await products.get(user_id, product_id)
    return {"success": True, "data": product.to_dict()}


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    request: ProductUpdate,
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    product = await products.update(user_id, product_id, request.changes())
    return {"success": True, "data": product.to_dict()}


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    user_id: str = Depends(current_user_id),
    products: ProductService = Depends(lambda: container.product_service())
):
    await products.delete(user_id, product_id)
    return {"success": True, "data": {"id": product_id}}
