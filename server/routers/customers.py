"""Customer routes."""

from typing import Optional

from fastapi import APIRouter, Depends

from core.container import container
from middleware.auth import current_user_id
from models.api import CustomerCreate, CustomerUpdate
from services.customers import CustomerService

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("")
async def list_customers(
    status: Optional[str] = None,
    search: Optional[str] = None,
    user_id: str = Depends(current_user_id),
    customers: CustomerService = Depends(lambda: container.customer_service())
):
    items = await customers.list(user_id, status=status, search=search)
    return {"success": True, "data": [c.to_dict() for c in items]}


@router.get("/stats")
async def customer_stats(
    user_id: str = Depends(current_user_id),
    customers: CustomerService = Depends(lambda: container.customer_service())
):
    return {"success": True, "data": await customers.stats(user_id)}


@router.post("", status_code=201)
async def create_customer(
    request: CustomerCreate,
    user_id: str = Depends(current_user_id),
    customers: CustomerService = Depends(lambda: container.customer_service())
):
    customer = await customers.create(user_id, request.changes())
    return {"success": True, "data": customer.to_dict()}


@router.get("/{customer_id}")
async def get_customer(
    customer_id: str,
    user_id: str = Depends(current_user_id),
    customers: CustomerService = Depends(lambda: container.customer_service())
):
    customer = await customers.get(user_id, customer_id)
    return {"success": True, "data": customer.to_dict()}


@router.put("/{customer_id}")
async def update_customer(
    customer_id: str,
    request: CustomerUpdate,
    user_id: str = Depends(current_user_id),
    customers: CustomerService = Depends(lambda: container.customer_service())
):
    customer = await customers.update(user_id, customer_id, request.changes())
    return {"success": True, "data": customer.to_dict()}


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    user_id: str = Depends(current_user_id),
    customers: CustomerService = Depends(lambda: container.customer_service())
):
    await customers.delete(user_id, customer_id)
    return {"success": True, "data": {"id": customer_id}}
