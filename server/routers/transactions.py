"""Transaction routes. Writes here invalidate the owner's dashboard cache."""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends

from core.container import container
from middleware.auth import current_user_id
from models.api import TransactionBatch, TransactionCreate
from services.transactions import TransactionService

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("")
async def list_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    type: Optional[Literal["income", "expense"]] = None,
    user_id: str = Depends(current_user_id),
    transactions: TransactionService = Depends(lambda: container.transaction_service())
):
    items = await transactions.find_by_user(
        user_id, start_date=start_date, end_date=end_date, category=category, type=type
    )
    return {"success": True, "data": [t.to_dict() for t in items]}


@router.post("", status_code=201)
async def create_transaction(
    request: TransactionCreate,
    user_id: str = Depends(current_user_id),
    transactions: TransactionService = Depends(lambda: container.transaction_service())
):
    txn = await transactions.create(user_id, request.to_fields())
    return {"success": True, "data": txn.to_dict()}


@router.post("/batch", status_code=201)
async def create_transactions(
    request: TransactionBatch,
    user_id: str = Depends(current_user_id),
    transactions: TransactionService = Depends(lambda: container.transaction_service())
):
    txns = await transactions.create_batch(user_id, request.transactions)
    return {"success": True, "data": {"transactions": [t.to_dict() for t in txns], "count": len(txns)}}


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    user_id: str = Depends(current_user_id),
    transactions: TransactionService = Depends(lambda: container.transaction_service())
):
    txn = await transactions.get(user_id, transaction_id)
    return {"success": True, "data": txn.to_dict()}


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(current_user_id),
    transactions: TransactionService = Depends(lambda: container.transaction_service())
):
    await transactions.delete(user_id, transaction_id)
    return {"success": True, "data": {"id": transaction_id}}
