from fastapi import APIRouter, Depends, Request
from typing import List
import logging

from app.models.document import Document
from app.models.payment import (
    CheckoutRequest,
    CheckoutResponse,
    Purchase,
    PurchaseWithDocument,
    SalesReport,
    WebhookAck,
)
from app.models.user import User
from app.db.session import get_db
from app.core.dependencies import get_payment_processor, get_settings
from app.services.auth import get_current_user, get_current_user_optional
from app.services.checkout import initiate_checkout
from app.services.webhook import handle_notification

logger = logging.getLogger(__name__)
router = APIRouter()

SALES_PAGE_SIZE = 1000

@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    checkout: CheckoutRequest,
    current_user: User = Depends(get_current_user_optional),
    db=Depends(get_db),
    processor=Depends(get_payment_processor),
    config=Depends(get_settings),
):
    return await initiate_checkout(
        db,
        processor,
        checkout,
        current_user,
        base_url=config.BASE_URL,
        currency=config.CURRENCY,
        fee_rate=config.PLATFORM_FEE_RATE,
    )

@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db=Depends(get_db),
    processor=Depends(get_payment_processor),
    config=Depends(get_settings),
):
    # The raw bytes are needed, the signature covers them exactly
    body = await request.body()
    signature = request.headers.get("stripe-signature")
    return await handle_notification(db, processor, body, signature, fee_rate=config.PLATFORM_FEE_RATE)

async def _attach_documents(db, purchases) -> List[PurchaseWithDocument]:
    document_ids = list({p["document_id"] for p in purchases})
    documents = await db.documents.find({"id": {"$in": document_ids}}).to_list(len(document_ids) or 1)
    by_id = {d["id"]: Document(**d) for d in documents}

    return [
        PurchaseWithDocument(purchase=Purchase(**p), document=by_id.get(p["document_id"]))
        for p in purchases
    ]

@router.get("/my-purchases", response_model=List[PurchaseWithDocument])
async def get_my_purchases(current_user: User = Depends(get_current_user), db=Depends(get_db)):
    purchases = await db.purchases.find({"buyer_id": current_user.id}).sort("created_at", -1).to_list(100)
    return await _attach_documents(db, purchases)

@router.get("/sales", response_model=SalesReport)
async def get_my_sales(current_user: User = Depends(get_current_user), db=Depends(get_db)):
    """Purchases of the current user's documents and the seller share earned"""
    document_ids = await db.documents.distinct("id", {"user_id": current_user.id})
    if not document_ids:
        return SalesReport()

    sold = {"document_id": {"$in": document_ids}}
    totals = await db.purchases.aggregate([
        {"$match": sold},
        {"$group": {"_id": None, "total": {"$sum": "$seller_amount"}}},
    ]).to_list(1)
    total_earnings = totals[0]["total"] if totals else 0

    # The listing is capped, the total covers every sale
    purchases = await db.purchases.find(sold).sort("created_at", -1).to_list(SALES_PAGE_SIZE)
    sales = await _attach_documents(db, purchases)
    return SalesReport(sales=sales, total_earnings=total_earnings)
