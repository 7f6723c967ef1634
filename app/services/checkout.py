from decimal import Decimal
from typing import Optional
import logging

from pymongo.errors import PyMongoError

from app.core.errors import Conflict, NotFound, TransientStoreError, Unauthorized, ValidationError
from app.models.document import Document
from app.models.payment import CheckoutRequest, CheckoutResponse, PurchaseIntent
from app.models.user import User
from app.services.fees import DEFAULT_PLATFORM_FEE_RATE, compute_fees

logger = logging.getLogger(__name__)

def _checkout_amount(requested: Optional[int], price: int) -> int:
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise ValidationError("Document is not for sale")
    if requested is None:
        return price
    if requested <= 0:
        raise ValidationError("Amount must be a positive integer")
    if requested != price:
        raise ValidationError("Amount does not match the document price")
    return requested

async def initiate_checkout(
    db,
    processor,
    checkout: CheckoutRequest,
    caller: Optional[User],
    base_url: str,
    currency: str = "nok",
    fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
) -> CheckoutResponse:
    """
    Open a payment session for ``caller`` buying ``checkout.document_id``.

    Nothing is written to the store here; the purchase is only recorded once the
    processor confirms payment through the webhook.
    """
    if caller is None or caller.id != checkout.buyer_id:
        raise Unauthorized()

    try:
        document = await db.documents.find_one({"id": checkout.document_id})
        if not document:
            raise NotFound("Document not found")

        # Early exit only, the unique index on purchases is the real guard
        existing_purchase = await db.purchases.find_one({
            "buyer_id": checkout.buyer_id,
            "document_id": checkout.document_id,
        })
    except PyMongoError as e:
        logger.error(f"Store unavailable during checkout: {str(e)}")
        raise TransientStoreError() from e

    if existing_purchase:
        raise Conflict("Already purchased")

    document = Document(**document)
    amount = _checkout_amount(checkout.amount, document.price)
    fees = compute_fees(amount, fee_rate)
    intent = PurchaseIntent(
        document_id=document.id,
        buyer_id=checkout.buyer_id,
        platform_fee=fees.platform_fee,
        seller_amount=fees.seller_amount,
    )

    base_url = base_url.rstrip('/')
    session = await processor.create_checkout_session(
        amount=amount,
        currency=currency,
        product_name=document.title or "Document Purchase",
        success_url=f"{base_url}/marketplace/{document.id}?success=true",
        cancel_url=f"{base_url}/marketplace/{document.id}?canceled=true",
        metadata=intent.to_metadata(),
    )

    logger.info(f"Checkout session {session.id} opened for document {document.id} by buyer {caller.id}")
    return CheckoutResponse(sessionId=session.id, url=session.url)
