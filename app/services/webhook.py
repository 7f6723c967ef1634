from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.errors import TransientStoreError, ValidationError
from app.models.payment import Purchase, PurchaseIntent, WebhookAck
from app.services.fees import DEFAULT_PLATFORM_FEE_RATE, compute_fees

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
SETTLED_PAYMENT_STATUSES = ("paid", "no_payment_required")

def _purchase_from_session(session: Dict[str, Any], fee_rate: Decimal) -> Purchase:
    metadata = session.get("metadata") or {}
    if not isinstance(metadata, dict) or not metadata.get("documentId") or not metadata.get("buyerId"):
        raise ValidationError("Webhook Error: session metadata is missing the purchase intent")

    amount = session.get("amount_total")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError("Webhook Error: session has no valid amount_total")

    payment_id = session.get("payment_intent") or session.get("id")
    if not payment_id:
        raise ValidationError("Webhook Error: session has no transaction identifier")

    # Fee fields in the metadata are ignored; only the signed gross amount counts
    fees = compute_fees(amount, fee_rate)
    intent = PurchaseIntent.from_metadata(metadata, fees.platform_fee, fees.seller_amount)

    return Purchase(
        buyer_id=intent.buyer_id,
        document_id=intent.document_id,
        payment_id=str(payment_id),
        amount=amount,
        platform_fee=intent.platform_fee,
        seller_amount=intent.seller_amount,
    )

async def record_purchase(db, purchase: Purchase) -> bool:
    """
    Insert ``purchase`` unless it is already recorded.
    Returns False when a unique index reports it as a duplicate.
    """
    try:
        await db.purchases.insert_one(purchase.model_dump())
    except DuplicateKeyError:
        logger.info(
            f"Purchase for payment {purchase.payment_id} "
            f"(buyer {purchase.buyer_id}, document {purchase.document_id}) already recorded"
        )
        return False
    except PyMongoError as e:
        logger.error(f"Failed to record purchase for payment {purchase.payment_id}: {str(e)}")
        raise TransientStoreError() from e
    return True

async def handle_notification(
    db,
    processor,
    raw_body: bytes,
    signature: Optional[str],
    fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
) -> WebhookAck:
    """Verify a payment processor notification and record the entitlement it confirms."""
    event = processor.parse_notification(raw_body, signature)
    event_type = event["type"]

    if event_type != CHECKOUT_COMPLETED:
        logger.info(f"Ignoring webhook event {event.get('id')} of type {event_type}")
        return WebhookAck()

    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        raise ValidationError("Webhook Error: event has no session object")

    payment_status = session.get("payment_status", "paid")
    if payment_status not in SETTLED_PAYMENT_STATUSES:
        logger.info(f"Checkout session {session.get('id')} completed with payment status {payment_status}, nothing to record")
        return WebhookAck()

    purchase = _purchase_from_session(session, fee_rate)
    if await record_purchase(db, purchase):
        logger.info(
            f"Recorded purchase {purchase.id} for document {purchase.document_id} "
            f"by buyer {purchase.buyer_id}: amount={purchase.amount} "
            f"platform_fee={purchase.platform_fee} seller_amount={purchase.seller_amount}"
        )
    return WebhookAck()
