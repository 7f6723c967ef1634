from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
import uuid
from datetime import datetime

from app.models.document import Document

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    buyer_id: str = Field(alias="buyerId")
    amount: Optional[int] = None  # defaults to the document price

class CheckoutResponse(BaseModel):
    sessionId: str
    url: Optional[str] = None

class CheckoutSession(BaseModel):
    """What the payment processor hands back after opening a session"""
    id: str
    url: Optional[str] = None

class PurchaseIntent(BaseModel):
    document_id: str
    buyer_id: str
    platform_fee: int
    seller_amount: int

    def to_metadata(self) -> Dict[str, str]:
        # Stripe metadata values are strings
        return {
            "documentId": self.document_id,
            "buyerId": self.buyer_id,
            "platformFee": str(self.platform_fee),
            "sellerAmount": str(self.seller_amount),
        }

    @classmethod
    def from_metadata(cls, metadata: Dict[str, Any], platform_fee: int, seller_amount: int):
        """Read identifiers back from session metadata; fees always come from the caller."""
        return cls(
            document_id=str(metadata["documentId"]),
            buyer_id=str(metadata["buyerId"]),
            platform_fee=platform_fee,
            seller_amount=seller_amount,
        )

class Purchase(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    buyer_id: str
    document_id: str
    payment_id: str  # processor transaction id, unique
    amount: int
    platform_fee: int
    seller_amount: int
    created_at: datetime = Field(default_factory=datetime.utcnow)

class PurchaseWithDocument(BaseModel):
    purchase: Purchase
    document: Optional[Document] = None

class SalesReport(BaseModel):
    sales: List[PurchaseWithDocument] = []
    total_earnings: int = 0

class WebhookAck(BaseModel):
    received: bool = True
