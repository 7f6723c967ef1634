from datetime import timedelta
from io import BytesIO
import hashlib
import hmac
import json
import time

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from pypdf import PdfWriter

from app.core.config import Settings, settings as default_settings
from app.core.errors import PaymentSessionError
from app.db.session import ensure_indexes
from app.models.document import Document
from app.models.payment import CheckoutSession
from app.models.user import User
from app.services.ai import FallbackMetadataService
from app.services.auth import create_access_token
from app.services.file import LocalFileStorage
from app.services.stripe_gateway import StripePaymentProcessor
from server import create_app

WEBHOOK_SECRET = "whsec_test_secret"

class FakePaymentProcessor(StripePaymentProcessor):
    """Real webhook verification, recorded checkout sessions instead of Stripe calls"""

    def __init__(self):
        super().__init__(api_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
        self.sessions = []
        self.fail = False

    async def create_checkout_session(self, **kwargs):
        if self.fail:
            raise PaymentSessionError("Stripe is down")
        self.sessions.append(kwargs)
        session_id = f"cs_test_{len(self.sessions)}"
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")

def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"

def completed_event(
    document_id: str,
    buyer_id: str,
    amount_total: int = 500,
    payment_intent: str = "pi_test_1",
    event_type: str = "checkout.session.completed",
    **session_fields,
) -> str:
    session = {
        "id": "cs_test_1",
        "object": "checkout.session",
        "amount_total": amount_total,
        "currency": "nok",
        "payment_intent": payment_intent,
        "payment_status": "paid",
        "metadata": {
            "documentId": document_id,
            "buyerId": buyer_id,
            "platformFee": "50",
            "sellerAmount": "450",
        },
    }
    session.update(session_fields)
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {"object": session},
    })

def make_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()

def auth_headers(user: User, config=None) -> dict:
    token = create_access_token({"sub": user.id}, config or default_settings, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def settings(tmp_path):
    return Settings(
        UPLOAD_DIR=tmp_path,
        BASE_URL="http://nordnotes.test",
        STRIPE_API_KEY="sk_test_fake",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        OPENAI_API_KEY="",
    )

@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["nordnotes_test"]
    await ensure_indexes(database)
    return database

@pytest.fixture
def processor():
    return FakePaymentProcessor()

@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path)

@pytest.fixture
def metadata_service():
    return FallbackMetadataService()

@pytest.fixture
def app(settings, db, processor, storage, metadata_service):
    return create_app(
        config=settings,
        db=db,
        payment_processor=processor,
        metadata_service=metadata_service,
        storage=storage,
    )

@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

async def _insert_user(db, username: str) -> User:
    user = User(username=username, email=f"{username}@uio.no", university="UiO")
    user_doc = user.model_dump()
    user_doc["hashed_password"] = "not-used"
    await db.users.insert_one(user_doc)
    return user

@pytest.fixture
async def seller(db):
    return await _insert_user(db, "seller")

@pytest.fixture
async def buyer(db):
    return await _insert_user(db, "buyer")

@pytest.fixture
async def other_user(db):
    return await _insert_user(db, "mallory")

@pytest.fixture
async def document(db, seller):
    doc = Document(
        user_id=seller.id,
        title="STK1110 exam notes",
        description="Hypothesis testing and confidence intervals",
        course_code="STK1110",
        university="UiO",
        tags=["statistics"],
        price=1000,
        difficulty=3,
        file_path=f"{seller.id}/notes.pdf",
        original_filename="notes.pdf",
    )
    await db.documents.insert_one(doc.model_dump())
    return doc
