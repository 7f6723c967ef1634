from fastapi import FastAPI, APIRouter, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
import logging

from app.core.config import settings
from app.core.errors import MarketplaceError
from app.db.session import create_mongo_client, ensure_indexes
from app.routers import auth, documents, grades, payments
from app.services.ai import build_metadata_service
from app.services.file import LocalFileStorage
from app.services.stripe_gateway import StripePaymentProcessor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def create_app(
    config=settings,
    db=None,
    payment_processor=None,
    metadata_service=None,
    storage=None,
) -> FastAPI:
    """Build the API with its collaborators; anything not passed in is created from ``config``."""
    app = FastAPI(title="NordNotes API")

    client = None
    if db is None:
        client = create_mongo_client(config)
        db = client[config.DB_NAME]

    app.state.settings = config
    app.state.db = db
    app.state.payment_processor = payment_processor or StripePaymentProcessor(
        api_key=config.STRIPE_API_KEY,
        webhook_secret=config.STRIPE_WEBHOOK_SECRET,
        timeout=config.STRIPE_TIMEOUT_SECONDS,
        tolerance=config.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )
    app.state.metadata_service = metadata_service or build_metadata_service(config)
    app.state.storage = storage or LocalFileStorage(config.UPLOAD_DIR)

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})

    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth.router)
    api_router.include_router(documents.router)
    api_router.include_router(payments.router)
    api_router.include_router(grades.router)

    @api_router.get("/health")
    async def health():
        return {"ok": True}

    # Include the router in the main app
    app.include_router(api_router)

    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_db_client():
        await ensure_indexes(app.state.db)

    @app.on_event("shutdown")
    async def shutdown_db_client():
        if client is not None:
            client.close()

    return app

app = create_app()
