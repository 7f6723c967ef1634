from decimal import Decimal
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# It's better to load the .env file from the root of the project
# Assuming the script is run from the project root
load_dotenv()

class Settings(BaseSettings):
    # JWT
    JWT_SECRET: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "nordnotes"
    MONGO_TIMEOUT_MS: int = 5000

    # File storage
    UPLOAD_DIR: Path = Path("/app/uploads")
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024

    # Marketplace
    BASE_URL: str = "http://localhost:3000"
    CURRENCY: str = "nok"
    PLATFORM_FEE_RATE: Decimal = Decimal("0.10")

    # Stripe
    STRIPE_API_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_TIMEOUT_SECONDS: float = 10.0
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # OpenAI (optional, metadata falls back to heuristics without it)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(case_sensitive=True)

settings = Settings()
