class MarketplaceError(Exception):
    """Base error rendered as ``{"error": message}`` with ``status_code``."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

class Unauthorized(MarketplaceError):
    status_code = 401
    default_message = "Unauthorized"

class NotFound(MarketplaceError):
    status_code = 404
    default_message = "Not found"

class Conflict(MarketplaceError):
    # Duplicate purchases are reported as bad requests to the client
    status_code = 400
    default_message = "Already purchased"

class ValidationError(MarketplaceError):
    status_code = 400
    default_message = "Invalid request"

class InvalidSignature(MarketplaceError):
    status_code = 400
    default_message = "Invalid signature"

class TransientStoreError(MarketplaceError):
    """The store could not be reached; the caller may retry."""

    status_code = 503
    default_message = "Storage temporarily unavailable"

class PaymentSessionError(MarketplaceError):
    status_code = 500
    default_message = "Checkout failed"
