"""Payment failure taxonomy.

Every failure carries a human-readable message and the HTTP status the API
layer answers with. None of them are retried by the caller.
"""


class PaymentError(Exception):
    """Base class for failures surfaced to API callers."""

    code = "PAYMENT_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return self.code.replace("_", " ").lower()

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class AlreadyPaid(PaymentError):
    code = "ALREADY_PAID"
    status_code = 409

    def default_message(self) -> str:
        return "Job already paid for."


class ConfigInvalid(PaymentError):
    code = "CONFIG_INVALID"
    status_code = 503

    def default_message(self) -> str:
        return "M-Pesa configuration is incomplete."


class TransportError(PaymentError):
    """The gateway could not be reached or sent no parseable response."""

    code = "TRANSPORT_ERROR"
    status_code = 502


class ProviderError(PaymentError):
    """The gateway answered but refused the request."""

    code = "PROVIDER_ERROR"
    status_code = 502


class AuthError(PaymentError):
    code = "AUTH_ERROR"
    status_code = 502

    def default_message(self) -> str:
        return "Could not obtain an M-Pesa access token."


class NotFound(PaymentError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidCallback(PaymentError):
    code = "INVALID_CALLBACK"
    status_code = 400
