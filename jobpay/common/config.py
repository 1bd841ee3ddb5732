"""Environment-driven settings for the marketplace payment service.

The process loads one `Settings` value at startup and passes it to every
component that needs it (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


GATEWAY_BASE_URLS = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "live": "https://api.safaricom.co.ke",
}


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "jobpay"
    log_level: str = "INFO"
    database_url: str = "sqlite:///./jobpay.db"
    redis_url: str | None = None
    public_base_url: str = "http://localhost:8000"
    otel_exporter_otlp_endpoint: str | None = None

    mpesa_env: str = "sandbox"
    mpesa_business_short_code: str | None = "174379"
    mpesa_consumer_key: str | None = None
    mpesa_consumer_secret: str | None = None
    mpesa_passkey: str | None = None
    mpesa_security_credential: str | None = None
    mpesa_initiator_name: str = "Freelance Marketplace"
    mpesa_account_reference: str = "Freelance Marketplace"
    mpesa_transaction_desc: str = "Payment for job"
    mpesa_http_timeout_seconds: float = 10.0
    mpesa_fixed_amount: int | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def gateway_base_url(self) -> str:
        # Anything other than "live" talks to the sandbox.
        return GATEWAY_BASE_URLS["live" if self.mpesa_env == "live" else "sandbox"]

    @property
    def stk_config_complete(self) -> bool:
        """True when every value needed for an STK Push is present."""

        return all(
            [
                self.mpesa_business_short_code,
                self.mpesa_consumer_key,
                self.mpesa_consumer_secret,
                self.mpesa_passkey,
            ]
        )

    @property
    def b2c_config_complete(self) -> bool:
        """True when every value needed for a B2C payout is present."""

        return all(
            [
                self.mpesa_business_short_code,
                self.mpesa_consumer_key,
                self.mpesa_consumer_secret,
                self.mpesa_security_credential,
            ]
        )

    def callback_url(self, path: str) -> str:
        return f"{self.public_base_url.rstrip('/')}{path}"
