from app.core.config import Settings
from app.core.logging_config import get_logger
from app.gateways.base import PaymentGateway

logger = get_logger()


def build_gateway(settings: Settings) -> PaymentGateway | None:
    """Construct the configured provider, or None when credentials are missing."""
    provider = settings.PAYMENT_PROVIDER

    if provider == "razorpay":
        if not (settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET):
            logger.warning("Razorpay not configured - RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET missing")
            return None
        from app.gateways.razorpay_gateway import RazorpayGateway

        return RazorpayGateway(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        )

    if provider == "cashfree":
        if not (settings.CASHFREE_APP_ID and settings.CASHFREE_SECRET_KEY):
            logger.warning("Cashfree not configured - CASHFREE_APP_ID / CASHFREE_SECRET_KEY missing")
            return None
        from app.gateways.cashfree_gateway import CashfreeGateway

        return CashfreeGateway(
            app_id=settings.CASHFREE_APP_ID,
            secret_key=settings.CASHFREE_SECRET_KEY,
            environment=settings.CASHFREE_ENVIRONMENT,
            api_version=settings.CASHFREE_API_VERSION,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        )

    logger.error(f"Unknown PAYMENT_PROVIDER '{provider}'")
    return None
