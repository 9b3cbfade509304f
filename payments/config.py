from dataclasses import dataclass
from datetime import timedelta

SANDBOX_URL = 'https://sandbox.safaricom.co.ke'
PRODUCTION_URL = 'https://api.safaricom.co.ke'


@dataclass(frozen=True)
class MpesaConfig:
    """Daraja credentials and tuning, built once when the payments app loads."""

    consumer_key: str
    consumer_secret: str
    shortcode: str
    passkey: str
    callback_url: str
    env: str = 'sandbox'
    timezone: str = 'Africa/Nairobi'
    timeout: int = 30
    transaction_desc: str = 'Shop Order'
    pending_threshold: timedelta = timedelta(minutes=10)
    review_after: timedelta = timedelta(hours=24)

    @property
    def base_url(self):
        return SANDBOX_URL if self.env == 'sandbox' else PRODUCTION_URL

    @classmethod
    def from_settings(cls, settings):
        return cls(
            consumer_key=getattr(settings, 'MPESA_CONSUMER_KEY', ''),
            consumer_secret=getattr(settings, 'MPESA_CONSUMER_SECRET', ''),
            shortcode=str(getattr(settings, 'MPESA_SHORTCODE', '')),
            passkey=getattr(settings, 'MPESA_PASSKEY', ''),
            callback_url=getattr(settings, 'MPESA_CALLBACK_URL', ''),
            env=getattr(settings, 'MPESA_ENV', 'sandbox'),
            timezone=getattr(settings, 'MPESA_TIMEZONE', 'Africa/Nairobi'),
            timeout=int(getattr(settings, 'MPESA_TIMEOUT', 30)),
            transaction_desc=getattr(settings, 'MPESA_TRANSACTION_DESC', 'Shop Order'),
            pending_threshold=timedelta(minutes=int(getattr(settings, 'MPESA_PENDING_THRESHOLD_MINUTES', 10))),
            review_after=timedelta(hours=int(getattr(settings, 'MPESA_REVIEW_AFTER_HOURS', 24))),
        )
