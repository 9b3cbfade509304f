from django.apps import AppConfig
from django.conf import settings


class PaymentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payments'
    mpesa_config = None

    def ready(self):
        from .config import MpesaConfig

        self.mpesa_config = MpesaConfig.from_settings(settings)
