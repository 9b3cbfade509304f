from datetime import timedelta

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError

from payments.exceptions import GatewayAuthError
from payments.services.mpesa import MpesaDarajaClient
from payments.services.sweep import sweep_stale_transactions


class Command(BaseCommand):
    help = "Re-query M-Pesa for transactions that never received a callback and settle or flag them."

    def add_arguments(self, parser):
        parser.add_argument(
            '--older-than',
            type=int,
            default=None,
            help="Age in minutes before a transaction is swept (defaults to MPESA_PENDING_THRESHOLD_MINUTES).",
        )

    def handle(self, *args, **options):
        client = MpesaDarajaClient(apps.get_app_config('payments').mpesa_config)
        older_than = timedelta(minutes=options['older_than']) if options['older_than'] is not None else None

        try:
            result = sweep_stale_transactions(client, older_than=older_than)
        except GatewayAuthError as e:
            raise CommandError(e.message)

        self.stdout.write(self.style.SUCCESS(
            f"Checked {result.checked}: {result.completed} completed, {result.failed} failed, "
            f"{result.still_pending} still pending, {result.flagged} flagged, {result.replayed} replayed, {result.errors} errors"
        ))
