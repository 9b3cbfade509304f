"""
Sweep for transactions that never received a callback.

Unresolved dead-lettered callbacks are replayed first: a callback that
arrived before its transaction recorded a CheckoutRequestID is applied once
the transaction can be found, so its receipt is kept.

Pending transactions older than the threshold are then re-queried at the
gateway and settled with the same mapping the callback uses. Anything that
cannot be settled that way is flagged for manual review:

- ``submitting`` records: the push outcome is unknown and there is no
  CheckoutRequestID to query.
- ``pending`` records still unresolved after ``review_after``.
- completions learned from the query, which carries no receipt number. A
  later callback fills the receipt in and clears the flag.
"""

import logging
from dataclasses import dataclass

import requests
from django.utils import timezone

from ..exceptions import GatewayAuthError, PaymentError
from ..models import Transaction, UnmatchedCallback
from .reconciler import CallbackReconciler, parse_result_code, settle

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    checked: int = 0
    completed: int = 0
    failed: int = 0
    still_pending: int = 0
    flagged: int = 0
    replayed: int = 0
    errors: int = 0


def replay_unmatched_callbacks(config, result=None):
    """Apply dead-lettered callbacks whose CheckoutRequestID now matches a transaction."""
    if result is None:
        result = SweepResult()
    reconciler = CallbackReconciler(config)
    unresolved = UnmatchedCallback.objects.filter(resolved=False, checkout_request_id__isnull=False)

    for unmatched in unresolved.order_by('received_at'):
        if not Transaction.objects.filter(checkout_request_id=unmatched.checkout_request_id).exists():
            continue
        try:
            reconciler.handle(unmatched.payload)
        except PaymentError as e:
            logger.error("Replaying unmatched callback %s failed: %s", unmatched.pk, e)
            result.errors += 1
            continue
        UnmatchedCallback.objects.filter(pk=unmatched.pk).update(resolved=True)
        logger.info("Replayed unmatched callback for CheckoutRequestID %s", unmatched.checkout_request_id)
        result.replayed += 1
    return result


def sweep_stale_transactions(client, older_than=None, now=None):
    config = client.config
    now = now or timezone.now()
    cutoff = now - (older_than if older_than is not None else config.pending_threshold)
    result = SweepResult()

    replay_unmatched_callbacks(config, result)

    for txn in Transaction.objects.stale(Transaction.Status.SUBMITTING, cutoff):
        Transaction.objects.flag_for_review(txn.order_id, "Push outcome unknown; no CheckoutRequestID recorded")
        logger.warning("Transaction %s stuck in submitting; flagged for review", txn.order_id)
        result.flagged += 1

    stale_pending = list(Transaction.objects.stale(Transaction.Status.PENDING, cutoff))
    if not stale_pending:
        return result

    token = client.access_token()
    if not token:
        raise GatewayAuthError()

    for txn in stale_pending:
        result.checked += 1
        try:
            body = client.stk_query(token, txn.checkout_request_id)
        except (requests.RequestException, PaymentError) as e:
            logger.error("Status query for order %s failed: %s", txn.order_id, e)
            result.errors += 1
            continue

        code = parse_result_code(body.get('ResultCode'))
        if code is None:
            if txn.created_at < now - config.review_after:
                Transaction.objects.flag_for_review(txn.order_id, "No callback or gateway result within review window")
                logger.warning("Transaction %s still pending after %s; flagged for review", txn.order_id, config.review_after)
                result.flagged += 1
            else:
                result.still_pending += 1
            continue

        if not settle(txn.order_id, code, result_desc=body.get('ResultDesc')):
            # A callback settled it while we were querying
            continue
        if code == 0:
            Transaction.objects.flag_for_review(txn.order_id, "Completed via status query; receipt number unavailable")
            result.completed += 1
            result.flagged += 1
        else:
            result.failed += 1
        logger.info("Sweep settled order %s with ResultCode %s", txn.order_id, code)

    return result
