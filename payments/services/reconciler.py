import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import transaction as db_transaction

from orders.models import Order
from orders.services import update_payment_status

from ..exceptions import MalformedCallback
from ..models import Transaction, UnmatchedCallback
from ..utils import parse_transaction_date

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT = {"ResultCode": 0, "ResultDesc": "Accepted"}
USER_CANCELLED = 1
USER_CANCELLED_REASON = "User cancelled"


def failure_reason_for(result_code, result_desc):
    if result_code == USER_CANCELLED:
        return USER_CANCELLED_REASON
    return result_desc


def parse_result_code(value):
    """Return a Daraja ResultCode as an int, or None unless it is an int or a digit string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_amount(value):
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedCallback("Callback Amount must be a number")
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, OverflowError):
        raise MalformedCallback("Callback Amount must be a number")


@dataclass
class StkCallback:
    checkout_request_id: str
    merchant_request_id: str
    result_code: int
    result_desc: str
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self):
        return self.result_code == 0

    @classmethod
    def from_payload(cls, payload):
        body = payload.get('Body') if isinstance(payload, dict) else None
        stk = body.get('stkCallback') if isinstance(body, dict) else None
        if not isinstance(stk, dict):
            raise MalformedCallback()
        if not stk.get('CheckoutRequestID'):
            raise MalformedCallback("Callback is missing CheckoutRequestID")
        result_code = parse_result_code(stk.get('ResultCode'))
        if result_code is None:
            raise MalformedCallback("Callback is missing a numeric ResultCode")

        raw_metadata = stk.get('CallbackMetadata') or {}
        if not isinstance(raw_metadata, dict):
            raise MalformedCallback("CallbackMetadata must be an object")
        items = raw_metadata.get('Item') or []
        if not isinstance(items, list):
            raise MalformedCallback("CallbackMetadata.Item must be a list")

        metadata = {}
        for item in items:
            if isinstance(item, dict) and item.get('Name'):
                metadata[item['Name']] = item.get('Value')
        if 'Amount' in metadata:
            metadata['Amount'] = _parse_amount(metadata['Amount'])

        return cls(
            checkout_request_id=stk['CheckoutRequestID'],
            merchant_request_id=stk.get('MerchantRequestID'),
            result_code=result_code,
            result_desc=stk.get('ResultDesc'),
            metadata=metadata,
        )


def settle(order_id, result_code, result_desc=None, receipt_number=None, transaction_date=None,
           amount=None, phone_number=None):
    """
    Move a pending transaction to its terminal state and patch the order.

    Both writes share one database transaction. Returns False when the
    transaction was no longer pending, in which case nothing is written.
    """
    with db_transaction.atomic():
        if result_code == 0:
            updated = Transaction.objects.complete(
                order_id,
                receipt_number,
                transaction_date=transaction_date,
                amount=amount,
                phone_number=phone_number,
                result_code=str(result_code),
            )
            if updated:
                update_payment_status(order_id, Order.PaymentStatus.COMPLETED, transaction_id=receipt_number)
        else:
            reason = failure_reason_for(result_code, result_desc)
            updated = Transaction.objects.fail(order_id, reason, result_code=str(result_code))
            if updated:
                update_payment_status(order_id, Order.PaymentStatus.FAILED, failure_reason=reason)
    return bool(updated)


class CallbackReconciler:
    """Applies Daraja STK callbacks to the ledger."""

    def __init__(self, config):
        self.config = config

    def handle(self, payload):
        callback = StkCallback.from_payload(payload)

        txn = Transaction.objects.by_checkout_request_id(callback.checkout_request_id)
        if txn is None:
            logger.warning(
                "No transaction for CheckoutRequestID %s (ResultCode %s); stored as unmatched",
                callback.checkout_request_id, callback.result_code,
            )
            UnmatchedCallback.objects.create(
                checkout_request_id=callback.checkout_request_id,
                merchant_request_id=callback.merchant_request_id,
                result_code=str(callback.result_code),
                result_desc=callback.result_desc,
                payload=payload,
            )
            return ACKNOWLEDGEMENT

        meta = callback.metadata
        applied = settle(
            txn.order_id,
            callback.result_code,
            result_desc=callback.result_desc,
            receipt_number=meta.get('MpesaReceiptNumber'),
            transaction_date=parse_transaction_date(meta.get('TransactionDate'), self.config.timezone),
            amount=meta.get('Amount'),
            phone_number=meta.get('PhoneNumber'),
        )
        if applied:
            if callback.succeeded:
                logger.info("Payment successful for order %s", txn.order_id)
            else:
                logger.info("Payment failed for order %s: %s", txn.order_id,
                            failure_reason_for(callback.result_code, callback.result_desc))
        else:
            self._handle_replay(txn.order_id, callback)
        return ACKNOWLEDGEMENT

    def _handle_replay(self, order_id, callback):
        txn = Transaction.objects.get(order_id=order_id)
        expected = Transaction.Status.COMPLETED if callback.succeeded else Transaction.Status.FAILED
        receipt = callback.metadata.get('MpesaReceiptNumber')
        if txn.status == expected and callback.succeeded and receipt and not txn.mpesa_receipt_number:
            with db_transaction.atomic():
                attached = Transaction.objects.attach_receipt(
                    order_id,
                    receipt,
                    transaction_date=parse_transaction_date(callback.metadata.get('TransactionDate'),
                                                            self.config.timezone),
                )
                if attached:
                    update_payment_status(order_id, Order.PaymentStatus.COMPLETED, transaction_id=receipt)
            if attached:
                logger.info("Receipt %s recorded for already completed order %s", receipt, order_id)
                return
        if txn.status == expected:
            logger.info("Duplicate callback for order %s ignored; already %s", order_id, txn.status)
            return
        logger.warning(
            "Callback for order %s reports %s but the transaction is %s; flagged for review",
            order_id, expected, txn.status,
        )
        Transaction.objects.flag_for_review(
            order_id,
            f"Callback ResultCode {callback.result_code} conflicts with status {txn.status}",
        )
