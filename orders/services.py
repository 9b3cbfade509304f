import logging

from django.utils import timezone

from .models import Order

logger = logging.getLogger(__name__)


def update_payment_status(order_id, payment_status, transaction_id=None, failure_reason=None):
    """
    Patch the payment fields of an order by id.

    Returns False when no such order exists; the order system owns order
    creation, so a missing row is logged rather than created.
    """
    fields = {'payment_status': payment_status, 'updated_at': timezone.now()}
    if payment_status == Order.PaymentStatus.COMPLETED:
        fields.update(transaction_id=transaction_id, mpesa_receipt_number=transaction_id)
    else:
        fields['failure_reason'] = failure_reason

    updated = Order.objects.filter(order_id=order_id).update(**fields)
    if not updated:
        logger.warning("Order %s not found while recording payment status %s", order_id, payment_status)
        return False
    return True
