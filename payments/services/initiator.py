import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import requests

from ..exceptions import GatewayAuthError, GatewayRejection, GatewayResponseError, InternalError, ValidationError
from ..models import Transaction
from ..utils import normalize_phone_number

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('phoneNumber', 'amount', 'orderId')
ORDER_ID_MAX_LENGTH = Transaction._meta.get_field('order_id').max_length
DESCRIPTION_MAX_LENGTH = Transaction._meta.get_field('transaction_description').max_length


@dataclass
class InitiationResult:
    checkout_request_id: str
    transaction: Transaction
    message: str = 'STK Push sent successfully'

    def to_dict(self):
        return {
            'success': True,
            'message': self.message,
            'checkoutRequestId': self.checkout_request_id,
        }


def parse_amount(value):
    """Truncate to whole units; the gateway rejects fractional amounts."""
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number")
    try:
        amount = int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        raise ValidationError("Amount must be a number")
    if amount < 1:
        raise ValidationError("Amount must be at least 1")
    return amount


class PaymentInitiator:
    """
    Sends an STK push for an order and records it in the ledger.

    A ``submitting`` record is written before the push so that a crash after
    the gateway accepts leaves a trace. It becomes ``pending`` once the gateway
    returns a CheckoutRequestID, and is removed again if the gateway rejects
    the push.
    """

    def __init__(self, client):
        self.client = client

    def initiate(self, data):
        missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, '')]
        if missing:
            raise ValidationError(
                "Missing required parameters: phoneNumber, amount, orderId",
                details={"missing": missing},
            )

        order_id = str(data['orderId']).strip()
        phone = normalize_phone_number(data['phoneNumber'])
        if not order_id:
            raise ValidationError("orderId must not be blank")
        if not phone:
            raise ValidationError("phoneNumber must contain digits")
        if len(order_id) > ORDER_ID_MAX_LENGTH:
            raise ValidationError(f"orderId must be at most {ORDER_ID_MAX_LENGTH} characters")
        amount = parse_amount(data['amount'])
        description = str(data.get('transactionDescription') or self.client.config.transaction_desc)
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationError(f"transactionDescription must be at most {DESCRIPTION_MAX_LENGTH} characters")

        token = self.client.access_token()
        if not token:
            raise GatewayAuthError()

        Transaction.objects.begin_submission(
            order_id=order_id,
            phone_number=phone,
            amount=amount,
            customer_email=data.get('customerEmail') or None,
            transaction_description=description,
        )

        try:
            body = self.client.stk_push(
                token,
                phone=phone,
                amount=amount,
                account_reference=order_id,
                transaction_desc=description,
            )
        except requests.RequestException as e:
            # The push may or may not have reached the gateway; keep the submitting record
            logger.error("STK push request for order %s failed: %s", order_id, e)
            raise InternalError(f"An error occurred: {e}")

        if str(body.get('ResponseCode')) != '0':
            Transaction.objects.filter(order_id=order_id, status=Transaction.Status.SUBMITTING).delete()
            message = body.get('ResponseDescription') or body.get('errorMessage') or 'Failed to initiate STK Push'
            code = body.get('ResponseCode') or body.get('errorCode')
            logger.warning("STK push for order %s rejected (%s): %s", order_id, code, message)
            raise GatewayRejection(message, response_code=code)

        checkout_request_id = body.get('CheckoutRequestID')
        if not checkout_request_id:
            logger.error("STK push for order %s accepted without a CheckoutRequestID: %s", order_id, body)
            raise GatewayResponseError("M-Pesa accepted the push without a CheckoutRequestID")

        Transaction.objects.mark_pending(order_id, checkout_request_id, body.get('MerchantRequestID'))
        logger.info("STK push sent for order %s (CheckoutRequestID %s)", order_id, checkout_request_id)
        return InitiationResult(
            checkout_request_id=checkout_request_id,
            transaction=Transaction.objects.get(order_id=order_id),
        )
