from ..exceptions import GatewayAuthError, NotFoundError
from ..models import Transaction


def query_gateway_status(client, checkout_request_id):
    """Ask Daraja directly; may run ahead of the local ledger until the callback lands."""
    token = client.access_token()
    if not token:
        raise GatewayAuthError()
    return client.stk_query(token, checkout_request_id)


def get_by_checkout_request_id(checkout_request_id):
    txn = Transaction.objects.by_checkout_request_id(checkout_request_id)
    if txn is None:
        raise NotFoundError()
    return txn


def get_by_order_id(order_id):
    try:
        return Transaction.objects.get(order_id=order_id)
    except Transaction.DoesNotExist:
        raise NotFoundError()
