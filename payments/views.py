import json
import logging

from django.apps import apps
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .exceptions import MalformedCallback, PaymentError, ValidationError
from .services import status
from .services.initiator import PaymentInitiator
from .services.mpesa import MpesaDarajaClient
from .services.reconciler import CallbackReconciler

logger = logging.getLogger(__name__)


def _mpesa_config():
    return apps.get_app_config('payments').mpesa_config


def _gateway_client():
    return MpesaDarajaClient(_mpesa_config())


def _request_data(request):
    if request.content_type != 'application/json':
        return request.POST.dict()
    try:
        data = json.loads(request.body.decode('utf-8') or '{}')
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _require(value, name):
    if not value:
        raise ValidationError(f"{name} is required")
    return value


def _error_response(error):
    return JsonResponse(error.to_dict(), status=error.status_code)


def _unexpected_error(view_name, error):
    logger.exception("Error in %s", view_name)
    return JsonResponse({'success': False, 'message': f"An error occurred: {error}"}, status=500)


@csrf_exempt
@require_POST
def mpesa_initiate(request):
    try:
        result = PaymentInitiator(_gateway_client()).initiate(_request_data(request))
    except PaymentError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_error('mpesa_initiate', e)
    return JsonResponse(result.to_dict())


@csrf_exempt
@require_POST
def mpesa_callback(request):
    # Daraja retries anything it does not see acknowledged, so every path answers with a ResultCode
    try:
        payload = json.loads(request.body.decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        logger.error("M-Pesa callback body is not valid JSON")
        return JsonResponse({'ResultCode': 1, 'ResultDesc': MalformedCallback.default_message}, status=400)

    logger.info("M-Pesa callback received: %s", payload)
    try:
        ack = CallbackReconciler(_mpesa_config()).handle(payload)
    except MalformedCallback as e:
        logger.error("Invalid callback structure: %s", e.message)
        return JsonResponse({'ResultCode': 1, 'ResultDesc': e.message}, status=400)
    except Exception as e:
        logger.exception("Error processing M-Pesa callback")
        return JsonResponse({'ResultCode': 1, 'ResultDesc': f"An error occurred: {e}"}, status=500)
    return JsonResponse(ack)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def mpesa_query(request):
    try:
        if request.method == 'POST':
            checkout_request_id = _request_data(request).get('checkoutRequestId')
        else:
            checkout_request_id = request.GET.get('checkoutRequestId')
        _require(checkout_request_id, 'checkoutRequestId')
        body = status.query_gateway_status(_gateway_client(), checkout_request_id)
    except PaymentError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_error('mpesa_query', e)
    return JsonResponse(body)


@require_GET
def payment_status(request):
    try:
        checkout_request_id = _require(request.GET.get('checkoutRequestId'), 'checkoutRequestId')
        txn = status.get_by_checkout_request_id(checkout_request_id)
    except PaymentError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_error('payment_status', e)
    return JsonResponse({'success': True, 'status': txn.status, 'transaction': txn.to_dict()})


@require_GET
def verify_payment(request):
    try:
        order_id = _require(request.GET.get('orderId'), 'orderId')
        txn = status.get_by_order_id(order_id)
    except PaymentError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_error('verify_payment', e)
    return JsonResponse({'success': True, 'transaction': txn.to_dict()})
