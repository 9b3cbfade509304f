"""
Payment error kinds.

Each error carries the HTTP status the views answer with and renders itself
through ``to_dict()`` into the ``{success, message, ...}`` body used by the
JSON endpoints.
"""


class PaymentError(Exception):
    status_code = 500
    default_message = "Payment error"
    default_error_code = "PAYMENT_ERROR"

    def __init__(self, message=None, error_code=None, details=None):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        data = {"success": False, "message": self.message, "errorCode": self.error_code}
        data.update(self.details)
        return data


class ValidationError(PaymentError):
    status_code = 400
    default_message = "Invalid payment request"
    default_error_code = "VALIDATION_ERROR"


class GatewayAuthError(PaymentError):
    status_code = 500
    default_message = "Failed to authenticate with M-Pesa"
    default_error_code = "GATEWAY_AUTH_ERROR"


class GatewayRejection(PaymentError):
    status_code = 400
    default_message = "Failed to initiate STK Push"
    default_error_code = "GATEWAY_REJECTION"

    def __init__(self, message=None, response_code=None, details=None):
        self.response_code = response_code
        details = dict(details or {})
        details["responseCode"] = response_code
        super().__init__(message, details=details)


class GatewayResponseError(PaymentError):
    status_code = 502
    default_message = "M-Pesa returned an unreadable response"
    default_error_code = "GATEWAY_RESPONSE_ERROR"


class NotFoundError(PaymentError):
    status_code = 404
    default_message = "Transaction not found"
    default_error_code = "NOT_FOUND"


class MalformedCallback(PaymentError):
    status_code = 400
    default_message = "Invalid callback structure"
    default_error_code = "MALFORMED_CALLBACK"


class InternalError(PaymentError):
    status_code = 500
    default_message = "An internal error occurred"
    default_error_code = "INTERNAL_ERROR"
