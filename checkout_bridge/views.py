from django.http import JsonResponse

def index(request):
    return JsonResponse({
        "message": "M-Pesa Checkout Bridge API",
        "endpoints": {
            "admin": "/admin/",
            "mpesa_initiate": "/payments/mpesa/initiate/",
            "mpesa_callback": "/payments/mpesa/callback/",
            "mpesa_query": "/payments/mpesa/query/?checkoutRequestId=<id>",
            "payment_status": "/payments/status/?checkoutRequestId=<id>",
            "verify_payment": "/payments/verify/?orderId=<id>",
        }
    })
