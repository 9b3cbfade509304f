from django.contrib import admin
from .models import Transaction, UnmatchedCallback

@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('order_id', 'phone_number', 'amount', 'status', 'mpesa_receipt_number', 'flagged_for_review', 'created_at')
    search_fields = ('order_id', 'phone_number', 'checkout_request_id', 'merchant_request_id', 'mpesa_receipt_number')
    list_filter = ('status', 'flagged_for_review')
    readonly_fields = ('created_at', 'updated_at')


@admin.register(UnmatchedCallback)
class UnmatchedCallbackAdmin(admin.ModelAdmin):
    list_display = ('checkout_request_id', 'merchant_request_id', 'result_code', 'resolved', 'received_at')
    search_fields = ('checkout_request_id', 'merchant_request_id')
    list_filter = ('resolved',)
