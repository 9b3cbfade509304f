from django.contrib import admin
from .models import Order

@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_id', 'payment_status', 'transaction_id', 'updated_at')
    list_filter = ('payment_status',)
    search_fields = ('order_id', 'transaction_id')
