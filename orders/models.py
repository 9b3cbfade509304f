from django.db import models


class Order(models.Model):
    """
    Local view of an order owned by the order-management system.

    The payments app never creates orders; it only patches the payment
    fields once a transaction reaches a terminal state.
    """

    class PaymentStatus(models.TextChoices):
        UNPAID = 'unpaid', 'Unpaid'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    order_id = models.CharField(max_length=64, primary_key=True)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    transaction_id = models.CharField(max_length=100, blank=True, null=True)  # receipt number on success
    mpesa_receipt_number = models.CharField(max_length=100, blank=True, null=True)
    failure_reason = models.CharField(max_length=256, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order {self.order_id} - {self.payment_status}"
