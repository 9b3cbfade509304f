from decimal import Decimal

from django.db import IntegrityError, models, transaction as db_transaction
from django.utils import timezone

from .exceptions import ValidationError


class TransactionQuerySet(models.QuerySet):
    """Ledger operations. Status changes are conditional overwrites, never deltas."""

    def by_checkout_request_id(self, checkout_request_id):
        return self.filter(checkout_request_id=checkout_request_id).first()

    def begin_submission(self, order_id, phone_number, amount, customer_email=None, transaction_description=None):
        try:
            with db_transaction.atomic():
                return self.create(
                    order_id=order_id,
                    phone_number=phone_number,
                    amount=amount,
                    customer_email=customer_email,
                    transaction_description=transaction_description,
                    status=Transaction.Status.SUBMITTING,
                )
        except IntegrityError:
            raise ValidationError(
                f"A transaction already exists for order {order_id}",
                error_code="DUPLICATE_ORDER",
            )

    def mark_pending(self, order_id, checkout_request_id, merchant_request_id=None):
        return self.filter(order_id=order_id, status=Transaction.Status.SUBMITTING).update(
            status=Transaction.Status.PENDING,
            checkout_request_id=checkout_request_id,
            merchant_request_id=merchant_request_id,
            updated_at=timezone.now(),
        )

    def complete(self, order_id, receipt_number, transaction_date=None, amount=None, phone_number=None, result_code='0'):
        fields = {
            'status': Transaction.Status.COMPLETED,
            'mpesa_receipt_number': receipt_number,
            'transaction_date': transaction_date,
            'result_code': result_code,
            'updated_at': timezone.now(),
        }
        if amount is not None:
            fields['amount'] = int(Decimal(str(amount)))
        if phone_number is not None:
            fields['phone_number'] = str(phone_number)
        return self.filter(order_id=order_id, status=Transaction.Status.PENDING).update(**fields)

    def fail(self, order_id, failure_reason, result_code=None):
        return self.filter(order_id=order_id, status=Transaction.Status.PENDING).update(
            status=Transaction.Status.FAILED,
            failure_reason=failure_reason,
            result_code=result_code,
            updated_at=timezone.now(),
        )

    def attach_receipt(self, order_id, receipt_number, transaction_date=None):
        """Fill in the receipt of a transaction completed without one, e.g. from a status query."""
        missing_receipt = models.Q(mpesa_receipt_number__isnull=True) | models.Q(mpesa_receipt_number='')
        return self.filter(missing_receipt, order_id=order_id, status=Transaction.Status.COMPLETED).update(
            mpesa_receipt_number=receipt_number,
            transaction_date=transaction_date,
            flagged_for_review=False,
            review_reason=None,
            updated_at=timezone.now(),
        )

    def flag_for_review(self, order_id, reason):
        return self.filter(order_id=order_id).update(
            flagged_for_review=True,
            review_reason=reason,
            updated_at=timezone.now(),
        )

    def stale(self, status, older_than):
        return self.filter(status=status, created_at__lt=older_than, flagged_for_review=False)


class Transaction(models.Model):
    class Status(models.TextChoices):
        SUBMITTING = 'submitting', 'Submitting'
        PENDING = 'pending', 'Pending'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    TERMINAL_STATUSES = (Status.COMPLETED, Status.FAILED)

    order_id = models.CharField(max_length=64, primary_key=True)
    phone_number = models.CharField(max_length=20)  # e.g. 2547XXXXXXXX
    amount = models.PositiveIntegerField()
    payment_method = models.CharField(max_length=20, default='mpesa', editable=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SUBMITTING)

    # Provider-specific references
    checkout_request_id = models.CharField(max_length=128, unique=True, blank=True, null=True)
    merchant_request_id = models.CharField(max_length=128, blank=True, null=True)
    result_code = models.CharField(max_length=16, blank=True, null=True)

    # Populated on terminal transition
    mpesa_receipt_number = models.CharField(max_length=100, blank=True, null=True)
    transaction_date = models.DateTimeField(blank=True, null=True)
    failure_reason = models.CharField(max_length=256, blank=True, null=True)

    customer_email = models.EmailField(blank=True, null=True)
    transaction_description = models.CharField(max_length=128, blank=True, null=True)

    flagged_for_review = models.BooleanField(default=False)
    review_reason = models.CharField(max_length=256, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['status', 'created_at'], name='payments_status_created_idx')]

    def __str__(self):
        return f"{self.order_id} - {self.phone_number} - {self.amount} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def to_dict(self):
        return {
            'orderId': self.order_id,
            'phoneNumber': self.phone_number,
            'amount': self.amount,
            'paymentMethod': self.payment_method,
            'status': self.status,
            'checkoutRequestId': self.checkout_request_id,
            'merchantRequestId': self.merchant_request_id,
            'resultCode': self.result_code,
            'mpesaReceiptNumber': self.mpesa_receipt_number,
            'transactionDate': self.transaction_date.isoformat() if self.transaction_date else None,
            'failureReason': self.failure_reason,
            'customerEmail': self.customer_email,
            'transactionDescription': self.transaction_description,
            'flaggedForReview': self.flagged_for_review,
            'reviewReason': self.review_reason,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class UnmatchedCallback(models.Model):
    """Callbacks whose CheckoutRequestID matched no transaction, kept for manual reconciliation."""

    checkout_request_id = models.CharField(max_length=128, blank=True, null=True, db_index=True)
    merchant_request_id = models.CharField(max_length=128, blank=True, null=True)
    result_code = models.CharField(max_length=16, blank=True, null=True)
    result_desc = models.CharField(max_length=256, blank=True, null=True)
    payload = models.JSONField()
    resolved = models.BooleanField(default=False)
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-received_at']

    def __str__(self):
        return f"Unmatched callback {self.checkout_request_id} ({self.result_code})"
