"""
Tests for PaymentInitiator.

Covers input validation, the ledger write ordering around the STK push, and
how gateway rejections and failures are surfaced.
"""

import pytest
import requests

from payments.exceptions import GatewayAuthError, GatewayRejection, InternalError, ValidationError
from payments.models import Transaction
from payments.services.initiator import PaymentInitiator, parse_amount
from payments.tests.factories import TransactionFactory


def _request(**overrides):
    data = {'phoneNumber': '0712345678', 'amount': 100, 'orderId': 'ORD1'}
    data.update(overrides)
    return data


@pytest.mark.django_db
class TestValidation:

    @pytest.mark.parametrize('field', ['phoneNumber', 'amount', 'orderId'])
    def test_missing_field_is_rejected(self, gateway_client, field):
        data = _request()
        del data[field]

        with pytest.raises(ValidationError) as exc:
            PaymentInitiator(gateway_client).initiate(data)

        assert exc.value.details['missing'] == [field]
        gateway_client.access_token.assert_not_called()
        assert not Transaction.objects.exists()

    @pytest.mark.parametrize('amount', [0, -5, '0.4', 'ten', True])
    def test_invalid_amount_is_rejected(self, gateway_client, amount):
        with pytest.raises(ValidationError):
            PaymentInitiator(gateway_client).initiate(_request(amount=amount))

        gateway_client.stk_push.assert_not_called()

    def test_phone_without_digits_is_rejected(self, gateway_client):
        with pytest.raises(ValidationError):
            PaymentInitiator(gateway_client).initiate(_request(phoneNumber='not a phone'))

    @pytest.mark.parametrize('overrides', [
        {'orderId': 'O' * 65},
        {'transactionDescription': 'x' * 129},
    ])
    def test_overlong_fields_are_rejected(self, gateway_client, overrides):
        with pytest.raises(ValidationError):
            PaymentInitiator(gateway_client).initiate(_request(**overrides))

        gateway_client.stk_push.assert_not_called()
        assert not Transaction.objects.exists()

    def test_fields_at_max_length_are_accepted(self, gateway_client):
        PaymentInitiator(gateway_client).initiate(_request(orderId='O' * 64, transactionDescription='x' * 128))

        txn = Transaction.objects.get()
        assert txn.order_id == 'O' * 64
        assert txn.transaction_description == 'x' * 128

    def test_existing_order_is_rejected(self, gateway_client):
        TransactionFactory(order_id='ORD1', status=Transaction.Status.FAILED)

        with pytest.raises(ValidationError) as exc:
            PaymentInitiator(gateway_client).initiate(_request())

        assert exc.value.error_code == 'DUPLICATE_ORDER'
        gateway_client.stk_push.assert_not_called()


@pytest.mark.parametrize('value, expected', [(100, 100), (99.99, 99), ('250.7', 250), ('1', 1)])
def test_parse_amount_truncates(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.django_db
class TestInitiate:

    def test_accepted_push_records_pending_transaction(self, gateway_client):
        result = PaymentInitiator(gateway_client).initiate(_request(customerEmail='jane@example.com'))

        assert result.checkout_request_id == 'ws_1'
        assert result.to_dict() == {
            'success': True,
            'message': 'STK Push sent successfully',
            'checkoutRequestId': 'ws_1',
        }
        assert Transaction.objects.count() == 1
        txn = Transaction.objects.get(order_id='ORD1')
        assert txn.status == Transaction.Status.PENDING
        assert txn.checkout_request_id == 'ws_1'
        assert txn.merchant_request_id == '29115-34620561-1'
        assert txn.phone_number == '254712345678'
        assert txn.amount == 100
        assert txn.payment_method == 'mpesa'
        assert txn.customer_email == 'jane@example.com'

    def test_push_uses_normalized_phone_and_order_reference(self, gateway_client):
        PaymentInitiator(gateway_client).initiate(_request(amount='150.9', transactionDescription='Order #1'))

        gateway_client.stk_push.assert_called_once_with(
            'token-123',
            phone='254712345678',
            amount=150,
            account_reference='ORD1',
            transaction_desc='Order #1',
        )

    def test_default_description_comes_from_config(self, gateway_client):
        PaymentInitiator(gateway_client).initiate(_request())

        assert gateway_client.stk_push.call_args.kwargs['transaction_desc'] == 'Shop Order'

    def test_token_failure_writes_nothing(self, gateway_client):
        gateway_client.access_token.return_value = None

        with pytest.raises(GatewayAuthError):
            PaymentInitiator(gateway_client).initiate(_request())

        gateway_client.stk_push.assert_not_called()
        assert not Transaction.objects.exists()

    def test_rejected_push_leaves_no_record(self, gateway_client):
        gateway_client.stk_push.return_value = {
            'ResponseCode': '1',
            'ResponseDescription': 'The balance is insufficient for the transaction',
        }

        with pytest.raises(GatewayRejection) as exc:
            PaymentInitiator(gateway_client).initiate(_request())

        assert exc.value.message == 'The balance is insufficient for the transaction'
        assert exc.value.response_code == '1'
        assert exc.value.to_dict()['responseCode'] == '1'
        assert not Transaction.objects.filter(order_id='ORD1').exists()

    def test_error_body_rejection_leaves_no_record(self, gateway_client):
        gateway_client.stk_push.return_value = {
            'requestId': '4788-81090592-1',
            'errorCode': '400.002.02',
            'errorMessage': 'Bad Request - Invalid PhoneNumber',
        }

        with pytest.raises(GatewayRejection) as exc:
            PaymentInitiator(gateway_client).initiate(_request())

        assert exc.value.response_code == '400.002.02'
        assert not Transaction.objects.exists()

    def test_rejected_order_can_be_retried(self, gateway_client):
        gateway_client.stk_push.side_effect = [
            {'ResponseCode': '1', 'ResponseDescription': 'Rejected'},
            {'ResponseCode': '0', 'CheckoutRequestID': 'ws_2', 'MerchantRequestID': 'm2'},
        ]
        initiator = PaymentInitiator(gateway_client)

        with pytest.raises(GatewayRejection):
            initiator.initiate(_request())
        result = initiator.initiate(_request())

        assert result.checkout_request_id == 'ws_2'

    def test_network_failure_keeps_submitting_record(self, gateway_client):
        gateway_client.stk_push.side_effect = requests.Timeout("read timed out")

        with pytest.raises(InternalError) as exc:
            PaymentInitiator(gateway_client).initiate(_request())

        assert 'read timed out' in exc.value.message
        txn = Transaction.objects.get(order_id='ORD1')
        assert txn.status == Transaction.Status.SUBMITTING
        assert txn.checkout_request_id is None
