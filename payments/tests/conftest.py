"""
Pytest fixtures for payment tests.

The gateway is never contacted: service tests get a MagicMock client and the
client tests get a MagicMock requests session.
"""

from unittest.mock import MagicMock

import pytest

from payments.config import MpesaConfig
from payments.services.mpesa import MpesaDarajaClient
from payments.tests.factories import OrderFactory, TransactionFactory


@pytest.fixture
def mpesa_config():
    return MpesaConfig(
        consumer_key='consumer-key',
        consumer_secret='consumer-secret',
        shortcode='174379',
        passkey='passkey',
        callback_url='https://shop.example.com/payments/mpesa/callback/',
    )


@pytest.fixture
def gateway_client(mpesa_config):
    """A gateway client mock that hands out a token and accepts pushes."""
    client = MagicMock(spec=MpesaDarajaClient)
    client.config = mpesa_config
    client.access_token.return_value = 'token-123'
    client.stk_push.return_value = {
        'MerchantRequestID': '29115-34620561-1',
        'CheckoutRequestID': 'ws_1',
        'ResponseCode': '0',
        'ResponseDescription': 'Success. Request accepted for processing',
        'CustomerMessage': 'Success. Request accepted for processing',
    }
    return client


@pytest.fixture
def pending_transaction(db):
    txn = TransactionFactory(order_id='ORD1', checkout_request_id='ws_1')
    OrderFactory(order_id='ORD1')
    return txn
