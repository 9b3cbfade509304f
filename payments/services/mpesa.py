import base64
import datetime as dt
import logging
from zoneinfo import ZoneInfo

import requests

from ..exceptions import GatewayResponseError

logger = logging.getLogger(__name__)


class MpesaDarajaClient:
    """
    Thin Daraja client: OAuth token, signed STK push and STK query.

    Gateway response codes are returned as-is; interpreting them is left to
    the caller. Network and timeout errors propagate.
    """

    def __init__(self, config, session=None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def base_url(self):
        return self.config.base_url

    def access_token(self):
        """Return a bearer token, or None when the exchange fails for any reason."""
        url = f"{self.base_url}/oauth/v1/generate?grant_type=client_credentials"
        try:
            resp = self.session.get(
                url,
                auth=(self.config.consumer_key, self.config.consumer_secret),
                headers={"Accept": "application/json"},
                timeout=self.config.timeout,
            )
            resp.raise_for_status()
            return resp.json()['access_token']
        except requests.RequestException as e:
            logger.error("Error getting M-Pesa access token: %s", e)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("M-Pesa OAuth returned an unusable body: %s", e)
        return None

    def _timestamp(self):
        return dt.datetime.now(ZoneInfo(self.config.timezone)).strftime('%Y%m%d%H%M%S')

    def _password(self, timestamp):
        raw = f"{self.config.shortcode}{self.config.passkey}{timestamp}".encode('utf-8')
        return base64.b64encode(raw).decode('utf-8')

    def _post(self, path, token, payload):
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        resp = self.session.post(f"{self.base_url}{path}", json=payload, headers=headers, timeout=self.config.timeout)
        # Do not raise for status: Daraja reports rejections as JSON error bodies
        try:
            return resp.json()
        except ValueError:
            raise GatewayResponseError(
                f"M-Pesa returned a non-JSON body (status {resp.status_code})",
                details={"gatewayStatus": resp.status_code},
            )

    def stk_push(self, token, phone, amount, account_reference, transaction_desc):
        timestamp = self._timestamp()
        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password": self._password(timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": int(amount),
            "PartyA": phone,
            "PartyB": self.config.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.config.callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": transaction_desc,
        }
        return self._post("/mpesa/stkpush/v1/processrequest", token, payload)

    def stk_query(self, token, checkout_request_id):
        timestamp = self._timestamp()
        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password": self._password(timestamp),
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
        }
        return self._post("/mpesa/stkpushquery/v1/query", token, payload)
