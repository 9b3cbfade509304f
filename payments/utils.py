import datetime as dt
import re
from zoneinfo import ZoneInfo

COUNTRY_CODE = '254'
TRUNK_PREFIX = '0'


def normalize_phone_number(phone_number):
    """
    Return the MSISDN form Daraja expects, e.g. 0712345678 -> 254712345678.

    Numbers already carrying the country code are returned unchanged, so
    normalizing twice gives the same result.
    """
    digits = re.sub(r'\D', '', str(phone_number))
    if not digits:
        return ''
    if digits.startswith(TRUNK_PREFIX):
        return COUNTRY_CODE + digits[1:]
    if digits.startswith(COUNTRY_CODE):
        return digits
    return COUNTRY_CODE + digits


def parse_transaction_date(value, tz_name):
    """Parse Daraja's YYYYMMDDHHMMSS value into an aware datetime, or None."""
    if value in (None, ''):
        return None
    try:
        naive = dt.datetime.strptime(str(value), '%Y%m%d%H%M%S')
    except ValueError:
        return None
    return naive.replace(tzinfo=ZoneInfo(tz_name))
