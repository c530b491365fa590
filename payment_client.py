
import json
import uuid
import logging
from dataclasses import dataclass, field

import requests

from payment_config import Settings


class PaymentError(Exception):
    pass


class RequestError(PaymentError):
    """The call never got a response (connection refused, DNS, timeout)."""


class ResponseError(PaymentError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f'unexpected status code: {status_code}, response: {body}')
        self.status_code = status_code
        self.body = body


class DecodeError(PaymentError):
    pass


@dataclass
class Amount:
    value: str
    currency: str


@dataclass
class Confirmation:
    type: str = ''
    return_url: str = ''
    confirmation_url: str = ''


@dataclass
class Payment:
    id: str
    status: str
    amount: Amount
    confirmation: Confirmation = field(default_factory=Confirmation)
    description: str = ''
    capture: bool = False
    test: bool = False

    @classmethod
    def from_json(cls, data) -> 'Payment':
        if not isinstance(data, dict):
            raise DecodeError(f'expected a JSON object, got {type(data).__name__}')
        for key in ('id', 'status'):
            if not isinstance(data.get(key), str):
                raise DecodeError(f'payment field {key!r} is missing or not a string')

        amount = data.get('amount') or {}
        confirmation = data.get('confirmation') or {}
        if not isinstance(amount, dict) or not isinstance(confirmation, dict):
            raise DecodeError('amount and confirmation must be JSON objects')

        return cls(
            id=data['id'],
            status=data['status'],
            amount=Amount(value=str(amount.get('value', '')), currency=amount.get('currency', '')),
            confirmation=Confirmation(
                type=confirmation.get('type', ''),
                return_url=confirmation.get('return_url', ''),
                confirmation_url=confirmation.get('confirmation_url', ''),
            ),
            description=data.get('description', ''),
            capture=bool(data.get('capture', False)),
            test=bool(data.get('test', False)),
        )


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


def build_payment_payload(settings: Settings) -> dict:
    amount = {'value': settings.amount, 'currency': settings.currency}
    return {
        'amount': amount,
        'confirmation': {
            'type': 'redirect',
            'return_url': settings.return_url,
        },
        'description': settings.description,
        'capture': settings.capture,
        'test': settings.test_mode,
        'receipt': {
            'items': [
                {
                    'description': settings.item_description,
                    'quantity': settings.item_quantity,
                    'amount': dict(amount),  # receipt total has to match the payment amount
                    'vat_code': settings.vat_code,
                    'payment_mode': settings.payment_mode,
                    'payment_subject': settings.payment_subject,
                }
            ],
            'email': settings.receipt_email,
        },
    }


def _redacted(headers) -> dict:
    return {k: ('***' if k.lower() == 'authorization' else v) for k, v in headers.items()}


def _send(session, method: str, url: str, settings: Settings, payment_id: str = '', **kwargs):
    try:
        response = session.request(
            method,
            url,
            auth=(settings.shop_id, settings.secret_key),
            timeout=settings.http_timeout,
            **kwargs
        )
    except requests.exceptions.Timeout as e:
        logging.error(f'timeout, method = {method} | payment_id = {payment_id}')
        raise RequestError(f'request to {url} timed out') from e
    except requests.exceptions.RequestException as e:
        logging.error(f'error, method = {method} | payment_id = {payment_id} | {e}')
        raise RequestError(f'failed to send request: {e}') from e

    if response.request is not None:
        logging.debug(f'request, {response.request.method} {response.request.url} | headers = {_redacted(response.request.headers)}')
    logging.debug(f'response, status = {response.status_code} | headers = {dict(response.headers)}')
    return response


def _decode(response) -> Payment:
    if response.status_code != 200:
        raise ResponseError(response.status_code, response.text)
    try:
        data = response.json()
    except ValueError as e:  # requests' JSONDecodeError is a ValueError
        raise DecodeError(f'failed to decode response: {e}') from e
    return Payment.from_json(data)


def create_payment(settings: Settings, session=None, idempotency_key: str = None) -> Payment:
    """POST a new payment and return the record the API sends back.

    Pass the same idempotency_key only to retry the identical attempt;
    by default every call gets a fresh one.
    """
    if session is None:
        with requests.Session() as own_session:
            return create_payment(settings, own_session, idempotency_key)
    key = idempotency_key or new_idempotency_key()
    payload = build_payment_payload(settings)

    logging.debug(f'request body = {json.dumps(payload, ensure_ascii=False)}')
    response = _send(
        session, 'POST', settings.payments_url, settings,
        json=payload,
        headers={'Content-Type': 'application/json', 'Idempotence-Key': key},
    )
    logging.info(f'create, idempotence_key = {key} | status_code = {response.status_code}')

    payment = _decode(response)
    logging.info(f'created, payment_id = {payment.id} | status = {payment.status}')
    return payment


def get_payment(payment_id: str, settings: Settings, session=None) -> Payment:
    if not payment_id:
        raise ValueError('payment_id must not be empty')
    if session is None:
        with requests.Session() as own_session:
            return get_payment(payment_id, settings, own_session)
    endpoint = f'{settings.payments_url}/{payment_id}'

    response = _send(
        session, 'GET', endpoint, settings, payment_id=payment_id,
        headers={'Content-Type': 'application/json'},
    )
    logging.info(f'query, payment_id = {payment_id} | status_code = {response.status_code}')
    return _decode(response)


def check_payment_status(payment_id: str, settings: Settings, session=None) -> str:
    return get_payment(payment_id, settings, session).status
