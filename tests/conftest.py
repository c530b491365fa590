"""Shared fixtures: settings, canned requests responses, a synchronous scheduler."""

import json

import pytest
import requests

from payment_config import load_settings


PAYMENT_BODY = {
    'id': '2d8a3b1c-000f-5000-9000-1f3b2a6c7d8e',
    'status': 'pending',
    'amount': {'value': '10.00', 'currency': 'RUB'},
    'confirmation': {
        'type': 'redirect',
        'return_url': 'https://your-website.com/return',
        'confirmation_url': 'https://yoomoney.ru/checkout/payments/v2/contract?orderId=2d8a3b1c',
    },
    'description': 'Test payment',
    'capture': True,
    'test': True,
}


def make_response(status_code=200, body=None, text=None, request=None):
    response = requests.Response()
    response.status_code = status_code
    if text is None:
        text = json.dumps(body if body is not None else {})
    response._content = text.encode('utf-8')
    response.encoding = 'utf-8'
    response.headers['Content-Type'] = 'application/json'
    response.request = request
    return response


@pytest.fixture
def settings():
    return load_settings({
        'PAYMENT_SHOP_ID': 'test_shop',
        'PAYMENT_SECRET_KEY': 'test_secret',
        'PAYMENT_API_URL': 'https://api.example.test/v3',
    })


class ImmediateScheduler:
    """Records scheduled callbacks; drain() fires them back to back until cancelled."""

    def __init__(self, limit=1000):
        self.limit = limit
        self.ticks = 0
        self.intervals = []
        self.started_immediately = []
        self.callbacks = {}

    def schedule_repeating(self, interval, callback, start_immediately=False):
        handle = object()
        self.intervals.append(interval)
        self.started_immediately.append(start_immediately)
        self.callbacks[handle] = callback
        return handle

    def cancel(self, handle):
        self.callbacks.pop(handle, None)

    def drain(self):
        while self.callbacks and self.ticks < self.limit:
            for callback in list(self.callbacks.values()):
                self.ticks += 1
                callback()


@pytest.fixture
def immediate_scheduler():
    return ImmediateScheduler()
