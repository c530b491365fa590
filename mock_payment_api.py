import os
import uuid
from datetime import datetime, timezone

from flask import Flask, jsonify, request

app = Flask(__name__)

app.config.update(
    SHOP_ID=os.getenv('MOCK_SHOP_ID', 'test_shop'),
    SHOP_SECRET=os.getenv('MOCK_SECRET_KEY', 'test_secret'),
    SUCCEED_AFTER=int(os.getenv('MOCK_SUCCEED_AFTER', '3')),
    PORT=int(os.getenv('MOCK_PORT', '5001')),
)

payments = {}      # payment_id -> payment body
lookups = {}       # payment_id -> number of GETs so far
idempotency = {}   # Idempotence-Key -> payment_id


def reset():
    payments.clear()
    lookups.clear()
    idempotency.clear()


def error(status: int, code: str, message: str):
    return jsonify({'type': 'error', 'code': code, 'description': message}), status


@app.before_request
def check_auth():
    auth = request.authorization
    if auth is None or auth.username != app.config['SHOP_ID'] or auth.password != app.config['SHOP_SECRET']:
        return error(401, 'invalid_credentials', 'Basic auth with shop id and secret key is required')


@app.route("/v3/payments", methods=["POST"])
def create_payment():
    key = request.headers.get('Idempotence-Key')
    if not key:
        return error(400, 'invalid_request', 'Idempotence-Key header is required')
    if key in idempotency:  # same attempt retried, hand back what was created the first time
        return jsonify(payments[idempotency[key]]), 200

    body = request.get_json(silent=True) or {}
    amount = body.get('amount') or {}
    if not amount.get('value') or not amount.get('currency'):
        return error(400, 'invalid_request', 'amount.value and amount.currency are required')

    payment_id = str(uuid.uuid4())
    confirmation = body.get('confirmation') or {}
    payments[payment_id] = {
        'id': payment_id,
        'status': 'pending',
        'amount': {'value': amount['value'], 'currency': amount['currency']},
        'confirmation': {
            'type': confirmation.get('type', 'redirect'),
            'return_url': confirmation.get('return_url', ''),
            'confirmation_url': f"http://localhost:{app.config['PORT']}/checkout/{payment_id}",
        },
        'description': body.get('description') or '',
        'capture': bool(body.get('capture', False)),
        'test': bool(body.get('test', True)),
        'created_at': datetime.now(timezone.utc).isoformat(),
    }
    lookups[payment_id] = 0
    idempotency[key] = payment_id
    return jsonify(payments[payment_id]), 200


@app.route("/v3/payments/<payment_id>", methods=["GET"])
def get_payment(payment_id):
    if payment_id not in payments:
        return error(404, 'not_found', f'No payment with id {payment_id}')

    payment = payments[payment_id]
    lookups[payment_id] += 1
    if payment['status'] == 'pending' and lookups[payment_id] >= app.config['SUCCEED_AFTER']:
        final = 'canceled' if 'cancel' in payment['description'].lower() else 'succeeded'
        payment['status'] = final
    return jsonify(payment), 200


def main():
    app.run(port=app.config['PORT'])


if __name__ == "__main__":
    main()
