import os
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from urllib.parse import urlsplit

from dotenv import load_dotenv


# Settings are read from the environment (and .env if there is one), never hardcoded

DEFAULT_API_URL = "https://api.yookassa.ru/v3"
DEFAULT_TERMINAL_STATUSES = ('succeeded', 'canceled')
TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off')


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    shop_id: str
    secret_key: str
    api_url: str = DEFAULT_API_URL
    amount: str = '10.00'
    currency: str = 'RUB'
    description: str = 'Test payment'
    return_url: str = 'https://your-website.com/return'
    capture: bool = True
    test_mode: bool = True
    receipt_email: str = 'user@example.com'
    item_description: str = 'Test item'
    item_quantity: str = '1.00'
    vat_code: int = 2
    payment_mode: str = 'full_payment'
    payment_subject: str = 'commodity'
    poll_interval: float = 30.0
    max_attempts: int = 20  # 20 checks * 30s = 10 minutes
    terminal_statuses: frozenset = frozenset(DEFAULT_TERMINAL_STATUSES)
    http_timeout: float = 10.0
    log_level: str = 'INFO'
    log_file: str = 'payment_audit.log'

    @property
    def payments_url(self) -> str:
        return f'{self.api_url}/payments'


def _text(env, name: str, default: str) -> str:
    value = env.get(name, '').strip()
    return value or default


def _require(env, name: str) -> str:
    value = _text(env, name, '')
    if not value:
        raise ConfigError(f'{name} is not configured')
    return value


def _url(env, name: str, default: str) -> str:
    value = _text(env, name, default).rstrip('/')
    parts = urlsplit(value)
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        raise ConfigError(f'{name} must be an http(s) URL, got {value!r}')
    return value


def _decimal(env, name: str, default: str) -> str:
    raw = _text(env, name, default)
    try:
        value = Decimal(raw)
        if not value.is_finite() or value <= 0:
            raise ConfigError(f'{name} must be greater than zero')
        return str(value.quantize(Decimal('0.01')))
    except InvalidOperation:
        raise ConfigError(f'{name} must be a positive decimal number, got {raw!r}')


def _number(env, name: str, default, cast, minimum):
    raw = _text(env, name, '')
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f'{name} must be a number, got {raw!r}')
    if value < minimum:
        raise ConfigError(f'{name} must be at least {minimum}')
    return value


def _flag(env, name: str, default: bool) -> bool:
    raw = _text(env, name, '').lower()
    if not raw:
        return default
    if raw in TRUE_VALUES:
        return True
    if raw in FALSE_VALUES:
        return False
    raise ConfigError(f'{name} must be true or false, got {raw!r}')


def load_settings(env=None) -> Settings:
    """Build Settings from env (os.environ after loading .env by default).

    An unset or empty optional variable falls back to its default; a set one
    has to be valid or ConfigError names it.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    raw_statuses = _text(env, 'POLL_TERMINAL_STATUSES', ','.join(DEFAULT_TERMINAL_STATUSES))
    statuses = frozenset(s.strip() for s in raw_statuses.split(',') if s.strip())
    if not statuses:
        raise ConfigError('POLL_TERMINAL_STATUSES must name at least one status')

    interval = _number(env, 'POLL_INTERVAL_SECONDS', 30.0, float, 0)
    if interval <= 0:
        raise ConfigError('POLL_INTERVAL_SECONDS must be greater than zero')

    log_level = _text(env, 'LOG_LEVEL', 'INFO').upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f'LOG_LEVEL {log_level!r} is not a logging level')

    return Settings(
        shop_id=_require(env, 'PAYMENT_SHOP_ID'),
        secret_key=_require(env, 'PAYMENT_SECRET_KEY'),
        api_url=_url(env, 'PAYMENT_API_URL', DEFAULT_API_URL),
        amount=_decimal(env, 'PAYMENT_AMOUNT', '10.00'),
        currency=_text(env, 'PAYMENT_CURRENCY', 'RUB').upper(),
        description=_text(env, 'PAYMENT_DESCRIPTION', 'Test payment'),
        return_url=_url(env, 'PAYMENT_RETURN_URL', 'https://your-website.com/return'),
        capture=_flag(env, 'PAYMENT_CAPTURE', True),
        test_mode=_flag(env, 'PAYMENT_TEST_MODE', True),
        receipt_email=_text(env, 'PAYMENT_RECEIPT_EMAIL', 'user@example.com'),
        item_description=_text(env, 'PAYMENT_ITEM_DESCRIPTION', 'Test item'),
        item_quantity=_decimal(env, 'PAYMENT_ITEM_QUANTITY', '1.00'),
        vat_code=_number(env, 'PAYMENT_VAT_CODE', 2, int, 1),
        payment_mode=_text(env, 'PAYMENT_MODE', 'full_payment'),
        payment_subject=_text(env, 'PAYMENT_SUBJECT', 'commodity'),
        poll_interval=interval,
        max_attempts=_number(env, 'POLL_MAX_ATTEMPTS', 20, int, 1),
        terminal_statuses=statuses,
        http_timeout=_number(env, 'HTTP_TIMEOUT_SECONDS', 10.0, float, 0.1),
        log_level=log_level,
        log_file=_text(env, 'LOG_FILE', 'payment_audit.log'),
    )


def setup_logging(settings: Settings):
    # audit file, same format as the payment checks plus the level
    logging.basicConfig(
        filename=settings.log_file,
        level=getattr(logging, settings.log_level),
        format='%(asctime)s, %(levelname)s, %(message)s'
    )
