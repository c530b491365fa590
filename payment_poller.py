
import sys
import enum
import logging
import threading
from dataclasses import dataclass

import requests

from payment_config import ConfigError, load_settings, setup_logging
from payment_client import PaymentError, check_payment_status, create_payment
from payment_scheduler import Scheduler


class PollReason(enum.Enum):
    TERMINAL = 'terminal'
    TIMED_OUT = 'timed-out'


@dataclass
class PollResult:
    reason: PollReason
    attempts: int
    last_status: str = None


class PaymentPoller:
    """Checks one payment on a fixed interval until it is final or the attempts run out.

    check_status(payment_id) -> str is called once per tick, the first time
    right away. A PaymentError from it is logged and the next tick goes ahead
    as usual. Every tick counts against max_attempts, whatever it raised.
    """

    def __init__(self, payment_id: str, check_status, interval: float = 30.0,
                 max_attempts: int = 20, terminal_statuses=('succeeded', 'canceled'),
                 scheduler=None):
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.payment_id = payment_id
        self.check_status = check_status
        self.interval = interval
        self.max_attempts = max_attempts
        self.terminal_statuses = frozenset(terminal_statuses)
        self.scheduler = scheduler or Scheduler()

        self.attempts = 0
        self.last_status = None
        self.result = None
        self._done = threading.Event()
        self._handle = None
        self._lock = threading.Lock()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def tick(self):
        if self.done:
            return
        self.attempts += 1

        status = None
        try:
            status = self.check_status(self.payment_id)
        except PaymentError as e:
            logging.error(f'poll failed, payment_id = {self.payment_id} | attempt = {self.attempts} | {e}')
        finally:
            # runs for unexpected errors too, so the budget holds before they propagate
            if status is None and self.attempts >= self.max_attempts:
                self._finish(PollReason.TIMED_OUT)
        if status is None:
            return

        self.last_status = status
        print(f'Payment ID: {self.payment_id}, Status: {status}')

        if status in self.terminal_statuses:
            self._finish(PollReason.TERMINAL)
        elif self.attempts >= self.max_attempts:
            self._finish(PollReason.TIMED_OUT)

    def _finish(self, reason: PollReason):
        self.result = PollResult(reason, self.attempts, self.last_status)
        logging.info(f'polling stopped, payment_id = {self.payment_id} | reason = {reason.value} | attempts = {self.attempts}')
        with self._lock:
            self._done.set()
            handle = self._handle
        if handle is not None:
            self.scheduler.cancel(handle)

    def start(self):
        handle = self.scheduler.schedule_repeating(self.interval, self.tick, start_immediately=True)
        with self._lock:
            self._handle = handle
            finished = self.done
        if finished:  # the first tick ended it before the handle was stored
            self.scheduler.cancel(handle)

    def wait(self, timeout: float = None) -> PollResult:
        self._done.wait(timeout)
        return self.result

    def run(self) -> PollResult:
        self.start()
        return self.wait()


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f'Configuration error: {e}', file=sys.stderr)
        return 1
    setup_logging(settings)

    with requests.Session() as session:
        try:
            payment = create_payment(settings, session)
        except PaymentError as e:
            logging.error(f'Failed to create payment: {e}')
            print(f'Failed to create payment: {e}', file=sys.stderr)
            return 1

        print(f'Payment created with ID: {payment.id}, Status: {payment.status}')
        print(f'Payment URL: {payment.confirmation.confirmation_url}')

        poller = PaymentPoller(
            payment.id,
            lambda payment_id: check_payment_status(payment_id, settings, session),
            interval=settings.poll_interval,
            max_attempts=settings.max_attempts,
            terminal_statuses=settings.terminal_statuses,
        )
        result = poller.run()

    if result.reason is PollReason.TERMINAL:
        print(f'Final status reached: {result.last_status}. Stopping checks.')
    else:
        print(f'{result.attempts} checks elapsed without a final status. Stopping checks.')
    print('Payment status checking completed.')
    return 0 if result.reason is PollReason.TERMINAL else 2


if __name__ == '__main__':
    sys.exit(main())
