import logging
import threading


class Handle:
    def __init__(self, interval: float, callback, start_immediately: bool = False):
        self.interval = interval
        self.callback = callback
        self.start_immediately = start_immediately
        self.cancelled = threading.Event()
        self.thread = None

    @property
    def active(self) -> bool:
        return not self.cancelled.is_set()


class Scheduler:
    """Runs callbacks on a fixed period, one daemon thread per handle.

    A tick only starts waiting once the previous callback has returned,
    so callbacks for the same handle never overlap. With start_immediately
    the first call happens as soon as the thread starts instead of after
    one interval.
    """

    def __init__(self):
        self._handles = []
        self._lock = threading.Lock()

    def schedule_repeating(self, interval: float, callback, start_immediately: bool = False) -> Handle:
        if interval <= 0:
            raise ValueError('interval must be greater than zero')
        handle = Handle(interval, callback, start_immediately)
        handle.thread = threading.Thread(target=self._run, args=(handle,), daemon=True)
        with self._lock:
            self._handles.append(handle)
        handle.thread.start()
        return handle

    def cancel(self, handle: Handle):
        handle.cancelled.set()
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)

    def shutdown(self, wait: bool = False):
        with self._lock:
            handles = list(self._handles)
        for handle in handles:
            self.cancel(handle)
        if wait:
            for handle in handles:
                if handle.thread is not threading.current_thread():
                    handle.thread.join()

    def _fire(self, handle: Handle):
        try:
            handle.callback()
        except Exception:
            logging.exception('scheduled callback failed')

    def _run(self, handle: Handle):
        if handle.start_immediately and handle.active:
            self._fire(handle)
        # wait() returns True as soon as cancel() is called, so a cancelled handle never ticks again
        while not handle.cancelled.wait(handle.interval):
            self._fire(handle)
