from threading import Event, Lock, Thread, current_thread
from typing import Callable, Optional


class Ticker:
    """Repeating background task, stoppable and restartable.

    Calls `fn` every `interval_s` seconds on a daemon thread until stopped.
    An exception raised by `fn` is printed and the next tick still runs.
    """

    def __init__(self, interval_s: float, fn: Callable[[], None], name: str = "ticker"):
        if interval_s <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval_s}")
        self.interval_s = interval_s
        self.fn = fn
        self.name = name

        self._lock = Lock()
        self._stop_event: Optional[Event] = None
        self._thread: Optional[Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            self._stop_event = Event()
            self._thread = Thread(
                target=self._run,
                args=(self._stop_event,),
                name=self.name,
                daemon=True
            )
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None

        if thread is None:
            return
        stop_event.set()
        if thread.is_alive() and thread is not current_thread():
            thread.join(timeout)

    def _run(self, stop_event: Event) -> None:
        while not stop_event.wait(self.interval_s):
            try:
                self.fn()
            except Exception as e:
                print(f"[{self.name}] Tick failed: {e}")
