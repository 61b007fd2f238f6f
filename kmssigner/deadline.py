"""Per-call deadlines for blocking remote calls."""

import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeadlineExceeded(TimeoutError):
    """A remote call did not complete within its deadline."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} did not complete within {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class _Outcome:
    """Result slot filled in by the worker thread of a single call."""

    __slots__ = ("done", "value", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: object = None
        self.error: BaseException | None = None


def call_with_deadline(fn: Callable[[], T], timeout: float, operation: str) -> T:
    """Run ``fn`` and wait at most ``timeout`` seconds for it to finish.

    Every call gets its own worker thread and its own deadline, so an
    expired call never affects another one running concurrently. The
    worker is a daemon thread: a request abandoned after its deadline
    cannot keep the interpreter alive.

    Args:
        fn: Zero-argument callable performing the blocking request
        timeout: Deadline in seconds, measured from now
        operation: Name used in log and error messages

    Returns:
        Whatever ``fn`` returns

    Raises:
        DeadlineExceeded: If ``fn`` has not returned when the deadline expires
        Exception: Any exception raised by ``fn`` is re-raised unchanged
    """
    outcome = _Outcome()

    def _run() -> None:
        try:
            outcome.value = fn()
        except BaseException as e:  # re-raised in the calling thread
            outcome.error = e
        finally:
            outcome.done.set()

    started = time.monotonic()
    worker = threading.Thread(target=_run, name=f"kmssigner-{operation}", daemon=True)
    worker.start()

    if not outcome.done.wait(timeout):
        logger.warning(
            f"{operation} abandoned after {time.monotonic() - started:.3f}s "
            f"(deadline {timeout:g}s)"
        )
        raise DeadlineExceeded(operation, timeout)

    if outcome.error is not None:
        raise outcome.error
    return outcome.value  # type: ignore[return-value]
