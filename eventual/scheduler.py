"""Schedulers dispatching the Deferred callbacks.

A scheduler provides two capabilities:
- a microtask queue: FIFO queue of callbacks executed as soon as the code
  currently executing has returned, before any delayed call.
- a delayed call: a callback executed once, not before a minimum delay.

The Deferreds never call a callback directly; they always go through the
scheduler they hold. Two implementations are provided: `LoopScheduler`, a
self-contained single-threaded loop, and `AsyncioScheduler`, which delegates
to an asyncio event loop.
"""

from collections import deque
import heapq
import itertools
import logging
import time

from .errors import RejectionError, StalledError, TimeoutError

_logger = logging.getLogger(__name__)


def _run_callback(callback):
    try:
        callback()
    except Exception:
        _logger.exception('Scheduled callback %r raised an exception!',
                          callback)


class Scheduler:
    """Interface of the scheduler capability used by the Deferreds."""

    def enqueue_microtask(self, callback):
        """Queue a callback to run after the current synchronous code.

        Args:
            callback (callable): called without argument.
        """
        raise NotImplementedError()

    def schedule(self, callback, min_delay_ms):
        """Call a function once, after a minimum delay.

        The exact delay may exceed the minimum if the scheduler is busy.

        Args:
            callback (callable): called without argument.
            min_delay_ms (float): delay, in milliseconds.
        """
        raise NotImplementedError()


class LoopScheduler(Scheduler):
    """Single-threaded cooperative loop.

    Nothing is executed until the loop is run, using `run()`,
    `run_once()` or `run_until_settled()`. Each turn executes all the
    microtasks (including the ones queued during the turn), then one due
    delayed call. Delayed calls with the same deadline are executed in the
    order they have been scheduled.

    A callback raising an exception is logged, then the loop continues.
    """

    def __init__(self, clock=time.monotonic, sleep=time.sleep):
        """
        Args:
            clock (callable, optional): returns the current time, in seconds.
            sleep (callable, optional): waits the number of seconds given.
                Tests can give a fake clock and a sleep function who only
                moves the clock forward.
        """
        self._clock = clock
        self._sleep = sleep
        self._microtasks = deque()
        # heap of (deadline, counter, callback)
        self._timers = []
        self._counter = itertools.count()

    def enqueue_microtask(self, callback):
        self._microtasks.append(callback)

    def schedule(self, callback, min_delay_ms):
        deadline = self._clock() + max(min_delay_ms, 0) / 1000.0
        heapq.heappush(self._timers, (deadline, next(self._counter), callback))

    def has_pending_work(self):
        """Returns True if there is a microtask or a delayed call waiting."""
        return bool(self._microtasks or self._timers)

    def next_deadline(self):
        """Returns the time of the next delayed call, or None."""
        if self._timers:
            return self._timers[0][0]
        return None

    def run_microtasks(self):
        """Execute microtasks until the queue is empty.

        Returns:
            int: number of microtasks executed.
        """
        count = 0
        while self._microtasks:
            _run_callback(self._microtasks.popleft())
            count += 1
        return count

    def run_once(self, block=True):
        """Execute one turn of the loop.

        Args:
            block (bool, optional): if True, wait for the next delayed call
                if none is due yet.
        Returns:
            bool: True if a delayed call has been executed.
        """
        self.run_microtasks()
        if not self._timers:
            return False

        deadline = self._timers[0][0]
        now = self._clock()
        if deadline > now and not block:
            return False
        while deadline > now:
            self._sleep(deadline - now)
            now = self._clock()

        _deadline, _counter, callback = heapq.heappop(self._timers)
        _run_callback(callback)
        self.run_microtasks()
        return True

    def run(self):
        """Run the loop until there is nothing left to execute."""
        while self.run_once():
            pass

    def run_until_settled(self, deferred, timeout=None):
        """Run the loop until the Deferred is settled, then get its value.

        Args:
            deferred (Deferred): Deferred to wait.
            timeout (float, optional): maximum time to wait, in seconds. By
                default, it can wait indefinitely.
        Returns:
            *: value of the Deferred.
        Raises:
            TimeoutError: if the Deferred is not settled within the delay.
            StalledError: if there is nothing left to execute, but the
                Deferred is still pending.
            *: If the Deferred is rejected, the rejection cause is raised.
        """
        limit = None if timeout is None else self._clock() + timeout

        self.run_microtasks()
        while deferred.is_pending():
            if not self._timers:
                raise StalledError('No more work scheduled, but %r is still '
                                   'pending.' % deferred)
            if limit is not None and self._timers[0][0] > limit:
                now = self._clock()
                if limit > now:
                    self._sleep(limit - now)
                raise TimeoutError('%r not settled after %ss'
                                   % (deferred, timeout))
            self.run_once()

        return deferred.result()


class AsyncioScheduler(Scheduler):
    """Scheduler delegating to an asyncio event loop.

    The microtasks are kept in a queue of their own. The queue is drained by
    one `loop.call_soon()` callback, and right after each delayed call, so a
    microtask queued by a delayed call runs before the other delayed calls
    due at the same time, as with `LoopScheduler`. Delayed calls use
    `loop.call_later()`. Like the Deferreds, it must be used from the thread
    running the loop.
    """

    def __init__(self, loop):
        """
        Args:
            loop (asyncio.AbstractEventLoop): loop running the callbacks.
        """
        self.loop = loop
        self._microtasks = deque()
        self._drain_planned = False

    def enqueue_microtask(self, callback):
        self._microtasks.append(callback)
        if not self._drain_planned:
            self._drain_planned = True
            self.loop.call_soon(self._drain_soon)

    def schedule(self, callback, min_delay_ms):
        self.loop.call_later(max(min_delay_ms, 0) / 1000.0,
                             self._run_delayed_call, callback)

    def _drain_soon(self):
        self._drain_planned = False
        self._drain()

    def _run_delayed_call(self, callback):
        _run_callback(callback)
        self._drain()

    def _drain(self):
        while self._microtasks:
            _run_callback(self._microtasks.popleft())

    def wrap(self, deferred):
        """Convert a Deferred into an asyncio Future, for use with `await`.

        Args:
            deferred (Deferred)
        Returns:
            asyncio.Future: future settled with the outcome of the Deferred.
                A rejection payload who is not an exception is wrapped in a
                `RejectionError`.
        """
        future = self.loop.create_future()

        def on_fulfilled(value):
            if not future.done():
                future.set_result(value)

        def on_rejected(error):
            if future.done():
                return
            if not isinstance(error, BaseException):
                error = RejectionError(error)
            future.set_exception(error)

        deferred.then(on_fulfilled, on_rejected)
        return future
