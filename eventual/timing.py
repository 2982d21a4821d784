"""Deferreds built on the delayed-call capability of the schedulers."""

import logging

from .deferred import Deferred, Resolver
from .errors import TimeoutError

_logger = logging.getLogger(__name__)


def delay(scheduler, min_delay_ms, value=None):
    """Create a Deferred fulfilled after a minimum delay.

    Args:
        scheduler (Scheduler)
        min_delay_ms (float): delay, in milliseconds.
        value (optional): value of the Deferred. If it's a Deferred, its
            outcome is adopted once the delay is elapsed.
    Returns:
        Deferred: fulfilled with `value`, not before `min_delay_ms`.
    """
    def executor(resolve, _reject):
        scheduler.schedule(lambda: resolve(value), min_delay_ms)

    return Deferred(executor, scheduler, _name='DELAY %sms' % min_delay_ms)


def timeout(deferred, min_delay_ms):
    """Limit the time allowed to a Deferred to settle.

    The operation behind the Deferred is not interrupted: if it settles
    after the delay, the outcome is ignored.

    A delayed call can't be cancelled: the expiration timer stays in the
    scheduler even when `deferred` settles in time, and does nothing when
    it fires. A `LoopScheduler.run()` returns only after this timer, so
    `run_until_settled()` should be used to wait for the result.

    Args:
        deferred (Deferred): Deferred to watch.
        min_delay_ms (float): time allowed, in milliseconds.
    Returns:
        Deferred: settled like `deferred` if it settles in time. Otherwise,
            rejected with a `TimeoutError`.
    """
    resolver = Resolver(deferred.scheduler,
                        _name='TIMEOUT %sms' % min_delay_ms,
                        _previous=deferred)

    def forward_value(value):
        if resolver.deferred.is_pending():
            resolver.resolve(value)

    def forward_error(error):
        if resolver.deferred.is_pending():
            resolver.reject(error)

    def expire():
        if not resolver.deferred.is_pending():
            _logger.debug('%r settled in time; nothing to expire',
                          resolver.deferred)
            return
        _logger.debug('%r has expired', resolver.deferred)
        resolver.reject(TimeoutError('Not settled after %sms'
                                     % min_delay_ms))

    deferred.then(forward_value, forward_error)
    deferred.scheduler.schedule(expire, min_delay_ms)
    return resolver.deferred
