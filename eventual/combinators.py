"""Combine a fixed collection of Deferreds into a single one."""

from functools import partial
import logging

from .deferred import Deferred, Resolver
from .util import is_deferred

_logger = logging.getLogger(__name__)


def _pick_scheduler(items, scheduler):
    if scheduler is not None:
        return scheduler
    for item in items:
        if is_deferred(item):
            return item.scheduler
    raise ValueError('No scheduler given, and no Deferred to take one from.')


def _as_deferreds(items, scheduler):
    return [Deferred.resolve(item, scheduler) for item in items]


class _AllJob:
    """State of one `all_of()` call, until its output settles.

    Attributes:
        results (list): values of the fulfilled inputs, by input index.
        remaining (int): number of inputs not fulfilled yet.
        done (bool): True as soon as the output is settled. Later
            settlements of the inputs are observed, then ignored.
    """

    def __init__(self, size, resolver):
        self.results = [None] * size
        self.remaining = size
        self.done = False
        self._resolver = resolver

    def fulfill_one(self, index, value):
        if self.done:
            return
        self.results[index] = value
        self.remaining -= 1
        if self.remaining == 0:
            self.done = True
            self._resolver.resolve(self.results)

    def reject_one(self, reason):
        if self.done:
            _logger.debug('%r already settled; rejection ignored: %r',
                          self._resolver.deferred, reason)
            return
        self.done = True
        self._resolver.reject(reason)


def all_of(items, scheduler=None):
    """Create a Deferred who waits a list of Deferreds to be all fulfilled.

    The resulting Deferred resolves when all of the Deferreds in the list
    are fulfilled, with a list of all the resulting values, keeping the
    order of the input list.
    If a Deferred is rejected, the resulting Deferred is immediately
    rejected with the same reason, and all results from other Deferreds are
    ignored. When several inputs are already rejected, the one with the
    lowest index wins.

    Args:
        items (iterable): Deferreds to wait. Other values are considered as
            already fulfilled.
        scheduler (Scheduler, optional): scheduler of the resulting
            Deferred. By default, the one of the first Deferred in `items`.
    Returns:
        Deferred<list>: fulfilled when all Deferreds are fulfilled, or
            rejected when one of them has been rejected.
    Raises:
        ValueError: if no scheduler can be found.
    """
    items = list(items)
    scheduler = _pick_scheduler(items, scheduler)

    if not items:
        return Deferred.resolve([], scheduler)

    resolver = Resolver(scheduler, _name='ALL')
    job = _AllJob(len(items), resolver)

    for index, item in enumerate(_as_deferreds(items, scheduler)):
        item.then(partial(job.fulfill_one, index), job.reject_one)

    return resolver.deferred


def race(items, scheduler=None):
    """Settle as the fastest Deferred of the list.

    The resulting Deferred is settled as soon as the first of the Deferreds
    is settled. Its value or rejection reason is transmitted; all other
    outcomes are ignored. There is no cancellation: the other Deferreds keep
    running.

    Args:
        items (iterable): Deferreds competing. Other values are considered
            as already fulfilled.
        scheduler (Scheduler, optional): scheduler of the resulting
            Deferred. By default, the one of the first Deferred in `items`.
    Returns:
        Deferred
    Raises:
        ValueError: If the list is empty, or if no scheduler can be found.
    """
    items = list(items)
    if not items:
        raise ValueError('Empty Deferred list in race()')
    scheduler = _pick_scheduler(items, scheduler)

    resolver = Resolver(scheduler, _name='RACE')
    is_settled = [False]

    def resolve_once(value):
        if not is_settled[0]:
            is_settled[0] = True
            resolver.resolve(value)

    def reject_once(reason):
        if not is_settled[0]:
            is_settled[0] = True
            resolver.reject(reason)

    for item in _as_deferreds(items, scheduler):
        item.then(resolve_once, reject_once)

    return resolver.deferred
