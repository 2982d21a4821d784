from .__version__ import __version__  # noqa

from .deferred import Deferred, Resolver
from .combinators import all_of, race
from .decorators import wrap_deferred
from .errors import (DeferredError, PendingError, RejectionError,
                     StalledError, TimeoutError)
from .reduce_coroutine import reduce_coroutine
from .scheduler import AsyncioScheduler, LoopScheduler, Scheduler
from .timing import delay, timeout
from .util import is_deferred

__all__ = [
    'Deferred', 'Resolver', 'all_of', 'race', 'wrap_deferred',
    'DeferredError', 'PendingError', 'RejectionError', 'StalledError',
    'TimeoutError', 'reduce_coroutine', 'AsyncioScheduler', 'LoopScheduler',
    'Scheduler', 'delay', 'timeout', 'is_deferred'
]
