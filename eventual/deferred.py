"""Settle-once container for the eventual outcome of an operation.

A Deferred starts Pending, then is either Fulfilled with a value or Rejected
with an error. The transition happens once; after that, the state and the
payload never change.

Callbacks are never called synchronously: every dispatch goes through the
microtask queue of the scheduler held by the Deferred. It guarantees that a
handler registered with `then()` never runs before the code currently
executing has returned.
"""

from collections import namedtuple
from functools import partial
import logging

from .common import config
from .errors import PendingError, RejectionError

_logger = logging.getLogger(__name__)

# Log level used to trace each callback dispatch.
HIDEBUG = 5


Reaction = namedtuple('Reaction', ['on_fulfilled', 'on_rejected', 'derived'])
Reaction.__doc__ = """Pair of optional handlers attached to a Deferred.

Attributes:
    on_fulfilled (callable, optional): called with the value.
    on_rejected (callable, optional): called with the error.
    derived (Deferred, optional): settled from the handler's outcome. When
        None, the handler's return value is discarded.
"""


def _pending(resolve, reject):
    """Executor of derived Deferreds: they are settled by their parent."""
    pass


def _handler_name(on_fulfilled, on_rejected):
    if not on_rejected:
        return '%s' % getattr(on_fulfilled, '__name__', '???')
    elif not on_fulfilled:
        return '<None, %s>' % getattr(on_rejected, '__name__', '???')
    return '<%s, %s>' % (getattr(on_fulfilled, '__name__', '???'),
                         getattr(on_rejected, '__name__', '???'))


class Deferred:
    """It represents an operation expected to be completed in the future.

    A Deferred contains a value not yet known when it's created. Handlers
    can be attached with `then()` and `catch()`; they will be called as soon
    as the outcome is known, on a later turn of the scheduler.

    The Deferred is not thread-safe. All its methods, and the resolve and
    reject functions given to the executor, must be called from the thread
    running its scheduler.
    """

    PENDING = 'pending'
    FULFILLED = 'fulfilled'
    REJECTED = 'rejected'

    def __init__(self, executor, scheduler, _name=None, _previous=None):
        """Constructor of the Deferred.

        Generate the two settlement functions, then call the `executor`.
        It means the executor will be fully executed before the constructor
        returns. If the executor raises an exception, it's caught and the
        Deferred is rejected with this exception.

        Args:
            executor (callable): Takes 2 callable arguments:
                The first one, `resolve()`, should be called with the value
                when the operation is done. If this value is itself a
                Deferred, this one will adopt its outcome once known.
                The second, `reject()`, should be called with the error when
                the operation fails. Any object is accepted as error.
            scheduler (Scheduler): scheduler used to dispatch the callbacks.
                Deferreds derived from this one use the same scheduler.
            _name (str): if set, name used when converted to text.
        """
        self._state = self.PENDING
        self._payload = None
        self._scheduler = scheduler
        self._name = _name or getattr(executor, '__name__', '???')
        self._previous = _previous

        # Set by the first call to resolve() or reject(). A Deferred resolved
        # with another Deferred is locked before being settled.
        self._locked = False
        self._reactions = []

        try:
            executor(self._resolve, self._reject)
        except Exception as error:
            _logger.debug('Executor of %r raised %r', self, error)
            self._reject(error)

    @classmethod
    def create(cls, executor, scheduler):
        """Create a new Deferred, like `Deferred(executor, scheduler)`."""
        return cls(executor, scheduler)

    @property
    def scheduler(self):
        """Scheduler used to dispatch this Deferred's callbacks."""
        return self._scheduler

    @property
    def state(self):
        """str: one of PENDING, FULFILLED or REJECTED."""
        return self._state

    def is_pending(self):
        return self._state == self.PENDING

    def is_settled(self):
        return self._state != self.PENDING

    def result(self):
        """Returns the value of a fulfilled Deferred.

        This method never waits. To wait the outcome of a Deferred, the
        scheduler must be run (see `LoopScheduler.run_until_settled()`).

        Returns:
            *: value of the Deferred.
        Raises:
            PendingError: if the Deferred is not settled yet.
            RejectionError: if the Deferred has been rejected with a value who
                isn't an exception.
            *: if the Deferred has been rejected, the rejection cause.
        """
        if self._state == self.PENDING:
            raise PendingError('%r is not settled yet' % self)
        elif self._state == self.REJECTED:
            if isinstance(self._payload, BaseException):
                raise self._payload
            raise RejectionError(self._payload)
        return self._payload

    def exception(self):
        """Returns the error of a rejected Deferred.

        Returns:
            *: the rejection cause, as given to `reject()`.
            None: if the Deferred is fulfilled.
        Raises:
            PendingError: if the Deferred is not settled yet.
        """
        if self._state == self.PENDING:
            raise PendingError('%r is not settled yet' % self)
        elif self._state == self.REJECTED:
            return self._payload
        return None

    def register(self, on_fulfilled=None, on_rejected=None):
        """Attach a pair of handlers and returns the derived Deferred.

        If this Deferred is pending, the handlers are stored until the
        settlement. Otherwise, the matching handler is queued right now on
        the microtask queue. In both cases, it will never be called before
        this method returns.

        Args:
            on_fulfilled (callable, optional): called with the value.
            on_rejected (callable, optional): called with the error.
        Returns:
            Deferred: settled from the outcome of the handler called, or with
                the same outcome as this Deferred if no handler matches.
        """
        derived = Deferred(_pending, self._scheduler,
                           _name=_handler_name(on_fulfilled, on_rejected),
                           _previous=self)
        self._add_reaction(Reaction(on_fulfilled, on_rejected, derived))
        return derived

    def then(self, on_fulfilled=None, on_rejected=None):
        """Create a new Deferred from callbacks called when this one settles.

        If the Deferred is fulfilled, the `on_fulfilled` callback will be
        called. Otherwise (the Deferred has been rejected), the `on_rejected`
        callback is called.
        In any case, the callback will define the state of the returned
        Deferred. If the callback raises an exception, the new Deferred is
        rejected. The callback can returns:
        - A value: the new Deferred will be fulfilled with this value.
        - Another Deferred: when settled, its state and payload will be
            transferred to the Deferred returned by this method.

        If a callback is not defined, the state of the `self` Deferred is
        transferred to the new Deferred (the state and the value/error).

        Args:
            on_fulfilled (callable, optional): This callback will receive the
                value of the original Deferred as argument.
            on_rejected (callable, optional): This callback will receive the
                error of the original Deferred as argument.
        Returns:
            Deferred: new Deferred depending of self.
        """
        return self.register(on_fulfilled, on_rejected)

    def catch(self, on_rejected):
        """Create a new Deferred with a callback called when an error occurs.

        Alias of `self.then(None, on_rejected)`

        Args:
            on_rejected (callable): Will be called with the error if `self` is
                rejected.
        returns:
            Deferred: new Deferred chained to `self`. If `self` is fulfilled,
                the value will be the same as `self`. Otherwise, the value
                returned by the `on_rejected()` callback.
        """
        return self.register(None, on_rejected)

    def safeguard(self):
        """Log the error, with the most details possible, if `self` rejects.

        A rejected Deferred without error handler is a normal terminal state:
        the error is silently kept. Calling `safeguard()` after all chains
        are set will log these errors as ERROR.

        Returns:
            Deferred: self
        """
        def guard(error):
            if isinstance(error, BaseException):
                _logger.error('[SAFEGUARD] %s', self,
                              exc_info=(type(error), error,
                                        error.__traceback__))
            else:
                _logger.error('[SAFEGUARD] %s rejected with %r', self, error)

        self._add_reaction(Reaction(None, guard, None))
        return self

    def __repr__(self):
        return 'Deferred(%s)' % self._inner_print()

    def _inner_print(self):
        if self._state == self.REJECTED:
            state = 'R'
        elif self._state == self.FULFILLED:
            state = 'F'
        else:
            state = 'P'

        if self._previous:
            return '%s -> %s %s' % (self._previous._inner_print(), self._name,
                                    state)
        return '%s %s' % (self._name, state)

    @classmethod
    def resolve(cls, value, scheduler):
        """Create a Deferred who resolves the selected value.

        Args:
            value: value of the Deferred. If it's a Deferred, it's returned
                as is.
            scheduler (Scheduler)
        Returns:
            Deferred: new Deferred already fulfilled, containing the value
                passed in parameter.
        """
        if isinstance(value, Deferred):
            return value
        return cls(lambda ok, error: ok(value), scheduler, _name='RESOLVE')

    @classmethod
    def reject(cls, reason, scheduler):
        """Create a Deferred rejected for the reason specified.

        Args:
            reason: error set to the Deferred.
            scheduler (Scheduler)
        Returns:
            Deferred: new Deferred already rejected.
        """
        return cls(lambda ok, error: error(reason), scheduler, _name='REJECT')

    @classmethod
    def all(cls, items, scheduler=None):
        """Fail-fast aggregation. See `eventual.combinators.all_of()`.

        There is no default scheduler: an empty `items` needs the
        `scheduler` argument, as `Deferred.all([])` raises a `ValueError`.
        `Deferred.all([], scheduler)` is fulfilled immediately with `[]`.
        """
        from .combinators import all_of
        return all_of(items, scheduler)

    @classmethod
    def race(cls, items, scheduler=None):
        """First settlement wins. See `eventual.combinators.race()`."""
        from .combinators import race
        return race(items, scheduler)

    def _resolve(self, value):
        if self._locked:
            self._warn_ignored('fulfill', value)
            return
        self._locked = True

        if value is self:
            self._settle(self.REJECTED,
                         TypeError('Deferred resolved with itself'))
        elif isinstance(value, Deferred):
            _logger.log(HIDEBUG, '%r adopts the outcome of %r', self, value)
            value._add_reaction(Reaction(self._fulfill, self._fail, None))
        else:
            self._settle(self.FULFILLED, value)

    def _reject(self, error):
        if self._locked:
            self._warn_ignored('reject', error)
            return
        self._locked = True
        self._settle(self.REJECTED, error)

    def _fulfill(self, value):
        self._settle(self.FULFILLED, value)

    def _fail(self, error):
        self._settle(self.REJECTED, error)

    def _warn_ignored(self, action, payload):
        if config.get('settle_warnings'):
            _logger.warning('Try to %s Deferred %r already resolved. The new '
                            'payload will be ignored: %r',
                            action, self, payload)

    def _settle(self, state, payload):
        self._state = state
        self._payload = payload

        reactions = self._reactions
        # Free the references
        self._reactions = None

        for reaction in reactions:
            self._scheduler.enqueue_microtask(
                partial(self._dispatch, reaction))

    def _add_reaction(self, reaction):
        if self._state == self.PENDING:
            self._reactions.append(reaction)
        else:
            self._scheduler.enqueue_microtask(
                partial(self._dispatch, reaction))

    def _dispatch(self, reaction):
        """Call the handler matching the state, then settle the derived."""
        if self._state == self.FULFILLED:
            handler = reaction.on_fulfilled
        else:
            handler = reaction.on_rejected
        derived = reaction.derived

        _logger.log(HIDEBUG, 'Dispatch %r to %r', self, handler)

        if handler is None:
            if derived is None:
                return
            elif self._state == self.FULFILLED:
                derived._resolve(self._payload)
            else:
                derived._reject(self._payload)
            return

        try:
            new_value = handler(self._payload)
        except Exception as error:
            if derived is None:
                _logger.exception('Handler of %r raised an exception!', self)
            else:
                derived._reject(error)
            return

        if derived is not None:
            derived._resolve(new_value)


class Resolver:
    """Creator side of a Deferred.

    A Resolver owns a pending Deferred and the functions to settle it, for
    the code who can't settle it from an executor.

    Attributes:
        deferred (Deferred): the Deferred associated to the Resolver.
        resolve (function)
        reject (function)
    """

    def __init__(self, scheduler, _name=None, _previous=None):
        self.deferred = Deferred(self._executor, scheduler, _name=_name,
                                 _previous=_previous)

    def _executor(self, resolve, reject):
        self.resolve = resolve
        self.reject = reject
