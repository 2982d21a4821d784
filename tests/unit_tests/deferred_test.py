import logging

import pytest

from eventual import Deferred, PendingError, RejectionError, Resolver
from eventual.common import config


class TestDeferred:

    def test_executor_is_called_synchronously(self, scheduler):
        calls = []

        def executor(resolve, reject):
            calls.append((resolve, reject))

        Deferred(executor, scheduler)
        assert len(calls) == 1

    def test_synchronous_call(self, scheduler):
        """Make a Deferred fulfilled by a synchronous executor."""

        def executor(on_fulfilled, on_rejected):
            on_fulfilled(3)

        d = Deferred(executor, scheduler)

        assert d.state == Deferred.FULFILLED
        assert d.is_settled()
        assert d.result() == 3
        assert d.exception() is None

    def test_create_alias(self, scheduler):
        d = Deferred.create(lambda resolve, reject: resolve(5), scheduler)
        assert isinstance(d, Deferred)
        assert d.result() == 5

    def test_synchronous_call_failing(self, scheduler):
        """Make a Deferred rejected by a synchronous executor."""

        class Err(Exception):
            pass

        def executor(on_fulfilled, on_rejected):
            on_rejected(Err())

        d = Deferred(executor, scheduler)
        assert d.state == Deferred.REJECTED
        assert isinstance(d.exception(), Err)
        with pytest.raises(Err):
            d.result()

    def test_executor_raising_error(self, scheduler):
        """Make a Deferred with an executor raising an error."""
        class Err(Exception):
            pass

        def executor(on_fulfilled, on_rejected):
            raise Err()

        d = Deferred(executor, scheduler)
        with pytest.raises(Err):
            d.result()

    def test_executor_raising_after_resolve(self, scheduler):
        def executor(on_fulfilled, on_rejected):
            on_fulfilled('value')
            raise ValueError()

        d = Deferred(executor, scheduler)
        assert d.result() == 'value'

    def test_reject_with_non_exception_value(self, scheduler):
        d = Deferred.reject('x', scheduler)

        assert d.exception() == 'x'
        with pytest.raises(RejectionError) as excinfo:
            d.result()
        assert excinfo.value.reason == 'x'

    def test_pending_deferred(self, scheduler):
        d = Deferred(lambda ok, error: None, scheduler)

        assert d.is_pending()
        assert not d.is_settled()
        assert d.state == Deferred.PENDING
        with pytest.raises(PendingError):
            d.result()
        with pytest.raises(PendingError):
            d.exception()

    def test_scheduler_is_kept(self, scheduler):
        d = Deferred.resolve(1, scheduler)
        assert d.scheduler is scheduler
        assert d.then(None).scheduler is scheduler


class TestSettleOnce:

    def test_second_resolve_is_ignored(self, scheduler):
        rs = Resolver(scheduler)
        rs.resolve(1)
        rs.resolve(2)
        rs.reject(ValueError())

        assert rs.deferred.result() == 1

    def test_resolve_after_reject_is_ignored(self, scheduler):
        class Err(Exception):
            pass

        rs = Resolver(scheduler)
        rs.reject(Err())
        rs.resolve('value')
        rs.reject(ValueError())

        assert isinstance(rs.deferred.exception(), Err)

    def test_payload_never_changes_after_dispatch(self, scheduler):
        rs = Resolver(scheduler)
        values = []
        rs.deferred.then(values.append)
        rs.resolve('first')
        scheduler.run()
        rs.resolve('second')
        scheduler.run()

        assert values == ['first']
        assert rs.deferred.result() == 'first'

    def test_ignored_settlement_is_logged(self, scheduler, caplog):
        rs = Resolver(scheduler)
        rs.resolve(1)
        with caplog.at_level(logging.WARNING, logger='eventual.deferred'):
            rs.resolve(2)
        assert 'already resolved' in caplog.text

    def test_ignored_settlement_warning_disabled(self, scheduler, caplog):
        config._config_parser.set('config', 'settle_warnings', 'false')

        rs = Resolver(scheduler)
        rs.resolve(1)
        with caplog.at_level(logging.WARNING, logger='eventual.deferred'):
            rs.reject(ValueError())
        assert caplog.records == []


class TestFlattening:

    def test_resolve_with_pending_deferred(self, scheduler):
        inner = Resolver(scheduler)
        outer = Deferred(lambda ok, error: ok(inner.deferred), scheduler)

        assert outer.is_pending()
        inner.resolve('inner value')
        scheduler.run()
        assert outer.result() == 'inner value'

    def test_resolve_with_rejected_deferred(self, scheduler):
        class Err(Exception):
            pass

        inner = Deferred.reject(Err(), scheduler)
        outer = Deferred(lambda ok, error: ok(inner), scheduler)

        assert outer.is_pending()
        scheduler.run()
        assert isinstance(outer.exception(), Err)

    def test_locked_deferred_ignores_later_calls(self, scheduler):
        """Once resolved with a Deferred, the outcome is the inner's one."""
        inner = Resolver(scheduler)
        outer = Resolver(scheduler)
        outer.resolve(inner.deferred)
        outer.reject('ignored')
        outer.resolve('ignored too')

        inner.resolve('inner value')
        scheduler.run()
        assert outer.deferred.result() == 'inner value'

    def test_resolve_with_itself(self, scheduler):
        rs = Resolver(scheduler)
        rs.resolve(rs.deferred)

        assert isinstance(rs.deferred.exception(), TypeError)

    def test_thenable_object_is_a_plain_value(self, scheduler):
        class Thenable:
            def then(self, *args):
                raise AssertionError('This should not be executed.')

        obj = Thenable()
        d = Deferred.resolve(obj, scheduler)
        d2 = d.then(lambda value: value)
        scheduler.run()

        assert d.result() is obj
        assert d2.result() is obj

    def test_resolve_deferred_is_returned_as_is(self, scheduler):
        d = Deferred.resolve(33, scheduler)
        assert Deferred.resolve(d, scheduler) is d


class TestDispatch:

    def test_handlers_called_in_registration_order(self, scheduler):
        rs = Resolver(scheduler)
        calls = []
        rs.deferred.then(lambda v: calls.append(('first', v)))
        rs.deferred.then(lambda v: calls.append(('second', v)))

        rs.resolve(7)
        # Never before the current code is over.
        assert calls == []

        scheduler.run_microtasks()
        assert calls == [('first', 7), ('second', 7)]

    def test_handler_on_settled_deferred_is_not_synchronous(self, scheduler):
        d = Deferred.resolve(1, scheduler)
        calls = []
        d.then(calls.append)

        assert calls == []
        scheduler.run()
        assert calls == [1]

    def test_each_handler_is_called_once(self, scheduler):
        rs = Resolver(scheduler)
        calls = []
        rs.deferred.then(calls.append, calls.append)
        rs.resolve('value')
        scheduler.run()
        rs.reject('error')
        scheduler.run()

        assert calls == ['value']

    def test_register_returns_new_deferred(self, scheduler):
        d = Deferred.resolve(1, scheduler)
        d2 = d.register(lambda v: v + 1)

        assert d2 is not d
        assert d2.is_pending()
        scheduler.run()
        assert d2.result() == 2

    def test_handlers_of_rejected_deferred(self, scheduler):
        calls = []
        d = Deferred.reject('error', scheduler)
        d.then(lambda v: calls.append(('fulfilled', v)),
               lambda e: calls.append(('rejected', e)))
        d.catch(lambda e: calls.append(('catch', e)))

        scheduler.run()
        assert calls == [('rejected', 'error'), ('catch', 'error')]


class TestSafeguard:

    def test_safeguard_logs_rejection(self, scheduler, caplog):
        class Err(Exception):
            pass

        d = Deferred.reject(Err('ERROR'), scheduler)
        assert d.safeguard() is d

        with caplog.at_level(logging.ERROR):
            scheduler.run()
        assert '[SAFEGUARD]' in caplog.text
        assert caplog.records[0].exc_info[0] is Err

    def test_safeguard_logs_non_exception_rejection(self, scheduler, caplog):
        Deferred.reject('boom', scheduler).safeguard()

        with caplog.at_level(logging.ERROR):
            scheduler.run()
        assert '[SAFEGUARD]' in caplog.text
        assert "'boom'" in caplog.text

    def test_safeguard_on_fulfilled_deferred(self, scheduler, caplog):
        Deferred.resolve(1, scheduler).safeguard()

        with caplog.at_level(logging.ERROR):
            scheduler.run()
        assert caplog.records == []


class TestRepr:

    def test_repr_shows_chain_and_state(self, scheduler):
        def double(value):
            return value * 2

        d = Deferred.resolve(1, scheduler).then(double)
        assert repr(d) == 'Deferred(RESOLVE F -> double P)'

        scheduler.run()
        assert repr(d) == 'Deferred(RESOLVE F -> double F)'

    def test_repr_of_catch(self, scheduler):
        def on_error(error):
            pass

        d = Deferred.reject('x', scheduler).catch(on_error)
        assert repr(d) == 'Deferred(REJECT R -> <None, on_error> P)'
