from functools import wraps

from .deferred import Resolver
from .errors import RejectionError
from .util import is_deferred


def reduce_coroutine(scheduler, safeguard=False):
    """Decorator who converts a coroutine of Deferreds into a single Deferred.

    The greatest interest is the ability to write a function in an
    synchronous-like style, using many asynchronous Deferreds.
    Each Deferred yielded is sent back into the generator once fulfilled, or
    raised inside it if rejected. The first yielded value who is not a
    Deferred, or the value returned by the generator, is the result. A
    generator ending without a value resolves with the last value sent
    into it, whether it ends after a fulfillment or after catching an error.
    Whatever is the number of Deferreds used, the result will always be an
    unique Deferred wrapping the whole process.

    Args:
        scheduler (Scheduler): scheduler of the resulting Deferred.
        safeguard (boolean): if true, use `Deferred.safeguard()` on the
            resulting Deferred.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            """
            Args:
                *args
                **kwargs
            Returns:
                Deferred<*>
            """
            rs = Resolver(scheduler, _name='COROUTINE %s' % func.__name__)
            if safeguard:
                rs.deferred.safeguard()

            try:
                # Create generator; Initialization phase
                gen = func(*args, **kwargs)
            except Exception as error:
                rs.reject(error)
                return rs.deferred

            last_value = [None]

            def _call_next_or_set_result(value):
                if is_deferred(value):
                    value.then(iter_next, iter_error)
                else:
                    gen.close()
                    rs.resolve(value)

            def _set_final_result(stop):
                if stop.value is not None:
                    rs.resolve(stop.value)
                else:
                    rs.resolve(last_value[0])

            def iter_next(yielded_value):
                last_value[0] = yielded_value
                try:
                    next_value = gen.send(yielded_value)
                except StopIteration as stop:
                    return _set_final_result(stop)
                except Exception as error:
                    return rs.reject(error)
                _call_next_or_set_result(next_value)

            def iter_error(raised_error):
                if not isinstance(raised_error, BaseException):
                    raised_error = RejectionError(raised_error)
                try:
                    next_value = gen.throw(raised_error)
                except StopIteration as stop:
                    return _set_final_result(stop)
                except Exception as error:
                    return rs.reject(error)
                _call_next_or_set_result(next_value)

            # Start and resolve loop.
            try:
                first = next(gen)
            except StopIteration as stop:
                rs.resolve(stop.value)
                return rs.deferred
            except Exception as error:
                rs.reject(error)
                return rs.deferred
            _call_next_or_set_result(first)

            return rs.deferred

        return wrapper
    return decorator
