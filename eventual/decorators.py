from functools import wraps

from .deferred import Deferred


def wrap_deferred(scheduler):
    """Decorator who converts the result in a Deferred object.

    If the function decorated returns a Deferred, it's transmitted as is.
    Else, a new Deferred is created with the returned value as result. If the
    function raises an exception, the Deferred is rejected with it.

    Args:
        scheduler (Scheduler): scheduler of the Deferreds created.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return Deferred.resolve(f(*args, **kwargs), scheduler)
            except Exception as error:
                return Deferred.reject(error, scheduler)

        return wrapper
    return decorator
