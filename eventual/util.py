from .deferred import Deferred


def is_deferred(value):
    """Check if an object is a Deferred, or is a plain value.

    The eventual package uses this function to differentiate Deferreds from
    direct return values, when using a callback who can returns both. Only
    real Deferred instances are recognized: an object with a `then` method
    is a plain value.

    Returns:
        boolean: True if the value is a Deferred. False if not.
    """
    return isinstance(value, Deferred)
