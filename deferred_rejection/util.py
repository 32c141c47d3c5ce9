# -*- coding: utf-8 -*-


def is_thenable(value):
    """Check if an object can be chained, like a Promise, or is a "result".

    Callbacks given to `Promise.then()` can return either a plain value or
    another promise; this function tells both apart.

    Returns:
        boolean: True if the value has a callable attribute 'then'.
            False if not.
    """
    return callable(getattr(value, 'then', None))
