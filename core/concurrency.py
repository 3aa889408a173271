"""
Core — Optimistic Concurrency Helpers

retry_on_conflict gives an operation exactly one more attempt with fresh
state when it loses a compare-and-swap race, then lets ConflictError reach
the caller.

@file core/concurrency.py
"""

import functools
import logging

from core.exceptions import ConflictError

logger = logging.getLogger('pharmastock')


def retry_on_conflict(func):
    """
    Decorate an atomic service call. The wrapped function must re-read every
    piece of state it depends on, so the second attempt sees the winner's
    committed write.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConflictError:
            logger.warning('Conflict in %s; retrying once with fresh state.', func.__qualname__)
            return func(*args, **kwargs)

    return wrapper
