# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" Utility functions for koji_gateway. """
import functools
import time

from koji_gateway import log


def backoff_intervals(initial, factor=2, maximum=None):
    """
    Yields an endless sequence of sleep intervals starting at ``initial``
    and growing by ``factor``, never exceeding ``maximum``.
    """
    interval = initial
    while True:
        if maximum is not None:
            interval = min(interval, maximum)
        yield interval
        interval = interval * factor


def retry(attempts=3, interval=1, factor=2, max_interval=30, wait_on=Exception,
          should_retry=None, sleep=None):
    """ A decorator that allows to retry a section of code...
    ...until success or until ``attempts`` retries were spent.

    :param should_retry: optional callable deciding per exception whether
        it is worth another attempt. Exceptions it rejects are re-raised
        immediately.
    """
    def wrapper(function):
        @functools.wraps(function)
        def inner(*args, **kwargs):
            intervals = backoff_intervals(interval, factor, max_interval)
            retries = 0
            while True:
                try:
                    return function(*args, **kwargs)
                except wait_on as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if retries >= attempts:
                        raise
                    retries += 1
                    delay = next(intervals)
                    log.warning("Exception %r raised from %r.  Retry in %rs" % (
                        e, function, delay))
                    (sleep or time.sleep)(delay)
        return inner
    return wrapper
