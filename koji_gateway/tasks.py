# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Task tracker: hub tasks started through the gateway as pollable resources.

The hub offers no callbacks, so progress of a task is only observed by
polling it. The tracker makes that cheap and consistent:

- concurrent polls of one task share a single upstream query,
- recent snapshots are answered from cache,
- state only ever moves forward (PENDING -> RUNNING -> terminal),
- finished tasks nobody looked at for a while are forgotten.
"""

import threading
import time
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError

from koji_gateway import log
from koji_gateway.errors import Conflict, GatewayTimeout, TaskNotFound, TransportError
from koji_gateway.utils import backoff_intervals

PENDING = "PENDING"
RUNNING = "RUNNING"
COMPLETED = "COMPLETED"
FAILED = "FAILED"
CANCELED = "CANCELED"

TERMINAL_STATES = frozenset([COMPLETED, FAILED, CANCELED])
_RANK = {PENDING: 0, RUNNING: 1, COMPLETED: 2, FAILED: 2, CANCELED: 2}


class TaskSnapshot(namedtuple("TaskSnapshot", ["task_id", "state", "result", "error"])):
    """ Immutable view of a task as last seen upstream. """

    __slots__ = ()

    @property
    def terminal(self):
        return self.state in TERMINAL_STATES

    def json(self):
        return {
            "state": self.state,
            "result": self.result,
            "error": self.error,
        }


class TaskHandle(object):
    """
    Tracking record of one task. Only the in-flight poll of the task
    mutates it, through apply().
    """

    def __init__(self, task_id, native_id, created_at):
        self.task_id = task_id
        self.native_id = native_id
        self.created_at = created_at
        self.state = PENDING
        self.result = None
        self.error = None
        self.last_poll_at = None
        self.last_access_at = created_at
        self.inflight = None

    def __repr__(self):
        return "<TaskHandle %s: %s>" % (self.task_id, self.state)

    @property
    def terminal(self):
        return self.state in TERMINAL_STATES

    def snapshot(self):
        return TaskSnapshot(self.task_id, self.state, self.result, self.error)

    def apply(self, observed, now):
        """
        Record what a poll saw upstream. Transitions never go backwards and
        terminal states are absorbing.

        :param observed: TaskSnapshot built by the poll function
        """
        self.last_poll_at = now
        if self.terminal:
            return
        if _RANK[observed.state] < _RANK[self.state]:
            log.debug("Ignoring %s for %r, state does not go backwards" % (observed.state, self))
            return
        if observed.state != self.state:
            log.info("Task %s moved from %s to %s" % (self.task_id, self.state, observed.state))
        self.state = observed.state
        self.result = observed.result
        self.error = observed.error


class TaskTracker(object):
    """
    :param poll_fn: callable ``(native_id) -> TaskSnapshot`` querying the hub
    :param cache_ttl: seconds an unfinished snapshot is served from cache
    :param terminal_ttl: seconds a finished snapshot is served from cache
    :param retention: seconds a finished task is kept after its last access
    :param idle_retention: seconds an unfinished task nobody asks about is
        kept, None to keep it until it finishes
    :param wait_initial_interval: first pause between polls in wait()
    :param wait_backoff_factor: growth of that pause
    :param wait_max_interval: upper bound of that pause
    """

    def __init__(self, poll_fn, cache_ttl=2, terminal_ttl=300, retention=3600,
                 idle_retention=None, wait_initial_interval=1, wait_backoff_factor=2,
                 wait_max_interval=15, workers=8, clock=time.monotonic, sleep=time.sleep):
        self.poll_fn = poll_fn
        self.cache_ttl = cache_ttl
        self.terminal_ttl = terminal_ttl
        self.retention = retention
        self.idle_retention = idle_retention
        self.wait_initial_interval = wait_initial_interval
        self.wait_backoff_factor = wait_backoff_factor
        self.wait_max_interval = wait_max_interval
        self.clock = clock
        self.sleep = sleep
        self._lock = threading.Lock()
        self._handles = {}
        # Polls run here so they outlive callers that stop waiting.
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="koji-poll")

    def __len__(self):
        with self._lock:
            return len(self._handles)

    def __contains__(self, task_id):
        with self._lock:
            return str(task_id) in self._handles

    def register(self, native_id):
        """
        Start tracking the task the hub returned for a triggering call.

        :raises Conflict: the task is already tracked
        """
        task_id = str(native_id)
        now = self.clock()
        self.evict_expired(now)
        with self._lock:
            if task_id in self._handles:
                raise Conflict("Task %s is already tracked" % task_id)
            handle = self._handles[task_id] = TaskHandle(task_id, native_id, now)
        log.info("Registered task %s" % task_id)
        return handle

    def get(self, task_id):
        with self._lock:
            handle = self._handles.get(str(task_id))
        if handle is None:
            raise TaskNotFound("No such task: %s" % task_id)
        return handle

    def cached(self, task_id, max_age=None):
        """
        Returns the cached snapshot of the task when it is fresh, else None.
        """
        handle = self.get(task_id)
        with self._lock:
            handle.last_access_at = self.clock()
            if self._is_fresh(handle, max_age, handle.last_access_at):
                return handle.snapshot()
        return None

    def _is_fresh(self, handle, max_age, now):
        if handle.last_poll_at is None:
            return False
        if max_age is None:
            max_age = self.terminal_ttl if handle.terminal else self.cache_ttl
        return now - handle.last_poll_at < max_age

    def poll(self, task_id, max_age=None, timeout=None):
        """
        Snapshot of the task, from cache when fresh, otherwise from the hub.

        When a poll of this task is already running, its result is shared
        instead of querying the hub again.

        :param max_age: override of the cache freshness, 0 forces a query
        :param timeout: seconds to wait for the upstream query; the query
            itself keeps running when this elapses
        :raises TaskNotFound: the task isn't tracked
        :raises TransportError: the hub could not be reached; the state
            of the task is unchanged
        :raises GatewayTimeout: ``timeout`` elapsed first
        """
        handle = self.get(task_id)
        now = self.clock()
        with self._lock:
            handle.last_access_at = now
            if handle.inflight is None and self._is_fresh(handle, max_age, now):
                return handle.snapshot()
            future = handle.inflight
            if future is None:
                future = handle.inflight = self._executor.submit(self._poll_upstream, handle)

        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            raise GatewayTimeout("Task %s did not answer within %ss" % (task_id, timeout))
        finally:
            self.evict_expired()

    def _poll_upstream(self, handle):
        try:
            observed = self.poll_fn(handle.native_id)
        except Exception:
            with self._lock:
                handle.inflight = None
            raise
        with self._lock:
            handle.apply(observed, self.clock())
            handle.inflight = None
            return handle.snapshot()

    def wait(self, task_id, timeout):
        """
        Poll the task with growing pauses until it finishes or ``timeout``
        seconds pass.

        Running out of time is not an error: the latest snapshot is
        returned and nothing is canceled upstream, so the caller can simply
        wait again. A zero timeout answers from a fresh cache entry, or
        with a single hub query when there is none.
        """
        deadline = self.clock() + max(timeout, 0)
        intervals = backoff_intervals(
            self.wait_initial_interval, self.wait_backoff_factor, self.wait_max_interval)
        snapshot = None
        last_error = None

        if timeout <= 0:
            snapshot = self.cached(task_id)
            if snapshot is not None:
                return snapshot
            return self.poll(task_id, max_age=0)

        remaining = timeout
        while remaining > 0:
            try:
                snapshot = self.poll(task_id, timeout=remaining)
                last_error = None
            except TransportError as e:
                log.warning("Polling task %s failed while waiting: %s" % (task_id, e))
                last_error = e
            except GatewayTimeout as e:
                last_error = e
            else:
                if snapshot.terminal:
                    return snapshot

            remaining = deadline - self.clock()
            if remaining > 0:
                self.sleep(min(next(intervals), remaining))
                remaining = deadline - self.clock()

        if snapshot is None and isinstance(last_error, TransportError):
            raise last_error
        # out of time, or the hub is slow rather than unreachable
        return self.current(task_id)

    def current(self, task_id):
        """ Last known snapshot of the task, without any freshness check. """
        handle = self.get(task_id)
        with self._lock:
            return handle.snapshot()

    def evict_expired(self, now=None):
        """
        Forget finished tasks idle for longer than the retention period,
        and unfinished ones idle for longer than the idle retention.
        Tasks with a poll in flight are kept until a later sweep.
        """
        if now is None:
            now = self.clock()
        with self._lock:
            expired = [
                task_id for task_id, handle in self._handles.items()
                if handle.inflight is None and self._is_expired(handle, now)
            ]
            for task_id in expired:
                del self._handles[task_id]
        for task_id in expired:
            log.info("Evicted task %s" % task_id)
        return expired

    def _is_expired(self, handle, now):
        idle = now - handle.last_access_at
        if handle.terminal:
            return idle > self.retention
        return self.idle_retention is not None and idle > self.idle_retention

    def shutdown(self):
        self._executor.shutdown(wait=False)
