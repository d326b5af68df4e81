# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import copy
import threading
import time

from koji_gateway import app, conf
from koji_gateway.gateway import Gateway
from koji_gateway.session import Session

assert app


def make_config(**overrides):
    """ A copy of the test configuration with some items changed """
    config = copy.copy(conf)
    for key, value in overrides.items():
        config.set_item(key, value)
    return config


class FakeClock(object):
    """ Controllable replacement of time.monotonic / time.time """

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeLogin(object):
    """
    Credential acquisition stub handing out numbered sessions.

    Set ``error`` to make logins fail, or ``release`` to an Event to make
    them block until it is set.
    """

    def __init__(self, lifetime=3600):
        self.lifetime = lifetime
        self.count = 0
        self.error = None
        self.release = None
        self.entered = threading.Event()

    def __call__(self):
        self.entered.set()
        if self.release is not None:
            self.release.wait(5)
        self.count += 1
        if self.error is not None:
            raise self.error
        now = time.time()
        return Session(
            {"session-id": self.count, "session-key": "key-%d" % self.count},
            now, now + self.lifetime, principal="kojigw")


class FakeHub(object):
    """
    Transport stub replaying scripted answers per hub method.

    Each answer is a value, an exception instance to raise, or a callable
    ``(call, session)`` producing either. The last scripted answer of a
    method is repeated forever.
    """

    def __init__(self, **results):
        self.calls = []
        self.results = {}
        self._lock = threading.Lock()
        for method, value in results.items():
            self.set_result(method, value)

    def set_result(self, method, *answers):
        self.results[method] = list(answers)

    def invoke(self, call, credential=None):
        with self._lock:
            self.calls.append((call, credential))
            answers = self.results[call.method]
            answer = answers.pop(0) if len(answers) > 1 else answers[0]
        if callable(answer) and not isinstance(answer, Exception):
            answer = answer(call, credential)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def calls_to(self, method):
        return [call for call, _ in self.calls if call.method == method]


def make_gateway(hub=None, login=None, **overrides):
    config = make_config(**overrides)
    return Gateway(config, hub or FakeHub(), login or FakeLogin())
