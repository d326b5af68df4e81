# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Session manager: owns the one authenticated hub session.

All hub calls go through SessionManager.with_session(). The session is
refreshed when it is missing, past its expiry or rejected by the hub, and
only one login is ever in flight: callers needing a fresh session share
the same future.
"""

import itertools
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError

import koji
import requests

from koji_gateway import log
from koji_gateway.errors import AuthError, Fault, GatewayTimeout
from koji_gateway.transport import read_koji_config


def default_session_invalid_codes():
    return frozenset([koji.AuthError.faultCode, koji.AuthExpired.faultCode])


class Session(object):
    """
    An authenticated hub session.

    :param token: Koji's session info mapping (session-id, session-key), or
        None for anonymous access
    :param issued_at: time.time() of the login
    :param expiry: time.time() after which the session must not be used
    :param principal: name of the user the hub knows us as
    """

    def __init__(self, token, issued_at, expiry, principal=None):
        self.token = token
        self.issued_at = issued_at
        self.expiry = expiry
        self.principal = principal
        # Koji expects increasing call numbers on an authenticated session
        self._callnums = itertools.count(1)

    def __repr__(self):
        return "<Session principal: %r, expiry: %r>" % (self.principal, self.expiry)

    def is_expired(self, now=None):
        return (now if now is not None else time.time()) >= self.expiry

    def next_callnum(self):
        return next(self._callnums)


class KojiLogin(object):
    """
    Credential acquisition against the hub, following the authtype of the
    Koji profile.

    Calling the instance logs in and returns a new Session.
    """

    def __init__(self, config, koji_config=None):
        self.config = config
        self._koji_config = koji_config

    @property
    def koji_config(self):
        if self._koji_config is None:
            self._koji_config = read_koji_config(self.config)
        return self._koji_config

    def __call__(self):
        koji_config = self.koji_config
        address = koji_config.server
        authtype = koji_config.get("authtype")
        now = time.time()
        expiry = now + self.config.session_lifetime
        if authtype == "noauth":
            log.debug("Using anonymous access to koji %r" % address)
            return Session(None, now, expiry, principal=None)

        log.info("Logging in to koji %r using %s" % (address, authtype))
        client = koji.ClientSession(address, opts=dict(koji_config))
        proxyuser = self.config.koji_proxyuser
        try:
            if authtype in ("kerberos", "gssapi"):
                keytab = self.config.krb_keytab
                principal = self.config.krb_principal
                if keytab and principal:
                    client.gssapi_login(
                        principal=principal,
                        keytab=keytab,
                        ccache=self.config.krb_ccache,
                        proxyuser=proxyuser,
                    )
                else:
                    client.gssapi_login(ccache=self.config.krb_ccache, proxyuser=proxyuser)
            elif authtype == "ssl":
                client.ssl_login(
                    os.path.expanduser(koji_config.cert),
                    None,
                    os.path.expanduser(koji_config.serverca),
                    proxyuser=proxyuser,
                )
            elif authtype == "password":
                client.login()
            else:
                raise AuthError("Unrecognized koji authtype %r" % authtype)

            user = client.getLoggedInUser()
        except (koji.GenericError, requests.exceptions.RequestException, OSError) as e:
            raise AuthError("Failed to log in to koji %s: %s" % (address, e))

        if not client.sinfo:
            raise AuthError("Login to koji %s did not return a session" % address)
        return Session(dict(client.sinfo), now, expiry,
                       principal=user["name"] if user else None)


class SessionManager(object):
    """
    :param acquire: callable returning a fresh Session or raising AuthError
    :param invalid_codes: fault codes meaning the hub rejected the session
    :param auth_timeout: seconds a caller waits for an in-flight login
    """

    def __init__(self, acquire, invalid_codes=None, auth_timeout=60, clock=time.time):
        self.acquire = acquire
        self.invalid_codes = frozenset(invalid_codes or default_session_invalid_codes())
        self.auth_timeout = auth_timeout
        self.clock = clock
        self._lock = threading.Lock()
        self._session = None
        self._refreshing = None
        # Logins run here so they outlive the request that started them.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="koji-session")

    def is_session_fault(self, fault):
        return fault.code in self.invalid_codes

    @property
    def session(self):
        return self._session

    def get_session(self, stale=None):
        """
        Returns a usable Session, logging in first when there is none, it
        expired, or it is ``stale`` (rejected by the hub).
        """
        with self._lock:
            current = self._session
            if (current is not None and current is not stale
                    and not current.is_expired(self.clock())):
                return current
            if current is not None:
                log.info("Dropping %s session %r" % (
                    "rejected" if current is stale else "expired", current))
                self._session = None
            future = self._refreshing
            if future is None:
                future = self._refreshing = self._executor.submit(self._login)

        try:
            return future.result(timeout=self.auth_timeout)
        except FutureTimeoutError:
            raise GatewayTimeout("Timed out waiting %ss for a hub session" % self.auth_timeout)

    def _login(self):
        try:
            session = self.acquire()
        except AuthError as e:
            log.error("Hub login failed: %s" % e)
            with self._lock:
                self._refreshing = None
            raise
        except Exception as e:
            log.exception("Hub login failed")
            with self._lock:
                self._refreshing = None
            raise AuthError("Hub login failed: %s" % e)

        with self._lock:
            self._session = session
            self._refreshing = None
        log.info("Established hub session %r" % session)
        return session

    def invalidate(self, session=None):
        """ Forget the cached session, or only ``session`` if it is still current. """
        with self._lock:
            if session is None or self._session is session:
                self._session = None

    def with_session(self, fn):
        """
        Run ``fn(session)`` with a valid session.

        A session-invalid Fault from ``fn`` causes exactly one retry of
        ``fn`` with a freshly established session. A second one is raised.
        """
        session = self.get_session()
        try:
            return fn(session)
        except Fault as fault:
            if not self.is_session_fault(fault):
                raise
            log.warning("Hub rejected session %r (%s), logging in again" % (session, fault))

        session = self.get_session(stale=session)
        return fn(session)

    def shutdown(self):
        self._executor.shutdown(wait=False)
