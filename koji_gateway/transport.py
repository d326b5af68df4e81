# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Transport client: performs single calls against the Koji hub.

Every invoke() builds its own koji.ClientSession, so concurrent requests
never share a connection. Koji's built-in retry loop is switched off and
replaced by ours, which only repeats calls that provably never ran on
the hub.
"""

import xmlrpc.client
from xml.parsers.expat import ExpatError

import koji
import munch
import requests
from urllib3.exceptions import NewConnectionError

from koji_gateway import log
from koji_gateway.errors import Fault, TransportError
from koji_gateway.utils import retry


def read_koji_config(config):
    """
    Load the Koji profile named in the configuration and apply the
    gateway's overrides on top of it.
    """
    koji_config = munch.Munch(koji.read_config(
        profile_name=config.koji_profile,
        user_config=config.koji_config,
    ))
    if config.koji_server:
        koji_config.server = config.koji_server
    if config.koji_authtype:
        koji_config.authtype = config.koji_authtype
    koji_config.timeout = config.net_timeout
    return koji_config


def is_retryable(exc):
    """
    True when ``exc`` says the call never ran on the hub: the connection
    was never established, or the hub refused the call number because a
    concurrent call on the same session overtook it.
    """
    if isinstance(exc, Fault):
        return exc.code == koji.SequenceError.faultCode
    if isinstance(exc, TransportError):
        return exc.retryable
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return True
    if isinstance(exc, requests.exceptions.ConnectionError):
        # requests wraps urllib3's MaxRetryError; its reason tells whether
        # the socket was ever connected.
        reason = getattr(exc.args[0], "reason", None) if exc.args else None
        return isinstance(reason, NewConnectionError)
    return isinstance(exc, ConnectionRefusedError)


class KojiTransport(object):
    """
    Performs one hub call per invoke().

    :param server: hub URL, e.g. https://koji.fedoraproject.org/kojihub
    :param opts: koji.ClientSession options (usually the Koji profile)
    """

    def __init__(self, server, opts=None, retry_attempts=3, retry_interval=1,
                 retry_max_interval=8):
        self.server = server
        self.opts = dict(opts or {})
        # retries are ours, see invoke()
        self.opts["max_retries"] = 0
        self.opts["anon_retry"] = False
        self.retry_attempts = retry_attempts
        self.retry_interval = retry_interval
        self.retry_max_interval = retry_max_interval

    @classmethod
    def from_config(cls, config, koji_config=None):
        if koji_config is None:
            koji_config = read_koji_config(config)
        return cls(
            koji_config.server,
            opts=koji_config,
            retry_attempts=config.net_retry_attempts,
            retry_interval=config.net_retry_interval,
            retry_max_interval=config.net_retry_max_interval,
        )

    def __repr__(self):
        return "<KojiTransport %s>" % self.server

    def new_client(self):
        return koji.ClientSession(self.server, opts=dict(self.opts))

    def invoke(self, call, credential=None):
        """
        :param call: the NativeCall to perform
        :param credential: Session to authenticate the call with, or None
            for an anonymous call
        :return: the native value returned by the hub
        :raises Fault: the hub answered with a fault; a call number the hub
            refused is retried with a new number first
        :raises TransportError: the call could not be completed
        """
        @retry(attempts=self.retry_attempts, interval=self.retry_interval,
               max_interval=self.retry_max_interval, wait_on=(TransportError, Fault),
               should_retry=is_retryable)
        def attempt():
            return self._invoke_once(call, credential)

        return attempt()

    def _invoke_once(self, call, credential):
        client = self.new_client()
        if credential is not None and credential.token is not None:
            client.setSession(dict(credential.token))
            client.callnum = credential.next_callnum()
        log.debug("Calling %r on %s" % (call, self.server))
        try:
            return client.callMethod(call.method, *call.args)
        except (koji.GenericError, xmlrpc.client.Fault) as e:
            raise Fault.from_koji(e)
        except (requests.exceptions.RequestException, xmlrpc.client.ProtocolError,
                ExpatError, OSError) as e:
            retryable = is_retryable(e)
            log.warning("Call %r to %s failed (%s): %s" % (
                call, self.server, "retryable" if retryable else "not retryable", e))
            raise TransportError("Failed to call %s on the hub: %s" % (call.method, e),
                                 retryable=retryable)
