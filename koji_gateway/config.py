# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""Configuration handler functions."""

import importlib.util
import os
import sys

from koji_gateway import logger

SOURCE_CONFIG_FILE = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), os.pardir, "conf", "config.py")


def init_config(app):
    """
    Configure the Flask app and return the gateway Config instance.

    The configuration section is picked from KOJI_GATEWAY_CONFIG_SECTION,
    falling back to TestConfiguration when running under pytest and to
    ProdConfiguration otherwise. The module holding the sections is read
    from KOJI_GATEWAY_CONFIG_FILE (default /etc/koji-gateway/config.py), or
    from conf/config.py of the source tree when that file is absent.
    """
    config_file = os.environ.get("KOJI_GATEWAY_CONFIG_FILE", "/etc/koji-gateway/config.py")
    config_section = "ProdConfiguration"

    test_env = any("pytest" in arg or "py.test" in arg for arg in sys.argv[:1]) \
        or "pytest" in sys.modules
    if test_env:
        config_section = "TestConfiguration"
    config_section = os.environ.get("KOJI_GATEWAY_CONFIG_SECTION", config_section)

    if test_env or not os.path.exists(config_file):
        config_file = SOURCE_CONFIG_FILE
    spec = importlib.util.spec_from_file_location("koji_gateway_runtime_config", config_file)
    config_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(config_module)

    try:
        config_section_obj = getattr(config_module, config_section)
    except AttributeError:
        raise ValueError("Configuration section %s not found in %s" % (
            config_section, config_module.__file__))

    app.config.from_object(config_section_obj)
    return from_app_config(app)


def from_app_config(app):
    """ Create the configuration instance from the values in app.config
    """
    conf = Config()
    for key, value in app.config.items():
        # lower keys
        key = key.lower()
        if key in Config._defaults:
            conf.set_item(key, value)
    return conf


class Config(object):
    """Class representing the gateway configuration."""
    _defaults = {
        'koji_config': {
            'type': str,
            'default': None,
            'desc': 'Koji config file.'},
        'koji_profile': {
            'type': str,
            'default': 'koji',
            'desc': 'Koji config profile.'},
        'koji_server': {
            'type': str,
            'default': None,
            'desc': 'Hub URL, overrides the server from the Koji profile.'},
        'koji_authtype': {
            'type': str,
            'default': None,
            'desc': 'Authentication type, overrides the authtype from the Koji profile.'},
        'koji_proxyuser': {
            'type': str,
            'default': None,
            'desc': 'User to proxy hub calls for.'},
        'krb_keytab': {
            'type': None,
            'default': None,
            'desc': ''},
        'krb_principal': {
            'type': None,
            'default': None,
            'desc': ''},
        'krb_ccache': {
            'type': None,
            'default': '/tmp/krb5cc_koji_gateway',
            'desc': ''},
        'session_lifetime': {
            'type': int,
            'default': 3600,
            'desc': 'Seconds a hub session is used before logging in again.'},
        'session_invalid_fault_codes': {
            'type': list,
            'default': [],
            'desc': 'Fault codes meaning the session is invalid. '
                    'Empty means the faultCode of koji.AuthError and koji.AuthExpired.'},
        'auth_timeout': {
            'type': float,
            'default': 60.0,
            'desc': 'Seconds a call waits for a session refresh.'},
        'net_timeout': {
            'type': int,
            'default': 120,
            'desc': 'Global network timeout for hub calls, in seconds.'},
        'net_retry_attempts': {
            'type': int,
            'default': 3,
            'desc': 'Retries of hub calls that failed before reaching the hub.'},
        'net_retry_interval': {
            'type': float,
            'default': 1.0,
            'desc': 'First retry interval for hub calls, in seconds.'},
        'net_retry_max_interval': {
            'type': float,
            'default': 8.0,
            'desc': 'Upper bound of the retry interval for hub calls, in seconds.'},
        'task_cache_ttl': {
            'type': float,
            'default': 2.0,
            'desc': 'Seconds a snapshot of an unfinished task is served from cache.'},
        'task_terminal_ttl': {
            'type': float,
            'default': 300.0,
            'desc': 'Seconds a snapshot of a finished task is served from cache.'},
        'task_retention': {
            'type': float,
            'default': 3600.0,
            'desc': 'Seconds a finished task is kept after its last poll.'},
        'task_idle_retention': {
            'type': float,
            'default': 86400.0,
            'desc': 'Seconds an unfinished task nobody polls is kept.'},
        'task_wait_initial_interval': {
            'type': float,
            'default': 1.0,
            'desc': 'First interval between polls while waiting for a task.'},
        'task_wait_backoff_factor': {
            'type': float,
            'default': 2.0,
            'desc': 'Growth factor of the interval between polls.'},
        'task_wait_max_interval': {
            'type': float,
            'default': 15.0,
            'desc': 'Upper bound of the interval between polls.'},
        'task_wait_max_timeout': {
            'type': float,
            'default': 300.0,
            'desc': 'Upper bound of the wait query parameter, in seconds.'},
        'poll_workers': {
            'type': int,
            'default': 8,
            'desc': 'Threads running upstream task polls.'},
        'passthrough_methods': {
            'type': list,
            'default': [
                'getBuild',
                'getBuildTarget',
                'getLatestBuilds',
                'getPackage',
                'getTag',
                'getTaskInfo',
                'getTaskChildren',
                'listBuildRPMs',
                'listTagged',
                'listTags',
                'listPackages',
            ],
            'desc': 'Hub methods allowed through the generic passthrough route.'},
        'kojipkgs_url': {
            'type': str,
            'default': 'https://kojipkgs.fedoraproject.org/packages',
            'desc': 'Base URL of the package storage.'},
        'log_backend': {
            'type': str,
            'default': None,
            'desc': 'Log backend'},
        'log_file': {
            'type': str,
            'default': '',
            'desc': 'Path to log file'},
        'log_level': {
            'type': str,
            'default': 0,
            'desc': 'Log level'},
        'host': {
            'type': str,
            'default': '127.0.0.1',
            'desc': 'Address manage.py binds to.'},
        'port': {
            'type': int,
            'default': 8080,
            'desc': 'Port manage.py binds to.'},
    }

    def __init__(self):
        """Initialize the Config object with defaults."""

        for name, values in self._defaults.items():
            self.set_item(name, values['default'])

    def set_item(self, key, value):
        if key == 'set_item' or key.startswith('_'):
            raise Exception("Configuration item's name is not allowed: %s" % key)

        # customized check & set if there's a corresponding handler
        setifok_func = '_setifok_{}'.format(key)
        if hasattr(self, setifok_func):
            getattr(self, setifok_func)(value)
            return

        if key not in self._defaults:
            setattr(self, key, value)
            return

        convert = self._defaults[key]['type']
        # None stays None for optional items
        if convert is None or value is None:
            setattr(self, key, value)
        elif convert in [bool, int, float, list, str]:
            try:
                setattr(self, key, convert(value))
            except (TypeError, ValueError):
                raise TypeError("Configuration value conversion failed for name: %s" % key)
        else:
            raise TypeError("Unsupported type %s for configuration item name: %s" % (convert, key))

    def _setifok_koji_authtype(self, s):
        if s is not None and s not in ("kerberos", "gssapi", "ssl", "password", "noauth"):
            raise ValueError("Unsupported koji authtype: %s." % s)
        self.koji_authtype = s

    def _setifok_session_lifetime(self, i):
        if not isinstance(i, int):
            raise TypeError("session_lifetime needs to be an int")
        if i <= 0:
            raise ValueError("session_lifetime must be > 0")
        self.session_lifetime = i

    def _setifok_session_invalid_fault_codes(self, codes):
        if not isinstance(codes, (list, tuple)):
            raise TypeError("session_invalid_fault_codes needs to be a list")
        self.session_invalid_fault_codes = [int(c) for c in codes]

    def _setifok_net_retry_attempts(self, i):
        if not isinstance(i, int):
            raise TypeError("net_retry_attempts needs to be an int")
        if i < 0:
            raise ValueError("net_retry_attempts must be >= 0")
        self.net_retry_attempts = i

    def _setifok_task_wait_backoff_factor(self, f):
        f = float(f)
        if f < 1:
            raise ValueError("task_wait_backoff_factor must be >= 1")
        self.task_wait_backoff_factor = f

    def _setifok_poll_workers(self, i):
        if not isinstance(i, int):
            raise TypeError("poll_workers needs to be an int")
        if i < 1:
            raise ValueError("poll_workers must be >= 1")
        self.poll_workers = i

    def _setifok_passthrough_methods(self, methods):
        if not isinstance(methods, (list, tuple)):
            raise TypeError("passthrough_methods needs to be a list.")
        self.passthrough_methods = [str(m) for m in methods]

    def _setifok_kojipkgs_url(self, s):
        self.kojipkgs_url = str(s).rstrip('/')

    def _setifok_log_backend(self, s):
        if s is None:
            self.log_backend = "console"
        elif s not in logger.supported_log_backends():
            raise ValueError("Unsupported log backend")
        else:
            self.log_backend = str(s)

    def _setifok_log_file(self, s):
        if s is None:
            self.log_file = ""
        else:
            self.log_file = str(s)

    def _setifok_log_level(self, s):
        level = str(s).lower()
        self.log_level = logger.str_to_log_level(level)
