# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT


class BaseConfiguration(object):
    DEBUG = False
    # Where we should run when running "manage.py run" directly.
    HOST = "127.0.0.1"
    PORT = 8080

    KOJI_PROFILE = "koji"
    KOJIPKGS_URL = "https://kojipkgs.fedoraproject.org/packages"

    # Hub session handling, in seconds
    SESSION_LIFETIME = 3600
    AUTH_TIMEOUT = 60

    # Global network-related values, in seconds
    NET_TIMEOUT = 120
    NET_RETRY_ATTEMPTS = 3
    NET_RETRY_INTERVAL = 1
    NET_RETRY_MAX_INTERVAL = 8

    # Task polling, in seconds
    TASK_CACHE_TTL = 2
    TASK_TERMINAL_TTL = 300
    TASK_RETENTION = 3600
    TASK_IDLE_RETENTION = 86400
    TASK_WAIT_INITIAL_INTERVAL = 1
    TASK_WAIT_BACKOFF_FACTOR = 2
    TASK_WAIT_MAX_INTERVAL = 15
    TASK_WAIT_MAX_TIMEOUT = 300
    POLL_WORKERS = 8

    LOG_BACKEND = "console"
    LOG_LEVEL = "info"


class TestConfiguration(BaseConfiguration):
    LOG_LEVEL = "debug"
    DEBUG = True

    KOJI_SERVER = "https://koji.stg.fedoraproject.org/kojihub"
    KOJI_AUTHTYPE = "noauth"
    KOJIPKGS_URL = "https://kojipkgs.stg.fedoraproject.org/packages"

    NET_TIMEOUT = 3
    NET_RETRY_ATTEMPTS = 2
    NET_RETRY_INTERVAL = 0.01
    NET_RETRY_MAX_INTERVAL = 0.02

    TASK_CACHE_TTL = 0
    TASK_WAIT_INITIAL_INTERVAL = 0.01
    TASK_WAIT_MAX_INTERVAL = 0.05
    TASK_WAIT_MAX_TIMEOUT = 5
    AUTH_TIMEOUT = 5


class ProdConfiguration(BaseConfiguration):
    KOJI_CONFIG = "/etc/koji-gateway/koji.conf"
    KOJI_PROFILE = "production"


class DevConfiguration(BaseConfiguration):
    DEBUG = True
    LOG_LEVEL = "debug"
    KOJI_PROFILE = "stg"
