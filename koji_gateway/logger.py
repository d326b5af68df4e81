# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
"""
Logging functions.

At the beginning of the gateway, init_logging(conf) is called which
configures the root logger for the backend chosen in the configuration.
The rest of the code logs through the package level logger:

    from koji_gateway import log
    log.info("Registered task %s" % task_id)
"""

import logging

levels = {}
levels["debug"] = logging.DEBUG
levels["error"] = logging.ERROR
levels["warning"] = logging.WARNING
levels["info"] = logging.INFO

# Verbosity flags used by manage.py
level_flags = {
    "debug": levels["debug"],
    "verbose": levels["info"],
    "quiet": levels["error"],
}

log_format = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


def str_to_log_level(level):
    """
    Returns internal representation of logging level defined
    by the string `level`.

    Available levels are: debug, info, warning, error
    """
    if level not in levels:
        return logging.NOTSET

    return levels[level]


def supported_log_backends():
    return ("console", "file")


def init_logging(conf):
    """
    Initializes logging according to configuration file.
    """
    log_backend = conf.log_backend

    if not log_backend or log_backend == "console":
        logging.basicConfig(level=conf.log_level, format=log_format)
    else:
        logging.basicConfig(filename=conf.log_file, level=conf.log_level, format=log_format)
    log = logging.getLogger()
    log.setLevel(conf.log_level)
