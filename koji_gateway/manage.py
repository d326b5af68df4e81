# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

import json
import logging

import click
from flask.cli import FlaskGroup

from koji_gateway import app, conf, create_app, gateway


@click.group(cls=FlaskGroup, create_app=lambda: app)
def manager():
    pass


@manager.command()
@click.argument("buildid")
def buildinfo(buildid):
    """ A helper function to test hub interaction
    """
    status, body = gateway.buildinfo(buildid)
    print("status=%s" % status)
    print(json.dumps(body, indent=2, sort_keys=True))


@manager.command()
@click.option("--host", default=conf.host)
@click.option("--port", default=conf.port, type=int)
@click.option("--debug", is_flag=True, default=False)
@click.option("--verbose", is_flag=True, default=False)
@click.option("--quiet", is_flag=True, default=False)
def rungateway(host, port, debug, verbose, quiet):
    """ Runs the Flask app with a thread per request
    """
    logging.info("Starting koji-gateway")
    create_app(debug=debug, verbose=verbose, quiet=quiet).run(
        host=host,
        port=port,
        threaded=True,
        debug=debug,
    )


def main():
    manager()


if __name__ == "__main__":
    main()
