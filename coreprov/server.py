"""A minimal static file server."""

from __future__ import annotations

import argparse
import functools
import logging
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer

_log = logging.getLogger(__name__)


def make_server(directory, port):
    """Return an HTTP server for ``directory`` bound to ``port`` on all interfaces."""
    handler = functools.partial(SimpleHTTPRequestHandler, directory=str(directory))
    return ThreadingHTTPServer(("", int(port)), handler)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve a directory of static files over HTTP.")
    parser.add_argument("-p", default="8100", help="port to serve on")
    parser.add_argument("-d", default=".", help="the directory of static file to host")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    with make_server(args.d, args.p) as server:
        _log.info("Serving %s on HTTP port: %s", args.d, args.p)
        server.serve_forever()