# prerenderer/server.py
# Ephemeral Flask server for the SPA's static files, with index fallback.

import logging
import os
import threading
from typing import Optional

from flask import Flask, Response, send_from_directory
from werkzeug.serving import make_server
from werkzeug.utils import safe_join

logger = logging.getLogger(__name__)

HOST = "127.0.0.1"


def create_app(static_dir: str, index_html: Optional[str] = None) -> Flask:
    """
    Flask app serving `static_dir`.
    Existing files (dotfiles included) are served as-is, a directory is served
    through its index.html, anything else gets `index_html` or the root index.html.
    """
    static_dir = os.path.abspath(static_dir)
    app = Flask(__name__, static_folder=None)

    @app.route("/", defaults={"path": ""}, methods=["GET"])
    @app.route("/<path:path>", methods=["GET"])
    def serve(path):
        candidate = safe_join(static_dir, path) if path else static_dir
        if candidate:
            if os.path.isfile(candidate):
                return send_from_directory(static_dir, path)
            index_in_dir = os.path.join(candidate, "index.html")
            if os.path.isdir(candidate) and os.path.isfile(index_in_dir):
                return send_from_directory(candidate, "index.html")

        if index_html:
            return Response(index_html, mimetype="text/html")
        return send_from_directory(static_dir, "index.html")

    return app


class StaticServer:
    """Owns one listening socket on an OS-assigned port for the length of a run."""

    def __init__(self, static_dir: str, index_html: Optional[str] = None, host: str = HOST):
        self.static_dir = static_dir
        self.index_html = index_html
        self.host = host
        self._server = None
        self._thread = None

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("server is not running")
        return self._server.server_port

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self):
        if self._server is not None:
            return self
        app = create_app(self.static_dir, self.index_html)
        self._server = make_server(self.host, 0, app, threaded=True)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.debug("static server for %s listening on %s", self.static_dir, self.base_url)
        return self

    def close(self):
        if self._server is None:
            return
        self._server.shutdown()
        self._thread.join(timeout=5)
        self._server.server_close()
        self._server = None
        self._thread = None

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
