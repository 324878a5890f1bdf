from __future__ import annotations

from flask import Blueprint, Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from .config_schema import AppConfig
from .errors import FeedError, StorageError
from .request_log import RequestLog
from .storage import SQLiteKeyValueStore
from .unroll import ThreadUnroller


def _unroll_blueprint(
    config: AppConfig,
    unroller: ThreadUnroller,
    log: RequestLog,
) -> Blueprint:
    bp = Blueprint("unroll", __name__)
    origin = config.server.cors_origin

    @bp.route(config.server.endpoint, methods=["GET"])
    def unroll_thread():
        post_url = request.args.get("postURL")
        log.info("request_received", post_url=post_url or "")

        result = unroller.unroll(post_url)
        return jsonify(result.to_dict()), (200 if result.ok else 400)

    @bp.errorhandler(FeedError)
    def handle_feed_error(error: FeedError):
        log.exception("request_failed", exc=error, post_url=request.args.get("postURL"))
        return jsonify({"message": f"Error: {error}"}), 502

    @bp.errorhandler(StorageError)
    def handle_storage_error(error: StorageError):
        log.exception("request_failed", exc=error, post_url=request.args.get("postURL"))
        return jsonify({"message": "Error: Internal server error"}), 500

    @bp.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        log.exception("request_failed", exc=error, post_url=request.args.get("postURL"))
        return jsonify({"message": "Error: Internal server error"}), 500

    @bp.after_request
    def allow_cors(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        return response

    return bp


def create_app(
    config: AppConfig | None = None,
    *,
    unroller: ThreadUnroller | None = None,
    log: RequestLog | None = None,
) -> Flask:
    """
    Build the Flask app serving GET <endpoint>?postURL=<url>.

    Without an injected unroller, the SQLite cache named in the config is
    opened here and held for the life of the process.
    """
    cfg = config or AppConfig()
    request_log = log or RequestLog.open(cfg.server.request_log)

    if unroller is None:
        store = SQLiteKeyValueStore.open(cfg.cache.path)
        request_log.info("cache_opened", path=str(cfg.cache.path), entries=store.count())
        unroller = ThreadUnroller.from_config(cfg, store=store, log=request_log)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.register_blueprint(_unroll_blueprint(cfg, unroller, request_log))
    return app
