from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from .config import config_sha256, load_config
from .errors import ConfigError, FeedError, StorageError
from .request_log import RequestLog
from .storage import SQLiteKeyValueStore
from .unroll import ThreadUnroller


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skeet_unroll")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser(
        "serve",
        help="Serve the unroll endpoint over HTTP.",
    )
    serve.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults apply when omitted).",
    )
    serve.add_argument("--host", default=None, help="Override server.host.")
    serve.add_argument("--port", type=int, default=None, help="Override server.port.")
    serve.set_defaults(_handler=_cmd_serve)

    unroll = subparsers.add_parser(
        "unroll",
        help="Unroll one post URL and print the result as JSON.",
    )
    unroll.add_argument("post_url", help="Full bsky.app post URL.")
    unroll.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (defaults apply when omitted).",
    )
    unroll.add_argument(
        "--offline",
        action="store_true",
        help="Run without network calls using a built-in sample thread.",
    )
    unroll.set_defaults(_handler=_cmd_unroll)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _cmd_serve(args: argparse.Namespace) -> int:
    from .web import create_app

    cfg = load_config(args.config)
    host = args.host or cfg.server.host
    port = int(args.port or cfg.server.port)

    log = RequestLog.open(cfg.server.request_log)
    log.info(
        "server_started",
        host=host,
        port=port,
        endpoint=cfg.server.endpoint,
        cache_path=cfg.cache.path,
        config_sha256=config_sha256(cfg),
    )

    app = create_app(cfg, log=log)
    app.run(host=host, port=port, threaded=True)
    return 0


def _cmd_unroll(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    log = RequestLog(stream=sys.stderr)

    with SQLiteKeyValueStore.open(":memory:" if args.offline else cfg.cache.path) as store:
        if args.offline:
            from .cache import ThreadCache
            from .offline import OfflinePostPages, OfflinePostThreadSource

            unroller = ThreadUnroller(
                cache=ThreadCache(store),
                pages=OfflinePostPages(),
                feed=OfflinePostThreadSource(),
                log=log,
                cdn_template=cfg.normalize.cdn_template,
            )
        else:
            unroller = ThreadUnroller.from_config(cfg, store=store, log=log)

        result = unroller.unroll(args.post_url)

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.ok else 4


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except (FeedError, StorageError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
