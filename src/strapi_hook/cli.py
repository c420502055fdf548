"""Command line entrypoint for the strapi-hook gateway."""

from __future__ import annotations

import argparse
import json
import socket
import sys
from typing import Any, Sequence

import uvicorn
from prometheus_client import start_http_server

from .app import create_app
from .config import AppConfig, ConfigError, load_config, resolve_config_file
from .errors import redact_sensitive
from .logging import RequestLogSink, get_logger, setup_logging


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "port": args.port,
        "target": args.target,
        "host": args.host,
        "log_level": args.log_level,
    }


def _load(args: argparse.Namespace) -> AppConfig:
    return load_config(config_file=args.config, overrides=_overrides(args))


def bind_socket(host: str, port: int) -> socket.socket:
    """Open the listening socket up front so bind failures surface here."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def _cmd_serve(args: argparse.Namespace) -> int:
    sink = RequestLogSink()
    try:
        config = _load(args)
    except ConfigError as exc:
        setup_logging()
        sink.fatal(exc, "Invalid configuration")

    setup_logging(config.log_level)
    logger = get_logger(__name__)
    config_file = resolve_config_file(args.config)
    if config_file is not None:
        logger.info("config.file", path=str(config_file))

    try:
        sock = bind_socket(config.host, config.port)
    except OSError as exc:
        sink.fatal(exc, "Error while listening for requests", host=config.host, port=config.port)

    if config.metrics_port:
        start_http_server(config.metrics_port)
        logger.info("metrics.started", port=config.metrics_port)

    logger.info(
        "server.listening",
        host=socket.gethostname(),
        address=f"{config.host}:{config.port}",
        path=config.path,
        target=redact_sensitive(config.target),
    )
    app = create_app(config=config, sink=sink)
    server = uvicorn.Server(uvicorn.Config(app, log_config=None, access_log=False))
    server.run(sockets=[sock])
    return 0


def _cmd_show_config(args: argparse.Namespace) -> int:
    try:
        config = _load(args)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    indent = 2 if args.pretty else None
    json.dump(config.model_dump(), sys.stdout, indent=indent)
    sys.stdout.write("\n")
    return 0


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", default=None, help="config file (default is $HOME/.strapi-hook.toml)"
    )
    parser.add_argument(
        "-p", "--port", type=int, default=None, help="port number of the HTTP server (default is 8080)"
    )
    parser.add_argument(
        "--target",
        default=None,
        help="target server address (default is http://localhost:10080/api)",
    )
    parser.add_argument("--host", default=None, help="interface to bind (default is 0.0.0.0)")
    parser.add_argument("--log-level", default=None, help="log level (default is INFO)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strapi-hook", description="Auditing webhook gateway for Strapi"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Start the gateway")
    _add_config_arguments(serve_parser)
    serve_parser.set_defaults(func=_cmd_serve)

    show_parser = subparsers.add_parser("show-config", help="Print the resolved configuration")
    _add_config_arguments(show_parser)
    show_parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    show_parser.set_defaults(func=_cmd_show_config)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
