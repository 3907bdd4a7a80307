"""``herald-server``: run the Herald API under uvicorn."""

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="herald-server",
        description="Notification preference gating, digest batching and feed API",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Use a local SQLite file and console logs instead of PostgreSQL and JSON logs",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Overrides HERALD_LOG_LEVEL",
    )
    parser.add_argument(
        "--transport",
        choices=["log", "webhook"],
        help="Overrides HERALD_TRANSPORT (webhook also needs HERALD_TRANSPORT_WEBHOOK_URL)",
    )
    parser.add_argument(
        "--digest-tick",
        type=int,
        metavar="SECONDS",
        help="Overrides HERALD_DIGEST_TICK_SECONDS",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # Settings are read when herald.config is first imported, so the
    # overrides must be in the environment before uvicorn loads the app.
    if args.local:
        os.environ["HERALD_LOCAL_MODE"] = "1"
    if args.log_level:
        os.environ["HERALD_LOG_LEVEL"] = args.log_level
    if args.transport:
        os.environ["HERALD_TRANSPORT"] = args.transport
    if args.digest_tick:
        os.environ["HERALD_DIGEST_TICK_SECONDS"] = str(args.digest_tick)

    import uvicorn

    uvicorn.run(
        "herald.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level or "info",
    )


if __name__ == "__main__":
    main()
