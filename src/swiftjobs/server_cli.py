"""``swiftjobs-server``: run the Swift Jobs API under uvicorn."""

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swiftjobs-server",
        description="Swift Jobs API: freelancer matching, match holds and escrow",
    )
    parser.add_argument("--host", help="Bind host (default: SWIFTJOBS_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Bind port (default: SWIFTJOBS_PORT or 8080)")
    parser.add_argument("--local", action="store_true", help="SQLite database, no Redis")
    parser.add_argument("--no-sweeper", action="store_true", help="Do not run the match hold sweeper in this process")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"])
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # Settings are read at import, so overrides go through the environment first
    if args.local:
        os.environ["SWIFTJOBS_LOCAL_MODE"] = "1"
    if args.no_sweeper:
        os.environ["SWIFTJOBS_HOLD_SWEEPER_ENABLED"] = "0"
    if args.log_level:
        os.environ["SWIFTJOBS_LOG_LEVEL"] = args.log_level

    import uvicorn

    from swiftjobs.config import settings

    uvicorn.run(
        "swiftjobs.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
