"""CLI entry point for the Signoff API server."""

import argparse
import os

LOG_LEVELS = ("debug", "info", "warning", "error")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="signoff-server",
        description="Signoff API server for multi-step approval workflows",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database with tables created on startup",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, help="Override SIGNOFF_LOG_LEVEL")
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Render logs for a terminal instead of JSON",
    )
    args = parser.parse_args(argv)

    # Settings are read when signoff.main is imported, so export before uvicorn loads it
    if args.local:
        os.environ["SIGNOFF_LOCAL_MODE"] = "1"
    if args.log_level:
        os.environ["SIGNOFF_LOG_LEVEL"] = args.log_level
    if args.console_logs:
        os.environ["SIGNOFF_JSON_LOGS"] = "0"

    import uvicorn

    run_kwargs: dict = {"host": args.host, "port": args.port}
    if args.log_level:
        run_kwargs["log_level"] = args.log_level
    uvicorn.run("signoff.main:app", **run_kwargs)


if __name__ == "__main__":
    main()
