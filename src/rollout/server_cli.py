"""``rollout-server``: run the rollout tracker API under uvicorn."""

import argparse
import os


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rollout-server",
        description="Serve the rollout tracker API",
    )
    parser.add_argument("--host", help="Bind host (default: ROLLOUT_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Bind port (default: ROLLOUT_PORT or 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Use a SQLite file in the working directory and create tables on startup",
    )
    parser.add_argument("--database-url", help="SQLAlchemy async URL, overrides ROLLOUT_DATABASE_URL")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--reload", action="store_true", help="Restart on source changes")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _parser().parse_args(argv)

    # Settings are read when rollout.main is imported, so export overrides first
    if args.local:
        os.environ["ROLLOUT_LOCAL_MODE"] = "1"
    if args.database_url:
        os.environ["ROLLOUT_DATABASE_URL"] = args.database_url
    if args.log_level:
        os.environ["ROLLOUT_LOG_LEVEL"] = args.log_level

    import uvicorn

    from rollout.config import Settings

    settings = Settings()
    uvicorn.run(
        "rollout.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
