"""Main entry point for the FastAPI application."""

import argparse
import os

import uvicorn

from heuly.app import create_app

APP_FACTORY = "heuly.app:create_app"


def main(argv: list[str] | None = None) -> None:
    """Run the account API using Uvicorn.

    Reloading and multiple workers need uvicorn to import the app in each
    process, so those modes hand it the factory path and pass the env file
    through ``ENV_FILE``.
    """
    parser = argparse.ArgumentParser(
        description="Run the Heuly account API.",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to the environment configuration file.",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Interface to bind.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to listen on.",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on source changes (development only).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes.",
    )
    args = parser.parse_args(argv)

    if args.reload or args.workers > 1:
        os.environ["ENV_FILE"] = args.env_file
        uvicorn.run(
            APP_FACTORY,
            factory=True,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=args.workers,
        )
        return

    uvicorn.run(create_app(args.env_file), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
