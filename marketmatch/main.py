"""Command-line entry point for the marketmatch engine."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

import uvicorn
import yaml

from marketmatch.api import create_app
from marketmatch.cache.registry import CacheRegistry
from marketmatch.config.environment import EnvironmentConfig
from marketmatch.config.exceptions import ConfigurationError
from marketmatch.config.loader import load_config
from marketmatch.config.models import AppConfig
from marketmatch.domain.exceptions import EngineError, RequestValidationError
from marketmatch.logging import get_logger
from marketmatch.logging.config import configure_logging
from marketmatch.persistence.database import close_database, init_database
from marketmatch.persistence.store import SqlListingStore
from marketmatch.pipeline import ListingService, MatchOrchestrator, SearchOrchestrator
from marketmatch.summarizer import build_summarizer

logger = get_logger(__name__, component="cli")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marketmatch",
        description="marketmatch - location-aware engineer matching and multilingual listing search",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=LOG_LEVELS,
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--no-sweep", action="store_true", help="Disable the background cache sweep")

    match = subparsers.add_parser("match", help="Rank engineers for a request file (JSON or YAML)")
    match.add_argument("--request", type=Path, required=True, dest="request_file")
    match.add_argument(
        "--authorized", action="store_true", help="Request an AI recommendation for the top results"
    )
    match.add_argument("--output", type=Path, default=None, help="Write the JSON result here instead of stdout")

    search = subparsers.add_parser("search", help="Multilingual listing search")
    search.add_argument("--q", required=True)
    search.add_argument("--lang", default=None)
    search.add_argument("--type", default=None, dest="listing_type", choices=["all", "resources", "services"])
    search.add_argument("--limit", type=int, default=None)
    search.add_argument("--accept-language", default=None)
    search.add_argument("--output", type=Path, default=None, help="Write the JSON result here instead of stdout")

    importer = subparsers.add_parser("import-listings", help="Load providers and listings from a YAML fixture")
    importer.add_argument("fixture", type=Path)

    return parser


def _read_document(path: Path):
    """Read a JSON or YAML document (JSON is valid YAML)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise RequestValidationError(f"file not found: {path}", field="file")
    except yaml.YAMLError as e:
        raise RequestValidationError(f"cannot parse {path}: {e}", field="file")


def _emit(payload: dict, output: Optional[Path]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")


def run_serve(args, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    app = create_app(
        config=app_config,
        env_config=env_config,
        store=SqlListingStore(),
        start_scheduler=not args.no_sweep,
    )
    logger.info(
        f"Serving on http://{args.host}:{args.port}",
        extra={"event": "service.serving", "host": args.host, "port": args.port},
    )
    # Logging is already configured; keep uvicorn from replacing it
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


def run_match(args, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    payload = _read_document(args.request_file)
    summarizer = build_summarizer(app_config.summarizer, env_config)
    orchestrator = MatchOrchestrator(
        SqlListingStore(), CacheRegistry(app_config.cache), config=app_config, summarizer=summarizer
    )
    try:
        response = orchestrator.match(payload, authorized=args.authorized)
    finally:
        shutdown = getattr(summarizer, "shutdown", None)
        if callable(shutdown):
            shutdown()

    _emit(response.to_dict(), args.output)
    return 0


def run_search(args, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    params = {"q": args.q, "lang": args.lang, "type": args.listing_type, "limit": args.limit}
    params = {key: value for key, value in params.items() if value is not None}

    orchestrator = SearchOrchestrator(SqlListingStore(), CacheRegistry(app_config.cache), config=app_config)
    response = orchestrator.search(params, accept_language=args.accept_language)

    _emit(response.to_dict(), args.output)
    return 0


def run_import(args, app_config: AppConfig, env_config: EnvironmentConfig) -> int:
    data = _read_document(args.fixture)
    service = ListingService(SqlListingStore(), CacheRegistry(app_config.cache))
    counts = service.import_fixture(data)
    print(f"Imported {counts['providers']} providers and {counts['listings']} listings")
    return 0


COMMANDS = {
    "serve": run_serve,
    "match": run_match,
    "search": run_search,
    "import-listings": run_import,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0 on success, 1 for configuration or engine failures,
        2 for invalid requests.
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "marketmatch starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
            },
        )

        init_database(env_config.database_url)
        try:
            return COMMANDS[args.command](args, app_config, env_config)
        finally:
            close_database()
            logger.info(
                "marketmatch stopped",
                extra={"event": "service.stopping", "uptime_seconds": round(time.time() - start_time, 2)},
            )

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except RequestValidationError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2
    except EngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            exc_info=True,
            extra={"event": "service.failed", "error_type": type(e).__name__, "error": str(e)},
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
