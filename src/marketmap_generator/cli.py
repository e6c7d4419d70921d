#!/usr/bin/env python3
"""
marketmap-generator command line.

Commands:
    generate         Run the pipeline over a provider data snapshot
    validate-config  Load and validate a configuration file
    default-config   Print the default generate configuration as YAML
    diff             List markets added, removed or updated by a generated map
"""

import argparse
import asyncio
import json
import sys

import yaml
from pydantic import ValidationError

from marketmap_generator.config import (
    ConfigLoader,
    ConfigState,
    default_generate_config,
)
from marketmap_generator.generation import Generator
from marketmap_generator.generation.diffs import (
    find_intersection_and_exclusion,
    find_removed_markets,
)
from marketmap_generator.generation.output import (
    dumps,
    write_market_map,
    write_removal_reasons,
)
from marketmap_generator.infrastructure.observability import (
    get_cli_logger,
    setup_logging,
)
from marketmap_generator.shared.exceptions import (
    ConfigValidationError,
    MarketMapGeneratorError,
    StoreError,
)
from marketmap_generator.shared.models import MarketMap
from marketmap_generator.storage import MemoryProviderStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marketmap-generator",
        description="Generate a deterministic market map from indexed venue data",
    )
    parser.add_argument("--log-level", default=None, help="Override logging level")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit JSON logs instead of console output",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Generate a market map")
    generate.add_argument("--config", required=True, help="Config file (YAML or JSON)")
    generate.add_argument(
        "--provider-data", required=True, help="Provider data JSON document"
    )
    generate.add_argument(
        "--market-map-out",
        default=None,
        help="Write the market map here instead of stdout",
    )
    generate.add_argument(
        "--exclusions-out", default=None, help="Write removal reasons here"
    )

    validate = sub.add_parser("validate-config", help="Validate a config file")
    validate.add_argument("--config", required=True, help="Config file (YAML or JSON)")

    sub.add_parser("default-config", help="Print the default generate config")

    diff = sub.add_parser(
        "diff", help="Compare a generated market map against the current one"
    )
    diff.add_argument("--actual", required=True, help="Current market map JSON")
    diff.add_argument("--generated", required=True, help="Generated market map JSON")
    return parser


def _configure_logging(args: argparse.Namespace, state: ConfigState | None) -> None:
    level = args.log_level or (state.logging.level if state else "INFO")
    if args.json_logs is not None:
        json_logs = args.json_logs
    else:
        json_logs = state.logging.json_logs if state else False
    setup_logging(level=level, json_logs=json_logs)


def run_generate(args: argparse.Namespace) -> int:
    state = ConfigLoader(args.config).load()
    _configure_logging(args, state)
    log = get_cli_logger(command="generate")

    if state.generate is None:
        log.error("missing_generate_config", path=args.config)
        return 1

    store = MemoryProviderStore.from_file(args.provider_data)
    generator = Generator(store)
    market_map, removals = asyncio.run(generator.generate_market_map(state.generate))

    if args.market_map_out:
        write_market_map(args.market_map_out, market_map)
    else:
        sys.stdout.write(dumps(market_map.to_dict()))

    if args.exclusions_out:
        write_removal_reasons(args.exclusions_out, removals)

    log.info("generate_complete", markets=len(market_map), removals=removals.count())
    return 0


def run_validate_config(args: argparse.Namespace) -> int:
    state = ConfigLoader(args.config).load()
    _configure_logging(args, state)
    get_cli_logger(command="validate-config").info("config_valid", path=args.config)
    return 0


def run_default_config(args: argparse.Namespace) -> int:
    cfg = default_generate_config()
    sys.stdout.write(
        yaml.safe_dump({"generate": cfg.model_dump(mode="json")}, sort_keys=True)
    )
    return 0


def _read_market_map(path: str) -> MarketMap:
    try:
        with open(path, encoding="utf-8") as f:
            return MarketMap.from_dict(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise StoreError(f"failed to read market map {path}: {e}") from e


def run_diff(args: argparse.Namespace) -> int:
    actual = _read_market_map(args.actual)
    generated = _read_market_map(args.generated)

    removed = find_removed_markets(actual, generated)
    updated, added = find_intersection_and_exclusion(
        actual, (generated.markets[name] for name in sorted(generated.markets or {}))
    )

    sys.stdout.write(
        dumps(
            {
                "added": [m.ticker_string for m in added],
                "removed": [m.ticker_string for m in removed],
                "updated": [m.ticker_string for m in updated],
            }
        )
    )
    get_cli_logger(command="diff").info(
        "diff_complete", added=len(added), removed=len(removed), updated=len(updated)
    )
    return 0


COMMANDS = {
    "generate": run_generate,
    "validate-config": run_validate_config,
    "default-config": run_default_config,
    "diff": run_diff,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # stdout carries artifacts; logging must be routed before anything logs
    _configure_logging(args, None)

    try:
        return COMMANDS[args.command](args)
    except ConfigValidationError as e:
        get_cli_logger(command=args.command).error("invalid_config", error=str(e))
        return 2
    except MarketMapGeneratorError as e:
        get_cli_logger(command=args.command).error(
            "command_failed", error=str(e), error_type=type(e).__name__
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
