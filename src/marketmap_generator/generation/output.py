"""JSON writers for generation artifacts."""

import json
from pathlib import Path
from typing import Any

from marketmap_generator.infrastructure.observability import get_generation_logger
from marketmap_generator.shared.models import MarketMap, RemovalReasons

log = get_generation_logger("output")


def dumps(data: Any) -> str:
    """Indented JSON with sorted keys; identical input gives identical bytes."""
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def write_json(path: str | Path, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(data), encoding="utf-8")


def write_market_map(path: str | Path, market_map: MarketMap) -> None:
    write_json(path, market_map.to_dict())
    log.info("market_map_written", path=str(path), markets=len(market_map))


def write_removal_reasons(path: str | Path, reasons: RemovalReasons) -> None:
    write_json(path, reasons.to_dict())
    log.info("removal_reasons_written", path=str(path), tickers=len(reasons))
