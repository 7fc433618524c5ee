from __future__ import annotations
import logging
import os
from dataclasses import dataclass


def _flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class BridgeConfig:
    mapping_path: str | None = None  # None: bundled mapping_default.json
    enable_fallback: bool = True     # strategies 2-6 of the property-set chain
    nested_content: bool = True      # populate container children from nested markup
    kind_defaults: bool = True       # fill kind defaults (e.g. action size/variant) for absent keys


def get_bridge_config() -> BridgeConfig:
    return BridgeConfig(
        mapping_path=os.getenv("SNIPPET_BRIDGE_MAPPING_PATH") or None,
        enable_fallback=_flag("SNIPPET_BRIDGE_ENABLE_FALLBACK"),
        nested_content=_flag("SNIPPET_BRIDGE_NESTED_CONTENT"),
        kind_defaults=_flag("SNIPPET_BRIDGE_KIND_DEFAULTS"),
    )


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    queue_size: int = 100


def get_server_config() -> ServerConfig:
    return ServerConfig(
        host=os.getenv("SNIPPET_BRIDGE_HOST", "0.0.0.0"),
        port=int(os.getenv("SNIPPET_BRIDGE_PORT", "8000")),
        queue_size=int(os.getenv("SNIPPET_BRIDGE_QUEUE_SIZE", "100")),
    )


def configure_logging(level: str | None = None) -> None:
    level = (level or os.getenv("SNIPPET_BRIDGE_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
