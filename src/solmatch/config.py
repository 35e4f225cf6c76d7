"""Engine configuration and logging setup."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from .export import EXPORT_SIZE_ALERT_THRESHOLD
from .filtering import DEFAULT_PAGE_SIZE, MIN_SUGGESTION_QUERY_LENGTH, PAGE_SIZE_ALL, PAGE_SIZES, PageSize
from .matching import MatchingOptions

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SOLMATCH_CONFIG"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class EngineConfig:
    page_sizes: Tuple[PageSize, ...] = PAGE_SIZES
    default_page_size: PageSize = DEFAULT_PAGE_SIZE
    export_size_alert_threshold: int = EXPORT_SIZE_ALERT_THRESHOLD
    parsed_list_cache_size: int = 4
    max_remembered_challenges: int = 200
    ignore_diacritics: bool = False
    ignore_word_order: bool = True
    min_filter_query_length: int = MIN_SUGGESTION_QUERY_LENGTH

    def matching_options(self) -> MatchingOptions:
        return MatchingOptions(
            ignore_diacritics=self.ignore_diacritics,
            ignore_word_order=self.ignore_word_order,
        )


def _page_size(value: Any) -> PageSize:
    if value == PAGE_SIZE_ALL:
        return PAGE_SIZE_ALL
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"invalid page size: {value!r}")
    return value


def _positive_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"expected a positive integer, got {value!r}")
    return value


def _boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"expected a boolean, got {value!r}")
    return value


_CONVERTERS = {
    "page_sizes": lambda value: tuple(_page_size(item) for item in value),
    "default_page_size": _page_size,
    "export_size_alert_threshold": _positive_int,
    "parsed_list_cache_size": _positive_int,
    "max_remembered_challenges": _positive_int,
    "ignore_diacritics": _boolean,
    "ignore_word_order": _boolean,
    "min_filter_query_length": _positive_int,
}


def config_from_mapping(values: Mapping[str, Any], base: Optional[EngineConfig] = None) -> EngineConfig:
    """Build a configuration from raw values. Unknown keys and invalid values are logged and ignored."""
    config = base or EngineConfig()
    known = {field.name for field in fields(EngineConfig)}
    changes = {}
    for key, value in values.items():
        if key not in known:
            logger.warning("Ignoring unknown configuration key %r", key)
            continue
        try:
            changes[key] = _CONVERTERS[key](value)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid value for %r: %s", key, exc)
    config = replace(config, **changes)
    if not config.page_sizes:
        logger.warning("Ignoring an empty list of page sizes")
        config = replace(config, page_sizes=PAGE_SIZES)
    if config.default_page_size not in config.page_sizes:
        logger.warning("The default page size %r is not an available page size", config.default_page_size)
        config = replace(config, default_page_size=config.page_sizes[0])
    return config


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Load the configuration from a JSON file, or from the file named by $SOLMATCH_CONFIG.

    A missing file yields the defaults, as does an unreadable one (which is logged).
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return EngineConfig()
    config_path = Path(path)
    if not config_path.exists():
        logger.debug("No configuration file at %s", config_path)
        return EngineConfig()
    try:
        values = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to load config from %s", config_path)
        return EngineConfig()
    if not isinstance(values, dict):
        logger.error("Ignoring config from %s: expected a JSON object", config_path)
        return EngineConfig()
    return config_from_mapping(values)


def setup_logging(level: Union[int, str] = logging.WARNING) -> None:
    """Configure the root logger for the command line and the web server."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = [
    "CONFIG_ENV_VAR",
    "EngineConfig",
    "LOG_FORMAT",
    "config_from_mapping",
    "load_config",
    "setup_logging",
]
