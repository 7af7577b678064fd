"""Extraction strategy registry for the resolution pipeline."""
from typing import Dict, Iterable, List, Optional, Type

from instagram_download_api.config import Settings
from .base import (
    ExtractionOutcome,
    ExtractionStrategy,
    Found,
    MediaKind,
    MediaRef,
    NotFound,
    StrategyError,
    TransientError,
    is_fetchable_url,
)

_STRATEGY_REGISTRY: Dict[str, Type[ExtractionStrategy]] = {}


def register_strategy(strategy_class: Type[ExtractionStrategy]) -> None:
    """Register an extraction strategy class.

    Raises:
        ValueError: If a strategy is already registered under this name.
    """
    name = strategy_class.strategy_name()
    if name in _STRATEGY_REGISTRY:
        raise ValueError(f"Strategy already registered under name '{name}'")
    _STRATEGY_REGISTRY[name] = strategy_class


def get_strategy(name: str, settings: Optional[Settings] = None) -> ExtractionStrategy:
    """Get an instantiated strategy by name.

    Raises:
        KeyError: If no strategy is registered under the name.
    """
    cls = _STRATEGY_REGISTRY[name]
    return cls(settings)


def available_strategies() -> List[str]:
    return sorted(_STRATEGY_REGISTRY)


def build_strategies(names: Iterable[str], settings: Optional[Settings] = None) -> List[ExtractionStrategy]:
    """Instantiate strategies in the given priority order.

    Raises:
        ValueError: On an unknown or repeated strategy name.
    """
    strategies: List[ExtractionStrategy] = []
    seen = set()
    for name in names:
        if name not in _STRATEGY_REGISTRY:
            raise ValueError(
                f"Unknown extraction strategy '{name}'. "
                f"Available: {', '.join(available_strategies())}"
            )
        if name in seen:
            raise ValueError(f"Strategy '{name}' listed more than once")
        seen.add(name)
        strategies.append(get_strategy(name, settings))
    return strategies


__all__ = [
    "register_strategy",
    "get_strategy",
    "available_strategies",
    "build_strategies",
    "ExtractionStrategy",
    "ExtractionOutcome",
    "Found",
    "NotFound",
    "TransientError",
    "MediaKind",
    "MediaRef",
    "StrategyError",
    "is_fetchable_url",
]

# Auto-load strategies (triggers self-registration)
from . import page_scrape  # noqa: F401
from . import cdn_probe  # noqa: F401
from . import resolver_api  # noqa: F401
from . import rapidapi  # noqa: F401
from . import apify  # noqa: F401
from . import oembed  # noqa: F401
