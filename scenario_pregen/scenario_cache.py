"""Scenario-level view over :class:`GenericCache`.

Entries are keyed ``scenario:{slug}:{locale}`` and hold the rendered content
plus the metadata captured at write time.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from .cache import GenericCache, cache_key
from .logger import get_logger
from .schema import CacheStats, ScenarioCacheValue, ScenarioMetadata

log = get_logger("scenario_cache")

KEY_PREFIX = "scenario"

SCENARIO_TTL = 60.0 * 60 * 24
SCENARIO_MAX_SIZE = 500
SCENARIO_CLEANUP_INTERVAL = 60.0 * 10

Params = Union[BaseModel, Mapping[str, Any], None]


def scenario_key(slug: str, locale: str) -> str:
    return cache_key(KEY_PREFIX, slug, locale)


def _slug_prefix(slug: str) -> str:
    return f"{KEY_PREFIX}:{slug}:"


def _params_dict(params: Params) -> Dict[str, Any]:
    if params is None:
        return {}
    if isinstance(params, BaseModel):
        return params.model_dump()
    return dict(params)


class ScenarioCacheManager:
    """Caches rendered scenario content per (slug, locale).

    Pass an existing ``cache`` to share ownership explicitly, or let the
    manager build its own from the keyword settings. The two are exclusive:
    settings passed alongside a ``cache`` raise ``TypeError``.
    """

    def __init__(
        self,
        cache: Optional[GenericCache[ScenarioCacheValue]] = None,
        default_ttl: Optional[float] = None,
        max_size: Optional[int] = None,
        cleanup_interval: Optional[float] = None,
        **cache_kwargs: Any,
    ):
        settings = {
            "default_ttl": default_ttl,
            "max_size": max_size,
            "cleanup_interval": cleanup_interval,
        }
        if cache is not None:
            given = sorted(k for k, v in settings.items() if v is not None) + sorted(cache_kwargs)
            if given:
                raise TypeError(f"cache settings {given} cannot be combined with an existing cache")
        else:
            cache = GenericCache(
                default_ttl=SCENARIO_TTL if default_ttl is None else default_ttl,
                max_size=SCENARIO_MAX_SIZE if max_size is None else max_size,
                cleanup_interval=SCENARIO_CLEANUP_INTERVAL if cleanup_interval is None else cleanup_interval,
                name="scenario-cache",
                **cache_kwargs,
            )
        self.cache = cache

    def cache_scenario(self, slug: str, content: str, params: Params, locale: str) -> ScenarioCacheValue:
        value = ScenarioCacheValue(
            content=content,
            metadata=ScenarioMetadata(
                slug=slug,
                locale=locale,
                params=_params_dict(params),
                generated_at=datetime.now(timezone.utc),
            ),
        )
        self.cache.set(scenario_key(slug, locale), value)
        return value

    def get_scenario(self, slug: str, locale: str) -> Optional[ScenarioCacheValue]:
        return self.cache.get(scenario_key(slug, locale))

    def has_scenario(self, slug: str, locale: Optional[str] = None) -> bool:
        if locale is not None:
            return self.cache.has(scenario_key(slug, locale))
        return any(self.cache.has(k) for k in self.cache.keys(_slug_prefix(slug)))

    def invalidate_scenario(self, slug: str, locale: Optional[str] = None) -> int:
        """Drop one locale variant, or every variant of ``slug``. Returns the count removed."""
        if locale is not None:
            return int(self.cache.delete(scenario_key(slug, locale)))
        removed = sum(1 for k in self.cache.keys(_slug_prefix(slug)) if self.cache.delete(k))
        if removed:
            log.debug("invalidated %d locale variants of %s", removed, slug)
        return removed

    def warm_cache(self, entries: Iterable[Tuple[str, str, str, Params]]) -> int:
        """Bulk-load pre-rendered ``(slug, locale, content, params)`` tuples."""
        count = 0
        for slug, locale, content, params in entries:
            self.cache_scenario(slug, content, params, locale)
            count += 1
        log.info("cache warmed with %d scenarios", count)
        return count

    def trending_scenarios(self, limit: int = 10) -> List[str]:
        """Slugs ordered by how often their cached variants were read."""
        per_slug: Dict[str, int] = {}
        for key, hits in self.cache.access_counts(f"{KEY_PREFIX}:").items():
            slug = key[len(KEY_PREFIX) + 1:].rsplit(":", 1)[0]
            per_slug[slug] = per_slug.get(slug, 0) + hits
        ranked = sorted(per_slug.items(), key=lambda x: x[1], reverse=True)
        return [slug for slug, _ in ranked[:max(limit, 0)]]

    def get_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear(self) -> None:
        self.cache.clear()

    def destroy(self) -> None:
        self.cache.destroy()


__all__ = ["ScenarioCacheManager", "scenario_key"]
