"""Batch pre-generation of scenario content.

Work is a stream of (combination, locale) pairs. Pairs run on worker threads
in windows of at most ``concurrency`` items; the coordinating thread waits up
to ``item_timeout`` seconds per window, then commits results to the cache and
store and updates the counters. Only the coordinating thread touches the
cache, the store and the ``GenerationResult``.

Workers are daemon threads. A generator that never returns is reported as a
timeout and left behind; it does not keep the process alive at exit.
"""
from __future__ import annotations

import itertools
import math
import threading
import time
from concurrent.futures import Future, wait
from typing import Any, Callable, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from .config import DEFAULT_LOCALES
from .enumerator import ParameterSpaceEnumerator
from .generator import generate_content, serialize_content
from .logger import get_logger
from .scenario_cache import ScenarioCacheManager
from .scenarios import detect_investment_goal, generate_scenario_slug
from .schema import GenerationError, GenerationResult, ParameterCombination
from .store import ScenarioStore

log = get_logger("pipeline")

DEFAULT_ITEM_TIMEOUT = 30.0

ContentGenerator = Callable[[ParameterCombination, str], Any]
SlugGenerator = Callable[[ParameterCombination], str]
GoalDetector = Callable[[ParameterCombination], str]

Pair = Tuple[ParameterCombination, str]


class _Generated(NamedTuple):
    slug: str
    goal: str
    content: str


class BatchGenerationPipeline:
    def __init__(
        self,
        cache: ScenarioCacheManager,
        enumerator: Optional[ParameterSpaceEnumerator] = None,
        store: Optional[ScenarioStore] = None,
        content_generator: ContentGenerator = generate_content,
        slug_generator: SlugGenerator = generate_scenario_slug,
        goal_detector: GoalDetector = detect_investment_goal,
        concurrency: int = 8,
        item_timeout: float = DEFAULT_ITEM_TIMEOUT,
        locales: Optional[Sequence[str]] = None,
    ):
        self.cache = cache
        self.enumerator = enumerator or ParameterSpaceEnumerator()
        self.store = store
        self.content_generator = content_generator
        self.slug_generator = slug_generator
        self.goal_detector = goal_detector
        self.concurrency = max(1, int(concurrency))
        self.item_timeout = _positive_timeout(item_timeout)
        self.locales = list(locales) if locales else list(DEFAULT_LOCALES)
        self._stop = threading.Event()

    def stop(self) -> None:
        """Ask a running batch to finish after the current window."""
        self._stop.set()

    # ------------------------------------------------------------ entrypoints

    def pre_generate_scenarios(
        self,
        max_scenarios: Optional[int] = None,
        min_priority: int = 0,
        locales: Optional[Sequence[str]] = None,
    ) -> GenerationResult:
        """Generate the most popular grid combinations for each locale.

        ``max_scenarios`` caps the number of (combination, locale) pairs
        attempted; ``None`` means the whole filtered grid.
        """
        target_locales = list(locales) if locales is not None else list(self.locales)
        if not target_locales or (max_scenarios is not None and max_scenarios <= 0):
            return self._run(iter(()), GenerationResult())

        limit = None if max_scenarios is None else math.ceil(max_scenarios / len(target_locales))
        combos = self.enumerator.top(limit, min_priority)
        log.info(
            "pre-generating %d combinations x %d locales (min_priority=%d, max=%s)",
            len(combos), len(target_locales), min_priority, max_scenarios,
        )
        pairs: Iterator[Pair] = ((c, loc) for c in combos for loc in target_locales)
        if max_scenarios is not None:
            pairs = itertools.islice(pairs, max_scenarios)
        return self._run(pairs, GenerationResult())

    def pre_generate_custom_scenarios(
        self,
        combinations: Iterable[Union[ParameterCombination, Mapping[str, Any]]],
        locales: Sequence[str] = ("en",),
    ) -> GenerationResult:
        """Generate caller-supplied combinations for every locale.

        Mappings that fail validation are reported once per locale.
        """
        result = GenerationResult()
        valid: List[ParameterCombination] = []
        for raw in combinations:
            if isinstance(raw, ParameterCombination):
                valid.append(raw)
                continue
            try:
                valid.append(ParameterCombination.model_validate(dict(raw)))
            except (ValidationError, TypeError, ValueError) as e:
                for locale in locales:
                    result.attempted += 1
                    self._record_error(result, _raw_params(raw), locale, f"invalid parameters: {e}")
        log.info("generating %d custom combinations x %d locales", len(valid), len(locales))
        pairs = ((c, loc) for loc in locales for c in valid)
        return self._run(pairs, result)

    # ------------------------------------------------------------------ core

    def _run(self, pairs: Iterator[Pair], result: GenerationResult) -> GenerationResult:
        start = time.perf_counter()
        self._stop.clear()
        pairs = iter(pairs)
        while True:
            if self._stop.is_set():
                result.stopped = True
                log.warning("batch stopped after %d items", result.attempted)
                break
            window = list(itertools.islice(pairs, self.concurrency))
            if not window:
                break
            self._run_window(window, result)
        result.processing_time = time.perf_counter() - start
        log.info(
            "batch done: %d generated, %d errors in %.2fs; by goal %s; by locale %s",
            result.total_generated, len(result.errors), result.processing_time,
            result.by_goal, result.by_locale,
        )
        return result

    def _run_window(self, window: List[Pair], result: GenerationResult) -> None:
        futures = [(self._spawn(combo, locale), combo, locale) for combo, locale in window]
        _, pending = wait([f for f, _, _ in futures], timeout=self.item_timeout)
        for fut, combo, locale in futures:
            result.attempted += 1
            if fut in pending:
                # abandoned; whatever the worker produces later is discarded
                self._record_error(result, combo.model_dump(), locale, f"timed out after {self.item_timeout}s")
                continue
            exc = fut.exception()
            if exc is not None:
                self._record_error(result, combo.model_dump(), locale, _describe(exc))
                continue
            self._commit(result, combo, locale, fut.result())

    def _spawn(self, combo: ParameterCombination, locale: str) -> "Future[_Generated]":
        fut: "Future[_Generated]" = Future()

        def work() -> None:
            if not fut.set_running_or_notify_cancel():
                return
            try:
                fut.set_result(self._generate_one(combo, locale))
            except Exception as e:
                fut.set_exception(e)

        threading.Thread(target=work, name=f"pregen-{locale}", daemon=True).start()
        return fut

    def _generate_one(self, combo: ParameterCombination, locale: str) -> _Generated:
        goal = self.goal_detector(combo)
        slug = self.slug_generator(combo)
        params = combo if combo.goal == goal else combo.model_copy(update={"goal": goal})
        content = self.content_generator(params, locale)
        return _Generated(slug=slug, goal=goal, content=serialize_content(content))

    def _commit(self, result: GenerationResult, combo: ParameterCombination, locale: str, generated: _Generated) -> None:
        params = combo.model_copy(update={"goal": generated.goal}).model_dump()
        if self.store is not None:
            try:
                self.store.save(generated.slug, locale, generated.content, params)
            except Exception as e:
                self._record_error(result, params, locale, f"store write failed: {_describe(e)}")
                return
        self.cache.cache_scenario(generated.slug, generated.content, params, locale)
        result.record_success(generated.goal, locale)

    @staticmethod
    def _record_error(result: GenerationResult, params: dict, locale: str, message: str) -> None:
        log.warning("generation failed for %s (%s): %s", params, locale, message)
        result.errors.append(GenerationError(params=params, locale=locale, message=message))


def _positive_timeout(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0 and math.isfinite(value):
        return float(value)
    log.warning("Invalid item_timeout=%r, using default %r", value, DEFAULT_ITEM_TIMEOUT)
    return DEFAULT_ITEM_TIMEOUT


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


def _raw_params(raw: Any) -> dict:
    try:
        return dict(raw)
    except (TypeError, ValueError):
        return {"value": repr(raw)}


__all__ = ["BatchGenerationPipeline", "ContentGenerator", "SlugGenerator", "GoalDetector"]
