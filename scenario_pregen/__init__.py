"""scenario_pregen

Pre-generation and caching of investment scenario pages.

Primary entrypoints:
 - cli.py (Typer CLI)
 - cache.py (bounded TTL cache)
 - scenario_cache.py (per slug/locale content cache)
 - enumerator.py (parameter grid, priorities, count estimation)
 - pipeline.py (batch pre-generation)
 - report.py (HTML run report)
"""

__all__ = [
    "cache",
    "scenario_cache",
    "enumerator",
    "pipeline",
    "report",
]
