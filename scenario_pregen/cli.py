"""Typer CLI for pre-generating scenarios and reporting on runs."""
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple
import typer
import yaml
from pydantic import ValidationError

from . import generator
from .config import Settings, load_settings
from .enumerator import ParameterSpaceEnumerator
from .pipeline import BatchGenerationPipeline
from .scenario_cache import ScenarioCacheManager
from .schema import GenerationResult, RunRecord
from .store import JsonFileStore

app = typer.Typer(add_completion=False)


def _parse_locales(locales: Optional[str], settings: Settings) -> List[str]:
    if not locales:
        return list(settings.pipeline.locales)
    return [x.strip() for x in locales.split(",") if x.strip()]


def _load(config: str) -> Settings:
    try:
        return load_settings(config)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        typer.echo(f"Failed to load config {config}: {e}", err=True)
        raise typer.Exit(code=2)


def _build(
    settings: Settings,
    store_dir: Optional[str],
    concurrency: Optional[int],
    item_timeout: Optional[float],
) -> Tuple[BatchGenerationPipeline, ScenarioCacheManager]:
    cache = ScenarioCacheManager(
        default_ttl=settings.cache.default_ttl,
        max_size=settings.cache.max_size,
        cleanup_interval=settings.cache.cleanup_interval,
    )
    store_path = store_dir or settings.pipeline.store_dir
    pipeline = BatchGenerationPipeline(
        cache=cache,
        enumerator=ParameterSpaceEnumerator.from_settings(settings.grid),
        store=JsonFileStore(store_path) if store_path else None,
        content_generator=generator.generate_content,
        concurrency=concurrency or settings.pipeline.concurrency,
        item_timeout=item_timeout if item_timeout is not None else settings.pipeline.item_timeout,
        locales=settings.pipeline.locales,
    )
    return pipeline, cache


def _write_run(out: str, record: RunRecord) -> Path:
    out_dir = Path(out) / record.run_id
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "results.json").write_text(record.model_dump_json(indent=2), encoding="utf-8")
    latest_link = Path(out) / "latest"
    try:
        if latest_link.exists() or latest_link.is_symlink():
            latest_link.unlink()
        latest_link.symlink_to(out_dir.resolve())
    except OSError:
        pass
    from .report import render_report
    render_report(out_dir / "results.json", out_dir / "report.html")
    return out_dir


def _summarize(result: GenerationResult, out_dir: Path) -> None:
    typer.echo(f"Generated {result.total_generated}/{result.attempted} scenarios in {result.processing_time:.2f}s")
    for goal, n in sorted(result.by_goal.items()):
        typer.echo(f"  goal {goal}: {n}")
    for locale, n in sorted(result.by_locale.items()):
        typer.echo(f"  locale {locale}: {n}")
    if result.errors:
        typer.echo(f"Errors: {len(result.errors)}")
    typer.echo(f"Run complete: {out_dir}/report.html")


def _run_id() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")


@app.command()
def run(
    config: str = typer.Option("config/pregen.yaml", help="Settings YAML"),
    out: str = typer.Option("runs", help="Output directory"),
    max_scenarios: Optional[int] = typer.Option(None, "--max-scenarios", "--max", min=0, help="Cap on (combination, locale) pairs."),
    min_priority: int = typer.Option(0, min=0, help="Skip combinations scoring below this priority."),
    locales: Optional[str] = typer.Option(None, help="Comma-separated locales (default from config)."),
    store_dir: Optional[str] = typer.Option(None, help="Directory for the JSON scenario store."),
    concurrency: Optional[int] = typer.Option(None, min=1, help="Parallel generations per window."),
    item_timeout: Optional[float] = typer.Option(None, help="Seconds to wait for each window of items."),
):
    """Pre-generate the most popular grid scenarios for each locale."""
    settings = _load(config)
    target_locales = _parse_locales(locales, settings)
    pipeline, cache = _build(settings, store_dir, concurrency, item_timeout)
    try:
        result = pipeline.pre_generate_scenarios(
            max_scenarios=max_scenarios, min_priority=min_priority, locales=target_locales
        )
    finally:
        cache.destroy()
    record = RunRecord(
        run_id=_run_id(),
        created_at=datetime.now(timezone.utc),
        mode="grid",
        locales=target_locales,
        max_scenarios=max_scenarios,
        min_priority=min_priority,
        estimated_total=pipeline.enumerator.estimate(len(target_locales)),
        result=result,
    )
    _summarize(result, _write_run(out, record))


@app.command()
def custom(
    combinations_file: str = typer.Option(..., help="YAML list of parameter mappings."),
    config: str = typer.Option("config/pregen.yaml", help="Settings YAML"),
    out: str = typer.Option("runs", help="Output directory"),
    locales: str = typer.Option("en", help="Comma-separated locales."),
    store_dir: Optional[str] = typer.Option(None, help="Directory for the JSON scenario store."),
    concurrency: Optional[int] = typer.Option(None, min=1, help="Parallel generations per window."),
    item_timeout: Optional[float] = typer.Option(None, help="Seconds to wait for each window of items."),
):
    """Generate explicitly listed parameter combinations."""
    settings = _load(config)
    try:
        data = yaml.safe_load(Path(combinations_file).read_text(encoding="utf-8")) or []
    except (OSError, yaml.YAMLError) as e:
        typer.echo(f"Failed to read {combinations_file}: {e}", err=True)
        raise typer.Exit(code=2)
    if isinstance(data, dict):
        data = data.get("combinations", [])
    target_locales = _parse_locales(locales, settings)
    pipeline, cache = _build(settings, store_dir, concurrency, item_timeout)
    try:
        result = pipeline.pre_generate_custom_scenarios(data, target_locales)
    finally:
        cache.destroy()
    record = RunRecord(
        run_id=_run_id(),
        created_at=datetime.now(timezone.utc),
        mode="custom",
        locales=target_locales,
        result=result,
    )
    _summarize(result, _write_run(out, record))


@app.command()
def estimate(
    config: str = typer.Option("config/pregen.yaml", help="Settings YAML"),
    locales: Optional[str] = typer.Option(None, help="Comma-separated locales (default from config)."),
):
    """Print the estimated number of scenarios the configured grid yields."""
    settings = _load(config)
    target_locales = _parse_locales(locales, settings)
    enumerator = ParameterSpaceEnumerator.from_settings(settings.grid)
    typer.echo(str(enumerator.estimate(len(target_locales))))


@app.command()
def report(run_dir: str):
    """Regenerate HTML report for an existing run directory."""
    rd = Path(run_dir)
    from .report import render_report
    render_report(rd / "results.json", rd / "report.rebuilt.html")
    typer.echo("Report regenerated.")


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
