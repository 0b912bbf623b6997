from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError

from law_trends.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from law_trends.io.fetch import SnapshotFetcher, file_loader
from law_trends.io.write import dumps_summary, write_summary, write_table
from law_trends.logging import configure_logging
from law_trends.pipeline.views import (
    compute_kpis,
    graph_view,
    insights_view,
    peak_view,
    ranking_view,
    rising_view,
    stance_view,
    trend_view,
    volume_view,
)
from law_trends.query import ViewQuery
from law_trends.taxonomy import Snapshot

app = typer.Typer(no_args_is_help=True, add_completion=False)

DATA_OPTION = typer.Option(
    None,
    exists=True,
    readable=True,
    resolve_path=True,
    help="Dataset JSON. Falls back to input.data_path in config.",
)
CONFIG_OPTION = typer.Option(None, exists=True, readable=True, resolve_path=True)
DOMAIN_OPTION = typer.Option(None, "--domain", help="Repeat to select several domains.")
GRANULARITY_OPTION = typer.Option("daily", help="daily, weekly or monthly.")
START_OPTION = typer.Option(None, help="Inclusive start date (YYYY-MM-DD).")
END_OPTION = typer.Option(None, help="Inclusive end date (YYYY-MM-DD).")
METRIC_OPTION = typer.Option("news", help="news or social.")
OUT_OPTION = typer.Option(None, resolve_path=True, help="Write the result here instead of stdout.")


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is not None:
        return load_config(config_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return AppConfig()


def _build_query(
    domain: list[str] | None,
    granularity: str,
    start: str | None,
    end: str | None,
    metric: str,
) -> ViewQuery:
    try:
        return ViewQuery.model_validate(
            {
                "domains": tuple(domain) if domain else None,
                "granularity": granularity,
                "start_date": start,
                "end_date": end,
                "metric": metric,
            }
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_snapshot(data: Path | None, cfg: AppConfig, query: ViewQuery) -> Snapshot:
    data_path = data or (Path(cfg.input.data_path) if cfg.input.data_path else None)
    if data_path is None:
        raise typer.BadParameter(
            "Missing --data. Set --data, LAW_TRENDS_DATA_PATH or input.data_path in config."
        )
    fetcher = SnapshotFetcher(
        file_loader(data_path),
        retries=cfg.fetch.retries,
        backoff_seconds=cfg.fetch.backoff_seconds,
        sample_limit=cfg.input.sample_limit,
    )
    try:
        result = fetcher.fetch(query)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"Could not load dataset {data_path}: {exc}") from exc
    if result is None:
        raise typer.Exit(code=1)
    return result.snapshot


def _prepare(
    data: Path | None,
    config: Path | None,
    domain: list[str] | None,
    granularity: str,
    start: str | None,
    end: str | None,
    metric: str,
) -> tuple[AppConfig, ViewQuery, Snapshot]:
    configure_logging()
    cfg = _load_app_config(config)
    query = _build_query(domain, granularity, start, end, metric)
    return cfg, query, _load_snapshot(data, cfg, query)


def _emit(payload: Any, out: Path | None) -> None:
    if out is None:
        typer.echo(dumps_summary(payload))
        return
    write_summary(payload, out)
    typer.echo(f"Written to: {out}")


@app.command()
def kpis(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    metric: str = METRIC_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Per-domain KPI cards with growth and sparklines."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, metric)
    cards = compute_kpis(snapshot, query, cfg)
    _emit({"cards": [card.to_dict() for card in cards]}, out)


@app.command()
def volume(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    metric: str = METRIC_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Mention totals broken down by domain, theme, incident and bucket."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, metric)
    _emit(volume_view(snapshot, query, cfg), out)


@app.command()
def stance(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Strengthen / weaken / oppose distribution over social incidents."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, "social")
    _emit(stance_view(snapshot, query, cfg), out)


@app.command()
def rank(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    metric: str = METRIC_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Top laws, top incidents and per-stance domain rankings."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, metric)
    _emit(ranking_view(snapshot, query, cfg), out)


@app.command()
def rising(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Recent news articles ranked by the social comments on their incident."""
    cfg, query, snapshot = _prepare(data, config, domain, "daily", start, end, "news")
    _emit({"articles": rising_view(snapshot, query, cfg)}, out)


@app.command()
def trend(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    metric: str = METRIC_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Per-bucket series with one column per domain."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, metric)
    frame = trend_view(snapshot, query, cfg)
    if out is None:
        typer.echo(dumps_summary(frame.to_dict(orient="records")))
        return
    write_table(frame, out, fmt=cfg.outputs.tables_format)
    typer.echo(f"Written to: {out}")


@app.command()
def peak(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    metric: str = METRIC_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Busiest bucket across the selected domains with its dominant theme."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, metric)
    _emit(peak_view(snapshot, query, cfg).to_dict(), out)


@app.command()
def graph(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Law <-> incident relation graph with the preselected node."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, "social")
    relation_graph, selected = graph_view(snapshot, query, cfg)
    _emit({**relation_graph.to_dict(), "selected": selected}, out)


@app.command()
def insights(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
    domain: list[str] | None = DOMAIN_OPTION,
    granularity: str = GRANULARITY_OPTION,
    start: str | None = START_OPTION,
    end: str | None = END_OPTION,
    metric: str = METRIC_OPTION,
    out: Path | None = OUT_OPTION,
) -> None:
    """Headline insights: top domain, amplification, polarity, peaks and risk score."""
    cfg, query, snapshot = _prepare(data, config, domain, granularity, start, end, metric)
    _emit(insights_view(snapshot, query, cfg).to_dict(), out)


@app.command()
def diagnostics(
    data: Path | None = DATA_OPTION,
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Report domains found and any data-quality issues met while parsing."""
    _cfg, _query, snapshot = _prepare(data, config, None, "daily", None, None, "news")
    typer.echo("Dataset diagnostics")
    typer.echo(f"- domains: {', '.join(snapshot.domains()) or '(none)'}")
    typer.echo(f"- malformed_fields: {snapshot.diagnostics.malformed_fields}")
    typer.echo(f"- unknown_stance_blocks: {snapshot.diagnostics.unknown_stance_total}")
    for label, count in snapshot.diagnostics.unknown_stance_labels.items():
        typer.echo(f"  - {label}: {count}")


if __name__ == "__main__":
    app()
