from __future__ import annotations

import logging
from contextlib import closing
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from core.settings import get_settings

from ..bootstrap import build_service, prepare_config
from ..config import AppConfig, dump_config
from ..core import ConversionError, ConversionService
from ..models import BatchItem
from ..utils import iter_html_files

console = Console()

app = typer.Typer(help="HTML email to Bee JSON template converter")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(path: Path | None) -> AppConfig:
    return prepare_config(get_settings(), path)


def _build_service(config: AppConfig) -> ConversionService:
    try:
        return build_service(config, get_settings())
    except ValueError as exc:
        console.print(f"[red]Configuration error[/red]: {exc}")
        raise typer.Exit(1) from exc


@app.command()
def convert(
    file: Path,
    name: str | None = typer.Option(None, "--name", help="Template name"),
    category: str = typer.Option("Other", "--category", help="Template category"),
    created_by: str | None = typer.Option(None, "--created-by", help="Author recorded on the template"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    html = file.read_text(encoding="utf-8")
    with closing(_build_service(cfg)) as service:
        try:
            outcome = service.convert(html, name=name, category=category, created_by=created_by)
        except ConversionError as exc:
            console.print(f"[red]Conversion failed[/red]: {exc.code} - {exc}")
            raise typer.Exit(1) from exc
    template = outcome.template
    console.print(f"[green]Success[/green]: created template '{template.name}' ({template.id})")
    console.print(f"Subject: {template.subject}")


@app.command()
def batch(
    path: list[Path],
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Parallel workers"),
) -> None:
    cfg = _load_config(config)
    files = list(iter_html_files(path))
    items = [BatchItem(html=f.read_text(encoding="utf-8"), name=f.stem) for f in files]
    with closing(_build_service(cfg)) as service:
        outcome = service.batch_convert(items, parallelism=parallel)
    table = Table(title="Batch summary")
    table.add_column("#")
    table.add_column("Source")
    table.add_column("Result")
    for success in outcome.successes:
        table.add_row(str(success.index), str(files[success.index]), f"[green]{success.outcome.template.id}[/green]")
    for failure in outcome.failures:
        table.add_row(str(failure.index), str(files[failure.index]), f"[red]{failure.error}[/red]")
    console.print(table)
    console.print(
        f"Processed {outcome.total} templates: "
        f"{len(outcome.successes)} succeeded, {len(outcome.failures)} failed "
        f"({outcome.success_rate}%)."
    )
    if outcome.failures:
        raise typer.Exit(1)


@app.command()
def test_connection(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    with closing(_build_service(_load_config(config))) as service:
        report = service.test_connection()
    if report.status != "connected":
        console.print(f"[red]{report.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{report.message}[/green]")


@app.command()
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    console.print_json(dump_config(_load_config(config)))


@app.command()
def serve(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    import uvicorn

    from api.app import create_app

    settings = get_settings()
    if config is not None:
        settings = settings.model_copy(update={"config_path": config})
    cfg = prepare_config(settings)
    try:
        api = create_app(settings)
    except (RuntimeError, ValueError) as exc:
        console.print(f"[red]Cannot start API[/red]: {exc}")
        raise typer.Exit(1) from exc
    uvicorn.run(api, host=cfg.server.host, port=cfg.server.port)


if __name__ == "__main__":
    app()
