from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .credentials import EnvCredentialSelector
from .gen.aspect import SUPPORTED_RATIOS, closest_aspect_ratio
from .gen.config import CONFIG_FILENAME, STARTER_CONFIG, ConfigError, resolve_config
from .gen.errors import ErrorKind
from .gen.prompting import PromptResolutionError, composite_prompt
from .gen.registry import ProviderRegistry
from .ingest import IngestResult, ingest_files
from .provenance import log_swap_attempt, write_result_sidecar
from .session import AppState, KeyStatusChanged, SessionController, download_result

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _report_ingest(label: str, res: IngestResult) -> None:
    for path in res.skipped:
        console.print(f"[yellow]Skipped {label} (limit reached):[/yellow] {escape(str(path))}")
    for path, error in res.errors:
        console.print(f"[red]Could not load {label}:[/red] {escape(error)}")


@app.command()
def swap(
    poster: Optional[Path] = typer.Option(None, "--poster", exists=True, dir_okay=False, help="Movie poster image"),
    people: Optional[list[Path]] = typer.Option(
        None, "--person", "-p", exists=True, dir_okay=False, help="Portrait, in poster order (repeatable)"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to save the result"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default provider"),
    config_path: Optional[Path] = typer.Option(None, "--config", help=f"Path to {CONFIG_FILENAME}"),
    prompt_key: bool = typer.Option(True, "--prompt-key/--no-prompt-key", help="Ask for an API key if none is selected"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Composite portraits into a movie poster."""
    _setup_logging(verbose)

    try:
        config = resolve_config(config_path)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    gemini_cfg = config.providers.gemini
    credentials = EnvCredentialSelector(gemini_cfg.api_key_env if gemini_cfg else "GEMINI_API_KEY")
    registry = ProviderRegistry(config, api_key_getter=credentials.api_key)
    try:
        image_provider = registry.get_provider(provider or config.default_provider)
    except ConfigError as e:
        console.print(f"[bold red]Provider error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    controller = SessionController(credentials, AppState(max_people=config.max_people))
    if image_provider.requires_api_key:
        if not controller.refresh_key_status() and prompt_key:
            controller.select_key()
    else:
        controller.dispatch(KeyStatusChanged(True))

    if poster is not None:
        _report_ingest("poster", ingest_files([poster], multiple=False, on_upload=controller.upload_poster))
    # One selection per --person so the poster order follows the command line.
    for person in people or []:
        _report_ingest(
            "person",
            ingest_files(
                [person],
                multiple=True,
                max_files=config.max_people,
                existing=len(controller.state.people),
                on_upload=controller.upload_person,
            ),
        )

    image_size = gemini_cfg.image_size if gemini_cfg else "1K"
    model_id = gemini_cfg.model if gemini_cfg and image_provider.provider_id == "gemini" else None
    with console.status("正在重塑海報像素..."):
        state = controller.process(image_provider, image_size=image_size, model_id=model_id)

    out_path = output if output is not None else Path.cwd() / config.result_filename
    out_dir = out_path.parent

    if state.error is not None:
        if state.error_kind is not ErrorKind.PRECONDITION:
            log_swap_attempt(
                out_dir,
                provider_id=image_provider.provider_id,
                request=controller.last_request,
                success=False,
                error_kind=state.error_kind,
                message=state.error,
            )
        console.print(f"[bold red]Error:[/bold red] {escape(state.error)}")
        raise typer.Exit(code=2 if state.error_kind is ErrorKind.PRECONDITION else 1)

    written = download_result(state, out_dir, out_path.name)
    if controller.last_request is not None:
        write_result_sidecar(written, controller.last_request, image_provider.provider_id, model_id)
    log_swap_attempt(
        out_dir,
        provider_id=image_provider.provider_id,
        request=controller.last_request,
        success=True,
        out_path=written,
    )
    console.print(f"[bold green]Saved[/bold green] {escape(str(written))}")


@app.command()
def ratio(
    width: int = typer.Argument(..., min=0),
    height: int = typer.Argument(..., min=0),
):
    """Show which supported aspect ratio a WIDTHxHEIGHT poster maps to."""
    chosen = closest_aspect_ratio(width, height)
    table = Table(title=f"{width}x{height}")
    table.add_column("Ratio")
    table.add_column("Distance")
    actual = width / height if width and height else None
    for name, value in SUPPORTED_RATIOS:
        distance = f"{abs(value - actual):.4f}" if actual is not None else "-"
        label = f"[bold green]{name}[/bold green]" if name == chosen else name
        table.add_row(label, distance)
    console.print(table)
    console.print(chosen, highlight=False)


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config"),
):
    """Write a starter cineswap.toml in the current directory."""
    path = Path.cwd() / CONFIG_FILENAME
    if path.exists() and not force:
        console.print(f"[bold red]Already exists:[/bold red] {escape(str(path))}")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=2)
    path.write_text(STARTER_CONFIG, encoding="utf-8")
    console.print(f"[bold green]Created[/bold green] {escape(str(path))}")


@app.command()
def prompt():
    """Print the compositing instruction sent with every request."""
    try:
        console.print(composite_prompt(), markup=False, highlight=False)
    except PromptResolutionError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
