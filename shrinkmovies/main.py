import typer
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from rich.console import Console

from shrinkmovies.config.loader import load_config
from shrinkmovies.domain.errors import TraversalError
from shrinkmovies.infrastructure.logging import setup_logging
from shrinkmovies.infrastructure.event_bus import EventBus
from shrinkmovies.infrastructure.file_scanner import FileScanner
from shrinkmovies.infrastructure.ffmpeg import FFmpegAdapter, ensure_ffmpeg_available
from shrinkmovies.pipeline.orchestrator import Orchestrator
from shrinkmovies.ui.reporter import ConsoleReporter

app = typer.Typer(help="shrink-movies - re-encode movies in place when it saves space")


def _fail(message: str) -> None:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command()
def shrink(
    input_dir: Optional[str] = typer.Option(None, "--input", "-i", help="Input directory to scan recursively"),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for retained files (mirrors the input tree). Empty: replace in place"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Override number of concurrent transcodes"),
    crf: Optional[int] = typer.Option(None, "--crf", help="Override constant rate factor (0-51)"),
    preset: Optional[str] = typer.Option(None, "--preset", help="Override x264 preset"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (overrides config)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Shrink every movie below the input directory."""
    if not input_dir:
        _fail("need to define an input directory (-i).")
    input_path = Path(input_dir).expanduser()
    if not input_path.is_dir():
        _fail(f"Input directory does not exist: {input_path}")
    output_path = Path(output_dir).expanduser() if output_dir else None

    try:
        config = load_config(config_path)
        # Apply CLI overrides (validated by pydantic on copy)
        general = config.general.model_dump()
        encoding = config.encoding.model_dump()
        if threads is not None: general["threads"] = threads
        if log_path is not None: general["log_path"] = str(log_path)
        if debug: general["debug"] = True
        if crf is not None: encoding["crf"] = crf
        if preset is not None: encoding["preset"] = preset
        config = type(config)(general=general, encoding=encoding)
    except FileNotFoundError as exc:
        _fail(str(exc))
    except ValidationError as exc:
        _fail(f"Invalid configuration:\n{exc}")

    console = Console()
    logger = setup_logging(
        Path(config.general.log_path) if config.general.log_path else None,
        debug=config.general.debug,
        console=console,
    )

    try:
        ensure_ffmpeg_available()
    except RuntimeError as exc:
        logger.critical(str(exc))
        raise typer.Exit(code=1)

    logger.info(f"shrink-movies started: input={input_path}, output={output_path or 'in place'}")
    logger.info(
        f"Config: threads={config.general.threads}, crf={config.encoding.crf}, "
        f"preset={config.encoding.preset}, keep_ratio={config.general.keep_ratio}"
    )

    bus = EventBus()
    reporter = ConsoleReporter(bus, console=console)
    orchestrator = Orchestrator(
        config=config,
        event_bus=bus,
        file_scanner=FileScanner(extensions=config.general.extensions),
        transcoder=FFmpegAdapter(debug=config.general.debug),
    )

    try:
        with reporter:
            orchestrator.run(input_path, output_path)
    except TraversalError as exc:
        logger.critical(str(exc))
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        typer.secho("\nShrinking stopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)


if __name__ == "__main__":
    app()
