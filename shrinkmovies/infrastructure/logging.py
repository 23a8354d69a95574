import logging
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler

def setup_logging(log_path: Optional[Path] = None, debug: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Setup logging configuration for shrink-movies.

    Console output goes through rich. When log_path is given, the same records
    also go to a plain-text log file.
    Returns configured logger instance.

    Args:
        log_path: Optional path to a log file (parent dirs are created)
        debug: If True, enable DEBUG level logging with ffmpeg commands and timings
        console: Optional rich Console shared with the progress display
    """
    level = logging.DEBUG if debug else logging.INFO

    handlers = [
        RichHandler(console=console, show_path=False, rich_tracebacks=True, markup=False),
    ]

    log_file = None
    if log_path:
        log_file = Path(log_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format='%(message)s',
        datefmt='[%X]',
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger("shrinkmovies")
    logger.info(f"Logging initialized: {log_file or 'console'} (debug={'ON' if debug else 'OFF'})")

    return logger
