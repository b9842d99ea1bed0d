import logging
import os
from pathlib import Path
from typing import Optional
from logging.handlers import TimedRotatingFileHandler
from rich.logging import RichHandler
from memora.core.console import console as console_manager

def default_log_dir() -> str:
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        return str(Path(xdg_state) / "memora" / "logs")
    return str(Path.home() / ".local" / "state" / "memora" / "logs")

def setup_logging(log_dir: Optional[str] = None, debug: bool = False, output_mode: str = "standard") -> logging.Logger:
    """Configures logging to console and rotating file.

    Args:
        log_dir: Directory for log files. If None, uses ~/.local/state/memora/logs
        debug: If True, set logging level to DEBUG, otherwise INFO
        output_mode: 'standard', 'verbose', 'silent'. 'silent' suppresses console output.
    """
    log_dir = log_dir or default_log_dir()
    log_file = os.path.join(log_dir, "memora.log")

    # Silence noisy 3rd party loggers
    noisy_loggers = [
        "urllib3", "requests", "httpx", "httpcore", "asyncio",
        "charset_normalizer", "google", "grpc"
    ]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger("Memora")

    if output_mode == "silent":
        console_level = logging.CRITICAL
        file_level = logging.DEBUG
    elif debug:
        console_level = logging.DEBUG
        file_level = logging.DEBUG
    else:
        console_level = logging.INFO
        file_level = logging.INFO

    # Handlers filter; the logger itself lets everything through
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if not logger.handlers:
        if output_mode != "silent":
            console_handler = RichHandler(
                console=console_manager.console,
                rich_tracebacks=True,
                markup=False,
                show_time=True,
                show_path=False
            )
            console_handler.setLevel(console_level)
            logger.addHandler(console_handler)

        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = TimedRotatingFileHandler(log_file, when="midnight", interval=1, backupCount=30)
            file_handler.setLevel(file_level)
            file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
            logger.addHandler(file_handler)
        except OSError as e:
            # Handlers aren't set up yet, so this can't go through the logger
            if output_mode != "silent":
                console_manager.warning(f"Could not create log file at {log_file}: {e}. Logging to console only.")
    else:
        for handler in logger.handlers:
            if isinstance(handler, TimedRotatingFileHandler):
                handler.setLevel(file_level)
            else:
                handler.setLevel(logging.CRITICAL if output_mode == "silent" else console_level)

    return logger
