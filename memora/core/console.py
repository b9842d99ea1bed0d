from contextlib import contextmanager
from typing import ContextManager

from rich.console import Console
from rich.theme import Theme

memora_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "money": "bold magenta",
})

class ConsoleManager:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConsoleManager, cls).__new__(cls)
            cls._instance.initialized = False
        return cls._instance

    def __init__(self):
        if self.initialized:
            return

        self.console = Console(theme=memora_theme)
        self.output_mode = "standard"
        self.initialized = True

    def configure(self, output_mode: str = "standard", debug: bool = False):
        """
        output_mode: 'standard', 'verbose', 'silent'
        """
        self.output_mode = output_mode.lower()
        if debug:
            self.output_mode = "verbose"

    def print(self, *args, **kwargs):
        if self.output_mode != "silent":
            self.console.print(*args, **kwargs)

    def success(self, message: str):
        if self.output_mode != "silent":
            self.console.print(f"✅ {message}", style="success")

    def warning(self, message: str):
        if self.output_mode != "silent":
            self.console.print(f"⚠️ {message}", style="warning")

    @contextmanager
    def status(self, message: str) -> ContextManager:
        """Spinner in standard mode, start/end lines in verbose mode, nothing when silent."""
        if self.output_mode == "silent":
            yield
            return

        if self.output_mode == "verbose":
            self.console.log(f"Started: {message}")
            try:
                yield
            finally:
                self.console.log(f"Finished: {message}")
            return

        with self.console.status(f"[bold cyan]{message}", spinner="dots"):
            yield

# Global instance
console = ConsoleManager()
