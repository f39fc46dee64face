import typer
from rich.console import Console
from rich.markup import escape

# Create a stderr console for logging
error_console = Console(stderr=True, highlight=False, soft_wrap=True)

_SEVERITY_RANK = {
    "debug": 0,
    "info": 1,
    "success": 1,
    "warning": 2,
    "error": 3,
    "critical": 4,
}

_LEVEL_RANK = {
    "DEBUG": 0,
    "INFO": 1,
    "WARNING": 2,
    "ERROR": 3,
    "CRITICAL": 4,
}


class OutputFormatter:
    """
    Handles output formatting for the CLI and the long-running engine.
    Ensures separation of concerns between System Logs (stderr) and Data (stdout).
    """

    threshold = _LEVEL_RANK["INFO"]

    @classmethod
    def set_level(cls, level: str) -> None:
        """
        Set the minimum severity that reaches stderr.
        """
        normalized = level.strip().upper()
        if normalized not in _LEVEL_RANK:
            raise ValueError(f"Unknown log level: {level!r}")
        cls.threshold = _LEVEL_RANK[normalized]

    @classmethod
    def log(cls, message: str, severity: str = "info") -> None:
        """
        Print system messages to stderr with color coding.
        """
        if _SEVERITY_RANK.get(severity, 1) < cls.threshold:
            return

        style = "white"
        if severity == "debug":
            style = "dim"
        elif severity == "warning":
            style = "yellow"
        elif severity == "error":
            style = "red"
        elif severity == "critical":
            style = "bold red"
        elif severity == "success":
            style = "green"

        error_console.print(f"[{style}]\\[dockergen] {escape(message)}[/{style}]")

    @staticmethod
    def print_data(data: str) -> None:
        """
        Print a rendered template to stdout.
        """
        typer.echo(data, nl=False)
