"""Console output and tracebacks with Rich"""

from typing import TYPE_CHECKING, Any, Optional

import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme
from rich.traceback import install as install_rich_traceback

if TYPE_CHECKING:
    from ..core.config import TutorConfig
    from ..models.schemas import TutorAnswer

TUTOR_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "metric": "magenta",
        "learner": "bold blue",
        "tutor": "bold green",
        "tool": "blue",
        "latency": "cyan",
    }
)

STATUS_STYLES = {
    "answered": "green",
    "out_of_domain": "yellow",
    "pending_tool": "blue",
    "degraded": "yellow",
    "failed": "red",
}


class TutorConsole:
    """Singleton console with the tutorloop theme"""

    _instance: Optional["TutorConsole"] = None

    def __new__(cls) -> "TutorConsole":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, "initialized"):
            self.console = Console(theme=TUTOR_THEME)
            self.initialized = True

    def print_banner(self):
        self.console.print(
            Panel.fit(
                "[bold cyan]tutorloop[/bold cyan] - Conversational Tutoring Pipeline\n"
                "[dim]Intent routing • Retrieval • Rolling summaries • Tool calls[/dim]",
                border_style="cyan",
            )
        )

    def print_config_summary(self, config: "TutorConfig"):
        """Print configuration summary table"""
        table = Table(title="Configuration", show_header=False, border_style="cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("Generation Model", config.generation_model)
        table.add_row("Classifier Model", config.classifier_model)
        table.add_row("Window Size", f"{config.window_size} turns")
        table.add_row(
            "Retrieval",
            f"top {config.retrieval_top_k} from {', '.join(config.retrieval_collections)}",
        )
        table.add_row("Max Iterations", str(config.max_agent_iterations))
        table.add_row("Session Cache", f"{config.session_cache_capacity:,} sessions")
        if config.fallback_model_list:
            table.add_row("Fallback Models", f"{len(config.fallback_model_list)} configured")
        table.add_row("Video Tool", "Enabled" if config.video_render_endpoint else "Disabled")

        self.console.print(table)

    def print_answer(self, answer: "TutorAnswer"):
        style = STATUS_STYLES.get(answer.status.value, "white")
        subtitle = f"[{style}]{answer.status.value}[/{style}]"
        if answer.fragment_ids:
            subtitle += f" [dim]• {len(answer.fragment_ids)} fragments[/dim]"
        if answer.warnings:
            subtitle += f" [warning]• {', '.join(answer.warnings)}[/warning]"

        self.console.print(
            Panel(
                answer.text,
                title=f"[tutor]{answer.title or 'Tutor'}[/tutor]",
                subtitle=subtitle,
                border_style=style,
            )
        )

    def print_metrics(self, snapshot: dict[str, Any]):
        """Print a MetricsCollector snapshot"""
        table = Table(title="Session Metrics", show_header=True, border_style="cyan")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Value", style="yellow", justify="right")

        table.add_row("Turns", str(snapshot.get("total_turns", 0)))
        for status, count in sorted(snapshot.get("outcomes", {}).items()):
            table.add_row(f"  {status}", str(count))
        for kind, count in sorted(snapshot.get("degradations", {}).items()):
            table.add_row(f"[warning]{kind}[/warning]", str(count))

        latency = snapshot.get("recent", {}).get("latency_ms")
        if latency:
            table.add_row("Mean Latency", f"{latency['mean']:.0f}ms")
            table.add_row("Max Latency", f"{latency['max']:.0f}ms")

        self.console.print(table)

    def print_success(self, message: str):
        self.console.print(f"[success]✓[/success] {message}")

    def print_error(self, message: str):
        self.console.print(f"[error]✗[/error] {message}")

    def print_warning(self, message: str):
        self.console.print(f"[warning]⚠[/warning] {message}")

    def print_info(self, message: str):
        self.console.print(f"[info]ℹ[/info] {message}")


# Global console instance
console = TutorConsole()


def setup_rich_logging() -> None:
    """
    Install Rich's traceback handler globally.

    structlog configuration is handled separately in utils/logging.py.
    """
    install_rich_traceback(
        show_locals=True,
        width=120,
        extra_lines=3,
        theme="monokai",
        word_wrap=False,
        suppress=[structlog],
    )
