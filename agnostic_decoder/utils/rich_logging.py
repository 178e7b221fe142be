"""
Rich-enhanced console output for the agnostic brain decoder.
Provides header panels, config summaries, progress bars and prediction tables.
"""

import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.progress import (
    Progress,
    BarColumn,
    TextColumn,
    TimeRemainingColumn,
    TimeElapsedColumn,
    MofNCompleteColumn,
    SpinnerColumn
)
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from rich.columns import Columns
from rich import box
from rich.align import Align
from rich.markup import escape


class RichLogger:
    """Console logger with Rich formatting."""

    def __init__(
        self,
        name: str = "Agnostic Brain Decoder",
        log_file: Optional[Path] = None,
        console: Optional[Console] = None
    ):
        self.name = name
        self.log_file = log_file
        self.start_time = time.time()

        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)

        if console is None:
            console = Console(record=log_file is not None)
        self.console = console

        self._print_header()

    def _print_header(self):
        header_text = Text()
        header_text.append(self.name, style="bold blue")
        header_text.append(" :: signal → word → concept", style="dim")

        header_panel = Panel(
            Align.center(header_text),
            box=box.DOUBLE,
            style="blue",
            title="🧠 Decoder",
            title_align="left"
        )
        self.console.print(header_panel)
        self.console.print()

    def _log(self, symbol: str, message: str, **kwargs):
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.console.print(f"[dim]{timestamp}[/dim] {symbol} {message}", **kwargs)

    def info(self, message: str, **kwargs):
        self._log("[blue]ℹ[/blue]", message, **kwargs)

    def success(self, message: str, **kwargs):
        self._log("[green]✓[/green]", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log("[yellow]⚠[/yellow]", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log("[red]✗[/red]", message, **kwargs)

    def log_config_summary(self, config: Mapping[str, Any]):
        """Display decoder configuration in side-by-side panels."""
        bands = Table(box=None, show_header=True)
        bands.add_column("Band", style="cyan")
        bands.add_column("Range (Hz)", style="white")
        for name, (low_hz, high_hz) in config.get('bands', {}).items():
            bands.add_row(name, f"{low_hz:g} – {high_hz:g}")

        network = Table(box=None, show_header=False)
        network.add_column("Key", style="cyan")
        network.add_column("Value", style="white")
        network.add_row("hidden_layers", str(list(config.get('hidden_layers', []))))
        network.add_row("learning_rate", str(config.get('learning_rate', 'N/A')))
        network.add_row("epochs", str(config.get('epochs', 'N/A')))
        network.add_row("sampling_rate", str(config.get('sampling_rate', 'N/A')))

        grounding = Table(box=None, show_header=False)
        grounding.add_column("Key", style="cyan")
        grounding.add_column("Value", style="white")
        grounding.add_row("concepts", ", ".join(config.get('concepts', {})))
        grounding.add_row("embeddings", str(len(config.get('embeddings', {}))))
        grounding.add_row("definition_url", str(config.get('definition_url', 'N/A')))

        self.console.print(Columns([
            Panel(bands, title="📡  Bands", style="blue"),
            Panel(network, title="🎯  Classifiers", style="green"),
            Panel(grounding, title="📖  Grounding", style="yellow"),
        ]))
        self.console.print()

    def log_vocabulary(self, mapping: Mapping[str, int]):
        """Display the label mapping learned during training."""
        table = Table(title="🔤 Vocabulary", box=box.ROUNDED)
        table.add_column("Index", style="cyan", justify="right")
        table.add_column("Word", style="white")
        for word, index in mapping.items():
            table.add_row(str(index), escape(word))
        self.console.print(table)
        self.console.print()

    def log_prediction(self, result: Mapping[str, str], scores: Optional[Mapping[str, float]] = None):
        """Display a prediction result, optionally with fused class scores."""
        table = Table(title="🔮 Prediction", box=box.ROUNDED)
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value", style="white")
        table.add_row("Predicted word", escape(result['predictedWord']))
        table.add_row("Definition", escape(result['definition']))
        table.add_row("Universal concept", escape(result['universalConcept']))

        if scores:
            table.add_section()
            for word, score in scores.items():
                table.add_row(escape(f"score[{word}]"), f"{score:.4f}")

        self.console.print(table)

    def save(self):
        """Write everything printed so far to ``log_file`` when recording."""
        if self.log_file is not None and self.console.record:
            self.console.save_text(str(self.log_file))


class RichProgressTracker:
    """Rich progress bar for classifier fitting."""

    def __init__(self, total_steps: int, description: str = "Training", console: Optional[Console] = None):
        self.total_steps = total_steps
        self.description = description
        self.current_step = 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("•"),
            TimeElapsedColumn(),
            TextColumn("•"),
            TimeRemainingColumn(),
            console=console or Console(),
        )

        self.task_id = None

    def __enter__(self):
        self.progress.start()
        self.task_id = self.progress.add_task(self.description, total=self.total_steps)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()

    def update(self, step: int, **kwargs):
        """Update progress with current step and optional metrics."""
        self.current_step = step

        desc_parts = [self.description]
        if kwargs:
            metric_parts = []
            for key, value in kwargs.items():
                if isinstance(value, float):
                    metric_parts.append(f"{key}={value:.4f}")
                else:
                    metric_parts.append(f"{key}={value}")
            desc_parts.append(" • ".join(metric_parts))

        self.progress.update(self.task_id, completed=step, description=" | ".join(desc_parts))

    def __call__(self, step: int, loss: float):
        """Progress-callback form: ``tracker(step, loss)``."""
        self.update(step, loss=loss)


def format_duration(seconds: float) -> str:
    """Format duration in a human-readable way."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"


def scores_by_word(scores: Mapping[int, float], vocabulary: Dict[int, str]) -> Dict[str, float]:
    """Re-key a class-index score mapping by word for display."""
    return {vocabulary.get(index, str(index)): score for index, score in scores.items()}
