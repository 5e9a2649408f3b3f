"""
Progress bars for harmony-sync, built on Rich.

Two bars share one base class and theme:
    - MatchingProgressBar: resolving source tracks in the target catalog
    - LoadingProgressBar: loading the user's playlist library

Usage:
    with MatchingProgressBar(total=len(tracks)) as progress:
        ...
        progress.update(matched=True)

    bar = LoadingProgressBar(total=len(ids))
    bar.start()
    bar.update(CacheStatus.LOADED)
    bar.stop()
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from rich import get_console
from rich.console import JustifyMethod, OverflowMethod
from rich.progress import BarColumn, Progress, ProgressColumn, Task, TaskID
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme

if TYPE_CHECKING:
    from harmony_sync.sync.cache import CacheStatus, LoadingProgress


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(29,185,84)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(29,185,84)",
    "progress.percentage": "white",
})


class SizedTextColumn(ProgressColumn):
    """Text column truncated (or padded) to a fixed width."""

    def __init__(
        self,
        text_format: str,
        style: StyleType = "none",
        justify: JustifyMethod = "left",
        overflow: Optional[OverflowMethod] = None,
        width: int = 20,
    ) -> None:
        self.text_format = text_format
        self.style = style
        self.justify: JustifyMethod = justify
        self.overflow: Optional[OverflowMethod] = overflow
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(
            self.text_format.format(task=task), style=self.style, justify=self.justify
        )
        text.truncate(max_width=self.width, overflow=self.overflow, pad=True)
        return text


class BaseProgressBar(ABC):
    """
    Common Rich progress bar with start/stop and context manager support.

    Subclasses provide _get_status_text() and update().
    """

    def __init__(self, total: int, description: str, status_width: int = 35):
        self.total = total
        self.description = description
        self.completed = 0

        self.console = get_console()
        self.console.push_theme(PROGRESS_THEME)

        self.progress = Progress(
            SizedTextColumn("[white]{task.description}", overflow="ellipsis", width=15),
            SizedTextColumn("{task.fields[status]}", width=status_width, style="white"),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "BaseProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self._started = False
            self.console.pop_theme()

    def log(self, message: str) -> None:
        """Print a message above the bar."""
        self.progress.console.print(message, highlight=False)

    def _update_progress(self) -> None:
        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )

    @abstractmethod
    def _get_status_text(self) -> str:
        pass

    @abstractmethod
    def update(self, *args, **kwargs) -> None:
        pass


class MatchingProgressBar(BaseProgressBar):
    """
    Track resolution progress.

    Example:
        Matching        ✓ 45  ✗ 2               ━━━━━━━━━━━━━━━━━  47%
    """

    def __init__(self, total: int, description: str = "Matching"):
        super().__init__(total=total, description=description)
        self.matched = 0
        self.failed = 0

    def _get_status_text(self) -> str:
        return f"[green]✓ {self.matched}[/green]  [red]✗ {self.failed}[/red]"

    def update(self, matched: bool) -> None:
        self.completed += 1
        if matched:
            self.matched += 1
        else:
            self.failed += 1
        self._update_progress()


class LoadingProgressBar(BaseProgressBar):
    """
    Library loading progress.

    Example:
        Loading         ✓ 30  ? 1  ✗ 2          ━━━━━━━━━━━━━━━━━  66%
    """

    def __init__(self, total: int, description: str = "Loading"):
        super().__init__(total=total, description=description)
        self.loaded = 0
        self.not_found = 0
        self.errored = 0

    def _get_status_text(self) -> str:
        parts = [f"[green]✓ {self.loaded}[/green]"]
        if self.not_found > 0:
            parts.append(f"[yellow]? {self.not_found}[/yellow]")
        if self.errored > 0:
            parts.append(f"[red]✗ {self.errored}[/red]")
        return "  ".join(parts)

    def update(self, status: "CacheStatus") -> None:
        """Count one resolved playlist by its cache status."""
        # Imported here: sync.cache depends on this package
        from harmony_sync.sync.cache import CacheStatus

        self.completed += 1
        if status is CacheStatus.LOADED:
            self.loaded += 1
        elif status is CacheStatus.NOT_FOUND:
            self.not_found += 1
        else:
            self.errored += 1
        self._update_progress()

    def sync_with(self, snapshot: "LoadingProgress") -> None:
        """Align the bar with a LoadingProgress snapshot polled from the cache."""
        self.total = snapshot.total
        self.completed = snapshot.loaded
        if self.task_id is not None:
            self.progress.update(self.task_id, total=self.total)
        self._update_progress()
