"""Console presentation of client results using rich."""

import logging
from datetime import datetime
from typing import Any, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hustleai.domain.models.ai import ChatReply, CoachingAdvice, MatchSet, TaskDraft, TranslationBatch
from hustleai.domain.models.health import BackendStatus, HealthStatus
from hustleai.domain.models.results import OperationResult

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    BackendStatus.ONLINE: "green",
    BackendStatus.DEGRADED: "yellow",
    BackendStatus.OFFLINE: "red",
    BackendStatus.CHECKING: "cyan",
}


class ConsoleDisplay:
    """Renders health and operation results to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        return self._console

    def _source_caption(self, result: OperationResult[Any]) -> str:
        if result.degraded:
            reason = result.error.value if result.error else "unknown"
            return f"[yellow]offline answer ({reason})[/yellow]"
        if result.cached:
            return "[dim]cached[/dim]"
        return "[dim]HustleAI[/dim]"

    def display_health(self, status: HealthStatus) -> None:
        style = STATUS_STYLES.get(status.status, "white")
        table = Table(box=SIMPLE, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Status", f"[{style}]{status.status.value}[/{style}]")
        table.add_row("Message", status.message)
        table.add_row("Latency", f"{status.latency_ms:.0f} ms" if status.latency_ms is not None else "-")
        table.add_row("Version", status.version or "-")
        checked = datetime.fromtimestamp(status.last_check).strftime("%Y-%m-%d %H:%M:%S") if status.last_check else "never"
        table.add_row("Last check", checked)
        self.console.print(Panel(table, title="[bold]Backend health[/bold]", border_style=style, box=ROUNDED))

    def display_chat(self, result: OperationResult[ChatReply]) -> None:
        reply = result.value
        body = Text(reply.response)
        if reply.suggestions:
            body.append("\n\nTry: ", style="bold")
            body.append(" | ".join(reply.suggestions), style="cyan")
        title = f"[bold]HustleAI[/bold] [dim]confidence {reply.confidence:.0f}[/dim]"
        self.console.print(Panel(body, title=title, subtitle=self._source_caption(result), box=ROUNDED))

    def display_task(self, result: OperationResult[TaskDraft]) -> None:
        draft = result.value
        table = Table(box=SIMPLE, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Title", draft.title)
        table.add_row("Category", draft.category)
        table.add_row("Pay", f"${draft.estimated_pay['min']:.0f} - ${draft.estimated_pay['max']:.0f}")
        table.add_row("Duration", draft.estimated_duration)
        table.add_row("Skills", ", ".join(draft.suggested_skills) or "-")
        table.add_row("Confidence", draft.confidence)
        if draft.xp_reward is not None:
            table.add_row("XP", str(draft.xp_reward))
        if draft.safety_notes:
            table.add_row("Safety", draft.safety_notes)
        self.console.print(Panel(table, title="[bold]Task draft[/bold]", subtitle=self._source_caption(result), box=ROUNDED))

    def display_translations(self, originals: Any, result: OperationResult[TranslationBatch]) -> None:
        batch = result.value
        table = Table(box=SIMPLE)
        table.add_column(batch.source_language, style="dim")
        table.add_column(batch.target_language)
        for original, translated in zip(originals, batch.translations):
            table.add_row(original, translated)
        self.console.print(Panel(table, title="[bold]Translation[/bold]", subtitle=self._source_caption(result), box=ROUNDED))

    def display_matches(self, result: OperationResult[MatchSet]) -> None:
        table = Table(box=SIMPLE)
        for column in ("Worker", "Score", "ETA", "Reasoning"):
            table.add_column(column)
        for match in result.value.matches:
            table.add_row(match.user_id, f"{match.score:.0f}", match.estimated_arrival or "-", match.reasoning)
        self.console.print(Panel(table, title="[bold]Matches[/bold]", subtitle=self._source_caption(result), box=ROUNDED))

    def display_coaching(self, result: OperationResult[CoachingAdvice]) -> None:
        advice = result.value
        body = Text()
        body.append(advice.next_milestone, style="bold")
        for heading, items in (("Strengths", advice.strengths), ("Improve", advice.improvements), ("Tips", advice.tips)):
            if items:
                body.append(f"\n\n{heading}:", style="bold")
                for item in items:
                    body.append(f"\n  - {item}")
        self.console.print(Panel(body, title="[bold]Coaching[/bold]", subtitle=self._source_caption(result), box=ROUNDED))

    def display_info(self, info_message: str) -> None:
        self.console.print(Panel(Text(info_message), title="[bold blue]Info[/bold blue]", border_style="blue", box=SIMPLE))

    def display_error(self, error_message: str) -> None:
        logger.debug(f"Display error: {error_message}")
        self.console.print(Panel(Text(error_message), title="[bold red]Error[/bold red]", border_style="red", box=HEAVY))
