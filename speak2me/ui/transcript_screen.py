"""Live terminal view of the listening session."""

import logging
import threading
from typing import Callable, Optional

from pubsub import pub
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..assessment.models import GrammarAnalysis
from ..models.audio import AudioStats
from ..models.events import TranscriptUpdate
from ..transcript.publisher import TRANSCRIPT_TOPIC

logger = logging.getLogger(__name__)

HELP_TEXT = "1=Start  2=Stop  3=Reset  4=Analyze  q=Quit"
METER_WIDTH = 20


class TranscriptScreen:
    """Renders the latest TranscriptUpdate plus the last assessment report."""

    def __init__(self,
                 topic: str = TRANSCRIPT_TOPIC,
                 target_level: str = "A1",
                 audio_stats: Optional[Callable[[], Optional[AudioStats]]] = None):
        self.topic = topic
        self.target_level = target_level
        # Polled on every render for the microphone level meter
        self.audio_stats = audio_stats
        self.latest: Optional[TranscriptUpdate] = None
        self.analysis: Optional[GrammarAnalysis] = None
        self.message: Optional[str] = None
        self.lock = threading.Lock()

        pub.subscribe(self._on_update, topic)
        logger.info(f"TranscriptScreen subscribed to {topic}")

    def _on_update(self, update: TranscriptUpdate) -> None:
        self.show(update)

    def show(self, update: TranscriptUpdate) -> None:
        with self.lock:
            self.latest = update

    def set_message(self, message: Optional[str]) -> None:
        with self.lock:
            self.message = message

    def set_analysis(self, analysis: Optional[GrammarAnalysis]) -> None:
        with self.lock:
            self.analysis = analysis

    def render(self) -> Group:
        with self.lock:
            update = self.latest
            analysis = self.analysis
            message = self.message

        parts = [self._render_status(update)]
        stats = self.audio_stats() if self.audio_stats else None
        if stats is not None and stats.is_recording:
            parts.append(render_level_meter(stats))

        transcript = update.transcript if update and update.transcript else ""
        word_count = len(transcript.split())
        parts.append(Panel(
            Text(transcript or "Hallo, ich heiße...", style="white" if transcript else "dim"),
            title="Live transcript",
            subtitle=f"{word_count} words",
        ))

        if update and update.error:
            parts.append(Text(f"Error: {update.error}", style="bold red"))
        if message:
            parts.append(Text(message, style="yellow"))
        if analysis:
            parts.append(render_analysis(analysis))

        parts.append(Text(HELP_TEXT, style="dim"))
        return Group(*parts)

    def _render_status(self, update: Optional[TranscriptUpdate]) -> Text:
        if update is not None and not update.is_supported:
            return Text("Speech recognition not supported. Check microphone and credentials.", style="bold yellow")
        if update is not None and update.is_listening:
            return Text(f"● Recording... (target level {self.target_level})", style="bold red")
        return Text(f"○ Ready to record (target level {self.target_level})", style="green")

    def close(self) -> None:
        pub.unsubscribe(self._on_update, self.topic)


def render_level_meter(stats: AudioStats) -> Text:
    """Peak level bar of the last microphone chunk plus capture time."""
    filled = min(int(stats.peak_level * METER_WIDTH), METER_WIDTH)
    meter = Text("Mic ")
    meter.append("█" * filled, style="green" if stats.peak_level < 0.9 else "red")
    meter.append("·" * (METER_WIDTH - filled), style="dim")
    meter.append(f" {stats.peak_level:.2f}  {stats.duration_seconds:.0f}s")
    return meter


def render_analysis(analysis: GrammarAnalysis) -> Panel:
    """Scores, feedback points and suggestions of one assessment."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Score")
    table.add_column("Value", justify="right")
    table.add_row("Grammar", str(analysis.grammar_score))
    table.add_row("Vocabulary", str(analysis.vocabulary_score))
    table.add_row("Structure", str(analysis.structure_score))
    table.add_row("Overall", str(analysis.overall_score))

    feedback = Text()
    styles = {"correct": "green", "warning": "yellow", "error": "red"}
    for point in analysis.feedback_points:
        feedback.append(f"• {point.title}: ", style=f"bold {styles[point.type]}")
        feedback.append(f"{point.description}\n")
    for suggestion in analysis.suggestions:
        feedback.append(f"→ {suggestion}\n", style="cyan")

    return Panel(Group(table, feedback), title=f"Detected level: {analysis.detected_level}")
