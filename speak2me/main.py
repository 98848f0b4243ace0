"""Main application entry point for Speak2Me."""

import sys
import time
import asyncio
import argparse
import logging
import threading
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live

from . import __version__
from .assessment import AssessmentEngine, AssessmentError, GrammarAnalysis
from .config import Speak2MeConfig
from .core.dispatcher import EventDispatcher
from .recognition import GoogleEngineFactory, RecognitionSource
from .services.session_controller import SessionController
from .transcript.publisher import TranscriptPublisher
from .ui import KeyboardInputHandler, TranscriptScreen, render_analysis

logger = logging.getLogger(__name__)


class PracticeApp:
    """Wires recognition, transcript and assessment together for the terminal."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        self.config = Speak2MeConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()
        self.dispatcher: Optional[EventDispatcher] = None
        self.controller: Optional[SessionController] = None
        self.quit_event = threading.Event()

    def init(self) -> None:
        logger.info("Initializing services...")

        language = self.config.get('recognition.language', 'de-DE')
        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        logger.info(f"Recognition: {language}, audio {sample_rate}Hz, {chunk_size} samples/chunk")

        self.dispatcher = EventDispatcher()
        self.dispatcher.start()

        factory = GoogleEngineFactory(
            credentials_path=self.config.get_google_credentials_path(),
            language=language,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels,
        )
        source = RecognitionSource(
            factory,
            self.dispatcher,
            restart_delay=self.config.get('recognition.restart_delay_seconds', 0.1),
            retry_backoff=self.config.get('recognition.retry_backoff_seconds', 0.5),
        )
        publisher = TranscriptPublisher()
        self.controller = SessionController(source, publish_callback=publisher.get_callback())

    def wait_until_stopped(self, timeout: float = 3.0) -> None:
        """Give the engine time to deliver its last results after a stop."""
        deadline = time.time() + timeout
        while self.controller.source.is_active and time.time() < deadline:
            time.sleep(0.05)

    def analyze(self, level: str) -> GrammarAnalysis:
        api_key = self.config.get_assessment_api_key()
        if not api_key:
            raise AssessmentError(
                f"No API key: set {self.config.get('assessment.api_key_env', 'OPENAI_API_KEY')}")
        engine = AssessmentEngine(api_key, model=self.config.get('assessment.model', 'gpt-4o'))
        return asyncio.run(engine.analyze(self.controller.transcript, level))

    def run_auto(self, duration: int, level: str, analyze: bool) -> None:
        """Record for `duration` seconds, print the transcript and optionally assess it."""
        controller = self.controller
        if not controller.is_supported:
            raise RuntimeError(controller.error)

        controller.start_listening()
        if controller.error:
            raise RuntimeError(controller.error)

        self.console.print(f"🎙️  Recording for {duration} seconds...", style="bold red")
        for elapsed in range(1, duration + 1):
            time.sleep(1)
            if controller.error:
                break
            self.console.print(f"   [{elapsed:3d}s] {controller.raw_transcript[-70:]}", end="\r")
        self.console.print()

        controller.stop_listening()
        self.wait_until_stopped()

        if controller.error:
            self.console.print(f"❌ {controller.error}", style="red")
        self.console.print("📄 Transcript:", style="bold")
        self.console.print(controller.transcript or "(no speech recognized)")

        if analyze:
            self.console.print(render_analysis(self.analyze(level)))

    def run_interactive(self, level: str) -> None:
        """Live screen driven by single-key commands."""
        screen = TranscriptScreen(target_level=level, audio_stats=self.controller.source.get_audio_stats)
        screen.show(self.controller.snapshot())

        def on_key(key: str) -> bool:
            if key == "1":
                screen.set_message(None)
                self.controller.start_listening()
            elif key == "2":
                self.controller.stop_listening()
            elif key == "3":
                self.controller.reset_transcript()
                screen.set_analysis(None)
            elif key == "4":
                self.controller.stop_listening()
                self.wait_until_stopped()
                screen.set_message("Analyzing...")
                try:
                    screen.set_analysis(self.analyze(level))
                    screen.set_message(None)
                except AssessmentError as e:
                    screen.set_message(str(e))
            elif key == "q":
                self.quit_event.set()
                return False
            return True

        keyboard = KeyboardInputHandler(on_key)
        keyboard.start()
        try:
            with Live(screen.render(), console=self.console, refresh_per_second=8) as live:
                while not self.quit_event.is_set():
                    live.update(screen.render())
                    time.sleep(0.125)
        finally:
            keyboard.stop()
            screen.close()

    def cleanup(self) -> None:
        if self.controller:
            self.controller.release()
        if self.dispatcher:
            self.dispatcher.shutdown()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/speak2me.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - warnings and above only, the screen owns stdout
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Speak2Me application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for Speak2Me application."""
    parser = argparse.ArgumentParser(
        description="Speak2Me - speaking practice with live transcription",
        epilog="Commands: 1=Start recording, 2=Stop recording, 3=Reset transcript, 4=Analyze, q=Quit"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: speak2me.yaml if present)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )
    parser.add_argument(
        "--auto",
        action="store_true",
        help="Record for the given duration, print the transcript and exit"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=30,
        help="Duration in seconds for auto mode recording (default: 30)"
    )
    parser.add_argument(
        "--level",
        type=str,
        choices=["A1", "A2", "B1", "B2", "C1", "C2"],
        help="Target CEFR level for the assessment (default: from config)"
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="In auto mode, submit the transcript for assessment after recording"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Speak2Me v{__version__}"
    )

    args = parser.parse_args()

    app = PracticeApp(args.config, args.log_level)
    level = args.level or app.config.get('assessment.target_level', 'A1')
    try:
        app.init()
        if args.auto:
            app.run_auto(args.duration, level, args.analyze)
        else:
            app.run_interactive(level)
    except KeyboardInterrupt:
        print("\n👋 Tschüss!")
    except (RuntimeError, AssessmentError) as e:
        print(f"❌ Error: {e}")
        logger.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
