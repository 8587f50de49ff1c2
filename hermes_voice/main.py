"""
Command-line entry point: one voice conversation from the terminal.

Loads configuration, registers the vault tools, opens the microphone and
speakers and talks to Gemini Live until Ctrl+C, SIGTERM or the model ends
the conversation.
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

import structlog

from hermes_voice import __version__
from hermes_voice.audio.devices import AudioDevices
from hermes_voice.config import load_config, validate_config
from hermes_voice.core.models import ConnectionStatus, FileContext, SessionCallbacks, ToolData
from hermes_voice.core.session import RealtimeSessionCoordinator
from hermes_voice.logging_config import configure_logging
from hermes_voice.providers.google_live import GeminiLiveConnector
from hermes_voice.tools.registry import ToolRegistry
from hermes_voice.vault.store import VaultStore

logger = structlog.get_logger(__name__)


class ConsoleUI:
    """Prints session events to stdout. Logs go to stderr."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def _print(self, text: str) -> None:
        print(text, file=self.stream, flush=True)

    def on_status_change(self, status: ConnectionStatus) -> None:
        self._print(f"[{status.value}]")

    def on_log(self, message: str, kind: str, duration_ms: Optional[int] = None) -> None:
        if kind == "error":
            self._print(f"! {message}")

    def on_transcription(self, role: str, text: str, final: bool) -> None:
        if final:
            speaker = "You" if role == "user" else "Hermes"
            self._print(f"{speaker}: {text.strip()}")

    def on_system_message(self, text: str, data: Optional[ToolData] = None) -> None:
        if data is not None and data.status == "pending":
            return
        self._print(f"  * {text}")

    def on_file_state_change(self, folder: str, note: Optional[str]) -> None:
        self._print(f"  @ {note or folder}")

    def on_interrupted(self) -> None:
        self._print("  (interrupted)")

    def callbacks(self) -> SessionCallbacks:
        return SessionCallbacks(
            on_status_change=self.on_status_change,
            on_log=self.on_log,
            on_transcription=self.on_transcription,
            on_system_message=self.on_system_message,
            on_file_state_change=self.on_file_state_change,
            on_interrupted=self.on_interrupted,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hermes-voice",
        description="Talk to your markdown vault through Gemini Live.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML configuration file (default: $HERMES_CONFIG, ./config/hermes.yaml, then ~/.config/hermes-voice/hermes.yaml)",
    )
    parser.add_argument("--folder", default="/", help="Vault folder the conversation starts in")
    parser.add_argument("--note", default=None, help="Note the conversation starts on")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    configure_logging(
        log_level=config.logging.level.upper(),
        log_to_file=config.logging.to_file,
        log_file_path=config.logging.file_path,
        log_format=config.logging.format,
    )

    errors = validate_config(config)
    if errors:
        logger.error("Configuration validation failed", errors=errors)
        return 2

    vault = VaultStore(config.vault.root, config.vault.trash_folder)
    registry = ToolRegistry(
        max_items=config.tools.max_result_items,
        max_chars=config.tools.max_result_chars,
    )
    registry.initialize_default_tools(config.tools.disabled)

    ui = ConsoleUI()
    coordinator = RealtimeSessionCoordinator(
        GeminiLiveConnector(config.gemini),
        AudioDevices(config.audio),
        registry,
        vault,
        callbacks=ui.callbacks(),
        config=config,
    )

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    try:
        await coordinator.start(
            config.gemini.api_key,
            config.voice,
            FileContext(folder=args.folder, note=args.note),
        )
    except Exception as e:
        logger.error("Could not start voice session", error=str(e))
        return 1

    waiters = {
        asyncio.create_task(shutdown_event.wait()),
        asyncio.create_task(coordinator.wait_closed()),
    }
    _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()

    await coordinator.stop()
    await coordinator.drain_tool_calls()
    return 1 if coordinator.status == ConnectionStatus.ERROR else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
    finally:
        logger.info("Hermes Voice has shut down.")


if __name__ == "__main__":
    sys.exit(main())
