"""Component factory functions for the CLI.

Centralizes creation of the chat backend, store and speech backends from
environment variables. Hides configuration details from command
implementations.
"""

import logging

import typer
from rich.console import Console

from ..assistant import Assistant
from ..audio import (
    AudioOutput,
    LocalSpeechEngine,
    TTSBackendSelector,
    create_audio_output,
    create_local_engine,
    create_remote_synthesizer,
)
from ..config import AssistantConfig
from ..llm import ChatBackend, create_chat_backend
from ..logging import configure_logging
from ..storage import KeyValueStore, create_store
from ..suggestions import SuggestionView

logger = logging.getLogger(__name__)

# Default console for output
_console = Console()


def get_config() -> AssistantConfig:
    """Read configuration and set up logging.

    Environment variables: see AssistantConfig.from_env
    """
    config = AssistantConfig.from_env()
    configure_logging(config.log_level)
    return config


def get_chat_backend(config: AssistantConfig, console: Console | None = None) -> ChatBackend:
    """Create the Gemini chat backend.

    Raises:
        SystemExit: If no API key is configured
    """
    con = console or _console
    if not config.api_key:
        con.print("[red]Error: API_KEY (or GEMINI_API_KEY) not set in environment[/red]")
        raise typer.Exit(code=1)
    return create_chat_backend("gemini", api_key=config.api_key, model=config.model)


def get_store(config: AssistantConfig) -> KeyValueStore:
    if config.store_backend == "sqlite":
        return create_store("sqlite", path=config.store_path)
    return create_store(config.store_backend)


def _audio_output() -> AudioOutput | None:
    try:
        return create_audio_output("sounddevice")
    except OSError as e:
        # PortAudio missing or no output device
        logger.warning("Audio output unavailable: %s", e)
        return None


def _local_engine() -> LocalSpeechEngine | None:
    try:
        return create_local_engine("pyttsx3")
    except (ImportError, OSError, RuntimeError) as e:
        logger.warning("Local speech engine unavailable: %s", e)
        return None


def build_assistant(
    console: Console | None = None,
    suggestion_view: SuggestionView | None = None,
    audio: bool = True,
) -> Assistant:
    """Assemble an Assistant from the environment.

    Args:
        console: Optional Rich console for output
        suggestion_view: Where suggestion chips are shown, if anywhere
        audio: Whether to set up speech backends
    """
    config = get_config()
    backend = get_chat_backend(config, console)
    store = get_store(config)

    tts = None
    if audio:
        remote = None
        if config.api_key:
            remote = create_remote_synthesizer(
                "google",
                api_key=config.api_key,
                language_code=config.tts_language,
                voice_name=config.tts_voice,
            )
        tts = TTSBackendSelector(
            lambda: assistant.settings,
            remote=remote,
            output=_audio_output(),
            local=_local_engine(),
        )

    assistant = Assistant(
        backend,
        store,
        tts=tts,
        config=config,
        suggestion_view=suggestion_view,
    )
    return assistant
