"""Factories for speech backends.

Imports of device-bound libraries happen inside the functions so that
the rest of the package works on machines without audio hardware.
"""

from typing import Any

from .base import AudioOutput, LocalSpeechEngine, RemoteSynthesizer


def create_remote_synthesizer(provider: str = "google", **config: Any) -> RemoteSynthesizer:
    """Create a remote synthesis client.

    Args:
        provider: Service type ("google")
        **config: Service-specific configuration
            For Google Cloud TTS:
                - api_key: str (required)
                - language_code: str (default: 'fr-FR')
                - voice_name: str (default: 'fr-FR-Wavenet-E')

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing
    """
    if provider == "google":
        if not config.get("api_key"):
            raise TypeError("Google TTS requires 'api_key' in config")
        from .providers.google_tts import GoogleCloudSynthesizer
        return GoogleCloudSynthesizer(**config)

    raise ValueError(
        f"Unsupported TTS provider: {provider}. "
        f"Supported providers: google"
    )


def create_audio_output(backend: str = "sounddevice", **config: Any) -> AudioOutput:
    """Create the decoder/player for remote audio."""
    if backend == "sounddevice":
        from .providers.sounddevice_output import SoundDeviceOutput
        return SoundDeviceOutput(**config)

    raise ValueError(
        f"Unsupported audio output: {backend}. "
        f"Supported outputs: sounddevice"
    )


def create_local_engine(backend: str = "pyttsx3", **config: Any) -> LocalSpeechEngine:
    """Create the local speech engine fallback."""
    if backend == "pyttsx3":
        from .providers.pyttsx3_engine import Pyttsx3SpeechEngine
        return Pyttsx3SpeechEngine(**config)

    raise ValueError(
        f"Unsupported local speech engine: {backend}. "
        f"Supported engines: pyttsx3"
    )
