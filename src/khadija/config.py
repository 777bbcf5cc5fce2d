"""Configuration for the assistant.

Hides where configuration comes from (environment, .env file, persisted
user settings) from the components that consume it.
"""

import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Approved resource domain: origin + path prefix every surfaced link must match
APPROVED_DOMAIN = "senprof.education.sn/"

# Written language of the approved resources (local voice fallback)
APPROVED_LANGUAGE = "fr"

# Chat history retention
MAX_HISTORY_MESSAGES = 50

# Suggestion chips
MAX_SUGGESTIONS = 3
FALLBACK_SUGGESTIONS = (
    "📚 Explorer les cours de science",
    "📝 Commencer un tutoriel de programmation",
    "🎓 Chercher des guides d'étude",
)

# Persistent key-value store keys
HISTORY_KEY = "senProfAssistantHistory"
SETTINGS_KEY = "senProfAssistantSettings"
FAVORITES_KEY = "senProfAssistantFavorites"

SCHOOL_LEVELS: dict[str, str] = {
    "all": "Tous",
    "prescolaire": "Préscolaire",
    "elementaire-ci": "Élémentaire - CI",
    "elementaire-cp": "Élémentaire - CP",
    "elementaire-ce1": "Élémentaire - CE1",
    "elementaire-ce2": "Élémentaire - CE2",
    "elementaire-cm1": "Élémentaire - CM1",
    "elementaire-cm2": "Élémentaire - CM2",
    "moyen-6e": "Moyen - 6ème",
    "moyen-5e": "Moyen - 5ème",
    "moyen-4e": "Moyen - 4ème",
    "moyen-3e": "Moyen - 3ème",
    "secondaire-2nde": "Secondaire - Seconde",
    "secondaire-1ere": "Secondaire - Première",
    "secondaire-tle": "Secondaire - Terminale",
}


class UserRole(str, Enum):
    """Profile of the person using the assistant."""

    TEACHER = "enseignant"
    STUDENT = "eleve"
    PARENT = "parent"


class Settings(BaseModel):
    """User preferences persisted between sessions.

    Stored under camelCase keys (``userRole``, ``playbackSpeed``). Unknown
    keys in a stored blob are ignored and missing keys take their defaults,
    so older blobs keep loading after fields are added.
    """

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    sound_enabled: bool = True
    sound_theme: str = "default"
    ui_lang: str = Field(default="fr", description="Interface language: fr, wo or ar")
    theme: str = "dark"
    text_size: str = "normal"
    playback_speed: float = Field(default=1.0, gt=0.0, le=4.0)
    user_role: UserRole = UserRole.TEACHER
    user_level: str = "all"
    voice_name: str = Field(default="", description="Preferred local voice name")
    pitch: float = Field(default=1.0, ge=0.0, le=2.0)

    @field_validator("ui_lang")
    @classmethod
    def validate_ui_lang(cls, v: str) -> str:
        """Fall back to French for unsupported interface languages."""
        return v if v in ("fr", "wo", "ar") else "fr"

    @property
    def level_label(self) -> str:
        """Human-readable label of the selected school level."""
        return SCHOOL_LEVELS.get(self.user_level, self.user_level)


class AssistantConfig(BaseModel):
    """Process configuration read from the environment."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = Field(default=None, description="Google API key (Gemini and Cloud TTS)")
    model: str = Field(default="gemini-2.5-flash", description="Gemini model name")
    approved_domain: str = Field(default=APPROVED_DOMAIN)
    tts_language: str = Field(default="fr-FR")
    tts_voice: str = Field(default="fr-FR-Wavenet-E")
    store_backend: str = Field(default="sqlite", description="Key-value store backend: memory or sqlite")
    store_path: Path = Field(default=Path.home() / ".khadija" / "khadija.db")
    log_level: str = Field(default="WARNING")

    @field_validator("approved_domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """Require a bare host + path prefix terminated by a slash."""
        v = v.strip()
        if "://" in v:
            raise ValueError("approved_domain must not include a scheme")
        if not v.endswith("/"):
            v += "/"
        return v

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AssistantConfig":
        """Build configuration from environment variables.

        Environment variables:
            API_KEY / GEMINI_API_KEY: Google API key
            KHADIJA_MODEL: Gemini model (default: gemini-2.5-flash)
            KHADIJA_DOMAIN: Approved domain (default: senprof.education.sn/)
            KHADIJA_TTS_LANGUAGE: Cloud TTS language code (default: fr-FR)
            KHADIJA_TTS_VOICE: Cloud TTS voice (default: fr-FR-Wavenet-E)
            KHADIJA_STORE: memory or sqlite (default: sqlite)
            KHADIJA_DB: SQLite path (default: ~/.khadija/khadija.db)
            KHADIJA_LOG_LEVEL: Logging level (default: WARNING)
        """
        load_dotenv(env_file)
        values: dict[str, object] = {
            "api_key": os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY"),
        }
        optional = {
            "model": "KHADIJA_MODEL",
            "approved_domain": "KHADIJA_DOMAIN",
            "tts_language": "KHADIJA_TTS_LANGUAGE",
            "tts_voice": "KHADIJA_TTS_VOICE",
            "store_backend": "KHADIJA_STORE",
            "store_path": "KHADIJA_DB",
            "log_level": "KHADIJA_LOG_LEVEL",
        }
        for field, env_name in optional.items():
            value = os.getenv(env_name)
            if value:
                values[field] = value
        return cls(**values)
