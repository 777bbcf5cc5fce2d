"""Prompt management module.

Externalizes prompts to text files for easy customization.
Prompts can be overridden by placing files in the working directory.
Placeholders use ``str.format`` syntax.
"""

from functools import lru_cache
from pathlib import Path

from ..config import APPROVED_DOMAIN, Settings
from ..i18n import translate

# Default prompts directory (package location)
_PROMPTS_DIR = Path(__file__).parent

ASSISTANT_NAME = "Khadija"


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Load a prompt from file.

    Search order:
    1. Current working directory: ./prompts/{name}.txt
    2. Package prompts directory: khadija/prompts/{name}.txt

    Args:
        name: Prompt name (without .txt extension)

    Returns:
        Prompt text content

    Raises:
        FileNotFoundError: If prompt file not found in any location
    """
    filename = f"{name}.txt"

    # Check working directory first (allows user overrides)
    local_path = Path.cwd() / "prompts" / filename
    if local_path.exists():
        return local_path.read_text(encoding="utf-8")

    package_path = _PROMPTS_DIR / filename
    if package_path.exists():
        return package_path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"Prompt '{name}' not found. Searched:\n"
        f"  - {local_path}\n"
        f"  - {package_path}"
    )


def profile_context(settings: Settings) -> str:
    return (
        f"L'utilisateur est un(e) '{settings.user_role.value}' s'intéressant au niveau "
        f"'{settings.user_level}'. Adapte tes réponses à ce profil."
    )


def get_system_instruction(
    settings: Settings, domain: str = APPROVED_DOMAIN, name: str = ASSISTANT_NAME
) -> str:
    """System instruction for a chat session, built from the user's profile."""
    return load_prompt("system").format(
        name=name, profile_context=profile_context(settings), domain=domain
    ).strip()


def site_query(message: str, domain: str) -> str:
    """Wrap a user message in the site-restricted search request."""
    return load_prompt("site_query").format(domain=domain, message=message).strip()


def suggestions_prompt(settings: Settings, name: str = ASSISTANT_NAME) -> str:
    lang = settings.ui_lang
    role = translate(f"role.{settings.user_role.value}", lang)
    return load_prompt("suggestions").format(
        name=name, role=role, level=settings.level_label, lang=lang
    ).strip()


def summarize_prompt(settings: Settings, url: str) -> str:
    return load_prompt("summarize").format(
        role=settings.user_role.value, level=settings.user_level, url=url
    ).strip()


def quiz_prompt(url: str) -> str:
    return load_prompt("quiz").format(url=url).strip()


def clear_cache() -> None:
    """Clear the prompt cache (useful after modifying prompt files)."""
    load_prompt.cache_clear()


__all__ = [
    "ASSISTANT_NAME",
    "load_prompt",
    "profile_context",
    "get_system_instruction",
    "site_query",
    "suggestions_prompt",
    "summarize_prompt",
    "quiz_prompt",
    "clear_cache",
]
