"""Plain-text export of the conversation."""

from collections.abc import Iterable

from .i18n import translate
from .llm.models import ChatTurn, Sender
from .rendering import html_to_text

SEPARATOR = "=" * 20


def build_transcript(turns: Iterable[ChatTurn], lang: str = "fr") -> str:
    """Render the conversation as text: a title header, then one block per turn."""
    header = f"{translate('app_title', lang)}\n{translate('app_subtitle', lang)}\n\n{SEPARATOR}\n\n"
    user = translate("user_sender", lang)
    assistant = translate("assistant_sender", lang)

    blocks = []
    for turn in turns:
        sender = user if turn.sender is Sender.USER else assistant
        blocks.append(f"{sender}:\n{html_to_text(turn.content)}")
    return header + "\n\n".join(blocks)
