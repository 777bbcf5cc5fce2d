"""The single pending image attachment of the next outgoing message."""

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path

from .errors import MediaLoadError
from .llm.models import AttachedMedia

logger = logging.getLogger(__name__)


class AttachmentSlot:
    """Holds at most one attachment until the next message takes it.

    Attaching replaces any previous attachment; sending consumes it.
    """

    def __init__(self):
        self._media: AttachedMedia | None = None

    @property
    def pending(self) -> AttachedMedia | None:
        return self._media

    def attach(self, media: AttachedMedia) -> None:
        self._media = media

    def take(self) -> AttachedMedia | None:
        """Remove and return the pending attachment."""
        media, self._media = self._media, None
        return media

    def clear(self) -> None:
        self._media = None

    async def load_file(self, path: str | Path) -> AttachedMedia:
        """Read an image file into the slot.

        Raises:
            MediaLoadError: If the file is not an image or cannot be read.
                The slot is left empty.
        """
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        if not mime_type or not mime_type.startswith("image/"):
            self.clear()
            raise MediaLoadError(f"Not an image file: {path}")

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            self.clear()
            logger.warning("Could not read attachment %s: %s", path, e)
            raise MediaLoadError(f"Cannot read {path}: {e}") from e

        encoded = base64.b64encode(data).decode("ascii")
        media = AttachedMedia(
            data=encoded,
            mime_type=mime_type,
            preview=f"data:{mime_type};base64,{encoded}",
        )
        self.attach(media)
        return media
