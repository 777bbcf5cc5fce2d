"""Tests for the pending attachment slot."""
import base64

import pytest

from khadija.attachments import AttachmentSlot
from khadija.errors import ErrorKind, MediaLoadError
from khadija.llm import AttachedMedia

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class TestAttachmentSlot:
    """Tests for AttachmentSlot."""

    @pytest.mark.asyncio
    async def test_load_image(self, tmp_path):
        path = tmp_path / "cellule.png"
        path.write_bytes(PNG_BYTES)
        slot = AttachmentSlot()

        media = await slot.load_file(path)

        assert slot.pending is media
        assert media.mime_type == "image/png"
        assert base64.b64decode(media.data) == PNG_BYTES
        assert media.preview.startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_take_consumes(self, tmp_path):
        path = tmp_path / "a.jpg"
        path.write_bytes(b"jpeg")
        slot = AttachmentSlot()
        await slot.load_file(path)

        assert slot.take() is not None
        assert slot.take() is None

    @pytest.mark.asyncio
    async def test_non_image_rejected_and_slot_cleared(self, tmp_path):
        slot = AttachmentSlot()
        slot.attach(AttachedMedia(data="", mime_type="image/png"))
        path = tmp_path / "notes.txt"
        path.write_text("bonjour")

        with pytest.raises(MediaLoadError):
            await slot.load_file(path)
        assert slot.pending is None

    @pytest.mark.asyncio
    async def test_unreadable_file(self, tmp_path):
        slot = AttachmentSlot()

        with pytest.raises(MediaLoadError) as exc_info:
            await slot.load_file(tmp_path / "absent.png")

        assert exc_info.value.kind is ErrorKind.MEDIA_LOAD
        assert slot.pending is None

    def test_attach_replaces(self):
        slot = AttachmentSlot()
        first = AttachedMedia(data="YQ==", mime_type="image/png")
        second = AttachedMedia(data="Yg==", mime_type="image/gif")
        slot.attach(first)
        slot.attach(second)
        assert slot.pending is second
