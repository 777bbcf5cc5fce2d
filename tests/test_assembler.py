"""Tests for streaming assembly of answers."""
import logging

import httpx
import pytest
from conftest import FakeChatBackend

from khadija.errors import AssistantError, ContentBlockedError, ErrorKind
from khadija.llm import AttachedMedia, Fragment
from khadija.rendering import TYPING_CURSOR, parse_fragment
from khadija.streaming import ResponseStreamAssembler, StreamingAssembly

APPROVED = "https://approved.example/a.pdf"
OTHER = "https://other.example/x"


class TestResponseStreamAssembler:
    """Tests for ResponseStreamAssembler."""

    @pytest.mark.asyncio
    async def test_link_split_across_fragments(self, domain):
        """A link arriving after plain text ends up as one approved link and one citation."""
        backend = FakeChatBackend(scripts=[[
            Fragment(text="Voici un "),
            Fragment(text=f"[lien]({APPROVED})"),
            Fragment(citations=(APPROVED, OTHER)),
        ]])
        updates: list[str] = []

        result = await ResponseStreamAssembler(backend, domain).assemble(
            "question", on_update=lambda a: updates.append(a.rendered_markup)
        )

        tree = parse_fragment(result.markup)
        links = tree.find_all("a")
        assert [a["href"] for a in links] == [APPROVED, APPROVED]  # body link + source entry
        assert result.citations == [APPROVED]
        assert OTHER not in result.markup
        assert tree.find("div", class_="sources") is not None

        assert len(updates) == 3
        assert all(u.endswith(TYPING_CURSOR) for u in updates)
        assert TYPING_CURSOR not in result.markup

    @pytest.mark.asyncio
    async def test_partial_renders_grow_with_text(self, domain):
        backend = FakeChatBackend(scripts=[[Fragment(text="Bon"), Fragment(text="jour")]])
        seen: list[str] = []

        await ResponseStreamAssembler(backend, domain).assemble(
            "q", on_update=lambda a: seen.append(a.accumulated_text)
        )

        assert seen == ["Bon", "Bonjour"]

    @pytest.mark.asyncio
    async def test_unapproved_links_demoted_in_final_markup(self, domain):
        backend = FakeChatBackend(scripts=[[
            Fragment(text="Voir [ailleurs](https://evil.example/p) et https://approved.example/b.xhtml"),
        ]])

        result = await ResponseStreamAssembler(backend, domain).assemble("q")

        tree = parse_fragment(result.markup)
        assert [a["href"] for a in tree.find_all("a")] == ["https://approved.example/b.xhtml"]
        assert "ailleurs" in tree.get_text()
        assert "https://evil.example/p" not in result.markup

    @pytest.mark.asyncio
    async def test_no_sources_block_without_citations(self, domain):
        backend = FakeChatBackend(scripts=[[Fragment(text="Bonjour")]])
        result = await ResponseStreamAssembler(backend, domain).assemble("q")
        assert 'class="sources"' not in result.markup
        assert result.citations == []

    @pytest.mark.asyncio
    async def test_sources_label_used(self, domain):
        backend = FakeChatBackend(scripts=[[Fragment(text="x", citations=(APPROVED,))]])
        result = await ResponseStreamAssembler(backend, domain).assemble("q", sources_label="Sources")
        assert "<strong>Sources</strong>" in result.markup

    @pytest.mark.asyncio
    async def test_media_forwarded(self, domain):
        backend = FakeChatBackend(scripts=[[Fragment(text="ok")]])
        media = AttachedMedia(data="aGk=", mime_type="image/png")

        await ResponseStreamAssembler(backend, domain).assemble("q", media)

        assert backend.sent == [("q", media)]

    @pytest.mark.asyncio
    async def test_midstream_failure_discards_partial_text(self, domain):
        backend = FakeChatBackend(scripts=[[
            Fragment(text="Début"),
            httpx.ConnectError("connection refused"),
        ]])

        with pytest.raises(AssistantError) as exc_info:
            await ResponseStreamAssembler(backend, domain).assemble("q")

        assert exc_info.value.kind is ErrorKind.NETWORK
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_safety_block_keeps_kind(self, domain):
        backend = FakeChatBackend(scripts=[[ContentBlockedError("blocked by filter")]])

        with pytest.raises(ContentBlockedError) as exc_info:
            await ResponseStreamAssembler(backend, domain).assemble("q")

        assert exc_info.value.kind is ErrorKind.CONTENT_BLOCKED

    @pytest.mark.asyncio
    async def test_usage_reported_with_message(self, domain):
        usage = {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}
        backend = FakeChatBackend(scripts=[[Fragment(text="ok")]], usage=usage)

        result = await ResponseStreamAssembler(backend, domain).assemble("q")

        assert result.usage == usage

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure, level", [
        (httpx.ConnectError("connection refused"), logging.WARNING),
        (Exception("[429] RESOURCE_EXHAUSTED"), logging.WARNING),
        (Exception("[400] invalid argument"), logging.ERROR),
    ])
    async def test_failure_log_level_follows_retryability(self, domain, caplog, failure, level):
        backend = FakeChatBackend(scripts=[[failure]])

        with pytest.raises(AssistantError):
            await ResponseStreamAssembler(backend, domain).assemble("q")

        records = [r for r in caplog.records if "Stream aborted" in r.getMessage()]
        assert [r.levelno for r in records] == [level]

    @pytest.mark.asyncio
    async def test_failing_view_does_not_abort_stream(self, domain):
        backend = FakeChatBackend(scripts=[[Fragment(text="a"), Fragment(text="b")]])
        calls = []

        def closed_view(assembly: StreamingAssembly) -> None:
            calls.append(assembly.accumulated_text)
            raise RuntimeError("element detached")

        result = await ResponseStreamAssembler(backend, domain).assemble("q", on_update=closed_view)

        assert calls == ["a"]
        assert result.text == "ab"

    @pytest.mark.asyncio
    async def test_overlapping_streams_keep_separate_state(self, domain):
        """Two assemblies in flight at once never share text or citations."""
        import asyncio

        backend = FakeChatBackend(scripts=[
            [Fragment(text="un", citations=(APPROVED,)), Fragment(text=" deux")],
            [Fragment(text="résumé", citations=("https://approved.example/r",))],
        ])
        assembler = ResponseStreamAssembler(backend, domain)

        first, second = await asyncio.gather(assembler.assemble("q1"), assembler.assemble("q2"))

        assert first.text == "un deux"
        assert first.citations == [APPROVED]
        assert second.text == "résumé"
        assert second.citations == ["https://approved.example/r"]
