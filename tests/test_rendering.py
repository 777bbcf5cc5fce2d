"""Unit tests for Markdown rendering, link sanitization and citations."""
import pytest
from hypothesis import given
from hypothesis import strategies as st

from khadija.rendering import (
    TYPING_CURSOR,
    ApprovedDomain,
    CitationSet,
    LinkSanitizer,
    MarkdownRenderer,
    extract_speech_text,
    html_to_text,
    parse_fragment,
    render_sources_block,
)

APPROVED = "https://approved.example/a.pdf"


class TestApprovedDomain:
    """Tests for the prefix provenance check."""

    def test_accepts_https_and_http(self, domain):
        assert domain.matches("https://approved.example/cours/math.pdf")
        assert domain.matches("http://approved.example/")

    def test_rejects_other_hosts(self, domain):
        assert not domain.matches("https://evil.example/approved.example/")
        assert not domain.matches("ftp://approved.example/a.pdf")
        assert not domain.matches("//approved.example/a.pdf")

    def test_rejects_missing_url(self, domain):
        assert not domain.matches(None)
        assert not domain.matches("")

    def test_trailing_slash_added(self):
        domain = ApprovedDomain("approved.example")
        assert domain.domain == "approved.example/"
        assert not domain.matches("https://approved.example.attacker.net/x")

    def test_scheme_rejected(self):
        with pytest.raises(ValueError):
            ApprovedDomain("https://approved.example/")

    def test_comparison_is_case_sensitive(self, domain):
        assert not domain.matches("HTTPS://approved.example/a.pdf")

    def test_default_is_senprof(self):
        assert ApprovedDomain().prefixes == (
            "https://senprof.education.sn/",
            "http://senprof.education.sn/",
        )


class TestMarkdownRenderer:
    """Tests for MarkdownRenderer."""

    def test_link_gets_new_tab_attributes(self):
        markup = MarkdownRenderer().render(f"[lien]({APPROVED})")
        assert f'href="{APPROVED}"' in markup
        assert 'target="_blank"' in markup
        assert 'rel="noopener noreferrer"' in markup

    def test_raw_html_is_escaped(self):
        markup = MarkdownRenderer().render("<script>alert(1)</script>")
        assert "<script>" not in markup
        assert "&lt;script&gt;" in markup

    def test_partial_render_ends_with_cursor(self):
        markup = MarkdownRenderer().render_partial("Voici un ")
        assert markup.endswith(TYPING_CURSOR)
        assert markup.startswith("<p>Voici un")

    def test_tables_enabled(self):
        markup = MarkdownRenderer().render("| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in markup

    @given(st.integers(min_value=0, max_value=len(f"Voici un [lien]({APPROVED}) utile")))
    def test_split_point_does_not_change_final_render(self, cut: int):
        """Property test: a link split across fragments renders as if whole."""
        renderer = MarkdownRenderer()
        text = f"Voici un [lien]({APPROVED}) utile"
        first, second = text[:cut], text[cut:]

        renderer.render_partial(first)
        assert renderer.render(first + second) == renderer.render(text)

    @given(st.text(max_size=200))
    def test_partial_render_of_any_prefix_is_parseable(self, text: str):
        """Property test: partial renders never raise."""
        markup = MarkdownRenderer().render_partial(text)
        assert markup.endswith(TYPING_CURSOR)


class TestLinkSanitizer:
    """Tests for the linkify and domain filter passes."""

    def test_bare_approved_url_becomes_anchor(self, domain):
        markup = LinkSanitizer(domain).sanitize_html(f"<p>Voir {APPROVED} pour plus.</p>")
        tree = parse_fragment(markup)
        links = tree.find_all("a")
        assert len(links) == 1
        assert links[0]["href"] == APPROVED
        assert links[0].get_text() == APPROVED
        assert tree.get_text() == f"Voir {APPROVED} pour plus."

    def test_unapproved_anchor_demoted_to_text(self, domain):
        markup = LinkSanitizer(domain).sanitize_html(
            '<p>Un <a href="https://evil.example/x">autre site</a> ici</p>'
        )
        tree = parse_fragment(markup)
        assert tree.find("a") is None
        assert tree.get_text() == "Un autre site ici"

    def test_bare_unapproved_url_left_as_text(self, domain):
        markup = LinkSanitizer(domain).sanitize_html("<p>https://evil.example/page</p>")
        tree = parse_fragment(markup)
        assert tree.find("a") is None
        assert tree.get_text() == "https://evil.example/page"

    def test_anchor_without_href_demoted(self, domain):
        markup = LinkSanitizer(domain).sanitize_html("<p><a>nulle part</a></p>")
        assert "<a" not in markup
        assert "nulle part" in markup

    @pytest.mark.parametrize("label", ["", " "])
    def test_unapproved_anchor_without_text_leaves_no_url(self, domain, label):
        rendered = MarkdownRenderer().render(f"Voir [{label}](https://evil.example/x) ici")
        markup = LinkSanitizer(domain).sanitize_html(rendered)
        assert "evil.example" not in markup
        assert parse_fragment(markup).find("a") is None

    def test_empty_unapproved_html_anchor_dropped(self, domain):
        markup = LinkSanitizer(domain).sanitize_html('<p>a<a href="https://evil.example/x"></a>b</p>')
        assert parse_fragment(markup).get_text() == "ab"

    def test_text_in_button_not_linkified(self, domain):
        sanitizer = LinkSanitizer(domain)
        tree = parse_fragment(f"<button>{APPROVED}</button>")
        assert sanitizer.linkify(tree) == 0

    def test_linkify_stops_at_punctuation_from_pattern(self, domain):
        tree = parse_fragment(f"<p>({APPROVED})</p>")
        LinkSanitizer(domain).linkify(tree)
        assert tree.find("a")["href"] == APPROVED

    def test_multiple_urls_in_one_text_node(self, domain):
        tree = parse_fragment(f"<p>{APPROVED} et https://approved.example/b.xhtml</p>")
        created = LinkSanitizer(domain).linkify(tree)
        assert created == 2
        assert [a["href"] for a in tree.find_all("a")] == [APPROVED, "https://approved.example/b.xhtml"]

    def test_sanitize_is_idempotent(self, domain):
        sanitizer = LinkSanitizer(domain)
        once = sanitizer.sanitize_html(
            f'<p>{APPROVED} <a href="https://evil.example/">x</a> <a href="{APPROVED}">y</a></p>'
        )
        assert sanitizer.sanitize_html(once) == once

    @given(st.lists(st.sampled_from([
        APPROVED,
        "https://evil.example/a",
        "http://approved.example/b",
        "mailto:someone@example.org",
        "",
    ]), max_size=6))
    def test_only_approved_anchors_survive(self, hrefs: list[str]):
        """Property test: every surviving anchor has an approved href."""
        domain = ApprovedDomain("approved.example/")
        body = " ".join(f'<a href="{href}">lien {i}</a>' for i, href in enumerate(hrefs))
        tree = parse_fragment(LinkSanitizer(domain).sanitize_html(f"<p>{body}</p>"))
        for link in tree.find_all("a"):
            assert domain.matches(link["href"])


class TestCitationSet:
    """Tests for citation admission and ordering."""

    def test_filters_and_deduplicates(self, domain):
        citations = CitationSet(domain, [
            APPROVED,
            "https://evil.example/x",
            APPROVED,
            "http://approved.example/b",
        ])
        assert citations.to_list() == [APPROVED, "http://approved.example/b"]

    def test_add_reports_novelty(self, domain):
        citations = CitationSet(domain)
        assert citations.add(APPROVED)
        assert not citations.add(APPROVED)
        assert not citations.add("https://evil.example/")
        assert len(citations) == 1
        assert APPROVED in citations

    @given(st.lists(st.sampled_from([
        "https://approved.example/a",
        "https://approved.example/b",
        "https://approved.example/c",
        "https://other.example/a",
    ])))
    def test_first_occurrence_order(self, urls: list[str]):
        """Property test: unique, approved, ordered by first occurrence."""
        domain = ApprovedDomain("approved.example/")
        result = CitationSet(domain, urls).to_list()
        expected = list(dict.fromkeys(u for u in urls if domain.matches(u)))
        assert result == expected

    def test_sources_block(self):
        block = render_sources_block([APPROVED], "Source(s) :")
        tree = parse_fragment(block)
        container = tree.find("div", class_="sources")
        assert container.strong.get_text() == "Source(s) :"
        assert container.find("a")["href"] == APPROVED
        assert container.find("a")["target"] == "_blank"

    def test_sources_block_escapes_urls(self):
        block = render_sources_block(['https://approved.example/a"b'], "S")
        assert 'href="https://approved.example/a&quot;b"' in block


class TestTextExtraction:
    def test_speech_text_skips_sources_and_controls(self):
        markup = (
            "<p>Bonjour</p>"
            '<div class="sources"><strong>Source(s) :</strong><ul><li>x</li></ul></div>'
            '<div class="interactive-elements"><button>🔖</button></div>'
        )
        assert extract_speech_text(markup) == "Bonjour"

    def test_html_to_text_unescapes(self):
        assert html_to_text("<p>a &amp; b</p>") == "a & b"
