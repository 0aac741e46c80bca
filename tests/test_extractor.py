"""Tests for HtmlExtractor — ordered strategies, truncation repair, error page."""

import pytest

from promptrelay.core.errors import GenerationIncomplete
from promptrelay.core.extractor import (
    FinishReason,
    HtmlExtractor,
    error_document,
    extract_html,
    repair_truncated,
)

DOC = "<!DOCTYPE html>\n<html><body><p>hi</p></body></html>"


@pytest.fixture
def extractor():
    return HtmlExtractor()


class TestStrategies:
    def test_doctype_span(self, extractor):
        result = extractor.extract("Here you go:\n" + DOC + "\nEnjoy!", FinishReason.STOP)
        assert result.success is True
        assert result.html == DOC
        assert result.strategy == "doctype"
        assert result.repaired is False

    def test_doctype_case_insensitive(self, extractor):
        raw = "<!doctype HTML><HTML><body></body></HTML>"
        assert extractor.extract(raw, "STOP").html == raw

    def test_stops_at_first_closing_tag(self, extractor):
        raw = DOC + "\nand again\n" + DOC
        assert extractor.extract(raw, FinishReason.STOP).html == DOC

    def test_html_tag_without_doctype(self, extractor):
        raw = 'Sure: <html lang="en"><body>x</body></html> done'
        result = extractor.extract(raw, FinishReason.STOP)
        assert result.strategy == "html_tag"
        assert result.html == '<html lang="en"><body>x</body></html>'

    def test_labelled_fence(self, extractor):
        raw = "```html\n<div>no html tag</div>\n```"
        result = extractor.extract(raw, FinishReason.STOP)
        assert result.strategy == "fence"
        assert result.html == "<div>no html tag</div>"

    def test_labelled_fence_crlf(self, extractor):
        raw = "```html\r\n<div>x</div>\r\n```"
        assert extractor.extract(raw, FinishReason.STOP).html == "<div>x</div>"

    def test_span_inside_fence_found_by_span_strategy(self, extractor):
        raw = "```html\n" + DOC + "\n```"
        assert extractor.extract(raw, FinishReason.STOP).strategy == "doctype"

    def test_stop_without_html_fails(self, extractor):
        result = extractor.extract("I can't do that.", FinishReason.STOP)
        assert result.success is False
        assert result.html is None


class TestFailFast:
    def test_other_finish_reason(self, extractor):
        result = extractor.extract(DOC, FinishReason.OTHER)
        assert result.success is False
        assert "stopped unexpectedly" in result.error

    def test_unknown_provider_string_is_other(self, extractor):
        assert extractor.extract(DOC, "SAFETY").success is False

    def test_empty_text(self, extractor):
        assert extractor.extract("   \n ", FinishReason.STOP).success is False


class TestRepair:
    def test_truncated_script_closed_in_order(self, extractor):
        raw = "<html><body><script>let x = 1;"
        result = extractor.extract(raw, FinishReason.MAX_TOKENS)
        assert result.success is True
        assert result.strategy == "repair"
        assert result.repaired is True
        assert result.html == "<html><body><script>let x = 1;\n</script>\n</body>\n</html>"

    def test_only_missing_closers_added(self, extractor):
        raw = "<html><body><script>a()</script><p>cut"
        result = extractor.extract(raw, FinishReason.MAX_TOKENS)
        assert result.html == "<html><body><script>a()</script><p>cut\n</body>\n</html>"

    def test_no_repair_without_max_tokens(self, extractor):
        raw = "<html><body><script>let x = 1;"
        assert extractor.extract(raw, FinishReason.STOP).success is False

    def test_no_repair_without_html_opening(self, extractor):
        assert extractor.extract("<div>cut", FinishReason.MAX_TOKENS).success is False

    def test_repair_trims_first(self):
        assert repair_truncated("  <html><body>\n\n") == "<html><body>\n</body>\n</html>"


class TestExtractHtml:
    def test_returns_html(self):
        assert extract_html(DOC, FinishReason.STOP) == DOC

    def test_raises_generation_incomplete(self):
        with pytest.raises(GenerationIncomplete):
            extract_html("no markup here", FinishReason.STOP)


class TestErrorDocument:
    def test_message_escaped(self):
        doc = error_document("<script>alert(1)</script>")
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in doc
        assert "<script>alert" not in doc

    def test_is_a_standalone_document(self):
        doc = error_document("boom")
        assert doc.startswith("<!DOCTYPE html>")
        assert doc.rstrip().endswith("</html>")
        assert "boom" in doc
