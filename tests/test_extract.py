"""Tests for text extraction."""
import httpx
import pytest

from ragpipe.errors import ExtractionError
from ragpipe.rag.extract import TextExtractor, html_to_text, parse_frontmatter


PAGE = """<html><head><title>ETL</title><style>p {color: red}</style></head>
<body><h1>ETL Pipeline</h1><script>var x = 1;</script>
<p>Extract, transform &amp; load.</p><!-- hidden --><p>Second<br>line</p></body></html>"""


def _transport(status=200, body=PAGE, content_type="text/html; charset=utf-8"):
    def handler(request):
        return httpx.Response(status, text=body, headers={"content-type": content_type})
    return httpx.MockTransport(handler)


class TestHtmlToText:
    """HTML conversion."""

    def test_strips_markup_scripts_and_styles(self):
        text = html_to_text(PAGE)

        assert "ETL Pipeline" in text
        assert "Extract, transform & load." in text
        assert "var x" not in text
        assert "color" not in text
        assert "hidden" not in text
        assert "<" not in text

    def test_block_tags_become_line_breaks(self):
        assert html_to_text("<p>one</p><p>two<br/>three</p>") == "one\ntwo\nthree"


class TestFrontmatter:
    """YAML frontmatter parsing."""

    def test_parses_and_strips_frontmatter(self):
        frontmatter, body = parse_frontmatter("---\ntitle: ETL\ntags: [a, b]\n---\n# Body\n")
        assert frontmatter == {"title": "ETL", "tags": ["a", "b"]}
        assert body == "# Body\n"

    def test_invalid_yaml_is_ignored(self):
        frontmatter, body = parse_frontmatter("---\ntitle: [unclosed\n---\nBody")
        assert frontmatter == {}
        assert body == "Body"

    def test_no_frontmatter(self):
        assert parse_frontmatter("plain") == ({}, "plain")


class TestTextExtractor:
    """File and URL extraction."""

    def test_reads_text_file(self, tmp_path):
        path = tmp_path / "doc.txt"
        path.write_text("plain text", encoding="utf-8")
        assert TextExtractor()(path) == "plain text"

    def test_markdown_drops_frontmatter(self, tmp_path):
        path = tmp_path / "note.md"
        path.write_text("---\ntitle: Note\n---\nBody text", encoding="utf-8")

        extractor = TextExtractor()

        assert extractor.extract(str(path)) == "Body text"
        assert extractor.read_markdown(path).frontmatter == {"title": "Note"}

    def test_html_file_is_converted(self, tmp_path):
        path = tmp_path / "page.html"
        path.write_text(PAGE, encoding="utf-8")
        assert "Extract, transform & load." in TextExtractor().extract(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ExtractionError):
            TextExtractor().extract(tmp_path / "missing.txt")

    def test_unsupported_extension_raises(self, tmp_path):
        path = tmp_path / "paper.pdf"
        path.write_bytes(b"%PDF-1.4")
        with pytest.raises(ExtractionError, match="Unsupported"):
            TextExtractor().extract(path)

    def test_undecodable_file_raises(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract(path)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_fetches_html_url(self):
        extractor = TextExtractor(transport=_transport())
        text = extractor.extract("https://example.com/etl.html")
        assert text.startswith("ETL")
        assert "Second\nline" in text

    def test_fetches_plain_text_url(self):
        extractor = TextExtractor(transport=_transport(body="raw", content_type="text/plain"))
        assert extractor.extract("http://example.com/a.txt") == "raw"

    def test_http_error_raises_extraction_error(self):
        extractor = TextExtractor(transport=_transport(status=404))
        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract("https://example.com/missing")
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    def test_connection_error_raises_extraction_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        extractor = TextExtractor(transport=httpx.MockTransport(handler))
        with pytest.raises(ExtractionError):
            extractor.extract("https://example.com/")

    def test_binary_content_type_raises(self):
        extractor = TextExtractor(
            transport=_transport(body="x", content_type="application/pdf")
        )
        with pytest.raises(ExtractionError, match="content type"):
            extractor.extract("https://example.com/doc.pdf")
