"""Text extraction for local files and web pages.

Handles:
- HTTP(S) fetching
- HTML to plain text conversion
- Markdown YAML frontmatter stripping
- Plain text files
"""
import html
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import httpx
import yaml
import structlog

from ragpipe import config
from ragpipe.errors import ExtractionError

logger = structlog.get_logger()

Source = Union[str, Path]

MARKDOWN_SUFFIXES = {".md", ".markdown"}
HTML_SUFFIXES = {".html", ".htm"}
TEXT_SUFFIXES = {".txt", ".text", ".rst", ".csv", ""}

URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

# Regex for YAML frontmatter (must be at start of file)
FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)

_DROP_BLOCKS = re.compile(
    r"<(script|style|noscript|head)\b[^>]*>.*?</\1\s*>|<!--.*?-->",
    re.DOTALL | re.IGNORECASE,
)
_BLOCK_BREAKS = re.compile(
    r"<br\s*/?>|</(p|div|section|article|li|tr|h[1-6]|pre|blockquote|table|ul|ol)\s*>",
    re.IGNORECASE,
)
_TAGS = re.compile(r"<[^>]+>")


@dataclass
class MarkdownDocument:
    """Parsed markdown document with frontmatter split off."""

    path: Path
    frontmatter: Dict[str, Any]
    text: str


def html_to_text(markup: str) -> str:
    """Convert an HTML page to readable plain text.

    Args:
        markup: Raw HTML

    Returns:
        Text with tags removed, entities decoded and blank runs collapsed
    """
    text = _DROP_BLOCKS.sub(" ", markup)
    text = _BLOCK_BREAKS.sub("\n", text)
    text = _TAGS.sub(" ", text)
    text = html.unescape(text)

    lines = [" ".join(line.split()) for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)

    return text.strip()


def parse_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """Extract YAML frontmatter from markdown content.

    Args:
        content: Full markdown content

    Returns:
        Tuple of (frontmatter_dict, content_without_frontmatter)
    """
    match = FRONTMATTER_PATTERN.match(content)

    if not match:
        return {}, content

    yaml_content = match.group(1)
    try:
        frontmatter = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        logger.warning(
            "frontmatter_parse_error",
            error=str(e),
            yaml_preview=yaml_content[:100],
        )
        frontmatter = None

    if not isinstance(frontmatter, dict):
        frontmatter = {}

    return frontmatter, content[match.end():]


class TextExtractor:
    """Turns a path or URL into plain text for chunking."""

    def __init__(
        self,
        timeout: float = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the extractor.

        Args:
            timeout: HTTP timeout in seconds (default from config)
            transport: Optional httpx transport, used by tests
        """
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport

    def __call__(self, source: Source) -> str:
        return self.extract(source)

    def extract(self, source: Source) -> str:
        """Extract plain text from a file path or http(s) URL.

        Args:
            source: Local path or URL

        Returns:
            Extracted text

        Raises:
            ExtractionError: If the source cannot be read or is unsupported
        """
        if isinstance(source, str) and URL_PATTERN.match(source):
            text = self._fetch_url(source)
        else:
            text = self._read_file(Path(source))

        logger.info(
            "text_extracted",
            source=str(source),
            content_length=len(text),
        )

        return text

    def read_markdown(self, file_path: Path) -> MarkdownDocument:
        """Read a markdown file, keeping its frontmatter.

        Raises:
            ExtractionError: If the file cannot be read
        """
        content = self._read_text(file_path)
        frontmatter, text = parse_frontmatter(content)
        return MarkdownDocument(path=file_path, frontmatter=frontmatter, text=text)

    def _read_file(self, file_path: Path) -> str:
        suffix = file_path.suffix.lower()

        if suffix in MARKDOWN_SUFFIXES:
            return self.read_markdown(file_path).text
        if suffix in HTML_SUFFIXES:
            return html_to_text(self._read_text(file_path))
        if suffix in TEXT_SUFFIXES:
            return self._read_text(file_path)

        logger.error("unsupported_source_type", path=str(file_path), suffix=suffix)
        raise ExtractionError(f"Unsupported file type '{suffix}': {file_path}")

    def _read_text(self, file_path: Path) -> str:
        if not file_path.is_file():
            raise ExtractionError(f"Source file not found: {file_path}")

        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("source_read_error", path=str(file_path), error=str(e))
            raise ExtractionError(f"Failed to read {file_path}: {e}") from e

    def _fetch_url(self, url: str) -> str:
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("source_fetch_error", url=url, error=str(e))
            raise ExtractionError(f"Failed to fetch {url}: {e}") from e

        content_type = response.headers.get("content-type", "")

        logger.debug(
            "source_fetched",
            url=url,
            status_code=response.status_code,
            content_type=content_type,
        )

        if "html" in content_type.lower():
            return html_to_text(response.text)
        if content_type and not content_type.lower().startswith("text/"):
            raise ExtractionError(f"Unsupported content type '{content_type}': {url}")

        return response.text
