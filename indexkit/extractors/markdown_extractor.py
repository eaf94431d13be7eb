"""
Markdown document extractor using markdown-it-py.

Parses Markdown into a syntax tree (CommonMark plus tables, strikethrough,
footnotes, bare-URL links, task lists and definition lists), takes the
first heading as title, flattens the rendered HTML into plain text,
resolves image references and computes structural metadata such as
heading counts and a table of contents.
"""

import logging
import re
from collections import Counter
from pathlib import Path
from typing import ClassVar
from urllib.parse import unquote, urlsplit

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from indexkit.extractors.base import DocumentExtractor, ExtractionError
from indexkit.models import FileType, NormalizedRecord

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<.*?>")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Applied in order: &amp; must come after the entities it could spell out
HTML_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
)

# Inline node types whose text is part of a heading's label
_TEXT_CONTAINERS = frozenset({"link", "em", "strong", "s"})


def build_parser() -> MarkdownIt:
    """Create the Markdown parser used for both tree parsing and HTML rendering."""
    md = (
        MarkdownIt("commonmark", {"linkify": True})
        .enable(["table", "strikethrough", "linkify"])
        .use(footnote_plugin)
        .use(tasklists_plugin)
        .use(deflist_plugin)
    )
    # Link targets are recorded, never followed: keep every scheme, file: and data: included
    md.validateLink = lambda url: True
    return md


def strip_html(html: str) -> str:
    """
    Flatten rendered HTML into a single line of plain text.

    Tags become spaces, the common entities are decoded and whitespace
    runs collapse to one space.
    """
    if not html or not html.strip():
        return ""

    text = TAG_PATTERN.sub(" ", html)
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)

    return WHITESPACE_PATTERN.sub(" ", text).strip()


def inline_text(node: SyntaxTreeNode) -> str:
    """
    Concatenate the literal text under a block or inline node.

    Plain text, inline code and the labels of links are kept. Text inside
    emphasis, strong emphasis and strikethrough is kept as well, so a
    heading like ``# The *new* plan`` reads "The new plan" rather than
    "The  plan". Images and raw HTML are dropped.
    """
    parts: list[str] = []

    for child in node.children:
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append(" ")
        elif child.type == "inline" or child.type in _TEXT_CONTAINERS:
            parts.append(inline_text(child))

    return "".join(parts)


def is_absolute_uri(url: str) -> bool:
    """True for URLs with a scheme (``https:``, ``data:``, ...); drive letters don't count."""
    scheme = urlsplit(url).scheme
    return len(scheme) > 1


class MarkdownExtractor(DocumentExtractor):
    """
    Extracts a normalized record from Markdown files (.md).

    Markdown embeds no binary payloads, so image references are recorded as
    resolved paths and nothing is written to the output directory.
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".md",)
    FILE_TYPE: ClassVar[FileType] = FileType.MD

    # Encodings to try in order of preference
    ENCODINGS: ClassVar[tuple[str, ...]] = ("utf-8-sig", "cp1252")

    def __init__(self) -> None:
        super().__init__()
        self._parser = build_parser()

    def extract(self, file_path: Path, output_dir: Path) -> NormalizedRecord:
        """
        Extract title, text, image references and structure from Markdown.

        Args:
            file_path: Path to the .md file.
            output_dir: Asset directory; created for consistency with the
                other extractors but not written to.

        Returns:
            NormalizedRecord for the document.

        Raises:
            ExtractionError: If the file cannot be read or parsed.
        """
        self._validate_file(file_path)
        self._prepare_output(file_path, output_dir)

        record = self._create_record(file_path)
        source = self._read_with_encoding_fallback(file_path)

        try:
            env: dict = {}
            tokens = self._parser.parse(source, env)
            tree = SyntaxTreeNode(tokens)
            headings = [node for node in tree.walk() if node.type == "heading"]

            self._extract_title(headings, record)
            record.content = strip_html(self._parser.renderer.render(tokens, self._parser.options, env))
            self._extract_image_references(tree, file_path, record)
            self._extract_metadata(tree, headings, record)

        except Exception as e:
            raise ExtractionError(f"Unexpected error: {e}", file_path, cause=e) from e

        self._finish(file_path)
        return record

    def _read_with_encoding_fallback(self, file_path: Path) -> str:
        """
        Read file content with encoding fallback.

        Raises:
            ExtractionError: If no encoding works or the file is unreadable.
        """
        last_error: Exception | None = None

        for encoding in self.ENCODINGS:
            try:
                return file_path.read_text(encoding=encoding)
            except UnicodeDecodeError as e:
                last_error = e
                continue
            except OSError as e:
                raise ExtractionError("File could not be read", file_path, cause=e) from e

        raise ExtractionError(
            f"Could not decode file with any supported encoding: {self.ENCODINGS}",
            file_path,
            cause=last_error,
        )

    def _extract_title(self, headings: list[SyntaxTreeNode], record: NormalizedRecord) -> None:
        """Use the first heading's text as the title when it is non-blank."""
        if not headings:
            return

        heading_text = inline_text(headings[0])
        if heading_text.strip():
            record.title = heading_text.strip()

    def _extract_image_references(self, tree: SyntaxTreeNode, file_path: Path, record: NormalizedRecord) -> None:
        """
        Record every image reference in document order.

        Relative references are resolved against the Markdown file's
        directory; absolute URIs are kept as written.
        """
        base_dir = file_path.resolve().parent

        for node in tree.walk():
            if node.type != "image":
                continue

            url = str(node.attrs.get("src") or "")
            if not url.strip():
                continue

            if is_absolute_uri(url):
                record.images.append(url)
            else:
                record.images.append(str((base_dir / unquote(url)).resolve()))

    def _extract_metadata(
        self,
        tree: SyntaxTreeNode,
        headings: list[SyntaxTreeNode],
        record: NormalizedRecord,
    ) -> None:
        """Count headings, code blocks, links and images; build the table of contents."""
        record.metadata["HeadingCount"] = str(len(headings))

        levels = Counter(self._heading_level(heading) for heading in headings)
        for level, count in sorted(levels.items()):
            record.metadata[f"H{level}Count"] = str(count)

        code_blocks = sum(1 for node in tree.walk() if node.type in ("fence", "code_block"))
        record.metadata["CodeBlockCount"] = str(code_blocks)

        links = sum(1 for node in tree.walk() if node.type == "link")
        record.metadata["LinkCount"] = str(links)

        record.metadata["ImageCount"] = str(len(record.images))

        toc_entries: list[str] = []
        for heading in headings:
            heading_text = inline_text(heading).strip()
            if heading_text:
                indent = "  " * (self._heading_level(heading) - 1)
                toc_entries.append(f"{indent}- {heading_text}")

        if toc_entries:
            record.metadata["TableOfContents"] = "\n".join(toc_entries)

    @staticmethod
    def _heading_level(heading: SyntaxTreeNode) -> int:
        return int(heading.tag[1:])
