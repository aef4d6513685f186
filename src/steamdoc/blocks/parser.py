"""Markdown parser and renderer for the block model.

This module lowers markdown into a flat, ordered list of typed blocks and
renders blocks back to markdown. Only four block types exist: headings,
paragraphs, list items and code. Everything else is folded or dropped
(see _lower_other).
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import structlog
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from steamdoc.models.block import Block, sort_blocks
from steamdoc.utils.ids import IdFactory, generate_block_id

logger = structlog.get_logger()

_md = MarkdownIt("commonmark")

LIST_INDENT = "  "

# Inline characters that may open markup anywhere in a line
_INLINE_SPECIAL = re.compile(r"([\\`*_\[<])")
_ENTITY_LIKE = re.compile(r"&(?=#?[0-9A-Za-z]+;)")

# Line openers that would start a different block
_BLOCK_OPENERS = (
    re.compile(r"^(#{1,6})(?=\s|$)", re.MULTILINE),
    re.compile(r"^([>])", re.MULTILINE),
    re.compile(r"^([+-])(?=\s|$)", re.MULTILINE),
    re.compile(r"^(-)(?=[-\s]*$)", re.MULTILINE),
    re.compile(r"^(=)(?=[=\s]*$)", re.MULTILINE),
    re.compile(r"^(~)(?=~~)", re.MULTILINE),
)
_ORDERED_MARKER = re.compile(r"^(\d{1,9})([.)])(?=\s|$)", re.MULTILINE)
_ATX_CLOSING = re.compile(r"(\s)(#+\s*)$")


@dataclass
class ParseResult:
    """Result of parsing markdown into blocks.

    Attributes:
        blocks: Blocks in document order, with dense orders 0..N-1
        markdown: The markdown that was parsed
    """

    blocks: list[Block] = field(default_factory=list)
    markdown: str = ""


@dataclass
class _Lowering:
    """Accumulates blocks while walking the syntax tree."""

    id_factory: IdFactory
    blocks: list[Block] = field(default_factory=list)

    def emit(self, block_type: str, content: str, level: Optional[int] = None,
             lang: Optional[str] = None) -> None:
        self.blocks.append(
            Block(
                id=self.id_factory(),
                type=block_type,
                content=content,
                order=len(self.blocks),
                level=level,
                lang=lang,
            )
        )


def parse_markdown(markdown: Optional[str], id_factory: Optional[IdFactory] = None) -> ParseResult:
    """Parse markdown into an ordered list of blocks.

    IMPORTANT: IDs are freshly generated on every call. Parsing is not
    identity-preserving; use the block operations to edit while keeping IDs.

    Lowering rules:

    - Heading -> one 'heading' block, level = depth, content = inline text
    - Paragraph -> one 'paragraph' block, inline markup collapsed to text
      (dropped when no text remains)
    - List (any kind, nested) -> one 'list-item' block per item, level = depth
    - Fenced/indented code -> one 'code' block, content = body, lang = info word
    - Anything else -> folded into a paragraph if it has text, else dropped

    Never raises; empty or whitespace-only input gives zero blocks.

    Args:
        markdown: Markdown text (None is treated as empty)
        id_factory: Callable producing block IDs (default: random block-<hex>)

    Returns:
        ParseResult with blocks and the source markdown

    Examples:
        >>> result = parse_markdown("# Title\\n\\n## Subtitle")
        >>> [(b.type, b.level, b.content) for b in result.blocks]
        [('heading', 1, 'Title'), ('heading', 2, 'Subtitle')]
    """
    markdown = markdown or ""
    if not markdown.strip():
        return ParseResult(blocks=[], markdown=markdown)

    lowering = _Lowering(id_factory=id_factory or generate_block_id)
    tree = SyntaxTreeNode(_md.parse(markdown))

    for node in tree.children:
        _lower_node(node, lowering)

    logger.debug("markdown_parsed", blocks=len(lowering.blocks), chars=len(markdown))
    return ParseResult(blocks=lowering.blocks, markdown=markdown)


def _lower_node(node: SyntaxTreeNode, lowering: _Lowering) -> None:
    """Lower one top-level syntax node into zero or more blocks."""
    if node.type == "heading":
        content = " ".join(_text_lines(_inline_text(node)))
        lowering.emit("heading", content, level=int(node.tag[1:]))
    elif node.type in ("bullet_list", "ordered_list"):
        _lower_list(node, lowering, depth=0)
    elif node.type in ("fence", "code_block"):
        lowering.emit("code", _code_body(node), lang=_code_lang(node))
    else:
        _lower_other(node, lowering)


def _lower_list(list_node: SyntaxTreeNode, lowering: _Lowering, depth: int) -> None:
    """Emit one block per list item, depth-first.

    An item's own text (everything except nested lists) becomes its content;
    its nested lists follow it at depth + 1. Items with no own text emit
    nothing, and their nested items take the empty item's depth so a level
    never exceeds the previous emitted item's level + 1.
    """
    for item in list_node.children:
        if item.type != "list_item":
            continue

        lines = []
        nested_lists = []
        for child in item.children:
            if child.type in ("bullet_list", "ordered_list"):
                nested_lists.append(child)
            else:
                lines.extend(_text_lines(_inline_text(child)))

        child_depth = depth
        if lines:
            lowering.emit("list-item", "\n".join(lines), level=depth)
            child_depth = depth + 1

        for nested in nested_lists:
            _lower_list(nested, lowering, child_depth)


def _lower_other(node: SyntaxTreeNode, lowering: _Lowering) -> None:
    """Emit a paragraph, folding unsupported nodes (blockquote, html, ...) into one.

    Nodes with no text at all (thematic breaks, empty paragraphs) are dropped.
    """
    lines = _text_lines(_inline_text(node))
    if lines:
        lowering.emit("paragraph", "\n".join(lines))


def _text_lines(text: str) -> list[str]:
    """Split flattened text into stripped, non-empty lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def _inline_text(node: SyntaxTreeNode) -> str:
    """Flatten a node to plain text (markup dropped, breaks become newlines)."""
    if node.type in ("softbreak", "hardbreak"):
        return "\n"
    if node.children:
        separator = "\n" if all(child.block for child in node.children) else ""
        return separator.join(_inline_text(child) for child in node.children)
    if node.type in ("text", "code_inline", "html_inline", "html_block"):
        return node.content
    if node.type in ("fence", "code_block"):
        return _code_body(node)
    return ""


def _code_body(node: SyntaxTreeNode) -> str:
    """Return a code node's body without its final newline."""
    body = node.content
    if body.endswith("\n"):
        body = body[:-1]
    return body


def _code_lang(node: SyntaxTreeNode) -> Optional[str]:
    """Return the first word of a fence's info string, or None."""
    if node.type != "fence":
        return None
    info = node.info.strip()
    return info.split()[0] if info else None


def _fence_for(body: str) -> str:
    """Pick a backtick fence longer than any backtick run inside the body."""
    longest = run = 0
    for char in body:
        run = run + 1 if char == "`" else 0
        longest = max(longest, run)
    return "`" * max(3, longest + 1)


def escape_markdown(text: str) -> str:
    """Backslash-escape text so it parses back as the same plain text.

    Escapes inline openers everywhere and block openers (ATX hashes, quote
    marks, bullets, ordered markers, setext underlines, tilde fences) at the
    start of each line.

    Examples:
        >>> escape_markdown("Call __init__ first")
        'Call \\\\_\\\\_init\\\\_\\\\_ first'
        >>> escape_markdown("1. not a list")
        '1\\\\. not a list'
    """
    text = _INLINE_SPECIAL.sub(r"\\\1", text)
    text = _ENTITY_LIKE.sub(r"\\&", text)
    for opener in _BLOCK_OPENERS:
        text = opener.sub(r"\\\1", text)
    return _ORDERED_MARKER.sub(r"\1\\\2", text)


def render_block(block: Block) -> str:
    """Render a single block to markdown.

    Text content is escaped so parsing the result yields the same content.

    Args:
        block: Block to render

    Returns:
        Markdown for the block, without surrounding blank lines
    """
    if block.type == "code":
        fence = _fence_for(block.content)
        return f"{fence}{block.lang or ''}\n{block.content}\n{fence}"

    text = escape_markdown(block.content)
    if block.type == "heading":
        text = _ATX_CLOSING.sub(r"\1\\\2", text.replace("\n", " "))
        return f"{'#' * (block.level or 1)} {text}"
    if block.type == "list-item":
        indent = LIST_INDENT * (block.level or 0)
        continuation = "\n" + indent + LIST_INDENT
        return f"{indent}- {continuation.join(text.splitlines())}"
    return text


def blocks_to_markdown(blocks: list[Block]) -> str:
    """Render blocks back to markdown.

    Blocks are rendered in order and separated by a blank line, except
    consecutive list items which are separated by a single newline so
    lists stay tight. Inline formatting lost during parsing is not restored;
    structure (type, content, level) round-trips.

    Args:
        blocks: Blocks to render (any order; sorted by their order field)

    Returns:
        Markdown text with no leading or trailing newlines
    """
    parts: list[str] = []
    previous: Optional[Block] = None

    for block in sort_blocks(blocks):
        if previous is not None:
            tight = previous.type == "list-item" and block.type == "list-item"
            parts.append("\n" if tight else "\n\n")
        parts.append(render_block(block))
        previous = block

    return "".join(parts).strip("\n")
