"""Link extraction from note text, with exact offsets."""

import json
import re
from urllib.parse import unquote

from ..errors import ContainerParseError
from ..models import LinkOccurrence, LinkRelation, LinkStyle

# ![[target#sub|alias]] - alias may contain anything but brackets
WIKILINK_PATTERN = re.compile(r"(!?)\[\[([^\[\]\n]+?)\]\]")

# ![text](<target> "title") - text without nested brackets, target bare or <angled>
MARKDOWN_LINK_PATTERN = re.compile(
    r"(!?)\[((?:\\.|[^\[\]\n])*)\]"
    r"\(\s*(<[^>\n]*>|[^)\s]+)"
    r"(\s+(?:\"[^\"\n]*\"|'[^'\n]*'))?\s*\)"
)

FRONTMATTER_PATTERN = re.compile(r"\A---\r?\n.*?\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
FENCE_PATTERN = re.compile(r"^[ \t]*(```|~~~).*?(?:^[ \t]*\1[^\n]*$|\Z)", re.MULTILINE | re.DOTALL)
INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")

# scheme: (http:, mailto:, obsidian:, ...)
EXTERNAL_URL_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def _code_spans(text: str) -> list[tuple[int, int]]:
    spans = []
    match = FRONTMATTER_PATTERN.match(text)
    if match:
        spans.append(match.span())
    spans.extend(m.span() for m in FENCE_PATTERN.finditer(text))
    spans.extend(m.span() for m in INLINE_CODE_PATTERN.finditer(text))
    return spans


def _overlaps(start: int, end: int, spans: list[tuple[int, int]]) -> bool:
    return any(start < s_end and s_start < end for s_start, s_end in spans)


def is_external(target: str) -> bool:
    return bool(EXTERNAL_URL_PATTERN.match(target))


def _wikilink(match: re.Match) -> LinkOccurrence | None:
    inner = match.group(2)
    # [[a\|b]] inside tables escapes the pipe
    target, sep, alias = inner.replace("\\|", "|").partition("|")
    target = target.strip()
    if not target:
        return None
    return LinkOccurrence(
        start=match.start(),
        end=match.end(),
        original=match.group(0),
        style=LinkStyle.WIKILINK,
        relation=LinkRelation.EMBED if match.group(1) else LinkRelation.LINK,
        link=target,
        raw_link=target,
        alias=alias if sep else None,
    )


def _markdown_link(match: re.Match) -> LinkOccurrence | None:
    raw = match.group(3)
    if raw.startswith("<") and raw.endswith(">"):
        raw = raw[1:-1]
    if not raw or raw.startswith("#") or is_external(raw):
        return None
    return LinkOccurrence(
        start=match.start(),
        end=match.end(),
        original=match.group(0),
        style=LinkStyle.MARKDOWN,
        relation=LinkRelation.EMBED if match.group(1) else LinkRelation.LINK,
        link=unquote(raw),
        raw_link=raw,
        alias=match.group(2),
        title=match.group(4),
    )


def extract_links(text: str) -> list[LinkOccurrence]:
    """All wikilink and markdown link occurrences, ordered by offset.

    Links inside frontmatter, fenced code and inline code are ignored, as are
    external URLs and page-local `#anchor` markdown links.
    """
    skip = _code_spans(text)
    found: list[LinkOccurrence] = []
    taken: list[tuple[int, int]] = []

    for match in WIKILINK_PATTERN.finditer(text):
        if _overlaps(match.start(), match.end(), skip):
            continue
        occurrence = _wikilink(match)
        if occurrence:
            found.append(occurrence)
            taken.append(match.span())

    for match in MARKDOWN_LINK_PATTERN.finditer(text):
        if _overlaps(match.start(), match.end(), skip + taken):
            continue
        occurrence = _markdown_link(match)
        if occurrence:
            found.append(occurrence)

    found.sort(key=lambda o: o.start)
    return found


def parse_canvas(text: str, path: str = "") -> dict:
    """Decode a canvas board; raises ContainerParseError on malformed content."""
    try:
        data = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError as e:
        raise ContainerParseError(path, str(e)) from e
    if not isinstance(data, dict) or not isinstance(data.get("nodes", []), list):
        raise ContainerParseError(path, "expected an object with a 'nodes' list")
    return data


def serialize_canvas(data: dict) -> str:
    return json.dumps(data, indent="\t", ensure_ascii=False)


def canvas_file_refs(data: dict) -> list[str]:
    """Vault paths held by `file` nodes, in node order."""
    refs = []
    for node in data.get("nodes", []):
        if isinstance(node, dict) and node.get("type") == "file" and isinstance(node.get("file"), str):
            refs.append(node["file"])
    return refs
