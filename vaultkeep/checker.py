"""Consistency check: unresolved links and wikilink-style links, as a Markdown report."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from .models import LinkOccurrence
from .vault.index import LinkIndex

BAD_LINKS = "Bad links"
BAD_EMBEDS = "Bad embeds"
WIKI_LINKS = "Wiki links"
WIKI_EMBEDS = "Wiki embeds"

CATEGORIES = (BAD_LINKS, BAD_EMBEDS, WIKI_LINKS, WIKI_EMBEDS)


@dataclass(frozen=True, order=True)
class Finding:
    line: int
    text: str


@dataclass
class ConsistencyReport:
    """Findings per category, grouped by source note and deduplicated."""

    findings: dict[str, dict[str, set[Finding]]] = field(
        default_factory=lambda: {c: defaultdict(set) for c in CATEGORIES}
    )

    def add(self, category: str, source: str, finding: Finding) -> None:
        self.findings[category][source].add(finding)

    def count(self, category: str) -> int:
        return sum(len(v) for v in self.findings[category].values())

    @property
    def total(self) -> int:
        return sum(self.count(c) for c in CATEGORIES)

    @property
    def problems(self) -> int:
        """Unresolved links and embeds only."""
        return self.count(BAD_LINKS) + self.count(BAD_EMBEDS)

    def render(self) -> str:
        out: list[str] = []
        for category in CATEGORIES:
            by_source = self.findings[category]
            if not by_source:
                continue
            out.append(f"# {category} ({self.count(category)} in {len(by_source)} notes)")
            out.append("")
            for source in sorted(by_source):
                out.append(f"## {source}")
                for finding in sorted(by_source[source]):
                    out.append(f"- line {finding.line}: `{finding.text}`")
                out.append("")
        if not out:
            return "No problems found.\n"
        return "\n".join(out)


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def check_note(
    report: ConsistencyReport,
    index: LinkIndex,
    note: str,
) -> None:
    text = index.tree.read_text(note)
    for occ in index.links_of(note):
        _classify(report, index, note, text, occ)


def _classify(report: ConsistencyReport, index: LinkIndex, note: str, text: str, occ: LinkOccurrence) -> None:
    finding = Finding(_line_of(text, occ.start), occ.original)
    if index.resolver.resolve(occ.link, note) is None:
        report.add(BAD_EMBEDS if occ.is_embed else BAD_LINKS, note, finding)
    if occ.is_wikilink:
        report.add(WIKI_EMBEDS if occ.is_embed else WIKI_LINKS, note, finding)

