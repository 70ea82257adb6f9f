"""Check command - report unresolved links and wikilink-style links."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..bulk import check_consistency
from ..checker import BAD_EMBEDS, BAD_LINKS, CATEGORIES
from .common import audit, open_vault, vault_relative


def run_check(vault_path: Path, out: str | None = None, strict: bool = False) -> int:
    """
    Scan every note and (over)write the consistency report.

    Returns 1 in strict mode when unresolved links or embeds were found.
    """
    console = Console(stderr=True)
    vault = open_vault(vault_path)
    report_path = vault_relative(vault, out) if out else vault.settings.consistency_report_file

    report, result = check_consistency(vault, report_path=report_path)

    table = Table(title=f"Consistency ({result.processed} notes)")
    table.add_column("Category", style="bold")
    table.add_column("Findings", justify="right")
    table.add_column("Notes", justify="right")
    for category in CATEGORIES:
        count = report.count(category)
        style = "red" if count and category in (BAD_LINKS, BAD_EMBEDS) else None
        table.add_row(category, str(count), str(len(report.findings[category])), style=style)
    console.print(table)
    console.print(f"Report written to {report_path}", style="green")

    audit(vault, "check", [], report=report_path, findings=report.total)

    if strict and report.problems:
        return 1
    return 0
