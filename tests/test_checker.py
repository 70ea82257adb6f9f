"""Tests for the consistency report."""

from vaultkeep.bulk import check_consistency
from vaultkeep.checker import BAD_EMBEDS, BAD_LINKS, WIKI_EMBEDS, WIKI_LINKS


NOTE = "[[missing]]\n![[gone.png]]\n[[b]]\n[x](nope.md)\n[[missing]]\n"


def test_findings_are_classified(make_vault):
    vault = make_vault({"a.md": NOTE, "b.md": ""})

    report, result = check_consistency(vault)

    assert result.processed == 2
    assert report.count(BAD_LINKS) == 3
    assert report.count(BAD_EMBEDS) == 1
    assert report.count(WIKI_LINKS) == 3
    assert report.count(WIKI_EMBEDS) == 1
    assert set(report.findings[BAD_LINKS]) == {"a.md"}


def test_report_is_written_and_sorted(make_vault):
    vault = make_vault({"z.md": "[[nowhere]]", "a.md": NOTE, "b.md": ""})

    check_consistency(vault)

    text = (vault.path / "consistency-report.md").read_text(encoding="utf-8")
    assert text.index("# Bad links") < text.index("# Bad embeds") < text.index("# Wiki links")
    assert text.index("## a.md") < text.index("## z.md")
    assert "- line 1: `[[missing]]`" in text
    assert "- line 4: `[x](nope.md)`" in text


def test_report_file_is_not_scanned(make_vault):
    vault = make_vault({"a.md": "[[missing]]"})
    check_consistency(vault)
    report, result = check_consistency(vault)
    assert result.processed == 1
    assert report.count(WIKI_LINKS) == 1


def test_clean_vault(make_vault):
    vault = make_vault({"a.md": "[b](b.md)", "b.md": ""})
    report, _ = check_consistency(vault)
    assert report.total == 0
    assert report.render() == "No problems found.\n"


def test_cancel_between_notes(make_vault):
    vault = make_vault({"a.md": "", "b.md": "", "c.md": ""})
    calls = []

    def should_cancel() -> bool:
        calls.append(1)
        return len(calls) > 2

    _, result = check_consistency(vault, should_cancel=should_cancel)
    assert result.processed == 2
    assert result.cancelled
    assert not (vault.path / "consistency-report.md").exists()
