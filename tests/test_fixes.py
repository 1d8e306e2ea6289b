"""Tests for suggested fixes and applying them."""

from newline_after_block.analyzer import analyze_source
from newline_after_block.fixes import FIX_MESSAGE, apply_edits, apply_fixes, insertion_point
from newline_after_block.models import TextEdit
from newline_after_block.source import SourceFile

UNSPACED = b"""package p

func f(x int) {
	if x > 0 {
		g()
	} // note
	g()
	for {
		break
	}
	// done
}
"""

SPACED = b"""package p

func f(x int) {
	if x > 0 {
		g()
	} // note

	g()
	for {
		break
	}

	// done
}
"""


class TestInsertionPoint:
    """Tests for where the blank line goes."""

    def test_start_of_next_line(self) -> None:
        source = SourceFile("p.go", b"a\nbc\nd\n")
        assert insertion_point(source, 3) == 5

    def test_last_line_without_newline(self) -> None:
        source = SourceFile("p.go", b"a\nbc")
        assert insertion_point(source, 4) == 4

    def test_trailing_newline_is_not_a_line(self) -> None:
        source = SourceFile("p.go", b"a\nbc\n")
        assert source.line_count == 2
        assert insertion_point(source, 4) == 5


class TestApplyEdits:
    """Tests for edit application."""

    def test_edits_apply_back_to_front(self) -> None:
        edits = [TextEdit(1, 1, "X"), TextEdit(3, 3, "Y")]
        assert apply_edits(b"abcd", edits) == b"aXbcYd"

    def test_identical_edits_apply_once(self) -> None:
        edits = [TextEdit(2, 2, "\n"), TextEdit(2, 2, "\n")]
        assert apply_edits(b"ab\ncd", edits) == b"ab\n\ncd"

    def test_replacement(self) -> None:
        assert apply_edits(b"hello", [TextEdit(0, 5, "bye")]) == b"bye"


class TestApplyFixes:
    """Tests for fixing whole files."""

    def test_fix_inserts_blank_lines(self) -> None:
        diagnostics = analyze_source(UNSPACED, "p.go")
        assert len(diagnostics) == 2
        assert all(d.suggested_fixes[0].message == FIX_MESSAGE for d in diagnostics)

        assert apply_fixes(SourceFile("p.go", UNSPACED), diagnostics) == SPACED

    def test_fixed_output_is_clean(self) -> None:
        assert analyze_source(SPACED, "p.go") == []

    def test_fix_is_idempotent(self) -> None:
        diagnostics = analyze_source(UNSPACED, "p.go")
        fixed = apply_fixes(SourceFile("p.go", UNSPACED), diagnostics)
        assert apply_fixes(SourceFile("p.go", fixed), analyze_source(fixed, "p.go")) == fixed

    def test_block_at_end_of_file(self) -> None:
        content = b"package p\n\nvar h = func() {\n\tif true {\n\t}\n\t// end\n}"
        diagnostics = analyze_source(content, "p.go")
        assert [d.line for d in diagnostics] == [5]

        fixed = apply_fixes(SourceFile("p.go", content), diagnostics)
        assert fixed == b"package p\n\nvar h = func() {\n\tif true {\n\t}\n\n\t// end\n}"

    def test_overlapping_diagnostics_insert_one_line(self) -> None:
        content = b"""package p

func f(x int) {
	switch x {
	case 1:
		if x > 0 {
		}
		// next
	case 2:
	}
}
"""
        diagnostics = analyze_source(content, "p.go")
        assert len(diagnostics) == 2

        fixed = apply_fixes(SourceFile("p.go", content), diagnostics)
        assert fixed.count(b"\n\n") == content.count(b"\n\n") + 1

    def test_other_paths_are_ignored(self) -> None:
        diagnostics = analyze_source(UNSPACED, "other.go")
        assert apply_fixes(SourceFile("p.go", UNSPACED), diagnostics) == UNSPACED

    def test_to_dict(self) -> None:
        diagnostic = analyze_source(UNSPACED, "p.go")[0]
        assert diagnostic.to_dict() == {
            "posn": "p.go:6:3",
            "message": "missing newline after block statement",
            "suggested_fixes": [
                {
                    "message": FIX_MESSAGE,
                    "edits": [{"start": diagnostic.position + 9, "end": diagnostic.position + 9, "new": "\n"}],
                }
            ],
        }
