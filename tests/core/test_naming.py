"""Tests for record filename generation."""

import pytest

from recordsync.core.naming import (
    is_record_filename,
    parse_record_filename,
    record_filename,
    sanitize_segment,
)
from recordsync.core.types import Record


class TestSanitizeSegment:
    """Tests for sanitize_segment()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("PLA", "PLA"),
            ("Prusa™ Research", "PrusaResearch"),
            ("Red/Blue", "RedBlue"),
            ('a\\b:c*d?e"f<g>h|i', "abcdefghi"),
            ("Galaxy Black", "GalaxyBlack"),
            ("Café_Crème", "CafCrme"),
            ("silk-gold", "silk-gold"),
            (175, "175"),
        ],
    )
    def test_strips_unsafe_characters(self, value: object, expected: str) -> None:
        assert sanitize_segment(value) == expected

    def test_empty_result_uses_placeholder(self) -> None:
        """Segments that sanitize to nothing fall back to the placeholder."""
        assert sanitize_segment("???") == "Unknown"
        assert sanitize_segment(None, placeholder="NoColor") == "NoColor"

    def test_caps_length(self) -> None:
        assert sanitize_segment("a" * 250) == "a" * 100
        assert sanitize_segment("abcdef", max_length=3) == "abc"


class TestRecordFilename:
    """Tests for record_filename()."""

    def test_uses_name_fields_and_key(self) -> None:
        record = Record("S1", {"type": "PLA", "brand": "Prusa", "color": "Galaxy Black"})

        assert record_filename(record) == "PLA-Prusa-GalaxyBlack-S1.json"

    def test_missing_fields_use_placeholders(self) -> None:
        assert record_filename(Record("S1")) == "Unknown-Unknown-NoColor-S1.json"

    def test_custom_name_fields(self) -> None:
        record = Record("k1", {"kind": "book", "author": "Le Guin", "series": "Earthsea"})

        filename = record_filename(record, ("kind", "author", "series"))

        assert filename == "book-LeGuin-Earthsea-k1.json"


class TestParseRecordFilename:
    """Tests for parse_record_filename()."""

    def test_four_segments(self) -> None:
        assert parse_record_filename("PLA-Prusa-Red-S1.json") == ("PLA", "Prusa", "Red", "S1")

    def test_hyphenated_middle_is_halved(self) -> None:
        """Extra hyphens are split evenly between group and subgroup."""
        result = parse_record_filename("PLA-abc-de-fg-S1.json")

        assert result is not None
        category, group, subgroup, key = result
        assert (category, key) == ("PLA", "S1")
        assert group + subgroup == "abc-de-fg"
        assert len(group) == len("abc-de-fg") // 2

    @pytest.mark.parametrize("name", ["notes.txt", "PLA-Prusa-S1.json", "PLA--Red-S1.json"])
    def test_rejects_other_names(self, name: str) -> None:
        assert parse_record_filename(name) is None
        assert not is_record_filename(name)
