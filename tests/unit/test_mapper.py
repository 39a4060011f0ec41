"""Unit tests for plain-text to document position mapping."""

import logging
import re

import pytest

from sibylline_scribe.analysis import IssueKind, PositionMapper, TextSpan, mapper
from sibylline_scribe.analysis.mapper import PositionMap, build_position_map, find_in_document
from sibylline_scribe.document import RichDocument


def span(start, end, kind=IssueKind.GRAMMAR, suggestion="fix"):
    return TextSpan(kind, start, end, suggestion, "because")


# -----------------------------------------------------------------------
# PositionMap
# -----------------------------------------------------------------------


class TestPositionMap:
    def test_resolve_uses_last_included_character(self):
        pm = PositionMap([1, 2, 3, 4, 5])
        assert pm.resolve(0, 5) == (1, 6)

    def test_resolve_undefined_entry(self):
        pm = PositionMap([1, None, 3])
        assert pm.resolve(1, 3) is None
        assert pm.resolve(0, 2) is None

    def test_lookup_out_of_bounds(self):
        pm = PositionMap([1, 2])
        assert pm.lookup(2) is None
        assert pm.lookup(-1) is None
        assert len(pm) == 2


class TestBuildPositionMap:
    def test_identity_projection(self):
        doc = RichDocument.from_html("<p>Hello</p><p>World</p>")
        pm = build_position_map(doc, doc.plain_text())
        assert pm.offsets == [1, 2, 3, 4, 5, None, None, 8, 9, 10, 11, 12]
        assert pm.drift_count == 0

    def test_hard_break_has_no_offset(self):
        doc = RichDocument.from_html("<p>one<br>two</p>")
        pm = build_position_map(doc, "one\ntwo")
        assert pm.offsets == [1, 2, 3, None, 5, 6, 7]

    def test_drift_skips_without_advancing(self, caplog):
        doc = RichDocument.from_html("<p>Hello there world</p>")
        with caplog.at_level(logging.WARNING, logger="sibylline_scribe.analysis.mapper"):
            pm = build_position_map(doc, "Hello world")
        assert pm.drift_count > 0
        assert pm.first_drift == 6
        # "Hello " aligned before the divergence
        assert pm.offsets[:6] == [1, 2, 3, 4, 5, 6]
        assert "drift" in caplog.text

    def test_plain_text_longer_than_document(self):
        doc = RichDocument.from_html("<p>abc</p>")
        pm = build_position_map(doc, "abcdef")
        assert pm.offsets == [1, 2, 3, None, None, None]


class TestFindInDocument:
    def test_first_match_in_runs(self):
        doc = RichDocument.from_html("<p>the cat</p><p>the dog</p>")
        assert find_in_document(doc, "the") == (1, 4)
        assert find_in_document(doc, "dog") == (14, 17)

    def test_across_marks(self):
        doc = RichDocument.from_html("<p>He <strong>go</strong>ed</p>")
        assert find_in_document(doc, "goed") == (4, 8)

    def test_across_hard_break(self):
        doc = RichDocument.from_html("<p>one<br>two</p>")
        assert find_in_document(doc, "e\nt") == (3, 6)

    def test_missing(self):
        doc = RichDocument.from_html("<p>abc</p>")
        assert find_in_document(doc, "xyz") is None
        assert find_in_document(doc, "") is None


# -----------------------------------------------------------------------
# PositionMapper
# -----------------------------------------------------------------------


class TestPositionMapper:
    def test_empty_span_list(self):
        doc = RichDocument.from_html("<p>abc</p>")
        assert PositionMapper().map_spans(doc, "abc", []) == []

    def test_round_trip_preserves_metadata(self):
        doc = RichDocument.from_html("<p>He goed to school.</p>")
        plain = doc.plain_text()
        original = TextSpan(IssueKind.GRAMMAR, 3, 7, "went", "irregular verb")
        (mapped,) = PositionMapper().map_spans(doc, plain, [original])
        assert (mapped.start, mapped.end) == (4, 8)
        assert doc.text_between(mapped.start, mapped.end) == plain[3:7] == "goed"
        assert mapped.kind is IssueKind.GRAMMAR
        assert mapped.suggestion == "went"
        assert mapped.explanation == "irregular verb"

    def test_every_word_maps_and_verifies(self):
        doc = RichDocument.from_html(
            "<h1>Title</h1><p>Some <em>styled</em> text<br>over lines.</p>"
            "<ul><li><p>A list item</p></li></ul>"
        )
        plain = doc.plain_text()
        words = [span(m.start(), m.end()) for m in re.finditer(r"\w+", plain)]
        m = PositionMapper()
        mapped = m.map_spans(doc, plain, words)
        assert len(mapped) == len(words) == 9
        for result, source in zip(mapped, words):
            assert doc.text_between(result.start, result.end) == plain[source.start : source.end]
        assert m.stats.direct == 9

    def test_span_at_end_of_buffer(self):
        doc = RichDocument.from_html("<p>Hello</p><p>World</p>")
        plain = doc.plain_text()
        (mapped,) = PositionMapper().map_spans(doc, plain, [span(7, len(plain))])
        assert (mapped.start, mapped.end) == (8, 13)

    def test_span_across_blocks(self):
        doc = RichDocument.from_html("<p>Hello</p><p>World</p>")
        plain = doc.plain_text()
        (mapped,) = PositionMapper().map_spans(doc, plain, [span(3, 9)])
        assert (mapped.start, mapped.end) == (4, 10)
        assert doc.text_between(4, 10) == plain[3:9] == "lo\n\nWo"

    def test_span_starting_on_separator_falls_back_or_drops(self):
        doc = RichDocument.from_html("<p>Hello</p><p>World</p>")
        plain = doc.plain_text()
        m = PositionMapper()
        assert m.map_spans(doc, plain, [span(5, 7)]) == []
        assert m.stats.discarded == 1

    def test_fallback_recovers_from_shifted_map(self, monkeypatch):
        doc = RichDocument.from_html("<p>Hello world</p>")
        plain = doc.plain_text()
        real = mapper.build_position_map

        def shifted(document, plain_text, block_separator="\n\n"):
            pm = real(document, plain_text, block_separator)
            return PositionMap([o + 1 if o is not None else None for o in pm.offsets])

        monkeypatch.setattr(mapper, "build_position_map", shifted)
        m = PositionMapper()
        (mapped,) = m.map_spans(doc, plain, [span(6, 11)])
        assert (mapped.start, mapped.end) == (7, 12)
        assert doc.text_between(7, 12) == "world"
        assert m.stats.fallback == 1
        assert m.stats.verification_failed == 1

    def test_realigns_after_document_edit(self):
        # Request sent, then the user inserted a word before the flagged one
        sent = "I has a cat"
        doc = RichDocument.from_html("<p>Now I really has a cat</p>")
        m = PositionMapper()
        (mapped,) = m.map_spans(doc, sent, [span(2, 5)])
        assert doc.text_between(mapped.start, mapped.end) == "has"

    def test_fallback_first_occurrence(self, monkeypatch):
        def unmapped(document, plain_text, block_separator="\n\n"):
            return PositionMap([None] * len(plain_text))

        monkeypatch.setattr(mapper, "build_position_map", unmapped)
        doc = RichDocument.from_html("<p>a dog. a dog.</p>")
        (mapped,) = PositionMapper().map_spans(doc, doc.plain_text(), [span(9, 12)])
        # The heuristic lands on the first "dog"
        assert (mapped.start, mapped.end) == (3, 6)

    def test_unrecoverable_span_is_dropped(self):
        doc = RichDocument.from_html("<p>Completely different</p>")
        m = PositionMapper()
        assert m.map_spans(doc, "He goed home", [span(3, 7)]) == []
        assert m.stats.discarded == 1

    def test_mapped_spans_keep_input_order(self):
        doc = RichDocument.from_html("<p>one two three</p>")
        plain = doc.plain_text()
        spans = [span(8, 13, IssueKind.STYLE), span(0, 3, IssueKind.SPELLING)]
        mapped = PositionMapper().map_spans(doc, plain, spans)
        assert [s.kind for s in mapped] == [IssueKind.STYLE, IssueKind.SPELLING]

    @pytest.mark.parametrize("separator", ["\n", " ", ""])
    def test_custom_separator(self, separator):
        doc = RichDocument.from_html("<p>Hello</p><p>World</p>")
        plain = doc.plain_text(separator)
        start = plain.index("World")
        (mapped,) = PositionMapper(separator).map_spans(doc, plain, [span(start, start + 5)])
        assert (mapped.start, mapped.end) == (8, 13)
