"""Unit tests for issue decorations."""

import logging

from sibylline_scribe.analysis import (
    DecorationRenderer,
    DecorationSet,
    IssueKind,
    TextSpan,
    render_html,
)
from sibylline_scribe.analysis.decorations import DECORATION_CLASS
from sibylline_scribe.document import RichDocument

RED_BORDER = "rgba(239, 68, 68, 0.7)"
RED_FILL = "rgba(239, 68, 68, 0.2)"
BLUE_BORDER = "rgba(59, 130, 246, 0.7)"


def span(start, end, kind=IssueKind.GRAMMAR):
    return TextSpan(kind, start, end, "fix", "because")


class TestDecorationRenderer:
    def test_one_decoration_per_span(self):
        doc = RichDocument.from_html("<p>He goed to school.</p>")
        decos = DecorationRenderer().render(doc, [span(4, 8)])
        assert len(decos) == 1
        deco = decos[0]
        assert (deco.start, deco.end, deco.index) == (4, 8, 0)
        assert dict(deco.attrs) == {
            "class": DECORATION_CLASS,
            "data-issue-index": "0",
            "style": f"border-bottom: 2px solid {RED_BORDER};",
        }

    def test_kind_colours(self):
        doc = RichDocument.from_html("<p>one two three</p>")
        decos = DecorationRenderer().render(doc, [span(1, 4, IssueKind.STYLE)])
        assert BLUE_BORDER in decos[0].style

    def test_selected_gets_fill(self):
        doc = RichDocument.from_html("<p>one two three</p>")
        decos = DecorationRenderer().render(doc, [span(1, 4), span(5, 8)], selected_index=1)
        assert "background" not in decos[0].style
        assert decos[1].style == f"border-bottom: 2px solid {RED_BORDER};background: {RED_FILL};"

    def test_invalid_spans_skipped_and_indices_kept(self, caplog):
        doc = RichDocument.from_html("<p>one two three</p>")
        spans = [span(1, 4), span(5, 5), span(10, 99), span(-1, 2), span(9, 14)]
        with caplog.at_level(logging.WARNING, logger="sibylline_scribe.analysis.decorations"):
            decos = DecorationRenderer().render(doc, spans)
        assert [d.index for d in decos] == [0, 4]
        assert [dict(d.attrs)["data-issue-index"] for d in decos] == ["0", "4"]
        assert caplog.text.count("Skipping decoration") == 3

    def test_idempotent(self):
        doc = RichDocument.from_html("<p>one two three</p>")
        renderer = DecorationRenderer()
        first = renderer.render(doc, [span(1, 4), span(5, 8)], selected_index=0)
        second = renderer.render(doc, [span(1, 4), span(5, 8)], selected_index=0)
        assert first == second
        assert hash(first) == hash(second)

    def test_custom_palette(self):
        doc = RichDocument.from_html("<p>one</p>")
        renderer = DecorationRenderer({"grammar": {"border": "green", "highlight": "lime"}})
        (deco,) = renderer.render(doc, [span(1, 4)], selected_index=0)
        assert deco.style == "border-bottom: 2px solid green;background: lime;"

    def test_missing_palette_entry_falls_back_to_grey(self):
        renderer = DecorationRenderer({"grammar": {"border": "green", "highlight": "lime"}})
        assert renderer.colors(IssueKind.CLARITY)["border"].startswith("rgba(156")

    def test_empty(self):
        doc = RichDocument.from_html("<p>one</p>")
        assert DecorationRenderer().render(doc, []) == DecorationSet()


class TestDecorationSet:
    def test_find(self):
        doc = RichDocument.from_html("<p>one two three</p>")
        decos = DecorationRenderer().render(doc, [span(1, 4), span(50, 60), span(5, 8)])
        assert decos.find(2).start == 5
        assert decos.find(1) is None


class TestRenderHtml:
    def test_wraps_range(self):
        doc = RichDocument.from_html("<p>He goed to school.</p>")
        decos = DecorationRenderer().render(doc, [span(4, 8)])
        assert render_html(doc, decos) == (
            '<p>He <span class="grammar-mark" data-issue-index="0" '
            f'style="border-bottom: 2px solid {RED_BORDER};">goed</span> to school.</p>'
        )

    def test_marks_stay_inside_decoration(self):
        doc = RichDocument.from_html("<p>He <strong>goed</strong> home</p>")
        html = render_html(doc, DecorationRenderer().render(doc, [span(4, 8)]))
        assert '<span class="grammar-mark" data-issue-index="0"' in html
        assert "><strong>goed</strong></span> home</p>" in html

    def test_split_across_text_nodes(self):
        doc = RichDocument.from_html("<p>He <em>go</em>ed</p>")
        html = render_html(doc, DecorationRenderer().render(doc, [span(4, 8)]))
        assert html.count('data-issue-index="0"') == 2
        assert "<em>go</em></span>" in html

    def test_overlapping_nest(self):
        doc = RichDocument.from_html("<p>abcdef</p>")
        decos = DecorationRenderer().render(doc, [span(1, 5), span(3, 7, IssueKind.STYLE)])
        html = render_html(doc, decos)
        assert html.count("<span") == 4
        # Segment "cd" is covered by both; outer decoration opens first
        assert 'data-issue-index="0" style="border-bottom: 2px solid rgba(239, 68, 68, 0.7);">' in html

    def test_document_unchanged(self):
        doc = RichDocument.from_html("<p>He goed to school.</p>")
        before = doc.to_html()
        render_html(doc, DecorationRenderer().render(doc, [span(4, 8)]))
        assert doc.to_html() == before
