"""Tests for app.services.preview_parser — PREVIEW_JSON line extraction."""
import pytest

from app.exceptions import PreviewParseError
from app.services.preview_parser import PreviewScanner, decode_preview, extract_preview


class TestExtractPreview:

    def test_single_marker_decodes_object(self):
        output = 'Visiting https://example.com/events...\nPREVIEW_JSON:{"title":"Jazz Night","venue":"Blue Note"}\nDone\n'
        assert extract_preview(output) == {'title': 'Jazz Night', 'venue': 'Blue Note'}

    def test_no_marker_returns_none(self):
        assert extract_preview('Visiting page\nNo events found\n') is None

    def test_empty_output_returns_none(self):
        assert extract_preview('') is None

    def test_malformed_json_returns_none(self):
        assert extract_preview('PREVIEW_JSON:{"title": "Jazz Night",\n') is None

    def test_first_marker_wins(self):
        output = (
            'PREVIEW_JSON:{"title":"First"}\n'
            'noise\n'
            'PREVIEW_JSON:{"title":"Second"}\n'
        )
        assert extract_preview(output) == {'title': 'First'}

    def test_malformed_first_marker_does_not_fall_through(self):
        output = 'PREVIEW_JSON:{broken\nPREVIEW_JSON:{"title":"Second"}\n'
        assert extract_preview(output) is None

    def test_marker_mid_line_is_found(self):
        output = '[stderr] warming up\n2026-01-01 INFO PREVIEW_JSON: {"title":"X"}\n'
        assert extract_preview(output) == {'title': 'X'}

    def test_non_object_payload_returns_none(self):
        assert extract_preview('PREVIEW_JSON:["a", "b"]\n') is None

    def test_unicode_payload(self):
        output = 'PREVIEW_JSON:{"title":"Koncertas Klaipėdoje","venue":"Švyturio arena"}'
        assert extract_preview(output)['venue'] == 'Švyturio arena'


class TestDecodePreview:

    def test_raises_on_malformed(self):
        with pytest.raises(PreviewParseError):
            decode_preview('PREVIEW_JSON:not json')

    def test_raises_on_scalar(self):
        with pytest.raises(PreviewParseError):
            decode_preview('PREVIEW_JSON:42')

    def test_strips_whitespace(self):
        assert decode_preview('PREVIEW_JSON:   {"a": 1}   ') == {'a': 1}


class TestPreviewScanner:

    def test_incremental_feed_latches_first(self):
        scanner = PreviewScanner()
        assert scanner.feed('booting') is None
        assert scanner.feed('PREVIEW_JSON:{"n": 1}') == {'n': 1}
        assert scanner.feed('PREVIEW_JSON:{"n": 2}') == {'n': 1}
        assert scanner.seen_marker

    def test_malformed_marks_seen_without_preview(self):
        scanner = PreviewScanner()
        scanner.feed('PREVIEW_JSON:{oops')
        assert scanner.seen_marker
        assert scanner.feed('PREVIEW_JSON:{"n": 2}') is None
