"""Tests for campaign_metrics.pipeline.parser — CSV decoding and row shaping."""
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from campaign_metrics.errors import EmptyFile, MalformedRow, StorageFailure
from campaign_metrics.pipeline.parser import decode_payload, parse_csv, ParseStage


class TestDecodePayload:
    """UTF-8 with optional BOM, Latin-1 fallback."""

    def test_strips_utf8_bom(self):
        assert decode_payload(b'\xef\xbb\xbfImpressions\n') == 'Impressions\n'

    def test_latin1_fallback(self):
        assert decode_payload('Café,1\n'.encode('latin-1')) == 'Café,1\n'

    def test_str_passthrough(self):
        assert decode_payload('\ufeffa,b') == 'a,b'


class TestParseCsv:
    """Header detection, row mapping and line numbers."""

    def test_rows_keyed_by_header(self, campaign_csv):
        parsed = parse_csv(campaign_csv)
        assert parsed.columns == ['Campaign', 'Impressions', 'Clicks', 'Conversions', 'Cost', 'Revenue']
        assert len(parsed) == 2
        assert parsed.rows[0].get('Campaign') == 'Spring Sale'
        assert parsed.rows[1].get('Impressions') == '15000'

    def test_line_numbers_are_file_lines(self, campaign_csv):
        parsed = parse_csv(campaign_csv)
        assert [r.line_number for r in parsed.rows] == [2, 3]

    def test_header_cells_trimmed(self):
        parsed = parse_csv(b' Impressions , Clicks \n1,2\n')
        assert parsed.columns == ['Impressions', 'Clicks']

    def test_blank_lines_skipped(self):
        parsed = parse_csv(b'\nImpressions,Clicks\n\n1,2\n,\n3,4\n')
        assert [r.values for r in parsed.rows] == [
            {'Impressions': '1', 'Clicks': '2'},
            {'Impressions': '3', 'Clicks': '4'},
        ]

    def test_quoted_commas_and_crlf(self):
        parsed = parse_csv(b'Campaign,Cost\r\n"Sale, Spring","1,200"\r\n')
        assert parsed.rows[0].get('Campaign') == 'Sale, Spring'
        assert parsed.rows[0].get('Cost') == '1,200'

    def test_empty_payload(self):
        with pytest.raises(EmptyFile):
            parse_csv(b'')

    def test_header_only(self):
        with pytest.raises(EmptyFile) as exc_info:
            parse_csv(b'Impressions,Clicks,Conversions,Cost\n')
        assert 'no data rows' in str(exc_info.value)


class TestMalformedRows:
    """Strict by default, lenient on request."""

    CSV = b'Impressions,Clicks\n1,2\n3,4,5\n6,7\n'

    def test_strict_rejects_first_bad_row(self):
        with pytest.raises(MalformedRow) as exc_info:
            parse_csv(self.CSV)
        err = exc_info.value
        assert err.line_number == 3
        assert err.expected == 2
        assert err.found == 3
        assert 'Line 3' in err.message

    def test_lenient_skips_and_records_line(self):
        parsed = parse_csv(self.CSV, skip_malformed=True)
        assert len(parsed) == 2
        assert parsed.skipped_lines == [3]

    def test_lenient_with_nothing_left(self):
        with pytest.raises(EmptyFile) as exc_info:
            parse_csv(b'Impressions,Clicks\n1\n2\n', skip_malformed=True)
        assert '2 malformed rows skipped' in str(exc_info.value)

    def test_unterminated_quote_is_malformed(self):
        with pytest.raises(MalformedRow):
            parse_csv(b'Impressions,Clicks\n"1,2\n', skip_malformed=False)


class TestParseStage:
    """ParseStage reads the stored blob for the upload."""

    def _upload(self):
        return SimpleNamespace(id=5, storage_key='csv-uploads/1/abc.csv')

    @patch('campaign_metrics.pipeline.parser.storage.get_object')
    def test_run_returns_parsed_rows(self, mock_get, campaign_csv):
        mock_get.return_value = campaign_csv
        result = ParseStage(skip_malformed=False).run(None, self._upload())
        mock_get.assert_called_once_with('csv-uploads/1/abc.csv')
        assert result.processed == 2
        assert result.skipped == 0
        assert result.meta['columns'][0] == 'Campaign'

    @patch('campaign_metrics.pipeline.parser.storage.get_object')
    def test_run_reports_skipped_lines(self, mock_get):
        mock_get.return_value = b'Impressions,Clicks\n1,2\n3\n'
        result = ParseStage(skip_malformed=True).run(None, self._upload())
        assert result.skipped == 1
        assert result.errors == ['Skipped malformed line 3']

    @patch('campaign_metrics.pipeline.parser.CSV_SKIP_MALFORMED_ROWS', True)
    def test_default_mode_from_config(self):
        assert ParseStage().skip_malformed is True

    @patch('campaign_metrics.pipeline.parser.storage.get_object',
           side_effect=StorageFailure("Stored file could not be read"))
    def test_storage_failure_propagates(self, mock_get):
        with pytest.raises(StorageFailure):
            ParseStage().run(None, self._upload())
