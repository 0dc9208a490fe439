"""
CSV parser stage — stored upload bytes → ParsedCsv.

The first non-blank line is the header. A data row whose field count differs
from the header is malformed: by default the whole file is rejected at the
first such row; in lenient mode the row is skipped and its line number kept.
"""
import csv
import io
import logging
from typing import List, Union

from campaign_metrics.config import CSV_SKIP_MALFORMED_ROWS
from campaign_metrics.errors import EmptyFile, MalformedRow
from campaign_metrics.pipeline.base import StageAdapter, StageResult, CsvRow, ParsedCsv
from campaign_metrics.services import storage

logger = logging.getLogger('pipeline.parser')


def decode_payload(payload: Union[bytes, str]) -> str:
    """UTF-8 (BOM tolerated), falling back to Latin-1 for spreadsheet exports."""
    if isinstance(payload, str):
        return payload.lstrip('\ufeff')
    try:
        return payload.decode('utf-8-sig')
    except UnicodeDecodeError:
        logger.warning("Payload is not valid UTF-8, decoding as Latin-1")
        return payload.decode('latin-1')


def _is_blank(fields: List[str]) -> bool:
    return not fields or all(not f.strip() for f in fields)


def parse_csv(payload: Union[bytes, str], skip_malformed: bool = False) -> ParsedCsv:
    """
    Decode a CSV payload into header columns and row mappings, in file order.

    Raises:
        EmptyFile:    no header, or no data rows (after skipping, in lenient mode)
        MalformedRow: a row's field count differs from the header (strict mode),
                      or the csv module cannot tokenize a line
    """
    text = decode_payload(payload)
    reader = csv.reader(io.StringIO(text, newline=''))

    columns = None
    rows = []
    skipped = []
    try:
        for fields in reader:
            if _is_blank(fields):
                continue
            if columns is None:
                columns = [f.strip() for f in fields]
                continue
            if len(fields) != len(columns):
                if not skip_malformed:
                    raise MalformedRow(reader.line_num, expected=len(columns), found=len(fields))
                logger.warning("Skipping line %d: %d fields, header has %d",
                               reader.line_num, len(fields), len(columns))
                skipped.append(reader.line_num)
                continue
            rows.append(CsvRow(line_number=reader.line_num, values=dict(zip(columns, fields))))
    except csv.Error as e:
        raise MalformedRow(reader.line_num, reason=str(e)) from e

    if columns is None or not any(columns):
        raise EmptyFile("CSV file has no header row")
    if not rows:
        if skipped:
            raise EmptyFile(f"CSV file has no valid data rows ({len(skipped)} malformed rows skipped)")
        raise EmptyFile("CSV file has no data rows")

    return ParsedCsv(columns=columns, rows=rows, skipped_lines=skipped)


class ParseStage(StageAdapter):
    """Read the stored blob and parse it."""
    stage = 'parsing'
    description = 'Decode the stored CSV into header-keyed rows'

    def __init__(self, skip_malformed: bool = None):
        self.skip_malformed = CSV_SKIP_MALFORMED_ROWS if skip_malformed is None else skip_malformed

    def run(self, payload, upload) -> StageResult:
        raw = storage.get_object(upload.storage_key)
        parsed = parse_csv(raw, skip_malformed=self.skip_malformed)
        logger.info("Parsed upload %s: %d rows, %d skipped",
                    upload.id, len(parsed.rows), len(parsed.skipped_lines),
                    extra={'upload_id': upload.id, 'stage': self.stage})
        return StageResult(
            output=parsed,
            processed=len(parsed.rows),
            skipped=len(parsed.skipped_lines),
            errors=[f"Skipped malformed line {n}" for n in parsed.skipped_lines],
            meta={'columns': parsed.columns},
        )
