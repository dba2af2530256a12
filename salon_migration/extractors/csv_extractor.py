"""Delimited text (CSV/TXT) parser."""

import csv
import io
import logging
from typing import List, Optional

from ..exceptions import ParseError
from ..models.record import ParsedRecord
from ..utils import normalize_header
from .base import BaseExtractor, ExtractionResult

logger = logging.getLogger(__name__)


def detect_delimiter(first_line: str) -> str:
    """
    Guess the delimiter from the header line.

    Tab wins when present; semicolon is used when the line has semicolons
    but no commas; otherwise comma.
    """
    if "\t" in first_line:
        return "\t"
    if ";" in first_line and "," not in first_line:
        return ";"
    return ","


class CSVExtractor(BaseExtractor):
    """
    Parser for legacy spreadsheet exports.

    Handles:
    - Comma, semicolon and tab delimiters
    - Double-quoted fields with ``""`` escapes
    - Accented/spaced headers (normalized to ``data_nascimento`` style keys)
    - Blank rows and short rows
    """

    format_name = "csv"

    def parse(self, text: str, source_file: Optional[str] = None) -> ExtractionResult:
        result = ExtractionResult(filename=source_file or "", format=self.format_name)

        non_blank = [line for line in text.splitlines() if line.strip()]
        if len(non_blank) < 2:
            return result

        delimiter = detect_delimiter(non_blank[0])
        reader = csv.reader(
            io.StringIO(text, newline=""),
            delimiter=delimiter,
            quotechar='"',
            doublequote=True,
            skipinitialspace=True,
        )

        try:
            rows = list(reader)
        except csv.Error as e:
            raise ParseError(source_file or "<text>", f"invalid CSV: {e}") from e

        header_index = next(
            (i for i, row in enumerate(rows) if any(cell.strip() for cell in row)), None
        )
        if header_index is None:
            return result

        headers = self._normalize_headers(rows[header_index])
        result.headers = headers

        for position, row in enumerate(rows[header_index + 1:]):
            record = self._process_row(row, headers, position, source_file)
            if record is not None:
                result.records.append(record)

        return result

    def _normalize_headers(self, raw_headers: List[str]) -> List[str]:
        headers = []
        for i, raw in enumerate(raw_headers):
            name = normalize_header(raw)
            if not name:
                name = f"coluna_{i + 1}"
            headers.append(name)
        return headers

    def _process_row(
        self,
        row: List[str],
        headers: List[str],
        position: int,
        source_file: Optional[str],
    ) -> Optional[ParsedRecord]:
        values = [cell.strip() for cell in row]
        if not any(values):
            return None

        if len(values) > len(headers):
            self.add_warning(
                f"{source_file or 'file'} row {position + 1}: "
                f"{len(values) - len(headers)} extra field(s) ignored"
            )

        data = {
            header: values[i] if i < len(values) else ""
            for i, header in enumerate(headers)
        }
        return ParsedRecord(values=data, position=position, source_file=source_file)

    def parse_records(self, text: str) -> List[ParsedRecord]:
        """Convenience wrapper returning only the rows."""
        return self.parse(text).records
