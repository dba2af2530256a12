"""JSON backup parser."""

import json
import logging
from typing import Any, Dict, List, Optional

from ..exceptions import ParseError
from ..models.record import ParsedRecord
from ..utils import normalize_header
from .base import BaseExtractor, ExtractionResult

logger = logging.getLogger(__name__)


class JSONExtractor(BaseExtractor):
    """
    Parser for JSON backups.

    Two shapes are accepted:
    - an object keyed by entity (``{"clientes": [...], "servicos": [...]}``),
      which fills ``sections``;
    - a bare array of row objects, which fills ``records``.
    Row keys are normalized the same way CSV headers are.
    """

    format_name = "json"

    def parse(self, text: str, source_file: Optional[str] = None) -> ExtractionResult:
        result = ExtractionResult(filename=source_file or "", format=self.format_name)

        if not text.strip():
            return result

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(source_file or "<text>", f"invalid JSON: {e}") from e

        if isinstance(data, list):
            result.records = self._rows(data, source_file)
            result.headers = self._headers(result.records)
        elif isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, list):
                    result.sections[key] = self._rows(value, source_file)
                else:
                    self.add_warning(f"Key '{key}' is not a list of records, ignored")
        else:
            raise ParseError(source_file or "<text>", "expected a JSON object or array")

        return result

    def _rows(self, items: List[Any], source_file: Optional[str]) -> List[ParsedRecord]:
        records = []
        for position, item in enumerate(items):
            if not isinstance(item, dict):
                self.add_warning(f"Item {position} is not an object, ignored")
                continue
            values = self._normalize_keys(item)
            if not any(v not in (None, "") for v in values.values()):
                continue
            records.append(ParsedRecord(values=values, position=position, source_file=source_file))
        return records

    @staticmethod
    def _normalize_keys(item: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in item.items():
            if isinstance(value, str):
                value = value.strip()
            values[normalize_header(key)] = value
        return values

    @staticmethod
    def _headers(records: List[ParsedRecord]) -> List[str]:
        seen: Dict[str, None] = {}
        for record in records:
            for key in record.values:
                seen.setdefault(key, None)
        return list(seen)
