"""File parsers for legacy exports."""

from .base import BaseExtractor, ExtractionResult, detect_format
from .csv_extractor import CSVExtractor, detect_delimiter
from .json_extractor import JSONExtractor
from .sql_dump_extractor import SQLDumpExtractor, entity_for_table

EXTRACTORS = {
    "csv": CSVExtractor,
    "json": JSONExtractor,
    "sql": SQLDumpExtractor,
}


def get_extractor(format_name: str) -> BaseExtractor:
    """Instantiate the parser for a detected format."""
    return EXTRACTORS[format_name]()


__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "detect_format",
    "CSVExtractor",
    "detect_delimiter",
    "JSONExtractor",
    "SQLDumpExtractor",
    "entity_for_table",
    "EXTRACTORS",
    "get_extractor",
]
