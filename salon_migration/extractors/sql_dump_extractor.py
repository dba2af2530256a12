"""Parser for legacy vendor exports shipped as SQL INSERT dumps."""

import logging
import re
from typing import Any, List, Optional, Tuple

from ..exceptions import ParseError
from ..models.record import ParsedRecord
from ..utils import normalize_header
from .base import BaseExtractor, ExtractionResult

logger = logging.getLogger(__name__)

_INSERT = re.compile(
    r"INSERT\s+INTO\s+[`\"\[]?(?P<table>[\w.]+)[`\"\]]?\s*(?:\((?P<columns>[^)]*)\))?\s*VALUES\s*",
    re.IGNORECASE,
)

# Substrings of vendor table names and the entity they hold
TABLE_HINTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("categoria", "category"), "categorias"),
    (("fornecedor", "supplier"), "fornecedores"),
    (("cliente", "customer", "client"), "clientes"),
    (("profissional", "funcionario", "professional", "employee"), "profissionais"),
    (("servico", "service"), "servicos"),
    (("produto", "product"), "produtos"),
    (("agend", "appointment"), "agendamentos"),
    (("venda", "sale", "atendimento"), "atendimentos"),
)


def entity_for_table(table: str) -> Optional[str]:
    """Map a vendor table name to an entity by substring."""
    name = normalize_header(table.rsplit(".", 1)[-1])
    for hints, entity in TABLE_HINTS:
        if any(hint in name for hint in hints):
            return entity
    return None


class SQLDumpExtractor(BaseExtractor):
    """
    Reads ``INSERT INTO table (cols) VALUES (...), (...);`` statements.

    Values may be quoted with single or double quotes (doubled quotes and
    backslash escapes inside), ``NULL`` becomes None and everything else is
    kept as raw text. Sections are keyed by entity when the table name is
    recognized, otherwise by the table name itself.
    """

    format_name = "sql"

    def parse(self, text: str, source_file: Optional[str] = None) -> ExtractionResult:
        result = ExtractionResult(filename=source_file or "", format=self.format_name)
        counters = {}

        position_in_text = 0
        while True:
            match = _INSERT.search(text, position_in_text)
            if match is None:
                break
            position_in_text = match.end()

            table = match.group("table")
            if not match.group("columns"):
                self.add_warning(f"INSERT INTO {table} without a column list, ignored")
                continue

            columns = [normalize_header(c.strip().strip("`\"[]")) for c in match.group("columns").split(",")]
            try:
                rows, position_in_text = self._parse_tuples(text, match.end())
            except ValueError as e:
                raise ParseError(source_file or "<text>", f"INSERT INTO {table}: {e}") from e

            key = entity_for_table(table) or table
            section = result.sections.setdefault(key, [])
            for values in rows:
                position = counters.get(key, 0)
                counters[key] = position + 1

                if len(values) != len(columns):
                    self.add_error(
                        f"INSERT INTO {table}: expected {len(columns)} values, got {len(values)}",
                        position=position,
                    )
                    continue
                section.append(ParsedRecord(
                    values=dict(zip(columns, values)),
                    position=position,
                    source_file=source_file,
                ))

        if not result.sections:
            logger.debug(f"No INSERT statements found in {source_file}")
        return result

    def _parse_tuples(self, text: str, index: int) -> Tuple[List[List[Any]], int]:
        """Read ``(..), (..)`` groups starting at ``index`` until ``;`` or the end."""
        rows = []
        length = len(text)

        while index < length:
            char = text[index]
            if char.isspace() or char == ",":
                index += 1
            elif char == "(":
                values, index = self._parse_tuple(text, index + 1)
                rows.append(values)
            elif char == ";":
                return rows, index + 1
            else:
                # Next statement without a terminating semicolon
                return rows, index

        return rows, index

    def _parse_tuple(self, text: str, index: int) -> Tuple[List[Any], int]:
        values: List[Any] = []
        length = len(text)

        while index < length:
            char = text[index]
            if char.isspace() or char == ",":
                index += 1
            elif char == ")":
                return values, index + 1
            elif char in ("'", '"'):
                value, index = self._read_quoted(text, index + 1, char)
                values.append(value)
            else:
                end = index
                while end < length and text[end] not in ",)":
                    end += 1
                token = text[index:end].strip()
                values.append(None if token.upper() == "NULL" else token)
                index = end

        raise ValueError("unterminated value list")

    @staticmethod
    def _read_quoted(text: str, index: int, quote: str) -> Tuple[str, int]:
        chars = []
        length = len(text)
        escapes = {"n": "\n", "t": "\t", "r": "\r", "0": ""}

        while index < length:
            char = text[index]
            if char == "\\" and index + 1 < length:
                following = text[index + 1]
                chars.append(escapes.get(following, following))
                index += 2
            elif char == quote:
                if index + 1 < length and text[index + 1] == quote:
                    chars.append(quote)
                    index += 2
                else:
                    return "".join(chars), index + 1
            else:
                chars.append(char)
                index += 1

        raise ValueError("unterminated quoted string")
