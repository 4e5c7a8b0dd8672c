"""Tabular import/export of localized strings (handoff, handback and residual-report CSV files)."""
import csv
import logging
from dataclasses import astuple, dataclass
from typing import Dict, Iterable, List, Tuple

from locsync.errors import ValidationError

logger = logging.getLogger(__name__)

CSV_HEADER = ['FileName', 'FieldName', 'EnglishString', 'TranslatedString']
LEGACY_CSV_HEADER = ['EnglishString', 'TranslatedString']


@dataclass
class HandbackRecord:
    """One localized string: where it lives, its baseline text and its translation."""
    file_name: str
    field_name: str
    english_value: str
    translated_value: str

    @property
    def is_legacy(self) -> bool:
        """Rows from a two-column file carry no resource location."""
        return not self.file_name and not self.field_name


def _normalize_header(cell: str) -> str:
    return ''.join(cell.split()).lower()


def _column_indexes(header: List[str]) -> Dict[str, int]:
    normalized = [_normalize_header(cell) for cell in header]
    indexes = {}
    for column in CSV_HEADER:
        if column.lower() in normalized:
            indexes[column] = normalized.index(column.lower())
    return indexes


def read_records(file_path: str) -> List[HandbackRecord]:
    """
    Read localized string records from a CSV file.

    Two layouts are accepted: the four-column layout written by
    :func:`write_records` (columns matched by header name, case and whitespace
    insensitive) and a legacy two-column layout whose first column is the
    English string and whose second is the translation. File and field names
    are trimmed; string values are kept exactly as written.

    Raises:
        ValidationError: If the file is not UTF-8, not parseable, or has neither layout.
    """
    try:
        with open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
            rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
    except UnicodeDecodeError as decode_exc:
        raise ValidationError(f"File '{file_path}' is not a valid UTF-8 file.") from decode_exc
    except csv.Error as csv_exc:
        raise ValidationError(f"Could not parse CSV file '{file_path}': {csv_exc}") from csv_exc

    if not rows:
        return []

    header, body = rows[0], rows[1:]
    indexes = _column_indexes(header)

    if {'FileName', 'FieldName', 'EnglishString', 'TranslatedString'} <= indexes.keys():
        def build(row):
            def cell(column):
                index = indexes[column]
                return row[index] if index < len(row) else ''
            return HandbackRecord(cell('FileName').strip(), cell('FieldName').strip(),
                                  cell('EnglishString'), cell('TranslatedString'))
    elif len(header) == 2:
        logger.info("Reading '%s' as a two-column (English, translated) file.", file_path)

        def build(row):
            cells = list(row) + ['', '']
            return HandbackRecord('', '', cells[0], cells[1])
    else:
        raise ValidationError(
            f"Unsupported column layout in '{file_path}'. Expected {','.join(CSV_HEADER)} "
            f"or {','.join(LEGACY_CSV_HEADER)}."
        )

    return [build(row) for row in body]


def write_records(file_path: str, records: Iterable[HandbackRecord]) -> int:
    """
    Write records to a CSV file with the four-column header.

    Returns:
        int: The number of records written.
    """
    count = 0
    with open(file_path, 'w', encoding='utf-8-sig', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for record in records:
            writer.writerow(astuple(record))
            count += 1
    return count


def group_handback_records(
        records: Iterable[HandbackRecord]
) -> Tuple[Dict[str, Dict[str, HandbackRecord]], Dict[str, HandbackRecord]]:
    """
    Index handback records for reconciliation; a later duplicate replaces an earlier one.

    Returns:
        A tuple of (records by file name then field name, legacy records by English value).
    """
    by_file: Dict[str, Dict[str, HandbackRecord]] = {}
    by_value: Dict[str, HandbackRecord] = {}
    for record in records:
        if record.is_legacy:
            if record.english_value:
                by_value[record.english_value] = record
            continue
        by_file.setdefault(record.file_name, {})[record.field_name] = record
    return by_file, by_value
