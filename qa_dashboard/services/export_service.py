"""
Dataset export: CSV, pretty-printed JSON and styled XLSX.

All three writers take a list of record dicts (``Model.to_dict()`` output)
and the dataset's column list. CSV cell rules:

    - a string containing a comma or a double quote is wrapped in double
      quotes with embedded quotes doubled
    - falsy values (None, "", 0, False) render as an empty cell
    - True renders as "true", anything else with str()
    - rows are joined with "\\n"
"""

import io
import json
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from qa_dashboard.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

# dataset → (download basename, columns)
DATASETS = {
    "bugs": ("bugs", [
        "id", "title", "description", "status", "severity", "priority",
        "assignee", "reporter", "environment", "created_at",
    ]),
    "test-cases": ("test-cases", [
        "id", "name", "description", "category", "priority", "status",
        "automated", "last_run", "created_at",
    ]),
    "reports": ("qa-reports", [
        "id", "title", "bugs_found", "tests_run", "tests_passed",
        "tests_failed", "coverage", "report_date", "generated_by",
    ]),
}

FORMATS = {
    "csv": "text/csv",
    "json": "application/json",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _require_rows(records):
    if not records:
        raise ValidationError("No data to export")


def csv_cell(value) -> str:
    """Render one CSV field."""
    if isinstance(value, str) and ("," in value or '"' in value):
        return '"' + value.replace('"', '""') + '"'
    if not value:
        return ""
    if value is True:
        return "true"
    return str(value)


def to_csv(records: list[dict], columns: list[str]) -> str:
    _require_rows(records)
    lines = [",".join(columns)]
    for record in records:
        lines.append(",".join(csv_cell(record.get(col)) for col in columns))
    return "\n".join(lines)


def to_json(records: list[dict]) -> str:
    _require_rows(records)
    return json.dumps(records, indent=2)


def to_xlsx(records: list[dict], columns: list[str], sheet_title: str) -> io.BytesIO:
    """
    Styled single-sheet workbook: bold header row, thin borders, frozen
    header, column widths sized to content.
    Returns a BytesIO buffer ready for Flask send_file.
    """
    _require_rows(records)
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title[:31]

    for col, header in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER

    for row_idx, record in enumerate(records, 2):
        for col, key in enumerate(columns, 1):
            value = record.get(key)
            if isinstance(value, (list, dict)):
                value = json.dumps(value)
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.border = THIN_BORDER

    for col, key in enumerate(columns, 1):
        longest = max(
            [len(key)] + [len(str(r.get(key) or "")) for r in records]
        )
        ws.column_dimensions[get_column_letter(col)].width = min(max(longest + 2, 10), 60)
    ws.freeze_panes = "A2"

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def export_filename(dataset: str, fmt: str) -> str:
    basename, _ = DATASETS[dataset]
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{basename}-{stamp}.{fmt}"
