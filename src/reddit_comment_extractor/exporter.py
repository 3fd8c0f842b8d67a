import csv
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import EXPORT_DIR
from .models import EXPORT_COLUMNS, ExportRow


SHEET_NAME = "Reddit comments"
# level, comment id, author, content, score, published time, timestamp
COLUMN_WIDTHS = [8, 15, 20, 50, 10, 20, 15]
EXPORT_FORMATS = ("xlsx", "csv")


class ExportError(RuntimeError):
    pass


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _suffix_format(path: Path) -> str:
    fmt = path.suffix.lower().lstrip(".")
    if fmt not in EXPORT_FORMATS:
        raise ExportError(f"unsupported export file type {path.suffix!r}, use .xlsx or .csv")
    return fmt


def default_export_path(
    output_dir: Optional[Path] = None,
    fmt: str = "xlsx",
    now: Optional[datetime] = None,
) -> Path:
    if fmt not in EXPORT_FORMATS:
        raise ExportError(f"unsupported export format {fmt!r}, expected one of {EXPORT_FORMATS}")
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return Path(output_dir or EXPORT_DIR) / f"reddit_comments_{stamp}.{fmt}"


def resolve_export_path(
    output: Optional[str] = None,
    fmt: Optional[str] = None,
    output_dir: Optional[Path] = None,
) -> Path:
    """
    Pick the export file from an explicit ``output`` path and/or a format.

    An explicit path decides the format by its suffix; a ``fmt`` that
    disagrees with it is an error.
    """
    if output:
        path = Path(output)
        suffix_fmt = _suffix_format(path)
        if fmt and fmt != suffix_fmt:
            raise ExportError(f"--format {fmt} conflicts with output file {path.name!r}")
        return path
    return default_export_path(output_dir, fmt or "xlsx")


def _write_csv(records: List[Dict], path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.DictWriter(
            fh,
            fieldnames=EXPORT_COLUMNS,
            lineterminator="\n",
            quoting=csv.QUOTE_MINIMAL,
        )
        writer.writeheader()
        writer.writerows(records)


def _write_xlsx(records: List[Dict], path: Path) -> None:
    df = pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for idx, width in enumerate(COLUMN_WIDTHS):
            letter = chr(ord("A") + idx)
            sheet.column_dimensions[letter].width = width


def export_rows(rows: Sequence[ExportRow], path: Path) -> Path:
    """
    Write export rows to ``path``; the suffix picks the format (.xlsx or .csv).

    Returns the written path.
    """
    if not rows:
        raise ExportError("no comments to export")

    path = Path(path)
    fmt = _suffix_format(path)

    ensure_dir(path.parent)
    records = [row.as_record() for row in rows]
    if fmt == "csv":
        _write_csv(records, path)
    else:
        _write_xlsx(records, path)
    return path
