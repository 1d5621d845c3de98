"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from site_builder.core.models import FileOutcome

HEADER = ["category", "source_path", "output_path", "status", "files", "original_size", "compressed_size", "message"]


def write_csv_report(outcomes: Iterable[FileOutcome], report_path: Path) -> Path:
    """将处理结果写入 CSV 报告。"""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            writer.writerow(
                [
                    record.category,
                    str(record.source_path),
                    str(record.output_path) if record.output_path else "",
                    record.status,
                    record.file_count,
                    _format_size(record, record.original_size),
                    _format_size(record, record.compressed_size),
                    record.message or "",
                ]
            )
    return report_path


def _format_size(record: FileOutcome, value: int) -> str:
    if not record.counted:
        return ""
    return str(value)
