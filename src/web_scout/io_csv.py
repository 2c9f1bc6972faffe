"""CSV serialization helpers."""

from __future__ import annotations

import csv
from collections.abc import Callable, Iterable
from pathlib import Path

from .models import BatchItem

CSV_FIELDS = [
    "domain",
    "email",
    "first_name",
    "status",
    "socials",
    "mx_ok",
    "error",
]


def item_to_row(item: BatchItem, mx_checker: Callable[[str], bool] | None = None) -> dict[str, str]:
    """Flatten a finished batch item into one CSV row."""
    result = item.result
    mx_ok = ""
    if mx_checker is not None and item.email:
        mx_ok = "yes" if mx_checker(item.email) else "no"
    return {
        "domain": result.domain if result else item.input,
        "email": item.email or "",
        "first_name": item.first_name or "",
        "status": item.status.value,
        "socials": "|".join(social.url for social in result.socials) if result else "",
        "mx_ok": mx_ok,
        "error": (result.error or "") if result else "",
    }


def write_rows(path: str, rows: Iterable[dict[str, str]]) -> None:
    """Write scout rows to CSV with stable schema."""
    output_path = Path(path)
    with output_path.open("w", newline="", encoding="utf-8") as file_obj:
        writer = csv.DictWriter(file_obj, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
