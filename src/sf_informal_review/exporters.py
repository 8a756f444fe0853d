from __future__ import annotations

import csv
import tempfile
import unicodedata
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .formatting import format_number
from .models import Comparable

CSV_FIELDS = [
    "id",
    "address",
    "sale_date",
    "sale_price",
    "area",
    "bedroom_count",
    "bathroom_count",
    "distance_miles",
    "notes",
]


def _linked_component(candidate: Path, base: Path) -> Optional[Path]:
    """First symlink on the way from ``candidate`` up to ``base``, if any."""

    for part in (candidate, *candidate.parents):
        if part == base or not part.is_relative_to(base):
            break
        if part.is_symlink():
            return part
    return None


def sanitize_path(path_str: str, project_root: Optional[Path] = None) -> Path:
    """Resolve an output path inside the working tree or the temp dir.

    Traversal segments, bidi override characters and symlinks below the
    allowed root are refused.
    """

    if not path_str:
        raise ValueError("path required")
    normalized = unicodedata.normalize("NFKC", path_str)
    if ".." in Path(normalized).parts:
        raise ValueError("path traversal not allowed")
    if "\u202e" in normalized or "\u202d" in normalized:
        raise ValueError("unsafe unicode in path")

    roots = ((project_root or Path.cwd()).resolve(), Path(tempfile.gettempdir()).resolve())
    raw = Path(normalized)
    candidate = raw if raw.is_absolute() else roots[0] / raw
    resolved = candidate.resolve()
    base = next((r for r in roots if resolved.is_relative_to(r)), None)
    if base is None:
        raise ValueError("path outside allowed roots")
    link = _linked_component(candidate, base)
    if link is not None:
        raise ValueError(f"symlink in output path: {link}")
    return resolved


def neutralize_csv_field(value) -> str:
    """Prefix spreadsheet formula starters so they render as text."""

    text = "" if value is None else str(value)
    if text.startswith(("=", "+", "-", "@", "\t", "\r")):
        return "'" + text
    return text


def resolve_output_paths(out: str | Path) -> Tuple[Path, Path]:
    out_path = Path(out)
    suffix = out_path.suffix.lower()
    if suffix == ".md":
        return out_path, out_path.with_suffix(".csv")
    if suffix == ".csv":
        return out_path.with_suffix(".md"), out_path
    # A bare base path gets <base>.md and <base>.csv.
    return out_path.with_suffix(".md"), out_path.with_suffix(".csv")


def write_packet_markdown(markdown: str, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(markdown.rstrip("\n") + "\n", encoding="utf-8")


def write_comparables_csv(comparables: Iterable[Comparable], path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for comp in comparables:
            writer.writerow(
                {
                    "id": neutralize_csv_field(comp.id),
                    "address": neutralize_csv_field(comp.address),
                    "sale_date": comp.sale_date.isoformat(),
                    "sale_price": f"{comp.sale_price:.0f}",
                    "area": format_number(comp.area),
                    "bedroom_count": format_number(comp.bedroom_count),
                    "bathroom_count": format_number(comp.bathroom_count),
                    "distance_miles": f"{comp.distance:.2f}",
                    "notes": neutralize_csv_field(comp.notes),
                }
            )
            count += 1
    return count


def export_packet_files(markdown: str, comparables: Iterable[Comparable], out: str) -> Tuple[Path, Path]:
    """Write ``<out>.md`` and ``<out>.csv``; returns both paths."""

    md_path, csv_path = resolve_output_paths(sanitize_path(out))
    write_packet_markdown(markdown, md_path)
    write_comparables_csv(comparables, csv_path)
    return md_path, csv_path
