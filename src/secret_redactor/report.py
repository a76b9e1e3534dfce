"""Human-readable renderers.  Presentation only; use the dataclasses
(or ``report_to_dict``) for anything programmatic.
"""

from __future__ import annotations
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from .types import ApplyResult, DetectedItem, RedactionResult, ScanReport

_HEAVY = "═" * 63
_LIGHT = "─" * 63

MAX_ERRORS_SHOWN = 10
MAX_FILES_SHOWN = 50
MAX_ITEMS_PER_FILE = 5
MAX_MODIFICATIONS_SHOWN = 20


def _preview(value: str, limit: int, head: int, tail: int) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def _pct(confidence: float) -> str:
    return f"{confidence * 100:.0f}%"


def format_report(report: ScanReport, verbose: bool = False) -> str:
    """Summary block, errors, and (verbose) per-file details."""
    lines: list[str] = [
        _HEAVY,
        "REDACTION SCAN REPORT".center(63).rstrip(),
        _HEAVY,
        "",
        f"Scan Path:     {report.scan_path}",
        f"Timestamp:     {report.timestamp.isoformat()}",
        f"Duration:      {report.duration:.2f}s",
    ]
    if report.cancelled:
        lines.append("Status:        CANCELLED")
    lines += [
        "",
        _LIGHT,
        "SUMMARY",
        _LIGHT,
        f"Total Files:           {report.total_files:,}",
        f"Files Scanned:         {report.scanned_files:,}",
        f"Files with Issues:     {report.files_with_issues:,}",
        f"  - With Secrets:      {report.files_with_secrets:,}",
        f"  - With PII:          {report.files_with_pii:,}",
        "",
        f"Total Detections:      {report.total_detections:,}",
        f"  - Real Issues:       {report.total_real_detections:,}",
        f"  - False Positives:   {report.total_false_positives:,}",
    ]
    fp_rate = (
        report.total_false_positives / report.total_detections * 100
        if report.total_detections else 0.0
    )
    lines.append(f"  - FP Rate:           {fp_rate:.1f}%")

    if report.errors:
        lines += ["", _LIGHT, f"ERRORS ({len(report.errors)})", _LIGHT]
        for err in report.errors[:MAX_ERRORS_SHOWN]:
            lines.append(f"  {err.file}: {err.error}")
        if len(report.errors) > MAX_ERRORS_SHOWN:
            lines.append(f"  ... and {len(report.errors) - MAX_ERRORS_SHOWN} more")

    if verbose and report.results:
        lines += ["", _LIGHT, "DETAILS", _LIGHT]
        for result in report.results[:MAX_FILES_SHOWN]:
            lines += [
                "",
                f"File: {result.relative_path}",
                f"  Real Issues: {result.real_item_count}, False Positives: {result.false_positive_count}",
            ]
            real = [i for i in result.detected_items if not i.is_false_positive]
            for item in real[:MAX_ITEMS_PER_FILE]:
                preview = _preview(item.value, 30, 15, 10)
                lines.append(f"    - {item.detection_type}: {preview} ({_pct(item.confidence)})")
            if len(real) > MAX_ITEMS_PER_FILE:
                lines.append(f"    ... and {len(real) - MAX_ITEMS_PER_FILE} more")
        if len(report.results) > MAX_FILES_SHOWN:
            lines += ["", f"... and {len(report.results) - MAX_FILES_SHOWN} more files"]

    lines += ["", _HEAVY]
    return "\n".join(lines)


def format_apply_result(result: ApplyResult, dry_run: bool) -> str:
    lines: list[str] = [
        _LIGHT,
        "REDACTION PREVIEW (DRY RUN)" if dry_run else "REDACTION APPLIED",
        _LIGHT,
        f"Total Files:     {result.total_files}",
        f"Files Modified:  {result.files_modified}",
    ]
    if dry_run:
        lines.append(f"Would Modify:    {len(result.modifications)}")
    lines.append(f"Files Skipped:   {result.files_skipped}")

    if result.backup_dir is not None:
        lines.append(f"Backup Dir:      {result.backup_dir}")

    if result.modifications:
        lines += ["", "Modifications:"]
        for mod in result.modifications[:MAX_MODIFICATIONS_SHOWN]:
            diff = mod.new_size - mod.original_size
            lines.append(f"  {mod.file}: {mod.items_redacted} redactions ({diff:+d} bytes)")
        if len(result.modifications) > MAX_MODIFICATIONS_SHOWN:
            lines.append(f"  ... and {len(result.modifications) - MAX_MODIFICATIONS_SHOWN} more")

    if result.errors:
        lines += ["", "Errors:"]
        for err in result.errors[:MAX_ERRORS_SHOWN]:
            lines.append(f"  {err.file}: {err.error}")

    lines.append(_LIGHT)
    return "\n".join(lines)


def _format_item(item: DetectedItem) -> list[str]:
    status = "[FP]" if item.is_false_positive else "[!!]"
    lines = [
        f"  {status} {item.detection_type}",
        f"      Value: {_preview(item.value, 40, 20, 15)}",
        f"      Confidence: {_pct(item.confidence)}",
    ]
    if item.is_false_positive and item.false_positive_reason:
        lines.append(f"      Reason: {item.false_positive_reason}")
    if item.in_documentation:
        lines.append("      Context: documentation")
    lines.append("")
    return lines


def format_validation(result: RedactionResult) -> str:
    """Original text, redacted text, every detection, and stats."""
    lines: list[str] = [
        _HEAVY,
        "REDACTION VALIDATION".center(63).rstrip(),
        _HEAVY,
        "",
        "ORIGINAL TEXT:",
        _LIGHT,
        result.original_text,
        "",
        "REDACTED TEXT:",
        _LIGHT,
        result.redacted_text,
        "",
        "DETECTIONS:",
        _LIGHT,
    ]
    if not result.detected_items:
        lines.append("  No secrets or PII detected.")
    for item in result.detected_items:
        lines += _format_item(item)

    stats = result.stats
    lines += [
        "STATS:",
        _LIGHT,
        f"  Total Detected:    {stats.total_detected}",
        f"  Secrets:           {stats.secrets_detected}",
        f"  PII:               {stats.pii_detected}",
        f"  False Positives:   {stats.false_positives}",
        f"  Items Redacted:    {stats.items_redacted}",
        _HEAVY,
    ]
    return "\n".join(lines)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def report_to_dict(report: ScanReport | ApplyResult) -> dict[str, Any]:
    """JSON-serializable view of a ScanReport or ApplyResult."""
    return _jsonable(asdict(report))
