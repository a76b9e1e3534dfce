"""Batch scanner: walk a file tree, report findings, optionally rewrite files.

Usage:
    scanner = RedactionScanner(RedactionConfig(confidence_threshold=0.7))
    report = scanner.scan_directory("./exports", ScanOptions(extensions=[".json", ".md"]))
    print(format_report(report))

    result = scanner.apply_redactions(report, ApplyOptions(dry_run=True))

Per-file failures never abort a batch; they land in ``report.errors`` /
``result.errors``.  Writes go to a temp file in the same directory and are
moved into place with ``os.replace``, so a file is either fully rewritten
or left as it was.
"""

from __future__ import annotations
import logging
import os
import re
import shutil
import tempfile
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from .patterns import PII_TYPES, SECRET_TYPES
from .redactor import RedactionConfig, Redactor
from .types import ApplyResult, FileError, FileModification, ScanReport, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".json",)
DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024
# Dependency caches are never worth scanning; dot-directories are skipped too
SKIP_DIR_NAMES = frozenset({"node_modules", "__pycache__"})
# Backup roots written by apply_redactions (redaction-<UTC stamp>)
BACKUP_DIR_RE = re.compile(r"redaction-\d{8}T\d{12}Z")
BACKUP_STAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class ScanOptions:
    extensions: Sequence[str] = DEFAULT_EXTENSIONS
    max_files: int | None = None              # None = unlimited
    concurrency: int = 4                      # worker pool size
    max_file_size: int | None = DEFAULT_MAX_FILE_SIZE
    real_issues_only: bool = True             # drop files with no real findings from results
    on_progress: ProgressCallback | None = None  # (scanned, total, relative_path)
    cancel_event: threading.Event | None = None


@dataclass
class ApplyOptions:
    dry_run: bool = False
    create_backup: bool = True
    backup_dir: str | Path = "./backups"


# ── Filesystem helpers ───────────────────────────────────────────────

def _skip_dir(name: str) -> bool:
    return (
        name.startswith(".")
        or name in SKIP_DIR_NAMES
        or BACKUP_DIR_RE.fullmatch(name) is not None
    )


def _relative(path: Path, base: Path | None) -> str:
    if base is None:
        return path.name
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()


def collect_files(
    root: str | Path,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    max_files: int | None = None,
    errors: list[FileError] | None = None,
) -> list[Path]:
    """Files under root with a wanted extension, in a stable order."""
    root = Path(root)
    wanted = {e.lower() for e in extensions}
    files: list[Path] = []

    def _on_error(exc: OSError) -> None:
        where = Path(exc.filename) if exc.filename else root
        logger.warning(f"Cannot list {where}: {exc}")
        if errors is not None:
            errors.append(FileError(file=_relative(where, root), error=str(exc)))

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if not _skip_dir(d))
        for name in sorted(filenames):
            if max_files is not None and len(files) >= max_files:
                return files
            path = Path(dirpath) / name
            if path.suffix.lower() not in wanted or not path.is_file():
                continue
            files.append(path)
    return files


def _read_file(path: Path, max_size: int | None = None) -> str:
    if max_size is not None:
        size = path.stat().st_size
        if size > max_size:
            raise ValueError(f"File too large ({size} bytes, limit {max_size})")
    # newline="" keeps line endings byte-for-byte for the rewrite
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except Exception:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


# ── Scanner ──────────────────────────────────────────────────────────

class RedactionScanner:
    """Runs the Redactor over a directory tree."""

    def __init__(self, config: RedactionConfig | None = None) -> None:
        self.redactor = Redactor(config)

    @property
    def config(self) -> RedactionConfig:
        return self.redactor.config

    def scan_file(
        self,
        file_path: str | Path,
        base_path: str | Path | None = None,
        *,
        max_file_size: int | None = None,
    ) -> ScanResult:
        """Scan one file.  Read failures come back in ``ScanResult.error``."""
        file_path = Path(file_path)
        relative_path = _relative(file_path, Path(base_path) if base_path else None)

        try:
            content = _read_file(file_path, max_file_size)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read {relative_path}: {e}")
            return ScanResult(file_path=file_path, relative_path=relative_path, error=str(e))

        items = self.redactor.detect(content)
        real = [i for i in items if not i.is_false_positive]
        return ScanResult(
            file_path=file_path,
            relative_path=relative_path,
            detected_items=items,
            has_secrets=any(i.detection_type in SECRET_TYPES for i in real),
            has_pii=any(i.detection_type in PII_TYPES for i in real),
            real_item_count=len(real),
            false_positive_count=len(items) - len(real),
        )

    def scan_directory(self, root_path: str | Path, options: ScanOptions | None = None) -> ScanReport:
        """Scan every matching file under root_path and aggregate a report."""
        options = options or ScanOptions()
        started = time.monotonic()
        root = Path(root_path).resolve()
        report = ScanReport(scan_path=root, timestamp=datetime.now(timezone.utc))

        if not root.is_dir():
            reason = "Path is not a directory" if root.exists() else "Path does not exist"
            logger.error(f"{reason}: {root}")
            report.errors.append(FileError(file=str(root), error=reason))
            report.duration = time.monotonic() - started
            return report

        files = collect_files(root, options.extensions, options.max_files, report.errors)
        report.total_files = len(files)
        logger.info(f"Scanning {len(files)} files in {root}")

        lock = threading.Lock()
        cancel = options.cancel_event
        processed = 0

        def _process(path: Path) -> None:
            nonlocal processed
            if cancel is not None and cancel.is_set():
                return
            result = self.scan_file(path, root, max_file_size=options.max_file_size)
            with lock:
                processed += 1
                _accumulate(report, result, options.real_issues_only)
                if options.on_progress is not None:
                    options.on_progress(processed, report.total_files, result.relative_path)

        with ThreadPoolExecutor(max_workers=max(1, options.concurrency)) as pool:
            futures = [pool.submit(_process, path) for path in files]
            for future in futures:
                future.result()

        if cancel is not None and cancel.is_set():
            report.cancelled = True
            logger.info(f"Scan cancelled after {processed}/{report.total_files} files")

        # Worker completion order is arbitrary
        report.results.sort(key=lambda r: r.relative_path)
        report.errors.sort(key=lambda e: e.file)
        report.duration = time.monotonic() - started
        return report

    def apply_redactions(self, report: ScanReport, options: ApplyOptions | None = None) -> ApplyResult:
        """Rewrite files that had real findings, re-detecting on current content."""
        options = options or ApplyOptions()
        result = ApplyResult()
        to_process = [r for r in report.results if r.real_item_count > 0]
        result.total_files = len(to_process)

        backup_root: Path | None = None
        if options.create_backup and not options.dry_run:
            stamp = datetime.now(timezone.utc).strftime(BACKUP_STAMP_FORMAT)
            backup_root = Path(options.backup_dir) / f"redaction-{stamp}"

        for scanned in to_process:
            try:
                content = _read_file(scanned.file_path)
                redaction = self.redactor.redact(content)

                if redaction.stats.items_redacted == 0:
                    result.files_skipped += 1
                    continue

                if not options.dry_run:
                    if backup_root is not None:
                        backup_path = backup_root / scanned.relative_path
                        backup_path.parent.mkdir(parents=True, exist_ok=True)
                        shutil.copy2(scanned.file_path, backup_path)
                        if result.backup_dir is None:
                            logger.info(f"Backup directory: {backup_root}")
                            result.backup_dir = backup_root
                    _atomic_write(scanned.file_path, redaction.redacted_text)
                    result.files_modified += 1

                result.modifications.append(FileModification(
                    file=scanned.relative_path,
                    items_redacted=redaction.stats.items_redacted,
                    original_size=len(content.encode("utf-8")),
                    new_size=len(redaction.redacted_text.encode("utf-8")),
                    status="dry_run" if options.dry_run else "written",
                ))
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to redact {scanned.relative_path}: {e}")
                result.errors.append(FileError(file=scanned.relative_path, error=str(e)))

        return result


def _accumulate(report: ScanReport, result: ScanResult, real_issues_only: bool) -> None:
    """Fold one file's result into the report.  Caller holds the lock."""
    if result.error is not None:
        report.errors.append(FileError(file=result.relative_path, error=result.error))
        return

    report.scanned_files += 1
    report.total_detections += len(result.detected_items)
    report.total_real_detections += result.real_item_count
    report.total_false_positives += result.false_positive_count
    if result.has_secrets:
        report.files_with_secrets += 1
    if result.has_pii:
        report.files_with_pii += 1
    if result.real_item_count > 0:
        report.files_with_issues += 1
    if not real_issues_only or result.real_item_count > 0:
        report.results.append(result)
