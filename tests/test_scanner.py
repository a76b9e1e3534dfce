"""Tests for the batch scanner: directory walks, apply, backups, reports."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import json
import threading

import pytest

import secret_redactor.scanner as scanner_module
from secret_redactor import (
    ApplyOptions,
    RedactionConfig,
    RedactionScanner,
    ScanOptions,
    format_apply_result,
    format_report,
    report_to_dict,
)
from secret_redactor.scanner import collect_files
from secret_redactor.types import FileError

SECRET = "sk-abc123def456ghi789jkl012"
REAL_JSON = '{"key": "%s", "note": "hello"}\n' % SECRET


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def scanner():
    return RedactionScanner()


@pytest.fixture
def mixed_tree(tmp_path, monkeypatch):
    """One real secret, one placeholder, one unreadable file."""
    _write(tmp_path / "real.json", REAL_JSON)
    _write(tmp_path / "placeholder.json", '{"key": "sk-your-api-key"}\n')
    _write(tmp_path / "locked.json", '{"key": "whatever"}\n')

    original = scanner_module._read_file

    def _read(path, max_size=None):
        if path.name == "locked.json":
            raise PermissionError(13, "Permission denied", str(path))
        return original(path, max_size)

    monkeypatch.setattr(scanner_module, "_read_file", _read)
    return tmp_path


# ── Scan ─────────────────────────────────────────────────────────────

def test_scan_mixed_tree(scanner, mixed_tree):
    report = scanner.scan_directory(mixed_tree)
    assert report.total_files == 3
    assert report.scanned_files == 2
    assert report.files_with_secrets == 1
    assert report.files_with_pii == 0
    assert report.files_with_issues == 1
    assert [r.relative_path for r in report.results] == ["real.json"]
    assert len(report.errors) == 1
    assert report.errors[0].file == "locked.json"
    assert "Permission denied" in report.errors[0].error
    assert report.total_real_detections == 1
    assert report.duration >= 0
    assert not report.cancelled


def test_dry_run_leaves_disk_alone(scanner, mixed_tree):
    report = scanner.scan_directory(mixed_tree)
    backups = mixed_tree / "backups"
    result = scanner.apply_redactions(report, ApplyOptions(dry_run=True, backup_dir=backups))

    assert result.files_modified == 0
    assert result.total_files == 1
    assert [m.file for m in result.modifications] == ["real.json"]
    assert result.modifications[0].status == "dry_run"
    assert result.modifications[0].items_redacted == 1
    assert (mixed_tree / "real.json").read_text(encoding="utf-8") == REAL_JSON
    assert result.backup_dir is None
    assert not backups.exists()


def test_real_issues_only_false_keeps_clean_files(scanner, tmp_path):
    _write(tmp_path / "a.json", REAL_JSON)
    _write(tmp_path / "b.json", '{"ok": true}\n')
    report = scanner.scan_directory(tmp_path, ScanOptions(real_issues_only=False))
    assert [r.relative_path for r in report.results] == ["a.json", "b.json"]
    assert report.files_with_issues == 1


def test_false_positive_only_file_counts(scanner, tmp_path):
    _write(tmp_path / "masked.json", '{"token": "ghp_%s"}\n' % ("x" * 36))
    report = scanner.scan_directory(tmp_path)
    assert report.total_detections == 1
    assert report.total_false_positives == 1
    assert report.files_with_issues == 0
    assert report.results == []


def test_nested_paths_are_posix_relative(scanner, tmp_path):
    _write(tmp_path / "sub" / "deep" / "c.json", REAL_JSON)
    report = scanner.scan_directory(tmp_path)
    assert report.results[0].relative_path == "sub/deep/c.json"


def test_skipped_directories(tmp_path):
    _write(tmp_path / "node_modules" / "x.json", REAL_JSON)
    _write(tmp_path / ".git" / "y.json", REAL_JSON)
    _write(tmp_path / "__pycache__" / "z.json", REAL_JSON)
    keep = _write(tmp_path / "sub" / "z.json", REAL_JSON)
    assert collect_files(tmp_path) == [keep]


def test_backup_roots_are_skipped(tmp_path):
    _write(tmp_path / "backups" / "redaction-20260101T000000000000Z" / "real.json", REAL_JSON)
    keep = _write(tmp_path / "backups" / "redaction-notes" / "real.json", REAL_JSON)
    assert collect_files(tmp_path) == [keep]


def test_extension_filter(scanner, tmp_path):
    _write(tmp_path / "notes.md", f"key {SECRET}\n")
    _write(tmp_path / "UPPER.JSON", REAL_JSON)
    report = scanner.scan_directory(tmp_path)
    assert [r.relative_path for r in report.results] == ["UPPER.JSON"]

    report = scanner.scan_directory(tmp_path, ScanOptions(extensions=[".md"]))
    assert [r.relative_path for r in report.results] == ["notes.md"]


def test_max_files(scanner, tmp_path):
    for i in range(5):
        _write(tmp_path / f"f{i}.json", REAL_JSON)
    report = scanner.scan_directory(tmp_path, ScanOptions(max_files=2))
    assert report.total_files == 2
    assert report.scanned_files == 2

    assert collect_files(tmp_path, max_files=0) == []
    report = scanner.scan_directory(tmp_path, ScanOptions(max_files=0))
    assert report.total_files == 0
    assert report.results == []


def test_missing_root(scanner, tmp_path):
    missing = tmp_path / "nope"
    report = scanner.scan_directory(missing)
    assert report.errors == [FileError(file=str(missing.resolve()), error="Path does not exist")]
    assert report.total_files == 0
    assert report.results == []


def test_file_as_root(scanner, tmp_path):
    path = _write(tmp_path / "a.json", REAL_JSON)
    report = scanner.scan_directory(path)
    assert len(report.errors) == 1
    assert report.errors[0].error == "Path is not a directory"


def test_size_cap(scanner, tmp_path):
    _write(tmp_path / "big.json", REAL_JSON * 10)
    report = scanner.scan_directory(tmp_path, ScanOptions(max_file_size=64))
    assert report.scanned_files == 0
    assert "too large" in report.errors[0].error


def test_invalid_utf8_is_a_file_error(scanner, tmp_path):
    (tmp_path / "bin.json").write_bytes(b"\xff\xfe\x00bad")
    report = scanner.scan_directory(tmp_path)
    assert [e.file for e in report.errors] == ["bin.json"]


def test_scan_file_directly(scanner, tmp_path):
    path = _write(tmp_path / "one.json", REAL_JSON)
    result = scanner.scan_file(path)
    assert result.relative_path == "one.json"
    assert result.has_secrets
    assert result.real_item_count == 1
    assert result.error is None


def test_scan_file_missing(scanner, tmp_path):
    result = scanner.scan_file(tmp_path / "gone.json", tmp_path)
    assert result.error
    assert result.detected_items == []


def test_scanner_uses_config(tmp_path):
    _write(tmp_path / "ssn.json", '{"ssn": "078-05-1120"}\n')
    report = RedactionScanner(RedactionConfig(detect_pii=False)).scan_directory(tmp_path)
    assert report.total_detections == 0


# ── Progress and cancellation ────────────────────────────────────────

def test_progress_callback(scanner, tmp_path):
    for i in range(3):
        _write(tmp_path / f"f{i}.json", REAL_JSON)
    calls = []
    options = ScanOptions(concurrency=2, on_progress=lambda n, total, path: calls.append((n, total, path)))
    scanner.scan_directory(tmp_path, options)
    assert [c[0] for c in calls] == [1, 2, 3]
    assert all(c[1] == 3 for c in calls)
    assert sorted(c[2] for c in calls) == ["f0.json", "f1.json", "f2.json"]


def test_cancel_before_start(scanner, tmp_path):
    _write(tmp_path / "a.json", REAL_JSON)
    event = threading.Event()
    event.set()
    report = scanner.scan_directory(tmp_path, ScanOptions(cancel_event=event))
    assert report.cancelled
    assert report.scanned_files == 0
    assert report.total_files == 1


def test_cancel_mid_scan(scanner, tmp_path):
    for i in range(4):
        _write(tmp_path / f"f{i}.json", REAL_JSON)
    event = threading.Event()
    options = ScanOptions(concurrency=1, cancel_event=event, on_progress=lambda *a: event.set())
    report = scanner.scan_directory(tmp_path, options)
    assert report.cancelled
    assert report.scanned_files == 1


# ── Apply ────────────────────────────────────────────────────────────

def test_apply_with_backup(scanner, tmp_path):
    root = tmp_path / "data"
    _write(root / "sub" / "real.json", REAL_JSON)
    backups = tmp_path / "backups"

    report = scanner.scan_directory(root)
    result = scanner.apply_redactions(report, ApplyOptions(backup_dir=backups))

    assert result.files_modified == 1
    assert result.errors == []
    content = (root / "sub" / "real.json").read_text(encoding="utf-8")
    assert SECRET not in content
    assert "[REDACTED:API_KEY_OPENAI]" in content
    assert '"note": "hello"' in content

    assert result.backup_dir.parent == backups
    assert result.backup_dir.name.startswith("redaction-")
    backup = result.backup_dir / "sub" / "real.json"
    assert backup.read_text(encoding="utf-8") == REAL_JSON

    mod = result.modifications[0]
    assert mod.status == "written"
    assert mod.original_size == len(REAL_JSON.encode("utf-8"))
    assert mod.new_size == len(content.encode("utf-8"))


def test_apply_without_backup(scanner, tmp_path):
    root = tmp_path / "data"
    _write(root / "real.json", REAL_JSON)
    backups = tmp_path / "backups"
    report = scanner.scan_directory(root)
    result = scanner.apply_redactions(report, ApplyOptions(create_backup=False, backup_dir=backups))
    assert result.files_modified == 1
    assert result.backup_dir is None
    assert not backups.exists()


def test_rescan_after_apply_ignores_backups_inside_root(scanner, tmp_path):
    _write(tmp_path / "real.json", REAL_JSON)
    report = scanner.scan_directory(tmp_path)
    result = scanner.apply_redactions(report, ApplyOptions(backup_dir=tmp_path / "backups"))
    assert result.files_modified == 1
    assert (result.backup_dir / "real.json").read_text(encoding="utf-8") == REAL_JSON

    rescan = scanner.scan_directory(tmp_path)
    assert rescan.total_files == 1
    assert rescan.files_with_issues == 0


def test_apply_preserves_line_endings(scanner, tmp_path):
    path = tmp_path / "crlf.json"
    path.write_bytes(('{\r\n  "key": "%s"\r\n}\r\n' % SECRET).encode("utf-8"))
    report = scanner.scan_directory(tmp_path)
    scanner.apply_redactions(report, ApplyOptions(create_backup=False))
    data = path.read_bytes()
    assert data.count(b"\r\n") == 3
    assert SECRET.encode() not in data


def test_apply_skips_changed_file(scanner, tmp_path):
    path = _write(tmp_path / "real.json", REAL_JSON)
    report = scanner.scan_directory(tmp_path)
    path.write_text('{"clean": true}\n', encoding="utf-8")

    result = scanner.apply_redactions(report, ApplyOptions(create_backup=False))
    assert result.files_skipped == 1
    assert result.files_modified == 0
    assert result.modifications == []


def test_apply_failed_write_leaves_file(scanner, tmp_path, monkeypatch):
    path = _write(tmp_path / "real.json", REAL_JSON)
    report = scanner.scan_directory(tmp_path)

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", _boom)
    result = scanner.apply_redactions(report, ApplyOptions(create_backup=False))

    assert result.files_modified == 0
    assert result.errors == [FileError(file="real.json", error="disk full")]
    assert path.read_text(encoding="utf-8") == REAL_JSON
    assert sorted(p.name for p in tmp_path.iterdir()) == ["real.json"]


def test_apply_deleted_file_is_an_error(scanner, tmp_path):
    path = _write(tmp_path / "real.json", REAL_JSON)
    report = scanner.scan_directory(tmp_path)
    path.unlink()
    result = scanner.apply_redactions(report, ApplyOptions(create_backup=False))
    assert len(result.errors) == 1
    assert result.errors[0].file == "real.json"


# ── Report rendering ─────────────────────────────────────────────────

def test_format_report(scanner, mixed_tree):
    report = scanner.scan_directory(mixed_tree)
    text = format_report(report)
    assert "REDACTION SCAN REPORT" in text
    assert "Files with Issues:     1" in text
    assert "ERRORS (1)" in text
    assert "DETAILS" not in text

    verbose = format_report(report, verbose=True)
    assert "File: real.json" in verbose
    assert "api_key_openai" in verbose


def test_format_report_cancelled(scanner, tmp_path):
    event = threading.Event()
    event.set()
    report = scanner.scan_directory(tmp_path, ScanOptions(cancel_event=event))
    assert "CANCELLED" in format_report(report)


def test_format_apply_result(scanner, mixed_tree):
    report = scanner.scan_directory(mixed_tree)
    result = scanner.apply_redactions(report, ApplyOptions(dry_run=True))
    text = format_apply_result(result, dry_run=True)
    assert "REDACTION PREVIEW (DRY RUN)" in text
    assert "Would Modify:    1" in text
    assert "real.json: 1 redactions" in text


def test_report_to_dict_is_json_ready(scanner, mixed_tree):
    report = scanner.scan_directory(mixed_tree)
    data = json.loads(json.dumps(report_to_dict(report)))
    assert data["scan_path"] == str(mixed_tree.resolve())
    assert data["files_with_secrets"] == 1
    assert data["results"][0]["detected_items"][0]["detection_type"] == "api_key_openai"
    assert data["errors"][0]["file"] == "locked.json"
