"""CLI interface for secret-redactor.

Usage:
    # Scan a tree and print a report (exit 1 if real issues were found)
    secret-redactor --path ./exports scan

    # JSON report to a file
    secret-redactor --path ./exports --json --output report.json scan

    # Preview, then apply redactions (backups go to ./backups/redaction-<ts>)
    secret-redactor --path ./exports --dry-run apply
    secret-redactor --path ./exports apply

    # Check a single string (exit 1 if anything would be redacted)
    secret-redactor validate "sk-abc123def456ghi789jkl012"

Defaults can come from a YAML file (``--config`` or $SECRET_REDACTOR_CONFIG);
flags given on the command line win.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from .config import build_apply_options, build_redaction_config, build_scan_options, load_config, load_from_yaml
from .redactor import Redactor
from .report import format_apply_result, format_report, format_validation, report_to_dict
from .scanner import RedactionScanner

DEFAULT_CONFIG = os.environ.get("SECRET_REDACTOR_CONFIG", "")
DEFAULT_PATH = "."


def _load(args: argparse.Namespace) -> dict:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if args.pii_only:
        cfg["detect_secrets"] = False
    if args.secrets_only:
        cfg["detect_pii"] = False
    if args.confidence is not None:
        cfg["confidence_threshold"] = args.confidence
    if args.mask_format:
        cfg["mask_format"] = args.mask_format
    if args.extensions:
        cfg["scan"]["extensions"] = [
            e if e.startswith(".") else f".{e}" for e in args.extensions.split(",") if e
        ]
    if args.max_files is not None:
        cfg["scan"]["max_files"] = args.max_files
    if args.concurrency is not None:
        cfg["scan"]["concurrency"] = args.concurrency
    if args.no_backup:
        cfg["apply"]["create_backup"] = False
    if args.backup_dir:
        cfg["apply"]["backup_dir"] = args.backup_dir
    return cfg


def _emit(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Report written to: {output}")
    else:
        print(text)


def _progress(scanned: int, total: int, current: str) -> None:
    pct = scanned * 100 // total if total else 100
    sys.stderr.write(f"\r  Progress: {pct}% ({scanned}/{total})")
    if scanned == total:
        sys.stderr.write("\n")


def cmd_scan(args: argparse.Namespace) -> int:
    """Scan files and print a report."""
    cfg = _load(args)
    scanner = RedactionScanner(build_redaction_config(cfg))
    options = build_scan_options(cfg)
    if not args.json and not args.quiet:
        options.on_progress = _progress

    root = Path(args.path).resolve()
    if not root.exists():
        sys.stderr.write(f"Error: Path does not exist: {root}\n")
        return 1

    report = scanner.scan_directory(root, options)
    if args.json:
        _emit(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False), args.output)
    else:
        _emit(format_report(report, args.verbose), args.output)

    return 1 if report.total_real_detections > 0 else 0


def cmd_apply(args: argparse.Namespace) -> int:
    """Scan, then rewrite files with real findings."""
    cfg = _load(args)
    scanner = RedactionScanner(build_redaction_config(cfg))

    root = Path(args.path).resolve()
    if not root.exists():
        sys.stderr.write(f"Error: Path does not exist: {root}\n")
        return 1

    report = scanner.scan_directory(root, build_scan_options(cfg))
    # With --json, stdout carries only the JSON document
    if not args.json:
        if report.files_with_issues == 0:
            print("No issues found. Nothing to redact.")
            return 0
        print(format_report(report, verbose=False))
        print()
        if args.dry_run:
            print("DRY RUN MODE - No files will be modified")
        print(f"Applying redactions to {report.files_with_issues} files...")
        print()

    result = scanner.apply_redactions(report, build_apply_options(cfg, dry_run=args.dry_run))
    if args.json:
        _emit(json.dumps(report_to_dict(result), indent=2, ensure_ascii=False), args.output)
    else:
        _emit(format_apply_result(result, args.dry_run), args.output)

    return 1 if result.errors else 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Redact a single string and show every detection."""
    text = args.text if args.text is not None else sys.stdin.read()
    config = build_redaction_config(_load(args))
    result = Redactor(replace(config, audit_log=False)).redact(text)
    print(format_validation(result))
    return 1 if result.stats.items_redacted > 0 else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="secret-redactor",
        description="Scan and redact secrets/PII from text and file trees",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="YAML config file")
    parser.add_argument("--path", "-p", default=DEFAULT_PATH, help="Directory to scan")
    parser.add_argument("--output", "-o", default=None, help="Write report to file")
    parser.add_argument("--json", action="store_true", help="Output report as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Detailed detections and debug logging")
    parser.add_argument("--quiet", "-q", action="store_true", help="No progress output")
    parser.add_argument("--dry-run", action="store_true", help="Preview changes without modifying files")
    parser.add_argument("--no-backup", action="store_true", help="Don't back up files before modifying")
    parser.add_argument("--backup-dir", default=None, help="Backup root (default: ./backups)")
    parser.add_argument("--max-files", type=int, default=None, help="Limit number of files to scan")
    parser.add_argument("--extensions", default="", help="Comma-separated extensions (default: .json)")
    parser.add_argument("--concurrency", type=int, default=None, help="Scan worker count")
    only = parser.add_mutually_exclusive_group()
    only.add_argument("--pii-only", action="store_true", help="Only detect PII")
    only.add_argument("--secrets-only", action="store_true", help="Only detect secrets")
    parser.add_argument("--confidence", type=float, default=None, help="Minimum confidence (0-1, default 0.5)")
    parser.add_argument("--mask-format", choices=["full", "partial"], default=None, help="Mask style")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("scan", help="Scan files and report")
    sub.add_parser("apply", help="Scan and apply redactions to files")
    validate = sub.add_parser("validate", help="Validate a single text (argument or stdin)")
    validate.add_argument("text", nargs="?", default=None)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "scan": cmd_scan,
        "apply": cmd_apply,
        "validate": cmd_validate,
    }
    return cmds[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
