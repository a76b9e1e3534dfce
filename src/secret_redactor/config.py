"""YAML/dict config loader for secret-redactor.

Supports loading from a YAML file or a plain dict (for embedding in a
larger tool config).

Example YAML:

    secret_redactor:
      detect_secrets: true
      detect_pii: true
      confidence_threshold: 0.5
      mask_format: full          # "full" or "partial"
      audit_log: false
      speculative_patterns: false
      scan:
        extensions: [.json, .md, .txt]
        max_files: null
        concurrency: 4
        max_file_size: 5242880
        real_issues_only: true
      apply:
        create_backup: true
        backup_dir: ./backups
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

import yaml

from .redactor import RedactionConfig
from .scanner import DEFAULT_EXTENSIONS, DEFAULT_MAX_FILE_SIZE, ApplyOptions, RedactionScanner, ScanOptions


def _value(section: dict[str, Any], key: str, default: Any) -> Any:
    # An explicit null in YAML means "use the default"
    value = section.get(key)
    return default if value is None else value


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline), filling defaults."""
    data = data or {}
    # Support nested under "secret_redactor" key or flat
    if "secret_redactor" in data:
        data = data["secret_redactor"] or {}

    scan = data.get("scan") or {}
    apply = data.get("apply") or {}
    return {
        "detect_secrets": _value(data, "detect_secrets", True),
        "detect_pii": _value(data, "detect_pii", True),
        "confidence_threshold": float(_value(data, "confidence_threshold", 0.5)),
        "mask_format": _value(data, "mask_format", "full"),
        "audit_log": _value(data, "audit_log", False),
        "skip_false_positive_filtering": _value(data, "skip_false_positive_filtering", False),
        "speculative_patterns": _value(data, "speculative_patterns", False),
        "scan": {
            "extensions": list(scan.get("extensions") or DEFAULT_EXTENSIONS),
            "max_files": scan.get("max_files"),
            "concurrency": int(_value(scan, "concurrency", 4)),
            "max_file_size": scan.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
            "real_issues_only": _value(scan, "real_issues_only", True),
        },
        "apply": {
            "create_backup": _value(apply, "create_backup", True),
            "backup_dir": _value(apply, "backup_dir", "./backups"),
        },
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        return load_config(yaml.safe_load(f))


def _normalized(config: dict[str, Any]) -> dict[str, Any]:
    return config if "scan" in config and "apply" in config else load_config(config)


def build_redaction_config(config: dict[str, Any]) -> RedactionConfig:
    cfg = _normalized(config)
    return RedactionConfig(
        detect_secrets=cfg["detect_secrets"],
        detect_pii=cfg["detect_pii"],
        confidence_threshold=cfg["confidence_threshold"],
        mask_format=cfg["mask_format"],
        audit_log=cfg["audit_log"],
        skip_false_positive_filtering=cfg["skip_false_positive_filtering"],
        speculative_patterns=cfg["speculative_patterns"],
    )


def build_scan_options(config: dict[str, Any]) -> ScanOptions:
    scan = _normalized(config)["scan"]
    return ScanOptions(
        extensions=scan["extensions"],
        max_files=scan["max_files"],
        concurrency=scan["concurrency"],
        max_file_size=scan["max_file_size"],
        real_issues_only=scan["real_issues_only"],
    )


def build_apply_options(config: dict[str, Any], *, dry_run: bool = False) -> ApplyOptions:
    apply = _normalized(config)["apply"]
    return ApplyOptions(
        dry_run=dry_run,
        create_backup=apply["create_backup"],
        backup_dir=apply["backup_dir"],
    )


def create_scanner(config: dict[str, Any]) -> RedactionScanner:
    """Create a fully configured scanner from a config dict."""
    return RedactionScanner(build_redaction_config(config))
