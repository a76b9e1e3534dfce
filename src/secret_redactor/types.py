"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

SecretType = Literal[
    "api_key_openai",
    "api_key_anthropic",
    "api_key_aws_access",
    "api_key_aws_secret",
    "api_key_github",
    "api_key_github_fine_grained",
    "api_key_stripe",
    "api_key_sendgrid",
    "api_key_twilio",
    "api_key_slack",
    "api_key_discord",
    "api_key_generic",
    "jwt_token",
    "private_key",
    "bearer_token",
    "basic_auth",
    "connection_string",
]

PIIType = Literal[
    "ssn",
    "phone_number",
    "email_address",
    "credit_card",
    "ip_address_v4",
    "ip_address_v6",
]

DetectionType = SecretType | PIIType
Category = Literal["secret", "pii"]
MaskFormat = Literal["full", "partial"]


@dataclass(frozen=True, slots=True)
class DetectedItem:
    """A single match of one catalog pattern."""
    detection_type: str    # e.g. "api_key_openai", "ssn"
    category: str          # "secret" | "pii"
    value: str             # exact matched substring
    masked: str            # replacement computed at detection time
    start_index: int
    end_index: int         # half-open
    confidence: float      # pattern's base confidence, 0.0–1.0
    is_false_positive: bool = False
    false_positive_reason: str | None = None
    in_documentation: bool = False


@dataclass(frozen=True, slots=True)
class RedactionStats:
    total_detected: int = 0
    secrets_detected: int = 0
    pii_detected: int = 0
    false_positives: int = 0
    items_redacted: int = 0


@dataclass(frozen=True, slots=True)
class RedactionResult:
    """Result of redacting one text buffer."""
    original_text: str
    redacted_text: str
    detected_items: list[DetectedItem] = field(default_factory=list)  # all findings, incl. FPs
    stats: RedactionStats = field(default_factory=RedactionStats)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_clean: bool
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FileError:
    file: str     # path relative to the scan root
    error: str


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Per-file scan outcome."""
    file_path: Path
    relative_path: str
    detected_items: list[DetectedItem] = field(default_factory=list)
    has_secrets: bool = False
    has_pii: bool = False
    real_item_count: int = 0
    false_positive_count: int = 0
    error: str | None = None


@dataclass(slots=True)
class ScanReport:
    """Aggregate over one directory scan.  Filled in while files are processed."""
    scan_path: Path
    timestamp: datetime
    total_files: int = 0
    scanned_files: int = 0
    files_with_issues: int = 0
    files_with_secrets: int = 0
    files_with_pii: int = 0
    total_detections: int = 0
    total_real_detections: int = 0
    total_false_positives: int = 0
    results: list[ScanResult] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)
    duration: float = 0.0     # seconds
    cancelled: bool = False


@dataclass(frozen=True, slots=True)
class FileModification:
    file: str
    items_redacted: int
    original_size: int
    new_size: int
    status: Literal["written", "dry_run"] = "written"


@dataclass(slots=True)
class ApplyResult:
    """Outcome of rewriting the files of one ScanReport."""
    total_files: int = 0
    files_modified: int = 0
    files_skipped: int = 0
    backup_dir: Path | None = None
    errors: list[FileError] = field(default_factory=list)
    modifications: list[FileModification] = field(default_factory=list)
