"""Secret Redactor: detect and mask API keys, tokens and PII in text and file trees."""

from .redactor import RedactionConfig, Redactor, create_mask, get_redactor, redact_text
from .patterns import needs_redaction
from .scanner import ApplyOptions, RedactionScanner, ScanOptions
from .config import create_scanner, load_config, load_from_yaml
from .report import format_apply_result, format_report, format_validation, report_to_dict
from .types import (
    ApplyResult,
    DetectedItem,
    FileError,
    FileModification,
    RedactionResult,
    RedactionStats,
    ScanReport,
    ScanResult,
    ValidationResult,
)

__all__ = [
    "Redactor", "RedactionConfig", "create_mask", "get_redactor", "redact_text",
    "needs_redaction",
    "RedactionScanner", "ScanOptions", "ApplyOptions",
    "create_scanner", "load_config", "load_from_yaml",
    "format_report", "format_apply_result", "format_validation", "report_to_dict",
    "DetectedItem", "RedactionStats", "RedactionResult", "ValidationResult",
    "ScanResult", "ScanReport", "FileError", "FileModification", "ApplyResult",
]
__version__ = "0.1.0"
