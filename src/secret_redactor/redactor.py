"""Redactor: the detection engine and main API.

Usage:
    from secret_redactor import Redactor, RedactionConfig

    redactor = Redactor()        # stateless across calls, safe to share
    result = redactor.redact("OPENAI_KEY=sk-abc123def456ghi789jkl012")
    print(result.redacted_text)  # "OPENAI_KEY=[REDACTED:API_KEY_OPENAI]"

    for item in result.detected_items:   # every finding, incl. false positives
        print(item.detection_type, item.confidence, item.false_positive_reason)
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, replace

from .filters import build_context, false_positive_reason
from .patterns import (
    PII_PATTERNS,
    PII_TYPES,
    SECRET_PATTERNS,
    SECRET_TYPES,
    PatternDefinition,
    deduplicate,
    iter_matches,
)
from .types import DetectedItem, RedactionResult, RedactionStats, ValidationResult

logger = logging.getLogger(__name__)

_MASK_FORMATS = ("full", "partial")
MAX_REDACTION_PASSES = 8


@dataclass
class RedactionConfig:
    """Configuration for the Redactor."""
    detect_secrets: bool = True
    detect_pii: bool = True
    confidence_threshold: float = 0.5     # minimum confidence to redact
    mask_format: str = "full"             # "full" → [REDACTED:TYPE], "partial" → sk-a...xyz
    audit_log: bool = False               # log redaction counts/types (never values)
    skip_false_positive_filtering: bool = False
    # Run low-confidence catch-all patterns (e.g. 40-char AWS-secret shape)
    speculative_patterns: bool = False

    def __post_init__(self) -> None:
        if self.mask_format not in _MASK_FORMATS:
            raise ValueError(f"mask_format must be one of {_MASK_FORMATS}, got {self.mask_format!r}")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}")


def create_mask(value: str, detection_type: str, mask_format: str = "full") -> str:
    """Replacement string for a detected value."""
    if mask_format == "partial":
        if len(value) > 10:
            return f"{value[:4]}...{value[-3:]}"
        return "*" * len(value)
    return f"[REDACTED:{detection_type.upper().replace('-', '_')}]"


def apply_redactions_to_text(text: str, items: list[DetectedItem]) -> str:
    """Splice masks into text, highest offset first so earlier offsets stay valid."""
    result = text
    for item in sorted(items, key=lambda i: i.start_index, reverse=True):
        result = result[:item.start_index] + item.masked + result[item.end_index:]
    return result


def _overlaps(a: DetectedItem, b: DetectedItem) -> bool:
    return a.start_index < b.end_index and b.start_index < a.end_index


def _original_offset(pos: int, redacted: list[DetectedItem], *, end: bool) -> int:
    """Map an offset in the masked text back to the original text.

    An offset that falls inside a mask snaps outward to the masked item's
    bounds, so a later finding that swallowed part of a mask covers all of it.
    """
    shift = 0
    for item in redacted:
        mask_start = item.start_index + shift
        if pos <= mask_start:
            break
        if pos < mask_start + len(item.masked):
            return item.end_index if end else item.start_index
        shift += len(item.masked) - (item.end_index - item.start_index)
    return pos - shift


class Redactor:
    """Pattern-based secret/PII detector with contextual false-positive filtering."""

    def __init__(self, config: RedactionConfig | None = None) -> None:
        self.config = config or RedactionConfig()

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def detect(self, text: str) -> list[DetectedItem]:
        """All findings in text, overlap-resolved and sorted by start_index."""
        items: list[DetectedItem] = []
        if self.config.detect_secrets:
            items.extend(self._detect_patterns(text, SECRET_PATTERNS))
        if self.config.detect_pii:
            items.extend(self._detect_patterns(text, PII_PATTERNS))
        return deduplicate(items)

    def redact(self, text: str) -> RedactionResult:
        """Detect and mask everything real and above the confidence threshold.

        A mask can create a word boundary that was not there before
        (``10.0.0.1sk-...`` becomes ``10.0.0.1[REDACTED:...]``), exposing a
        neighbour that the first pass could not see.  The output is therefore
        re-scanned until it is stable, and anything found on a later pass is
        mapped back onto the original text and redacted with the rest.
        """
        detected = self.detect(text)
        to_redact = [i for i in detected if self._should_redact(i)]
        redacted_text = apply_redactions_to_text(text, to_redact)

        folded = False
        for _ in range(MAX_REDACTION_PASSES):
            exposed = [i for i in self.detect(redacted_text) if self._should_redact(i)]
            if not exposed:
                break
            to_redact = self._fold(text, to_redact, exposed)
            redacted_text = apply_redactions_to_text(text, to_redact)
            folded = True
        else:
            logger.warning(f"Redaction did not settle after {MAX_REDACTION_PASSES} passes")

        if folded:
            others = [
                i for i in detected
                if not self._should_redact(i) and not any(_overlaps(i, r) for r in to_redact)
            ]
            detected = sorted(others + to_redact, key=lambda i: i.start_index)

        stats = RedactionStats(
            total_detected=len(detected),
            secrets_detected=sum(1 for i in detected if i.detection_type in SECRET_TYPES),
            pii_detected=sum(1 for i in detected if i.detection_type in PII_TYPES),
            false_positives=sum(1 for i in detected if i.is_false_positive),
            items_redacted=len(to_redact),
        )

        if self.config.audit_log and to_redact:
            types = ", ".join(i.detection_type for i in to_redact)
            logger.info(f"Redacted {len(to_redact)} items: {types}")

        return RedactionResult(
            original_text=text,
            redacted_text=redacted_text,
            detected_items=detected,
            stats=stats,
        )

    # ------------------------------------------------------------------
    # Convenience checks
    # ------------------------------------------------------------------

    def has_secrets(self, text: str) -> bool:
        return any(
            self._should_redact(i) and i.detection_type in SECRET_TYPES
            for i in self.detect(text)
        )

    def has_pii(self, text: str) -> bool:
        return any(
            self._should_redact(i) and i.detection_type in PII_TYPES
            for i in self.detect(text)
        )

    def validate(self, text: str) -> ValidationResult:
        """Warnings for pipeline integration; clean means nothing would be redacted."""
        real = [i for i in self.detect(text) if self._should_redact(i)]
        warnings = [
            f"Detected {i.detection_type} at position {i.start_index} "
            f"(confidence: {i.confidence * 100:.0f}%"
            f"{', documentation context' if i.in_documentation else ''})"
            for i in real
        ]
        return ValidationResult(is_clean=not real, warnings=warnings)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fold(
        self,
        text: str,
        redacted: list[DetectedItem],
        exposed: list[DetectedItem],
    ) -> list[DetectedItem]:
        """Merge later-pass findings (offsets into the masked text) into ``redacted``."""
        widened = []
        for item in exposed:
            start = _original_offset(item.start_index, redacted, end=False)
            end = _original_offset(item.end_index, redacted, end=True)
            value = text[start:end]
            widened.append(replace(
                item,
                value=value,
                masked=create_mask(value, item.detection_type, self.config.mask_format),
                start_index=start,
                end_index=end,
            ))
        kept = [r for r in redacted if not any(_overlaps(r, w) for w in widened)]
        return deduplicate(kept + widened)

    def _should_redact(self, item: DetectedItem) -> bool:
        return not item.is_false_positive and item.confidence >= self.config.confidence_threshold

    def _detect_patterns(self, text: str, patterns: list[PatternDefinition]) -> list[DetectedItem]:
        active = [p for p in patterns if self.config.speculative_patterns or not p.speculative]
        items: list[DetectedItem] = []
        for definition, m in iter_matches(text, active):
            value = m.group(0)
            context = build_context(text, m.start(), m.end())
            reason = None
            if not self.config.skip_false_positive_filtering:
                reason = false_positive_reason(value, context)
            items.append(DetectedItem(
                detection_type=definition.detection_type,
                category=definition.category,
                value=value,
                masked=create_mask(value, definition.detection_type, self.config.mask_format),
                start_index=m.start(),
                end_index=m.end(),
                confidence=definition.confidence,
                is_false_positive=reason is not None,
                false_positive_reason=reason,
                in_documentation=context.is_documentation,
            ))
        return items


# Process-wide default instance
_default: Redactor | None = None


def get_redactor(config: RedactionConfig | None = None) -> Redactor:
    """Shared Redactor; passing a config replaces it."""
    global _default
    if _default is None or config is not None:
        _default = Redactor(config)
    return _default


def redact_text(text: str, config: RedactionConfig | None = None) -> RedactionResult:
    """Redact text with the shared redactor, or a one-off one for config."""
    redactor = Redactor(config) if config is not None else get_redactor()
    return redactor.redact(text)
