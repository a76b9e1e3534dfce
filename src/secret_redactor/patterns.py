"""Pattern catalog: regexes for credential-like secrets and structured PII.

The catalog is plain data.  Every entry is matched independently against
the whole text and the results are merged, so adding a new kind is a new
row here and nothing else.  Confidence values are part of the contract:
``confidence_threshold`` only behaves predictably if they stay put.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from .types import DetectedItem


@dataclass(frozen=True, slots=True)
class PatternDefinition:
    detection_type: str
    pattern: re.Pattern
    confidence: float
    category: str               # "secret" | "pii"
    description: str
    prefix: str | None = None   # literal prefix real values start with
    speculative: bool = False   # only runs when speculative_patterns is on


def _secret(detection_type: str, regex: str, confidence: float, description: str,
            *, prefix: str | None = None, flags: int = 0,
            speculative: bool = False) -> PatternDefinition:
    return PatternDefinition(detection_type, re.compile(regex, flags), confidence,
                             "secret", description, prefix, speculative)


def _pii(detection_type: str, regex: str, confidence: float,
         description: str) -> PatternDefinition:
    return PatternDefinition(detection_type, re.compile(regex), confidence,
                             "pii", description)


SECRET_PATTERNS: list[PatternDefinition] = [
    # OpenAI
    _secret("api_key_openai", r"sk-[a-zA-Z0-9]{20,}", 0.95,
            "OpenAI API key", prefix="sk-"),
    _secret("api_key_openai", r"sk-proj-[a-zA-Z0-9_\-]{80,}", 0.98,
            "OpenAI project API key", prefix="sk-proj-"),

    # Anthropic
    _secret("api_key_anthropic", r"sk-ant-api[a-zA-Z0-9_\-]{90,}", 0.98,
            "Anthropic API key", prefix="sk-ant-api"),
    _secret("api_key_anthropic", r"sk-ant-[a-zA-Z0-9_\-]{40,}", 0.95,
            "Anthropic API key (short form)", prefix="sk-ant-"),

    # AWS
    _secret("api_key_aws_access", r"AKIA[0-9A-Z]{16}", 0.95,
            "AWS Access Key ID", prefix="AKIA"),
    # Any 40-char base64 run: collides with SHA-1 hashes and random IDs
    _secret("api_key_aws_secret",
            r"(?<![A-Za-z0-9/+=])[A-Za-z0-9/+=]{40}(?![A-Za-z0-9/+=])", 0.4,
            "AWS Secret Access Key (potential)", speculative=True),

    # GitHub
    _secret("api_key_github", r"ghp_[a-zA-Z0-9]{36}", 0.98,
            "GitHub Personal Access Token", prefix="ghp_"),
    _secret("api_key_github", r"gho_[a-zA-Z0-9]{36}", 0.98,
            "GitHub OAuth Token", prefix="gho_"),
    _secret("api_key_github", r"ghu_[a-zA-Z0-9]{36}", 0.98,
            "GitHub User-to-Server Token", prefix="ghu_"),
    _secret("api_key_github", r"ghs_[a-zA-Z0-9]{36}", 0.98,
            "GitHub Server-to-Server Token", prefix="ghs_"),
    _secret("api_key_github_fine_grained", r"github_pat_[a-zA-Z0-9]{22}_[a-zA-Z0-9]{59}", 0.98,
            "GitHub Fine-Grained PAT", prefix="github_pat_"),

    # Stripe
    _secret("api_key_stripe", r"sk_live_[a-zA-Z0-9]{24,}", 0.98,
            "Stripe Live Secret Key", prefix="sk_live_"),
    _secret("api_key_stripe", r"sk_test_[a-zA-Z0-9]{24,}", 0.95,
            "Stripe Test Secret Key", prefix="sk_test_"),
    _secret("api_key_stripe", r"rk_live_[a-zA-Z0-9]{24,}", 0.98,
            "Stripe Restricted Key", prefix="rk_live_"),

    # SendGrid / Twilio
    _secret("api_key_sendgrid", r"SG\.[a-zA-Z0-9_\-]{22}\.[a-zA-Z0-9_\-]{43}", 0.98,
            "SendGrid API Key", prefix="SG."),
    _secret("api_key_twilio", r"SK[a-f0-9]{32}", 0.9,
            "Twilio API Key", prefix="SK"),

    # Slack
    _secret("api_key_slack", r"xoxb-[0-9]{10,13}-[0-9]{10,13}-[a-zA-Z0-9]{24}", 0.98,
            "Slack Bot Token", prefix="xoxb-"),
    _secret("api_key_slack", r"xoxp-[0-9]{10,13}-[0-9]{10,13}-[0-9]{10,13}-[a-f0-9]{32}", 0.98,
            "Slack User Token", prefix="xoxp-"),
    _secret("api_key_slack", r"xapp-[0-9]-[A-Z0-9]+-[0-9]+-[a-z0-9]+", 0.98,
            "Slack App Token", prefix="xapp-"),

    # Discord
    _secret("api_key_discord", r"[MN][A-Za-z\d]{23,}\.[\w\-]{6}\.[\w\-]{27}", 0.9,
            "Discord Bot Token"),

    # Tokens and key material
    _secret("jwt_token", r"eyJ[a-zA-Z0-9_\-]*\.eyJ[a-zA-Z0-9_\-]*\.[a-zA-Z0-9_\-]*", 0.95,
            "JWT Token", prefix="eyJ"),
    _secret("private_key",
            r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----"
            r"[\s\S]*?"
            r"-----END (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----", 0.99,
            "PEM Private Key", prefix="-----BEGIN "),
    _secret("bearer_token", r"Bearer\s+[a-zA-Z0-9_\-]{20,}", 0.8,
            "Bearer Token", flags=re.IGNORECASE),

    # Credentials in URLs
    _secret("basic_auth", r"https?://[^:/\s]+:[^@/\s]+@[^\s]+", 0.85,
            "Basic Auth in URL"),
    _secret("connection_string", r"(?:mongodb|postgres|mysql|redis|amqp)://[^\s'\"]+", 0.7,
            "Database Connection String"),

    # Generic key assignment, leans on false-positive filtering
    _secret("api_key_generic",
            r"(?:api[_\-]?key|apikey|api[_\-]?secret|secret[_\-]?key)\s*[=:]\s*"
            r"[\"']([a-zA-Z0-9_\-]{20,})[\"']", 0.6,
            "Generic API Key Assignment", flags=re.IGNORECASE),
]

PII_PATTERNS: list[PatternDefinition] = [
    # SSN (US); the bare form collides with arbitrary numeric IDs
    _pii("ssn", r"\b\d{3}-\d{2}-\d{4}\b", 0.9, "Social Security Number"),
    _pii("ssn", r"\b\d{9}\b", 0.5, "Potential SSN (no dashes)"),

    # Phone
    _pii("phone_number",
         r"\b\+?1?[\-.\s]?\(?[0-9]{3}\)?[\-.\s]?[0-9]{3}[\-.\s]?[0-9]{4}\b", 0.8,
         "US Phone Number"),
    _pii("phone_number", r"(?<![\w+])\+[1-9]\d{6,14}\b", 0.85,
         "International Phone Number (E.164)"),

    # Email
    _pii("email_address", r"\b[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}\b", 0.9,
         "Email Address"),

    # Credit card: Visa, MC, Amex, Discover, then any grouped 16 digits
    _pii("credit_card",
         r"\b(?:4[0-9]{12}(?:[0-9]{3})?|5[1-5][0-9]{14}|3[47][0-9]{13}|6(?:011|5[0-9]{2})[0-9]{12})\b",
         0.85, "Credit Card Number"),
    _pii("credit_card", r"\b\d{4}[\- ]?\d{4}[\- ]?\d{4}[\- ]?\d{4}\b", 0.7,
         "Credit Card Number (formatted)"),

    # IP addresses
    _pii("ip_address_v4",
         r"\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
         r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b", 0.7,
         "IPv4 Address"),
    _pii("ip_address_v6", r"\b(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}\b", 0.85,
         "IPv6 Address"),
]

SECRET_TYPES: frozenset[str] = frozenset(p.detection_type for p in SECRET_PATTERNS)
PII_TYPES: frozenset[str] = frozenset(p.detection_type for p in PII_PATTERNS)

# Prefixes used by the "looks like a real secret" check, longest first
SECRET_PREFIXES: tuple[str, ...] = tuple(sorted(
    {p.prefix for p in SECRET_PATTERNS if p.prefix},
    key=len, reverse=True,
))

# High-signal subset for needs_redaction()
_QUICK_PATTERNS: list[re.Pattern] = [
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    re.compile(r"sk-ant-"),
    re.compile(r"ghp_[a-zA-Z0-9]{36}"),
    re.compile(r"AKIA[0-9A-Z]{16}"),
    re.compile(r"eyJ[a-zA-Z0-9_\-]+\."),
    re.compile(r"-----BEGIN.*PRIVATE KEY-----"),
    re.compile(r"\d{3}-\d{2}-\d{4}"),
]


def category_of(detection_type: str) -> str:
    return "secret" if detection_type in SECRET_TYPES else "pii"


def iter_matches(
    text: str,
    patterns: Iterable[PatternDefinition],
) -> Iterator[tuple[PatternDefinition, re.Match]]:
    """Yield every non-overlapping, left-to-right match of each pattern."""
    for definition in patterns:
        for m in definition.pattern.finditer(text):
            yield definition, m


def deduplicate(items: list[DetectedItem]) -> list[DetectedItem]:
    """Resolve overlapping findings.  Returns items sorted by start_index.

    Walks left to right keeping the last accepted item.  On overlap the
    higher confidence wins; on a tie the longer match (the more specific
    pattern) wins.
    """
    if len(items) <= 1:
        return list(items)

    taken: list[DetectedItem] = []
    for item in sorted(items, key=lambda i: i.start_index):
        last = taken[-1] if taken else None
        if last is not None and item.start_index < last.end_index:
            if (item.confidence > last.confidence
                    or (item.confidence == last.confidence
                        and len(item.value) > len(last.value))):
                taken[-1] = item
        else:
            taken.append(item)
    return taken


def needs_redaction(text: str) -> bool:
    """Cheap pre-check. True if text might hold something worth a full scan."""
    return any(p.search(text) for p in _QUICK_PATTERNS)
