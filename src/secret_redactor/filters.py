"""False-positive heuristics.

Each signal is an independent predicate over the source line, a window of
surrounding text, or the matched value.  ``false_positive_reason`` combines
them in a fixed priority order:

  1. value is a known safe example
  2. the line carries an allow annotation
  3. the value is already masked
  4. the value is a placeholder
  5. the line reads an env var *and* is a code declaration
  6. the line is a code declaration and the value doesn't look real

The documentation signal is computed and reported but does not decide.
"""

from __future__ import annotations
import math
import re
from collections import Counter
from dataclasses import dataclass

from .patterns import SECRET_PREFIXES

CONTEXT_RADIUS = 100
ENTROPY_THRESHOLD = 3.5

_ENV_ACCESS = [
    re.compile(r"process\.env\.[A-Z_]+", re.IGNORECASE),
    re.compile(r"os\.environ\[['\"][A-Z_]+['\"]\]", re.IGNORECASE),
    re.compile(r"\$\{?[A-Z_]+\}?"),
    re.compile(r"env\(['\"]\w+['\"]\)", re.IGNORECASE),
    re.compile(r"getenv\(['\"]\w+['\"]\)", re.IGNORECASE),
]

_CODE_DECLARATION = [
    re.compile(r"const\s+\w+\s*=\s*process\.env", re.IGNORECASE),
    re.compile(r"let\s+\w+\s*=\s*process\.env", re.IGNORECASE),
    re.compile(r"var\s+\w+\s*=\s*process\.env", re.IGNORECASE),
    re.compile(r":\s*string\s*[;,)]", re.IGNORECASE),
    re.compile(r"interface\s+\w+", re.IGNORECASE),
    re.compile(r"type\s+\w+\s*=", re.IGNORECASE),
    re.compile(r"\w+\s*:\s*(?:string|number|boolean|any)\b", re.IGNORECASE),
    re.compile(r"export\s+(?:const|let|var|type|interface)", re.IGNORECASE),
]

_PLACEHOLDER = [
    re.compile(r"['\"]your[_\-]?api[_\-]?key['\"]", re.IGNORECASE),
    re.compile(r"['\"]your[_\-]?secret[_\-]?key['\"]", re.IGNORECASE),
    re.compile(r"['\"]xxx+['\"]", re.IGNORECASE),
    re.compile(r"['\"]test[_\-]?key['\"]", re.IGNORECASE),
    re.compile(r"['\"]example[_\-]?\w*['\"]", re.IGNORECASE),
    re.compile(r"['\"]placeholder['\"]", re.IGNORECASE),
    re.compile(r"['\"]<[^>]+>['\"]", re.IGNORECASE),
    re.compile(r"sk-\.\.\.$", re.IGNORECASE),
    re.compile(r"\.\.\.[a-z0-9]+$", re.IGNORECASE),
    re.compile(r"\[REDACTED[:\]]", re.IGNORECASE),
    re.compile(r"\*{4,}"),
]

_DOCUMENTATION = [
    re.compile(r"//\s*(?:example|todo|fixme|note):", re.IGNORECASE),
    re.compile(r"/\*\*?[\s\S]*?\*/"),
    re.compile(r"#\s*(?:example|todo|fixme|note):", re.IGNORECASE),
    re.compile(r"<!--[\s\S]*?-->"),
    re.compile(r"```[\s\S]*?```"),
]

_ALLOW_ANNOTATION = [
    re.compile(r"//\s*allow-secret", re.IGNORECASE),
    re.compile(r"//\s*nosec", re.IGNORECASE),
    re.compile(r"//\s*noqa", re.IGNORECASE),
    re.compile(r"#\s*allow-secret", re.IGNORECASE),
    re.compile(r"<!--\s*allow-secret\s*-->", re.IGNORECASE),
]

_ALREADY_MASKED = [
    re.compile(r"sk-\.\.\.[a-z0-9]+", re.IGNORECASE),
    re.compile(r"\*{4,}"),
    re.compile(r"\[REDACTED[:\w]*\]", re.IGNORECASE),
    re.compile(r"x{4,}", re.IGNORECASE),
    re.compile(r"\.\.\.[a-z0-9]{3,6}$", re.IGNORECASE),
]

# Literals that show up in docs and sample code
SAFE_EXAMPLE_VALUES: frozenset[str] = frozenset({
    "sk-test",
    "sk-xxx",
    "sk-example",
    "sk-your-api-key",
    "sk-placeholder",
    "test-key",
    "example-key",
    "your-api-key",
    "your-secret-key",
    "YOUR_API_KEY",
    "YOUR_SECRET_KEY",
    "API_KEY_HERE",
    "INSERT_KEY_HERE",
})


# ── Predicates ───────────────────────────────────────────────────────

def _any(patterns: list[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def is_env_access(line: str) -> bool:
    """The line reads a named environment variable."""
    return _any(_ENV_ACCESS, line)


def is_code_declaration(line: str) -> bool:
    """The line is a type annotation, interface, or export declaration."""
    return _any(_CODE_DECLARATION, line)


def is_placeholder(value: str) -> bool:
    return _any(_PLACEHOLDER, value)


def is_documentation(window: str) -> bool:
    """The surrounding window holds a comment block or fenced example."""
    return _any(_DOCUMENTATION, window)


def has_allow_annotation(line: str) -> bool:
    return _any(_ALLOW_ANNOTATION, line)


def is_already_masked(value: str) -> bool:
    return _any(_ALREADY_MASKED, value)


def is_safe_example(value: str) -> bool:
    return value in SAFE_EXAMPLE_VALUES or value.lower() in SAFE_EXAMPLE_VALUES


def shannon_entropy(value: str) -> float:
    """Bits per character of the value's character distribution."""
    if not value:
        return 0.0
    length = len(value)
    return -sum(
        (count / length) * math.log2(count / length)
        for count in Counter(value).values()
    )


def looks_like_real_secret(value: str) -> bool:
    """High entropy *and* a recognized vendor prefix."""
    return (
        shannon_entropy(value) > ENTROPY_THRESHOLD
        and value.startswith(SECRET_PREFIXES)
    )


# ── Context ──────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class FalsePositiveContext:
    line: str
    window: str
    is_env_access: bool
    is_code_declaration: bool
    is_placeholder: bool
    is_documentation: bool
    has_allow_annotation: bool
    is_already_masked: bool


def line_at(text: str, start: int, end: int) -> str:
    """Full source line(s) containing text[start:end]."""
    line_start = text.rfind("\n", 0, start + 1) + 1
    line_end = text.find("\n", end)
    return text[line_start:] if line_end == -1 else text[line_start:line_end]


def window_at(text: str, start: int, end: int, radius: int = CONTEXT_RADIUS) -> str:
    return text[max(0, start - radius):min(len(text), end + radius)]


def build_context(text: str, start: int, end: int) -> FalsePositiveContext:
    """Evaluate every signal for the match at text[start:end]."""
    value = text[start:end]
    line = line_at(text, start, end)
    window = window_at(text, start, end)
    return FalsePositiveContext(
        line=line,
        window=window,
        is_env_access=is_env_access(line),
        is_code_declaration=is_code_declaration(line),
        is_placeholder=is_placeholder(value),
        is_documentation=is_documentation(window),
        has_allow_annotation=has_allow_annotation(line),
        is_already_masked=is_already_masked(value),
    )


def false_positive_reason(value: str, context: FalsePositiveContext) -> str | None:
    """Return why the match is a false positive, or None if it looks real."""
    if is_safe_example(value):
        return "Known safe example value"
    if context.has_allow_annotation:
        return "Has allow-secret annotation"
    if context.is_already_masked:
        return "Already masked"
    if context.is_placeholder:
        return "Placeholder value"
    if context.is_env_access and context.is_code_declaration:
        return "Environment variable access in code"
    if context.is_code_declaration and not looks_like_real_secret(value):
        return "Code declaration/type definition"
    return None
