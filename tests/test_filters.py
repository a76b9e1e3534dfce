"""Tests for the false-positive predicates and their priority order."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from secret_redactor.filters import (
    FalsePositiveContext,
    build_context,
    false_positive_reason,
    has_allow_annotation,
    is_already_masked,
    is_code_declaration,
    is_documentation,
    is_env_access,
    is_placeholder,
    is_safe_example,
    line_at,
    looks_like_real_secret,
    shannon_entropy,
    window_at,
)


def _ctx(**flags):
    defaults = dict(
        line="", window="",
        is_env_access=False, is_code_declaration=False, is_placeholder=False,
        is_documentation=False, has_allow_annotation=False, is_already_masked=False,
    )
    defaults.update(flags)
    return FalsePositiveContext(**defaults)


# ── Predicates ───────────────────────────────────────────────────────

@pytest.mark.parametrize("line", [
    "const key = process.env.OPENAI_KEY",
    "key = os.environ['API_KEY']",
    "echo ${API_KEY}",
    "token: $TOKEN",
    "key = env('STRIPE_KEY')",
    "key = os.getenv(\"STRIPE_KEY\")",
])
def test_env_access(line):
    assert is_env_access(line)


def test_env_access_negative():
    assert not is_env_access("key = load_key()")


@pytest.mark.parametrize("line", [
    "const apiKey: string = process.env.API_KEY;",
    "interface Config {",
    "type Token = string",
    "  timeout: number,",
    "export const TOKEN = 'abc'",
])
def test_code_declaration(line):
    assert is_code_declaration(line)


def test_code_declaration_negative():
    assert not is_code_declaration("OPENAI_KEY=sk-abc")
    assert not is_code_declaration('"key": "value"')


@pytest.mark.parametrize("value", [
    'api_key = "your_api_key"',
    'key = "xxxx"',
    'key = "example_token"',
    'key = "<paste-key>"',
    "sk-...",
    "[REDACTED:API_KEY]",
    "****",
])
def test_placeholder(value):
    assert is_placeholder(value)


def test_placeholder_negative():
    assert not is_placeholder("sk-abc123def456ghi789jkl012")


def test_documentation():
    assert is_documentation("/** Example usage: sk-abc */")
    assert is_documentation("```\nKEY=sk-abc\n```")
    assert is_documentation("<!-- token here -->")
    assert is_documentation("# Example: set KEY")
    assert is_documentation("// TODO: rotate this")
    assert not is_documentation("plain prose with a key in it")


def test_allow_annotation():
    assert has_allow_annotation('key = "abc"  # allow-secret')
    assert has_allow_annotation("const k = 'abc' // nosec")
    assert has_allow_annotation("k = 1 // noqa")
    assert has_allow_annotation("<!-- allow-secret -->")
    assert not has_allow_annotation("key = 'abc'")


def test_already_masked():
    assert is_already_masked("[REDACTED:API_KEY_OPENAI]")
    assert is_already_masked("sk-...abc")
    assert is_already_masked("****1234")
    assert is_already_masked("ghp_xxxxxxxxxxxx")
    assert is_already_masked("sk-a...012")
    assert not is_already_masked("sk-abc123def456ghi789jkl012")


def test_safe_example():
    assert is_safe_example("YOUR_API_KEY")
    assert is_safe_example("sk-test")
    assert is_safe_example("SK-TEST")
    assert not is_safe_example("sk-real")


# ── Entropy ──────────────────────────────────────────────────────────

def test_entropy_values():
    assert shannon_entropy("") == 0.0
    assert shannon_entropy("aaaa") == 0.0
    assert shannon_entropy("ab") == pytest.approx(1.0)
    assert shannon_entropy("abcd") == pytest.approx(2.0)


def test_looks_like_real_secret():
    assert looks_like_real_secret("sk-abc123def456ghi789jkl012")
    # right prefix, low entropy
    assert not looks_like_real_secret("sk-aaaaaaaaaaaaaaaaaaaaaaaa")
    # high entropy, no vendor prefix
    assert not looks_like_real_secret("Zq8kP2mW9xR4tY7nB3vC6")


# ── Context ──────────────────────────────────────────────────────────

def test_line_at_middle():
    text = "first\nsecond line\nthird"
    start = text.index("second")
    assert line_at(text, start, start + 6) == "second line"


def test_line_at_edges():
    assert line_at("abc", 0, 1) == "abc"
    text = "one\ntwo"
    start = text.index("two")
    assert line_at(text, start, start + 3) == "two"


def test_window_is_clamped():
    text = "x" * 50
    assert window_at(text, 10, 20) == text
    long = "a" * 300
    assert len(window_at(long, 150, 160)) == 210


def test_build_context_flags():
    text = "const apiKey: string = process.env.API_KEY;"
    ctx = build_context(text, 6, 12)
    assert ctx.line == text
    assert ctx.is_env_access
    assert ctx.is_code_declaration
    assert not ctx.has_allow_annotation


# ── Priority order ───────────────────────────────────────────────────

def test_safe_example_first():
    ctx = _ctx(has_allow_annotation=True, is_already_masked=True, is_placeholder=True)
    assert false_positive_reason("YOUR_API_KEY", ctx) == "Known safe example value"


def test_allow_before_masked():
    ctx = _ctx(has_allow_annotation=True, is_already_masked=True, is_placeholder=True)
    assert false_positive_reason("value", ctx) == "Has allow-secret annotation"


def test_masked_before_placeholder():
    ctx = _ctx(is_already_masked=True, is_placeholder=True)
    assert false_positive_reason("value", ctx) == "Already masked"


def test_placeholder_before_code():
    ctx = _ctx(is_placeholder=True, is_env_access=True, is_code_declaration=True)
    assert false_positive_reason("value", ctx) == "Placeholder value"


def test_env_and_code():
    ctx = _ctx(is_env_access=True, is_code_declaration=True)
    reason = false_positive_reason("sk-abc123def456ghi789jkl012", ctx)
    assert reason == "Environment variable access in code"


def test_env_access_alone_is_real():
    ctx = _ctx(is_env_access=True)
    assert false_positive_reason("sk-abc123def456ghi789jkl012", ctx) is None


def test_code_declaration_real_secret_survives():
    ctx = _ctx(is_code_declaration=True)
    assert false_positive_reason("sk-abc123def456ghi789jkl012", ctx) is None
    assert false_positive_reason("Bearer abcdefghijklmnop", ctx) == "Code declaration/type definition"


def test_documentation_does_not_decide():
    ctx = _ctx(is_documentation=True)
    assert false_positive_reason("sk-abc123def456ghi789jkl012", ctx) is None
