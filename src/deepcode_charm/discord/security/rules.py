"""Rule tables for argument screening and charm integrity checks.

Input checks run in a fixed order and the first one that fires wins. The
regex tables are plain data so they can be extended and tested on their own.
Code rules (used when a charm is registered) are a separate table: they look
for dangerous Python constructs, not for hostile chat input.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from deepcode_charm.discord.security.models import RuleMatch, SecurityRule, ViolationReason

MAX_ARG_LENGTH = 1500
MAX_MENTIONS = 5
MAX_CUSTOM_EMOJI = 10
MAX_REPEATED_CHARS = 20
MAX_SOURCE_BYTES = 50 * 1024

FORBIDDEN_CHARS = re.compile(r"[<>'\"&;(){}\[\]\\`$]")
ZERO_WIDTH_CHARS = re.compile("[\u200b-\u200f\u2060-\u2064\ufeff]")

# Discord markup tokens: user/role mentions, channel links, custom emoji
MENTION_TOKEN = re.compile(r"<@[!&]?\d+>|@everyone\b|@here\b")
CHANNEL_TOKEN = re.compile(r"<#\d+>")
CUSTOM_EMOJI_TOKEN = re.compile(r"<a?:\w{2,32}:\d+>")
REPEATED_CHAR = re.compile(r"(.)\1{%d,}" % MAX_REPEATED_CHARS, re.DOTALL)


def _rule(name: str, pattern: str, reason: ViolationReason) -> SecurityRule:
    return SecurityRule(name=name, pattern=re.compile(pattern, re.IGNORECASE), reason=reason)


_SUSPICIOUS = ViolationReason.SUSPICIOUS_PATTERN
_URL = ViolationReason.SUSPICIOUS_URL
_CODE = ViolationReason.DANGEROUS_CODE

SUSPICIOUS_PATTERN_RULES: list[SecurityRule] = [
    # Script URIs and inline markup
    _rule("javascript_uri", r"javascript\s*:", _SUSPICIOUS),
    _rule("vbscript_uri", r"vbscript\s*:", _SUSPICIOUS),
    _rule("html_data_uri", r"data\s*:\s*text/html", _SUSPICIOUS),
    _rule("script_tag", r"<\s*/?\s*script\b", _SUSPICIOUS),
    _rule("iframe_tag", r"<\s*iframe\b", _SUSPICIOUS),
    _rule("inline_event_handler", r"\bon(?:load|error|click|mouseover|focus)\s*=", _SUSPICIOUS),
    # Code injection idioms
    _rule("eval_call", r"\beval\s*\(", _SUSPICIOUS),
    _rule("exec_call", r"\bexec\s*\(", _SUSPICIOUS),
    _rule("function_literal", r"\bfunction\s*\(", _SUSPICIOUS),
    _rule("require_call", r"\brequire\s*\(", _SUSPICIOUS),
    _rule("dynamic_import", r"\bimport\s*\(|__import__", _SUSPICIOUS),
    _rule("prototype_pollution", r"__proto__|\bconstructor\s*[.\[(]", _SUSPICIOUS),
    # Path traversal
    _rule("path_traversal", r"(?:\.\.|%2e%2e)[/\\]", _SUSPICIOUS),
    # SQL keyword sequences
    _rule("sql_union_select", r"\bunion\s+(?:all\s+)?select\b", _SUSPICIOUS),
    _rule("sql_drop", r"\b(?:drop|truncate|alter)\s+table\b", _SUSPICIOUS),
    _rule("sql_insert", r"\binsert\s+into\b", _SUSPICIOUS),
    _rule("sql_delete", r"\bdelete\s+from\b", _SUSPICIOUS),
    _rule("sql_select_all", r"\bselect\s+\*\s+from\b", _SUSPICIOUS),
    _rule("sql_tautology", r"\bor\s+1\s*=\s*1\b", _SUSPICIOUS),
]

SUSPICIOUS_URL_RULES: list[SecurityRule] = [
    _rule(
        "ip_logger",
        r"\b(?:grabify\.link|iplogger\.(?:org|com|ru|co|info)|2no\.co|yip\.su|"
        r"blasze\.(?:com|tk)|ps3cfw\.com|ipgrabber\.ru|gyazos\.com|"
        r"stopify\.co|leancoding\.co|freegiftcards\.co|joinmy\.site|curiouscat\.club)\b",
        _URL,
    ),
    _rule(
        "link_shortener",
        r"\b(?:bit\.ly|tinyurl\.com|goo\.gl|is\.gd|cutt\.ly|shorturl\.at|rb\.gy|"
        r"t\.ly|ow\.ly|adf\.ly|shorte\.st|bc\.vc)\b",
        _URL,
    ),
    _rule("ip_url", r"https?://\d{1,3}(?:\.\d{1,3}){3}", _URL),
]

CODE_RULES: list[SecurityRule] = [
    _rule("eval_call", r"\beval\s*\(", _CODE),
    _rule("exec_call", r"\bexec\s*\(", _CODE),
    _rule("compile_call", r"(?<![\w.])compile\s*\(", _CODE),
    _rule("dunder_import", r"__import__\s*\(", _CODE),
    _rule("importlib_import", r"\bimportlib\.import_module\s*\(", _CODE),
    _rule("os_system", r"\bos\.(?:system|popen|exec\w*|spawn\w*)\s*\(", _CODE),
    _rule("subprocess", r"\bsubprocess\.", _CODE),
    _rule("pickle_loads", r"\b(?:pickle|marshal|dill)\.loads?\s*\(", _CODE),
    _rule("ctypes", r"\bctypes\b", _CODE),
    _rule("globals_mutation", r"\bglobals\s*\(\s*\)\s*\[", _CODE),
    _rule("builtins_patch", r"\bsetattr\s*\(\s*(?:__builtins__|builtins)\b", _CODE),
    _rule("recursive_delete", r"\bshutil\.rmtree\s*\(", _CODE),
]


def match_rules(text: str, rules: list[SecurityRule]) -> RuleMatch | None:
    """Return the first rule in ``rules`` that matches ``text``."""
    for rule in rules:
        match = rule.pattern.search(text)
        if match:
            return RuleMatch(rule=rule.name, reason=rule.reason, matched_text=match.group(0)[:100])
    return None


def strip_platform_tokens(text: str) -> str:
    """Remove mention, channel and custom emoji tokens from ``text``."""
    text = MENTION_TOKEN.sub(" ", text)
    text = CHANNEL_TOKEN.sub(" ", text)
    return CUSTOM_EMOJI_TOKEN.sub(" ", text)


# ---------------------------------------------------------------------------
# Input checks, in evaluation order
# ---------------------------------------------------------------------------


def check_length(text: str) -> RuleMatch | None:
    if len(text) > MAX_ARG_LENGTH:
        return RuleMatch(
            rule="max_length",
            reason=ViolationReason.ARGUMENT_TOO_LONG,
            matched_text=f"length={len(text)}",
        )
    return None


def check_forbidden_characters(text: str) -> RuleMatch | None:
    match = FORBIDDEN_CHARS.search(strip_platform_tokens(text))
    if match:
        return RuleMatch(
            rule="forbidden_characters",
            reason=ViolationReason.FORBIDDEN_CHARACTERS,
            matched_text=match.group(0),
        )
    return None


def check_suspicious_patterns(text: str) -> RuleMatch | None:
    return match_rules(text, SUSPICIOUS_PATTERN_RULES)


def check_suspicious_urls(text: str) -> RuleMatch | None:
    return match_rules(text, SUSPICIOUS_URL_RULES)


def check_mention_flood(text: str) -> RuleMatch | None:
    mentions = len(MENTION_TOKEN.findall(text))
    if mentions > MAX_MENTIONS:
        return RuleMatch(
            rule="mention_flood",
            reason=ViolationReason.MENTION_FLOOD,
            matched_text=f"count={mentions}",
        )
    emoji = len(CUSTOM_EMOJI_TOKEN.findall(text))
    if emoji > MAX_CUSTOM_EMOJI:
        return RuleMatch(
            rule="emoji_flood",
            reason=ViolationReason.EMOJI_FLOOD,
            matched_text=f"count={emoji}",
        )
    return None


def check_repetition(text: str) -> RuleMatch | None:
    match = REPEATED_CHAR.search(text)
    if match:
        return RuleMatch(
            rule="repeated_character",
            reason=ViolationReason.CHARACTER_SPAM,
            matched_text=f"{match.group(1)!r}x{len(match.group(0))}",
        )
    return None


INPUT_CHECKS: list[Callable[[str], RuleMatch | None]] = [
    check_length,
    check_forbidden_characters,
    check_suspicious_patterns,
    check_suspicious_urls,
    check_mention_flood,
    check_repetition,
]


def check_input(text: str) -> RuleMatch | None:
    """Run every input check in order and return the first match."""
    for check in INPUT_CHECKS:
        match = check(text)
        if match is not None:
            return match
    return None


def check_source(source: str) -> RuleMatch | None:
    """Screen a charm's source text at registration time."""
    size = len(source.encode("utf-8"))
    if size > MAX_SOURCE_BYTES:
        return RuleMatch(
            rule="max_source_size",
            reason=ViolationReason.SOURCE_TOO_LARGE,
            matched_text=f"bytes={size}",
        )
    return match_rules(source, CODE_RULES)
