"""
Redactor - Regex-based secret and PII scrubbing ("redact-then-index")

Runs before chunking and before any embedding or chat call, so that no raw
secret ever leaves the machine:
- Built-in rules: API keys, cloud credentials, emails, private keys,
  bearer tokens, generic secret assignments, password fields
- User-supplied custom patterns (invalid patterns are skipped)

Assignment-style rules keep the field name and replace only the value, so
redacted notes stay searchable ("api_key" still matches) and redaction is
idempotent.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Pattern, Union

logger = logging.getLogger(__name__)

CUSTOM_PLACEHOLDER = "[REDACTED_CUSTOM]"


@dataclass
class RedactionRule:
    """A compiled pattern and the replacement applied to every match"""
    pattern: Pattern
    replacement: str
    description: str


@dataclass
class RedactionResult:
    """Result of a redaction pass"""
    redacted_text: str
    detected: List[str] = field(default_factory=list)
    redaction_count: int = 0


DEFAULT_RULES = [
    RedactionRule(
        re.compile(r'(sk-[a-zA-Z0-9]{32,})|(ghp_[a-zA-Z0-9]{30,})'),
        "[REDACTED_API_KEY]",
        "OpenAI/GitHub API keys",
    ),
    RedactionRule(
        re.compile(r'sk-or-[a-zA-Z0-9-]{30,}'),
        "[REDACTED_API_KEY]",
        "OpenRouter API keys",
    ),
    RedactionRule(
        re.compile(r'AKIA[0-9A-Z]{16}'),
        "[REDACTED_AWS_KEY]",
        "AWS Access Keys",
    ),
    RedactionRule(
        re.compile(r'((?:aws_secret_access_key|secret_key)["\'\s:=]+)[A-Za-z0-9+/]{40}', re.IGNORECASE),
        r"\1[REDACTED_AWS_SECRET]",
        "AWS Secret Keys",
    ),
    RedactionRule(
        re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'),
        "[REDACTED_EMAIL]",
        "Email addresses",
    ),
    RedactionRule(
        re.compile(
            r'-{5}BEGIN\s+(RSA|OPENSSH|DSA|EC|PGP)\s+PRIVATE\s+KEY-{5}[\s\S]*?-{5}END\s+\1\s+PRIVATE\s+KEY-{5}'
        ),
        "[REDACTED_PRIVATE_KEY]",
        "Private keys (RSA, OpenSSH, DSA, EC, PGP)",
    ),
    RedactionRule(
        re.compile(r'Bearer\s+[a-zA-Z0-9_-]{20,}', re.IGNORECASE),
        "Bearer [REDACTED_TOKEN]",
        "Bearer tokens",
    ),
    RedactionRule(
        re.compile(
            r'((?:api[_-]?key|apikey|api[_-]?secret|api[_-]?token)["\'\s:=]+["\']?)[a-zA-Z0-9_-]{20,}',
            re.IGNORECASE,
        ),
        r"\1[REDACTED_API_KEY]",
        "Generic API keys",
    ),
    RedactionRule(
        re.compile(r'((?:password|passwd|pwd)["\'\s:=]+["\']?)[^\s"\']{8,}', re.IGNORECASE),
        r"\1[REDACTED_PASSWORD]",
        "Passwords",
    ),
]


class Redactor:
    """Apply built-in and custom redaction rules to text"""

    def __init__(self, enabled: bool = True, custom_patterns: Union[str, Iterable[str], None] = None):
        """
        Initialize redactor

        Args:
            enabled: Apply redaction (when False, text passes through untouched)
            custom_patterns: Extra regexes, as a list or one pattern per line
        """
        self.enabled = enabled
        self.custom_rules: List[RedactionRule] = []
        if custom_patterns:
            self.set_custom_patterns(custom_patterns)

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    def set_custom_patterns(self, patterns: Union[str, Iterable[str]]) -> None:
        """
        Replace the custom pattern list

        Args:
            patterns: One regex per line (string) or an iterable of regexes.
                Invalid patterns are logged and skipped.
        """
        if isinstance(patterns, str):
            patterns = patterns.split("\n")

        self.custom_rules = []
        for raw in patterns:
            line = raw.strip()
            if not line:
                continue
            try:
                compiled = re.compile(line)
            except re.error as e:
                logger.warning(f"Invalid redaction pattern '{line}': {e}")
                continue
            self.custom_rules.append(RedactionRule(compiled, CUSTOM_PLACEHOLDER, f"Custom pattern: {line}"))

        logger.info(f"Loaded {len(self.custom_rules)} custom redaction patterns")

    def redact(self, text: str) -> str:
        """Return text with every sensitive match replaced by its placeholder"""
        return self.redact_with_report(text).redacted_text

    def redact_with_report(self, text: str) -> RedactionResult:
        """
        Redact text and report what was found

        Args:
            text: Original text

        Returns:
            RedactionResult with the redacted text and per-rule counts
        """
        if not self.enabled or not text:
            return RedactionResult(redacted_text=text)

        redacted = text
        detected = []
        total = 0

        for rule in DEFAULT_RULES + self.custom_rules:
            redacted, count = rule.pattern.subn(rule.replacement, redacted)
            if count:
                total += count
                detected.append(f"{rule.description}: {count} occurrences")

        if total:
            logger.info(f"Redacted {total} sensitive item(s)")

        return RedactionResult(redacted_text=redacted, detected=detected, redaction_count=total)

    def default_pattern_descriptions(self) -> List[str]:
        return [rule.description for rule in DEFAULT_RULES]

    @property
    def custom_pattern_count(self) -> int:
        return len(self.custom_rules)

    def get_stats(self):
        """Get redactor statistics"""
        return {
            'enabled': self.enabled,
            'default_patterns': len(DEFAULT_RULES),
            'custom_patterns': len(self.custom_rules),
        }
