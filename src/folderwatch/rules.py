"""Ordered rule evaluation.

Rules are evaluated in insertion order and the first rule whose condition
matches (and which names a destination) wins. There is no fallback bucket:
when nothing matches the caller receives ``None``.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable
from typing import Optional

from .models import (
    CreatedDateCondition,
    FileMetadata,
    FileTypeCondition,
    NamePatternCondition,
    Rule,
    RuleCondition,
)

WILDCARD = "*"


@functools.lru_cache(maxsize=512)
def compile_name_pattern(pattern: str) -> Optional[re.Pattern[str]]:
    """Compile a ``*`` glob into an anchored regex, or ``None`` if it cannot be compiled."""
    translated = ".*".join(re.escape(part) for part in pattern.split(WILDCARD))
    try:
        return re.compile(rf"^{translated}$", re.DOTALL)
    except re.error:
        return None


def _matches_file_type(condition: FileTypeCondition, metadata: FileMetadata) -> bool:
    value = condition.value.lower()
    return value == WILDCARD or value == metadata.extension.lower()


def _matches_name(condition: NamePatternCondition, metadata: FileMetadata) -> bool:
    pattern = condition.pattern
    if WILDCARD not in pattern:
        return pattern in metadata.name
    compiled = compile_name_pattern(pattern)
    if compiled is None:
        return pattern in metadata.name
    return compiled.match(metadata.name) is not None


def condition_matches(condition: RuleCondition, metadata: FileMetadata) -> bool:
    if isinstance(condition, FileTypeCondition):
        return _matches_file_type(condition, metadata)
    if isinstance(condition, NamePatternCondition):
        return _matches_name(condition, metadata)
    if isinstance(condition, CreatedDateCondition):
        # Date comparison is intentionally unimplemented.
        return False
    return False


def rule_matches(rule: Rule, metadata: FileMetadata) -> bool:
    return condition_matches(rule.condition, metadata)


def find_matching_rule(rules: Iterable[Rule], metadata: FileMetadata) -> Optional[Rule]:
    for rule in rules:
        if rule_matches(rule, metadata) and rule.destination:
            return rule
    return None


def resolve_destination(rules: Iterable[Rule], metadata: FileMetadata) -> Optional[str]:
    """Return the destination of the first matching rule with a non-empty destination."""
    rule = find_matching_rule(rules, metadata)
    return rule.destination if rule is not None else None


__all__ = [
    "compile_name_pattern",
    "condition_matches",
    "find_matching_rule",
    "resolve_destination",
    "rule_matches",
]
