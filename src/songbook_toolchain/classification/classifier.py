"""
Transcript line classification.

This module assigns a severity (error, warning, info) to process output lines
based on configurable, prioritised rules, with caching of repeated lines.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from .. import config
from ..models.config import RuleConfig
from ..models.states import LineSeverity

logger = logging.getLogger(__name__)

CACHE_SIZE_LIMIT = 4096

# Cache keyed by (tool, line text) for lines classified with the configured rules
_classification_cache: Dict[Tuple[Optional[str], str], LineSeverity] = {}
_compiled_patterns: Dict[str, "re.Pattern[str]"] = {}


def _rule_matches(rule: RuleConfig, text: str) -> bool:
    if rule.match_type == "in_list":
        patterns: List[str] = rule.patterns if isinstance(rule.patterns, list) else [rule.patterns]
        return text.strip() in patterns

    pattern = rule.patterns if isinstance(rule.patterns, str) else (rule.patterns[0] if rule.patterns else "")
    if not pattern:
        return False
    if rule.match_type == "exact":
        return text.strip() == pattern
    if rule.match_type == "prefix":
        return text.startswith(pattern)
    if rule.match_type == "contains":
        return pattern in text
    if rule.match_type == "regex":
        compiled = _compiled_patterns.get(pattern)
        if compiled is None:
            compiled = _compiled_patterns[pattern] = re.compile(pattern)
        return bool(compiled.search(text))
    return False


def classify_line(
    text: str,
    tool: Optional[str] = None,
    rules: Optional[Sequence[RuleConfig]] = None,
) -> LineSeverity:
    """Classify one transcript line.

    Rules are applied in priority order and the first match decides the
    severity. Rules restricted to a tool only apply when ``tool`` (the
    basename of the program that produced the line) equals the rule's tool.

    Args:
        text: The line, without its trailing newline.
        tool: Program basename that produced the line, if known.
        rules: Rules to apply. Defaults to the configured rules, in which
            case results are cached.

    Returns:
        The severity of the line; INFO when no rule matches.

    Examples:
        >>> classify_line("! Undefined control sequence.")
        <LineSeverity.ERROR: 'error'>
    """
    use_cache = rules is None
    cache_key = (tool, text)
    if use_cache:
        cached = _classification_cache.get(cache_key)
        if cached is not None:
            return cached
        rules = config.get_config().rules

    result = LineSeverity.INFO
    for rule in rules:
        if rule.tool is not None and rule.tool != tool:
            continue
        if _rule_matches(rule, text):
            result = LineSeverity(rule.severity)
            break

    if use_cache and len(_classification_cache) < CACHE_SIZE_LIMIT:
        _classification_cache[cache_key] = result
    return result


def clear_classification_cache() -> None:
    """Clear the line classification cache, e.g. after the rules changed."""
    _classification_cache.clear()
    _compiled_patterns.clear()
    logger.debug("Line classification cache cleared")


def get_cache_stats() -> Dict[str, int]:
    return {
        "cache_size": len(_classification_cache),
        "compiled_patterns": len(_compiled_patterns),
    }
