from __future__ import annotations

import os
import re
from dataclasses import dataclass

from .logging_config import get_logger
from .rules import DEFAULT_RULES, ReasoningRules

logger = get_logger("language_safety")


class LanguageSafetyError(Exception):
    pass


@dataclass(frozen=True)
class ForbiddenWordCheck:
    has_forbidden: bool
    found_words: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConditionalLanguageCheck:
    has_conditional: bool
    matched_patterns: tuple[str, ...] = ()


@dataclass(frozen=True)
class LanguageSafetyResult:
    is_valid: bool
    errors: tuple[str, ...] = ()


class LanguageSafetyGuard:
    def __init__(self, rules: ReasoningRules = DEFAULT_RULES) -> None:
        self.rules = rules
        self._forbidden_patterns = [
            (word, re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE))
            for word in rules.forbidden_standalone_words
        ]

    def has_safe_context(self, text: str) -> bool:
        lowered = (text or "").lower()
        return any(phrase in lowered for phrase in self.rules.safe_context_phrases)

    def forbidden_words(self, text: str) -> ForbiddenWordCheck:
        # A qualifying phrase anywhere in the text exempts every match in it.
        if self.has_safe_context(text):
            return ForbiddenWordCheck(has_forbidden=False)
        found = tuple(word for word, pattern in self._forbidden_patterns if pattern.search(text or ""))
        return ForbiddenWordCheck(has_forbidden=bool(found), found_words=found)

    def conditional_language(self, text: str) -> ConditionalLanguageCheck:
        lowered = (text or "").lower()
        matched = tuple(pattern for pattern in self.rules.conditional_patterns if pattern in lowered)
        return ConditionalLanguageCheck(has_conditional=bool(matched), matched_patterns=matched)

    def validate(self, text: str, *, require_conditional: bool = False) -> LanguageSafetyResult:
        errors: list[str] = []
        check = self.forbidden_words(text)
        if check.has_forbidden:
            errors.append(
                f"Contains forbidden standalone words: {', '.join(check.found_words)}. "
                'These words must be paired with "preview only" context.'
            )
        if require_conditional and not self.conditional_language(text).has_conditional:
            errors.append('Missing conditional language such as "would normally" or "would typically".')
        return LanguageSafetyResult(is_valid=not errors, errors=tuple(errors))


_DEFAULT_GUARD = LanguageSafetyGuard()


def _guard(rules: ReasoningRules) -> LanguageSafetyGuard:
    return _DEFAULT_GUARD if rules is DEFAULT_RULES else LanguageSafetyGuard(rules)


def contains_forbidden_standalone_word(text: str, *, rules: ReasoningRules = DEFAULT_RULES) -> ForbiddenWordCheck:
    return _guard(rules).forbidden_words(text)


def has_conditional_language(text: str, *, rules: ReasoningRules = DEFAULT_RULES) -> ConditionalLanguageCheck:
    return _guard(rules).conditional_language(text)


def validate_language_safety(
    text: str,
    *,
    require_conditional: bool = False,
    rules: ReasoningRules = DEFAULT_RULES,
) -> LanguageSafetyResult:
    return _guard(rules).validate(text, require_conditional=require_conditional)


def strict_language_safety_enabled() -> bool:
    return os.getenv("CAREVIEW_STRICT_LANGUAGE_SAFETY", "false").strip().lower() in {"1", "true", "yes"}


def ensure_language_safety(
    text: str,
    source: str,
    *,
    require_conditional: bool = False,
    rules: ReasoningRules = DEFAULT_RULES,
) -> str:
    """Post-condition check for generated text.

    A failure means a template is wrong, not that the caller did anything bad:
    it is logged, and raised only when strict mode is enabled. Hypothetical
    text (explanations, "would normally happen" steps) also passes
    ``require_conditional=True`` so that it must carry a modal phrase.
    """
    result = validate_language_safety(text, require_conditional=require_conditional, rules=rules)
    if not result.is_valid:
        logger.error("Generated text failed language safety", extra={"source": source, "errors": list(result.errors)})
        if strict_language_safety_enabled():
            raise LanguageSafetyError(f"{source}: {'; '.join(result.errors)}")
    return text
