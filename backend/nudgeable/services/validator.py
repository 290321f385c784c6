"""Static prompt validator.

Lints a drafted system prompt for PII and credential-collection problems and
for missing structural markers before a simulation may start. The checks are
regex and keyword heuristics: best-effort linting, not a compliance control.
Only the system prompt is scanned; context data routinely holds sample
records that would trip the PII patterns.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Pattern

from nudgeable.models import FlagLevel, ValidationFlag


@dataclass(frozen=True)
class ValidatorRules:
    """Immutable, versioned rule set for the validator."""

    version: str
    phone_pattern: Pattern[str]
    email_pattern: Pattern[str]
    card_pattern: Pattern[str]
    national_id_pattern: Pattern[str]
    financial_keywords: tuple[str, ...]
    collection_verbs: tuple[str, ...]
    guardrail_markers: tuple[str, ...]
    directive_markers: tuple[str, ...]
    data_nouns: tuple[str, ...]
    min_length: int = 100
    messages: dict[str, str] = field(default_factory=dict)


DEFAULT_MESSAGES = {
    "V-01": "Your prompt contains what appears to be a phone number. Remove all phone number references before continuing.",
    "V-02": "Your prompt contains an email address. Remove email addresses or use placeholder text like [EMAIL] instead.",
    "V-03": "Your prompt contains what appears to be a financial account number. Remove all sensitive numbers before continuing.",
    "V-04": "Your system prompt instructs the agent to collect sensitive financial information. This is not allowed.",
    "V-05": 'No guardrail rules found (e.g., "never", "must not", "do not"). Add at least one guardrail to improve your score.',
    "V-06": 'No positive instructions found (e.g., "always", "must"). Add clear directives for what the agent should do.',
    "V-07": "Your system prompt mentions data (orders, customers, etc.). Consider adding context data for a more realistic simulation.",
    "V-08": "Your system prompt is quite short. Consider adding more detail about the agent's role, tone, and specific behaviors.",
}

DEFAULT_RULES = ValidatorRules(
    version="2025-01",
    phone_pattern=re.compile(r"\b(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b", re.IGNORECASE),
    email_pattern=re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", re.IGNORECASE),
    card_pattern=re.compile(r"\b(?:\d{4}[-.\s]?){3}\d{4}\b"),
    national_id_pattern=re.compile(r"\b\d{4}[-.\s]?\d{4}[-.\s]?\d{4}\b"),
    financial_keywords=(
        "bank account",
        "account number",
        "routing number",
        "credit card",
        "debit card",
        "cvv",
        "pin number",
        "password",
        "otp",
        "one time password",
        "card details",
        "card number",
        "expiry date",
        "security code",
    ),
    collection_verbs=("ask for", "collect", "request"),
    guardrail_markers=("never", "must not", "do not", "don't", "prohibited", "forbidden"),
    directive_markers=("always", "must", "should", "required"),
    data_nouns=("order", "customer", "product", "account", "data"),
    min_length=100,
    messages=DEFAULT_MESSAGES,
)


def _contains_any(text: str, needles: Iterable[str]) -> bool:
    return any(needle in text for needle in needles)


class PromptValidator:
    """Runs the ordered rule checks over a system prompt."""

    def __init__(self, rules: ValidatorRules = DEFAULT_RULES):
        self.rules = rules

    def _flag(self, flag_id: str, level: FlagLevel) -> ValidationFlag:
        return ValidationFlag(
            id=flag_id,
            level=level,
            message=self.rules.messages.get(flag_id, flag_id),
        )

    def validate(
        self,
        system_prompt: str,
        context_data: Optional[str] = None,
    ) -> list[ValidationFlag]:
        """
        Scan ``system_prompt`` and return flags in fixed rule order.

        ``context_data`` is only consulted for its presence (V-07).
        """
        rules = self.rules
        raw = system_prompt or ""
        text = raw.lower()
        flags: list[ValidationFlag] = []

        # PII patterns
        if rules.phone_pattern.search(raw):
            flags.append(self._flag("V-01", FlagLevel.ERROR))

        if rules.email_pattern.search(raw):
            flags.append(self._flag("V-02", FlagLevel.ERROR))

        if rules.card_pattern.search(raw) or rules.national_id_pattern.search(raw):
            flags.append(self._flag("V-03", FlagLevel.ERROR))

        # Credential collection needs both a keyword and a collection verb
        if _contains_any(text, rules.financial_keywords) and _contains_any(text, rules.collection_verbs):
            flags.append(self._flag("V-04", FlagLevel.ERROR))

        # Structure
        if not _contains_any(text, rules.guardrail_markers):
            flags.append(self._flag("V-05", FlagLevel.WARNING))

        if not _contains_any(text, rules.directive_markers):
            flags.append(self._flag("V-06", FlagLevel.WARNING))

        if _contains_any(text, rules.data_nouns) and not context_data:
            flags.append(self._flag("V-07", FlagLevel.INFO))

        if len(raw) < rules.min_length:
            flags.append(self._flag("V-08", FlagLevel.INFO))

        return flags


def has_blocking_errors(flags: Iterable[ValidationFlag]) -> bool:
    """True iff at least one flag has level ERROR."""
    return any(flag.level == FlagLevel.ERROR for flag in flags)


_default_validator = PromptValidator()


def validate(system_prompt: str, context_data: Optional[str] = None) -> list[ValidationFlag]:
    """Validate with the default rule set."""
    return _default_validator.validate(system_prompt, context_data)
