"""Tests for the static prompt validator."""
import unittest
from dataclasses import replace

from nudgeable.models import FlagLevel, ValidationFlag
from nudgeable.services.validator import (
    DEFAULT_RULES,
    PromptValidator,
    has_blocking_errors,
    validate,
)

from tests.helpers import GOOD_PROMPT


def flag_ids(flags):
    return [f.id for f in flags]


class TestPiiPatterns(unittest.TestCase):

    def test_phone_number_is_blocking(self):
        flags = validate(GOOD_PROMPT + " Call 555-123-4567 for escalations.")
        self.assertIn("V-01", flag_ids(flags))
        v01 = next(f for f in flags if f.id == "V-01")
        self.assertEqual(v01.level, FlagLevel.ERROR)
        self.assertTrue(has_blocking_errors(flags))

    def test_email_address(self):
        flags = validate(GOOD_PROMPT + " Escalate to help@acme.com when stuck.")
        self.assertIn("V-02", flag_ids(flags))

    def test_card_number(self):
        flags = validate(GOOD_PROMPT + " Test card: 4111-1111-1111-1111.")
        self.assertIn("V-03", flag_ids(flags))

    def test_national_id_number(self):
        flags = validate(GOOD_PROMPT + " Sample ID 1234 5678 9012.")
        self.assertIn("V-03", flag_ids(flags))


class TestCredentialCollection(unittest.TestCase):

    def test_keyword_with_collection_verb(self):
        flags = validate(GOOD_PROMPT + " Always ask for the card number before replying.")
        self.assertIn("V-04", flag_ids(flags))
        self.assertTrue(has_blocking_errors(flags))

    def test_keyword_alone_is_not_flagged(self):
        flags = validate(GOOD_PROMPT + " Never mention the card number on file.")
        self.assertNotIn("V-04", flag_ids(flags))

    def test_verb_alone_is_not_flagged(self):
        flags = validate(GOOD_PROMPT + " Collect feedback at the end of the chat.")
        self.assertNotIn("V-04", flag_ids(flags))

    def test_keyword_match_is_case_insensitive(self):
        flags = validate(GOOD_PROMPT + " REQUEST the CVV to verify identity.")
        self.assertIn("V-04", flag_ids(flags))


class TestStructureChecks(unittest.TestCase):

    def test_missing_guardrail_marker(self):
        prompt = (
            "You are a support agent for Acme Shipping. Always greet the user warmly "
            "and answer questions about delivery times in two or three sentences."
        )
        flags = validate(prompt)
        self.assertIn("V-05", flag_ids(flags))
        self.assertFalse(has_blocking_errors(flags))

    def test_guardrail_marker_present(self):
        self.assertNotIn("V-05", flag_ids(validate(GOOD_PROMPT)))

    def test_uppercase_guardrail_marker(self):
        prompt = GOOD_PROMPT.replace("Never", "NEVER").replace("never", "NEVER")
        self.assertNotIn("V-05", flag_ids(validate(prompt)))

    def test_missing_directive_marker(self):
        prompt = (
            "You are a support agent for Acme Shipping. Greet the user warmly and answer "
            "questions about delivery times. Never promise refunds to anyone."
        )
        self.assertIn("V-06", flag_ids(validate(prompt)))

    def test_data_nouns_without_context(self):
        prompt = GOOD_PROMPT + " Look up the order status when asked."
        self.assertIn("V-07", flag_ids(validate(prompt)))

    def test_data_nouns_with_context(self):
        prompt = GOOD_PROMPT + " Look up the order status when asked."
        flags = validate(prompt, context_data="order_id: 1001 | status: shipped")
        self.assertNotIn("V-07", flag_ids(flags))

    def test_short_prompt(self):
        flags = validate("Be helpful. Never lie. Always be kind.")
        self.assertIn("V-08", flag_ids(flags))
        self.assertEqual(next(f for f in flags if f.id == "V-08").level, FlagLevel.INFO)

    def test_clean_prompt_has_no_flags(self):
        self.assertEqual(validate(GOOD_PROMPT), [])


class TestFlagOrdering(unittest.TestCase):

    def test_flags_follow_rule_order(self):
        prompt = "Email me at a@b.io or call 555-123-4567 about your order."
        ids = flag_ids(validate(prompt))
        self.assertEqual(ids, ["V-01", "V-02", "V-05", "V-06", "V-07", "V-08"])

    def test_context_data_is_not_scanned(self):
        flags = validate(GOOD_PROMPT, context_data="phone: 555-123-4567 | email: a@b.io")
        self.assertEqual(flags, [])


class TestBlockingErrors(unittest.TestCase):

    def test_only_error_level_blocks(self):
        warning = ValidationFlag(id="V-05", level=FlagLevel.WARNING, message="w")
        info = ValidationFlag(id="V-08", level=FlagLevel.INFO, message="i")
        error = ValidationFlag(id="V-01", level=FlagLevel.ERROR, message="e")
        self.assertFalse(has_blocking_errors([]))
        self.assertFalse(has_blocking_errors([warning, info]))
        self.assertTrue(has_blocking_errors([warning, error]))

    def test_custom_rule_set(self):
        strict = PromptValidator(replace(DEFAULT_RULES, version="strict", min_length=500))
        self.assertIn("V-08", flag_ids(strict.validate(GOOD_PROMPT)))


if __name__ == "__main__":
    unittest.main()
