import unittest
from unittest import mock

from dhakadispatch.contracts.selection import (
    EditorialRules,
    Irrelevant,
    Parsed,
    ParseFailure,
    build_selection_prompt,
    format_candidates,
    parse_selection_response,
    select_article,
)
from dhakadispatch.errors import SelectionParseError
from dhakadispatch.ingestion.article_types import Article


def _article(n: int, **kwargs) -> Article:
    defaults = dict(
        id=f"id-{n}",
        title=f"Title {n}",
        link=f"https://example.com/{n}",
        description=f"Description {n}",
        image_url=f"https://example.com/{n}.jpg",
        source_name=f"source{n}",
    )
    defaults.update(kwargs)
    return Article(**defaults)


EXAMPLE_REPLY = """CHOSEN_ID: 2
HEADLINE: Dhaka Port Expansion Begins
HIGHLIGHT_WORDS: Port Expansion
IMAGE_PROMPT: Cargo cranes at a river port at dawn, photo
CAPTION: Work starts on the port expansion. #Dhaka #Trade
SOURCE_NAME: thedailystar"""


class TestParseSelectionResponse(unittest.TestCase):
    def test_example_reply_selects_second_candidate(self):
        outcome = parse_selection_response(EXAMPLE_REPLY, 3)
        self.assertIsInstance(outcome, Parsed)
        result = outcome.result
        self.assertEqual(result.chosen_index, 2)
        self.assertEqual(result.headline, "Dhaka Port Expansion Begins")
        self.assertEqual(result.highlight_phrases, ("Port Expansion",))
        self.assertEqual(result.source_name, "thedailystar")

        candidates = [_article(1), _article(2), _article(3)]
        self.assertIs(result.article_from(candidates), candidates[1])

    def test_sentinel_with_surrounding_whitespace(self):
        self.assertIsInstance(parse_selection_response("  \n IRRELEVANT \n", 3), Irrelevant)

    def test_sentinel_with_extra_text_is_not_the_sentinel(self):
        outcome = parse_selection_response("IRRELEVANT. None of these qualify.", 3)
        self.assertIsInstance(outcome, ParseFailure)

    def test_empty_reply_is_a_failure(self):
        self.assertIsInstance(parse_selection_response("   ", 3), ParseFailure)
        self.assertIsInstance(parse_selection_response(None, 3), ParseFailure)

    def test_colons_inside_values_are_kept(self):
        reply = EXAMPLE_REPLY.replace(
            "CAPTION: Work starts on the port expansion. #Dhaka #Trade",
            "CAPTION: Update: work starts at 10:30 today #Dhaka",
        )
        outcome = parse_selection_response(reply, 3)
        self.assertIsInstance(outcome, Parsed)
        self.assertEqual(outcome.result.caption, "Update: work starts at 10:30 today #Dhaka")

    def test_each_missing_key_is_a_failure(self):
        for key in ("CHOSEN_ID", "HEADLINE", "HIGHLIGHT_WORDS", "IMAGE_PROMPT", "CAPTION", "SOURCE_NAME"):
            lines = [line for line in EXAMPLE_REPLY.splitlines() if not line.startswith(key + ":")]
            outcome = parse_selection_response("\n".join(lines), 3)
            self.assertIsInstance(outcome, ParseFailure, key)
            self.assertIn(key, outcome.reason)

    def test_chosen_id_must_be_an_integer(self):
        for bad in ("two", "2.0", "-1", "#2"):
            reply = EXAMPLE_REPLY.replace("CHOSEN_ID: 2", f"CHOSEN_ID: {bad}")
            self.assertIsInstance(parse_selection_response(reply, 3), ParseFailure, bad)

    def test_chosen_id_must_be_in_range(self):
        for bad in ("0", "4"):
            reply = EXAMPLE_REPLY.replace("CHOSEN_ID: 2", f"CHOSEN_ID: {bad}")
            outcome = parse_selection_response(reply, 3)
            self.assertIsInstance(outcome, ParseFailure, bad)
            self.assertIn("out of range", outcome.reason)

    def test_highlight_phrases_are_split_and_trimmed_in_order(self):
        reply = EXAMPLE_REPLY.replace("HIGHLIGHT_WORDS: Port Expansion", "HIGHLIGHT_WORDS:  Dhaka ,Port Expansion , Begins")
        outcome = parse_selection_response(reply, 3)
        self.assertEqual(outcome.result.highlight_phrases, ("Dhaka", "Port Expansion", "Begins"))

    def test_blank_highlight_words_are_allowed(self):
        reply = EXAMPLE_REPLY.replace("HIGHLIGHT_WORDS: Port Expansion", "HIGHLIGHT_WORDS:")
        outcome = parse_selection_response(reply, 3)
        self.assertIsInstance(outcome, Parsed)
        self.assertEqual(outcome.result.highlight_phrases, ("",))

    def test_blank_headline_is_a_failure(self):
        reply = EXAMPLE_REPLY.replace("HEADLINE: Dhaka Port Expansion Begins", "HEADLINE:   ")
        self.assertIsInstance(parse_selection_response(reply, 3), ParseFailure)

    def test_prose_around_the_record_is_ignored(self):
        reply = "Here is my answer.\n" + EXAMPLE_REPLY
        self.assertIsInstance(parse_selection_response(reply, 3), Parsed)


class TestSelectionPrompt(unittest.TestCase):
    def test_candidates_are_numbered_in_order(self):
        candidates = [_article(1), _article(2, body="Full body two"), _article(3)]
        listing = format_candidates(candidates)
        self.assertIn("ARTICLE 2:\nID: 2\nTitle: Title 2\nContent: Full body two\nSource: source2", listing)
        self.assertLess(listing.index("Title 1"), listing.index("Title 2"))
        self.assertLess(listing.index("Title 2"), listing.index("Title 3"))

    def test_relevance_rule_is_configurable(self):
        prompt = build_selection_prompt([_article(1)], EditorialRules(region="Nepal"))
        self.assertIn("MUST be Nepal", prompt)
        self.assertNotIn("Bangladesh", prompt)

        custom = build_selection_prompt([_article(1)], EditorialRules(rule="Only climate science stories."))
        self.assertIn("Only climate science stories.", custom)

    def test_prompt_names_every_output_key(self):
        prompt = build_selection_prompt([_article(1)])
        for key in ("CHOSEN_ID:", "HEADLINE:", "HIGHLIGHT_WORDS:", "IMAGE_PROMPT:", "CAPTION:", "SOURCE_NAME:"):
            self.assertIn(key, prompt)
        self.assertIn("IRRELEVANT", prompt)


class TestSelectArticle(unittest.TestCase):
    def test_returns_result(self):
        model = mock.Mock()
        model.generate_text.return_value = EXAMPLE_REPLY
        result = select_article([_article(1), _article(2), _article(3)], model)
        self.assertEqual(result.chosen_index, 2)
        model.generate_text.assert_called_once()

    def test_irrelevant_returns_none(self):
        model = mock.Mock()
        model.generate_text.return_value = "IRRELEVANT"
        self.assertIsNone(select_article([_article(1)], model))

    def test_malformed_reply_raises(self):
        model = mock.Mock()
        model.generate_text.return_value = "HEADLINE: Something"
        with self.assertRaises(SelectionParseError) as ctx:
            select_article([_article(1)], model)
        self.assertEqual(ctx.exception.raw_text, "HEADLINE: Something")

    def test_empty_candidates_rejected(self):
        with self.assertRaises(ValueError):
            select_article([], mock.Mock())


if __name__ == "__main__":
    unittest.main()
