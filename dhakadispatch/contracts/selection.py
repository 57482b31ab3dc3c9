"""Article selection contract with the language model.

The model sees the candidates as a 1-based numbered list and must answer
with exactly one of two shapes:

- the bare sentinel ``IRRELEVANT`` (nothing qualifies), or
- six ``KEY: value`` lines (CHOSEN_ID, HEADLINE, HIGHLIGHT_WORDS,
  IMAGE_PROMPT, CAPTION, SOURCE_NAME).

Anything else is a parse failure. `parse_selection_response` returns a tagged
outcome (Irrelevant | Parsed | ParseFailure); `select_article` turns a failure
into SelectionParseError so the category is abandoned loudly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union

from dhakadispatch.errors import SelectionParseError
from dhakadispatch.ingestion.article_types import Article

logger = logging.getLogger(__name__)

IRRELEVANT_SENTINEL = "IRRELEVANT"

KEY_CHOSEN_ID = "CHOSEN_ID"
KEY_HEADLINE = "HEADLINE"
KEY_HIGHLIGHT_WORDS = "HIGHLIGHT_WORDS"
KEY_IMAGE_PROMPT = "IMAGE_PROMPT"
KEY_CAPTION = "CAPTION"
KEY_SOURCE_NAME = "SOURCE_NAME"

REQUIRED_KEYS = (
    KEY_CHOSEN_ID,
    KEY_HEADLINE,
    KEY_HIGHLIGHT_WORDS,
    KEY_IMAGE_PROMPT,
    KEY_CAPTION,
    KEY_SOURCE_NAME,
)

# must carry content; HIGHLIGHT_WORDS may legitimately be blank
NON_EMPTY_KEYS = (KEY_HEADLINE, KEY_IMAGE_PROMPT, KEY_CAPTION, KEY_SOURCE_NAME)

_INT_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class SelectionResult:
    chosen_index: int  # 1-based position in the CandidateSet
    headline: str
    highlight_phrases: Tuple[str, ...]
    image_prompt: str
    caption: str
    source_name: str

    def article_from(self, candidates: Sequence[Article]) -> Article:
        return candidates[self.chosen_index - 1]


@dataclass(frozen=True)
class Irrelevant:
    raw_text: str = IRRELEVANT_SENTINEL


@dataclass(frozen=True)
class Parsed:
    result: SelectionResult


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw_text: str


ParseOutcome = Union[Irrelevant, Parsed, ParseFailure]


@dataclass(frozen=True)
class EditorialRules:
    """Topical relevance rule embedded in the prompt.

    `rule` overrides the region-derived default wording entirely.
    """

    region: str = "Bangladesh"
    rule: str = ""
    audience: str = ""

    def relevance_rule(self) -> str:
        if self.rule:
            return self.rule
        return (
            f"The article's main subject MUST be {self.region}. News about other countries is NOT relevant "
            f"unless {self.region} or a {self.region}-based entity is a primary subject of the article "
            f"(e.g., a bilateral agreement). Be extremely strict."
        )

    def audience_label(self) -> str:
        return self.audience or f"a {self.region} social media channel"


def format_candidates(candidates: Sequence[Article]) -> str:
    """Numbered list; entry i (1-based) is candidates[i - 1]."""
    blocks = []
    for index, article in enumerate(candidates, 1):
        blocks.append(
            f"ARTICLE {index}:\n"
            f"ID: {index}\n"
            f"Title: {article.title}\n"
            f"Content: {article.text}\n"
            f"Source: {article.source_name}\n"
            f"---"
        )
    return "\n".join(blocks)


def build_selection_prompt(candidates: Sequence[Article], rules: Optional[EditorialRules] = None) -> str:
    rules = rules or EditorialRules()
    return f"""
You are an expert news editor for {rules.audience_label()}. Your goal is to find the single most important, impactful, and relevant story for your audience from a list of recent articles.

**Your First Task: Select the Best Article**
- You will be given a list of news articles.
- Review all articles and select the ONE that is most newsworthy and satisfies the relevance rule below.
- **CRITICAL RULE:** {rules.relevance_rule()}
- If NONE of the articles meet this strict criteria, you MUST respond with ONLY the single word: {IRRELEVANT_SENTINEL}.

**If you find a suitable article, proceed to Your Second Task:**
- Identify the article you chose by its ID.
- Perform a full analysis on ONLY that chosen article.

**Analysis Steps:**
**1. Headline Generation (IMPACT Principle):** Informative, Main Point, Prompting Curiosity, Active Voice, Concise, Targeted.
**2. Highlight Phrase Identification:** Identify key phrases from your new headline that capture critical information (entities, key terms, numbers). Each phrase MUST appear verbatim in your headline. List these exact phrases, separated by commas.
**3. Image Prompt Generation (SCAT Principle & Safety):** Generate a concise, descriptive prompt for an AI image generator. The prompt MUST be safe for work and MUST NOT contain depictions of specific people (especially political figures), violence, conflict, or other sensitive topics. Instead, focus on symbolic, abstract, or neutral representations of the news. For example, for a political story, prompt "Gavel on a table with a national flag in the background" instead of showing politicians. The prompt should follow the SCAT principle (Subject, Context, Atmosphere, Type).
**4. Caption & Source:** Create a social media caption (~50 words) with 3-5 relevant hashtags.

**List of Articles to Analyze:**
{format_candidates(candidates)}

**Output Format (Strict):**
- If no article is relevant, respond ONLY with: {IRRELEVANT_SENTINEL}
- If you find a relevant article, respond ONLY with the following format. Do not add any other text or formatting. Each field must be on a new line.

{KEY_CHOSEN_ID}: [The ID number of the article you selected]
{KEY_HEADLINE}: [Your generated headline for the chosen article]
{KEY_HIGHLIGHT_WORDS}: [phrase 1, phrase 2]
{KEY_IMAGE_PROMPT}: [Your generated image prompt]
{KEY_CAPTION}: [Your generated caption. Crucially, DO NOT include the source name in the caption.]
{KEY_SOURCE_NAME}: [The source name (e.g., 'thedailystar') from the chosen article. This is a mandatory and separate field.]
"""


def _split_fields(text: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        if key:
            fields[key] = value.strip()
    return fields


def parse_selection_response(text: str, candidate_count: int) -> ParseOutcome:
    """Classify a raw model reply against a CandidateSet of `candidate_count`."""
    raw = (text or "").strip()
    if raw == IRRELEVANT_SENTINEL:
        return Irrelevant()
    if not raw:
        return ParseFailure("empty response", raw)

    fields = _split_fields(raw)
    missing = [k for k in REQUIRED_KEYS if k not in fields]
    if missing:
        return ParseFailure(f"missing keys: {', '.join(missing)}", raw)
    blank = [k for k in NON_EMPTY_KEYS if not fields[k]]
    if blank:
        return ParseFailure(f"empty values: {', '.join(blank)}", raw)

    chosen = fields[KEY_CHOSEN_ID]
    if not _INT_RE.match(chosen):
        return ParseFailure(f"{KEY_CHOSEN_ID} is not an integer: {chosen!r}", raw)
    chosen_index = int(chosen)
    if not 1 <= chosen_index <= candidate_count:
        return ParseFailure(f"{KEY_CHOSEN_ID} {chosen_index} out of range 1..{candidate_count}", raw)

    phrases = tuple(p.strip() for p in fields[KEY_HIGHLIGHT_WORDS].split(","))
    return Parsed(
        SelectionResult(
            chosen_index=chosen_index,
            headline=fields[KEY_HEADLINE],
            highlight_phrases=phrases,
            image_prompt=fields[KEY_IMAGE_PROMPT],
            caption=fields[KEY_CAPTION],
            source_name=fields[KEY_SOURCE_NAME],
        )
    )


def select_article(
    candidates: Sequence[Article],
    model,
    rules: Optional[EditorialRules] = None,
) -> Optional[SelectionResult]:
    """Ask `model` (anything with `generate_text(prompt) -> str`) to pick one candidate.

    Returns None for the "no relevant article" outcome. Raises
    SelectionParseError on a malformed reply.
    """
    if not candidates:
        raise ValueError("select_article requires a non-empty CandidateSet")
    logger.info(f"Analyzing {len(candidates)} articles with the language model...")
    prompt = build_selection_prompt(candidates, rules)
    reply = model.generate_text(prompt)
    outcome = parse_selection_response(reply, len(candidates))
    if isinstance(outcome, Irrelevant):
        return None
    if isinstance(outcome, ParseFailure):
        raise SelectionParseError(outcome.reason, outcome.raw_text)
    return outcome.result
