"""Text normalization for consumer-complaint narratives.

Applies a fixed, ordered cleaning pipeline to each narrative:

1. Delete masking placeholders (runs of two or more uppercase ``X``
   the complaint database uses to redact names, account numbers and dates)
2. Lowercase
3. Delete digits
4. Delete punctuation
5. Strip tab and newline control characters (words on either side stay
   separate)
6. Collapse whitespace and trim
7. Tokenize on whitespace and drop stop words

The order matters: masking runs are only recognisable before lowercasing,
and punctuation removal turns contractions such as ``didn't`` into the
``didnt`` form the curated stop-word list expects. Records with missing
narratives are dropped by the loader before they get here.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .models import NormalizedRecord, Record

LOGGER = logging.getLogger("complaint_classifier.normalizer")

# ---------------------------------------------------------------------------
# Stop words
# ---------------------------------------------------------------------------

# Snowball English stop words. The apostrophe contractions of the Snowball
# list are left out since punctuation is stripped before stop-word removal.
STANDARD_STOP_WORDS: frozenset[str] = frozenset(
    {
        "i",
        "me",
        "my",
        "myself",
        "we",
        "our",
        "ours",
        "ourselves",
        "you",
        "your",
        "yours",
        "yourself",
        "yourselves",
        "he",
        "him",
        "his",
        "himself",
        "she",
        "her",
        "hers",
        "herself",
        "it",
        "its",
        "itself",
        "they",
        "them",
        "their",
        "theirs",
        "themselves",
        "what",
        "which",
        "who",
        "whom",
        "this",
        "that",
        "these",
        "those",
        "am",
        "is",
        "are",
        "was",
        "were",
        "be",
        "been",
        "being",
        "have",
        "has",
        "had",
        "having",
        "do",
        "does",
        "did",
        "doing",
        "would",
        "should",
        "could",
        "ought",
        "a",
        "an",
        "the",
        "and",
        "but",
        "if",
        "or",
        "because",
        "as",
        "until",
        "while",
        "of",
        "at",
        "by",
        "for",
        "with",
        "about",
        "against",
        "between",
        "into",
        "through",
        "during",
        "before",
        "after",
        "above",
        "below",
        "to",
        "from",
        "up",
        "down",
        "in",
        "out",
        "on",
        "off",
        "over",
        "under",
        "again",
        "further",
        "then",
        "once",
        "here",
        "there",
        "when",
        "where",
        "why",
        "how",
        "all",
        "any",
        "both",
        "each",
        "few",
        "more",
        "most",
        "other",
        "some",
        "such",
        "no",
        "nor",
        "not",
        "only",
        "own",
        "same",
        "so",
        "than",
        "too",
        "very",
    }
)

# Frequent, low-information words in complaint narratives
COMPLAINT_STOP_WORDS: frozenset[str] = frozenset(
    {
        "told",
        "called",
        "back",
        "get",
        "will",
        "never",
        "said",
        "can",
        "call",
        "now",
        "also",
        "even",
        "just",
        "like",
        "please",
        "take",
        "want",
        "going",
        "without",
        "got",
        "however",
        "went",
        "able",
        "didnt",
        "dont",
        "put",
        "later",
        "way",
        "done",
        "needed",
        "today",
        "used",
        "took",
    }
)

STOP_WORDS: frozenset[str] = STANDARD_STOP_WORDS | COMPLAINT_STOP_WORDS

# ---------------------------------------------------------------------------
# Cleaning patterns (applied in order)
# ---------------------------------------------------------------------------

_MASK_RE = re.compile(r"X{2,}")
_DIGIT_RE = re.compile(r"\d")
_PUNCT_RE = re.compile(r"[^\w\s]|_")
_CONTROL_RE = re.compile(r"[\t\n\r]")
_WHITESPACE_RE = re.compile(r"\s+")


class TextNormalizer:
    """Clean complaint narratives into stop-word-free token sequences.

    Example::

        normalizer = TextNormalizer()
        normalizer.normalize("On XX/XX/2019 I called about my MORTGAGE escrow.")
        # -> "mortgage escrow"

    Args:
        extra_stop_words: Domain stop words removed on top of the standard
            English list.
        use_standard_stop_words: Whether to remove the standard English list.
    """

    def __init__(
        self,
        extra_stop_words: Iterable[str] = COMPLAINT_STOP_WORDS,
        use_standard_stop_words: bool = True,
    ) -> None:
        stop_words = set(STANDARD_STOP_WORDS) if use_standard_stop_words else set()
        stop_words.update(word.lower() for word in extra_stop_words)
        self.stop_words: frozenset[str] = frozenset(stop_words)

    def clean(self, text: str) -> str:
        """Run the character-level steps, leaving stop words in place."""
        if not isinstance(text, str):
            raise TypeError(
                f"Expected narrative text, got {type(text).__name__}; "
                "drop missing narratives before normalizing"
            )
        text = _MASK_RE.sub("", text)
        text = text.lower()
        text = _DIGIT_RE.sub("", text)
        text = _PUNCT_RE.sub("", text)
        text = _CONTROL_RE.sub(" ", text)
        return _WHITESPACE_RE.sub(" ", text).strip()

    def tokenize(self, text: str) -> list[str]:
        """Clean text and return its tokens with stop words removed."""
        cleaned = self.clean(text)
        if not cleaned:
            return []
        return [token for token in cleaned.split(" ") if token not in self.stop_words]

    def normalize(self, text: str) -> str:
        """Return the normalized narrative as a single space-joined string."""
        return " ".join(self.tokenize(text))

    def normalize_record(self, record: Record) -> NormalizedRecord:
        """Normalize one record, keeping its label."""
        return NormalizedRecord(tokens=tuple(self.tokenize(record.text)), label=record.label)

    def normalize_records(self, records: Iterable[Record]) -> list[NormalizedRecord]:
        """Normalize records in order.

        Records that clean down to nothing are kept so rows stay aligned
        with their labels.
        """
        normalized = [self.normalize_record(record) for record in records]
        empty = sum(1 for record in normalized if record.is_empty)
        LOGGER.info(
            "[NORMALIZE] Normalized %d narratives (%d empty after cleaning).",
            len(normalized),
            empty,
        )
        return normalized
