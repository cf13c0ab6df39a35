"""
Relevance scoring.

Lexical relevance of a query against a record's searchable text, and the
composite of lexical and vector similarity used for ranking.
"""

import re
from typing import Optional

EXACT_PHRASE_SCORE = 0.9
WORD_MATCH_WEIGHT = 0.7
PARTIAL_MATCH_WEIGHT = 0.4

LEXICAL_WEIGHT = 0.6
VECTOR_WEIGHT = 0.4

STOP_WORDS = frozenset({
    'the', 'and', 'for', 'are', 'but', 'not', 'you', 'all', 'any', 'can', 'had',
    'her', 'was', 'one', 'our', 'out', 'has', 'have', 'how', 'its', 'who', 'did',
    'get', 'him', 'his', 'she', 'too', 'use', 'with', 'that', 'this', 'from',
    'they', 'them', 'then', 'than', 'what', 'when', 'were', 'will', 'into',
    'about', 'there', 'their', 'which', 'would', 'been', 'also',
})

_WHITESPACE = re.compile(r'\s+')


def query_terms(query: str):
    """Lowercased query words longer than two characters, stop words removed."""
    return [
        word for word in _WHITESPACE.split(query.lower())
        if len(word) > 2 and word not in STOP_WORDS
    ]


def lexical_score(text: str, query: str) -> float:
    """
    Score how well text matches a free-text query, in [0, 1].

    An exact phrase hit scores 0.9. Otherwise the score is the larger of
    0.7 * (fraction of query words found anywhere in the text) and
    0.4 * (fraction of query words longer than three characters found inside
    a single word of the text).
    """
    if not query or not query.strip() or not text:
        return 0.0

    query_lower = query.strip().lower()
    text_lower = text.lower()

    if query_lower in text_lower:
        return EXACT_PHRASE_SCORE

    words = query_terms(query_lower)
    if not words:
        return 0.0

    matched = sum(1 for word in words if word in text_lower)
    text_words = _WHITESPACE.split(text_lower)
    partial = sum(
        1 for word in words
        if len(word) > 3 and any(word in text_word for text_word in text_words)
    )

    return max(matched / len(words) * WORD_MATCH_WEIGHT,
               partial / len(words) * PARTIAL_MATCH_WEIGHT)


def composite_score(lexical: float, vector: Optional[float]) -> float:
    """Blend lexical and vector scores; lexical alone when there is no vector score."""
    if vector is None:
        score = lexical
    else:
        score = LEXICAL_WEIGHT * lexical + VECTOR_WEIGHT * max(vector, 0.0)
    return min(max(score, 0.0), 1.0)
