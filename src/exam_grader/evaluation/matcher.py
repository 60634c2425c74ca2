"""
Free-Text Answer Matching

Decides whether a free-text answer is close enough to the reference answer.
Strategies run in order and the first match wins: exact match, keyword
overlap, then Levenshtein similarity. All strategies compare the same
normalized strings.
"""

from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum

from rapidfuzz.distance import Levenshtein

from .normalizer import normalize_answer
from ..utils.logging import get_logger

logger = get_logger(__name__)


class MatchType(str, Enum):
    """Types of answer matching strategies."""
    EXACT = "exact"
    KEYWORD = "keyword"
    FUZZY = "fuzzy"
    NONE = "none"


@dataclass
class MatchResult:
    """Result of answer matching."""
    is_match: bool
    confidence: float
    match_type: MatchType
    normalized_answer: str
    normalized_expected: str
    details: Dict[str, Any] = field(default_factory=dict)


class TextAnswerMatcher:
    """Matches free-text answers against a reference answer."""

    def __init__(self,
                 fuzzy_threshold: float = 0.70,
                 keyword_overlap_threshold: float = 0.50,
                 min_keyword_length: int = 4):
        """
        Initialize the matcher.

        Args:
            fuzzy_threshold: Minimum Levenshtein similarity for a fuzzy match
            keyword_overlap_threshold: Minimum share of reference keywords found in the answer
            min_keyword_length: Shortest reference token that counts as a keyword
        """
        self.fuzzy_threshold = fuzzy_threshold
        self.keyword_overlap_threshold = keyword_overlap_threshold
        self.min_keyword_length = min_keyword_length

    @classmethod
    def from_config(cls, grading_config) -> "TextAnswerMatcher":
        return cls(
            fuzzy_threshold=grading_config.fuzzy_threshold,
            keyword_overlap_threshold=grading_config.keyword_overlap_threshold,
            min_keyword_length=grading_config.min_keyword_length,
        )

    def match_answer(self, answer: Any, expected: Any) -> MatchResult:
        """
        Match an answer against the expected answer.

        Args:
            answer: The submitted answer
            expected: The reference answer

        Returns:
            MatchResult describing the first strategy that matched, or the
            closest miss when none did
        """
        norm_answer = normalize_answer(answer)
        norm_expected = normalize_answer(expected)

        # Nothing to compare: an empty side never matches
        if not norm_answer or not norm_expected:
            return MatchResult(
                is_match=False,
                confidence=0.0,
                match_type=MatchType.NONE,
                normalized_answer=norm_answer,
                normalized_expected=norm_expected,
                details={'empty': True},
            )

        strategies = [
            self._exact_match,
            self._keyword_match,
            self._fuzzy_match,
        ]

        best_result: Optional[MatchResult] = None
        for strategy in strategies:
            result = strategy(norm_answer, norm_expected)
            if result is None:
                continue
            if result.is_match:
                logger.debug(f"Text answer matched by {result.match_type.value} (confidence {result.confidence:.2f})")
                return result
            if best_result is None or result.confidence > best_result.confidence:
                best_result = result

        return MatchResult(
            is_match=False,
            confidence=best_result.confidence if best_result else 0.0,
            match_type=MatchType.NONE,
            normalized_answer=norm_answer,
            normalized_expected=norm_expected,
            details=best_result.details if best_result else {},
        )

    def is_textually_correct(self, answer: Any, expected: Any) -> bool:
        return self.match_answer(answer, expected).is_match

    def _exact_match(self, norm_answer: str, norm_expected: str) -> MatchResult:
        """Perform exact string matching."""
        is_match = norm_answer == norm_expected
        return MatchResult(
            is_match=is_match,
            confidence=1.0 if is_match else 0.0,
            match_type=MatchType.EXACT,
            normalized_answer=norm_answer,
            normalized_expected=norm_expected,
            details={'exact_match': is_match},
        )

    def _keyword_match(self, norm_answer: str, norm_expected: str) -> Optional[MatchResult]:
        """Share of reference keywords that appear inside the answer.

        Skipped (returns None) when the reference has no keywords.
        """
        keywords = self.extract_keywords(norm_expected)
        if not keywords:
            return None

        matched = [kw for kw in keywords if kw in norm_answer]
        overlap = len(matched) / len(keywords)
        return MatchResult(
            is_match=overlap >= self.keyword_overlap_threshold,
            confidence=overlap,
            match_type=MatchType.KEYWORD,
            normalized_answer=norm_answer,
            normalized_expected=norm_expected,
            details={
                'keywords': keywords,
                'matched_keywords': matched,
                'overlap': overlap,
            },
        )

    def _fuzzy_match(self, norm_answer: str, norm_expected: str) -> MatchResult:
        """Levenshtein similarity: 1 - distance / longer length."""
        distance = Levenshtein.distance(norm_answer, norm_expected)
        similarity = 1.0 - distance / max(len(norm_answer), len(norm_expected))
        return MatchResult(
            is_match=similarity >= self.fuzzy_threshold,
            confidence=similarity,
            match_type=MatchType.FUZZY,
            normalized_answer=norm_answer,
            normalized_expected=norm_expected,
            details={'distance': distance, 'similarity': similarity},
        )

    def extract_keywords(self, normalized_text: str) -> List[str]:
        """Whitespace tokens at least min_keyword_length long."""
        return [token for token in normalized_text.split(' ')
                if len(token) >= self.min_keyword_length]


def is_textually_correct(answer: Any, expected: Any,
                         matcher: Optional[TextAnswerMatcher] = None) -> bool:
    """Module-level shortcut using default thresholds unless a matcher is given."""
    return (matcher or TextAnswerMatcher()).is_textually_correct(answer, expected)
