"""Multi-term inclusion test over a candidate's searchable fields."""

from typing import Callable

from marketmatch.domain.models import Candidate
from marketmatch.logging import get_logger
from marketmatch.normalization import normalize

logger = get_logger(__name__, component="matching")

CandidatePredicate = Callable[[Candidate], bool]


def searchable_text(candidate: Candidate, language: str) -> str:
    """Normalized concatenation of title, description, tags and type."""
    parts = [candidate.title, candidate.description, *candidate.tags, candidate.type]
    return normalize(" ".join(part for part in parts if part), language)


def _match_all(candidate: Candidate) -> bool:
    return True


class MatchPredicateBuilder:
    """Builds candidate predicates from free-text queries.

    Matching rules, applied to normalized text:
    - Empty query: every candidate matches
    - One term: the term is a substring of the searchable text, or equals the
      candidate's type
    - Several terms: every term is a substring of the searchable text
    """

    def build(self, query: str, language: str) -> CandidatePredicate:
        """Build a predicate for ``query`` normalized under ``language``.

        Args:
            query: Raw query text
            language: Language code used to normalize both sides

        Returns:
            Callable returning True for matching candidates
        """
        terms = normalize(query, language).split()

        if not terms:
            return _match_all

        if len(terms) == 1:
            term = terms[0]

            def single_term(candidate: Candidate) -> bool:
                if term in searchable_text(candidate, language):
                    return True
                return term == normalize(candidate.type, language)

            return single_term

        def all_terms(candidate: Candidate) -> bool:
            haystack = searchable_text(candidate, language)
            return all(term in haystack for term in terms)

        logger.debug(
            "Built multi-term predicate",
            extra={"event": "matching.predicate.built", "term_count": len(terms), "language": language},
        )
        return all_terms
