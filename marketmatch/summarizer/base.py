"""Summarizer interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from marketmatch.matching.models import RankedCandidate


class Summarizer(ABC):
    """Produces a natural-language recommendation over top-ranked candidates."""

    @abstractmethod
    def summarize(self, description: str, top_results: Sequence[RankedCandidate]) -> Optional[str]:
        """Recommend one of ``top_results`` for the project ``description``.

        Returns:
            Recommendation text, or None when there is nothing to say

        Raises:
            UpstreamDependencyError: If the backing service fails
        """
        pass


class NullSummarizer(Summarizer):
    """Summarizer used when no external service is configured."""

    def summarize(self, description: str, top_results: Sequence[RankedCandidate]) -> Optional[str]:
        return None
