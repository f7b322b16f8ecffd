"""
Sentiment scoring for contact messages.

Wraps the AFINN word list: the score is the sum of the valences of the words
in the text, so it is positive for favourable tone, negative for unfavourable
and zero for neutral or unscorable text.
"""
import logging
from functools import lru_cache

from afinn import Afinn

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def load_afinn(language='en'):
    """Word list loading is slow; share one analyzer per language."""
    return Afinn(language=language, emoticons=True)


class SentimentScorer:
    """
    Text to signed integer sentiment score.

    Scoring never fails the caller: any error from the analyzer is logged and
    ``fallback_score`` is returned.
    """

    def __init__(self, analyzer=None, language='en', fallback_score=0):
        self._analyzer = analyzer
        self.language = language
        self.fallback_score = fallback_score

    @property
    def analyzer(self):
        if self._analyzer is None:
            self._analyzer = load_afinn(self.language)
        return self._analyzer

    def score(self, text: str) -> int:
        if not text:
            return 0

        try:
            return int(round(self.analyzer.score(text)))
        except Exception:
            logger.exception("Sentiment scoring failed, using fallback score")
            return self.fallback_score
