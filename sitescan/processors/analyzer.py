"""
Heuristic content analysis: entities, sentiment, readability and keywords.
"""

import re
from collections import Counter
from typing import List, Optional

from sitescan.core.base import (
    ContentAnalysis,
    Entity,
    Keyword,
    ReadabilityScores,
    SentimentResult,
)
from sitescan.core.logging import get_logger
from sitescan.processors.classifier import ContentClassifier


ENTITY_PATTERNS = [
    ('email', re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'), 0.9),
    ('phone', re.compile(r'[\+]?[1-9][\d\s\-\(\)]{7,15}'), 0.8),
    ('url', re.compile(r'https?://[^\s]+'), 0.9),
    ('date', re.compile(r'\b\d{1,2}[-/]\d{1,2}[-/]\d{2,4}\b'), 0.7),
]

POSITIVE_WORDS = {'good', 'great', 'excellent', 'amazing', 'wonderful', 'fantastic', 'love', 'best'}
NEGATIVE_WORDS = {'bad', 'terrible', 'awful', 'horrible', 'hate', 'worst', 'poor', 'disappointing'}

MAX_KEYWORDS = 20


class ContentAnalyzer:
    """Runs the classifier and the heuristic analyses over page text"""

    def __init__(self, classifier: Optional[ContentClassifier] = None):
        self.classifier = classifier or ContentClassifier()
        self.logger = get_logger(__name__)

    def analyze(self, content: str, url: str) -> ContentAnalysis:
        """
        Analyze page text.

        Args:
            content: Page text (markdown)
            url: Page URL, used for classification

        Returns:
            ContentAnalysis
        """
        classification = self.classifier.classify(content, url)
        return ContentAnalysis(
            content_type=classification.content_type,
            confidence=classification.confidence,
            entities=self.extract_entities(content),
            sentiment=self.analyze_sentiment(content),
            readability=self.calculate_readability(content),
            keywords=self.extract_keywords(content),
        )

    def extract_entities(self, content: str) -> List[Entity]:
        entities = []
        for entity_type, pattern, confidence in ENTITY_PATTERNS:
            for match in pattern.findall(content or ''):
                entities.append(Entity(text=match, type=entity_type, confidence=confidence))
        return entities

    def analyze_sentiment(self, content: str) -> SentimentResult:
        """
        Word-list sentiment.

        The raw score is (positive - negative) / word count; the reported
        score is that value scaled by 10 and clamped to [-1, 1].
        """
        words = (content or '').lower().split()
        if not words:
            return SentimentResult(score=0.0, label='neutral', confidence=0.0)

        positive_count = sum(1 for word in words if word in POSITIVE_WORDS)
        negative_count = sum(1 for word in words if word in NEGATIVE_WORDS)
        raw = (positive_count - negative_count) / len(words)

        label = 'neutral'
        if raw > 0.01:
            label = 'positive'
        elif raw < -0.01:
            label = 'negative'

        return SentimentResult(
            score=max(-1.0, min(1.0, raw * 10)),
            label=label,
            confidence=min(0.9, abs(raw * 100)),
        )

    @staticmethod
    def count_syllables(word: str) -> int:
        word = word.lower()
        if len(word) <= 3:
            return 1
        count = len(re.findall(r'[aeiouy]+', word))
        if word.endswith('e'):
            count -= 1
        return max(1, count)

    def calculate_readability(self, content: str) -> ReadabilityScores:
        """Flesch-Kincaid grade mapped onto a 0-100 ease score"""
        sentences = [s for s in re.split(r'[.!?]+', content or '') if s.strip()]
        words = (content or '').split()
        if not sentences or not words:
            return ReadabilityScores()

        syllables = sum(self.count_syllables(word) for word in words)
        words_per_sentence = len(words) / len(sentences)
        syllables_per_word = syllables / len(words)

        grade = 0.39 * words_per_sentence + 11.8 * syllables_per_word - 15.59
        average = max(0.0, min(100.0, 100 - grade * 5))

        # The other indices are reported as the same grade estimate
        return ReadabilityScores(
            flesch_kincaid=grade,
            gunning_fog=grade,
            smog=grade,
            coleman_liau=grade,
            automated_readability=grade,
            average=average,
        )

    def extract_keywords(self, content: str) -> List[Keyword]:
        words = [
            word for word in re.sub(r'[^\w\s]', '', (content or '').lower()).split()
            if len(word) > 3
        ]
        if not words:
            return []

        counts = Counter(words)
        return [
            Keyword(word=word, frequency=frequency, importance=frequency / len(words))
            for word, frequency in counts.most_common(MAX_KEYWORDS)
        ]
