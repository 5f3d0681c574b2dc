"""
Content Type Classification

This module assigns a page to one of the content categories (pricing, faq,
about, product, policy, contact, general) by combining URL hints with
keyword matches in the page text.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass

from sitescan.core.base import ContentType
from sitescan.core.config import ClassifierConfig
from sitescan.core.logging import get_logger


CATEGORIES = [t.value for t in ContentType if t is not ContentType.GENERAL]


@dataclass
class ClassificationResult:
    """Result of content classification"""
    content_type: ContentType
    scores: Dict[str, float]
    confidence: float


class ContentClassifier:
    """
    Rule-based content type classifier.

    Each category gains a fixed weight when the URL contains one of its
    patterns and a smaller weight for every keyword found in the text.
    The single highest score wins; ties, all-zero scores and scores below
    the confidence threshold fall back to general.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        """
        Initialize the content classifier.

        Args:
            config: Keyword lists, URL patterns and scoring weights
        """
        self.config = config or ClassifierConfig()
        self.category_keywords = self._normalize_keywords(self.config.keywords)
        self.url_patterns = self._normalize_keywords(self.config.url_patterns)
        self.logger = get_logger(__name__)

    def _normalize_keywords(self, category_keywords: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """
        Normalize keywords to lowercase and remove duplicates.

        Args:
            category_keywords: Raw category keywords dictionary

        Returns:
            Normalized category keywords dictionary
        """
        normalized = {}
        for category, keywords in category_keywords.items():
            normalized_keywords = []
            seen = set()
            for keyword in keywords:
                lower_keyword = keyword.lower().strip()
                if lower_keyword and lower_keyword not in seen:
                    normalized_keywords.append(lower_keyword)
                    seen.add(lower_keyword)
            normalized[category] = normalized_keywords
        return normalized

    def calculate_scores(self, content: str, url: str) -> Dict[str, float]:
        """
        Score every category for a page.

        Args:
            content: Page text
            url: Page URL

        Returns:
            Dictionary mapping every category (including general) to its score
        """
        url_lower = (url or '').lower()
        content_lower = (content or '').lower()

        scores = {category: 0.0 for category in CATEGORIES}
        scores[ContentType.GENERAL.value] = 0.0

        for category, patterns in self.url_patterns.items():
            if category in scores and any(p in url_lower for p in patterns):
                scores[category] += self.config.url_weight

        for category, keywords in self.category_keywords.items():
            if category not in scores:
                continue
            for keyword in keywords:
                if keyword in content_lower:
                    scores[category] += self.config.keyword_weight

        # Avoid float drift (0.1 * 3 != 0.3) deciding ties
        return {category: round(score, 6) for category, score in scores.items()}

    def classify(self, content: str, url: str) -> ClassificationResult:
        """
        Classify page content.

        Args:
            content: Page text
            url: Page URL

        Returns:
            ClassificationResult with the winning content type and all scores
        """
        scores = self.calculate_scores(content, url)

        ranked = sorted(
            ((category, score) for category, score in scores.items() if category != ContentType.GENERAL.value),
            key=lambda x: x[1],
            reverse=True
        )
        top_category, top_score = ranked[0]
        runner_up_score = ranked[1][1] if len(ranked) > 1 else 0.0

        if top_score <= 0 or top_score == runner_up_score:
            self.logger.debug(f"No unique top category for {url}, using general")
            return ClassificationResult(ContentType.GENERAL, scores, 0.0)

        if top_score < self.config.min_confidence:
            self.logger.debug(f"Top category {top_category} for {url} below confidence threshold")
            return ClassificationResult(ContentType.GENERAL, scores, top_score)

        confidence = min(top_score, 1.0)
        self.logger.debug(f"Content classified - {url}: {top_category} ({confidence:.2f})")
        return ClassificationResult(ContentType(top_category), scores, confidence)

    def get_category_keywords(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self.category_keywords.items()}

    def update_category_keywords(self, category: str, keywords: List[str]) -> None:
        """
        Replace the keyword list of a category.

        Raises:
            ValueError: If the category is not a known content type
        """
        if category not in CATEGORIES:
            raise ValueError(f"Unknown content category: {category}")
        self.category_keywords[category] = self._normalize_keywords({category: keywords})[category]
        self.logger.info(f"Updated keywords for category '{category}': {len(keywords)} keywords")
