"""
Content processing components for the Website Scanner

This package contains components for processing page content including:
- HTML parsing and main-content extraction
- Content type classification
- Entity, sentiment, readability and keyword analysis
- Business information extraction
- Near-duplicate detection
"""

from sitescan.processors.html_document import HtmlDocument
from sitescan.processors.content import ContentExtractor
from sitescan.processors.classifier import ContentClassifier, ClassificationResult
from sitescan.processors.analyzer import ContentAnalyzer
from sitescan.processors.business import BusinessInfoExtractor
from sitescan.processors.duplicates import DuplicateDetector, string_similarity

__all__ = [
    'HtmlDocument',
    'ContentExtractor',
    'ContentClassifier',
    'ClassificationResult',
    'ContentAnalyzer',
    'BusinessInfoExtractor',
    'DuplicateDetector',
    'string_similarity'
]
