"""
Knowledge base components for the Website Scanner

This package contains:
- The knowledge data model (items, categories, versions, feedback)
- The knowledge base manager with search and analytics
- Full-text ranking
- Content import from URLs, files, text and APIs
- The text generation client used for enrichment
"""

from sitescan.knowledge.models import (
    SourceType,
    ItemStatus,
    RelationshipType,
    FeedbackType,
    KnowledgeItem,
    KnowledgeCategory,
    KnowledgeVersion,
    KnowledgeSearchResult,
    KnowledgeSearchFilters,
    KnowledgeRelationship,
    KnowledgeFeedback,
    KnowledgeSuggestion,
    KnowledgeAnalytics,
    ContentSource,
    ValidationResult,
    ImportResult
)
from sitescan.knowledge.ai import TextGenerator, HttpTextGenerator
from sitescan.knowledge.search import KnowledgeRanker
from sitescan.knowledge.manager import KnowledgeBaseManager
from sitescan.knowledge.importer import ContentImporter, ImportConfig

__all__ = [
    'SourceType',
    'ItemStatus',
    'RelationshipType',
    'FeedbackType',
    'KnowledgeItem',
    'KnowledgeCategory',
    'KnowledgeVersion',
    'KnowledgeSearchResult',
    'KnowledgeSearchFilters',
    'KnowledgeRelationship',
    'KnowledgeFeedback',
    'KnowledgeSuggestion',
    'KnowledgeAnalytics',
    'ContentSource',
    'ValidationResult',
    'ImportResult',
    'TextGenerator',
    'HttpTextGenerator',
    'KnowledgeRanker',
    'KnowledgeBaseManager',
    'ContentImporter',
    'ImportConfig'
]
