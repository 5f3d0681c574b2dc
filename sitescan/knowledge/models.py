"""
Knowledge base data model.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sitescan.core.base import new_id, parse_timestamp, format_timestamp


class SourceType(Enum):
    URL = "url"
    FILE = "file"
    MANUAL = "manual"


class ItemStatus(Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class RelationshipType(Enum):
    RELATED = "related"
    DEPENDS_ON = "depends_on"
    REFERENCES = "references"
    FOLLOWS = "follows"


class FeedbackType(Enum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"
    OUTDATED = "outdated"
    INCORRECT = "incorrect"
    INCOMPLETE = "incomplete"


# Contribution of each feedback type to the effectiveness score
FEEDBACK_SCORES = {
    FeedbackType.HELPFUL: 1.0,
    FeedbackType.NOT_HELPFUL: 0.0,
    FeedbackType.OUTDATED: 0.3,
    FeedbackType.INCORRECT: 0.0,
    FeedbackType.INCOMPLETE: 0.4,
}


@dataclass
class KnowledgeItem:
    """A versioned knowledge record"""
    title: str
    content: str
    summary: Optional[str] = None
    category_id: Optional[str] = None
    source_type: SourceType = SourceType.MANUAL
    source_url: Optional[str] = None
    file_path: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    status: ItemStatus = ItemStatus.ACTIVE
    confidence_score: float = 0.8
    usage_count: int = 0
    effectiveness_score: float = 0.5
    language: str = "en"
    metadata: Dict[str, Any] = field(default_factory=dict)
    version: int = 1
    id: str = field(default_factory=new_id)
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'summary': self.summary,
            'category_id': self.category_id,
            'source_type': self.source_type.value,
            'source_url': self.source_url,
            'file_path': self.file_path,
            'tags': list(self.tags),
            'status': self.status.value,
            'confidence_score': self.confidence_score,
            'usage_count': self.usage_count,
            'effectiveness_score': self.effectiveness_score,
            'language': self.language,
            'metadata': self.metadata,
            'version': self.version,
            'created_by': self.created_by,
            'created_at': format_timestamp(self.created_at),
            'updated_at': format_timestamp(self.updated_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'KnowledgeItem':
        return cls(
            id=record['id'],
            title=record.get('title', ''),
            content=record.get('content', ''),
            summary=record.get('summary'),
            category_id=record.get('category_id'),
            source_type=SourceType(record.get('source_type', 'manual')),
            source_url=record.get('source_url'),
            file_path=record.get('file_path'),
            tags=list(record.get('tags') or []),
            status=ItemStatus(record.get('status', 'active')),
            confidence_score=record.get('confidence_score', 0.8),
            usage_count=record.get('usage_count', 0),
            effectiveness_score=record.get('effectiveness_score', 0.5),
            language=record.get('language', 'en'),
            metadata=record.get('metadata') or {},
            version=record.get('version', 1),
            created_by=record.get('created_by'),
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
            updated_at=parse_timestamp(record.get('updated_at')) or datetime.now(),
        )


@dataclass
class KnowledgeCategory:
    """A node in the category forest"""
    name: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    order_index: int = 0
    color: str = "#3B82F6"
    icon: str = "folder"
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    children: List['KnowledgeCategory'] = field(default_factory=list)
    item_count: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'parent_id': self.parent_id,
            'order_index': self.order_index,
            'color': self.color,
            'icon': self.icon,
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': format_timestamp(self.created_at),
            'updated_at': format_timestamp(self.updated_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'KnowledgeCategory':
        return cls(
            id=record['id'],
            name=record.get('name', ''),
            description=record.get('description'),
            parent_id=record.get('parent_id'),
            order_index=record.get('order_index', 0),
            color=record.get('color', '#3B82F6'),
            icon=record.get('icon', 'folder'),
            is_active=record.get('is_active', True),
            created_by=record.get('created_by'),
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
            updated_at=parse_timestamp(record.get('updated_at')) or datetime.now(),
        )


@dataclass
class KnowledgeVersion:
    """Snapshot of an item at one version; append-only"""
    knowledge_item_id: str
    version_number: int
    title: str
    content: str
    summary: Optional[str] = None
    changes_description: Optional[str] = None
    created_by: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'knowledge_item_id': self.knowledge_item_id,
            'version_number': self.version_number,
            'title': self.title,
            'content': self.content,
            'summary': self.summary,
            'changes_description': self.changes_description,
            'created_by': self.created_by,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'KnowledgeVersion':
        return cls(
            id=record['id'],
            knowledge_item_id=record['knowledge_item_id'],
            version_number=record['version_number'],
            title=record.get('title', ''),
            content=record.get('content', ''),
            summary=record.get('summary'),
            changes_description=record.get('changes_description'),
            created_by=record.get('created_by'),
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
        )


@dataclass
class KnowledgeSearchResult:
    id: str
    title: str
    content: str
    summary: Optional[str]
    category_id: Optional[str]
    category_name: Optional[str]
    tags: List[str]
    relevance_score: float
    usage_count: int
    effectiveness_score: float
    source_type: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_item(cls, item: KnowledgeItem, relevance_score: float = 1.0,
                  category_name: Optional[str] = None) -> 'KnowledgeSearchResult':
        return cls(
            id=item.id,
            title=item.title,
            content=item.content,
            summary=item.summary,
            category_id=item.category_id,
            category_name=category_name,
            tags=list(item.tags),
            relevance_score=relevance_score,
            usage_count=item.usage_count,
            effectiveness_score=item.effectiveness_score,
            source_type=item.source_type.value,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


@dataclass
class KnowledgeSearchFilters:
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None
    source_type: Optional[str] = None
    status: Optional[str] = None
    min_relevance: Optional[float] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


@dataclass
class KnowledgeRelationship:
    parent_item_id: str
    child_item_id: str
    relationship_type: RelationshipType = RelationshipType.RELATED
    strength: float = 0.5
    created_by: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'parent_item_id': self.parent_item_id,
            'child_item_id': self.child_item_id,
            'relationship_type': self.relationship_type.value,
            'strength': self.strength,
            'created_by': self.created_by,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'KnowledgeRelationship':
        return cls(
            id=record['id'],
            parent_item_id=record['parent_item_id'],
            child_item_id=record['child_item_id'],
            relationship_type=RelationshipType(record.get('relationship_type', 'related')),
            strength=record.get('strength', 0.5),
            created_by=record.get('created_by'),
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
        )


@dataclass
class KnowledgeFeedback:
    knowledge_item_id: str
    feedback_type: FeedbackType
    rating: Optional[int] = None
    comment: Optional[str] = None
    user_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def score(self) -> float:
        """Feedback value in [0, 1]; a rating is averaged in when present"""
        value = FEEDBACK_SCORES[self.feedback_type]
        if self.rating is not None:
            value = (value + (self.rating - 1) / 4) / 2
        return value

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'knowledge_item_id': self.knowledge_item_id,
            'feedback_type': self.feedback_type.value,
            'rating': self.rating,
            'comment': self.comment,
            'user_id': self.user_id,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'KnowledgeFeedback':
        return cls(
            id=record['id'],
            knowledge_item_id=record['knowledge_item_id'],
            feedback_type=FeedbackType(record['feedback_type']),
            rating=record.get('rating'),
            comment=record.get('comment'),
            user_id=record.get('user_id'),
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
        )


@dataclass
class KnowledgeSuggestion:
    knowledge_item_id: str
    suggestion_type: str
    suggestion_text: str
    confidence_score: float
    status: str = "pending"
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'knowledge_item_id': self.knowledge_item_id,
            'suggestion_type': self.suggestion_type,
            'suggestion_text': self.suggestion_text,
            'confidence_score': self.confidence_score,
            'status': self.status,
            'created_at': format_timestamp(self.created_at),
        }


@dataclass
class KnowledgeAnalytics:
    total_items: int
    active_items: int
    categories_count: int
    most_viewed_items: List[KnowledgeSearchResult]
    top_categories: List[Dict[str, Any]]
    search_trends: List[Dict[str, Any]]
    quality_metrics: Dict[str, float]
    knowledge_gaps: List[str] = field(default_factory=list)


@dataclass
class ContentSource:
    """A piece of content queued for import"""
    type: str  # url, file, manual
    data: Any
    title: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    is_valid: bool
    quality: float
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success: bool
    items_imported: int = 0
    items_skipped: int = 0
    items: List[KnowledgeItem] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    processing_time: float = 0.0
