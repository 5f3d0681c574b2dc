"""
Base Classes, Data Models and Errors for the Website Scanner

Defines the shared data model for the acquisition pipeline (scan jobs,
page content, analysis results, extracted content), the base component
lifecycle, and the error taxonomy used across the package.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional


def new_id() -> str:
    """Generate a new record identifier"""
    return str(uuid.uuid4())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp stored in a record"""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp for storage"""
    return value.isoformat() if value else None


class ScanJobStatus(Enum):
    """Lifecycle states of a scan job"""
    PENDING = "pending"
    SCANNING = "scanning"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanJobStatus.COMPLETED, ScanJobStatus.FAILED)


class ContentType(Enum):
    """Content categories assigned by the classifier"""
    PRICING = "pricing"
    FAQ = "faq"
    ABOUT = "about"
    PRODUCT = "product"
    POLICY = "policy"
    CONTACT = "contact"
    GENERAL = "general"


@dataclass
class UrlValidationResult:
    """Result of validating a single URL and checking that it responds"""
    url: str
    is_valid: bool = False
    normalized_url: Optional[str] = None
    final_url: Optional[str] = None
    redirects: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class FetchResult:
    """Raw result of an HTTP fetch"""
    url: str
    final_url: str
    status: int
    html: str
    headers: Dict[str, str] = field(default_factory=dict)
    attempts: int = 1
    elapsed: float = 0.0


@dataclass
class PageContent:
    """Structured content extracted from one HTML page"""
    url: str
    title: str
    content: str
    html: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    links: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    headings: List[Dict[str, Any]] = field(default_factory=list)
    text_blocks: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Entity:
    text: str
    type: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {'text': self.text, 'type': self.type, 'confidence': self.confidence}


@dataclass
class SentimentResult:
    score: float
    label: str
    confidence: float


@dataclass
class ReadabilityScores:
    flesch_kincaid: float = 0.0
    gunning_fog: float = 0.0
    smog: float = 0.0
    coleman_liau: float = 0.0
    automated_readability: float = 0.0
    average: float = 0.0


@dataclass
class Keyword:
    word: str
    frequency: int
    importance: float
    category: str = "general"


@dataclass
class ContentAnalysis:
    """Combined output of the content analyzer"""
    content_type: ContentType
    confidence: float
    entities: List[Entity] = field(default_factory=list)
    sentiment: SentimentResult = field(default_factory=lambda: SentimentResult(0.0, 'neutral', 0.0))
    readability: ReadabilityScores = field(default_factory=ReadabilityScores)
    keywords: List[Keyword] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable summary stored in extracted content metadata"""
        return {
            'content_type': self.content_type.value,
            'confidence': self.confidence,
            'sentiment': vars(self.sentiment).copy(),
            'readability': vars(self.readability).copy(),
            'keywords': [vars(k).copy() for k in self.keywords],
        }


@dataclass
class ContactInfo:
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    contact_form: Optional[str] = None


@dataclass
class Address:
    full: str
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


@dataclass
class BusinessInfo:
    """Best-effort business facts found in page text"""
    company_name: Optional[str] = None
    description: Optional[str] = None
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    social_media: Optional[Dict[str, str]] = None
    address: Optional[Address] = None
    industry: Optional[str] = None
    founded: Optional[str] = None
    employees: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'company_name': self.company_name,
            'description': self.description,
            'contact_info': vars(self.contact_info).copy(),
            'social_media': self.social_media,
            'address': vars(self.address).copy() if self.address else None,
            'industry': self.industry,
            'founded': self.founded,
            'employees': self.employees,
        }


@dataclass
class ExtractedContent:
    """Persisted result of scanning one URL"""
    url: str
    title: str
    content: str
    content_type: ContentType
    headings: Dict[str, List[str]] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    word_count: int = 0
    processing_quality: float = 0.0
    extracted_entities: List[Dict[str, Any]] = field(default_factory=list)
    id: str = ""
    scan_job_id: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'scan_job_id': self.scan_job_id,
            'url': self.url,
            'title': self.title,
            'content': self.content,
            'content_type': self.content_type.value,
            'headings': self.headings,
            'metadata': self.metadata,
            'word_count': self.word_count,
            'processing_quality': self.processing_quality,
            'extracted_entities': self.extracted_entities,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ExtractedContent':
        return cls(
            id=record.get('id', ''),
            scan_job_id=record.get('scan_job_id', ''),
            url=record['url'],
            title=record.get('title', ''),
            content=record.get('content', ''),
            content_type=ContentType(record.get('content_type', 'general')),
            headings=record.get('headings') or {},
            metadata=record.get('metadata') or {},
            word_count=record.get('word_count', 0),
            processing_quality=record.get('processing_quality', 0.0),
            extracted_entities=record.get('extracted_entities') or [],
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
        )


@dataclass
class ScanJob:
    """A unit of work crawling one or more URLs"""
    urls: List[str]
    user_id: Optional[str] = None
    status: ScanJobStatus = ScanJobStatus.PENDING
    scan_settings: Dict[str, Any] = field(default_factory=dict)
    pages_found: int = 0
    pages_processed: int = 0
    pages_succeeded: int = 0
    pages_failed: int = 0
    progress_percentage: int = 0
    current_url: Optional[str] = None
    errors: List[Dict[str, str]] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'urls': list(self.urls),
            'status': self.status.value,
            'scan_settings': self.scan_settings,
            'pages_found': self.pages_found,
            'pages_processed': self.pages_processed,
            'pages_succeeded': self.pages_succeeded,
            'pages_failed': self.pages_failed,
            'progress_percentage': self.progress_percentage,
            'current_url': self.current_url,
            'errors': list(self.errors),
            'created_at': format_timestamp(self.created_at),
            'started_at': format_timestamp(self.started_at),
            'completed_at': format_timestamp(self.completed_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ScanJob':
        return cls(
            id=record['id'],
            user_id=record.get('user_id'),
            urls=list(record.get('urls') or []),
            status=ScanJobStatus(record.get('status', 'pending')),
            scan_settings=record.get('scan_settings') or {},
            pages_found=record.get('pages_found', 0),
            pages_processed=record.get('pages_processed', 0),
            pages_succeeded=record.get('pages_succeeded', 0),
            pages_failed=record.get('pages_failed', 0),
            progress_percentage=record.get('progress_percentage', 0),
            current_url=record.get('current_url'),
            errors=list(record.get('errors') or []),
            created_at=parse_timestamp(record.get('created_at')) or datetime.now(),
            started_at=parse_timestamp(record.get('started_at')),
            completed_at=parse_timestamp(record.get('completed_at')),
        )


@dataclass
class ScanProgress:
    """Point-in-time view of a scan job"""
    job_id: str
    status: ScanJobStatus
    progress: int
    pages_found: int
    pages_processed: int
    current_url: Optional[str] = None
    estimated_time_remaining: Optional[float] = None
    errors: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class BulkScanResult:
    """Outcome of scanning a list of URLs outside a persisted job"""
    success: bool = True
    extracted_content: List[ExtractedContent] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    statistics: Dict[str, Any] = field(default_factory=dict)


class BaseComponent(ABC):
    """Base class for components that own network resources"""

    def __init__(self, config: Any):
        self.config = config
        self._initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the component"""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources"""
        pass

    def is_initialized(self) -> bool:
        """Check if component is initialized"""
        return self._initialized

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.cleanup()


class SitescanError(Exception):
    """Base exception for scanner errors"""
    pass


class ConfigurationError(SitescanError):
    """Configuration-related errors"""
    pass


class InvalidUrl(SitescanError):
    """URL is malformed or uses an unsupported scheme"""
    pass


class FetchError(SitescanError):
    """Base class for fetch failures"""
    pass


class HttpStatusError(FetchError):
    """Server answered with a non-2xx status"""

    def __init__(self, url: str, status: int, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason
        super().__init__(f"HTTP {status}: {reason}" if reason else f"HTTP {status}")


class RobotsDisallowed(FetchError):
    """robots.txt forbids fetching the URL; never retried"""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Blocked by robots.txt: {url}")


class FetchExhausted(FetchError):
    """All retry attempts failed"""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {last_error}")


class ExtractionError(SitescanError):
    """HTML could not be turned into page content"""
    pass


class NoValidUrls(SitescanError):
    """None of the submitted URLs passed validation"""
    pass


class StorageError(SitescanError):
    """Persistence failures"""
    pass


class JobNotFoundError(SitescanError):
    """Scan job does not exist"""
    pass


class InvalidJobTransition(SitescanError):
    """Requested lifecycle transition is not allowed from the current state"""
    pass


class APIError(SitescanError):
    """Upstream API errors"""
    pass


class KnowledgeError(SitescanError):
    """Knowledge base errors"""
    pass


class KnowledgeItemNotFound(KnowledgeError):
    """Knowledge item does not exist"""
    pass


class CategoryNotFound(KnowledgeError):
    """Knowledge category does not exist"""
    pass


class CategoryNotEmptyError(KnowledgeError):
    """Category still has child categories"""
    pass


class ImportValidationError(SitescanError):
    """Imported content or file failed validation"""
    pass
