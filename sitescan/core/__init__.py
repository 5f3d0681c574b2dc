"""
Core components for the Website Scanner

This package contains the core components for the scanner including:
- Data models, base classes and errors
- Configuration management
- Logging system
- URL validation, robots.txt, rate limiting, retry and fetching
- Scan job orchestration
"""

from sitescan.core.base import (
    ScanJobStatus,
    ContentType,
    UrlValidationResult,
    FetchResult,
    PageContent,
    Entity,
    SentimentResult,
    ReadabilityScores,
    Keyword,
    ContentAnalysis,
    ContactInfo,
    Address,
    BusinessInfo,
    ExtractedContent,
    ScanJob,
    ScanProgress,
    BulkScanResult,
    BaseComponent,
    SitescanError,
    ConfigurationError,
    InvalidUrl,
    FetchError,
    HttpStatusError,
    RobotsDisallowed,
    FetchExhausted,
    ExtractionError,
    NoValidUrls,
    StorageError,
    JobNotFoundError,
    InvalidJobTransition,
    KnowledgeError,
    KnowledgeItemNotFound,
    CategoryNotFound,
    CategoryNotEmptyError,
    ImportValidationError,
    APIError
)

from sitescan.core.config import (
    ConfigManager,
    ScanConfig,
    ClassifierConfig,
    StorageConfig,
    KnowledgeConfig,
    AIConfig,
    LoggingConfig
)

from sitescan.core.logging import (
    LoggingManager,
    get_logger,
    setup_logging
)

from sitescan.core.retry import RetryPolicy, with_retry
from sitescan.core.rate_limiter import DomainRateLimiter
from sitescan.core.robots import RobotsGate
from sitescan.core.url_validator import UrlValidator
from sitescan.core.fetcher import Fetcher

__all__ = [
    # Data model
    'ScanJobStatus',
    'ContentType',
    'UrlValidationResult',
    'FetchResult',
    'PageContent',
    'Entity',
    'SentimentResult',
    'ReadabilityScores',
    'Keyword',
    'ContentAnalysis',
    'ContactInfo',
    'Address',
    'BusinessInfo',
    'ExtractedContent',
    'ScanJob',
    'ScanProgress',
    'BulkScanResult',
    'BaseComponent',

    # Errors
    'SitescanError',
    'ConfigurationError',
    'InvalidUrl',
    'FetchError',
    'HttpStatusError',
    'RobotsDisallowed',
    'FetchExhausted',
    'ExtractionError',
    'NoValidUrls',
    'StorageError',
    'JobNotFoundError',
    'InvalidJobTransition',
    'KnowledgeError',
    'KnowledgeItemNotFound',
    'CategoryNotFound',
    'CategoryNotEmptyError',
    'ImportValidationError',
    'APIError',

    # Configuration
    'ConfigManager',
    'ScanConfig',
    'ClassifierConfig',
    'StorageConfig',
    'KnowledgeConfig',
    'AIConfig',
    'LoggingConfig',

    # Logging
    'LoggingManager',
    'get_logger',
    'setup_logging',

    # Acquisition
    'RetryPolicy',
    'with_retry',
    'DomainRateLimiter',
    'RobotsGate',
    'UrlValidator',
    'Fetcher'
]
