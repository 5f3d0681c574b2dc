"""
Configuration Manager for the Website Scanner

Handles YAML/JSON configuration files and environment variable integration
with validation of scan, classification, storage and knowledge base settings.
"""

import os
import json
import yaml
from dataclasses import dataclass, field, asdict, replace, fields
from pathlib import Path
from typing import Dict, Any, Optional, List

from sitescan.core.base import ConfigurationError


DEFAULT_USER_AGENT = "SitescanBot/1.0 (+https://sitescan.dev/bot)"


def _default_category_keywords() -> Dict[str, List[str]]:
    return {
        'pricing': ['$', 'price', 'cost', 'plan', 'subscription', 'billing', 'payment'],
        'faq': ['question', 'answer', 'frequently asked', 'faq', 'help'],
        'about': ['about us', 'our story', 'company', 'mission', 'vision'],
        'product': ['feature', 'product', 'service', 'solution', 'tool'],
        'policy': ['privacy policy', 'terms of service', 'cookie policy', 'legal'],
        'contact': ['contact us', 'get in touch', 'email', 'phone', 'address'],
    }


def _default_url_patterns() -> Dict[str, List[str]]:
    return {
        'pricing': ['pricing', 'price', 'plan'],
        'faq': ['faq', 'help', 'support'],
        'about': ['about', 'company', 'team'],
        'product': ['product', 'service', 'feature'],
        'policy': ['policy', 'terms', 'privacy'],
        'contact': ['contact', 'support'],
    }


@dataclass
class ScanConfig:
    """Per-scan crawling settings"""
    user_agent: str = DEFAULT_USER_AGENT
    timeout: int = 30
    respect_robots_txt: bool = True
    rate_limit: float = 5.0  # requests per second per domain
    concurrency: Optional[int] = None  # defaults to the rate limit
    max_retries: int = 3
    retry_base_delay: float = 1.0
    validation_timeout: int = 10
    robots_timeout: int = 5
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    accept_language: str = "en-US,en;q=0.5"
    duplicate_threshold: float = 0.85
    duplicate_cache_size: int = 1000
    duplicate_cache_ttl: Optional[float] = None
    skip_duplicates: bool = False

    @property
    def batch_size(self) -> int:
        """Number of URLs scanned in parallel per chunk"""
        size = self.concurrency if self.concurrency else int(self.rate_limit)
        return max(size, 1)

    def with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> 'ScanConfig':
        """Return a copy with known fields replaced"""
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ClassifierConfig:
    """Content-type classification settings"""
    keywords: Dict[str, List[str]] = field(default_factory=_default_category_keywords)
    url_patterns: Dict[str, List[str]] = field(default_factory=_default_url_patterns)
    url_weight: float = 0.4
    keyword_weight: float = 0.1
    min_confidence: float = 0.1


@dataclass
class StorageConfig:
    """Storage backend selection"""
    mode: str = "memory"
    json_path: str = "./data"


@dataclass
class KnowledgeConfig:
    """Knowledge base search, analytics and import settings"""
    min_relevance: float = 0.1
    search_history_days: int = 30
    gap_min_occurrences: int = 3
    trend_min_occurrences: int = 2
    high_quality_threshold: float = 0.7
    review_threshold: float = 0.5
    import_batch_size: int = 5
    similarity_threshold: float = 0.85
    deduplicate_content: bool = True
    max_file_size_mb: int = 10


@dataclass
class AIConfig:
    """Text generation service used for knowledge enrichment"""
    enabled: bool = False
    api_url: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o-mini"
    api_key_env: str = "SITESCAN_AI_API_KEY"
    timeout: int = 30


@dataclass
class LoggingConfig:
    """Logging system configuration"""
    level: str = "INFO"
    file: str = "./logs/sitescan.log"
    max_size: str = "100MB"
    backup_count: int = 5


class ConfigManager:
    """
    Centralized configuration manager with support for YAML/JSON files
    and environment variable integration.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or "config/config.yaml"
        self._config_data: Dict[str, Any] = {}
        self.scan_config: Optional[ScanConfig] = None
        self.classifier_config: Optional[ClassifierConfig] = None
        self.storage_config: Optional[StorageConfig] = None
        self.knowledge_config: Optional[KnowledgeConfig] = None
        self.ai_config: Optional[AIConfig] = None
        self.logging_config: Optional[LoggingConfig] = None

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from file with environment variable override"""
        if config_path:
            self.config_path = config_path

        config_file = Path(self.config_path)

        if not config_file.exists():
            self._config_data = self._get_default_config()
            self._create_default_config_file()
        else:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    if config_file.suffix.lower() == '.json':
                        self._config_data = json.load(f)
                    else:
                        self._config_data = yaml.safe_load(f) or {}
            except (OSError, ValueError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {config_file}: {e}")

        self._apply_env_overrides()
        self._parse_config()

        return self._config_data

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration dictionary"""
        return {
            'scan': asdict(ScanConfig()),
            'classifier': asdict(ClassifierConfig()),
            'storage': asdict(StorageConfig()),
            'knowledge': asdict(KnowledgeConfig()),
            'ai': asdict(AIConfig()),
            'logging': asdict(LoggingConfig()),
        }

    def _create_default_config_file(self) -> None:
        """Create default configuration file"""
        config_dir = Path(self.config_path).parent
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self._config_data, f, default_flow_style=False, indent=2)

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides"""
        if os.getenv('SITESCAN_USER_AGENT'):
            self._config_data.setdefault('scan', {})['user_agent'] = os.getenv('SITESCAN_USER_AGENT')

        if os.getenv('SITESCAN_RATE_LIMIT'):
            try:
                self._config_data.setdefault('scan', {})['rate_limit'] = float(os.getenv('SITESCAN_RATE_LIMIT'))
            except ValueError:
                raise ConfigurationError("SITESCAN_RATE_LIMIT must be a number")

        if os.getenv('SITESCAN_CONCURRENCY'):
            try:
                self._config_data.setdefault('scan', {})['concurrency'] = int(os.getenv('SITESCAN_CONCURRENCY'))
            except ValueError:
                raise ConfigurationError("SITESCAN_CONCURRENCY must be an integer")

        if os.getenv('SITESCAN_STORAGE_MODE'):
            self._config_data.setdefault('storage', {})['mode'] = os.getenv('SITESCAN_STORAGE_MODE')

        # Presence of an API key turns on AI enrichment
        ai_key_env = self._config_data.get('ai', {}).get('api_key_env', AIConfig.api_key_env)
        if os.getenv(ai_key_env):
            self._config_data.setdefault('ai', {})['enabled'] = True

        if os.getenv('LOG_LEVEL'):
            self._config_data.setdefault('logging', {})['level'] = os.getenv('LOG_LEVEL')

    @staticmethod
    def _build(section_class, data: Optional[Dict[str, Any]]):
        """Build a dataclass from a section, ignoring unknown keys"""
        known = {f.name for f in fields(section_class)}
        return section_class(**{k: v for k, v in (data or {}).items() if k in known})

    def _parse_config(self) -> None:
        """Parse configuration into dataclass objects"""
        self.scan_config = self._build(ScanConfig, self._config_data.get('scan'))
        self.classifier_config = self._build(ClassifierConfig, self._config_data.get('classifier'))
        self.storage_config = self._build(StorageConfig, self._config_data.get('storage'))
        self.knowledge_config = self._build(KnowledgeConfig, self._config_data.get('knowledge'))
        self.ai_config = self._build(AIConfig, self._config_data.get('ai'))
        self.logging_config = self._build(LoggingConfig, self._config_data.get('logging'))

    def validate_config(self) -> bool:
        """Validate loaded configuration"""
        if not self.scan_config:
            raise ConfigurationError("Configuration not loaded")

        if self.scan_config.rate_limit <= 0:
            raise ConfigurationError(f"rate_limit must be positive, got {self.scan_config.rate_limit}")

        if self.scan_config.max_retries < 1:
            raise ConfigurationError("max_retries must be at least 1")

        if not 0.0 < self.scan_config.duplicate_threshold <= 1.0:
            raise ConfigurationError("duplicate_threshold must be in (0, 1]")

        if self.storage_config.mode not in ('memory', 'json'):
            raise ConfigurationError(f"Invalid storage mode: {self.storage_config.mode}")

        if self.storage_config.mode == 'json':
            Path(self.storage_config.json_path).mkdir(parents=True, exist_ok=True)

        if self.ai_config.enabled and not os.getenv(self.ai_config.api_key_env):
            raise ConfigurationError(f"API key not found in environment variable: {self.ai_config.api_key_env}")

        unknown = set(self.classifier_config.keywords) - {'pricing', 'faq', 'about', 'product', 'policy', 'contact'}
        if unknown:
            raise ConfigurationError(f"Unknown content categories in classifier keywords: {sorted(unknown)}")

        return True

    def get_category_keywords(self) -> Dict[str, List[str]]:
        """Get content-type classification keywords"""
        if not self.classifier_config:
            raise ConfigurationError("Configuration not loaded")
        return {k: list(v) for k, v in self.classifier_config.keywords.items()}
