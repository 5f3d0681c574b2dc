"""
Component Factory for the Website Scanner

Builds the service graph from loaded configuration. Every service is an
explicit object; shared state (rate limiter, robots cache, duplicate cache)
is shared by passing the same instance to its users.
"""

from dataclasses import dataclass
from typing import Optional

from sitescan.core.config import ConfigManager
from sitescan.core.fetcher import Fetcher
from sitescan.core.logging import get_logger
from sitescan.core.orchestrator import ScanJobOrchestrator
from sitescan.core.rate_limiter import DomainRateLimiter
from sitescan.core.robots import RobotsGate
from sitescan.core.url_validator import UrlValidator
from sitescan.knowledge.ai import HttpTextGenerator
from sitescan.knowledge.importer import ContentImporter
from sitescan.knowledge.manager import KnowledgeBaseManager
from sitescan.processors.analyzer import ContentAnalyzer
from sitescan.processors.business import BusinessInfoExtractor
from sitescan.processors.classifier import ContentClassifier
from sitescan.processors.content import ContentExtractor
from sitescan.processors.duplicates import DuplicateDetector
from sitescan.storage import InMemoryStorage, JsonFileStorage, StorageBackend


@dataclass
class Components:
    """The wired services of one scanner process"""
    storage: StorageBackend
    orchestrator: ScanJobOrchestrator
    knowledge_manager: KnowledgeBaseManager
    importer: ContentImporter
    text_generator: Optional[HttpTextGenerator] = None

    async def initialize(self) -> None:
        await self.orchestrator.initialize()
        if self.text_generator:
            await self.text_generator.initialize()

    async def cleanup(self) -> None:
        if self.text_generator:
            await self.text_generator.cleanup()
        await self.orchestrator.cleanup()

    async def __aenter__(self) -> 'Components':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()


def create_storage(config_manager: ConfigManager) -> StorageBackend:
    storage_config = config_manager.storage_config
    if storage_config.mode == 'json':
        return JsonFileStorage(storage_config.json_path)
    return InMemoryStorage()


def create_components(config_manager: ConfigManager,
                      storage: Optional[StorageBackend] = None) -> Components:
    """
    Create all components from a loaded configuration.

    Args:
        config_manager: ConfigManager after load_config()
        storage: Storage to use instead of the configured backend

    Returns:
        Components ready to be initialized
    """
    logger = get_logger(__name__)
    scan_config = config_manager.scan_config

    storage = storage or create_storage(config_manager)
    logger.debug(f"Using {type(storage).__name__} storage")

    rate_limiter = DomainRateLimiter(scan_config.rate_limit)
    robots_gate = RobotsGate(scan_config)
    fetcher = Fetcher(scan_config, rate_limiter=rate_limiter, robots_gate=robots_gate)

    classifier = ContentClassifier(config_manager.classifier_config)
    orchestrator = ScanJobOrchestrator(
        scan_config,
        storage,
        validator=UrlValidator(scan_config),
        fetcher=fetcher,
        extractor=ContentExtractor(),
        analyzer=ContentAnalyzer(classifier),
        business_extractor=BusinessInfoExtractor(),
        duplicate_detector=DuplicateDetector(
            threshold=scan_config.duplicate_threshold,
            max_entries=scan_config.duplicate_cache_size,
            ttl=scan_config.duplicate_cache_ttl
        )
    )

    text_generator = None
    if config_manager.ai_config.enabled:
        text_generator = HttpTextGenerator(config_manager.ai_config)
        logger.info(f"AI enrichment enabled ({config_manager.ai_config.model})")

    knowledge_manager = KnowledgeBaseManager(storage, config_manager.knowledge_config, ai=text_generator)
    importer = ContentImporter(knowledge_manager, orchestrator, config_manager.knowledge_config)

    return Components(
        storage=storage,
        orchestrator=orchestrator,
        knowledge_manager=knowledge_manager,
        importer=importer,
        text_generator=text_generator
    )
