"""
Content Importer Implementation

Brings content into the knowledge base from scanned URLs, local files,
free text and JSON APIs. Sources are processed in small batches, near
duplicates within a batch are dropped, and the survivors are stored
through the Knowledge Base Manager.
"""

import asyncio
import csv
import io
import json
import re
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiohttp

from sitescan.core.base import APIError, ImportValidationError, SitescanError
from sitescan.core.config import KnowledgeConfig
from sitescan.core.logging import get_logger
from sitescan.knowledge.manager import KnowledgeBaseManager
from sitescan.knowledge.models import ContentSource, ImportResult, KnowledgeItem, SourceType, ValidationResult
from sitescan.processors.content import ContentExtractor
from sitescan.processors.duplicates import DuplicateDetector


SUPPORTED_EXTENSIONS = {'.txt', '.html', '.htm', '.md', '.csv', '.json'}

SPAM_PATTERNS = [
    re.compile(r'(.)\1{10,}'),
    re.compile(r'\b(buy now|click here|free|urgent|limited time)\b', re.IGNORECASE),
    re.compile(r'[A-Z]{20,}'),
]

CATEGORY_CHOICES = ['general', 'product', 'pricing', 'faq', 'about', 'contact', 'policy']


@dataclass
class ImportConfig:
    """Per-import switches"""
    deduplicate_content: bool = True
    similarity_threshold: float = 0.85
    validate_content: bool = True
    generate_summary: bool = True
    extract_keywords: bool = True
    classify_content: bool = True
    generate_faq: bool = False
    max_file_size_mb: int = 10
    batch_size: int = 5

    @classmethod
    def from_knowledge_config(cls, config: KnowledgeConfig) -> 'ImportConfig':
        return cls(
            deduplicate_content=config.deduplicate_content,
            similarity_threshold=config.similarity_threshold,
            max_file_size_mb=config.max_file_size_mb,
            batch_size=config.import_batch_size,
        )


class ContentImporter:
    """
    Imports content from several kinds of sources.

    AI enrichment (summary, keywords, category, FAQ) runs only when the
    manager has a text generator; its failures never block an import.
    """

    def __init__(self, manager: KnowledgeBaseManager, orchestrator=None,
                 config: Optional[KnowledgeConfig] = None,
                 extractor: Optional[ContentExtractor] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.manager = manager
        self.orchestrator = orchestrator
        self.config = ImportConfig.from_knowledge_config(config or manager.config)
        self.extractor = extractor or ContentExtractor()
        self.session = session
        self.logger = get_logger(__name__)

    def _resolve_config(self, overrides: Optional[Dict[str, Any]]) -> ImportConfig:
        if not overrides:
            return self.config
        return replace(self.config, **overrides)

    # Bulk import

    async def bulk_import(self, sources: List[ContentSource],
                          config: Optional[Dict[str, Any]] = None) -> ImportResult:
        """
        Import many sources

        Args:
            sources: Sources to import
            config: ImportConfig field overrides

        Returns:
            ImportResult with the stored items; failed sources are listed in
            errors and dropped duplicates are counted in items_skipped
        """
        cfg = self._resolve_config(config)
        start_time = time.time()
        result = ImportResult(success=True)
        drafts: List[KnowledgeItem] = []

        try:
            for i in range(0, len(sources), cfg.batch_size):
                batch = sources[i:i + cfg.batch_size]
                outcomes = await asyncio.gather(
                    *(self._prepare_source(source, cfg) for source in batch),
                    return_exceptions=True
                )
                for source, outcome in zip(batch, outcomes):
                    if isinstance(outcome, Exception):
                        result.errors.append(f"Failed to process {source.type}: {outcome}")
                        self.logger.warning(f"Failed to process {source.type} source: {outcome}")
                    elif isinstance(outcome, BaseException):
                        raise outcome
                    else:
                        drafts.append(outcome)

            survivors = drafts
            if cfg.deduplicate_content and drafts:
                detector = DuplicateDetector(threshold=cfg.similarity_threshold)
                survivors = detector.deduplicate(drafts, key=lambda item: item.content)
                result.items_skipped = len(drafts) - len(survivors)
                if result.items_skipped:
                    result.warnings.append(f"Skipped {result.items_skipped} duplicate items")

            for draft in survivors:
                result.items.append(await self._store(draft))
            result.items_imported = len(result.items)
        except SitescanError as e:
            result.success = False
            result.errors.append(f"Bulk import failed: {e}")
            self.logger.error(f"Bulk import failed: {e}")

        result.processing_time = time.time() - start_time
        self.logger.info(
            f"Imported {result.items_imported}/{len(sources)} sources "
            f"({result.items_skipped} duplicates, {len(result.errors)} errors)"
        )
        return result

    async def _prepare_source(self, source: ContentSource, cfg: ImportConfig) -> KnowledgeItem:
        if source.type == 'url':
            draft = await self._draft_from_url(source.data, cfg)
        elif source.type == 'file':
            draft = await self._draft_from_file(source.data, cfg)
        elif source.type == 'manual':
            draft = await self._draft_from_text(source.data, source.title or 'Manual Entry', cfg)
        else:
            raise ImportValidationError(f"Unsupported source type: {source.type}")

        if source.title:
            draft.title = source.title
        if source.tags:
            draft.tags = list(dict.fromkeys(draft.tags + source.tags))
        if source.category:
            draft.metadata['category'] = source.category
        return draft

    async def _store(self, draft: KnowledgeItem) -> KnowledgeItem:
        data = draft.to_record()
        stored_fields = {
            'title', 'content', 'summary', 'source_type', 'source_url', 'file_path',
            'tags', 'confidence_score', 'language', 'metadata',
        }
        return await self.manager.create_knowledge_item({k: v for k, v in data.items() if k in stored_fields})

    # Single sources

    async def import_from_url(self, url: str, config: Optional[Dict[str, Any]] = None) -> KnowledgeItem:
        """Scan a URL and store it as a knowledge item"""
        return await self._store(await self._draft_from_url(url, self._resolve_config(config)))

    async def import_from_file(self, path: str, config: Optional[Dict[str, Any]] = None) -> KnowledgeItem:
        """Read a local file and store it as a knowledge item"""
        return await self._store(await self._draft_from_file(path, self._resolve_config(config)))

    async def import_from_text(self, content: str, title: str,
                               config: Optional[Dict[str, Any]] = None) -> KnowledgeItem:
        """Store free text as a knowledge item"""
        return await self._store(await self._draft_from_text(content, title, self._resolve_config(config)))

    async def import_from_api(self, endpoint: str, api_key: Optional[str] = None,
                              config: Optional[Dict[str, Any]] = None) -> ImportResult:
        """
        Import documents from a JSON API

        The endpoint must answer with a JSON array of objects carrying
        'title' and 'content'; an optional 'category' is kept.
        """
        headers = {'Content-Type': 'application/json'}
        if api_key:
            headers['Authorization'] = f'Bearer {api_key}'

        try:
            data = await self._fetch_json(endpoint, headers)
        except (aiohttp.ClientError, asyncio.TimeoutError, APIError, ValueError) as e:
            self.logger.error(f"API import from {endpoint} failed: {e}")
            return ImportResult(success=False, errors=[f"API import failed: {e}"])

        sources = []
        if isinstance(data, list):
            for entry in data:
                if isinstance(entry, dict) and entry.get('title') and entry.get('content'):
                    sources.append(ContentSource(
                        type='manual',
                        data=entry['content'],
                        title=entry['title'],
                        category=entry.get('category', 'general'),
                    ))
        return await self.bulk_import(sources, config)

    async def _fetch_json(self, endpoint: str, headers: Dict[str, str]) -> Any:
        session = self.session
        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30))
        try:
            async with session.get(endpoint, headers=headers) as response:
                if response.status >= 400:
                    raise APIError(f"API request failed: {response.status} {response.reason or ''}".rstrip())
                return await response.json(content_type=None)
        finally:
            if owns_session:
                await session.close()

    # Drafts

    async def _draft_from_url(self, url: str, cfg: ImportConfig) -> KnowledgeItem:
        if self.orchestrator is None:
            raise ImportValidationError("URL import needs a scan orchestrator")

        content = await self.orchestrator.scan_url(url)
        fields = self.orchestrator.convert_to_knowledge_item(content)
        item = KnowledgeItem(
            title=fields['title'],
            content=fields['content'],
            source_type=SourceType.URL,
            source_url=url,
            tags=fields['tags'],
            confidence_score=fields['confidence'],
            metadata={'content_type': fields['category']},
        )
        if fields['language'] not in ('unknown', None):
            item.language = fields['language']
        return await self._enrich(item, cfg)

    async def _draft_from_file(self, path: str, cfg: ImportConfig) -> KnowledgeItem:
        validation = self.validate_file(path, cfg)
        if not validation.is_valid:
            raise ImportValidationError(f"File validation failed: {', '.join(validation.issues)}")

        text = await self.extract_file_content(path)
        if cfg.validate_content:
            self._require_valid(text)

        item = KnowledgeItem(
            title=self.title_from_filename(path),
            content=text,
            source_type=SourceType.FILE,
            file_path=str(path),
            confidence_score=0.9,
        )
        return await self._enrich(item, cfg)

    async def _draft_from_text(self, content: str, title: str, cfg: ImportConfig) -> KnowledgeItem:
        if cfg.validate_content:
            self._require_valid(content)
        item = KnowledgeItem(title=title, content=content, source_type=SourceType.MANUAL, confidence_score=1.0)
        return await self._enrich(item, cfg)

    def _require_valid(self, content: str) -> None:
        validation = self.validate_content(content)
        if not validation.is_valid:
            raise ImportValidationError(f"Content validation failed: {', '.join(validation.issues)}")

    async def _enrich(self, item: KnowledgeItem, cfg: ImportConfig) -> KnowledgeItem:
        """Apply AI enrichment and the heuristic quality score"""

        if self.manager.ai is not None:
            if cfg.generate_summary:
                item.summary = await self.manager.generate_summary(item.content) or None
            if cfg.extract_keywords:
                keywords = await self.manager.extract_keywords(item.content)
                item.tags = list(dict.fromkeys(item.tags + keywords))
            if cfg.classify_content:
                category = await self.classify_content(item.content)
                if category:
                    item.metadata['content_type'] = category
            if cfg.generate_faq:
                faq = await self.manager.generate_faq(item.content)
                if faq:
                    item.metadata['faq'] = faq

        if item.source_type != SourceType.URL:
            item.confidence_score = self.calculate_quality_score(item.content)
        return item

    async def classify_content(self, content: str) -> Optional[str]:
        """Ask the text generator for one of the content categories"""
        response = await self.manager.generate_text(
            "Classify this content into one of these categories: "
            f"{', '.join(CATEGORY_CHOICES)}. Return only the category name:\n\n" + content[:500],
            50, "classify content"
        )
        category = (response or '').strip().lower()
        return category if category in CATEGORY_CHOICES else None

    # Validation and scoring

    def validate_file(self, path: str, cfg: Optional[ImportConfig] = None) -> ValidationResult:
        cfg = cfg or self.config
        file_path = Path(path)
        result = ValidationResult(is_valid=True, quality=1.0)

        if not file_path.is_file():
            result.is_valid = False
            result.issues.append(f"File not found: {path}")
            return result

        if file_path.stat().st_size > cfg.max_file_size_mb * 1024 * 1024:
            result.is_valid = False
            result.issues.append(f"File size exceeds maximum limit of {cfg.max_file_size_mb}MB")

        if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            result.is_valid = False
            result.issues.append(f"Unsupported file type: {file_path.suffix or file_path.name}")

        return result

    def validate_content(self, content: str) -> ValidationResult:
        """
        Check that text is worth importing

        Content needs at least 50 characters and 10 words longer than two
        characters. Spam-like patterns lower the quality without rejecting.
        """
        result = ValidationResult(is_valid=True, quality=1.0)
        content = content or ''

        if len(content) < 50:
            result.is_valid = False
            result.issues.append('Content is too short (minimum 50 characters)')

        if len(content) > 100000:
            result.warnings.append('Content is very long and may need to be split')
            result.quality -= 0.2

        words = [w for w in content.split() if len(w) > 2]
        if len(words) < 10:
            result.is_valid = False
            result.issues.append('Content lacks sufficient meaningful words')

        for pattern in SPAM_PATTERNS:
            if pattern.search(content):
                result.quality -= 0.3
                result.suggestions.append('Content may contain spam-like patterns')

        result.quality = max(round(result.quality, 2), 0.0)
        return result

    @staticmethod
    def calculate_quality_score(content: str) -> float:
        """Heuristic quality from length, sentence count and sentence length"""
        score = 0.5
        word_count = len(content.split())
        if word_count > 100:
            score += 0.1
        if word_count > 500:
            score += 0.1
        if word_count > 1000:
            score += 0.1

        sentences = [s for s in re.split(r'[.!?]+', content) if s.strip()]
        if len(sentences) > 5:
            score += 0.1
        if sentences and 10 < word_count / len(sentences) < 25:
            score += 0.1

        return min(round(score, 2), 1.0)

    # File content

    @staticmethod
    def title_from_filename(path: str) -> str:
        stem = Path(path).stem
        return re.sub(r'\b\w', lambda m: m.group(0).upper(), re.sub(r'[_-]', ' ', stem))

    async def extract_file_content(self, path: str) -> str:
        """Read a supported file and render it as plain text"""
        suffix = Path(path).suffix.lower()
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                raw = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ImportValidationError(f"Failed to read {path}: {e}") from e

        try:
            if suffix in ('.html', '.htm'):
                return self.extractor.extract(raw, Path(path).resolve().as_uri()).content
            if suffix == '.md':
                return self.markdown_to_text(raw)
            if suffix == '.csv':
                return self.csv_to_text(raw)
            if suffix == '.json':
                return self.json_to_text(json.loads(raw))
            return raw
        except (SitescanError, ValueError, csv.Error) as e:
            raise ImportValidationError(f"Failed to extract content from {Path(path).name}: {e}") from e

    @staticmethod
    def markdown_to_text(markdown: str) -> str:
        text = re.sub(r'```.*?```', '', markdown, flags=re.DOTALL)
        text = re.sub(r'#+\s', '', text)
        text = re.sub(r'\*\*(.*?)\*\*', r'\1', text)
        text = re.sub(r'\*(.*?)\*', r'\1', text)
        text = re.sub(r'\[([^\]]+)\]\([^)]+\)', r'\1', text)
        text = re.sub(r'`([^`]+)`', r'\1', text)
        return text.strip()

    @staticmethod
    def csv_to_text(raw: str) -> str:
        rows = list(csv.reader(io.StringIO(raw)))
        if not rows:
            return ''
        headers = rows[0]
        lines = [f"CSV Data with columns: {', '.join(headers)}", '']
        for index, row in enumerate((r for r in rows[1:] if any(c.strip() for c in r)), start=1):
            lines.append(f"Row {index}:")
            for i, header in enumerate(headers):
                lines.append(f"  {header}: {row[i] if i < len(row) else ''}")
            lines.append('')
        return '\n'.join(lines)

    @classmethod
    def json_to_text(cls, value: Any, indent: int = 0) -> str:
        spaces = '  ' * indent
        if isinstance(value, list):
            return ''.join(
                f"{spaces}Item {i}:\n" + cls.json_to_text(entry, indent + 1)
                for i, entry in enumerate(value, start=1)
            )
        if isinstance(value, dict):
            parts = []
            for key, entry in value.items():
                if isinstance(entry, (dict, list)):
                    parts.append(f"{spaces}{key}:\n" + cls.json_to_text(entry, indent + 1))
                else:
                    parts.append(f"{spaces}{key}: {entry}\n")
            return ''.join(parts)
        return f"{spaces}{value}\n"
