"""
Scan Job Orchestrator Implementation

Coordinates URL validation, fetching, extraction, analysis and persistence
for scan jobs, and drives their lifecycle:

    pending -> scanning -> completed | failed
    scanning <-> paused
    cancel -> failed
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from sitescan.core.base import (
    BaseComponent,
    BulkScanResult,
    ContentType,
    ExtractedContent,
    ExtractionError,
    InvalidJobTransition,
    JobNotFoundError,
    NoValidUrls,
    ScanJob,
    ScanJobStatus,
    ScanProgress,
    StorageError,
    format_timestamp,
    new_id,
)
from sitescan.core.config import ScanConfig
from sitescan.core.fetcher import Fetcher
from sitescan.core.logging import get_logger, logging_manager
from sitescan.core.url_validator import UrlValidator
from sitescan.processors.analyzer import ContentAnalyzer
from sitescan.processors.business import BusinessInfoExtractor
from sitescan.processors.content import ContentExtractor
from sitescan.processors.duplicates import DuplicateDetector
from sitescan.storage import StorageBackend
from sitescan.storage.base import SCAN_JOBS, EXTRACTED_CONTENT, SCAN_JOB_LOGS


PAUSE = 'pause'
CANCEL = 'cancel'


class ScanJobOrchestrator(BaseComponent):
    """
    Runs scan jobs in background tasks.

    URLs are processed in chunks; the URLs of a chunk are scanned in
    parallel and a failure of one never affects its siblings. Pause and
    cancel requests take effect between chunks.
    """

    def __init__(self, config: ScanConfig, storage: StorageBackend,
                 validator: Optional[UrlValidator] = None,
                 fetcher: Optional[Fetcher] = None,
                 extractor: Optional[ContentExtractor] = None,
                 analyzer: Optional[ContentAnalyzer] = None,
                 business_extractor: Optional[BusinessInfoExtractor] = None,
                 duplicate_detector: Optional[DuplicateDetector] = None):
        super().__init__(config)
        self.logger = get_logger(__name__)
        self.storage = storage
        self.validator = validator or UrlValidator(config)
        self.fetcher = fetcher or Fetcher(config)
        self.extractor = extractor or ContentExtractor()
        self.analyzer = analyzer or ContentAnalyzer()
        self.business_extractor = business_extractor or BusinessInfoExtractor()
        self.duplicate_detector = duplicate_detector or DuplicateDetector(
            threshold=config.duplicate_threshold,
            max_entries=config.duplicate_cache_size,
            ttl=config.duplicate_cache_ttl
        )

        # job id -> running task / pending control signal
        self._tasks: Dict[str, asyncio.Task] = {}
        self._signals: Dict[str, str] = {}
        self._resume_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize all components"""
        if self._initialized:
            return
        self.logger.info("Initializing scan job orchestrator")
        await self.storage.initialize()
        await self.validator.initialize()
        await self.fetcher.initialize()
        self._initialized = True

    async def cleanup(self) -> None:
        """Stop running jobs and clean up resources"""
        self.logger.info("Cleaning up scan job orchestrator")
        for job_id in list(self._tasks):
            self._signals[job_id] = PAUSE
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        await self.fetcher.cleanup()
        await self.validator.cleanup()
        await self.storage.cleanup()
        self._initialized = False

    def _resolve_config(self, config: Any) -> ScanConfig:
        if config is None:
            return self.config
        if isinstance(config, ScanConfig):
            return config
        return self.config.with_overrides(config)

    # Job lifecycle

    async def start_scan_job(self, urls: List[str], config: Optional[Dict[str, Any]] = None,
                             owner: Optional[str] = None) -> str:
        """
        Validate URLs, persist a pending job and start scanning in the background

        Args:
            urls: URLs submitted by the user
            config: Scan setting overrides stored with the job
            owner: Id of the submitting user

        Returns:
            The new job id

        Raises:
            NoValidUrls: If no URL passed validation
        """
        results = await self.validator.validate_urls(urls)

        valid_urls: List[str] = []
        rejected = []
        for result in results:
            if result.is_valid and result.normalized_url:
                if result.normalized_url not in valid_urls:
                    valid_urls.append(result.normalized_url)
            else:
                rejected.append(result)

        for result in rejected:
            self.logger.warning(f"Dropping invalid URL {result.url}: {'; '.join(result.errors)}")

        if not valid_urls:
            raise NoValidUrls(f"No valid URLs provided ({len(urls)} submitted)")

        job = ScanJob(
            urls=valid_urls,
            user_id=owner,
            scan_settings=dict(config or {}),
            pages_found=len(valid_urls),
        )
        await self.storage.insert(SCAN_JOBS, job.to_record())
        await self._log_job(job.id, 'info', f"Scan job created with {len(valid_urls)} URLs")
        for result in rejected:
            await self._log_job(job.id, 'warning',
                                f"Skipped invalid URL {result.url}: {'; '.join(result.errors)}")

        self._launch(job.id)
        self.logger.info(f"Started scan job {job.id} for {len(valid_urls)} URLs")
        return job.id

    def _launch(self, job_id: str) -> None:
        task = asyncio.create_task(self.run_scan_job(job_id))
        self._tasks[job_id] = task

        def _forget(finished: asyncio.Task) -> None:
            if self._tasks.get(job_id) is finished:
                del self._tasks[job_id]

        task.add_done_callback(_forget)

    def _is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    async def run_scan_job(self, job_id: str) -> ScanJob:
        """
        Scan the job's URLs from its cursor until done, paused or cancelled

        Returns:
            The job as last persisted
        """
        job = await self.get_scan_job(job_id)
        if job.status.is_terminal:
            raise InvalidJobTransition(f"Job {job_id} is already {job.status.value}")

        cfg = self._resolve_config(job.scan_settings)
        run_started = time.time()

        try:
            job.status = ScanJobStatus.SCANNING
            job.started_at = job.started_at or datetime.now()
            await self._save_job(job)
            await self._log_job(job_id, 'info', f"Scanning from page {job.pages_processed + 1} of {job.pages_found}")

            while job.pages_processed < len(job.urls):
                signal = self._signals.pop(job_id, None)
                if signal == PAUSE:
                    job.status = ScanJobStatus.PAUSED
                    job.current_url = None
                    await self._save_job(job)
                    await self._log_job(job_id, 'info', f"Scan paused after {job.pages_processed} pages")
                    return job
                if signal == CANCEL:
                    self._mark_cancelled(job)
                    await self._save_job(job)
                    await self._log_job(job_id, 'warning', "Scan cancelled")
                    return job

                cursor = job.pages_processed
                chunk = job.urls[cursor:cursor + cfg.batch_size]
                job.current_url = chunk[0]
                await self._save_job(job)

                chunk_started = time.time()
                outcomes = await asyncio.gather(
                    *(self.scan_url(url, cfg) for url in chunk),
                    return_exceptions=True
                )
                elapsed = time.time() - chunk_started

                for url, outcome in zip(chunk, outcomes):
                    if isinstance(outcome, Exception):
                        job.pages_failed += 1
                        job.errors.append({'url': url, 'error': str(outcome)})
                        logging_manager.log_url_result(url, False, elapsed, str(outcome))
                        await self._log_job(job_id, 'warning', f"Failed to scan {url}: {outcome}")
                    elif isinstance(outcome, BaseException):
                        raise outcome
                    else:
                        outcome.scan_job_id = job_id
                        await self.storage.insert(EXTRACTED_CONTENT, outcome.to_record())
                        job.pages_succeeded += 1
                        logging_manager.log_url_result(url, True, elapsed)

                job.pages_processed = cursor + len(chunk)
                job.progress_percentage = round(job.pages_processed / max(job.pages_found, 1) * 100)
                await self._save_job(job)
                logging_manager.log_progress(job.pages_processed, job.pages_found, f"job {job_id}")

            job.status = ScanJobStatus.COMPLETED
            job.current_url = None
            job.completed_at = datetime.now()
            await self._save_job(job)
            await self._log_job(
                job_id, 'info',
                f"Scan completed: {job.pages_succeeded} succeeded, {job.pages_failed} failed "
                f"in {time.time() - run_started:.2f}s"
            )
            return job

        except Exception as e:
            logging_manager.log_error(e, {'job_id': job_id, 'pages_processed': job.pages_processed})
            job.status = ScanJobStatus.FAILED
            job.current_url = None
            job.completed_at = datetime.now()
            try:
                await self._save_job(job)
            except StorageError as save_error:
                self.logger.error(f"Could not record failure of job {job_id}: {save_error}")
            await self._log_job(job_id, 'error', f"Scan job failed: {e}")
            return job
        finally:
            self._signals.pop(job_id, None)

    def _mark_cancelled(self, job: ScanJob) -> None:
        job.status = ScanJobStatus.FAILED
        job.current_url = None
        job.completed_at = datetime.now()
        job.errors.append({'url': '', 'error': 'Scan cancelled by user'})

    async def pause_scan_job(self, job_id: str) -> ScanJob:
        """
        Request a pause; a running job stops before its next chunk

        Raises:
            InvalidJobTransition: If the job is not pending or scanning
        """
        job = await self.get_scan_job(job_id)
        if job.status not in (ScanJobStatus.PENDING, ScanJobStatus.SCANNING):
            raise InvalidJobTransition(f"Cannot pause job {job_id} in state {job.status.value}")

        if self._is_running(job_id):
            self._signals[job_id] = PAUSE
            self.logger.info(f"Pause requested for job {job_id}")
        else:
            job.status = ScanJobStatus.PAUSED
            await self._save_job(job)
            await self._log_job(job_id, 'info', "Scan paused")
        return job

    async def resume_scan_job(self, job_id: str) -> ScanJob:
        """
        Continue a paused job from its cursor

        Raises:
            InvalidJobTransition: If the job is not paused
        """
        async with self._resume_lock:
            job = await self.get_scan_job(job_id)

            if self._is_running(job_id) and self._signals.get(job_id) == PAUSE:
                # Pause not reached yet; keep going
                del self._signals[job_id]
                return job

            if self._is_running(job_id) and job.status == ScanJobStatus.SCANNING:
                # Already resumed
                return job

            if job.status != ScanJobStatus.PAUSED:
                raise InvalidJobTransition(f"Cannot resume job {job_id} in state {job.status.value}")

            job.status = ScanJobStatus.SCANNING
            await self._save_job(job)
            await self._log_job(job_id, 'info', f"Resuming scan at page {job.pages_processed + 1}")
            self._launch(job_id)
            return job

    async def cancel_scan_job(self, job_id: str) -> ScanJob:
        """
        Cancel a job; a running job stops before its next chunk

        Raises:
            InvalidJobTransition: If the job already finished
        """
        job = await self.get_scan_job(job_id)
        if job.status.is_terminal:
            raise InvalidJobTransition(f"Cannot cancel job {job_id} in state {job.status.value}")

        if self._is_running(job_id):
            self._signals[job_id] = CANCEL
            self.logger.info(f"Cancel requested for job {job_id}")
        else:
            self._mark_cancelled(job)
            await self._save_job(job)
            await self._log_job(job_id, 'warning', "Scan cancelled")
        return job

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> ScanJob:
        """Wait for the job's background run (if any) to stop, then return the job"""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        return await self.get_scan_job(job_id)

    # Queries

    async def get_scan_job(self, job_id: str) -> ScanJob:
        record = await self.storage.get(SCAN_JOBS, job_id)
        if record is None:
            raise JobNotFoundError(f"Scan job not found: {job_id}")
        return ScanJob.from_record(record)

    async def list_scan_jobs(self, owner: Optional[str] = None) -> List[ScanJob]:
        filters = {'user_id': owner} if owner else None
        records = await self.storage.select(SCAN_JOBS, filters, order_by='created_at', descending=True)
        return [ScanJob.from_record(r) for r in records]

    async def get_scan_progress(self, job_id: str) -> ScanProgress:
        """Point-in-time progress including an estimate of the remaining time"""
        job = await self.get_scan_job(job_id)

        estimated = None
        if job.started_at and job.pages_processed > 0 and not job.status.is_terminal:
            elapsed = (datetime.now() - job.started_at).total_seconds()
            per_page = elapsed / job.pages_processed
            estimated = max(job.pages_found - job.pages_processed, 0) * per_page

        return ScanProgress(
            job_id=job.id,
            status=job.status,
            progress=job.progress_percentage,
            pages_found=job.pages_found,
            pages_processed=job.pages_processed,
            current_url=job.current_url,
            estimated_time_remaining=estimated,
            errors=list(job.errors),
        )

    async def get_extracted_content(self, job_id: str) -> List[ExtractedContent]:
        records = await self.storage.select(EXTRACTED_CONTENT, {'scan_job_id': job_id}, order_by='created_at')
        return [ExtractedContent.from_record(r) for r in records]

    async def get_job_logs(self, job_id: str) -> List[Dict[str, Any]]:
        return await self.storage.select(SCAN_JOB_LOGS, {'scan_job_id': job_id}, order_by='created_at')

    # Scanning

    async def scan_url(self, url: str, config: Any = None) -> ExtractedContent:
        """
        Fetch, extract and analyze a single URL

        Args:
            url: Absolute URL
            config: ScanConfig or dict of overrides

        Returns:
            ExtractedContent (not persisted)
        """
        cfg = self._resolve_config(config)

        fetch_result = await self.fetcher.fetch(url, cfg)
        page = self.extractor.extract(fetch_result.html, fetch_result.final_url or url)
        analysis = self.analyzer.analyze(page.content, url)
        business_info = self.business_extractor.extract(page.content, url)
        quality = self.extractor.calculate_processing_quality(page, analysis)

        duplicates = self.duplicate_detector.find_duplicates(
            page.content, cfg.duplicate_threshold, exclude_url=url
        )
        if duplicates:
            self.logger.info(f"{url} is a near-duplicate of {', '.join(duplicates)}")
            if cfg.skip_duplicates:
                raise ExtractionError(f"Duplicate content of {duplicates[0]}")
        self.duplicate_detector.add(url, page.content)

        metadata = dict(page.metadata)
        metadata['analysis'] = analysis.to_dict()
        metadata['businessInfo'] = business_info.to_dict()
        metadata['duplicates'] = duplicates
        if fetch_result.final_url and fetch_result.final_url != url:
            metadata['final_url'] = fetch_result.final_url

        return ExtractedContent(
            id=new_id(),
            url=url,
            title=page.title,
            content=page.content,
            content_type=analysis.content_type,
            headings=self.extractor.heading_map(page.headings),
            metadata=metadata,
            word_count=len(page.content.split()),
            processing_quality=quality,
            extracted_entities=[e.to_dict() for e in analysis.entities],
        )

    async def bulk_scan_urls(self, urls: List[str], config: Any = None) -> BulkScanResult:
        """
        Scan URLs without creating a job

        Returns:
            BulkScanResult with the extracted content, per-URL errors and statistics
        """
        cfg = self._resolve_config(config)
        start_time = time.time()
        result = BulkScanResult()
        content_types = {t.value: 0 for t in ContentType}

        for i in range(0, len(urls), cfg.batch_size):
            chunk = urls[i:i + cfg.batch_size]
            chunk_started = time.time()
            outcomes = await asyncio.gather(
                *(self.scan_url(url, cfg) for url in chunk),
                return_exceptions=True
            )
            elapsed = time.time() - chunk_started
            for url, outcome in zip(chunk, outcomes):
                if isinstance(outcome, Exception):
                    result.errors.append({'url': url, 'error': str(outcome)})
                    logging_manager.log_url_result(url, False, elapsed, str(outcome))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    result.extracted_content.append(outcome)
                    logging_manager.log_url_result(url, True, elapsed)
                    content_types[outcome.content_type.value] += 1

        successful = len(result.extracted_content)
        result.success = successful > 0 or not urls
        result.statistics = {
            'total_pages': len(urls),
            'successful_extractions': successful,
            'failed_extractions': len(result.errors),
            'average_quality': (
                sum(c.processing_quality for c in result.extracted_content) / successful
                if successful else 0.0
            ),
            'processing_time': time.time() - start_time,
            'content_types': content_types,
        }
        self.logger.info(f"Bulk scan completed: {successful}/{len(urls)} successful")
        return result

    def convert_to_knowledge_item(self, content: ExtractedContent) -> Dict[str, Any]:
        """Map extracted content onto knowledge item fields"""
        tags: List[str] = []
        for entity in content.extracted_entities:
            if entity.get('type') and entity['type'] not in tags:
                tags.append(entity['type'])

        return {
            'id': content.id,
            'title': content.title or content.url,
            'content': content.content,
            'category': content.content_type.value,
            'tags': tags,
            'confidence': content.processing_quality,
            'source_type': 'url',
            'source_url': content.url,
            'language': content.metadata.get('language', 'unknown'),
            'created_at': format_timestamp(content.created_at),
            'updated_at': format_timestamp(content.created_at),
        }

    # Persistence helpers

    async def _save_job(self, job: ScanJob) -> None:
        record = job.to_record()
        record.pop('id')
        await self.storage.update(SCAN_JOBS, job.id, record)

    async def _log_job(self, job_id: str, level: str, message: str) -> None:
        """Append a line to the job log; storage failures are only logged"""
        try:
            await self.storage.insert(SCAN_JOB_LOGS, {
                'scan_job_id': job_id,
                'log_level': level,
                'message': message,
                'created_at': format_timestamp(datetime.now()),
            })
        except StorageError as e:
            self.logger.error(f"Error logging scan job {job_id}: {e}")
