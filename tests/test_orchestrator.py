"""
Tests for the scan job orchestrator
"""

import asyncio
from datetime import datetime

import pytest

from sitescan.core.base import (
    ContentType,
    ExtractedContent,
    ExtractionError,
    FetchExhausted,
    FetchResult,
    InvalidJobTransition,
    JobNotFoundError,
    NoValidUrls,
    ScanJob,
    ScanJobStatus,
    StorageError,
    UrlValidationResult,
)
from sitescan.core.config import ScanConfig
from sitescan.core.orchestrator import ScanJobOrchestrator
from sitescan.storage import InMemoryStorage
from sitescan.storage.base import EXTRACTED_CONTENT, SCAN_JOBS


def page_html(topic: str) -> str:
    return f"""
    <html><head><title>{topic.title()} page</title></head>
    <body><main>
        <h1>{topic.title()}</h1>
        <p>This page describes the {topic} of the company in enough detail to be
           picked up as the main content block of the document by the extractor.</p>
    </main></body></html>
    """


class FakeValidator:
    """Accepts http(s) URLs without touching the network"""

    async def initialize(self):
        pass

    async def cleanup(self):
        pass

    async def validate_urls(self, urls):
        results = []
        for url in urls:
            if url.startswith(('http://', 'https://')):
                results.append(UrlValidationResult(url=url, is_valid=True, normalized_url=url, final_url=url))
            else:
                results.append(UrlValidationResult(url=url, errors=["Invalid URL format"]))
        return results


class FakeFetcher:
    """Serves canned HTML; URLs containing 'broken' fail. Can be held at a gate."""

    def __init__(self, gated: bool = False):
        self.fetched = []
        self.gate = asyncio.Event()
        self.started = asyncio.Event()
        if not gated:
            self.gate.set()

    async def initialize(self):
        pass

    async def cleanup(self):
        pass

    async def fetch(self, url, config=None):
        self.fetched.append(url)
        self.started.set()
        await self.gate.wait()
        if 'broken' in url:
            raise FetchExhausted(url, 3, ConnectionError("connection refused"))
        topic = url.rstrip('/').rsplit('/', 1)[-1]
        return FetchResult(url=url, final_url=url, status=200, html=page_html(topic))


class FailingContentStorage(InMemoryStorage):
    async def insert(self, table, record):
        if table == EXTRACTED_CONTENT:
            raise StorageError("disk full")
        return await super().insert(table, record)


def make_orchestrator(storage, fetcher=None, **config):
    return ScanJobOrchestrator(
        ScanConfig(**config),
        storage,
        validator=FakeValidator(),
        fetcher=fetcher or FakeFetcher(),
    )


class TestScanJobs:
    """Test suite for the scan job lifecycle"""

    @pytest.mark.asyncio
    async def test_job_runs_to_completion(self, storage):
        orchestrator = make_orchestrator(storage, concurrency=2)
        urls = ["https://acme.com/pricing", "https://acme.com/about", "https://acme.com/faq"]

        job_id = await orchestrator.start_scan_job(urls, owner="user-1")
        job = await orchestrator.wait_for_job(job_id)

        assert job.status == ScanJobStatus.COMPLETED
        assert job.user_id == "user-1"
        assert (job.pages_found, job.pages_processed, job.pages_succeeded) == (3, 3, 3)
        assert job.progress_percentage == 100
        assert job.completed_at is not None

        contents = await orchestrator.get_extracted_content(job_id)
        assert sorted(c.url for c in contents) == sorted(urls)
        by_url = {c.url: c for c in contents}
        assert by_url["https://acme.com/pricing"].content_type == ContentType.PRICING
        assert by_url["https://acme.com/faq"].headings == {"h1": ["Faq"]}
        assert all(c.scan_job_id == job_id for c in contents)

        progress = await orchestrator.get_scan_progress(job_id)
        assert progress.progress == 100
        assert progress.estimated_time_remaining is None

        messages = [log['message'] for log in await orchestrator.get_job_logs(job_id)]
        assert messages[0] == "Scan job created with 3 URLs"
        assert messages[-1].startswith("Scan completed: 3 succeeded, 0 failed")

    @pytest.mark.asyncio
    async def test_failed_url_is_isolated(self, storage):
        orchestrator = make_orchestrator(storage, concurrency=3)

        job_id = await orchestrator.start_scan_job(
            ["https://acme.com/pricing", "https://acme.com/broken", "https://acme.com/about"]
        )
        job = await orchestrator.wait_for_job(job_id)

        assert job.status == ScanJobStatus.COMPLETED
        assert (job.pages_succeeded, job.pages_failed) == (2, 1)
        assert job.errors[0]['url'] == "https://acme.com/broken"
        assert "connection refused" in job.errors[0]['error']

    @pytest.mark.asyncio
    async def test_invalid_urls_are_dropped(self, storage):
        orchestrator = make_orchestrator(storage)

        job_id = await orchestrator.start_scan_job(
            ["https://acme.com/pricing", "not a url", "https://acme.com/pricing"]
        )
        job = await orchestrator.wait_for_job(job_id)

        assert job.urls == ["https://acme.com/pricing"]
        logs = await orchestrator.get_job_logs(job_id)
        assert any(log['log_level'] == 'warning' and "not a url" in log['message'] for log in logs)

    @pytest.mark.asyncio
    async def test_no_valid_urls(self, storage):
        orchestrator = make_orchestrator(storage)

        with pytest.raises(NoValidUrls):
            await orchestrator.start_scan_job(["nope", "ftp-ish"])

        assert await storage.count(SCAN_JOBS) == 0

    @pytest.mark.asyncio
    async def test_storage_failure_marks_job_failed(self):
        storage = FailingContentStorage()
        orchestrator = make_orchestrator(storage)

        job_id = await orchestrator.start_scan_job(["https://acme.com/pricing"])
        job = await orchestrator.wait_for_job(job_id)

        assert job.status == ScanJobStatus.FAILED
        stored = await orchestrator.get_scan_job(job_id)
        assert stored.status == ScanJobStatus.FAILED
        logs = await orchestrator.get_job_logs(job_id)
        assert logs[-1]['log_level'] == 'error'
        assert logs[-1]['message'] == "Scan job failed: disk full"

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, storage):
        fetcher = FakeFetcher(gated=True)
        orchestrator = make_orchestrator(storage, fetcher=fetcher, concurrency=1)
        urls = ["https://acme.com/pricing", "https://acme.com/about", "https://acme.com/faq"]

        job_id = await orchestrator.start_scan_job(urls)
        await fetcher.started.wait()
        await orchestrator.pause_scan_job(job_id)
        fetcher.gate.set()

        job = await orchestrator.wait_for_job(job_id)
        assert job.status == ScanJobStatus.PAUSED
        assert job.pages_processed == 1

        await orchestrator.resume_scan_job(job_id)
        job = await orchestrator.wait_for_job(job_id)

        assert job.status == ScanJobStatus.COMPLETED
        assert job.pages_processed == 3
        # Nothing is fetched twice after resuming
        assert fetcher.fetched == urls

    @pytest.mark.asyncio
    async def test_second_resume_does_not_rescan(self, storage):
        fetcher = FakeFetcher(gated=True)
        orchestrator = make_orchestrator(storage, fetcher=fetcher, concurrency=1)
        urls = ["https://acme.com/pricing", "https://acme.com/about", "https://acme.com/faq"]

        job_id = await orchestrator.start_scan_job(urls)
        await fetcher.started.wait()
        await orchestrator.pause_scan_job(job_id)
        fetcher.gate.set()
        await orchestrator.wait_for_job(job_id)

        await orchestrator.resume_scan_job(job_id)
        resumed = await orchestrator.resume_scan_job(job_id)
        assert resumed.status == ScanJobStatus.SCANNING
        job = await orchestrator.wait_for_job(job_id)

        assert job.status == ScanJobStatus.COMPLETED
        assert await storage.count(EXTRACTED_CONTENT, {'scan_job_id': job_id}) == 3
        assert fetcher.fetched == urls

    @pytest.mark.asyncio
    async def test_cancel_running_job(self, storage):
        fetcher = FakeFetcher(gated=True)
        orchestrator = make_orchestrator(storage, fetcher=fetcher, concurrency=1)

        job_id = await orchestrator.start_scan_job(["https://acme.com/pricing", "https://acme.com/about"])
        await fetcher.started.wait()
        await orchestrator.cancel_scan_job(job_id)
        fetcher.gate.set()

        job = await orchestrator.wait_for_job(job_id)

        assert job.status == ScanJobStatus.FAILED
        assert job.pages_processed == 1
        assert {'url': '', 'error': 'Scan cancelled by user'} in job.errors
        with pytest.raises(InvalidJobTransition):
            await orchestrator.cancel_scan_job(job_id)

    @pytest.mark.asyncio
    async def test_transitions_of_idle_job(self, storage):
        orchestrator = make_orchestrator(storage)
        job = ScanJob(urls=["https://acme.com/"], pages_found=1)
        await storage.insert(SCAN_JOBS, job.to_record())

        with pytest.raises(InvalidJobTransition):
            await orchestrator.resume_scan_job(job.id)

        paused = await orchestrator.pause_scan_job(job.id)
        assert paused.status == ScanJobStatus.PAUSED
        with pytest.raises(InvalidJobTransition):
            await orchestrator.pause_scan_job(job.id)

        cancelled = await orchestrator.cancel_scan_job(job.id)
        assert cancelled.status == ScanJobStatus.FAILED

    @pytest.mark.asyncio
    async def test_unknown_job(self, storage):
        orchestrator = make_orchestrator(storage)
        with pytest.raises(JobNotFoundError):
            await orchestrator.get_scan_progress("missing")

    @pytest.mark.asyncio
    async def test_list_scan_jobs_by_owner(self, storage):
        orchestrator = make_orchestrator(storage)
        first = await orchestrator.start_scan_job(["https://acme.com/pricing"], owner="a")
        await orchestrator.start_scan_job(["https://acme.com/about"], owner="b")
        await orchestrator.wait_for_job(first)

        jobs = await orchestrator.list_scan_jobs(owner="a")

        assert [j.id for j in jobs] == [first]
        await orchestrator.cleanup()


class TestScanning:
    """Test suite for single and bulk scans"""

    @pytest.mark.asyncio
    async def test_scan_url_builds_content(self, storage):
        orchestrator = make_orchestrator(storage)

        content = await orchestrator.scan_url("https://acme.com/pricing")

        assert content.title == "Pricing page"
        assert content.content_type == ContentType.PRICING
        assert content.word_count > 10
        assert 0.0 <= content.processing_quality <= 1.0
        assert content.metadata['analysis']['content_type'] == 'pricing'
        assert content.metadata['businessInfo']['company_name'] == 'Acme'
        assert content.metadata['duplicates'] == []

    @pytest.mark.asyncio
    async def test_duplicates_are_flagged_or_skipped(self, storage):
        orchestrator = make_orchestrator(storage)
        await orchestrator.scan_url("https://acme.com/pricing")

        copy = await orchestrator.scan_url("https://mirror.com/pricing")
        assert copy.metadata['duplicates'] == ["https://acme.com/pricing"]

        with pytest.raises(ExtractionError):
            await orchestrator.scan_url("https://other.com/pricing", {'skip_duplicates': True})

    @pytest.mark.asyncio
    async def test_bulk_scan(self, storage):
        orchestrator = make_orchestrator(storage, concurrency=2)

        result = await orchestrator.bulk_scan_urls(
            ["https://acme.com/pricing", "https://acme.com/broken", "https://acme.com/contact"]
        )

        assert result.success
        assert len(result.extracted_content) == 2
        assert result.errors[0]['url'] == "https://acme.com/broken"
        stats = result.statistics
        assert (stats['total_pages'], stats['successful_extractions'], stats['failed_extractions']) == (3, 2, 1)
        assert stats['content_types']['pricing'] == 1
        assert await storage.count(EXTRACTED_CONTENT) == 0

    @pytest.mark.asyncio
    async def test_bulk_scan_all_failed(self, storage):
        orchestrator = make_orchestrator(storage)

        result = await orchestrator.bulk_scan_urls(["https://acme.com/broken"])
        assert not result.success

        empty = await orchestrator.bulk_scan_urls([])
        assert empty.success
        assert empty.statistics['average_quality'] == 0.0

    def test_convert_to_knowledge_item(self, storage):
        orchestrator = make_orchestrator(storage)
        content = ExtractedContent(
            id="c1",
            url="https://acme.com/pricing",
            title="",
            content="Plans from $10",
            content_type=ContentType.PRICING,
            metadata={'language': 'en'},
            processing_quality=0.6,
            extracted_entities=[
                {'text': 'a@acme.com', 'type': 'email', 'confidence': 0.9},
                {'text': 'b@acme.com', 'type': 'email', 'confidence': 0.9},
                {'text': 'https://acme.com', 'type': 'url', 'confidence': 0.9},
            ],
            created_at=datetime(2024, 5, 1, 12, 0, 0),
        )

        item = orchestrator.convert_to_knowledge_item(content)

        assert item['title'] == "https://acme.com/pricing"
        assert item['category'] == 'pricing'
        assert item['tags'] == ['email', 'url']
        assert item['confidence'] == 0.6
        assert item['source_type'] == 'url'
        assert item['language'] == 'en'
        assert item['created_at'] == item['updated_at']
