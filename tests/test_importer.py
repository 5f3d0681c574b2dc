"""
Tests for the content importer
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sitescan.core.base import APIError, ContentType, ExtractedContent, ImportValidationError
from sitescan.knowledge.importer import ContentImporter, ImportConfig
from sitescan.knowledge.manager import KnowledgeBaseManager
from sitescan.knowledge.models import ContentSource, SourceType
from conftest import FakeGenerator, as_context, make_response


PRICING_TEXT = ("Our pricing plans start at ten dollars per month and include email "
                "support for every customer account.")
PRICING_TEXT_COPY = ("Our pricing plans start at ten dollars per month and include email "
                     "support for every customer account!")
REFUND_TEXT = ("Refunds are issued within thirty days of purchase when the original "
               "receipt is presented to our staff.")


@pytest.fixture
def manager(storage, date_clock):
    return KnowledgeBaseManager(storage, clock=date_clock)


@pytest.fixture
def importer(manager):
    return ContentImporter(manager)


class TestValidation:
    """Test suite for content and file validation"""

    def test_valid_content(self, importer):
        result = importer.validate_content(PRICING_TEXT)

        assert result.is_valid
        assert result.quality == 1.0
        assert result.issues == []

    def test_short_content(self, importer):
        result = importer.validate_content("Too short")

        assert not result.is_valid
        assert 'Content is too short (minimum 50 characters)' in result.issues
        assert 'Content lacks sufficient meaningful words' in result.issues

    def test_spam_patterns_lower_quality(self, importer):
        result = importer.validate_content(PRICING_TEXT + " CLICK HERE AAAAAAAAAAAAAAAAAAAAAAAA")

        assert result.is_valid
        assert result.quality == 0.1
        assert len(result.suggestions) == 3

    def test_very_long_content_warns(self, importer):
        result = importer.validate_content("word " * 30000)

        assert result.warnings == ['Content is very long and may need to be split']
        assert result.quality == 0.8

    def test_validate_file(self, importer, tmp_path):
        text_file = tmp_path / "notes.txt"
        text_file.write_text(PRICING_TEXT, encoding='utf-8')
        pdf_file = tmp_path / "manual.pdf"
        pdf_file.write_bytes(b"%PDF-1.4")

        assert importer.validate_file(str(text_file)).is_valid
        assert importer.validate_file(str(tmp_path / "missing.txt")).issues == [
            f"File not found: {tmp_path / 'missing.txt'}"
        ]
        assert importer.validate_file(str(pdf_file)).issues == ["Unsupported file type: .pdf"]

        too_small = ImportConfig(max_file_size_mb=0)
        assert not importer.validate_file(str(text_file), too_small).is_valid

    def test_quality_score(self):
        assert ContentImporter.calculate_quality_score("just a few words") == 0.5

        sentence = "This sentence has exactly fifteen words so that the average lands inside the band"
        text = ". ".join([sentence] * 6) + "."
        assert ContentImporter.calculate_quality_score(text) == 0.7


class TestFileContent:
    """Test suite for file rendering helpers"""

    def test_title_from_filename(self):
        assert ContentImporter.title_from_filename("docs/pricing_faq-2024.md") == "Pricing Faq 2024"

    def test_markdown_to_text(self):
        markdown = "# Title\n\nSome **bold** and *soft* text with [a link](https://x.com) and `code`.\n```\nblock\n```"

        assert ContentImporter.markdown_to_text(markdown) == \
            "Title\n\nSome bold and soft text with a link and code."

    def test_csv_to_text(self):
        text = ContentImporter.csv_to_text("plan,price\nStarter,10\n,\nBusiness\n")

        assert text.splitlines() == [
            "CSV Data with columns: plan, price",
            "",
            "Row 1:",
            "  plan: Starter",
            "  price: 10",
            "",
            "Row 2:",
            "  plan: Business",
            "  price: ",
        ]

    def test_json_to_text(self):
        text = ContentImporter.json_to_text({'plan': 'Starter', 'features': ['api', 'sso']})

        assert text == "plan: Starter\nfeatures:\n  Item 1:\n    api\n  Item 2:\n    sso\n"

    @pytest.mark.asyncio
    async def test_extract_html_file(self, importer, tmp_path, sample_page_html):
        page = tmp_path / "pricing.html"
        page.write_text(sample_page_html, encoding='utf-8')

        text = await importer.extract_file_content(str(page))

        assert "# Pricing" in text
        assert "tracking" not in text

    @pytest.mark.asyncio
    async def test_extract_bad_json_file(self, importer, tmp_path):
        broken = tmp_path / "data.json"
        broken.write_text("{broken", encoding='utf-8')

        with pytest.raises(ImportValidationError):
            await importer.extract_file_content(str(broken))


class TestImports:
    """Test suite for single and bulk imports"""

    @pytest.mark.asyncio
    async def test_import_from_text(self, importer, manager):
        item = await importer.import_from_text(PRICING_TEXT, "Pricing")

        assert item.source_type == SourceType.MANUAL
        assert item.version == 1
        assert item.confidence_score == 0.6
        stored = await manager.get_knowledge_item(item.id)
        assert stored.content == PRICING_TEXT

    @pytest.mark.asyncio
    async def test_import_from_text_rejects_short_content(self, importer):
        with pytest.raises(ImportValidationError):
            await importer.import_from_text("Too short", "Nope")

        item = await importer.import_from_text("Too short", "Allowed", {'validate_content': False})
        assert item.title == "Allowed"

    @pytest.mark.asyncio
    async def test_import_from_file(self, importer, tmp_path):
        path = tmp_path / "refund_policy.txt"
        path.write_text(REFUND_TEXT, encoding='utf-8')

        item = await importer.import_from_file(str(path))

        assert item.title == "Refund Policy"
        assert item.source_type == SourceType.FILE
        assert item.file_path == str(path)
        assert item.content == REFUND_TEXT

    @pytest.mark.asyncio
    async def test_import_unsupported_file(self, importer, tmp_path):
        path = tmp_path / "manual.pdf"
        path.write_bytes(b"%PDF-1.4")

        with pytest.raises(ImportValidationError):
            await importer.import_from_file(str(path))

    @pytest.mark.asyncio
    async def test_bulk_import_drops_near_duplicates(self, importer, manager):
        sources = [
            ContentSource(type='manual', data=PRICING_TEXT, title="Pricing", tags=['pricing']),
            ContentSource(type='manual', data=PRICING_TEXT_COPY, title="Pricing copy"),
            ContentSource(type='manual', data=REFUND_TEXT, category='policy'),
            ContentSource(type='manual', data="Too short"),
            ContentSource(type='fax', data="..."),
        ]

        result = await importer.bulk_import(sources, {'batch_size': 2})

        assert result.success
        assert result.items_imported == 2
        assert result.items_skipped == 1
        assert result.warnings == ["Skipped 1 duplicate items"]
        assert len(result.errors) == 2
        assert result.errors[1] == "Failed to process fax: Unsupported source type: fax"
        titles = [item.title for item in result.items]
        assert titles == ["Pricing", "Manual Entry"]
        assert result.items[0].tags == ['pricing']
        assert result.items[1].metadata == {'category': 'policy'}
        assert (await manager.get_knowledge_items())['total'] == 2

    @pytest.mark.asyncio
    async def test_bulk_import_without_deduplication(self, importer):
        sources = [
            ContentSource(type='manual', data=PRICING_TEXT),
            ContentSource(type='manual', data=PRICING_TEXT_COPY),
        ]

        result = await importer.bulk_import(sources, {'deduplicate_content': False})

        assert result.items_imported == 2
        assert result.items_skipped == 0

    @pytest.mark.asyncio
    async def test_url_import_needs_orchestrator(self, importer):
        result = await importer.bulk_import([ContentSource(type='url', data="https://acme.com/")])

        assert result.items_imported == 0
        assert result.errors == ["Failed to process url: URL import needs a scan orchestrator"]

    @pytest.mark.asyncio
    async def test_import_from_url(self, manager):
        content = ExtractedContent(
            id="c1",
            url="https://acme.com/pricing",
            title="Pricing",
            content=PRICING_TEXT,
            content_type=ContentType.PRICING,
            metadata={'language': 'en'},
            processing_quality=0.4,
            extracted_entities=[{'text': 'x@acme.com', 'type': 'email', 'confidence': 0.9}],
        )
        orchestrator = MagicMock()
        orchestrator.scan_url = AsyncMock(return_value=content)
        orchestrator.convert_to_knowledge_item.return_value = {
            'title': 'Pricing', 'content': PRICING_TEXT, 'category': 'pricing', 'tags': ['email'],
            'confidence': 0.4, 'source_type': 'url', 'source_url': content.url, 'language': 'en',
        }
        importer = ContentImporter(manager, orchestrator=orchestrator)

        item = await importer.import_from_url("https://acme.com/pricing")

        orchestrator.scan_url.assert_awaited_once_with("https://acme.com/pricing")
        assert item.source_type == SourceType.URL
        assert item.source_url == "https://acme.com/pricing"
        # Scan quality is kept for URL items
        assert item.confidence_score == 0.4
        assert item.metadata == {'content_type': 'pricing'}

    @pytest.mark.asyncio
    async def test_ai_enrichment(self, storage):
        generator = FakeGenerator("Plans start at ten dollars.", "pricing, support", "Pricing")
        manager = KnowledgeBaseManager(storage, ai=generator)
        importer = ContentImporter(manager)

        item = await importer.import_from_text(PRICING_TEXT, "Pricing", {'generate_faq': False})

        assert item.summary == "Plans start at ten dollars."
        assert item.tags == ['pricing', 'support']
        assert item.metadata['content_type'] == 'pricing'
        assert len(generator.prompts) == 3

    @pytest.mark.asyncio
    async def test_ai_enrichment_failure_does_not_block(self, storage):
        generator = FakeGenerator(APIError("down"), APIError("down"), APIError("down"))
        importer = ContentImporter(KnowledgeBaseManager(storage, ai=generator))

        item = await importer.import_from_text(PRICING_TEXT, "Pricing")

        assert item.summary is None
        assert item.tags == []


class TestApiImport:
    """Test suite for JSON API imports"""

    @pytest.mark.asyncio
    async def test_import_from_api(self, manager):
        session = MagicMock()
        session.get.return_value = as_context(make_response(200, json_data=[
            {'title': 'Pricing', 'content': PRICING_TEXT, 'category': 'pricing'},
            {'title': 'Refunds', 'content': REFUND_TEXT},
            {'title': 'No content'},
            'garbage',
        ]))
        importer = ContentImporter(manager, session=session)

        result = await importer.import_from_api("https://api.acme.com/docs", api_key="token")

        assert result.success
        assert [item.title for item in result.items] == ['Pricing', 'Refunds']
        assert result.items[1].metadata == {'category': 'general'}
        headers = session.get.call_args.kwargs['headers']
        assert headers['Authorization'] == 'Bearer token'

    @pytest.mark.asyncio
    async def test_api_error_status(self, manager):
        session = MagicMock()
        session.get.return_value = as_context(make_response(500, reason="Server Error"))
        importer = ContentImporter(manager, session=session)

        result = await importer.import_from_api("https://api.acme.com/docs")

        assert not result.success
        assert result.errors == ["API import failed: API request failed: 500 Server Error"]

