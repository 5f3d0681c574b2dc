"""
Tests for the command line interface and component wiring
"""

import json
from unittest.mock import MagicMock

import pytest

from sitescan.__main__ import import_to_knowledge_base
from sitescan.cli.arguments import CLIManager
from sitescan.core.base import ContentType, ExtractedContent
from sitescan.core.config import ConfigManager
from sitescan.knowledge.manager import KnowledgeBaseManager
from sitescan.knowledge.models import SourceType
from sitescan.storage import InMemoryStorage, JsonFileStorage
from sitescan.utils.component_factory import create_components, create_storage


@pytest.fixture
def cli():
    return CLIManager()


class TestArguments:
    """Test suite for argument parsing and validation"""

    def test_defaults(self, cli):
        args = cli.parse_arguments([])

        assert args.urls is None
        assert args.url_file is None
        assert args.config == "config/config.yaml"
        assert not args.import_to_kb
        assert cli.get_urls_from_args(args) == []
        assert cli.get_scan_overrides(args) == {}

    def test_urls_and_overrides(self, cli):
        args = cli.parse_arguments([
            "--urls", "https://example.com", "https://example.org",
            "--rate-limit", "2.5",
            "--concurrency", "4",
            "--timeout", "10",
            "--user-agent", "TestBot/1.0",
            "--no-robots",
        ])

        assert cli.get_urls_from_args(args) == ["https://example.com", "https://example.org"]
        assert cli.get_scan_overrides(args) == {
            'rate_limit': 2.5,
            'concurrency': 4,
            'timeout': 10,
            'user_agent': 'TestBot/1.0',
            'respect_robots_txt': False,
        }

    @pytest.mark.parametrize("argv", [
        ["--rate-limit", "0"],
        ["--concurrency", "-1"],
        ["--timeout", "0"],
        ["--url-file", "does/not/exist.txt"],
        ["--storage", "postgres"],
        ["--urls", "https://a.com", "--url-file", "urls.txt"],
    ])
    def test_invalid_arguments_exit(self, cli, argv):
        with pytest.raises(SystemExit):
            cli.parse_arguments(argv)

    def test_examples_skip_validation(self, cli):
        args = cli.parse_arguments(["--examples", "--rate-limit", "0"])

        assert args.examples
        assert "python -m sitescan" in cli.get_usage_examples()


class TestUrlFiles:
    """Test suite for loading URL lists from files"""

    def test_text_file_skips_comments(self, cli, tmp_path):
        url_file = tmp_path / "urls.txt"
        url_file.write_text("# team sites\nhttps://a.com\n\n  https://b.com  \n", encoding='utf-8')

        args = cli.parse_arguments(["--url-file", str(url_file)])

        assert cli.get_urls_from_args(args) == ["https://a.com", "https://b.com"]

    def test_csv_file_with_header(self, cli, tmp_path):
        url_file = tmp_path / "urls.csv"
        url_file.write_text("url,name\nhttps://a.com,A\nhttps://b.com,B\n", encoding='utf-8')

        assert cli._load_urls_from_file(str(url_file)) == ["https://a.com", "https://b.com"]

    @pytest.mark.parametrize("data", [
        ["https://a.com", "", "https://b.com"],
        {"urls": ["https://a.com", "https://b.com"]},
    ])
    def test_json_file(self, cli, tmp_path, data):
        url_file = tmp_path / "urls.json"
        url_file.write_text(json.dumps(data), encoding='utf-8')

        assert cli._load_urls_from_file(str(url_file)) == ["https://a.com", "https://b.com"]

    @pytest.mark.parametrize("name,body", [
        ("urls.json", '{"sites": []}'),
        ("urls.json", "{broken"),
        ("urls.txt", "# only comments\n"),
    ])
    def test_unusable_file(self, cli, tmp_path, name, body):
        url_file = tmp_path / name
        url_file.write_text(body, encoding='utf-8')

        with pytest.raises(ValueError):
            cli._load_urls_from_file(str(url_file))


class TestComponentFactory:
    """Test suite for building the service graph"""

    @pytest.fixture
    def config_manager(self, tmp_path, monkeypatch):
        monkeypatch.delenv('SITESCAN_AI_API_KEY', raising=False)
        monkeypatch.delenv('SITESCAN_STORAGE_MODE', raising=False)
        manager = ConfigManager(str(tmp_path / "config.yaml"))
        manager.load_config()
        return manager

    def test_storage_modes(self, config_manager, tmp_path):
        assert isinstance(create_storage(config_manager), InMemoryStorage)

        config_manager.storage_config.mode = 'json'
        config_manager.storage_config.json_path = str(tmp_path / "data")
        assert isinstance(create_storage(config_manager), JsonFileStorage)

    def test_components_share_storage(self, config_manager):
        storage = InMemoryStorage()

        components = create_components(config_manager, storage=storage)

        assert components.storage is storage
        assert components.orchestrator.storage is storage
        assert components.knowledge_manager.storage is storage
        assert components.importer.orchestrator is components.orchestrator
        assert components.text_generator is None


class TestKnowledgeImport:
    """Test suite for storing scanned pages as knowledge items"""

    @pytest.mark.asyncio
    async def test_import_to_knowledge_base(self, storage):
        content = ExtractedContent(
            id="c1",
            url="https://acme.com/pricing",
            title="Pricing",
            content="Plans start at ten dollars per month.",
            content_type=ContentType.PRICING,
            metadata={'language': 'unknown'},
            processing_quality=0.6,
        )
        orchestrator = MagicMock()
        orchestrator.convert_to_knowledge_item.return_value = {
            'title': 'Pricing', 'content': content.content, 'category': 'pricing', 'tags': ['email'],
            'confidence': 0.6, 'source_type': 'url', 'source_url': content.url, 'language': 'unknown',
        }
        manager = KnowledgeBaseManager(storage)

        imported = await import_to_knowledge_base(manager, orchestrator, [content])

        assert imported == 1
        listed = (await manager.get_knowledge_items())['items']
        item = await manager.get_knowledge_item(listed[0].id)
        assert item.source_type == SourceType.URL
        assert item.source_url == "https://acme.com/pricing"
        assert item.confidence_score == 0.6
        assert item.metadata == {'content_type': 'pricing', 'scan_content_id': 'c1'}
