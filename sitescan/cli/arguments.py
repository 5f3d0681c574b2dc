"""
Command Line Argument Parsing for the Website Scanner

Handles URL input options, configuration overrides and knowledge base
import switches.
"""

import argparse
import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional


class CLIManager:
    """
    Command line interface manager for the scanner

    Parses and validates arguments, loads URL lists from files and turns
    overrides into ScanConfig fields.
    """

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all options

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog="sitescan",
            description="Website content scanner and knowledge base importer",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter,
            epilog=self._get_epilog()
        )

        # URL input options
        url_group = parser.add_argument_group("URL Sources")
        url_source = url_group.add_mutually_exclusive_group()
        url_source.add_argument(
            "--urls",
            nargs="+",
            help="One or more URLs to scan"
        )
        url_source.add_argument(
            "--url-file",
            help="Path to file containing URLs (supports TXT, CSV, JSON formats)"
        )

        # Configuration options
        config_group = parser.add_argument_group("Configuration")
        config_group.add_argument(
            "--config",
            default="config/config.yaml",
            help="Path to configuration file (created with defaults when missing)"
        )
        config_group.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Logging level"
        )
        config_group.add_argument(
            "--rate-limit",
            type=float,
            help="Maximum requests per second to the same domain"
        )
        config_group.add_argument(
            "--concurrency",
            type=int,
            help="Number of URLs scanned in parallel (defaults to the rate limit)"
        )
        config_group.add_argument(
            "--timeout",
            type=int,
            help="Request timeout in seconds"
        )
        config_group.add_argument(
            "--user-agent",
            help="User-Agent header sent with every request"
        )
        config_group.add_argument(
            "--no-robots",
            action="store_true",
            help="Ignore robots.txt"
        )
        config_group.add_argument(
            "--storage",
            choices=["memory", "json"],
            help="Storage backend"
        )

        # Knowledge base
        kb_group = parser.add_argument_group("Knowledge Base")
        kb_group.add_argument(
            "--import-to-kb",
            action="store_true",
            help="Store every successfully scanned page as a knowledge item"
        )

        parser.add_argument(
            "--version",
            action="version",
            version="sitescan v0.1.0"
        )

        parser.add_argument(
            "--examples",
            action="store_true",
            help="Show usage examples and exit"
        )

        return parser

    def _get_epilog(self) -> str:
        return """
Examples:
  # Scan two pages
  python -m sitescan --urls https://example.com/ https://example.com/pricing

  # Scan URLs from a file and keep results on disk
  python -m sitescan --url-file=my_urls.txt --storage=json

  # Slow down and ignore robots.txt
  python -m sitescan --urls https://example.com/ --rate-limit=1 --no-robots

  # Scan and import the pages into the knowledge base
  python -m sitescan --url-file=urls.csv --import-to-kb

Notes:
  - URL files can be TXT (one URL per line), CSV (first column) or JSON
    (a list, or an object with a "urls" list)
  - AI enrichment is enabled when SITESCAN_AI_API_KEY is set
"""

    def parse_arguments(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command line arguments

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        parsed_args = self.parser.parse_args(args)
        self.validate_arguments(parsed_args)
        return parsed_args

    def validate_arguments(self, args: argparse.Namespace) -> bool:
        """
        Validate parsed arguments for consistency

        Exits through parser.error() on invalid input.
        """
        if args.examples:
            return True

        if args.url_file and not Path(args.url_file).is_file():
            self.parser.error(f"URL file not found: {args.url_file}")

        if args.rate_limit is not None and args.rate_limit <= 0:
            self.parser.error("Rate limit must be greater than 0")

        if args.concurrency is not None and args.concurrency <= 0:
            self.parser.error("Concurrency must be greater than 0")

        if args.timeout is not None and args.timeout <= 0:
            self.parser.error("Timeout must be greater than 0")

        return True

    def get_urls_from_args(self, args: argparse.Namespace) -> List[str]:
        """
        Get URLs from command line arguments

        Returns:
            List of URLs to scan; empty when none were given
        """
        if args.urls:
            return args.urls

        if args.url_file:
            return self._load_urls_from_file(args.url_file)

        return []

    def get_scan_overrides(self, args: argparse.Namespace) -> Dict[str, Any]:
        """Map CLI options onto ScanConfig fields"""
        overrides: Dict[str, Any] = {}
        if args.rate_limit is not None:
            overrides['rate_limit'] = args.rate_limit
        if args.concurrency is not None:
            overrides['concurrency'] = args.concurrency
        if args.timeout is not None:
            overrides['timeout'] = args.timeout
        if args.user_agent:
            overrides['user_agent'] = args.user_agent
        if args.no_robots:
            overrides['respect_robots_txt'] = False
        return overrides

    def _load_urls_from_file(self, file_path: str) -> List[str]:
        """
        Load URLs from file in various formats

        Args:
            file_path: Path to file containing URLs

        Returns:
            List of URLs

        Raises:
            ValueError: If file format is not supported or file is invalid
        """
        file_path = Path(file_path)
        urls = []

        try:
            if file_path.suffix.lower() == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data, list):
                    urls = [str(url) for url in data if url]
                elif isinstance(data, dict) and 'urls' in data:
                    urls = [str(url) for url in data['urls'] if url]
                else:
                    raise ValueError("expected a list or an object with a 'urls' list")

            elif file_path.suffix.lower() == '.csv':
                with open(file_path, 'r', encoding='utf-8', newline='') as f:
                    for row in csv.reader(f):
                        if row and row[0].strip() and not row[0].strip().startswith('#'):
                            urls.append(row[0].strip())
                # Skip a header row
                if urls and not urls[0].lower().startswith(('http://', 'https://')):
                    urls = urls[1:]

            else:
                with open(file_path, 'r', encoding='utf-8') as f:
                    urls = [line.strip() for line in f if line.strip() and not line.strip().startswith('#')]

        except (OSError, ValueError, csv.Error) as e:
            raise ValueError(f"Failed to load URLs from {file_path}: {e}")

        if not urls:
            raise ValueError(f"No valid URLs found in {file_path}")

        return urls

    def print_help(self) -> None:
        """Print help message"""
        self.parser.print_help()

    def get_usage_examples(self) -> str:
        return self._get_epilog()
