#!/usr/bin/env python3
"""
Website Scanner - Main Entry Point

Loads configuration, sets up logging, runs one scan job to completion and
prints a summary report. Optionally stores the scanned pages in the
knowledge base.
"""

import sys
import asyncio
from collections import Counter
from typing import List

from sitescan.cli.arguments import CLIManager
from sitescan.core.base import ConfigurationError, ExtractedContent, NoValidUrls, SitescanError
from sitescan.core.config import ConfigManager
from sitescan.core.logging import get_logger, logging_manager, setup_logging
from sitescan.knowledge.manager import KnowledgeBaseManager
from sitescan.utils.component_factory import create_components


async def import_to_knowledge_base(manager: KnowledgeBaseManager, orchestrator,
                                   contents: List[ExtractedContent]) -> int:
    """Store scanned pages as knowledge items; returns how many were stored"""
    logger = get_logger(__name__)
    imported = 0
    for content in contents:
        fields = orchestrator.convert_to_knowledge_item(content)
        data = {
            'title': fields['title'],
            'content': fields['content'],
            'source_type': fields['source_type'],
            'source_url': fields['source_url'],
            'tags': fields['tags'],
            'confidence_score': fields['confidence'],
            'metadata': {'content_type': fields['category'], 'scan_content_id': content.id},
        }
        if fields['language'] != 'unknown':
            data['language'] = fields['language']
        try:
            await manager.create_knowledge_item(data)
            imported += 1
        except SitescanError as e:
            logger.warning(f"Failed to import {content.url}: {e}")
    return imported


async def main() -> int:
    """Main entry point for the scanner"""
    cli_manager = CLIManager()
    args = cli_manager.parse_arguments()

    if args.examples:
        print("\nWebsite Scanner - Usage Examples\n")
        print(cli_manager.get_usage_examples())
        return 0

    # Load configuration
    config_manager = ConfigManager(args.config)
    try:
        config_manager.load_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logging_config = config_manager.logging_config
    setup_logging(
        level=args.log_level or logging_config.level,
        log_file=logging_config.file,
        max_size=logging_config.max_size,
        backup_count=logging_config.backup_count
    )
    logger = get_logger()

    # Apply command line overrides to configuration
    config_manager.scan_config = config_manager.scan_config.with_overrides(
        cli_manager.get_scan_overrides(args)
    )
    if args.storage:
        config_manager.storage_config.mode = args.storage

    try:
        config_manager.validate_config()
    except ConfigurationError as e:
        logger.error(f"Configuration validation failed: {e}")
        return 1

    try:
        urls = cli_manager.get_urls_from_args(args)
    except ValueError as e:
        logger.error(f"Failed to get URLs: {e}")
        return 1
    if not urls:
        logger.error("No URLs to scan. Use --urls or --url-file")
        cli_manager.print_help()
        return 1

    logger.info(f"Scanning {len(urls)} URLs")

    components = create_components(config_manager)
    try:
        async with components:
            orchestrator = components.orchestrator
            try:
                job_id = await orchestrator.start_scan_job(urls)
            except NoValidUrls as e:
                logger.error(str(e))
                return 1

            job = await orchestrator.wait_for_job(job_id)
            contents = await orchestrator.get_extracted_content(job_id)

            if args.import_to_kb and contents:
                imported = await import_to_knowledge_base(components.knowledge_manager, orchestrator, contents)
                logger.info(f"Imported {imported} pages into the knowledge base")

            duration = None
            if job.started_at and job.completed_at:
                duration = f"{(job.completed_at - job.started_at).total_seconds():.2f}s"

            report = logging_manager.generate_summary_report({
                'job_id': job.id,
                'status': job.status.value,
                'duration': duration or 'Unknown',
                'total_urls': len(job.urls),
                'successful_urls': job.pages_succeeded,
                'failed_urls': job.pages_failed,
                'average_quality': (
                    sum(c.processing_quality for c in contents) / len(contents) if contents else 0.0
                ),
                'content_types': dict(Counter(c.content_type.value for c in contents)),
                'errors': [f"{e.get('url') or job.id}: {e.get('error')}" for e in job.errors],
            })
            print(report)

            return 0 if job.pages_succeeded > 0 else 1
    except SitescanError as e:
        logger.error(f"Scanner execution failed: {e}", exc_info=True)
        return 1


def run() -> None:
    """Console script entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nScan interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    run()
