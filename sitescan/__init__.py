"""
Website Scanner

Asynchronous website content acquisition for a chat-automation knowledge
base. Validates and fetches URLs with robots.txt awareness, per-domain
rate limiting and retry, extracts and classifies the main content, and
stores the results as versioned, searchable knowledge items.

Features:
- robots.txt-aware fetching with per-domain rate limiting and retry
- HTML to markdown conversion with metadata, links and headings
- Content type classification, entity, readability and sentiment analysis
- Business information extraction
- Near-duplicate detection
- Knowledge base with versioning, full-text search, analytics and feedback
- Import from URLs, files, text and JSON APIs
- Configurable via YAML/JSON and environment variables
"""

__version__ = "0.1.0"
