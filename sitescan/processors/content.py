"""
Content Extractor Implementation

Turns raw HTML into structured page content: title, markdown main text,
meta tags, structured data, links, images, headings and text blocks.
"""

import json
import re
from typing import Dict, Any, List, Optional
from urllib.parse import urljoin, urlparse

import html2text
from langdetect import detect, LangDetectException

from sitescan.core.base import PageContent, ContentAnalysis, ExtractionError
from sitescan.core.logging import get_logger
from sitescan.processors.html_document import HtmlDocument


NOISE_SELECTORS = 'script, style, nav, footer, aside, .ads, .advertisement, .popup'

MAIN_CONTENT_SELECTORS = [
    'main',
    'article',
    '[role="main"]',
    '.content',
    '.main-content',
    '#content',
    '#main',
    '.post-content',
    '.entry-content',
]

BODY_CHROME_SELECTORS = 'nav, .nav, .navigation, .sidebar, .menu, footer, .footer'


class ContentExtractor:
    """
    Extracts structured content from HTML pages.

    The main text is located by trying a list of well-known content
    containers and falling back to the page body without navigation.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = get_logger(__name__)
        self.min_main_content_length = self.config.get('min_main_content_length', 100)
        self.min_text_block_length = self.config.get('min_text_block_length', 10)

        # Configure HTML to Markdown converter
        self.html2text_config = {
            'unicode_snob': True,
            'body_width': 0,  # No wrapping
            'protect_links': True,
            'ignore_images': False,
            'ignore_tables': False,
            'ignore_emphasis': False,
            'escape_snob': False,
            'reference_links': False,
            'ul_item_mark': '-',
            'mark_code': True
        }

        self.h2t = html2text.HTML2Text()
        for key, value in self.html2text_config.items():
            if hasattr(self.h2t, key):
                setattr(self.h2t, key, value)

    def extract(self, html: str, url: str) -> PageContent:
        """
        Extract page content from HTML

        Args:
            html: Raw HTML
            url: URL the HTML was fetched from, used to resolve relative links

        Returns:
            PageContent

        Raises:
            ExtractionError: If the HTML is empty or cannot be processed
        """
        if not html or not html.strip():
            raise ExtractionError(f"Empty HTML for {url}")

        try:
            doc = HtmlDocument(html)
            if not doc.has_content():
                raise ExtractionError(f"No parseable content for {url}")

            # JSON-LD lives in <script> tags, so read it before stripping them
            structured_data = self.extract_structured_data(doc)

            doc.remove(NOISE_SELECTORS)

            title = self.extract_title(doc)
            content = self.extract_main_content(doc)
            metadata = self.extract_metadata(doc)
            metadata['structuredData'] = structured_data
            metadata['language'] = self.detect_language(doc.text())

            return PageContent(
                url=url,
                title=title,
                content=content,
                html=html,
                metadata=metadata,
                links=self.extract_links(doc, url),
                images=self.extract_images(doc, url),
                headings=self.extract_headings(doc),
                text_blocks=self.extract_text_blocks(doc),
            )
        except ExtractionError:
            raise
        except Exception as e:
            self.logger.error(f"Error extracting page content from {url}: {e}")
            raise ExtractionError(f"Content extraction failed for {url}: {e}")

    def extract_title(self, doc: HtmlDocument) -> str:
        """Title from <title>, then the first <h1>, then og:title"""
        title_tag = doc.select_one('title')
        if title_tag and doc.text(title_tag):
            return doc.text(title_tag)

        h1_tag = doc.select_one('h1')
        if h1_tag and doc.text(h1_tag):
            return doc.text(h1_tag)

        og_title = doc.select_one('meta[property="og:title"]')
        if og_title:
            return doc.attr(og_title, 'content').strip()

        return ""

    def extract_main_content(self, doc: HtmlDocument) -> str:
        """Convert the main content container to markdown"""
        for selector in MAIN_CONTENT_SELECTORS:
            element = doc.select_one(selector)
            if element is not None and len(doc.text(element)) > self.min_main_content_length:
                self.logger.debug(f"Main content found with selector {selector}")
                return self.convert_to_markdown(doc.html(element))

        body = doc.select_one('body')
        fallback = doc.copy_of(body) if body is not None else doc.copy_of(doc.root)
        fallback.remove(BODY_CHROME_SELECTORS)
        return self.convert_to_markdown(fallback.html())

    def convert_to_markdown(self, html: str) -> str:
        """
        Convert HTML to markdown preserving structure and formatting

        Args:
            html: HTML fragment

        Returns:
            Markdown content
        """
        markdown = self.h2t.handle(html)
        return self._post_process_markdown(markdown)

    def _post_process_markdown(self, markdown: str) -> str:
        # Fix multiple consecutive blank lines
        markdown = re.sub(r'\n{3,}', '\n\n', markdown)

        # Ensure proper spacing around headers
        markdown = re.sub(r'([^\n])\n(\s*#{1,6} )', r'\1\n\n\2', markdown)

        # Fix table formatting if needed
        markdown = re.sub(r'\|\s*\n\s*\|', '|\n|', markdown)

        return markdown.strip()

    def extract_metadata(self, doc: HtmlDocument) -> Dict[str, Any]:
        """Meta tags keyed by name/property, plus ogTags and twitterTags"""
        metadata: Dict[str, Any] = {}
        og_tags: Dict[str, str] = {}
        twitter_tags: Dict[str, str] = {}

        for meta in doc.select('meta'):
            name = doc.attr(meta, 'name') or doc.attr(meta, 'property')
            content = doc.attr(meta, 'content')
            if not name or not content:
                continue
            metadata[name] = content
            if name.startswith('og:') and doc.attr(meta, 'property'):
                og_tags[name] = content
            elif name.startswith('twitter:'):
                twitter_tags[name] = content

        metadata['ogTags'] = og_tags
        metadata['twitterTags'] = twitter_tags
        return metadata

    def extract_structured_data(self, doc: HtmlDocument) -> List[Any]:
        structured_data = []
        for script in doc.select('script[type="application/ld+json"]'):
            try:
                structured_data.append(json.loads(doc.raw_text(script)))
            except ValueError:
                self.logger.debug("Skipping invalid JSON-LD block")
        return structured_data

    def _absolute_urls(self, doc: HtmlDocument, selector: str, attribute: str,
                       base_url: str) -> List[str]:
        urls: List[str] = []
        seen = set()
        for element in doc.select(selector):
            value = doc.attr(element, attribute).strip()
            if not value:
                continue
            try:
                absolute_url = urljoin(base_url, value)
            except ValueError:
                continue
            if urlparse(absolute_url).scheme not in ('http', 'https'):
                continue
            if absolute_url not in seen:
                seen.add(absolute_url)
                urls.append(absolute_url)
        return urls

    def extract_links(self, doc: HtmlDocument, base_url: str) -> List[str]:
        """Absolute, de-duplicated http(s) links"""
        return self._absolute_urls(doc, 'a[href]', 'href', base_url)

    def extract_images(self, doc: HtmlDocument, base_url: str) -> List[str]:
        """Absolute, de-duplicated image URLs"""
        return self._absolute_urls(doc, 'img[src]', 'src', base_url)

    def extract_headings(self, doc: HtmlDocument) -> List[Dict[str, Any]]:
        headings = []
        for element in doc.select('h1, h2, h3, h4, h5, h6'):
            headings.append({
                'level': int(doc.tag_name(element)[1]),
                'text': doc.text(element),
                'id': doc.attr(element, 'id') or None,
                'class': doc.attr(element, 'class') or None,
            })
        return headings

    def extract_text_blocks(self, doc: HtmlDocument) -> List[Dict[str, Any]]:
        text_blocks = []
        for element in doc.select('p, div, span, li'):
            text = doc.text(element)
            if len(text) > self.min_text_block_length:
                text_blocks.append({
                    'tag': doc.tag_name(element),
                    'text': text,
                    'class': doc.attr(element, 'class') or None,
                    'id': doc.attr(element, 'id') or None,
                })
        return text_blocks

    def detect_language(self, text: str) -> str:
        """
        Detect language of content

        Returns:
            ISO 639-1 language code, or 'unknown' for short or undetectable text
        """
        if len(text) < 50:
            return 'unknown'
        try:
            return detect(text)
        except LangDetectException:
            return 'unknown'

    @staticmethod
    def heading_map(headings: List[Dict[str, Any]]) -> Dict[str, List[str]]:
        """Group heading texts by level: {"h1": [...], "h2": [...]}"""
        result: Dict[str, List[str]] = {}
        for heading in headings:
            result.setdefault(f"h{heading['level']}", []).append(heading['text'])
        return result

    @staticmethod
    def calculate_processing_quality(page: PageContent, analysis: ContentAnalysis) -> float:
        """
        Score how useful an extracted page is

        Returns:
            Quality score between 0 and 1
        """
        score = 0.0

        word_count = len(page.content.split())
        if word_count > 50:
            score += 0.1
        if word_count > 200:
            score += 0.1
        if word_count > 500:
            score += 0.1

        if len(page.headings) > 0:
            score += 0.1
        if len(page.headings) > 3:
            score += 0.1
        if len(page.text_blocks) > 5:
            score += 0.1

        if page.title or page.metadata.get('title'):
            score += 0.1
        if page.metadata.get('description'):
            score += 0.1

        if analysis.readability.average > 50:
            score += 0.1
        if len(analysis.keywords) > 5:
            score += 0.1

        return round(min(score, 1.0), 2)
