"""
Parsed HTML document capability.

Wraps BeautifulSoup behind the handful of operations the extractors need,
so callers never touch the parser API directly.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag


class HtmlDocument:
    """A mutable parsed HTML document"""

    def __init__(self, html: str, parser: str = 'html.parser'):
        self._soup = BeautifulSoup(html or '', parser)

    @property
    def root(self) -> Tag:
        return self._soup

    def select(self, selector: str, within: Optional[Tag] = None) -> List[Tag]:
        """All elements matching a CSS selector, in document order"""
        return (within or self._soup).select(selector)

    def select_one(self, selector: str, within: Optional[Tag] = None) -> Optional[Tag]:
        return (within or self._soup).select_one(selector)

    def text(self, element: Optional[Tag] = None) -> str:
        """Whitespace-collapsed text of an element (or of the whole document)"""
        node = self._soup if element is None else element
        return re.sub(r'\s+', ' ', node.get_text(separator=' ')).strip()

    @staticmethod
    def attr(element: Tag, name: str, default: str = '') -> str:
        value = element.get(name)
        if value is None:
            return default
        if isinstance(value, list):
            return ' '.join(value)
        return str(value)

    @staticmethod
    def tag_name(element: Tag) -> str:
        return element.name or ''

    @staticmethod
    def raw_text(element: Tag) -> str:
        """Text of an element exactly as written, e.g. the body of a script block"""
        return element.get_text()

    def remove(self, selector: str, within: Optional[Tag] = None) -> int:
        """Remove every element matching a selector; returns how many were removed"""
        elements = self.select(selector, within)
        for element in elements:
            element.decompose()
        return len(elements)

    def html(self, element: Optional[Tag] = None) -> str:
        return str(self._soup if element is None else element)

    def copy_of(self, element: Tag) -> 'HtmlDocument':
        """Independent document holding a copy of one element"""
        return HtmlDocument(str(element))

    def has_content(self) -> bool:
        return bool(self._soup.find(True)) or bool(self.text())
