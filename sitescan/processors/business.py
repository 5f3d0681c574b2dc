"""
Business Information Extraction

Best-effort extraction of company facts (name, contact details, social
profiles, address, industry) from page text using regular expressions.
"""

import re
from typing import Dict, Optional

import tldextract

from sitescan.core.base import Address, BusinessInfo, ContactInfo
from sitescan.core.logging import get_logger


COMPANY_NAME_PATTERNS = [
    re.compile(r'(?:about|company|we are)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)', re.IGNORECASE),
    re.compile(r'([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+(?:inc|corp|company|ltd|llc)', re.IGNORECASE),
    re.compile(r'welcome to\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)', re.IGNORECASE),
]

EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
PHONE_PATTERN = re.compile(r'[\+]?[1-9][\d\s\-\(\)]{7,15}')

SOCIAL_PATTERNS = {
    'facebook': re.compile(r'facebook\.com/([^\s"\'<>]+)', re.IGNORECASE),
    'twitter': re.compile(r'(?:twitter\.com|x\.com)/([^\s"\'<>]+)', re.IGNORECASE),
    'linkedin': re.compile(r'linkedin\.com/(?:in|company)/([^\s"\'<>]+)', re.IGNORECASE),
    'instagram': re.compile(r'instagram\.com/([^\s"\'<>]+)', re.IGNORECASE),
    'youtube': re.compile(r'youtube\.com/(?:user|channel|c)/([^\s"\'<>]+)', re.IGNORECASE),
}

ADDRESS_PATTERN = re.compile(
    r'(\d+\s+[A-Za-z\s]+(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr)'
    r'[,\s]+[A-Za-z\s]+,\s+[A-Z]{2}\s+\d{5})'
)

INDUSTRY_KEYWORDS = [
    'technology', 'software', 'healthcare', 'finance', 'education', 'retail',
    'manufacturing', 'consulting', 'marketing', 'real estate', 'automotive',
    'food', 'travel', 'entertainment', 'sports', 'fashion', 'beauty'
]

FOUNDED_PATTERN = re.compile(r'(?:founded|established|since)\s+(\d{4})', re.IGNORECASE)
EMPLOYEES_PATTERN = re.compile(r'(\d+[\+\-]*)\s+employees', re.IGNORECASE)


class BusinessInfoExtractor:
    """Extracts business facts from page text. Every field is optional."""

    def __init__(self):
        self.logger = get_logger(__name__)
        # Bundled public suffix snapshot only; never fetch the list over the network
        self._tld_extract = tldextract.TLDExtract(suffix_list_urls=())

    def extract(self, content: str, url: str) -> BusinessInfo:
        """
        Extract business information.

        Args:
            content: Page text
            url: Page URL

        Returns:
            BusinessInfo with whatever could be found
        """
        content = content or ''
        return BusinessInfo(
            company_name=self.extract_company_name(content, url),
            description=self.extract_description(content),
            contact_info=ContactInfo(
                email=self._first_match(EMAIL_PATTERN, content),
                phone=self._first_match(PHONE_PATTERN, content),
                website=url or None,
                contact_form=self.extract_contact_form(content),
            ),
            social_media=self.extract_social_media(content),
            address=self.extract_address(content),
            industry=self.extract_industry(content),
            founded=self._first_group(FOUNDED_PATTERN, content),
            employees=self._first_group(EMPLOYEES_PATTERN, content),
        )

    @staticmethod
    def _first_match(pattern: re.Pattern, content: str) -> Optional[str]:
        match = pattern.search(content)
        return match.group(0) if match else None

    @staticmethod
    def _first_group(pattern: re.Pattern, content: str) -> Optional[str]:
        match = pattern.search(content)
        return match.group(1) if match else None

    def extract_company_name(self, content: str, url: str) -> Optional[str]:
        """Registered domain label from the URL, else a name found in the text"""
        if url:
            try:
                label = self._tld_extract(url).domain
            except Exception as e:
                self.logger.debug(f"Could not extract domain from {url}: {e}")
                label = ''
            if label:
                return label[0].upper() + label[1:]

        for pattern in COMPANY_NAME_PATTERNS:
            match = pattern.search(content)
            if match:
                return match.group(1)

        return None

    @staticmethod
    def extract_description(content: str) -> Optional[str]:
        sentences = [s for s in re.split(r'[.!?]+', content) if len(s.strip()) > 20]
        return sentences[0].strip() + '.' if sentences else None

    @staticmethod
    def extract_contact_form(content: str) -> Optional[str]:
        content_lower = content.lower()
        if 'contact form' in content_lower or 'contact us' in content_lower:
            return 'Available'
        return None

    @staticmethod
    def extract_social_media(content: str) -> Optional[Dict[str, str]]:
        social_media = {}
        for platform, pattern in SOCIAL_PATTERNS.items():
            match = pattern.search(content)
            if match:
                social_media[platform] = match.group(0)
        return social_media or None

    @staticmethod
    def extract_address(content: str) -> Optional[Address]:
        match = ADDRESS_PATTERN.search(content)
        if not match:
            return None

        full_address = match.group(1)
        parts = full_address.split(',')
        state_zip = parts[2].strip().split(' ') if len(parts) > 2 else []

        return Address(
            full=full_address,
            street=parts[0].strip() if parts else None,
            city=parts[1].strip() if len(parts) > 1 else None,
            state=state_zip[0] if state_zip else None,
            zip_code=state_zip[1] if len(state_zip) > 1 else None,
        )

    @staticmethod
    def extract_industry(content: str) -> Optional[str]:
        content_lower = content.lower()
        for industry in INDUSTRY_KEYWORDS:
            if industry in content_lower:
                return industry[0].upper() + industry[1:]
        return None
