"""
Tests for content extraction, classification, analysis and duplicate detection
"""

import pytest

from sitescan.core.base import ContentType, ExtractionError
from sitescan.core.config import ClassifierConfig
from sitescan.processors.analyzer import ContentAnalyzer
from sitescan.processors.business import BusinessInfoExtractor
from sitescan.processors.classifier import ContentClassifier
from sitescan.processors.content import ContentExtractor
from sitescan.processors.duplicates import DuplicateDetector, string_similarity
from sitescan.processors.html_document import HtmlDocument


class TestHtmlDocument:
    """Test suite for HtmlDocument"""

    def test_element_accessors(self):
        doc = HtmlDocument('<h2 id="plans" class="a b">Plans  and\n prices</h2>'
                           '<script type="application/ld+json">{"a":  1}</script>')
        heading = doc.select_one('h2')
        script = doc.select_one('script')

        assert doc.tag_name(heading) == 'h2'
        assert doc.attr(heading, 'id') == 'plans'
        assert doc.attr(heading, 'class') == 'a b'
        assert doc.attr(heading, 'title') == ''
        assert doc.text(heading) == 'Plans and prices'
        assert doc.raw_text(script) == '{"a":  1}'

    def test_remove(self):
        doc = HtmlDocument("<div><nav>Menu</nav><p>Body</p><nav>More</nav></div>")

        assert doc.remove('nav') == 2
        assert doc.text() == 'Body'


class TestContentExtractor:
    """Test suite for ContentExtractor"""

    @pytest.fixture
    def extractor(self):
        return ContentExtractor()

    @pytest.fixture
    def page(self, extractor, sample_page_html):
        return extractor.extract(sample_page_html, "https://acme.com/pricing")

    def test_title_and_main_content(self, page):
        assert page.title == "Acme Pricing Plans"
        assert "# Pricing" in page.content
        assert "$49 per month" in page.content
        # Scripts, navigation and footer never reach the markdown
        assert "tracking" not in page.content
        assert "Copyright" not in page.content
        assert "Home" not in page.content

    def test_metadata(self, page):
        metadata = page.metadata
        assert metadata["description"] == "Simple pricing for every team"
        assert metadata["ogTags"] == {"og:title": "Acme Pricing"}
        assert metadata["twitterTags"] == {"twitter:card": "summary"}
        assert metadata["structuredData"] == [{"@type": "Organization", "name": "Acme"}]
        assert metadata["language"] == "en"

    def test_links_and_images_are_absolute(self, page):
        assert page.links == ["https://acme.com/contact"]
        assert page.images == ["https://acme.com/img/plans.png"]

    def test_headings(self, page):
        assert [(h["level"], h["text"]) for h in page.headings] == [
            (1, "Pricing"), (2, "Starter"), (2, "Business")
        ]
        assert ContentExtractor.heading_map(page.headings) == {
            "h1": ["Pricing"], "h2": ["Starter", "Business"]
        }

    def test_heading_and_block_attributes(self, extractor):
        doc = HtmlDocument('<h3 id="faq">FAQ</h3><li class="item">A list entry that is long enough</li>')

        assert extractor.extract_headings(doc) == [
            {'level': 3, 'text': 'FAQ', 'id': 'faq', 'class': None}
        ]
        assert extractor.extract_text_blocks(doc) == [
            {'tag': 'li', 'text': 'A list entry that is long enough', 'class': 'item', 'id': None}
        ]

    def test_body_fallback_strips_chrome(self, extractor):
        html = ("<html><body><div class='sidebar'>Side links</div>"
                "<p>Body text that is short</p></body></html>")

        page = extractor.extract(html, "https://example.com/")

        assert "Body text that is short" in page.content
        assert "Side links" not in page.content
        assert page.metadata["language"] == "unknown"

    @pytest.mark.parametrize("html", ["", "   \n  "])
    def test_empty_html_raises(self, extractor, html):
        with pytest.raises(ExtractionError):
            extractor.extract(html, "https://example.com/")

    def test_processing_quality_in_range(self, page):
        analysis = ContentAnalyzer().analyze(page.content, page.url)
        quality = ContentExtractor.calculate_processing_quality(page, analysis)
        assert 0.0 < quality <= 1.0


class TestContentClassifier:
    """Test suite for ContentClassifier"""

    @pytest.fixture
    def classifier(self):
        return ContentClassifier()

    def test_pricing_page(self, classifier):
        result = classifier.classify("Our price and plan options with monthly billing",
                                     "https://acme.com/pricing")

        assert result.content_type == ContentType.PRICING
        assert result.scores["pricing"] == pytest.approx(0.7)
        assert result.confidence == pytest.approx(0.7)

    def test_tie_falls_back_to_general(self, classifier):
        result = classifier.classify("faq and price", "https://x.com/")

        assert result.content_type == ContentType.GENERAL
        assert result.confidence == 0.0

    def test_no_signal_is_general(self, classifier):
        result = classifier.classify("", "https://x.com/")
        assert result.content_type == ContentType.GENERAL

    def test_low_score_below_threshold(self):
        classifier = ContentClassifier(ClassifierConfig(min_confidence=0.5))

        result = classifier.classify("price", "https://x.com/")

        assert result.content_type == ContentType.GENERAL
        assert result.confidence == pytest.approx(0.1)

    def test_update_category_keywords(self, classifier):
        classifier.update_category_keywords("faq", ["Knowledge Base", "knowledge base"])

        assert classifier.get_category_keywords()["faq"] == ["knowledge base"]
        result = classifier.classify("Browse the knowledge base", "https://x.com/")
        assert result.content_type == ContentType.FAQ

    def test_update_unknown_category(self, classifier):
        with pytest.raises(ValueError):
            classifier.update_category_keywords("blog", ["post"])


class TestContentAnalyzer:
    """Test suite for ContentAnalyzer"""

    @pytest.fixture
    def analyzer(self):
        return ContentAnalyzer()

    def test_sentiment(self, analyzer):
        positive = analyzer.analyze_sentiment("This is a great product")
        assert positive.label == "positive"
        assert positive.score == 1.0

        negative = analyzer.analyze_sentiment("terrible support and awful docs here")
        assert negative.label == "negative"

        empty = analyzer.analyze_sentiment("")
        assert (empty.label, empty.score) == ("neutral", 0.0)

    def test_readability_average_is_bounded(self, analyzer):
        scores = analyzer.calculate_readability("The cat sat. The dog ran.")
        assert 0.0 <= scores.average <= 100.0
        assert scores.gunning_fog == scores.flesch_kincaid

    def test_keywords(self, analyzer):
        keywords = analyzer.extract_keywords("Pricing, pricing and plans for the team")

        assert keywords[0].word == "pricing"
        assert keywords[0].frequency == 2
        assert all(len(k.word) > 3 for k in keywords)

    def test_entities(self, analyzer):
        entities = analyzer.extract_entities("Email sales@acme.com or visit https://acme.com/docs")
        found = {(e.type, e.text) for e in entities}
        assert ("email", "sales@acme.com") in found
        assert ("url", "https://acme.com/docs") in found

    def test_analyze_combines_results(self, analyzer):
        analysis = analyzer.analyze("Frequently asked questions and answers", "https://acme.com/faq")
        assert analysis.content_type == ContentType.FAQ
        assert analysis.to_dict()["content_type"] == "faq"


class TestBusinessInfoExtractor:
    """Test suite for BusinessInfoExtractor"""

    @pytest.fixture
    def content(self):
        return ("Contact us at hello@acme.com or +1 555 123 4567. "
                "Visit 123 Main Street, Springfield, IL 62701. "
                "Founded 1999 with 50 employees. We build software. facebook.com/acme")

    def test_extract(self, content):
        info = BusinessInfoExtractor().extract(content, "https://www.acme.com/about")

        assert info.company_name == "Acme"
        assert info.contact_info.email == "hello@acme.com"
        assert info.contact_info.phone == "+1 555 123 4567"
        assert info.contact_info.contact_form == "Available"
        assert info.contact_info.website == "https://www.acme.com/about"
        assert info.address.street == "123 Main Street"
        assert info.address.city == "Springfield"
        assert info.address.state == "IL"
        assert info.address.zip_code == "62701"
        assert info.industry == "Software"
        assert info.founded == "1999"
        assert info.employees == "50"
        assert info.social_media == {"facebook": "facebook.com/acme"}

    def test_missing_fields_are_none(self):
        info = BusinessInfoExtractor().extract("Nothing to see", "")

        assert info.company_name is None
        assert info.address is None
        assert info.social_media is None
        assert info.contact_info.email is None


class TestDuplicateDetector:
    """Test suite for DuplicateDetector and string_similarity"""

    def test_similarity_properties(self):
        assert string_similarity("hello world", "helloworld") == 1.0
        assert string_similarity("night", "nacht") == string_similarity("nacht", "night")
        assert string_similarity("night", "nacht") == 0.25
        assert string_similarity("abc", "xyz") == 0.0
        assert string_similarity("a", "b") == 0.0

    def test_find_duplicates(self):
        detector = DuplicateDetector(threshold=0.8)
        detector.add("https://a.com/", "Pricing plans for every team size")
        detector.add("https://b.com/", "Completely different text about cats")

        duplicates = detector.find_duplicates("Pricing plans for every team size!")

        assert duplicates == ["https://a.com/"]
        assert detector.find_duplicates("Pricing plans for every team size",
                                        exclude_url="https://a.com/") == []

    def test_eviction_of_oldest_entry(self):
        detector = DuplicateDetector(max_entries=2)
        detector.add("one", "first")
        detector.add("two", "second")
        detector.add("three", "third")

        assert len(detector) == 2
        assert "one" not in detector
        assert "three" in detector

    def test_ttl_expiry(self, fake_clock):
        detector = DuplicateDetector(ttl=10, clock=fake_clock)
        detector.add("https://a.com/", "content")
        fake_clock.now += 11

        assert len(detector) == 0
        assert detector.find_duplicates("content") == []

    def test_deduplicate_keeps_first(self):
        items = [
            {"id": 1, "text": "Our pricing starts at ten dollars"},
            {"id": 2, "text": "Our pricing starts at ten dollars."},
            {"id": 3, "text": "Contact the support team by email"},
        ]

        kept = DuplicateDetector().deduplicate(items, key=lambda item: item["text"])

        assert [item["id"] for item in kept] == [1, 3]
