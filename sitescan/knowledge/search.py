"""
Full-text ranking for knowledge items.

BM25 over a weighted bag of words: title and tag tokens are repeated so
they count more than body tokens. Scores are normalized so the best
match is 1.0.
"""

import re
from typing import List, Sequence, Tuple

from rank_bm25 import BM25Plus

from sitescan.knowledge.models import KnowledgeItem


TOKEN_PATTERN = re.compile(r'\w+', re.UNICODE)


def tokenize(text: str) -> List[str]:
    return TOKEN_PATTERN.findall((text or '').lower())


class KnowledgeRanker:
    """Ranks knowledge items against a free-text query"""

    def __init__(self, k1: float = 1.5, b: float = 0.75,
                 title_weight: int = 2, tag_weight: int = 2, summary_weight: int = 1):
        self.k1 = k1
        self.b = b
        self.title_weight = title_weight
        self.tag_weight = tag_weight
        self.summary_weight = summary_weight

    def weighted_tokens(self, item: KnowledgeItem) -> List[str]:
        """Searchable tokens of an item, boosted fields repeated by their weight"""
        tokens = tokenize(item.content)
        tokens += tokenize(item.title) * self.title_weight
        tokens += tokenize(' '.join(item.tags)) * self.tag_weight
        if item.summary:
            tokens += tokenize(item.summary) * self.summary_weight
        return tokens

    def rank(self, query: str, items: Sequence[KnowledgeItem]) -> List[Tuple[KnowledgeItem, float]]:
        """
        Score items against a query

        Args:
            query: Free-text query
            items: Candidate items

        Returns:
            (item, relevance) pairs with relevance in (0, 1], best first.
            Items sharing no term with the query are left out.
        """
        terms = list(dict.fromkeys(tokenize(query)))
        if not terms or not items:
            return []

        corpus = [self.weighted_tokens(item) for item in items]
        matching = [i for i, tokens in enumerate(corpus) if any(term in tokens for term in terms)]
        if not matching:
            return []

        # BM25+ keeps idf positive even for terms found in most of a small corpus
        scores = BM25Plus(corpus, k1=self.k1, b=self.b).get_scores(terms)

        best = max(float(scores[i]) for i in matching)
        ranked = [(items[i], float(scores[i]) / best) for i in matching]
        ranked.sort(key=lambda pair: pair[1], reverse=True)
        return ranked
