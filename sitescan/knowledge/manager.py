"""
Knowledge Base Manager Implementation

Owns the knowledge base tables: the category forest, versioned knowledge
items, full-text search with history, usage analytics, feedback-driven
effectiveness scores, item relationships and optional AI enrichment.
"""

import json
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from sitescan.core.base import (
    APIError,
    CategoryNotEmptyError,
    CategoryNotFound,
    KnowledgeError,
    KnowledgeItemNotFound,
    format_timestamp,
    parse_timestamp,
)
from sitescan.core.config import KnowledgeConfig
from sitescan.core.logging import get_logger
from sitescan.knowledge.ai import TextGenerator
from sitescan.knowledge.models import (
    FeedbackType,
    ItemStatus,
    KnowledgeAnalytics,
    KnowledgeCategory,
    KnowledgeFeedback,
    KnowledgeItem,
    KnowledgeRelationship,
    KnowledgeSearchFilters,
    KnowledgeSearchResult,
    KnowledgeSuggestion,
    KnowledgeVersion,
    RelationshipType,
    SourceType,
)
from sitescan.knowledge.search import KnowledgeRanker
from sitescan.storage import StorageBackend
from sitescan.storage.base import (
    KNOWLEDGE_ANALYTICS,
    KNOWLEDGE_AUTO_SUGGESTIONS,
    KNOWLEDGE_CATEGORIES,
    KNOWLEDGE_FEEDBACK,
    KNOWLEDGE_ITEMS,
    KNOWLEDGE_RELATIONSHIPS,
    KNOWLEDGE_SEARCH_HISTORY,
    KNOWLEDGE_VERSIONS,
)


# Item fields callers may set on create/update
EDITABLE_ITEM_FIELDS = {
    'title', 'content', 'summary', 'category_id', 'source_type', 'source_url',
    'file_path', 'tags', 'status', 'confidence_score', 'language', 'metadata',
}

EDITABLE_CATEGORY_FIELDS = {
    'name', 'description', 'parent_id', 'order_index', 'color', 'icon', 'is_active',
}

UNCATEGORIZED = 'Uncategorized'


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class KnowledgeBaseManager:
    """
    Knowledge base service.

    Every change to an item's content goes through update_knowledge_item,
    which bumps the version by one and appends exactly one version row.
    Usage counts and effectiveness scores are bookkeeping and are written
    without a new version.
    """

    def __init__(self, storage: StorageBackend, config: Optional[KnowledgeConfig] = None,
                 ai: Optional[TextGenerator] = None,
                 ranker: Optional[KnowledgeRanker] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.storage = storage
        self.config = config or KnowledgeConfig()
        self.ai = ai
        self.ranker = ranker or KnowledgeRanker()
        self.clock = clock
        self.logger = get_logger(__name__)

    # Categories

    async def get_category(self, category_id: str) -> KnowledgeCategory:
        record = await self.storage.get(KNOWLEDGE_CATEGORIES, category_id)
        if not record:
            raise CategoryNotFound(f"Category not found: {category_id}")
        return KnowledgeCategory.from_record(record)

    async def get_categories(self, include_hierarchy: bool = True) -> List[KnowledgeCategory]:
        """
        List categories ordered by order_index

        Args:
            include_hierarchy: Return root categories with nested children
                instead of a flat list

        Returns:
            Categories with item_count filled in
        """
        records = await self.storage.select(KNOWLEDGE_CATEGORIES, order_by='order_index')
        categories = [KnowledgeCategory.from_record(r) for r in records]

        item_counts = Counter(
            r.get('category_id') for r in await self.storage.select(KNOWLEDGE_ITEMS)
        )
        for category in categories:
            category.item_count = item_counts.get(category.id, 0)

        if not include_hierarchy:
            return categories

        by_id = {c.id: c for c in categories}
        roots = []
        for category in categories:
            parent = by_id.get(category.parent_id) if category.parent_id else None
            if parent is None:
                # Categories whose parent is gone are shown as roots
                roots.append(category)
            else:
                parent.children.append(category)
        return roots

    async def create_category(self, name: str, description: Optional[str] = None,
                              parent_id: Optional[str] = None,
                              order_index: Optional[int] = None,
                              color: Optional[str] = None, icon: Optional[str] = None,
                              created_by: Optional[str] = None) -> KnowledgeCategory:
        if not name or not name.strip():
            raise KnowledgeError("Category name is required")
        if parent_id:
            await self.get_category(parent_id)

        if order_index is None:
            order_index = await self.storage.count(KNOWLEDGE_CATEGORIES, {'parent_id': parent_id})

        now = self.clock()
        category = KnowledgeCategory(
            name=name.strip(),
            description=description,
            parent_id=parent_id,
            order_index=order_index,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        if color:
            category.color = color
        if icon:
            category.icon = icon

        await self.storage.insert(KNOWLEDGE_CATEGORIES, category.to_record())
        self.logger.info(f"Created category '{category.name}' ({category.id})")
        return category

    async def update_category(self, category_id: str, updates: Dict[str, Any]) -> KnowledgeCategory:
        """
        Change category fields

        Raises:
            CategoryNotFound: When the category or a new parent does not exist
            KnowledgeError: On unknown fields or a parent that would create a cycle
        """
        await self.get_category(category_id)

        unknown = set(updates) - EDITABLE_CATEGORY_FIELDS
        if unknown:
            raise KnowledgeError(f"Cannot update category fields: {', '.join(sorted(unknown))}")

        if updates.get('parent_id'):
            await self._check_parent(category_id, updates['parent_id'])

        changes = dict(updates)
        changes['updated_at'] = format_timestamp(self.clock())
        record = await self.storage.update(KNOWLEDGE_CATEGORIES, category_id, changes)
        return KnowledgeCategory.from_record(record)

    async def move_category(self, category_id: str, new_parent_id: Optional[str],
                            order_index: Optional[int] = None) -> KnowledgeCategory:
        updates: Dict[str, Any] = {'parent_id': new_parent_id}
        if order_index is not None:
            updates['order_index'] = order_index
        return await self.update_category(category_id, updates)

    async def _check_parent(self, category_id: str, parent_id: str) -> None:
        """Reject a parent that is the category itself or one of its descendants"""
        if parent_id == category_id:
            raise KnowledgeError("A category cannot be its own parent")
        await self.get_category(parent_id)

        records = await self.storage.select(KNOWLEDGE_CATEGORIES)
        children = defaultdict(list)
        for record in records:
            children[record.get('parent_id')].append(record['id'])

        descendants: Set[str] = set()
        stack = list(children[category_id])
        while stack:
            current = stack.pop()
            if current in descendants:
                continue
            descendants.add(current)
            stack.extend(children[current])

        if parent_id in descendants:
            raise KnowledgeError("A category cannot be moved under one of its descendants")

    async def delete_category(self, category_id: str) -> None:
        """
        Delete a category

        Items in the category become uncategorized (one new version each).

        Raises:
            CategoryNotFound: When the category does not exist
            CategoryNotEmptyError: While the category has child categories
        """
        category = await self.get_category(category_id)

        if await self.storage.count(KNOWLEDGE_CATEGORIES, {'parent_id': category_id}):
            raise CategoryNotEmptyError(
                f"Category '{category.name}' has child categories; move or delete them first"
            )

        items = await self.storage.select(KNOWLEDGE_ITEMS, {'category_id': category_id})
        for record in items:
            await self.update_knowledge_item(
                record['id'], {'category_id': None},
                changes_description=f"Removed from deleted category '{category.name}'"
            )

        await self.storage.delete(KNOWLEDGE_CATEGORIES, category_id)
        self.logger.info(f"Deleted category '{category.name}' ({len(items)} items uncategorized)")

    async def reorder_categories(self, category_orders: List[Dict[str, Any]]) -> None:
        """Apply a list of {'id', 'order_index'} pairs"""
        for entry in category_orders:
            await self.get_category(entry['id'])
        now = format_timestamp(self.clock())
        for entry in category_orders:
            await self.storage.update(KNOWLEDGE_CATEGORIES, entry['id'], {
                'order_index': entry['order_index'],
                'updated_at': now,
            })

    async def _category_names(self) -> Dict[str, str]:
        return {r['id']: r.get('name', '') for r in await self.storage.select(KNOWLEDGE_CATEGORIES)}

    # Items

    def _matches_filters(self, item: KnowledgeItem, filters: KnowledgeSearchFilters) -> bool:
        if filters.category_id and item.category_id != filters.category_id:
            return False
        if filters.tags and not set(filters.tags) & set(item.tags):
            return False
        if filters.source_type and item.source_type.value != _plain(filters.source_type):
            return False
        if filters.date_from and item.created_at < filters.date_from:
            return False
        if filters.date_to and item.created_at > filters.date_to:
            return False
        return True

    async def _items_with_status(self, status: Any) -> List[KnowledgeItem]:
        records = await self.storage.select(
            KNOWLEDGE_ITEMS, {'status': _plain(status)},
            order_by='updated_at', descending=True
        )
        return [KnowledgeItem.from_record(r) for r in records]

    @staticmethod
    def _page(results: List[Any], page: int, limit: int) -> Dict[str, Any]:
        page = max(page, 1)
        start = (page - 1) * limit
        return {
            'items': results[start:start + limit],
            'total': len(results),
            'page': page,
            'limit': limit,
        }

    async def get_knowledge_items(self, filters: Optional[KnowledgeSearchFilters] = None,
                                  page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """
        List items, most recently updated first

        Args:
            filters: Optional filters; status defaults to active
            page: 1-based page number
            limit: Page size

        Returns:
            Dict with 'items' (KnowledgeSearchResult, relevance 1.0), 'total',
            'page' and 'limit'
        """
        filters = filters or KnowledgeSearchFilters()
        items = await self._items_with_status(filters.status or ItemStatus.ACTIVE)
        names = await self._category_names()

        results = [
            KnowledgeSearchResult.from_item(item, 1.0, names.get(item.category_id))
            for item in items if self._matches_filters(item, filters)
        ]
        return self._page(results, page, limit)

    async def get_knowledge_item(self, item_id: str, user_id: Optional[str] = None) -> KnowledgeItem:
        """
        Fetch an item and record the view

        Raises:
            KnowledgeItemNotFound: When the item does not exist
        """
        record = await self.storage.get(KNOWLEDGE_ITEMS, item_id)
        if not record:
            raise KnowledgeItemNotFound(f"Knowledge item not found: {item_id}")

        usage_count = record.get('usage_count', 0) + 1
        record = await self.storage.update(KNOWLEDGE_ITEMS, item_id, {'usage_count': usage_count})
        await self._track_event(item_id, 'view', user_id)
        return KnowledgeItem.from_record(record)

    async def _load_item(self, item_id: str) -> Dict[str, Any]:
        record = await self.storage.get(KNOWLEDGE_ITEMS, item_id)
        if not record:
            raise KnowledgeItemNotFound(f"Knowledge item not found: {item_id}")
        return record

    @staticmethod
    def _clean_item_fields(data: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(data) - EDITABLE_ITEM_FIELDS
        if unknown:
            raise KnowledgeError(f"Cannot set knowledge item fields: {', '.join(sorted(unknown))}")
        cleaned = {k: _plain(v) for k, v in data.items()}
        try:
            if 'source_type' in cleaned:
                SourceType(cleaned['source_type'])
            if 'status' in cleaned:
                ItemStatus(cleaned['status'])
        except ValueError as e:
            raise KnowledgeError(str(e)) from e
        if 'tags' in cleaned:
            cleaned['tags'] = list(dict.fromkeys(cleaned['tags'] or []))
        return cleaned

    async def create_knowledge_item(self, data: Dict[str, Any],
                                    created_by: Optional[str] = None) -> KnowledgeItem:
        """
        Create an item at version 1 with its initial version row

        Args:
            data: Item fields; title and content are required
            created_by: Optional user id

        Returns:
            The stored KnowledgeItem
        """
        fields = self._clean_item_fields(data)
        if not (fields.get('title') or '').strip() or not (fields.get('content') or '').strip():
            raise KnowledgeError("Knowledge items need a title and content")
        if fields.get('category_id'):
            await self.get_category(fields['category_id'])

        now = self.clock()
        item = KnowledgeItem(
            title=fields.pop('title').strip(),
            content=fields.pop('content'),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        record = item.to_record()
        record.update(fields)
        item = KnowledgeItem.from_record(record)

        await self.storage.insert(KNOWLEDGE_ITEMS, item.to_record())
        await self._add_version(item, "Initial version", created_by)
        self.logger.info(f"Created knowledge item '{item.title}' ({item.id})")
        return item

    async def update_knowledge_item(self, item_id: str, updates: Dict[str, Any],
                                    changes_description: Optional[str] = None,
                                    updated_by: Optional[str] = None) -> KnowledgeItem:
        """
        Apply changes as a new version

        Args:
            item_id: Item to change
            updates: Editable item fields
            changes_description: Text stored on the version row
            updated_by: Optional user id

        Returns:
            The updated KnowledgeItem (version + 1)

        Raises:
            KnowledgeItemNotFound: When the item does not exist
            KnowledgeError: On fields that cannot be edited
        """
        record = await self._load_item(item_id)
        changes = self._clean_item_fields(updates)
        if changes.get('category_id'):
            await self.get_category(changes['category_id'])

        changes['version'] = record.get('version', 1) + 1
        changes['updated_at'] = format_timestamp(self.clock())

        record = await self.storage.update(KNOWLEDGE_ITEMS, item_id, changes)
        item = KnowledgeItem.from_record(record)
        await self._add_version(item, changes_description or "Updated content", updated_by)
        self.logger.debug(f"Knowledge item {item_id} is now at version {item.version}")
        return item

    async def _add_version(self, item: KnowledgeItem, description: str,
                           created_by: Optional[str]) -> KnowledgeVersion:
        version = KnowledgeVersion(
            knowledge_item_id=item.id,
            version_number=item.version,
            title=item.title,
            content=item.content,
            summary=item.summary,
            changes_description=description,
            created_by=created_by,
            created_at=self.clock(),
        )
        await self.storage.insert(KNOWLEDGE_VERSIONS, version.to_record())
        return version

    async def delete_knowledge_item(self, item_id: str) -> None:
        """Delete an item and its relationships; version history is kept"""
        await self._load_item(item_id)

        for relationship in await self._relationship_records(item_id):
            await self.storage.delete(KNOWLEDGE_RELATIONSHIPS, relationship['id'])

        await self.storage.delete(KNOWLEDGE_ITEMS, item_id)
        self.logger.info(f"Deleted knowledge item {item_id}")

    async def bulk_update_knowledge_items(self, item_ids: List[str], updates: Dict[str, Any],
                                          changes_description: Optional[str] = None) -> List[KnowledgeItem]:
        return [
            await self.update_knowledge_item(item_id, updates, changes_description or "Bulk update")
            for item_id in item_ids
        ]

    # Search

    async def search_knowledge(self, query: str, filters: Optional[KnowledgeSearchFilters] = None,
                               page: int = 1, limit: int = 20,
                               user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Full-text search over items

        Args:
            query: Free-text query; an empty query lists items instead
            filters: Optional filters; status defaults to active
            page: 1-based page number
            limit: Page size

        Returns:
            Dict with 'items' (KnowledgeSearchResult, best first), 'total',
            'page' and 'limit'
        """
        if not query or not query.strip():
            return await self.get_knowledge_items(filters, page, limit)

        filters = filters or KnowledgeSearchFilters()
        min_relevance = (filters.min_relevance if filters.min_relevance is not None
                         else self.config.min_relevance)

        candidates = await self._items_with_status(filters.status or ItemStatus.ACTIVE)
        names = await self._category_names()

        results = [
            KnowledgeSearchResult.from_item(item, round(score, 6), names.get(item.category_id))
            for item, score in self.ranker.rank(query, candidates)
            if score >= min_relevance and self._matches_filters(item, filters)
        ]

        await self._track_search(query, len(results), user_id)
        return self._page(results, page, limit)

    async def _track_search(self, query: str, results_count: int, user_id: Optional[str]) -> None:
        now = format_timestamp(self.clock())
        await self.storage.insert(KNOWLEDGE_SEARCH_HISTORY, {
            'query': query.strip(),
            'user_id': user_id,
            'search_type': 'full_text',
            'results_count': results_count,
            'created_at': now,
        })
        await self._track_event(None, 'search', user_id, {'query': query.strip()})

    async def _track_event(self, item_id: Optional[str], event_type: str,
                           user_id: Optional[str], metadata: Optional[Dict[str, Any]] = None) -> None:
        await self.storage.insert(KNOWLEDGE_ANALYTICS, {
            'knowledge_item_id': item_id,
            'event_type': event_type,
            'user_id': user_id,
            'metadata': metadata or {},
            'created_at': format_timestamp(self.clock()),
        })

    async def get_recommended_content(self, item_id: str, limit: int = 5) -> List[KnowledgeSearchResult]:
        """
        Items related to an item

        Explicit relationships score their strength; other active items
        score 0.5 for sharing the category plus half their tag overlap.
        """
        source = KnowledgeItem.from_record(await self._load_item(item_id))

        strengths: Dict[str, float] = {}
        for relationship in await self.get_relationships(item_id):
            other = (relationship.child_item_id if relationship.parent_item_id == item_id
                     else relationship.parent_item_id)
            strengths[other] = max(strengths.get(other, 0.0), relationship.strength)

        source_tags = set(source.tags)
        scored = []
        for item in await self._items_with_status(ItemStatus.ACTIVE):
            if item.id == item_id:
                continue
            score = strengths.get(item.id, 0.0)
            if not score:
                if source.category_id and item.category_id == source.category_id:
                    score += 0.5
                if source_tags and item.tags:
                    overlap = len(source_tags & set(item.tags)) / len(source_tags | set(item.tags))
                    score += 0.5 * overlap
            if score > 0:
                scored.append((item, score))

        scored.sort(key=lambda pair: (pair[1], pair[0].effectiveness_score), reverse=True)
        names = await self._category_names()
        return [
            KnowledgeSearchResult.from_item(item, round(score, 6), names.get(item.category_id))
            for item, score in scored[:limit]
        ]

    # Versions

    async def get_version_history(self, item_id: str) -> List[KnowledgeVersion]:
        """Versions of an item, newest first"""
        records = await self.storage.select(
            KNOWLEDGE_VERSIONS, {'knowledge_item_id': item_id},
            order_by='version_number', descending=True
        )
        return [KnowledgeVersion.from_record(r) for r in records]

    async def restore_version(self, item_id: str, version_id: str,
                              restored_by: Optional[str] = None) -> KnowledgeItem:
        """Write the title, content and summary of an old version as a new version"""
        record = await self.storage.get(KNOWLEDGE_VERSIONS, version_id)
        if not record or record.get('knowledge_item_id') != item_id:
            raise KnowledgeError(f"Version {version_id} does not belong to item {item_id}")

        version = KnowledgeVersion.from_record(record)
        return await self.update_knowledge_item(
            item_id,
            {'title': version.title, 'content': version.content, 'summary': version.summary},
            changes_description=f"Restored to version {version.version_number}",
            updated_by=restored_by,
        )

    # Analytics

    def _window_start(self) -> datetime:
        return self.clock() - timedelta(days=self.config.search_history_days)

    async def _recent_searches(self) -> List[Dict[str, Any]]:
        since = self._window_start()
        return [
            r for r in await self.storage.select(KNOWLEDGE_SEARCH_HISTORY)
            if (parse_timestamp(r.get('created_at')) or since) >= since
        ]

    async def get_search_trends(self) -> List[Dict[str, Any]]:
        """
        Queries repeated within the history window, most frequent first

        The trend compares the two halves of the window.
        """
        searches = await self._recent_searches()
        midpoint = self.clock() - timedelta(days=self.config.search_history_days / 2)

        counts: Counter = Counter()
        recent: Counter = Counter()
        for search in searches:
            query = (search.get('query') or '').lower()
            if not query:
                continue
            counts[query] += 1
            if (parse_timestamp(search.get('created_at')) or midpoint) >= midpoint:
                recent[query] += 1

        trends = []
        for query, count in counts.most_common():
            if count < self.config.trend_min_occurrences:
                break
            earlier = count - recent[query]
            if recent[query] > earlier:
                trend = 'up'
            elif recent[query] < earlier:
                trend = 'down'
            else:
                trend = 'stable'
            trends.append({'query': query, 'count': count, 'trend': trend})
        return trends[:10]

    async def identify_knowledge_gaps(self) -> List[str]:
        """Queries that found nothing at least gap_min_occurrences times, top 10"""
        counts = Counter(
            (r.get('query') or '').lower()
            for r in await self._recent_searches()
            if r.get('results_count', 0) == 0 and r.get('query')
        )
        return [
            query for query, count in counts.most_common()
            if count >= self.config.gap_min_occurrences
        ][:10]

    async def get_quality_metrics(self) -> Dict[str, float]:
        active = await self._items_with_status(ItemStatus.ACTIVE)
        if not active:
            return {
                'average_effectiveness': 0.0,
                'high_quality_percentage': 0.0,
                'items_needing_review': 0,
            }

        ratings = defaultdict(list)
        for record in await self.storage.select(KNOWLEDGE_FEEDBACK):
            if record.get('rating') is not None:
                ratings[record['knowledge_item_id']].append(record['rating'])

        def needs_review(item: KnowledgeItem) -> bool:
            if item.effectiveness_score < self.config.review_threshold:
                return True
            item_ratings = ratings.get(item.id)
            return bool(item_ratings) and sum(item_ratings) / len(item_ratings) < 3

        high_quality = sum(1 for i in active if i.effectiveness_score >= self.config.high_quality_threshold)
        return {
            'average_effectiveness': round(sum(i.effectiveness_score for i in active) / len(active), 4),
            'high_quality_percentage': round(high_quality / len(active) * 100, 2),
            'items_needing_review': sum(1 for i in active if needs_review(i)),
        }

    async def get_analytics(self) -> KnowledgeAnalytics:
        """Totals, popularity, search trends, quality and gaps"""
        items = [KnowledgeItem.from_record(r) for r in await self.storage.select(KNOWLEDGE_ITEMS)]
        active = [i for i in items if i.status == ItemStatus.ACTIVE]
        names = await self._category_names()

        most_viewed = sorted(active, key=lambda i: i.usage_count, reverse=True)[:10]

        category_stats: Dict[str, Dict[str, Any]] = {}
        for item in items:
            name = names.get(item.category_id, UNCATEGORIZED) if item.category_id else UNCATEGORIZED
            stats = category_stats.setdefault(name, {
                'category_id': item.category_id if name != UNCATEGORIZED else None,
                'name': name,
                'count': 0,
                'usage': 0,
            })
            stats['count'] += 1
            stats['usage'] += item.usage_count
        top_categories = sorted(category_stats.values(), key=lambda s: s['count'], reverse=True)[:10]

        return KnowledgeAnalytics(
            total_items=len(items),
            active_items=len(active),
            categories_count=len(names),
            most_viewed_items=[
                KnowledgeSearchResult.from_item(i, 1.0, names.get(i.category_id)) for i in most_viewed
            ],
            top_categories=top_categories,
            search_trends=await self.get_search_trends(),
            quality_metrics=await self.get_quality_metrics(),
            knowledge_gaps=await self.identify_knowledge_gaps(),
        )

    # Feedback

    async def submit_feedback(self, item_id: str, feedback_type: Any,
                              rating: Optional[int] = None, comment: Optional[str] = None,
                              user_id: Optional[str] = None) -> KnowledgeFeedback:
        """
        Store feedback and recompute the item's effectiveness score

        The score is the mean of all feedback values with one prior
        observation of 0.5, so a single vote moves it only part of the way.
        """
        await self._load_item(item_id)
        try:
            feedback_type = FeedbackType(_plain(feedback_type))
        except ValueError as e:
            raise KnowledgeError(str(e)) from e
        if rating is not None and not 1 <= rating <= 5:
            raise KnowledgeError(f"Rating must be between 1 and 5, got {rating}")

        feedback = KnowledgeFeedback(
            knowledge_item_id=item_id,
            feedback_type=feedback_type,
            rating=rating,
            comment=comment,
            user_id=user_id,
            created_at=self.clock(),
        )
        await self.storage.insert(KNOWLEDGE_FEEDBACK, feedback.to_record())

        scores = [
            KnowledgeFeedback.from_record(r).score
            for r in await self.storage.select(KNOWLEDGE_FEEDBACK, {'knowledge_item_id': item_id})
        ]
        effectiveness = (0.5 + sum(scores)) / (1 + len(scores))
        await self.storage.update(KNOWLEDGE_ITEMS, item_id, {'effectiveness_score': round(effectiveness, 4)})
        await self._track_event(item_id, 'feedback', user_id, {'feedback_type': feedback_type.value})
        return feedback

    # Relationships

    async def create_relationship(self, parent_item_id: str, child_item_id: str,
                                  relationship_type: Any = RelationshipType.RELATED,
                                  strength: float = 0.5,
                                  created_by: Optional[str] = None) -> KnowledgeRelationship:
        if parent_item_id == child_item_id:
            raise KnowledgeError("An item cannot be related to itself")
        if not 0.0 <= strength <= 1.0:
            raise KnowledgeError(f"Relationship strength must be in [0, 1], got {strength}")
        await self._load_item(parent_item_id)
        await self._load_item(child_item_id)

        try:
            relationship_type = RelationshipType(_plain(relationship_type))
        except ValueError as e:
            raise KnowledgeError(str(e)) from e

        relationship = KnowledgeRelationship(
            parent_item_id=parent_item_id,
            child_item_id=child_item_id,
            relationship_type=relationship_type,
            strength=strength,
            created_by=created_by,
            created_at=self.clock(),
        )
        await self.storage.insert(KNOWLEDGE_RELATIONSHIPS, relationship.to_record())
        return relationship

    async def _relationship_records(self, item_id: str) -> List[Dict[str, Any]]:
        return [
            r for r in await self.storage.select(KNOWLEDGE_RELATIONSHIPS)
            if item_id in (r.get('parent_item_id'), r.get('child_item_id'))
        ]

    async def get_relationships(self, item_id: str) -> List[KnowledgeRelationship]:
        """Relationships where the item is either parent or child"""
        return [KnowledgeRelationship.from_record(r) for r in await self._relationship_records(item_id)]

    # AI enrichment

    async def generate_text(self, prompt: str, max_tokens: int, purpose: str = "generate text") -> Optional[str]:
        if self.ai is None:
            return None
        try:
            return await self.ai.generate(prompt, max_tokens)
        except APIError as e:
            self.logger.warning(f"Failed to {purpose}: {e}")
            return None

    async def generate_summary(self, content: str) -> str:
        response = await self.generate_text(
            "Generate a concise summary of the following content in 2-3 sentences:\n\n" + content[:2000],
            150, "generate summary"
        )
        return (response or '').strip()

    async def extract_keywords(self, content: str) -> List[str]:
        response = await self.generate_text(
            "Extract 5-10 relevant keywords from this content. "
            "Return only the keywords separated by commas:\n\n" + content[:1000],
            100, "extract keywords"
        )
        if not response:
            return []
        return [k.strip() for k in response.split(',') if k.strip()]

    async def generate_faq(self, content: str) -> List[Dict[str, str]]:
        response = await self.generate_text(
            "Generate 3-5 frequently asked questions and answers based on this content. "
            "Format as JSON array with question and answer fields:\n\n" + content[:1500],
            400, "generate FAQ"
        )
        if not response:
            return []
        try:
            faq = json.loads(response)
        except ValueError as e:
            self.logger.warning(f"Failed to parse generated FAQ: {e}")
            return []
        if not isinstance(faq, list):
            return []
        return [
            {'question': str(entry['question']), 'answer': str(entry['answer'])}
            for entry in faq
            if isinstance(entry, dict) and 'question' in entry and 'answer' in entry
        ]

    async def suggest_improvements(self, item_id: str) -> List[KnowledgeSuggestion]:
        """Ask for improvement ideas and store them as pending suggestions"""
        item = KnowledgeItem.from_record(await self._load_item(item_id))
        response = await self.generate_text(
            "Analyze this content and suggest 3 specific improvements:\n\n" + item.content[:1000],
            200, "suggest improvements"
        )
        if not response:
            return []

        suggestions = []
        for line in response.split('\n'):
            if not line.strip():
                continue
            suggestion = KnowledgeSuggestion(
                knowledge_item_id=item_id,
                suggestion_type='improvement',
                suggestion_text=line.strip(),
                confidence_score=0.7,
                created_at=self.clock(),
            )
            await self.storage.insert(KNOWLEDGE_AUTO_SUGGESTIONS, suggestion.to_record())
            suggestions.append(suggestion)
        return suggestions
