# services/service.py
"""
Fund search service
-------------------
Owns the one-time build (load -> document -> index -> trie) and exposes
search, autocomplete, document lookup, analytics and health.

Construct one instance per process and pass it where it is needed; tests
build isolated instances against small catalogs.

The build runs at most once. Concurrent callers of `initialize()` wait on
the same build instead of starting their own. A failed build is final for
the instance: later calls re-raise the recorded error.
"""

import logging
import os
import threading
import time
from types import MappingProxyType

import psutil

from fundsearch.errors import CatalogLoadError
from fundsearch.services.analytics import build_analytics
from fundsearch.services.documents import DocumentBuilder, document_id
from fundsearch.services.index import InvertedIndex
from fundsearch.services.search import QueryEngine, SearchQuery
from fundsearch.services.trie import Trie
from fundsearch.utils.loader import DEFAULT_CHUNK_SIZE, LoadStats, stream_catalog

logger = logging.getLogger(__name__)

LOG_EVERY = 5000

STATUS_INITIALIZING = "initializing"
STATUS_HEALTHY = "healthy"
STATUS_FAILED = "failed"

AUTOCOMPLETE_LIMIT = 5


class FundSearchService:
    def __init__(self, catalog_path, chunk_size=DEFAULT_CHUNK_SIZE, builder=None):
        self.catalog_path = str(catalog_path)
        self.chunk_size = chunk_size
        self.builder = builder or DocumentBuilder()
        self.stats = LoadStats()

        self._lock = threading.Lock()
        self._engine = None
        self._error = None
        self._documents = MappingProxyType({})
        self._index = None
        self.build_time_ms = None

    @classmethod
    def from_settings(cls, settings):
        return cls(
            settings.catalog_path,
            chunk_size=settings.chunk_size,
            builder=DocumentBuilder(synthesize_metrics=settings.synthetic_metrics),
        )

    @property
    def status(self):
        if self._engine is not None:
            return STATUS_HEALTHY
        if self._error is not None:
            return STATUS_FAILED
        return STATUS_INITIALIZING

    @property
    def is_ready(self):
        return self._engine is not None

    def initialize(self):
        """Build the index once. No-op when already built; re-raises a failed build."""
        if self._engine is not None:
            return
        with self._lock:
            if self._engine is not None:
                return
            if self._error is not None:
                raise self._error
            try:
                self._build()
            except OSError as exc:
                self._error = CatalogLoadError(self.catalog_path, exc)
                logger.error("Search index build failed: %s", self._error)
                raise self._error from exc
            except Exception as exc:
                self._error = CatalogLoadError(self.catalog_path, exc)
                logger.exception("Search index build failed")
                raise self._error from exc

    def _build(self):
        logger.info("Initializing fund search index from %s", self.catalog_path)
        started = time.perf_counter()

        stats = self.stats = LoadStats()
        documents = {}
        index = InvertedIndex()

        for raw in stream_catalog(self.catalog_path, self.chunk_size, stats):
            document = self.builder.build(raw)
            if document is None:
                stats.dropped += 1
                continue
            if document.id in documents:
                stats.duplicates += 1
                continue
            documents[document.id] = document
            index.add_document(document.id, document.search_tokens)
            stats.indexed += 1
            if stats.indexed % LOG_EVERY == 0:
                logger.info("Indexed %d documents...", stats.indexed)

        trie = Trie(index.tokens()).freeze()
        index.freeze()

        self._documents = MappingProxyType(documents)
        self._index = index
        self.build_time_ms = round((time.perf_counter() - started) * 1000, 1)
        self._engine = QueryEngine(self._documents, index, trie)

        logger.info(
            "Search index ready in %sms: %d documents, %d tokens, %d malformed, %d dropped, %d duplicates",
            self.build_time_ms, stats.indexed, len(index), stats.malformed, stats.dropped, stats.duplicates,
        )

    def search(self, query):
        """Run one query (SearchQuery or its camelCase dict form), building first if needed."""
        self.initialize()
        if not isinstance(query, SearchQuery):
            query = SearchQuery.from_dict(query)
        return self._engine.search(query)

    def autocomplete(self, text):
        return self.search(SearchQuery(text=text, limit=AUTOCOMPLETE_LIMIT)).suggestions

    def get_document(self, scheme_code):
        self.initialize()
        return self._documents.get(document_id(scheme_code))

    def analytics(self):
        response = self.search(SearchQuery(text="", limit=1))
        return build_analytics(response, self.get_health())

    def get_health(self):
        stats = self.stats
        return {
            "status": self.status,
            "documentsIndexed": len(self._documents),
            "indexSize": len(self._index) if self._index is not None else 0,
            # no query cache in this design
            "cacheHitRatio": 0.0,
            "memoryUsage": _memory_usage(),
            "malformedRecords": stats.malformed,
            "droppedRecords": stats.dropped,
            "duplicateRecords": stats.duplicates,
            "buildTimeMs": self.build_time_ms,
            "error": str(self._error) if self._error is not None else None,
        }


def _memory_usage():
    rss = psutil.Process(os.getpid()).memory_info().rss
    return f"{round(rss / 1024 / 1024)}MB"
