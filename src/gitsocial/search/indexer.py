"""Typesense indexer for reconstructed log entries."""

from typing import Any

import typesense
from typesense.exceptions import ObjectNotFound

from gitsocial.config import TypesenseConfig
from gitsocial.logging import get_logger
from gitsocial.models import LogEntry

logger = get_logger("indexer")

LOG_ENTRIES_SCHEMA: dict[str, Any] = {
    "name": "log_entries",
    "fields": [
        {"name": "id", "type": "string"},
        {"name": "hash", "type": "string"},
        {"name": "ts", "type": "int64", "sort": True},
        {"name": "author_name", "type": "string", "facet": True},
        {"name": "author_email", "type": "string", "facet": True},
        {"name": "type", "type": "string", "facet": True},
        {"name": "details", "type": "string"},
        {"name": "repository", "type": "string", "facet": True},
        {"name": "post_id", "type": "string", "optional": True},
    ],
    "default_sorting_field": "ts",
}


class LogIndexer:
    """Indexes log entries in Typesense.

    Handles collection creation/verification and document upserts.
    """

    def __init__(self, config: TypesenseConfig) -> None:
        self._config = config
        self._client = typesense.Client({
            "nodes": [{
                "host": config.host,
                "port": str(config.port),
                "protocol": config.protocol,
            }],
            "api_key": config.api_key,
            "connection_timeout_seconds": 5,
        })

    @property
    def client(self) -> typesense.Client:
        """Access the underlying Typesense client."""
        return self._client

    def ensure_collections(self) -> None:
        """Create the log_entries collection if it doesn't exist."""
        name = LOG_ENTRIES_SCHEMA["name"]
        try:
            self._client.collections[name].retrieve()
            logger.debug("Collection already exists: collection=%s", name)
        except ObjectNotFound:
            self._client.collections.create(LOG_ENTRIES_SCHEMA)
            logger.info("Created collection: collection=%s", name)

    def upsert_entries(self, entries: list[LogEntry]) -> dict[str, int]:
        """Index log entries into Typesense.

        Entry ids are stable, so re-indexing the same history updates
        documents in place.

        Args:
            entries: Log entries to index

        Returns:
            Dict with counts: {"success": N, "failed": M}
        """
        if not entries:
            return {"success": 0, "failed": 0}

        documents = [entry.to_typesense_doc() for entry in entries]

        results = self._client.collections["log_entries"].documents.import_(
            documents,
            {"action": "upsert"},
        )

        success = 0
        failed = 0
        for result in results:
            if result.get("success", False):
                success += 1
            else:
                failed += 1
                logger.debug("Failed to index entry: error=%s", result.get("error", "unknown"))

        if failed > 0:
            logger.warning("Some entries failed to index: success=%d failed=%d", success, failed)

        return {"success": success, "failed": failed}

    def search_entries(
        self,
        query: str,
        page: int = 1,
        per_page: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Search log entries.

        Args:
            query: Search query string (use "*" for all)
            page: Page number (1-based)
            per_page: Number of results per page
            filters: type, repository, author_email, start_ts, end_ts

        Returns:
            Search results from Typesense
        """
        search_params: dict[str, Any] = {
            "q": query,
            "query_by": "details",
            "page": page,
            "per_page": per_page,
            "sort_by": "ts:desc",
        }

        if filters:
            filter_parts = []
            if "type" in filters:
                filter_parts.append(f"type:={filters['type']}")
            if "repository" in filters:
                # Backticks keep URLs with ':' and '#' intact
                filter_parts.append(f"repository:=`{filters['repository']}`")
            if "author_email" in filters:
                filter_parts.append(f"author_email:=`{filters['author_email']}`")
            if "start_ts" in filters:
                filter_parts.append(f"ts:>={filters['start_ts']}")
            if "end_ts" in filters:
                filter_parts.append(f"ts:<={filters['end_ts']}")

            if filter_parts:
                search_params["filter_by"] = " && ".join(filter_parts)

        return self._client.collections["log_entries"].documents.search(search_params)
