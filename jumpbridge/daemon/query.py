"""Query path: text in, jumper-ranked paths out."""

import time
from typing import List

from loguru import logger

from .config import QueryConfig
from .errors import StoreError
from .models import Category, QueryRequest
from .store import JumperStore


class QueryDispatcher:
    """
    Builds a find request from the configuration snapshot and runs it.

    Results come back exactly as jumper ranked them. Failures degrade to
    an empty list because queries fire on every keystroke.
    """

    def __init__(self, store: JumperStore, query_config: QueryConfig):
        self.store = store
        self.query_config = query_config

    def build_request(self, target_type: Category, query_text: str) -> QueryRequest:
        return QueryRequest.from_config(target_type, query_text, self.query_config)

    async def query(self, target_type: Category, query_text: str = "") -> List[str]:
        request = self.build_request(target_type, query_text)
        start = time.time()

        try:
            results = await self.store.find(request)
        except StoreError as e:
            detail = f": {e.stderr.strip()}" if e.stderr.strip() else ""
            logger.warning(f"jumper find failed for {query_text!r}: {e}{detail}")
            return []

        logger.debug(
            f"find {target_type.value} {query_text!r}: {len(results)} results "
            f"in {(time.time() - start) * 1000:.1f}ms"
        )
        return results
