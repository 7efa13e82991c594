"""Base extractor interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List

from ..models.migration import EntityType

logger = logging.getLogger(__name__)


@dataclass
class PageResult:
    """One page of source records plus the server's pagination counters."""
    records: List[Any] = field(default_factory=list)
    page: int = 1
    pages: int = 0
    per_page: int = 0
    total: int = 0


class BaseExtractor(ABC):
    """
    Base class for paginated source readers.

    Subclasses fetch single pages; ``fetch_all`` walks them until the
    server-reported page count is reached.
    """

    def __init__(self, page_size: int = 100):
        """
        Initialize the extractor.

        Args:
            page_size: Records requested per page
        """
        self.page_size = page_size

    @abstractmethod
    def fetch_page(self, entity: EntityType, page: int) -> PageResult:
        """
        Fetch a single page of records.

        Args:
            entity: Entity type to read
            page: 1-based page number

        Returns:
            PageResult with the decoded records
        """
        pass

    def fetch_all(self, entity: EntityType) -> List[Any]:
        """Fetch every record of an entity type, in server order."""
        records: List[Any] = []
        page = 1

        while True:
            result = self.fetch_page(entity, page)
            records.extend(result.records)
            logger.debug(f"Page {result.page}/{result.pages} - {len(result.records)} {entity.value}")

            current = result.page or page
            if current >= result.pages:
                break
            page = current + 1

        logger.info(f"Fetched {len(records)} {entity.value} from source")
        return records
