"""Business-line tagging for expenses."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from dateutil import parser as date_parser

from ..models.config import BusinessTagConfig
from ..models.destination import ZBTag

logger = logging.getLogger(__name__)


class BusinessLineKind(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class BusinessLine:
    kind: BusinessLineKind
    name: str


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a FreshBooks date, returning None when it cannot be read."""
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


class BusinessTagHelper:
    """
    Decides which business line an expense belongs to.

    Everything before the secondary business started is primary. From the
    start date on, expenses whose description mentions one of the secondary
    keywords belong to the secondary business.
    """

    def __init__(self, config: BusinessTagConfig):
        self.config = config
        self.start_date = parse_date(config.secondary_start_date)
        if self.start_date is None:
            logger.warning(f"Could not parse secondary_start_date '{config.secondary_start_date}'")
        self._keywords = [k.lower() for k in config.secondary_keywords if k]

    @property
    def primary(self) -> BusinessLine:
        return BusinessLine(BusinessLineKind.PRIMARY, self.config.primary_tag)

    @property
    def secondary(self) -> BusinessLine:
        return BusinessLine(BusinessLineKind.SECONDARY, self.config.secondary_tag)

    def determine(self, date: Optional[str], description: Optional[str]) -> BusinessLine:
        expense_date = parse_date(date)
        if expense_date is None or self.start_date is None:
            return self.primary

        if expense_date < self.start_date:
            return self.primary

        text = (description or "").lower()
        if any(keyword in text for keyword in self._keywords):
            return self.secondary

        return self.primary

    def tags_for(self, line: BusinessLine) -> Optional[List[ZBTag]]:
        """Zoho reporting tags for a business line, if tag IDs are configured."""
        if not self.config.has_zoho_tags:
            return None
        option_id = (
            self.config.zoho_secondary_option_id
            if line.kind == BusinessLineKind.SECONDARY
            else self.config.zoho_primary_option_id
        )
        return [ZBTag(tag_id=self.config.zoho_tag_id, tag_option_id=option_id)]
