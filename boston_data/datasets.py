"""
Dataset adapters.

An adapter binds one remote table's settings (resource id, column names,
walking policy, matching mode) to the shared paginate/reconcile/summarize
engine, so each tool only has to say which terms and filters it wants.
"""

import logging
from typing import Dict, Iterable, List, Optional

from config_loader import Config, get_config
from security_utils import build_filters, join_terms

from .paginator import fetch_all, fetch_page
from .reconcile import reconcile
from .schemas import CkanSettings, DatasetSettings, QueryDescriptor, Record, SummaryEntry, SummaryMetric
from .summarize import summarize

logger = logging.getLogger(__name__)

BUILDING_PERMITS = "building_permits"
SERVICE_REQUESTS = "service_requests"
FOOD_VIOLATIONS = "food_violations"
CRIME_INCIDENTS = "crime_incidents"
CHECKBOOK = "checkbook"


class DatasetNotConfigured(Exception):
    """The dataset has no resource id in config.json or the environment."""


class DatasetAdapter:
    """Query construction and post-processing for one remote table."""

    def __init__(self, name: str, settings: DatasetSettings, ckan: CkanSettings):
        self.name = name
        self.settings = settings
        self.ckan = ckan

    @property
    def title(self) -> str:
        return self.settings.title

    def column(self, name: str) -> str:
        """Datastore column for a tool parameter, defaulting to the same name."""
        return self.settings.fields.get(name, name)

    def descriptor(
        self,
        terms: Iterable[Optional[str]] = (),
        filters: Optional[Dict[str, Optional[str]]] = None,
        max_records: Optional[int] = None,
    ) -> QueryDescriptor:
        """
        Build the query for this table.

        Args:
            terms: Fuzzy phrases, joined with spaces into the ``q`` parameter.
            filters: Tool parameter -> exact value. Parameters are mapped to
                columns through the ``fields`` setting; ``None`` values are
                dropped.
            max_records: Row cap for the sequential policy. Defaults to the
                configured ``max_total_records``.
        """
        if not self.settings.resource_id:
            raise DatasetNotConfigured(
                f"No resource id configured for {self.title}. Set {self.name.upper()}_RESOURCE_ID."
            )
        exact = build_filters({self.column(k): v for k, v in (filters or {}).items()})
        return QueryDescriptor(
            dataset_id=self.settings.resource_id,
            full_text_term=join_terms(terms),
            exact_filters=exact,
            page_size=self.ckan.page_size,
            concurrency=self.ckan.parallel_requests,
            pagination=self.settings.pagination,
            max_records=max_records or self.ckan.max_total_records,
        )

    async def fetch(self, client, descriptor: QueryDescriptor) -> List[Record]:
        logger.info(
            "Querying %s (q=%r, filters=%s, policy=%s)",
            self.title,
            descriptor.full_text_term,
            descriptor.exact_filters,
            descriptor.pagination.value,
        )
        return await fetch_all(client, descriptor)

    async def fetch_first(self, client, descriptor: QueryDescriptor, limit: int) -> List[Record]:
        """Single request for the first ``limit`` rows, when nothing is filtered locally."""
        logger.info(
            "Querying %s for %d rows (q=%r, filters=%s)",
            self.title,
            limit,
            descriptor.full_text_term,
            descriptor.exact_filters,
        )
        page = await fetch_page(client, descriptor, 0, limit=limit)
        return page.records

    def reconcile(self, records: List[Record], address: Optional[str]) -> List[Record]:
        """Narrow ``records`` to ``address`` using this table's match mode."""
        if not address:
            return records
        matches = reconcile(records, address, self.settings.match_mode, self.settings.address_fields)
        logger.info("%s: %d of %d records match %r", self.title, len(matches), len(records), address)
        return matches

    def summarize(self, records: List[Record], top_n: int) -> List[SummaryEntry]:
        """Rank by ``summary_field``, summing ``amount_field`` when one is configured."""
        if not self.settings.summary_field:
            raise ValueError(f"{self.title} has no summary_field configured")
        if self.settings.amount_field:
            return summarize(
                records,
                self.settings.summary_field,
                SummaryMetric.SUM,
                top_n,
                amount_field=self.settings.amount_field,
            )
        return summarize(records, self.settings.summary_field, SummaryMetric.COUNT, top_n)


def get_adapter(name: str, config: Optional[Config] = None) -> DatasetAdapter:
    config = config or get_config()
    return DatasetAdapter(name, config.dataset(name), config.ckan)
