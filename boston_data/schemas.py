from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# A datastore row. Shape is dictated by the remote table.
Record = Dict[str, Any]


class PaginationPolicy(str, Enum):
    """How a dataset's rows are walked."""

    PROBE = "probe"
    SEQUENTIAL = "sequential"


class MatchMode(str, Enum):
    BIDIRECTIONAL = "bidirectional"
    EXACT = "exact"


class SummaryMetric(str, Enum):
    COUNT = "count"
    SUM = "sum"


# ----------------------------------------------------------------------------
# Configuration models
# ----------------------------------------------------------------------------


class CkanSettings(BaseModel):
    host: str = "https://data.boston.gov"
    page_size: int = Field(100, gt=0)
    parallel_requests: int = Field(7, gt=0)
    request_timeout: float = Field(30, gt=0)
    max_total_records: int = Field(10000, gt=0)

    model_config = ConfigDict(frozen=True)


class DatasetSettings(BaseModel):
    """Per-table settings loaded from the ``datasets`` config section."""

    title: str
    resource_id: str = ""
    pagination: PaginationPolicy = PaginationPolicy.PROBE
    match_mode: MatchMode = MatchMode.EXACT
    address_fields: List[str] = Field(default_factory=list)
    fields: Dict[str, str] = Field(default_factory=dict)
    summary_field: Optional[str] = None
    amount_field: Optional[str] = None

    model_config = ConfigDict(frozen=True)


# ----------------------------------------------------------------------------
# Engine models
# ----------------------------------------------------------------------------


class QueryDescriptor(BaseModel):
    """One datastore query, built fresh per tool invocation."""

    dataset_id: str = Field(..., min_length=1)
    full_text_term: Optional[str] = None
    exact_filters: Dict[str, str] = Field(default_factory=dict)
    page_size: int = Field(100, gt=0)
    concurrency: int = Field(7, gt=0)
    pagination: PaginationPolicy = PaginationPolicy.PROBE
    # Only honoured by the sequential policy.
    max_records: Optional[int] = Field(None, gt=0)

    model_config = ConfigDict(frozen=True)


class Page(BaseModel):
    offset: int
    records: List[Record] = Field(default_factory=list)
    # Row count reported by the datastore, when it sends one.
    total: Optional[int] = None


class SummaryEntry(BaseModel):
    key: str
    # Row count, or the exact money total for sum summaries
    metric: Union[int, Decimal]
    rank: int = Field(..., ge=1)


# ----------------------------------------------------------------------------
# Tool argument schemas
# ----------------------------------------------------------------------------


class BuildingPermitsArgs(BaseModel):
    """Input schema for get_building_permits_fuzzy_parallel."""

    address: str = Field(..., min_length=1, description="Street address to search for (e.g., 65 Commonwealth Ave)")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class ServiceRequestsArgs(BaseModel):
    """Input schema for get_311_requests."""

    address: Optional[str] = Field(None, description="Street address or location (partial allowed)")
    case_status: Optional[str] = Field(None, description="Case status (e.g. 'Open', 'Closed')")
    type: Optional[str] = Field(None, description="Request type/category (optional)")
    limit: int = Field(10, ge=1, le=100, description="Number of results")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class FoodViolationsArgs(BaseModel):
    """Input schema for get_food_service_violations."""

    businessname: Optional[str] = Field(None, description="Restaurant name (fuzzy, partial allowed)")
    address: Optional[str] = Field(None, description="Street address (fuzzy, partial allowed)")
    city: Optional[str] = Field(None, description="City (optional, partial allowed)")
    state: Optional[str] = Field(None, description="State (optional, partial allowed)")
    zip: Optional[str] = Field(None, description="ZIP code (exact match)")
    comments: Optional[str] = Field(None, description="Comments (fuzzy, partial allowed)")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class CrimeIncidentsArgs(BaseModel):
    """Input schema for get_crime_incidents."""

    street: Optional[str] = Field(None, description="Street name (e.g. 'Washington St')")
    district: Optional[str] = Field(None, description="Police district code (exact, e.g. 'B2')")
    offense: Optional[str] = Field(None, description="Offense description (fuzzy)")
    year: Optional[str] = Field(None, description="Year the incident occurred (exact)")
    limit: int = Field(10, ge=1, le=100, description="Number of results")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class CrimeSummaryArgs(BaseModel):
    """Input schema for summarize_crime_offenses."""

    street: Optional[str] = Field(None, description="Street name (e.g. 'Washington St')")
    district: Optional[str] = Field(None, description="Police district code (exact, e.g. 'B2')")
    year: Optional[str] = Field(None, description="Year the incident occurred (exact)")
    top_n: int = Field(10, ge=1, le=100, description="Number of offense types to list")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class CheckbookArgs(BaseModel):
    """Input schema for search_checkbook."""

    vendor: Optional[str] = Field(None, description="Vendor name (fuzzy, partial allowed)")
    department: Optional[str] = Field(None, description="Department name (exact)")
    fiscal_year: Optional[str] = Field(None, description="Fiscal year (exact)")
    limit: int = Field(10, ge=1, le=100, description="Number of results")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class VendorSummaryArgs(BaseModel):
    """Input schema for summarize_vendor_spending."""

    vendor: Optional[str] = Field(None, description="Vendor name (fuzzy, partial allowed)")
    department: Optional[str] = Field(None, description="Department name (exact)")
    fiscal_year: Optional[str] = Field(None, description="Fiscal year (exact)")
    top_n: int = Field(25, ge=1, le=2000, description="Number of vendors to list")

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)
