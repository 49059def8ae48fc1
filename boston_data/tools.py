"""Tool definitions and dispatcher functions."""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from security_utils import clean_optional

from .datasets import (
    BUILDING_PERMITS,
    CHECKBOOK,
    CRIME_INCIDENTS,
    FOOD_VIOLATIONS,
    SERVICE_REQUESTS,
    DatasetNotConfigured,
    get_adapter,
)
from .formatting import format_records, format_summary
from .normalize import normalize_address
from .portal_client import CkanClient, RemoteError
from .schemas import (
    BuildingPermitsArgs,
    CheckbookArgs,
    CrimeIncidentsArgs,
    CrimeSummaryArgs,
    FoodViolationsArgs,
    ServiceRequestsArgs,
    VendorSummaryArgs,
)

logger = logging.getLogger(__name__)

# Errors that end a tool call with a failure line instead of results.
FETCH_ERRORS = (RemoteError, DatasetNotConfigured)


def _parse(schema: Type[BaseModel], arguments: Dict[str, Any]) -> Tuple[Optional[BaseModel], Optional[str]]:
    """Sanitize and validate tool arguments. Returns (args, error_text)."""
    try:
        cleaned = {key: clean_optional(value) if isinstance(value, str) else value for key, value in arguments.items()}
        return schema(**cleaned), None
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}" for err in exc.errors()
        )
        return None, f"Invalid arguments: {problems}"
    except ValueError as exc:
        return None, f"Invalid arguments: {exc}"


def _failed(what: str, exc: Exception) -> str:
    logger.warning("Failed to fetch %s: %s", what, exc)
    return f"Failed to fetch {what}: {exc}"


async def _get_building_permits(client: CkanClient, **arguments) -> str:
    args, error = _parse(BuildingPermitsArgs, arguments)
    if error:
        return error

    adapter = get_adapter(BUILDING_PERMITS)
    try:
        # The full-text search is broad; matching happens locally below.
        descriptor = adapter.descriptor([normalize_address(args.address)])
        all_records = await adapter.fetch(client, descriptor)
    except FETCH_ERRORS as e:
        return _failed("permits", e)

    if not all_records:
        return "No building permits found for that address."

    matches = adapter.reconcile(all_records, args.address)
    if not matches:
        return "No building permits found for that address after normalization."

    return format_records(matches)


async def _get_311_requests(client: CkanClient, **arguments) -> str:
    args, error = _parse(ServiceRequestsArgs, arguments)
    if error:
        return error

    adapter = get_adapter(SERVICE_REQUESTS)
    try:
        descriptor = adapter.descriptor([args.address, args.type], {"case_status": args.case_status})
        if args.address:
            requests = await adapter.fetch(client, descriptor)
        else:
            requests = await adapter.fetch_first(client, descriptor, args.limit)
    except FETCH_ERRORS as e:
        return _failed("311 requests", e)

    requests = adapter.reconcile(requests, args.address)[: args.limit]
    if not requests:
        return "No 311 requests found for those filters."

    return format_records(requests)


async def _get_food_service_violations(client: CkanClient, **arguments) -> str:
    args, error = _parse(FoodViolationsArgs, arguments)
    if error:
        return error

    adapter = get_adapter(FOOD_VIOLATIONS)
    try:
        # CKAN filters are exact, so only the ZIP goes there
        descriptor = adapter.descriptor(
            [args.businessname, args.address, args.city, args.state, args.comments],
            {"zip": args.zip},
        )
        records = await adapter.fetch(client, descriptor)
    except FETCH_ERRORS as e:
        return _failed("food service violations", e)

    if not records:
        return "No food service violations found for those filters."

    return format_records(records)


async def _get_crime_incidents(client: CkanClient, **arguments) -> str:
    args, error = _parse(CrimeIncidentsArgs, arguments)
    if error:
        return error

    adapter = get_adapter(CRIME_INCIDENTS)
    try:
        descriptor = adapter.descriptor([args.street, args.offense], {"district": args.district, "year": args.year})
        if args.street:
            incidents = await adapter.fetch(client, descriptor)
        else:
            incidents = await adapter.fetch_first(client, descriptor, args.limit)
    except FETCH_ERRORS as e:
        return _failed("crime incidents", e)

    incidents = adapter.reconcile(incidents, args.street)[: args.limit]
    if not incidents:
        return "No crime incidents found for those filters."

    return format_records(incidents)


async def _summarize_crime_offenses(client: CkanClient, **arguments) -> str:
    args, error = _parse(CrimeSummaryArgs, arguments)
    if error:
        return error

    adapter = get_adapter(CRIME_INCIDENTS)
    try:
        descriptor = adapter.descriptor([args.street], {"district": args.district, "year": args.year})
        incidents = await adapter.fetch(client, descriptor)
    except FETCH_ERRORS as e:
        return _failed("crime incidents", e)

    incidents = adapter.reconcile(incidents, args.street)
    if not incidents:
        return "No crime incidents found for those filters."

    entries = adapter.summarize(incidents, args.top_n)
    return f"Top offenses across {len(incidents)} incidents:\n{format_summary(entries)}"


async def _search_checkbook(client: CkanClient, **arguments) -> str:
    args, error = _parse(CheckbookArgs, arguments)
    if error:
        return error

    adapter = get_adapter(CHECKBOOK)
    try:
        descriptor = adapter.descriptor(
            [args.vendor], {"department": args.department, "fiscal_year": args.fiscal_year}
        )
        transactions = await adapter.fetch_first(client, descriptor, args.limit)
    except FETCH_ERRORS as e:
        return _failed("checkbook transactions", e)

    if not transactions:
        return "No checkbook transactions found for those filters."

    return format_records(transactions)


async def _summarize_vendor_spending(client: CkanClient, **arguments) -> str:
    args, error = _parse(VendorSummaryArgs, arguments)
    if error:
        return error

    adapter = get_adapter(CHECKBOOK)
    try:
        descriptor = adapter.descriptor(
            [args.vendor], {"department": args.department, "fiscal_year": args.fiscal_year}
        )
        transactions = await adapter.fetch(client, descriptor)
    except FETCH_ERRORS as e:
        return _failed("checkbook transactions", e)

    if not transactions:
        return "No checkbook transactions found for those filters."

    entries = adapter.summarize(transactions, args.top_n)
    return f"Top vendors by spend across {len(transactions)} transactions:\n{format_summary(entries, money=True)}"


TOOLS: List[Dict[str, Any]] = [
    {
        "name": "get_building_permits_fuzzy_parallel",
        "description": "Fetch ALL building permits for an address (parallel, fuzzy match)",
        "inputSchema": BuildingPermitsArgs.model_json_schema(),
    },
    {
        "name": "get_311_requests",
        "description": "Fetch Boston 311 requests (all fields, exact address match after normalization)",
        "inputSchema": ServiceRequestsArgs.model_json_schema(),
    },
    {
        "name": "get_food_service_violations",
        "description": "Fetch all Boston food service violations (fuzzy search, all results, all fields)",
        "inputSchema": FoodViolationsArgs.model_json_schema(),
    },
    {
        "name": "get_crime_incidents",
        "description": "Fetch Boston crime incident reports by street, district, offense or year",
        "inputSchema": CrimeIncidentsArgs.model_json_schema(),
    },
    {
        "name": "summarize_crime_offenses",
        "description": "Rank the most frequent offense types across ALL matching crime incidents",
        "inputSchema": CrimeSummaryArgs.model_json_schema(),
    },
    {
        "name": "search_checkbook",
        "description": "Search Boston checkbook (vendor payment) transactions",
        "inputSchema": CheckbookArgs.model_json_schema(),
    },
    {
        "name": "summarize_vendor_spending",
        "description": "Rank vendors by total spend across ALL matching checkbook transactions",
        "inputSchema": VendorSummaryArgs.model_json_schema(),
    },
]

# Mapping tool name -> callable
TOOL_MAP = {
    "get_building_permits_fuzzy_parallel": _get_building_permits,
    "get_311_requests": _get_311_requests,
    "get_food_service_violations": _get_food_service_violations,
    "get_crime_incidents": _get_crime_incidents,
    "summarize_crime_offenses": _summarize_crime_offenses,
    "search_checkbook": _search_checkbook,
    "summarize_vendor_spending": _summarize_vendor_spending,
}
