#!/usr/bin/env python3
"""
Standalone MCP server for Boston's open-data datastore using FastMCP.
"""

import logging
import sys
from typing import Optional

from fastmcp import FastMCP

from boston_data.portal_client import CkanClient
from boston_data.tools import TOOL_MAP
from config_loader import Config, get_config
from rate_limiter import SimpleRateLimiter

logger = logging.getLogger("boston_data")


# ============================================================================
# Configuration and Utility Functions
# ============================================================================


def configure_logging(level: str = "INFO") -> None:
    """Log to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def check_datasets(config: Config) -> int:
    """Validate every dataset section and warn about ones without a resource id."""
    configured = 0
    for name in config.dataset_names:
        settings = config.dataset(name)
        if settings.resource_id:
            configured += 1
        else:
            logger.warning(
                "%s has no resource id; set %s_RESOURCE_ID to enable its tools", settings.title, name.upper()
            )
    return configured


async def _call(tool_name: str, **arguments) -> str:
    async with CkanClient.from_settings(get_config().ckan) as client:
        return await TOOL_MAP[tool_name](client, **arguments)


# ============================================================================
# MCP Tools
# ============================================================================


async def get_building_permits_fuzzy_parallel(address: str) -> str:
    """
    Fetch ALL building permits for an address (parallel, fuzzy match).

    Args:
        address: Street address to search for (e.g., 65 Commonwealth Ave)
    """
    return await _call("get_building_permits_fuzzy_parallel", address=address)


async def get_311_requests(
    address: Optional[str] = None,
    case_status: Optional[str] = None,
    type: Optional[str] = None,
    limit: int = 10,
) -> str:
    """
    Fetch Boston 311 requests (all fields, address matched after normalization).

    Args:
        address: Street address or location (partial allowed)
        case_status: Case status (e.g. 'Open', 'Closed')
        type: Request type/category (optional)
        limit: Number of results (1-100, default 10)
    """
    return await _call("get_311_requests", address=address, case_status=case_status, type=type, limit=limit)


async def get_food_service_violations(
    businessname: Optional[str] = None,
    address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zip: Optional[str] = None,
    comments: Optional[str] = None,
) -> str:
    """
    Fetch all Boston food service violations (fuzzy search, all results, all fields).

    Args:
        businessname: Restaurant name (fuzzy, partial allowed)
        address: Street address (fuzzy, partial allowed)
        city: City (optional, partial allowed)
        state: State (optional, partial allowed)
        zip: ZIP code (exact match)
        comments: Comments (fuzzy, partial allowed)
    """
    return await _call(
        "get_food_service_violations",
        businessname=businessname,
        address=address,
        city=city,
        state=state,
        zip=zip,
        comments=comments,
    )


async def get_crime_incidents(
    street: Optional[str] = None,
    district: Optional[str] = None,
    offense: Optional[str] = None,
    year: Optional[str] = None,
    limit: int = 10,
) -> str:
    """
    Fetch Boston crime incident reports.

    Args:
        street: Street name (e.g. 'Washington St'), matched after normalization
        district: Police district code (exact, e.g. 'B2')
        offense: Offense description (fuzzy)
        year: Year the incident occurred (exact)
        limit: Number of results (1-100, default 10)
    """
    return await _call(
        "get_crime_incidents", street=street, district=district, offense=offense, year=year, limit=limit
    )


async def summarize_crime_offenses(
    street: Optional[str] = None,
    district: Optional[str] = None,
    year: Optional[str] = None,
    top_n: int = 10,
) -> str:
    """
    Rank the most frequent offense types across ALL matching crime incidents.

    Args:
        street: Street name (e.g. 'Washington St'), matched after normalization
        district: Police district code (exact, e.g. 'B2')
        year: Year the incident occurred (exact)
        top_n: Number of offense types to list (1-100, default 10)
    """
    return await _call("summarize_crime_offenses", street=street, district=district, year=year, top_n=top_n)


async def search_checkbook(
    vendor: Optional[str] = None,
    department: Optional[str] = None,
    fiscal_year: Optional[str] = None,
    limit: int = 10,
) -> str:
    """
    Search Boston checkbook (vendor payment) transactions.

    Args:
        vendor: Vendor name (fuzzy, partial allowed)
        department: Department name (exact)
        fiscal_year: Fiscal year (exact)
        limit: Number of results (1-100, default 10)
    """
    return await _call(
        "search_checkbook", vendor=vendor, department=department, fiscal_year=fiscal_year, limit=limit
    )


async def summarize_vendor_spending(
    vendor: Optional[str] = None,
    department: Optional[str] = None,
    fiscal_year: Optional[str] = None,
    top_n: int = 25,
) -> str:
    """
    Rank vendors by total spend across ALL matching checkbook transactions.

    Args:
        vendor: Vendor name (fuzzy, partial allowed)
        department: Department name (exact)
        fiscal_year: Fiscal year (exact)
        top_n: Number of vendors to list (1-2000, default 25)
    """
    return await _call(
        "summarize_vendor_spending", vendor=vendor, department=department, fiscal_year=fiscal_year, top_n=top_n
    )


SERVER_TOOLS = [
    get_building_permits_fuzzy_parallel,
    get_311_requests,
    get_food_service_violations,
    get_crime_incidents,
    summarize_crime_offenses,
    search_checkbook,
    summarize_vendor_spending,
]


# ============================================================================
# Server Initialization
# ============================================================================


def create_server(config: Config) -> FastMCP:
    """Build the FastMCP server with every tool and the rate limiter registered."""
    mcp = FastMCP(config.server_name)
    for tool in SERVER_TOOLS:
        mcp.tool()(tool)
    mcp.add_middleware(
        SimpleRateLimiter(requests_per_minute=config.requests_per_minute, burst_limit=config.burst_limit)
    )
    return mcp


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Run the MCP server."""
    try:
        config = get_config()
        configure_logging(config.log_level)
        configured = check_datasets(config)
        mcp = create_server(config)
    except (FileNotFoundError, KeyError, ValueError) as e:
        configure_logging()
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    logger.info("✓ %d datasets configured against %s", configured, config.ckan.host)
    logger.info("Starting stdio transport...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
