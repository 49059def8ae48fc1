"""
Simple rate limiting middleware for the MCP server.

Every tool call fans out into many datastore requests, so tool calls are
capped per minute and per short burst window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Dict

from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext

logger = logging.getLogger(__name__)

BURST_WINDOW = 5  # seconds


class SimpleRateLimiter(Middleware):
    """In-memory sliding-window limiter for tool calls."""

    def __init__(self, requests_per_minute: int = 60, burst_limit: int = 10):
        self.requests_per_minute = requests_per_minute
        self.burst_limit = burst_limit
        self.window_size = 60  # 1 minute window

        # Call timestamps per client
        self.request_history: Dict[str, deque] = defaultdict(deque)

    def _get_client_id(self, context: MiddlewareContext) -> str:
        # stdio transport serves a single client
        return "local_client"

    def _cleanup_old_requests(self, client_id: str, current_time: float):
        history = self.request_history[client_id]
        while history and history[0] < current_time - self.window_size:
            history.popleft()

    def _is_rate_limited(self, client_id: str) -> bool:
        current_time = time.time()
        self._cleanup_old_requests(client_id, current_time)

        history = self.request_history[client_id]

        recent_requests = sum(1 for timestamp in history if timestamp > current_time - BURST_WINDOW)
        if recent_requests >= self.burst_limit:
            return True

        return len(history) >= self.requests_per_minute

    def _record_request(self, client_id: str):
        self.request_history[client_id].append(time.time())

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        """Reject the call before any datastore request is made when over the limit."""
        client_id = self._get_client_id(context)
        if self._is_rate_limited(client_id):
            tool_name = getattr(context.message, "name", "unknown")
            logger.warning("Rate limit exceeded for %s calling %s", client_id, tool_name)
            raise ToolError(
                f"Rate limit exceeded ({self.requests_per_minute} tool calls per minute, "
                f"{self.burst_limit} per {BURST_WINDOW}s). Please slow down your requests."
            )

        self._record_request(client_id)
        return await call_next(context)
