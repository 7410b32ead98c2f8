"""
agent.tools.search - Web search through the Google Custom Search JSON API.
"""

from __future__ import annotations

import asyncio
import logging

import requests
from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.exceptions import ToolError

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


class SearchInput(BaseModel):
    """Input schema for the search tool."""
    query: str = Field(description="Search terms.")
    num_results: int = Field(default=5, ge=1, le=10)


class SearchTool(BaseTool):
    """Search the web and return title/snippet/url triples."""

    name = "search"
    description = "Search the web for up-to-date information."

    def __init__(
        self,
        api_key: str,
        cx: str,
        timeout: float = 10.0,
        base_url: str = GOOGLE_SEARCH_URL,
    ):
        self._api_key = api_key
        self._cx = cx
        self._timeout = timeout
        self._url = base_url

    def get_schema(self) -> type[BaseModel]:
        return SearchInput

    async def execute(self, query: str = "", num_results: int = 5, **kwargs) -> ToolResult:
        if not (self._api_key and self._cx):
            return ToolResult(success=False, error="Google search credentials are not configured")
        if not query.strip():
            return ToolResult(success=False, error="A search query is required")

        loop = asyncio.get_running_loop()
        try:
            payload = await loop.run_in_executor(None, self._call_api, query.strip(), num_results)
        except ToolError as e:
            return ToolResult(success=False, error=str(e))

        results = [
            {
                "title": item.get("title", ""),
                "snippet": item.get("snippet", ""),
                "url": item.get("link", ""),
            }
            for item in payload.get("items", [])
        ]
        return ToolResult(success=True, data={"query": query, "results": results})

    def _call_api(self, query: str, num_results: int) -> dict:
        """Synchronous HTTP call (runs in the thread pool)."""
        logger.info("Searching the web for '%s'", query)
        try:
            response = requests.get(
                self._url,
                params={"key": self._api_key, "cx": self._cx, "q": query, "num": num_results},
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout:
            raise ToolError(f"Search service timed out after {self._timeout}s")
        except requests.exceptions.RequestException as e:
            raise ToolError(f"Search service unreachable: {e}") from e

        if not response.ok:
            raise ToolError(
                f"Search service returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return response.json()
