"""
agent.tools.weather - Current weather from OpenWeatherMap.

Uses requests via run_in_executor so the blocking call stays off the event
loop. Every call carries a timeout; failures come back as ToolResult
(success=False) and count against the tool's metrics in the registry.
"""

from __future__ import annotations

import asyncio
import logging

import requests
from pydantic import BaseModel, Field

from agent.tools.base import BaseTool, ToolResult
from domain.exceptions import ToolError

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


class WeatherInput(BaseModel):
    """Input schema for the weather tool."""
    location: str = Field(description="City name, optionally with country code (e.g. 'Paris,FR').")
    units: str = Field(default="metric", pattern="^(metric|imperial|standard)$")


class WeatherTool(BaseTool):
    """Look up current conditions for a location."""

    name = "weather"
    description = "Get the current weather (temperature, conditions) for a location."

    def __init__(self, api_key: str, timeout: float = 10.0, base_url: str = OPENWEATHER_URL):
        self._api_key = api_key
        self._timeout = timeout
        self._url = base_url

    def get_schema(self) -> type[BaseModel]:
        return WeatherInput

    async def execute(self, location: str = "", units: str = "metric", **kwargs) -> ToolResult:
        if not self._api_key:
            return ToolResult(success=False, error="OpenWeatherMap API key is not configured")
        if not location.strip():
            return ToolResult(success=False, error="A location is required")

        loop = asyncio.get_running_loop()
        try:
            payload = await loop.run_in_executor(None, self._call_api, location.strip(), units)
        except ToolError as e:
            return ToolResult(success=False, error=str(e))

        main = payload.get("main", {})
        conditions = payload.get("weather") or [{}]
        return ToolResult(success=True, data={
            "location": payload.get("name", location),
            "temperature": main.get("temp"),
            "feels_like": main.get("feels_like"),
            "humidity": main.get("humidity"),
            "condition": conditions[0].get("main", ""),
            "description": conditions[0].get("description", ""),
            "units": units,
        })

    def _call_api(self, location: str, units: str) -> dict:
        """Synchronous HTTP call (runs in the thread pool)."""
        logger.info("Fetching weather for %s", location)
        try:
            response = requests.get(
                self._url,
                params={"q": location, "appid": self._api_key, "units": units},
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout:
            raise ToolError(f"Weather service timed out after {self._timeout}s")
        except requests.exceptions.RequestException as e:
            raise ToolError(f"Weather service unreachable: {e}") from e

        if not response.ok:
            raise ToolError(
                f"Weather service returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return response.json()
