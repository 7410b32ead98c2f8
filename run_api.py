"""
Run the BotMojo Assistant REST API.

Usage:
    python run_api.py

Environment variables (all optional, also read from .env):
    DB_PATH                SQLite database file path (default: botmojo.db)
    RELATIONSHIP_POLICY    "append" or "dedupe" (default: append)
    LLM_PROVIDER           "openai", "groq" or "ollama" (default: ollama)
    LLM_MODEL_OLLAMA       Triage model for Ollama (default: llama3.2)
    OPENAI_API_KEY         Required when LLM_PROVIDER=openai
    GROQ_API_KEY           Required when LLM_PROVIDER=groq
    OPENWEATHER_API_KEY    Enables the weather tool
    GOOGLE_SEARCH_API_KEY  Enables the search tool (with GOOGLE_SEARCH_CX)
    ADMIN_TOKEN            Required X-Admin-Token for /api/admin routes when set
    LOG_LEVEL              Logging level (default: INFO)
    API_HOST / API_PORT    Bind address (default: 0.0.0.0:8000)
"""

import logging
import os
import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn
from dotenv import load_dotenv

if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "adapters.rest.app:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
    )
