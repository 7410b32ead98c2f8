"""
application.context - Request-scoped context.

Every layer receives the context explicitly. Two concurrent requests get
two different RequestContext instances; nothing about the caller is kept
in agents or tools.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4


@dataclass
class RequestContext:
    """Per-request context passed from the adapter to the Orchestrator.

    Attributes:
        user_id:     Owner of every entity written during the request.
        request_id:  Unique per request, for tracing/logging.
    """
    user_id: str = "default_user"
    request_id: str = field(default_factory=lambda: uuid4().hex)
