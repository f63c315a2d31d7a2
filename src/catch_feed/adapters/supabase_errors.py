"""Translation of Supabase client failures into domain errors."""

from typing import Any, Protocol

import httpx
from postgrest import APIError

from catch_feed.errors import NetworkError, QueryError


class ExecutableQuery(Protocol):
    """A PostgREST request builder ready to run."""

    async def execute(self) -> Any:
        """Run the request and return the API response."""


async def execute(query: ExecutableQuery, *, action: str) -> Any:
    """Run a query, raising QueryError or NetworkError on failure."""
    try:
        return await query.execute()
    except APIError as exc:
        code = exc.code if isinstance(exc.code, str) else None
        status = int(code) if code and code.isdigit() else None
        raise QueryError(
            exc.message or f"{action} rejected", code=code, status=status
        ) from exc
    except httpx.HTTPError as exc:
        raise NetworkError(f"{action} failed: {exc}") from exc
