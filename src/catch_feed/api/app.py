"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from catch_feed.api.models import CatchOut, PageOut, SearchOut
from catch_feed.app_logging import configure_logging
from catch_feed.containers import AppContainer
from catch_feed.domain.catches import ViewerContext
from catch_feed.domain.pagination import FeedFilters, FeedScope
from catch_feed.errors import NetworkError, QueryError, ValidationError
from catch_feed.services.pagination import decode_cursor, parse_sort_mode


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ValidationError)
    async def validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": str(exc)},
        )

    @app.exception_handler(QueryError)
    async def query_error(_: Request, exc: QueryError) -> JSONResponse:
        logger.error("Store rejected query: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "The catch store rejected the request."},
        )

    @app.exception_handler(NetworkError)
    async def network_error(_: Request, exc: NetworkError) -> JSONResponse:
        logger.error("Store unreachable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "The catch store is unavailable."},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/feed")
    async def feed(  # noqa: PLR0913
        request: Request,
        sort: str | None = None,
        cursor: str | None = None,
        species: str | None = None,
        custom_species: str | None = None,
        scope: str = FeedScope.ALL.value,
        session_id: str | None = None,
        x_viewer_id: str | None = Header(default=None),
    ) -> PageOut:
        """Return one page of the catch feed."""
        state_container: AppContainer = request.app.state.container
        sort_mode = parse_sort_mode(sort)
        filters = FeedFilters(
            species=species,
            custom_species=custom_species,
            scope=_parse_scope(scope),
            session_id=session_id,
        )
        viewer = await _viewer(state_container, x_viewer_id)
        page = await state_container.feed_service.list_feed(
            viewer, sort_mode, filters, decode_cursor(cursor) if cursor else None
        )
        return PageOut.from_page(page)

    @app.get("/profiles/{profile_id}/catches")
    async def profile_catches(
        profile_id: str,
        request: Request,
        cursor: str | None = None,
        x_viewer_id: str | None = Header(default=None),
    ) -> PageOut:
        """Return one page of an angler's catches."""
        state_container: AppContainer = request.app.state.container
        viewer = await _viewer(state_container, x_viewer_id)
        page = await state_container.feed_service.list_profile_catches(
            viewer, profile_id, decode_cursor(cursor) if cursor else None
        )
        return PageOut.from_page(page)

    @app.get("/leaderboard")
    async def leaderboard(
        request: Request,
        species: str | None = None,
        cursor: str | None = None,
        x_viewer_id: str | None = Header(default=None),
    ) -> PageOut:
        """Return one page of the scored catch leaderboard."""
        state_container: AppContainer = request.app.state.container
        viewer = await _viewer(state_container, x_viewer_id)
        page = await state_container.feed_service.list_leaderboard(
            viewer, species, decode_cursor(cursor) if cursor else None
        )
        return PageOut.from_page(page)

    @app.get("/catches/{catch_id}")
    async def catch_detail(
        catch_id: str,
        request: Request,
        x_viewer_id: str | None = Header(default=None),
    ) -> CatchOut:
        """Return a single catch the viewer may see."""
        state_container: AppContainer = request.app.state.container
        viewer = await _viewer(state_container, x_viewer_id)
        record = await state_container.feed_service.get_catch(viewer, catch_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return CatchOut.from_record(record)

    @app.get("/search")
    async def search(
        request: Request,
        q: str = "",
        x_viewer_id: str | None = Header(default=None),
    ) -> SearchOut:
        """Search profiles, catches and venues."""
        state_container: AppContainer = request.app.state.container
        viewer = await _viewer(state_container, x_viewer_id)
        results = await state_container.search_service.search_all(q, viewer)
        return SearchOut.from_results(results)

    return app


async def _viewer(container: AppContainer, viewer_id: str | None) -> ViewerContext:
    return await container.following_service.viewer_context(viewer_id or None)


def _parse_scope(raw: str) -> FeedScope:
    try:
        return FeedScope(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown feed scope: {raw!r}") from exc
