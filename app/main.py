import logging
from pathlib import Path
from typing import Annotated, Optional
from urllib.parse import urlencode

import requests
from fastapi import FastAPI, Path as PathParam, Query, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from app.schemas import (
    BooleanQueryParam,
    RelatedTermsResponse,
    StudiesResponse,
    StudyFilterParam,
    StudyView,
    TermParam,
    TermsResponse,
)
from core.config import settings
from core.http import NeurosynthHTTPError
from services.boolean_query import append_term_to_query, insert_symbol, normalize_boolean_query
from services.controller import ExplorerController, PanelState
from services.neurosynth_api import fetch_related_terms, fetch_terms, search_studies

app = FastAPI(title=settings.PROJECT_NAME)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

LOGIC_SYMBOLS = ("AND", "OR", "NOT", "(", ")", '"')

# Mount static files directory
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")


def page_url(**params) -> str:
    """Build a link back to the explorer page, dropping empty parameters."""
    cleaned = {k: v for k, v in params.items() if v not in (None, "")}
    return f"/?{urlencode(cleaned)}" if cleaned else "/"


def _remote_error_response(exc: Exception, **extra) -> JSONResponse:
    """Map a failed remote call to a 502 carrying the upstream status line."""
    if isinstance(exc, NeurosynthHTTPError):
        body = {"detail": "Upstream API error", "status_code": exc.status_code, "error": str(exc)}
    else:
        body = {"detail": "Upstream API unreachable", "error": str(exc)}
    return JSONResponse({**body, **extra}, status_code=502)


@app.get("/")
async def home(
    request: Request,
    t1: Annotated[str, Query(max_length=200)] = "",
    q: Annotated[str, Query(max_length=500)] = "",
    year_from: Annotated[str, Query(max_length=10)] = "",
    year_to: Annotated[str, Query(max_length=10)] = "",
    sort: Annotated[str, Query(max_length=10)] = "desc",
    live: bool = False,
):
    """
    Explorer page: term list, related terms for t1, and studies for query q.

    Links generated by this page (term list, related chips, logic toolbar) all
    point back here with updated parameters. Toolbar links set live=1, which
    only searches once the query is complete instead of showing a notice.
    """
    controller = ExplorerController()
    controller.load_terms()
    if t1 and controller.terms_panel.state is not PanelState.ERROR:
        controller.filter_term_list(t1)
    if t1.strip():
        controller.submit_related(t1)

    filter_error = None
    try:
        filters = StudyFilterParam(year_from=year_from, year_to=year_to, sort=sort)
    except ValidationError as exc:
        logger.warning("Invalid study filters: %s", exc)
        filter_error = "; ".join(err["msg"] for err in exc.errors(include_context=False))
        filters = StudyFilterParam()
    controller.set_filters(filters.year_from, filters.year_to, filters.sort)

    if q.strip():
        if live:
            controller.query_text = q
            controller.run_live_query(q)
        else:
            controller.submit_query(q)

    shared = {"t1": t1, "year_from": year_from, "year_to": year_to, "sort": filters.sort}
    term_links = [(term, page_url(**{**shared, "t1": term, "q": q})) for term in controller.terms_panel.items]
    related_links = [
        (term, page_url(**{**shared, "q": append_term_to_query(q, term)}))
        for term in controller.related_panel.items
    ]
    toolbar_links = [
        (symbol, page_url(**{**shared, "q": insert_symbol(q, symbol)[0], "live": 1}))
        for symbol in LOGIC_SYMBOLS
    ]

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "terms": controller.terms_panel,
            "related": controller.related_panel,
            "studies": controller.studies_panel,
            "term_links": term_links,
            "related_links": related_links,
            "toolbar_links": toolbar_links,
            "t1": t1,
            "q": q,
            "prepared_query": normalize_boolean_query(q),
            "year_from": year_from,
            "year_to": year_to,
            "sort": filters.sort,
            "filter_error": filter_error,
        },
    )


@app.get("/api/terms")
async def api_terms():
    try:
        terms = fetch_terms()
    except (requests.RequestException, NeurosynthHTTPError) as exc:
        logger.warning("API error fetching terms: %s", exc)
        return _remote_error_response(exc)
    return JSONResponse(TermsResponse(terms=terms).model_dump())


@app.get("/api/terms/{term}")
async def api_related_terms(term: Annotated[str, PathParam(min_length=1, max_length=200)]):
    """Related terms for a single term, most similar first."""
    try:
        term = TermParam(term=term).term
    except ValidationError as exc:
        return JSONResponse({"detail": "Invalid term", "errors": exc.errors(include_context=False)}, status_code=400)

    try:
        related = fetch_related_terms(term)
    except (requests.RequestException, NeurosynthHTTPError) as exc:
        logger.warning("API error fetching related terms for %s: %s", term, exc)
        return _remote_error_response(exc)
    return JSONResponse(RelatedTermsResponse(term=term, related=related).model_dump())


@app.get("/api/query/{query}/studies")
async def api_query_studies(
    query: Annotated[str, PathParam(min_length=1, max_length=500)],
    year_from: Annotated[Optional[int], Query(ge=0, le=9999)] = None,
    year_to: Annotated[Optional[int], Query(ge=0, le=9999)] = None,
    sort: Annotated[str, Query(max_length=10)] = "desc",
    seq: Annotated[Optional[int], Query(ge=0, description="Client sequence number, echoed back")] = None,
):
    """
    Boolean study search with year filtering and sorting.

    Clients issuing requests while the user types should pass an increasing seq
    and ignore any response whose seq is older than the newest one they sent.
    """
    try:
        validated = BooleanQueryParam(query=query)
        filters = StudyFilterParam(year_from=year_from, year_to=year_to, sort=sort)
    except ValidationError as exc:
        return JSONResponse({"detail": "Invalid query", "errors": exc.errors(include_context=False), "seq": seq}, status_code=400)

    try:
        studies = search_studies(
            validated.query,
            year_from=filters.year_from,
            year_to=filters.year_to,
            sort=filters.sort,
        )
    except (requests.RequestException, NeurosynthHTTPError) as exc:
        logger.warning("API error searching studies for %r: %s", validated.query, exc)
        return _remote_error_response(exc, seq=seq)
    except ValueError as exc:
        return JSONResponse({"detail": str(exc), "seq": seq}, status_code=400)

    views = [StudyView.from_record(s) for s in studies]
    payload = StudiesResponse(
        query=validated.query,
        prepared_query=normalize_boolean_query(validated.query),
        count=len(views),
        studies=views,
        seq=seq,
    )
    return JSONResponse(payload.model_dump())


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=settings.LOG_LEVEL)
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
