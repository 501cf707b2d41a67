"""aiohttp HTTP surface for the frontend.

Routes:
    GET  /search?q&limit&offset&congress&chamber&billType&sort
    GET  /bill/{congress}/{type}/{number}
    POST /translate
    GET  /health

Unhandled core errors become a 500 carrying a generic message plus the
underlying error text; a missing bill is a 404.
"""

import json
import logging

from aiohttp import web
from pydantic import ValidationError

from congressiq.analysis.normalizer import FULL_TEXT_MAX_CHARS
from congressiq.config import Settings
from congressiq.indexing.bulk_indexer import DEFAULT_INDEX, create_es_client
from congressiq.schemas.models import SearchParams, TranslateRequest
from congressiq.scrapers.congress_gov import CongressGovClient
from congressiq.services.query import QueryService
from congressiq.services.translator import TranslationService

logger = logging.getLogger(__name__)

QUERY_SERVICE = web.AppKey("query_service", QueryService)
TRANSLATOR = web.AppKey("translator", TranslationService)
TRANSLATOR_SESSION = web.AppKey("translator_session", object)

_SEARCH_PARAMS = ("q", "limit", "offset", "congress", "chamber", "billType", "sort")


def _error(status: int, message: str, details: str | None = None) -> web.Response:
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


async def search(request: web.Request) -> web.Response:
    raw = {k: request.query[k] for k in _SEARCH_PARAMS if request.query.get(k, "") != ""}
    try:
        params = SearchParams.model_validate(raw)
    except ValidationError as e:
        return _error(400, "Invalid search parameters", str(e))

    logger.info("Search request: %s", params.model_dump(exclude_none=True))
    try:
        result = await request.app[QUERY_SERVICE].search(params)
    except Exception as e:
        logger.exception("Search API error")
        return _error(500, "Failed to search bills", str(e))
    return web.json_response(result.model_dump(mode="json", by_alias=True))


async def bill_detail(request: web.Request) -> web.Response:
    congress = request.match_info["congress"]
    bill_type = request.match_info["type"].lower()
    number = request.match_info["number"]
    if not congress.isdigit() or not number.isdigit():
        return _error(400, "Congress and bill number must be numeric")

    logger.info("Fetching bill details: congress=%s type=%s number=%s", congress, bill_type, number)
    try:
        bill = await request.app[QUERY_SERVICE].get_bill(int(congress), bill_type, number)
    except Exception as e:
        logger.exception("Bill detail API error")
        return _error(500, "Failed to fetch bill details", str(e))
    if bill is None:
        return _error(404, "Bill not found")
    return web.json_response({"bill": bill.model_dump(mode="json", by_alias=True)})


async def translate(request: web.Request) -> web.Response:
    try:
        body = await request.json()
        payload = TranslateRequest.model_validate(body)
    except (json.JSONDecodeError, ValidationError) as e:
        return _error(400, "Invalid request body", str(e))
    if not payload.summary and not payload.full_text:
        return _error(400, "Missing summary or fullText")

    translator = request.app.get(TRANSLATOR)
    if translator is None:
        return _error(500, "Translation service unavailable")
    try:
        text = await translator.translate(request.app[TRANSLATOR_SESSION], payload)
    except Exception as e:
        logger.exception("Translate API error")
        return _error(500, "Failed to translate bill", str(e))
    return web.json_response({"translation": text})


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(query_service: QueryService | None = None,
               translator: TranslationService | None = None,
               translator_session=None) -> web.Application:
    """Application with routes; services may be injected directly (tests)."""
    app = web.Application()
    if query_service is not None:
        app[QUERY_SERVICE] = query_service
    if translator is not None:
        app[TRANSLATOR] = translator
        app[TRANSLATOR_SESSION] = translator_session
    app.router.add_get("/search", search)
    app.router.add_get("/bill/{congress}/{type}/{number}", bill_detail)
    app.router.add_post("/translate", translate)
    app.router.add_get("/health", health)
    return app


def build_app(settings: Settings, config: dict | None = None) -> web.Application:
    """Production wiring: sessions and the ES client live for the app's lifetime."""
    config = config or {}
    app = create_app()

    async def resources(app: web.Application):
        client = CongressGovClient(settings, config)
        session = client.create_session()
        es = create_es_client(settings)
        translator = TranslationService(settings, config)
        translator_session = translator.create_session()
        index_name = config.get("search", {}).get("index_name", DEFAULT_INDEX)
        full_text_max_chars = config.get("ingestion", {}).get("full_text_max_chars", FULL_TEXT_MAX_CHARS)

        app[QUERY_SERVICE] = QueryService(
            client, session, es, index_name, full_text_max_chars=full_text_max_chars,
        )
        app[TRANSLATOR] = translator
        app[TRANSLATOR_SESSION] = translator_session
        logger.info("Serving bills from index '%s'", index_name)
        yield
        await session.close()
        await translator_session.close()
        await es.close()

    app.cleanup_ctx.append(resources)
    return app
