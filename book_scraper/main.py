"""
Book Metadata Scraper - FastAPI Application
Main entry point with REST API endpoints.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware

from book_scraper.config import config
from book_scraper.errors import ScraperError
from book_scraper.models.book import ErrorResponse
from book_scraper.utils.logger import get_logger, set_trace_id
from book_scraper.adapters.browser_session import BrowserSessionManager
from book_scraper.layers.extraction import BookExtractor


logger = get_logger("main")

# Initialize layers
session_manager = BrowserSessionManager()
extractor = BookExtractor(session_manager)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Warm the shared browser on startup, release it on shutdown."""
    logger.info("server_starting", host=config.HOST, port=config.PORT)
    await extractor.sessions.warm_up()
    yield
    await extractor.sessions.shutdown()
    logger.info("server_stopped")


# Initialize FastAPI app
app = FastAPI(
    title="Book Metadata Scraper",
    description="Extracts structured book metadata from a catalog site with a headless browser",
    version=config.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScraperError)
async def scraper_error_handler(request: Request, exc: ScraperError):
    """Every scraper failure is answered as {"error": message}."""
    logger.error(
        "request_failed",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=str(exc)).model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed query parameters get the same {"error": message} body, with 400."""
    message = "; ".join(
        f"{err['loc'][-1]}: {err['msg']}" if err.get("loc") else err.get("msg", "invalid request")
        for err in exc.errors()
    ) or "invalid request"
    logger.warning("request_invalid", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())


# API Routes
@app.get("/", response_class=PlainTextResponse)
async def liveness():
    """Liveness check."""
    return "OK - scraper server running"


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": config.VERSION,
        "browser_connected": extractor.sessions.is_connected,
    }


@app.get("/warmup", response_class=PlainTextResponse)
async def warmup():
    """
    Launch the browser ahead of traffic and load the catalog once.

    Returns "warmed", or the failure text with status 500.
    """
    trace_id = set_trace_id()
    logger.info("warmup_request", trace_id=trace_id)
    try:
        return await extractor.warmup()
    except ScraperError as e:
        logger.error("warmup_error", error=str(e))
        return PlainTextResponse(str(e), status_code=500)


@app.get("/scrape", responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def scrape(
    identifier: Optional[str] = Query(None, description="Book identifier, e.g. an ISBN"),
    isbn: Optional[str] = Query(None, description="Alias of identifier"),
    timeout: Optional[int] = Query(None, description="Overall budget in milliseconds"),
):
    """
    Scrape the book record for an identifier.

    Returns the record with camelCase keys; failures come back as
    {"error": message} with 400 (missing identifier) or 500.
    """
    trace_id = set_trace_id()
    value = identifier or isbn

    logger.info("scrape_request", identifier=value, timeout=timeout, trace_id=trace_id)

    record = await extractor.extract(value, timeout_ms=timeout)
    return record.to_response()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
