"""
FastAPI host adapter for the VAT check handler.

The framework only routes and translates: the request is turned into an
IncomingRequest, and the handler's HTTPResponse is sent back unchanged
(status, JSON body, CORS headers). The handler and its VIES client are
created and closed in the application lifespan.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .audit_logger import AuditLogger
from .config import SystemConfig, load_config_from_env
from .handler import VatCheckHandler
from .models import HTTPResponse, IncomingRequest


CHECK_PATHS = ("/api/check-vat", "/check")

# Routed to the handler so that it can answer 405 itself; any other method
# reaches it through the 405 exception handler below
ROUTED_METHODS = ["GET", "POST", "OPTIONS", "HEAD", "PUT", "PATCH", "DELETE", "TRACE"]

router = APIRouter(tags=["vat"])


async def to_incoming_request(request: Request) -> IncomingRequest:
    """Translate a framework request into the handler's request model."""
    body: Optional[bytes] = None
    if request.method.upper() == "POST":
        body = await request.body()

    return IncomingRequest(
        method=request.method,
        query=dict(request.query_params),
        body=body,
        headers=dict(request.headers),
        remote_addr=request.client.host if request.client else None,
    )


def to_framework_response(response: HTTPResponse) -> Response:
    if response.body is None:
        return Response(status_code=response.status_code, headers=response.headers)
    return JSONResponse(
        status_code=response.status_code,
        content=response.body,
        headers=response.headers,
    )


async def check_vat(request: Request) -> Response:
    handler: VatCheckHandler = request.app.state.handler
    incoming = await to_incoming_request(request)
    return to_framework_response(await handler.handle(incoming))


for path in CHECK_PATHS:
    router.add_api_route(path, check_vat, methods=ROUTED_METHODS, include_in_schema=path == CHECK_PATHS[0])


def register_error_handlers(app: FastAPI) -> None:
    """Answer unrouted methods on the check paths with the handler's own 405."""

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 405 and request.url.path in CHECK_PATHS:
            return await check_vat(request)
        return await http_exception_handler(request, exc)


def create_app(
    config: Optional[SystemConfig] = None,
    handler: Optional[VatCheckHandler] = None,
) -> FastAPI:
    """
    Build the ASGI application.

    Args:
        config: System configuration; read from the environment when omitted
        handler: Optional pre-built handler (tests inject one with a stubbed registry)
    """
    if handler is None:
        config = config or load_config_from_env()
        logger = AuditLogger.from_config(config.logging.level, config.logging.output_format)
        handler = VatCheckHandler(config=config, logger=logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with handler:
            yield

    app = FastAPI(title="VAT Checker", version=__version__, lifespan=lifespan)
    app.state.handler = handler
    app.include_router(router)
    register_error_handlers(app)
    return app
