import logging
from typing import Optional

# FastAPI creates the app object and defines the different routes
from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import NetworkError, ValidationError
from .logsetup import configure_logging
from .toolbox import ApiResponse, ToolboxService

logger = logging.getLogger(__name__)

settings = Settings.from_env()
configure_logging(settings.log_level)

app = FastAPI(title="Network Trust Diagnostics")

# One facade for the process; inspections themselves share no state.
toolbox = ToolboxService(settings=settings)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ApiResponse.fail(message).to_dict())


@app.exception_handler(ValidationError)
async def _validation_error(_request, exc: ValidationError) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(NetworkError)
async def _network_error(_request, exc: NetworkError) -> JSONResponse:
    logger.warning("network error: %s", exc)
    return _error(502, str(exc))


@app.get("/health")
def health():
    return {"ok": True}


# DNSSEC posture of a domain
@app.get("/api/toolbox/dnssec")
async def dnssec_check(
    domain: str = Query(..., min_length=1, max_length=253),
    nameserver: Optional[str] = Query(None, max_length=64),
):
    result = await toolbox.dnssec_check(domain, nameserver)
    return JSONResponse(content=ApiResponse.ok(result).to_dict())


# TLS certificate of host:port
@app.get("/api/toolbox/ssl")
async def ssl_check(
    domain: str = Query(..., min_length=1, max_length=253),
    port: Optional[int] = Query(None),
):
    result = await toolbox.ssl_check(domain, port)
    return JSONResponse(content=ApiResponse.ok(result).to_dict())
