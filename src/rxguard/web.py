import logging
import os
import platform
from contextlib import asynccontextmanager
from time import time

import anyio
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rxguard import prometheus as prom
from rxguard.__version__ import __version__
from rxguard.address import match_address
from rxguard.cache import DEFAULT_MAX_SIZE, DEFAULT_TTL_SECONDS
from rxguard.errors import GlobError
from rxguard.glob import translate_glob
from rxguard.models import (
    AddressMatchResponse,
    CheckLimits,
    GlobTranslationResponse,
    HealthResponse,
    ReplacementCheckResponse,
    SafetyCheckResponse,
)
from rxguard.regex import REPETITION_CEILING, UNBOUNDED_REPETITION
from rxguard.safe_regex import DEFAULT_REPETITION_LIMIT, DEFAULT_STAR_HEIGHT_LIMIT, cache_info


log_level_name = os.getenv('RXGUARD_LOG_LEVEL', 'INFO').upper()
log_level = getattr(logging, log_level_name, logging.INFO)
logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting rxguard {__version__} (cache size {DEFAULT_MAX_SIZE}, ttl {DEFAULT_TTL_SECONDS}s, "
        f"star height limit {DEFAULT_STAR_HEIGHT_LIMIT}, repetition limit {DEFAULT_REPETITION_LIMIT})"
    )

    yield

    logger.info("Shutting down rxguard")


app = FastAPI(
    title='rxguard',
    version=__version__,
    description="""
    Safety gate for regular expressions, replacement templates and wildcard
    addresses supplied by configuration authors.

    ## Endpoints

    * `/v1/check` - Reject patterns prone to catastrophic backtracking (ReDoS)
    * `/v1/replacement` - Validate a `$1` / `${name}` replacement template against a pattern
    * `/v1/glob` - Translate an address glob into a regex
    * `/v1/match` - Check whether two wildcard addresses match each other
    * `/metrics` - Prometheus metrics

    ## Limits

    - **star height**: nesting depth of unbounded quantifiers, `(a+)+` has 2
    - **repetition**: product of finite quantifier bounds, `(a{50}){50}` costs 2500
    - **backreferences**: refused unless explicitly allowed

    All results are cached per input, so repeated checks of the same pattern are cheap.
    """,
    license_info={"name": "MIT"},
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


def get_python_packages() -> dict:
    import importlib.metadata

    python_packages = {}
    key_packages = ['fastapi', 'pydantic', 'uvicorn', 'regex', 'prometheus-client']
    for package in key_packages:
        try:
            python_packages[package] = importlib.metadata.version(package)
        except importlib.metadata.PackageNotFoundError:
            pass

    return python_packages


def get_constants() -> dict:
    return {
        'LOG_LEVEL': log_level_name,
        'CACHE_MAX_SIZE': DEFAULT_MAX_SIZE,
        'CACHE_TTL_SECONDS': DEFAULT_TTL_SECONDS,
        'STAR_HEIGHT_LIMIT': DEFAULT_STAR_HEIGHT_LIMIT,
        'REPETITION_LIMIT': DEFAULT_REPETITION_LIMIT,
        'UNBOUNDED_REPETITION': UNBOUNDED_REPETITION,
        'REPETITION_CEILING': REPETITION_CEILING,
    }


def get_app_env_variables() -> dict:
    return {key: value for key, value in os.environ.items() if key.startswith('RXGUARD_')}


@app.get('/', tags=['General'], response_model=HealthResponse)
async def health():
    """
    Health check and service introspection endpoint.

    Returns service status, version, key package versions, configuration
    constants, RXGUARD_* environment variables and cache statistics.
    """
    prom.record_http_response('GET', '/', 200)
    return {
        'status': 'ok',
        'app_version': __version__,
        'python_version': platform.python_version(),
        'python_packages': get_python_packages(),
        'constants': get_constants(),
        'environment': get_app_env_variables(),
        'caches': cache_info(),
    }


@app.get('/metrics', tags=['Monitoring'], include_in_schema=True)
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes cache hit/miss counts, check outcomes and durations, address match
    counts, HTTP responses and errors.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get(
    '/v1/check',
    tags=['Analysis'],
    summary="Check a regex against the safety limits",
    response_model=SafetyCheckResponse,
    responses={
        200: {"description": "Check completed; see `safe` for the verdict"},
        500: {"description": "Internal error during analysis"},
    },
)
async def check(
    regex: str = Query(..., description="Regular expression pattern to check", examples=["(a+)+", "^[a-z]+$"]),
    star_height_limit: int = Query(DEFAULT_STAR_HEIGHT_LIMIT, ge=0, description="Maximum star height"),
    repetition_limit: int = Query(DEFAULT_REPETITION_LIMIT, ge=0, description="Maximum finite repetition cost"),
    allow_backreference: bool = Query(False, description="Accept patterns with backreferences"),
) -> SafetyCheckResponse:
    """
    Check a pattern for malformed syntax and catastrophic backtracking risk.

    Malformed and unsafe patterns are reported with `safe: false` and a 200
    status; `error_type`, `reason` and `position` say why.
    """
    limits = CheckLimits(
        star_height_limit=star_height_limit,
        repetition_limit=repetition_limit,
        allow_backreference=allow_backreference,
    )
    try:
        time_before = time()
        # Offload CPU-bound parsing to thread pool
        result = await anyio.to_thread.run_sync(SafetyCheckResponse.run, regex, limits)
        prom.record_check_duration('check', time() - time_before)
        prom.record_http_response('GET', '/v1/check', 200)
        return result
    except Exception as e:
        logger.error(f"Error checking regex: {str(e)}")
        prom.record_error('internal_error')
        prom.record_http_response('GET', '/v1/check', 500)
        raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}")


@app.get(
    '/v1/replacement',
    tags=['Analysis'],
    summary="Validate a replacement template against a regex",
    response_model=ReplacementCheckResponse,
)
async def replacement(
    regex: str = Query(..., description="Pattern whose groups the template refers to", examples=["(?<x>a)(b)"]),
    template: str = Query(..., description="Replacement template using $n and ${name}", examples=["$1-${x}"]),
) -> ReplacementCheckResponse:
    """Check that every `$n` / `${name}` in the template names a group the pattern defines."""
    try:
        time_before = time()
        result = await anyio.to_thread.run_sync(ReplacementCheckResponse.run, regex, template)
        prom.record_check_duration('replacement', time() - time_before)
        prom.record_http_response('GET', '/v1/replacement', 200)
        return result
    except Exception as e:
        logger.error(f"Error checking replacement: {str(e)}")
        prom.record_error('internal_error')
        prom.record_http_response('GET', '/v1/replacement', 500)
        raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}")


@app.get(
    '/v1/glob',
    tags=['Addresses'],
    summary="Translate an address glob into a regex",
    response_model=GlobTranslationResponse,
    responses={400: {"description": "Malformed glob"}},
)
async def glob(
    glob: str = Query(..., description="Glob using *, ?, [...] and {a,b}", examples=["foo.*", "{red,blue}_box"]),
) -> GlobTranslationResponse:
    try:
        regex = translate_glob(glob)
    except GlobError as e:
        prom.record_error('glob_error')
        prom.record_http_response('GET', '/v1/glob', 400)
        raise HTTPException(status_code=400, detail=str(e))

    prom.record_http_response('GET', '/v1/glob', 200)
    return GlobTranslationResponse(glob=glob, regex=regex)


@app.get(
    '/v1/match',
    tags=['Addresses'],
    summary="Check whether two wildcard addresses match",
    response_model=AddressMatchResponse,
)
async def match(
    a: str = Query(..., description="First address (may contain wildcards)", examples=["foo.bar"]),
    b: str = Query(..., description="Second address (may contain wildcards)", examples=["foo.*"]),
) -> AddressMatchResponse:
    """Either address may act as the pattern; the result is true if either direction matches."""
    try:
        matched = await anyio.to_thread.run_sync(match_address, a, b)
    except Exception as e:
        logger.error(f"Error matching addresses: {str(e)}")
        prom.record_error('internal_error')
        prom.record_http_response('GET', '/v1/match', 500)
        raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}")

    prom.record_http_response('GET', '/v1/match', 200)
    return AddressMatchResponse(address_a=a, address_b=b, matches=matched)
