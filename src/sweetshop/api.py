"""FastAPI application exposing the sweet shop catalog and inventory."""

import logging
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from pydantic import ValidationError as SettingsError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import catalog, credentials, inventory
from .auth import get_db, require_admin, require_user
from .config import Settings, get_settings
from .database import build_engine, build_session_factory, init_db
from .errors import InternalError, describe_validation_errors
from .query import SweetQuery
from .schemas import (
    InventoryResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RestockRequest,
    SweetCreate,
    SweetResponse,
    SweetUpdate,
    UserResponse,
)
from .tokens import JWTTokenService, TokenService

logger = logging.getLogger(__name__)

SENSITIVE_RATE_LIMIT = "5/minute"

# Prometheus counter to track API requests by method, route and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

sweets_router = APIRouter(prefix="/sweets", tags=["sweets"])


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=_endpoint_label(request),
            status="500",
        ).inc()
        raise
    REQUEST_COUNTER.labels(
        method=request.method,
        endpoint=_endpoint_label(request),
        status=str(response.status_code),
    ).inc()
    logger.info(
        "response %s %s status %s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"message": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"message": describe_validation_errors(exc.errors())},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = JSONResponse(
        {"message": f"Rate limit exceeded: {exc.detail}"},
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        {"message": InternalError.message},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register(
    request: Request,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Create an account. The caller may choose the role."""
    credentials.create_user(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=credentials.assign_registration_role(payload.role),
        rounds=settings.bcrypt_rounds,
    )
    return MessageResponse(message="User registered successfully")


def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = credentials.authenticate(
        db, payload.email, payload.password, rounds=settings.bcrypt_rounds
    )
    tokens: TokenService = request.app.state.token_service
    return LoginResponse(
        token=tokens.issue(user.id, user.role, user.email),
        user=UserResponse.model_validate(user),
    )


def build_auth_router(limiter: Limiter) -> APIRouter:
    """Auth routes, rate limited by the given application's limiter."""
    router = APIRouter(prefix="/auth", tags=["auth"])
    router.add_api_route(
        "/register",
        limiter.limit(SENSITIVE_RATE_LIMIT)(register),
        methods=["POST"],
        response_model=MessageResponse,
        status_code=status.HTTP_201_CREATED,
    )
    router.add_api_route(
        "/login",
        limiter.limit(SENSITIVE_RATE_LIMIT)(login),
        methods=["POST"],
        response_model=LoginResponse,
    )
    return router


@sweets_router.get("", response_model=List[SweetResponse])
def list_sweets(db: Session = Depends(get_db)):
    """Return every sweet in the catalog."""
    return catalog.list_sweets(db)


@sweets_router.get("/search", response_model=List[SweetResponse])
def search_sweets(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    db: Session = Depends(get_db),
):
    """Filter sweets by text, category and price range."""
    query = SweetQuery.from_params(q, category, min_price, max_price)
    return catalog.list_sweets(db, query)


@sweets_router.get("/{sweet_id}", response_model=SweetResponse)
def get_sweet(sweet_id: str, db: Session = Depends(get_db)):
    return catalog.get_sweet(db, sweet_id)


@sweets_router.post(
    "",
    response_model=SweetResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_sweet(payload: SweetCreate, db: Session = Depends(get_db)):
    return catalog.create_sweet(db, payload.model_dump())


@sweets_router.put(
    "/{sweet_id}",
    response_model=SweetResponse,
    dependencies=[Depends(require_admin)],
)
def update_sweet(sweet_id: str, payload: SweetUpdate, db: Session = Depends(get_db)):
    return catalog.update_sweet(db, sweet_id, payload.model_dump(exclude_unset=True))


@sweets_router.delete(
    "/{sweet_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_sweet(sweet_id: str, db: Session = Depends(get_db)):
    catalog.delete_sweet(db, sweet_id)
    return MessageResponse(message="Sweet deleted successfully")


@sweets_router.post(
    "/{sweet_id}/purchase",
    response_model=InventoryResponse,
    dependencies=[Depends(require_user)],
)
def purchase_sweet(sweet_id: str, db: Session = Depends(get_db)):
    sweet = inventory.purchase(db, sweet_id)
    return InventoryResponse(
        message="Purchase successful", sweet=SweetResponse.model_validate(sweet)
    )


@sweets_router.post(
    "/{sweet_id}/restock",
    response_model=InventoryResponse,
    dependencies=[Depends(require_admin)],
)
def restock_sweet(
    sweet_id: str,
    payload: Optional[RestockRequest] = None,
    db: Session = Depends(get_db),
):
    amount = inventory.resolve_restock_amount(payload.amount if payload else None)
    sweet = inventory.restock(db, sweet_id, amount)
    return InventoryResponse(
        message=f"Restocked {amount} items", sweet=SweetResponse.model_validate(sweet)
    )


def create_app(
    settings: Optional[Settings] = None, token_service: Optional[TokenService] = None
) -> FastAPI:
    """Build the application around an explicit configuration."""
    settings = settings or get_settings()

    engine = build_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title=settings.api_title)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = token_service or JWTTokenService.from_settings(settings)

    limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.include_router(build_auth_router(limiter), prefix=settings.api_prefix)
    app.include_router(sweets_router, prefix=settings.api_prefix)
    return app


def main() -> None:
    """Serve the API with uvicorn using environment configuration."""
    try:
        settings = get_settings()
    except SettingsError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.critical("invalid configuration, refusing to start: %s", exc)
        raise SystemExit(1) from exc

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
