# storefront/main.py
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, configure_logging
from .core import AddToCartIn, CartUpdateIn, SetCartQuantityIn, envelope
from .database import DatabaseError
from .errors import AuthenticationRequired, ValidationFailed
from .identity import verify_webhook
from .logic import (
    cart_add_logic, cart_set_logic, cart_update_logic, list_products_logic,
    product_add_logic, seller_list_logic, user_data_logic
)
from .services import Services, build_services
from .sync import handle_identity_event

logger = logging.getLogger(__name__)

router = APIRouter()
bearer = HTTPBearer(auto_error=False)

# ---------------------------
# Dependencies
# ---------------------------
def get_services(request: Request) -> Services:
    return request.app.state.services

def current_user_id(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                    services: Services = Depends(get_services)) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()
    return services.identity.verify_token(credentials.credentials)

# ---------------------------
# Cart endpoints
# ---------------------------
@router.post("/cart/update")
def cart_update(payload: CartUpdateIn, user_id: str = Depends(current_user_id),
                services: Services = Depends(get_services)):
    return cart_update_logic(services.db, user_id, payload)

@router.post("/cart/add")
def cart_add(payload: AddToCartIn, user_id: str = Depends(current_user_id),
             services: Services = Depends(get_services)):
    return cart_add_logic(services.db, user_id, payload)

@router.post("/cart/set")
def cart_set(payload: SetCartQuantityIn, user_id: str = Depends(current_user_id),
             services: Services = Depends(get_services)):
    return cart_set_logic(services.db, user_id, payload)

# ---------------------------
# Product endpoints
# ---------------------------
@router.get("/product/list")
def product_list(services: Services = Depends(get_services)):
    return list_products_logic(services.db)

@router.get("/product/seller-list")
def seller_list(user_id: str = Depends(current_user_id),
                services: Services = Depends(get_services)):
    return seller_list_logic(services.db, services.identity, user_id)

@router.post("/product/add", status_code=201)
async def product_add(user_id: str = Depends(current_user_id),
                      services: Services = Depends(get_services),
                      name: Optional[str] = Form(None),
                      description: Optional[str] = Form(None),
                      price: Optional[str] = Form(None),
                      category: Optional[str] = Form(None),
                      offer_price: Optional[str] = Form(None, alias="offerPrice"),
                      images: Optional[List[UploadFile]] = File(None)):
    return await product_add_logic(
        services.db, services.media, services.identity, user_id,
        name, description, price, category, offer_price, images or [],
    )

# ---------------------------
# User endpoints
# ---------------------------
@router.get("/user/data")
def user_data(user_id: str = Depends(current_user_id),
              services: Services = Depends(get_services)):
    return user_data_logic(services.db, services.identity, user_id)

# ---------------------------
# Identity provider webhooks
# ---------------------------
@router.post("/webhooks/identity")
async def identity_webhook(request: Request, services: Services = Depends(get_services)):
    body = await request.body()
    if services.webhook_secret:
        verify_webhook(services.webhook_secret, request.headers, body)
    try:
        event = json.loads(body)
    except ValueError:
        raise ValidationFailed("Invalid JSON payload")
    if not isinstance(event, dict):
        raise ValidationFailed("Invalid event payload")

    event_type = str(event.get("type") or "")
    result = await run_in_threadpool(
        handle_identity_event, services.db, services.monitor, event_type, event.get("data") or {}
    )
    # sync failures are reported in the body, never as an error status
    if result is None:
        return envelope(f"Ignored event {event_type}")
    return envelope(result.message, {"event": result.event, "userId": result.user_id},
                    success=result.ok)

# ---------------------------
# App factory
# ---------------------------
def _install_error_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(envelope(str(exc.detail), success=False),
                            status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg", "Invalid request")
        return JSONResponse(envelope(f"{loc}: {msg}" if loc else msg, success=False),
                            status_code=400)

    @app.exception_handler(DatabaseError)
    async def database_error(request: Request, exc: DatabaseError):
        logger.error("Database failure on %s: %s", request.url.path, exc)
        return JSONResponse(envelope(str(exc) or "Database error", success=False),
                            status_code=500)


def create_app(services: Optional[Services] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    if services is None:
        services = build_services(settings)

    app = FastAPI(title="storefront")
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)
    app.include_router(router)
    return app


def main():
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
