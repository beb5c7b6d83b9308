from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.config import config
from app.connectors.google_oauth import google_oauth_client
from app.db import User, create_db_and_tables
from app.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from app.routes import router as crud_router
from app.routes.health_routes import router as health_router
from app.schemas import UserRead, UserUpdate
from app.users import SECRET, auth_backend, current_active_user, fastapi_users


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Not needed if you setup a migration system like Alembic
    await create_db_and_tables()
    yield


def registration_allowed():
    if not config.REGISTRATION_ENABLED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Registration is disabled"
        )
    return True


def build_allowed_origins() -> list[str]:
    allowed_origins = [origin.rstrip("/") for origin in config.CORS_ORIGINS]
    if config.FRONTEND_URL:
        frontend_url = config.FRONTEND_URL.rstrip("/")
        if frontend_url not in allowed_origins:
            allowed_origins.append(frontend_url)

    # For local development, also allow common localhost origins
    if not config.BACKEND_URL:
        allowed_origins.extend(["http://localhost:3000", "http://127.0.0.1:3000"])
    return allowed_origins


app = FastAPI(lifespan=lifespan)

# The middleware added last runs first
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    SecurityHeadersMiddleware,
    enable_hsts=bool(config.BACKEND_URL and config.BACKEND_URL.startswith("https://")),
)

# When using credentials, we must specify exact origins (not "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=build_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Outermost, so everything inside sees the client address and public scheme
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.include_router(
    fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"]
)
app.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
)

# The CSRF cookie must have secure=False for HTTP (localhost development)
is_secure_context = bool(config.BACKEND_URL and config.BACKEND_URL.startswith("https://"))

app.include_router(
    fastapi_users.get_oauth_router(
        google_oauth_client,
        auth_backend,
        SECRET,
        redirect_url=(
            f"{config.BACKEND_URL}/auth/google/callback" if config.BACKEND_URL else None
        ),
        is_verified_by_default=True,
        csrf_token_cookie_secure=is_secure_context,
    ),
    prefix="/auth/google",
    tags=["auth"],
    dependencies=[Depends(registration_allowed)],  # blocks OAuth sign-up when disabled
)

app.include_router(health_router)
app.include_router(crud_router, prefix="/api/v1", tags=["crud"])


@app.get("/verify-token")
async def authenticated_route(user: User = Depends(current_active_user)):
    return {"message": "Token is valid"}
