import logging
import uuid

from fastapi import Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin, models
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    CookieTransport,
    JWTStrategy,
)
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase

from app.config import config
from app.connectors.google_oauth import fetch_google_display_name
from app.db import User, get_user_db

logger = logging.getLogger(__name__)


SECRET = config.SECRET_KEY


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    async def _stored_refresh_token(self, oauth_name: str, account_id: str) -> str | None:
        user = await self.user_db.get_by_oauth_account(oauth_name, account_id)
        if not user:
            return None
        for account in user.oauth_accounts:
            if account.oauth_name == oauth_name and account.account_id == account_id:
                return account.refresh_token
        return None

    async def oauth_callback(
        self,
        oauth_name: str,
        access_token: str,
        account_id: str,
        account_email: str,
        expires_at: int | None = None,
        refresh_token: str | None = None,
        request: Request | None = None,
        *,
        associate_by_email: bool = False,
        is_verified_by_default: bool = False,
    ) -> User:
        """
        Create or update the user from a Google login.

        Google only issues a refresh token on first consent; later logins keep
        the stored one instead of blanking it.
        """
        if not refresh_token:
            refresh_token = await self._stored_refresh_token(oauth_name, account_id)
            if not refresh_token:
                logger.warning("Google login for %s returned no refresh token", account_id)

        user = await super().oauth_callback(
            oauth_name,
            access_token,
            account_id,
            account_email,
            expires_at,
            refresh_token,
            request,
            associate_by_email=associate_by_email,
            is_verified_by_default=is_verified_by_default,
        )

        display_name = await fetch_google_display_name(access_token)
        if display_name and display_name != user.display_name:
            user = await self.user_db.update(user, {"display_name": display_name})
        return user

    async def on_after_register(self, user: User, request: Request | None = None):
        logger.info("User %s has registered.", user.id)

    async def on_after_login(
        self,
        user: User,
        request: Request | None = None,
        response: Response | None = None,
    ):
        logger.info("User %s logged in.", user.id)


async def get_user_manager(user_db: SQLAlchemyUserDatabase = Depends(get_user_db)):
    yield UserManager(user_db)


def get_jwt_strategy() -> JWTStrategy[models.UP, models.ID]:
    return JWTStrategy(secret=SECRET, lifetime_seconds=config.JWT_LIFETIME_SECONDS)


# HttpOnly cookie; the OAuth callback lands the browser on the frontend
class CustomCookieTransport(CookieTransport):
    async def get_login_response(self, token: str) -> Response:
        response = RedirectResponse(config.OAUTH_REDIRECT_URL, status_code=302)
        return self._set_login_cookie(response, token)

    async def get_logout_response(self) -> Response:
        response = JSONResponse({"success": True, "message": "Logout successful"})
        return self._set_logout_cookie(response)


cookie_transport = CustomCookieTransport(
    cookie_max_age=config.JWT_LIFETIME_SECONDS,
    cookie_name="cloud_drive_auth",
    cookie_httponly=True,
    cookie_secure=bool(config.BACKEND_URL and config.BACKEND_URL.startswith("https://")),
    cookie_samesite="lax",
)

auth_backend = AuthenticationBackend(
    name="jwt",
    transport=cookie_transport,
    get_strategy=get_jwt_strategy,
)

bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")

# API clients send the same JWT as an Authorization header
bearer_auth_backend = AuthenticationBackend(
    name="jwt-bearer",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](
    get_user_manager,
    [auth_backend, bearer_auth_backend],
)

current_active_user = fastapi_users.current_user(active=True)
