from fastapi import Depends, Request, Response

from storefront.config import settings
from storefront.services.cart import CartSession
from storefront.services.conversations import ConversationRegistry
from storefront.services.notifications import Notifier
from storefront.services.session_id import ensure_session_id

SESSION_COOKIE_MAX_AGE = 10 * 365 * 24 * 3600


def get_db_path() -> str:
    """Provide the database path to endpoint functions."""
    return settings.SQLITE_DB_PATH


def get_session_id(request: Request, response: Response) -> str:
    """The browser's cart session id, issuing the cookie on first contact."""
    key = settings.SESSION_COOKIE_NAME
    storage = dict(request.cookies)
    session_id = ensure_session_id(storage, key)
    if request.cookies.get(key) != session_id:
        response.set_cookie(key, session_id, max_age=SESSION_COOKIE_MAX_AGE, httponly=True, samesite="lax")
    return session_id


def get_cart(
    db_path: str = Depends(get_db_path),
    session_id: str = Depends(get_session_id),
) -> CartSession:
    return CartSession(db_path, session_id, Notifier())


def get_registry(request: Request) -> ConversationRegistry:
    return request.app.state.conversations
