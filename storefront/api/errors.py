from fastapi import HTTPException

from storefront.models.schemas import Notification
from storefront.services.errors import CaptureUnavailable, NotFound, StoreUnavailable

_STATUS = {
    NotFound: 404,
    CaptureUnavailable: 409,
    StoreUnavailable: 503,
}


def http_error(error: Exception | None, notifications: list[Notification], status_code: int = 400) -> HTTPException:
    """Turn a failed operation and the notifications it raised into an HTTPException."""
    for error_type, code in _STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break
    message = notifications[-1].description if notifications else str(error)
    return HTTPException(
        status_code=status_code,
        detail={
            "message": message,
            "notifications": [n.model_dump() for n in notifications],
        },
    )
