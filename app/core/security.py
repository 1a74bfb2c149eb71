import hmac

from fastapi import HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from starlette.status import HTTP_401_UNAUTHORIZED

from app.core.config import get_settings

admin_pin_header = APIKeyHeader(name="x-admin-pin", auto_error=False)


def check_admin_pin(pin: str | None, expected: str) -> bool:
    if not pin:
        return False
    return hmac.compare_digest(pin.encode("utf-8"), expected.encode("utf-8"))


def require_admin_pin(pin: str = Security(admin_pin_header)) -> str:
    """
    Vérifie que le PIN admin envoyé dans l'en-tête est correct.
    """
    if check_admin_pin(pin, get_settings().ADMIN_PIN):
        return pin
    raise HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail="Incorrect PIN. Please try again.",
    )
