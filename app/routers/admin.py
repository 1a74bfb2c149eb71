from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_401_UNAUTHORIZED

from app.core.config import Settings
from app.core.deps import get_settings_dep
from app.core.security import check_admin_pin
from app.schemas.catalog import PinIn

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/verify-pin")
def verify_pin(body: PinIn, settings: Settings = Depends(get_settings_dep)):
    if not check_admin_pin(body.pin, settings.ADMIN_PIN):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Incorrect PIN. Please try again.")
    return {"ok": True}
