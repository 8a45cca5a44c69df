from typing import Optional

from fastapi import HTTPException, Header, Depends

from carwash.core.config import settings
from carwash.models.db_models import Actor, Role

async def verify_secret_token(x_secret_token: Optional[str] = Header(None)):
    """
    Verify the shared secret sent by the app in the X-Secret-Token header.
    Skipped when no SECRET_KEY is configured (local development).
    """
    if not settings.SECRET_KEY:
        return True

    if x_secret_token != settings.SECRET_KEY:
        raise HTTPException(status_code=403, detail="Invalid secret token")
    return True

async def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
    x_shop_id: Optional[str] = Header(None),
    _: bool = Depends(verify_secret_token),
) -> Actor:
    """
    Identity of the caller, as resolved by the app's auth layer and forwarded
    in headers. Passed explicitly into every booking operation.
    """
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Id header")

    try:
        role = Role(x_actor_role.lower()) if x_actor_role else Role.CUSTOMER
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_actor_role}")

    return Actor(id=x_actor_id, role=role, shop_id=x_shop_id)
