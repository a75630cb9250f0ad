import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.models.site import SiteConfig
from app.services.site import get_site_config

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(tags=["Site"])


@router.get(
    "/site",
    response_model=SiteConfig,
    response_model_exclude_unset=True,
    summary="Site configuration",
    description=(
        "Returns the title, description, navigation and service mode of the "
        "site. When the site is in maintenance mode the maintenance page title "
        "and body are included as well."
    ),
)
@limiter.limit("60/minute")
async def site_config(request: Request) -> SiteConfig:
    try:
        return await get_site_config()
    except RuntimeError as exc:
        logger.error("Site config unavailable: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc))
