import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.models.page import PageModel
from app.services.page import get_page

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/pages", tags=["Pages"])


@router.get("/{slug}", response_model=PageModel, summary="Fetch a page by slug")
@limiter.limit("60/minute")
async def page_by_slug(request: Request, slug: str) -> PageModel:
    """Return the CMS page stored under *slug*; 404 when there is none."""
    logger.info("Page request received", extra={"slug": slug})

    try:
        page = await get_page(slug)
    except RuntimeError as exc:
        logger.error("Error fetching page %s: %s", slug, exc)
        raise HTTPException(status_code=502, detail=str(exc))

    if page is None:
        raise HTTPException(status_code=404, detail=f"No page found for slug '{slug}'.")
    return page
