"""Site-wide configuration read from the Directus ``global`` singleton."""

import logging

import httpx
from pydantic import ValidationError

from app.models.site import SiteConfig
from app.services.client import get_backend_client
from app.services.directus import DirectusError

logger = logging.getLogger(__name__)

SITE_CONFIG_QUERY = """{
  global {
    title
    description
    navbar_config
    service_mode
    date_updated
  }
}"""

MAINTENANCE_MODE_QUERY = """{
  global {
    maintenance_page_title
    maintenance_page_body
  }
}"""


async def get_site_config() -> SiteConfig:
    """Fetch the site configuration.

    When the site is in maintenance mode a second query fetches the
    maintenance page title and body and adds them to the result.

    Raises:
        RuntimeError: if either query fails.
    """
    client = await get_backend_client()

    try:
        resp = await client.query(SITE_CONFIG_QUERY)
    except (DirectusError, httpx.HTTPError) as exc:
        err_msg = f"Failed to retrieve site config: {exc}"
        logger.error(err_msg)
        raise RuntimeError(err_msg) from exc

    site_global = (resp or {}).get("global")
    if isinstance(site_global, dict):
        try:
            config = SiteConfig.model_validate(site_global)
        except ValidationError as exc:
            err_msg = f"Failed to read site config: {exc}"
            logger.error(err_msg)
            raise RuntimeError(err_msg) from exc
    else:
        logger.error("No global object found in get_site_config, should not happen.")
        config = SiteConfig()

    if config.in_maintenance:
        logger.info("Site is in maintenance mode")
        try:
            resp = await client.query(MAINTENANCE_MODE_QUERY)
        except (DirectusError, httpx.HTTPError) as exc:
            err_msg = f"Failed to retrieve maintenance mode config: {exc}"
            logger.error(err_msg)
            raise RuntimeError(err_msg) from exc

        maintenance = (resp or {}).get("global") or {}
        try:
            config = SiteConfig(
                **config.model_dump(
                    exclude_unset=True,
                    exclude={"maintenance_page_title", "maintenance_page_body"},
                ),
                maintenance_page_title=maintenance.get("maintenance_page_title"),
                maintenance_page_body=maintenance.get("maintenance_page_body"),
            )
        except ValidationError as exc:
            err_msg = f"Failed to read maintenance mode config: {exc}"
            logger.error(err_msg)
            raise RuntimeError(err_msg) from exc

    logger.debug("get_site_config result: %s", config.model_dump_json(exclude_unset=True))
    return config
