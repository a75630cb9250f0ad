"""Page lookup by slug."""

import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from app.models.page import PageModel
from app.services.client import get_backend_client
from app.services.directus import DirectusError, describe_error

logger = logging.getLogger(__name__)

SLUG_PLACEHOLDER = "{{slug}}"

PAGE_QUERY = """{
  page(filter: { slug: { _eq: "{{slug}}" } }) {
      slug
      title
      script
      content
      style
  }
}"""


def _quote_slug(slug: str) -> str:
    """Escape *slug* for use inside a double-quoted GraphQL string."""
    # JSON string escapes are valid GraphQL string escapes
    return json.dumps(slug)[1:-1]


def build_page_query(slug: str, query: str = PAGE_QUERY) -> str:
    """Insert *slug* at the first ``{{slug}}`` placeholder of *query*.

    The slug is escaped as the body of a double-quoted GraphQL string
    (``"`` becomes ``\\"``, backslashes and control characters are escaped
    too), so custom templates must place ``{{slug}}`` inside quotes.
    Ordinary slugs such as ``foo-bar`` are inserted unchanged.
    """
    return query.replace(SLUG_PLACEHOLDER, _quote_slug(slug), 1)


async def get_page(slug: str, query: str = PAGE_QUERY) -> Optional[PageModel]:
    """Return the first page whose slug matches, or *None* when nothing matches.

    Raises:
        RuntimeError: if the query fails or the response cannot be read.
    """
    client = await get_backend_client()

    document = build_page_query(slug, query)

    try:
        resp = await client.query(document)
        pages = list(resp["page"])
        result = PageModel.model_validate(pages.pop(0)) if pages else None
    except (DirectusError, httpx.HTTPError, KeyError, TypeError, ValidationError) as exc:
        logger.error("Failed to retrieve page %r: %s", slug, exc)
        raise RuntimeError(f"failed to retrieve page: {describe_error(exc)}") from exc

    logger.debug("get_page(slug=%s) result: %s", slug, result)
    return result
