from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class PageModel(BaseModel):
    """One CMS page as returned by the ``page`` collection.

    Custom page queries may ask for fewer or more fields than the default
    one, so every field is optional and unknown fields are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    slug: Optional[str] = None
    title: Optional[str] = None
    script: Optional[str] = None  # inline JavaScript injected into the page
    content: Optional[str] = None  # HTML body, null when the editor field is empty
    style: Optional[str] = None  # inline CSS injected into the page
