from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

SERVICE_MODE_NORMAL = "normal"
SERVICE_MODE_MAINTENANCE = "maintenance"


class SiteConfig(BaseModel):
    """Site-wide settings read from the ``global`` singleton.

    Every field is optional so that an empty record can stand in when the
    backend returns no ``global`` object.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    navbar_config: Any = None
    service_mode: Optional[str] = None
    """Either ``"normal"`` or ``"maintenance"``."""
    date_updated: Optional[datetime] = None

    # Only set when ``service_mode`` is ``"maintenance"``.
    maintenance_page_title: Optional[str] = None
    maintenance_page_body: Optional[str] = None

    @property
    def in_maintenance(self) -> bool:
        return self.service_mode == SERVICE_MODE_MAINTENANCE
