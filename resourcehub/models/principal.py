from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictInt


class Principal(BaseModel):
    """An identified caller as stored in the session by the login flow."""

    id: StrictInt
    login: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)
