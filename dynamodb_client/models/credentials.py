from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionCredentials(BaseModel):
    """Short-lived credentials issued by the session token endpoint.

    Instances are frozen; a refresh always replaces the whole object so a
    reader never sees a secret that does not match its token or expiration.
    """

    access_key_id: str = Field(..., min_length=1)
    secret_access_key: str = Field(..., min_length=1)
    session_token: str = Field(..., min_length=1)
    expiration: datetime

    model_config = ConfigDict(frozen=True)

    @field_validator('expiration')
    @classmethod
    def validate_expiration(cls, v: datetime) -> datetime:
        """Treat naive expiration timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """True while the expiration lies strictly in the future."""
        now = now or datetime.now(timezone.utc)
        return self.expiration > now
