import uuid
from datetime import datetime

import sqlmodel

from app.utils.misc import get_utc_now

from ._base import BaseModel


class Influencer(BaseModel, table=True):
    __tablename__: str = "influencers"

    id: str = sqlmodel.Field(
        default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36
    )
    name: str = sqlmodel.Field(max_length=255)
    email: str | None = sqlmodel.Field(default=None, max_length=255, nullable=True)
    updated_at: datetime = sqlmodel.Field(
        default_factory=get_utc_now, sa_type=sqlmodel.DateTime(timezone=True)
    )
