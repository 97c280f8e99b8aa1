from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.schemas.users import UserBrief


class CommentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    text: str = Field(min_length=1, max_length=2_000)


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    author_id: int
    author: UserBrief | None = None
    text: str
    is_system: bool
    created_at: datetime
