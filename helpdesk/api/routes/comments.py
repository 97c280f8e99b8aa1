from fastapi import APIRouter, status

from helpdesk.api.deps import CurrentUser, DBDep
from helpdesk.schemas.comments import CommentCreate, CommentOut
from helpdesk.schemas.common import Envelope, ListEnvelope
from helpdesk.services import tickets as ticket_service

router = APIRouter()


@router.post("/{ticket_id}/comments", response_model=Envelope[CommentOut], status_code=status.HTTP_201_CREATED)
async def add_comment(ticket_id: int, payload: CommentCreate, db: DBDep, current: CurrentUser):
    c = await ticket_service.add_comment(db, current, ticket_id, payload.text)
    return Envelope(data=CommentOut.model_validate(c))


@router.get("/{ticket_id}/comments", response_model=ListEnvelope[CommentOut])
async def list_comments(ticket_id: int, db: DBDep, current: CurrentUser):
    rows = await ticket_service.list_comments(db, current, ticket_id)
    return ListEnvelope(count=len(rows), data=[CommentOut.model_validate(c) for c in rows])
