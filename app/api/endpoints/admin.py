from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.dependencies import require_admin
from app.core.errors import BadRequest
from app.db.session import get_db
from app.models.users import User
from app.schemas.user import UserEnvelope, UserResponse
from app.services import users

router = APIRouter()
group_tags = ["Admin"]


def _load_target(db: Session, user_id: str, admin: User) -> User:
    target = users.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if target.id == admin.id:
        raise BadRequest("Cannot change your own ban state")
    return target


@router.post(
    "/users/{user_id}/ban",
    tags=group_tags,
    response_model=UserEnvelope,
)
def ban_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)) -> UserEnvelope:
    """Ban an identity. Its tokens keep their signature but the auth gate refuses them."""
    target = users.set_banned(db, _load_target(db, user_id, admin), True)
    return UserEnvelope(user=UserResponse.from_record(target))


@router.post(
    "/users/{user_id}/unban",
    tags=group_tags,
    response_model=UserEnvelope,
)
def unban_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)) -> UserEnvelope:
    target = users.set_banned(db, _load_target(db, user_id, admin), False)
    return UserEnvelope(user=UserResponse.from_record(target))
