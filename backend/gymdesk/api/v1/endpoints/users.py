from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from gymdesk.core.database import get_db
from gymdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.core.security import get_password_hash
from gymdesk.models.payment import Payment
from gymdesk.models.user import User, RoleEnum
from gymdesk.api.v1.endpoints.auth import require_roles
from gymdesk.schemas.auth import UserCreate, UserResponse

logger = get_logger("users")

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


@router.post("/", response_model=UserResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(RoleEnum.ADMIN)),
):
    """Create a staff user (admin only)"""
    username = user_data.username.strip()
    if not username:
        raise ValidationError("Username is required")
    if len(user_data.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if db.query(User).filter(User.username == username).first():
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=True,
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("Username already exists") from e

    logger.info("user created: id=%s username=%s role=%s by=%s", user.id, user.username, user.role.value, current_user.id)
    return user


@router.get("/", response_model=List[UserResponse])
async def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(RoleEnum.ADMIN, RoleEnum.MANAGER)),
):
    """List staff users"""
    return db.query(User).order_by(User.username).all()


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(RoleEnum.ADMIN)),
):
    """Delete a staff user (admin only). Users who recorded payments are kept."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    if db.query(Payment.id).filter(Payment.user_id == user_id).first():
        raise ConflictError("Cannot delete a user who has recorded payments")

    db.delete(user)
    db.commit()
    logger.info("user deleted: id=%s by=%s", user_id, current_user.id)
    return None
