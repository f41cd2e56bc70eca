"""
Token auth: the bearer JWT subject is the staff username.
"""
from datetime import timedelta, datetime
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from gymdesk.core.config import settings
from gymdesk.core.database import get_db
from gymdesk.core.logging_config import get_logger
from gymdesk.core.security import verify_password, create_access_token, decode_access_token
from gymdesk.models.user import User, RoleEnum
from gymdesk.schemas.auth import Token, UserResponse

logger = get_logger("auth")

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Any:
    """Returns the current User. Annotated as Any so FastAPI does not use SQLAlchemy User as a Pydantic response type."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        logger.warning("get_current_user: no token")
        raise credentials_exception

    payload = decode_access_token(token)
    if payload is None:
        logger.warning("get_current_user: token decode failed")
        raise credentials_exception

    username: str = payload.get("sub")
    if username is None:
        logger.warning("get_current_user: no sub in payload")
        raise credentials_exception

    user = db.query(User).filter(
        User.username == username,
        User.is_active == True
    ).first()

    if user is None:
        logger.warning("get_current_user: user not found or inactive, username=%s", username)
        raise credentials_exception
    return user


def require_roles(*roles: RoleEnum):
    """Dependency factory restricting an endpoint to the given roles."""
    def checker(current_user: User = Depends(get_current_user)) -> Any:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return current_user
    return checker


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """Login: returns JWT in body."""
    username = form_data.username.strip()
    logger.info("login attempt for username=%s", username)

    user = db.query(User).filter(
        User.username == username,
        User.is_active == True
    ).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning("login failed for username=%s (user=%s)", username, user is not None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user.last_login = datetime.utcnow()
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username, "uid": user.id, "role": user.role.value},
        expires_delta=access_token_expires
    )
    db.commit()

    logger.info("login success for username=%s user_id=%s role=%s", username, user.id, user.role.value)
    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(access_token_expires.total_seconds())
    )


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user
