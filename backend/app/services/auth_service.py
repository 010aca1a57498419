import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.security import verify_password
from app.models.user import User
from app.schemas.auth import Login

logger = logging.getLogger(__name__)


class AuthService:
    @staticmethod
    def authenticate_user(db: Session, login_data: Login) -> Optional[User]:
        """Match on email case-insensitively; None for unknown users or a wrong password."""
        stmt = select(User).where(func.lower(User.email) == login_data.email.lower())
        user = db.execute(stmt).scalar_one_or_none()

        if not user or not verify_password(login_data.password, user.hashed_password):
            logger.info("Failed login for %s", login_data.email)
            return None

        return user
