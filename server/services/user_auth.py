"""User authentication service with JWT handling."""

from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any

from jose import jwt, JWTError
from sqlmodel import select

from core.config import Settings
from core.database import Database
from core.exceptions import AuthenticationError, ConflictError, ValidationFailedError
from core.logging import get_logger
from models.auth import User

logger = get_logger(__name__)


class UserAuthService:
    """Handles user registration, login, and JWT token management."""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.settings = settings
        self._algorithm = "HS256"

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(User).where(User.email == email.lower().strip())
            )
            return result.scalars().first()

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        async with self.database.get_session() as session:
            return await session.get(User, user_id)

    async def register(self, email: str, password: str) -> User:
        if len(password) < self.settings.password_min_length:
            raise ValidationFailedError(
                f"Password must be at least {self.settings.password_min_length} characters",
                code="WEAK_PASSWORD",
            )

        if await self.get_user_by_email(email):
            raise ConflictError(
                "Email already registered",
                code="EMAIL_EXISTS",
                suggestion="Log in instead, or use a different email address",
            )

        user = User.create(email=email, password=password)
        async with self.database.get_session() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)

        logger.info("User registered", user_id=user.id)
        return user

    async def login(self, email: str, password: str) -> User:
        user = await self.get_user_by_email(email)
        if not user or not user.verify_password(password):
            raise AuthenticationError("Invalid email or password", code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise AuthenticationError("Account is disabled", code="ACCOUNT_DISABLED")

        async with self.database.get_session() as session:
            db_user = await session.get(User, user.id)
            if db_user:
                db_user.last_login = datetime.now(timezone.utc)
                await session.commit()
                user = db_user

        logger.info("User logged in", user_id=user.id)
        return user

    def create_access_token(self, user: User) -> str:
        """Create JWT access token for user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "email": user.email,
            "exp": now + timedelta(minutes=self.settings.jwt_expire_minutes),
            "iat": now,
        }
        return jwt.encode(payload, self.settings.jwt_secret_key, algorithm=self._algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify JWT token and return payload.
        Returns None if token is invalid or expired.
        """
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self._algorithm]
            )
        except JWTError as e:
            logger.debug("Token verification failed", error=str(e))
            return None
