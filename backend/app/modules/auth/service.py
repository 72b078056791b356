"""
Auth Service - Registration, login and profile lookup.
"""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import Role, User
from app.modules.auth.policy import Principal


class AuthService:
    """
    Service for user accounts.

    Usage:
        auth = AuthService(db_session)
        user, token = await auth.login("jane@example.com", "secret123")
    """

    INVALID_CREDENTIALS = "Invalid email or password"

    def __init__(self, db: AsyncSession) -> None:
        """Initialize auth service with database session."""
        self.db = db

    async def get_user(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        query = select(User).where(User.email == email)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Role = Role.USER,
    ) -> User:
        """
        Create a new account.

        Raises:
            ConflictError: Email already registered
        """
        if await self.get_user_by_email(email):
            raise ConflictError("Email already in use")

        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=role,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # Concurrent registration won the unique index
            raise ConflictError("Email already in use") from e

        logger.info(f"Registered user {user.id}")
        return user

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """
        Check credentials and issue an access token.

        Unknown email and wrong password fail identically.

        Returns:
            Tuple of (user, signed token)

        Raises:
            AuthenticationError: Credentials do not match
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning("Rejected login attempt")
            raise AuthenticationError(self.INVALID_CREDENTIALS)

        principal = Principal(id=user.id, email=user.email, role=user.role)
        token = create_access_token(principal.to_claims())
        logger.info(f"User {user.id} logged in")
        return user, token

    async def get_profile(self, principal: Principal) -> User:
        user = await self.get_user(principal.id)
        if not user:
            raise NotFoundError("User not found")
        return user
