"""User repository - identity records and credentials.

Profiles live at users/{uid}. Password hashes live apart from profiles at
credentials/{sha256(email)} so profile reads never carry them.
"""

from typing import Optional

from config import config, get_logger
from database.id_generation import generate_credential_key, generate_document_id
from database.models import Credentials, UserProfile, now_ms, utc_date
from database.repositories_async.base import BaseRepository
from exceptions import AuthenticationError, ConflictError, ValidationError
from server.utils.validation import MAX_DISPLAY_NAME_LENGTH, clean_text, validate_email
from userland.auth.passwords import check_password_strength, hash_password, verify_password

logger = get_logger(__name__).bind(component="user_repository")


class UserRepository(BaseRepository):
    """Repository for identity operations."""

    async def get_user(self, uid: str) -> Optional[UserProfile]:
        if not uid:
            return None
        return await self._get(UserProfile, f"users/{uid}")

    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> UserProfile:
        """Create a user. Admin role comes from the configured admin email list.

        Raises:
            ValidationError: bad email, password or display name
            ConflictError: email already registered
        """
        email = validate_email(email)
        try:
            check_password_strength(password)
        except ValueError as e:
            raise ValidationError(str(e), field="password") from e

        name = clean_text(display_name or email.split("@")[0], "Display name", MAX_DISPLAY_NAME_LENGTH)

        credential_path = f"credentials/{generate_credential_key(email)}"
        if await self.store.exists(credential_path):
            raise ConflictError("Email already registered", {"field": "email"})

        user = UserProfile(
            uid=generate_document_id(),
            email=email,
            display_name=name,
            is_admin=config.is_admin_email(email),
            last_active_date=utc_date(),
            streak_count=1,
        )
        await self.store.set(f"users/{user.uid}", user.to_doc())
        await self.store.set(
            credential_path,
            Credentials(uid=user.uid, password_hash=hash_password(password)).to_doc(),
        )
        logger.info("user registered", user_id=user.uid, is_admin=user.is_admin)
        return user

    async def authenticate(self, email: str, password: str) -> UserProfile:
        """Check credentials and return the profile.

        Raises:
            AuthenticationError: unknown email or wrong password
        """
        normalized = (email or "").strip().lower()
        if not normalized:
            raise AuthenticationError("Invalid email or password")

        credentials = await self._get(
            Credentials, f"credentials/{generate_credential_key(normalized)}"
        )
        if credentials is None or not verify_password(password, credentials.password_hash):
            logger.warning("login failed", reason="bad_credentials")
            raise AuthenticationError("Invalid email or password")

        user = await self.get_user(credentials.uid)
        if user is None:
            raise AuthenticationError("Invalid email or password")

        return await self.touch_activity(user)

    async def touch_activity(self, user: UserProfile) -> UserProfile:
        """Advance the daily streak on the first activity of a UTC day"""
        today = utc_date()
        if user.last_active_date == today:
            return user

        yesterday = utc_date(now_ms() - 86_400_000)
        streak = user.streak_count + 1 if user.last_active_date == yesterday else 1
        await self.store.update(
            f"users/{user.uid}", {"streakCount": streak, "lastActiveDate": today}
        )
        return user.model_copy(update={"streak_count": streak, "last_active_date": today})

    async def update_display_name(self, user: UserProfile, display_name: str) -> UserProfile:
        name = clean_text(display_name, "Display name", MAX_DISPLAY_NAME_LENGTH)
        await self.store.update(f"users/{user.uid}", {"displayName": name})
        logger.info("display name updated", user_id=user.uid)
        return user.model_copy(update={"display_name": name})
