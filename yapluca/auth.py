# yapluca/auth.py
import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from pydantic import ValidationError
from yapluca.identity import DocumentStore, IdentityProvider, ProviderError
from yapluca.schemas import AuthResult, IdentityUser, ProfileStats, SessionRecord, UserProfile
from yapluca.storage import LocalStorage, StorageError, SESSION_KEY

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class AuthService:
    """
    Session lifecycle on top of the identity provider.

    Remote failures come back as AuthResult(success=False, error=<provider message>);
    nothing here retries.
    """

    def __init__(self, provider: IdentityProvider, documents: DocumentStore, storage: LocalStorage):
        self.provider = provider
        self.documents = documents
        self.storage = storage

    def register(self, email: str, password: str, profile: dict) -> AuthResult:
        name = profile.get("name") or ""
        try:
            user = self.provider.create_user(email, password)
        except ProviderError as e:
            logger.error("Registration error: %s", e.message)
            return AuthResult(success=False, error=e.message)

        # identity exists from here on; a failed profile write is reported, not undone
        try:
            self.provider.update_profile(user, name)
            user_data = UserProfile(
                name=name,
                email=user.email,
                phone=profile.get("phone") or "",
                created_at=datetime.now(timezone.utc).isoformat(),
                accepted_terms=True,
                profile=ProfileStats(),
            )
            self.documents.set(USERS_COLLECTION, user.uid, user_data.model_dump())
        except ProviderError as e:
            logger.error("Registration error for %s after identity creation: %s", user.uid, e.message)
            return AuthResult(success=False, user=user, error=e.message)

        logger.info("registered user %s", user.uid)
        return AuthResult(success=True, user=user, user_data=user_data)

    def login(self, email: str, password: str) -> AuthResult:
        try:
            user = self.provider.sign_in(email, password)
            user_data = self._load_profile(user.uid)
            session = SessionRecord(user_id=user.uid, email=user.email, display_name=user.display_name)
            self.storage.set_item(SESSION_KEY, session.model_dump())
        except ProviderError as e:
            logger.error("Login error: %s", e.message)
            return AuthResult(success=False, error=e.message)
        except StorageError as e:
            logger.error("Login error: %s", e)
            return AuthResult(success=False, error=str(e))

        logger.info("user %s logged in", user.uid)
        return AuthResult(success=True, user=user, user_data=user_data)

    def logout(self) -> AuthResult:
        try:
            self.provider.sign_out()
            self.storage.remove_item(SESSION_KEY)
        except (ProviderError, StorageError) as e:
            logger.error("Logout error: %s", e)
            return AuthResult(success=False, error=str(e))
        return AuthResult(success=True)

    def refresh_session(self) -> AuthResult:
        """Reissue the ID token; a token that no longer verifies ends the session."""
        if self.provider.current_user is None:
            return AuthResult(success=False, error="No user is signed in.")
        user = self.provider.refresh_token()
        if user is None:
            self.logout()
            return AuthResult(success=False, error="The session has expired, please sign in again.")
        return AuthResult(success=True, user=user)

    def get_current_user(self) -> Optional[IdentityUser]:
        return self.provider.current_user

    def on_auth_state_change(self, callback: Callable[[Optional[IdentityUser]], None]) -> Callable[[], None]:
        return self.provider.on_auth_state_changed(callback)

    def get_user_data(self, uid: str) -> Optional[UserProfile]:
        if not uid:
            return None
        try:
            return self._load_profile(uid)
        except ProviderError as e:
            logger.debug("could not fetch profile for %s: %s", uid, e.message)
            return None

    def check_session(self) -> Optional[SessionRecord]:
        try:
            data = self.storage.get_item(SESSION_KEY)
            return SessionRecord(**data) if data else None
        except (StorageError, TypeError, ValidationError) as e:
            logger.error("Error checking session: %s", e)
            return None

    def _load_profile(self, uid: str) -> Optional[UserProfile]:
        data = self.documents.get(USERS_COLLECTION, uid)
        if data is None:
            return None
        try:
            return UserProfile(**data)
        except ValidationError as e:
            raise ProviderError("documents/invalid-data", str(e))
