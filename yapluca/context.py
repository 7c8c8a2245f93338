# yapluca/context.py
"""
Process-wide authentication state, owned by the application lifespan.

States: loading -> unauthenticated <-> authenticated. start() reconciles the
persisted session with the provider first and only then subscribes to
auth-state changes, so a stale session is always cleared before the first
state transition is observed.
"""
import logging
from typing import Optional
from yapluca.auth import AuthService
from yapluca.schemas import AuthResult, IdentityUser, UserProfile

logger = logging.getLogger(__name__)

LOADING = "loading"
UNAUTHENTICATED = "unauthenticated"
AUTHENTICATED = "authenticated"


class AuthContext:
    def __init__(self, auth_service: AuthService):
        self.auth_service = auth_service
        self.state = LOADING
        self.user: Optional[IdentityUser] = None
        self.user_data: Optional[UserProfile] = None
        self.loading = True
        self._unsubscribe = None

    @property
    def is_authenticated(self) -> bool:
        return self.state == AUTHENTICATED

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self.check_existing_session()
        self._unsubscribe = self.auth_service.on_auth_state_change(self._on_auth_state_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def check_existing_session(self) -> None:
        session = self.auth_service.check_session()
        if session and not self.auth_service.get_current_user():
            logger.info("clearing stale session for %s", session.user_id)
            self.auth_service.logout()

    def login(self, email: str, password: str) -> AuthResult:
        self.loading = True
        try:
            return self.auth_service.login(email, password)
        finally:
            self.loading = False

    def register(self, email: str, password: str, profile: dict) -> AuthResult:
        self.loading = True
        try:
            result = self.auth_service.register(email, password, profile)
            # the provider signals the new identity before its profile document exists
            if result.success and self.user is not None and self.user.uid == result.user.uid:
                self.user_data = result.user_data
            return result
        finally:
            self.loading = False

    def logout(self) -> AuthResult:
        self.loading = True
        try:
            return self.auth_service.logout()
        finally:
            self.loading = False

    def refresh(self) -> AuthResult:
        return self.auth_service.refresh_session()

    def _on_auth_state_change(self, user: Optional[IdentityUser]) -> None:
        if user is not None:
            self.user = user
            self.user_data = self.auth_service.get_user_data(user.uid)
            self.state = AUTHENTICATED
        else:
            self.user = None
            self.user_data = None
            self.state = UNAUTHENTICATED
        self.loading = False
