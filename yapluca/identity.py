# yapluca/identity.py
"""
Identity provider and document store.

The service treats both as remote collaborators: it only relies on the
operations below (create user, sign in, sign out, auth-state subscription,
document get/set). This module ships a SQLAlchemy-backed implementation of
that contract, which is what the service runs against by default.

Auth-state listeners are invoked once with the current identity when they
subscribe, then on every sign in, sign out and token refresh.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Callable, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from yapluca.db import SessionLocal
from yapluca import models, utils
from yapluca.schemas import IdentityUser

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6

AuthListener = Callable[[Optional[IdentityUser]], None]


class ProviderError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class IdentityProvider:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.current_user: Optional[IdentityUser] = None
        self._listeners: List[AuthListener] = []

    def create_user(self, email: str, password: str) -> IdentityUser:
        """Create an account and sign it in, like the hosted providers do."""
        email = (email or "").strip().lower()
        if not EMAIL_RE.match(email):
            raise ProviderError("auth/invalid-email", "The email address is badly formatted.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ProviderError("auth/weak-password", "Password should be at least 6 characters.")
        db = self.session_factory()
        try:
            account = models.IdentityAccount(email=email, password_hash=utils.hash_password(password),
                                             last_sign_in_at=datetime.now(timezone.utc))
            db.add(account)
            db.commit()
            db.refresh(account)
            user = self._to_user(account)
        except IntegrityError:
            db.rollback()
            raise ProviderError("auth/email-already-in-use", "The email address is already in use by another account.")
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderError("auth/internal-error", str(e))
        finally:
            db.close()
        self._set_current(user)
        return user

    def update_profile(self, user: IdentityUser, display_name: str) -> IdentityUser:
        db = self.session_factory()
        try:
            account = db.get(models.IdentityAccount, user.uid)
            if account is None:
                raise ProviderError("auth/user-not-found", "There is no user record corresponding to this identifier.")
            account.display_name = display_name
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderError("auth/internal-error", str(e))
        finally:
            db.close()
        user.display_name = display_name
        if self.current_user is not None and self.current_user.uid == user.uid:
            self.current_user.display_name = display_name
        return user

    def sign_in(self, email: str, password: str) -> IdentityUser:
        email = (email or "").strip().lower()
        db = self.session_factory()
        try:
            account = db.query(models.IdentityAccount).filter(models.IdentityAccount.email == email).first()
            if account is None or not utils.verify_password(password or "", account.password_hash):
                raise ProviderError("auth/invalid-credential", "The supplied auth credential is incorrect.")
            account.last_sign_in_at = datetime.now(timezone.utc)
            db.commit()
            user = self._to_user(account)
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderError("auth/internal-error", str(e))
        finally:
            db.close()
        self._set_current(user)
        return user

    def sign_out(self) -> None:
        if self.current_user is None:
            return
        self._set_current(None)

    def refresh_token(self) -> Optional[IdentityUser]:
        if self.current_user is None:
            return None
        claims = utils.verify_token(self.current_user.id_token or "")
        if claims.get("sub") != self.current_user.uid:
            logger.warning("id token for %s no longer verifies, signing out", self.current_user.uid)
            self._set_current(None)
            return None
        refreshed = self.current_user.model_copy(
            update={"id_token": utils.issue_id_token(self.current_user.uid, self.current_user.email)})
        self._set_current(refreshed)
        return refreshed

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self.current_user)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _set_current(self, user: Optional[IdentityUser]) -> None:
        self.current_user = user
        for listener in list(self._listeners):
            listener(user)

    @staticmethod
    def _to_user(account) -> IdentityUser:
        return IdentityUser(uid=account.uid, email=account.email, display_name=account.display_name,
                            id_token=utils.issue_id_token(account.uid, account.email))


class DocumentStore:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        db = self.session_factory()
        try:
            doc = db.get(models.Document, (collection, doc_id))
            return dict(doc.data) if doc is not None else None
        except SQLAlchemyError as e:
            raise ProviderError("documents/unavailable", str(e))
        finally:
            db.close()

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        db = self.session_factory()
        try:
            doc = db.get(models.Document, (collection, doc_id))
            if doc is None:
                db.add(models.Document(collection=collection, doc_id=doc_id, data=data))
            else:
                doc.data = data
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderError("documents/unavailable", str(e))
        finally:
            db.close()
