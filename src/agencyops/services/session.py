from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from supabase import AuthError, Client

from agencyops.domain.models import Session, UserProfile
from agencyops.domain.stages import UserRole

logger = logging.getLogger(__name__)

Listener = Callable[[Session | None], None]


class SessionError(RuntimeError):
    pass


class AuthProvider(Protocol):
    def sign_in(self, email: str, password: str) -> Mapping[str, Any]:
        ...

    def sign_out(self) -> None:
        ...


def profile_from_provider(user: Mapping[str, Any]) -> UserProfile:
    """Build the role-aware profile from a provider user payload."""
    metadata = user.get("public_metadata") or {}
    role = metadata.get("role") or UserRole.MEMBER.value
    if role not in {r.value for r in UserRole}:
        logger.warning("Unknown role %r for %s, treating as member", role, user.get("email"))
        role = UserRole.MEMBER.value
    return UserProfile(
        email=user.get("email") or "",
        full_name=user.get("full_name") or user.get("first_name") or "User",
        role=role,
        avatar_url=user.get("avatar_url"),
    )


class SupabaseAuth:
    """Password sign-in against the store's auth endpoint."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def sign_in(self, email: str, password: str) -> Mapping[str, Any]:
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as exc:
            raise SessionError(f"Sign-in failed: {exc}") from exc
        if response.session is None or response.user is None:
            raise SessionError("Sign-in returned no session.")
        user = response.user
        metadata = dict(user.user_metadata or {})
        expires_at = None
        if response.session.expires_at:
            expires_at = datetime.fromtimestamp(response.session.expires_at, tz=timezone.utc).isoformat()
        return {
            "access_token": response.session.access_token,
            "expires_at": expires_at,
            "user": {
                "id": user.id,
                "email": user.email,
                "full_name": metadata.get("full_name"),
                "first_name": metadata.get("first_name"),
                "avatar_url": metadata.get("avatar_url"),
                "public_metadata": dict(user.app_metadata or {}),
            },
        }

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except AuthError as exc:
            raise SessionError(f"Sign-out failed: {exc}") from exc


class SessionManager:
    def __init__(self, provider: AuthProvider) -> None:
        self.provider = provider
        self._session: Session | None = None
        self._listeners: list[Listener] = []

    def current_session(self) -> Session | None:
        return self._session

    @property
    def profile(self) -> UserProfile | None:
        return self._session.profile if self._session else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; the returned callable removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def restore(self, session: Session | None) -> None:
        """Adopt a previously saved session without telling listeners."""
        self._session = session

    def sign_in(self, email: str, password: str) -> Session:
        payload = self.provider.sign_in(email, password)
        user = payload.get("user") or {}
        session = Session(
            access_token=payload["access_token"],
            user_id=user.get("id") or "",
            profile=profile_from_provider(user),
            expires_at=payload.get("expires_at"),
        )
        self._set(session)
        return session

    def sign_out(self) -> None:
        self.provider.sign_out()
        self._set(None)

    def has_role(self, role: str | UserRole | Iterable[str | UserRole]) -> bool:
        if self._session is None:
            return False
        wanted = [role] if isinstance(role, str) else list(role)
        return self._session.profile.role in {getattr(r, "value", r) for r in wanted}

    def _set(self, session: Session | None) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)


def session_file_listener(path: Path) -> Listener:
    """Keep ``path`` in step with the current session; signing out removes it."""

    def persist(session: Session | None) -> None:
        if session is None:
            path.unlink(missing_ok=True)
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(dataclasses.asdict(session), indent=2), encoding="utf-8")

    return persist


def load_session(path: Path) -> Session | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Session(
            access_token=data["access_token"],
            user_id=data["user_id"],
            profile=UserProfile(**data["profile"]),
            expires_at=data.get("expires_at"),
        )
    except (ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable session file %s: %s", path, exc)
        return None
