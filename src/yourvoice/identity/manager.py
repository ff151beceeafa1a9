"""Identity/session manager: token rehydration, identify flow and the identity gate."""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from src.yourvoice.config import settings
from src.yourvoice.identity.exceptions import (
    IdentityError,
    IdentityInProgressError,
    SessionExpiredError,
)
from src.yourvoice.identity.models import IdentifyResult, UserProfile, UserRole
from src.yourvoice.identity.storage import FileTokenStore, TokenStore
from src.yourvoice.identity.tokens import generate_session_token, stored_token_value
from src.yourvoice.services import PostHogService
from src.yourvoice.services.database import ConflictError, SupabaseQueryBuilder, get_query_builder

logger = logging.getLogger(__name__)

ANONYMOUS_LABEL = "Anonymous"
SESSION_CLEARED = "Session was cleared during identification"

GuardedAction = Callable[[], Any]  # sync or async
Listener = Callable[["IdentityManager"], None]


def normalize_email(email: str) -> str:
    """Trim surrounding whitespace and lowercase an email before lookup or write."""
    return email.strip().lower()


def _error_message(error: Exception) -> str:
    # PostgREST errors carry a human-readable .message
    return getattr(error, "message", None) or str(error) or type(error).__name__


class IdentityManager:
    """
    Owns the client-held session token, the cached profile and the identity gate.

    One instance is created at the application root and handed to every feature
    that needs to know who the user is. All mutation of the token slot and the
    cached profile goes through ``check_session``, ``identify`` and
    ``clear_session``.

    Attributes:
        profile: Cached profile of the identified user, or None
        is_loading: True until the first rehydration finishes and while identify runs
        requires_identity: True when a feature asked for identification

    Example:
        >>> async with IdentityManager() as identity:
        ...     if not identity.is_identified:
        ...         result = await identity.identify("sam@example.com", "Sam", False)
        ...     print(identity.get_display_name())
    """

    def __init__(
        self,
        db: SupabaseQueryBuilder | None = None,
        store: TokenStore | None = None,
        analytics: PostHogService | None = None,
        table: str | None = None,
        token_key: str | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            db: Row-store helper (uses the shared anon-key builder if None)
            store: Persistent token slot (file store from settings if None)
            analytics: Event tracker (PostHogService if None)
            table: Profile table name (default from settings)
            token_key: Storage key for the token (default from settings)
        """
        self._db = db
        if store is None:
            store = FileTokenStore(Path(settings.session_store_path))
        self.store = store
        self.analytics = analytics or PostHogService()
        self.table = table or settings.user_profiles_table
        self.token_key = token_key or settings.session_token_key

        self.profile: UserProfile | None = None
        self.is_loading = True
        self.requires_identity = False

        self._listeners: list[Listener] = []
        self._pending_action: GuardedAction | None = None
        self._inflight: tuple[str, asyncio.Task[IdentifyResult]] | None = None
        # Bumped when identify or clear commits; older in-flight work drops its result
        self._generation = 0

    async def __aenter__(self) -> IdentityManager:
        await self.check_session()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._listeners.clear()

    @property
    def is_identified(self) -> bool:
        return self.profile is not None

    # ------------------------------------------------------------------
    # Rehydration
    # ------------------------------------------------------------------

    async def check_session(self) -> None:
        """
        Restore the cached profile from the locally stored token.

        Resolves to logged-out when no token is stored, when the token matches
        no profile, when the session has expired, or when the backend fails.
        Tokens that no longer resolve are removed from storage so the same dead
        lookup is not repeated on every start. Never raises.
        """
        generation = self._generation
        profile: UserProfile | None = None

        try:
            stored_token = self.store.get(self.token_key)
            if stored_token:
                try:
                    profile = await self._resolve_token(stored_token)
                except SessionExpiredError as e:
                    logger.info(f"Stored session expired: {e}")
                    self._purge_token(stored_token)
                else:
                    if profile is None:
                        logger.info(
                            "Stored session token matches no profile, discarding it",
                            extra={"token_key": self.token_key},
                        )
                        self._purge_token(stored_token)
        except Exception as e:
            logger.error(
                f"Session check error: {e}",
                exc_info=True,
                extra={"error_type": "session_check_failed"},
            )
            profile = None

        if generation != self._generation:
            logger.debug("Discarding session check result superseded by identify/clear")
            return
        if self._identify_running():
            # The running identify owns profile and is_loading until it settles
            logger.debug("Discarding session check result, identify in progress")
            return

        self.profile = profile
        self.is_loading = False
        self._notify()

        if profile is not None:
            logger.info(f"Session restored for profile {profile.id}")
            self.analytics.capture(profile.id, "identity_session_restored")

    async def refresh_profile(self) -> None:
        """Re-run rehydration against the currently stored token."""
        await self.check_session()

    async def _resolve_token(self, token: str) -> UserProfile | None:
        db = await self._get_db()
        row = await db.get_by_field(self.table, "session_token", stored_token_value(token))
        if row is None:
            return None

        profile = UserProfile.model_validate(row)
        if self._is_expired(profile):
            raise SessionExpiredError(f"Session for profile {profile.id} is past its TTL")
        return profile

    def _is_expired(self, profile: UserProfile) -> bool:
        if settings.session_ttl_hours is None:
            return False

        issued_at = profile.updated_at or profile.created_at
        if issued_at is None:
            return False
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=UTC)

        return datetime.now(UTC) - issued_at > timedelta(hours=settings.session_ttl_hours)

    def _purge_token(self, token: str) -> None:
        # Only drop the slot if nobody stored a newer token meanwhile
        if self.store.get(self.token_key) == token:
            self.store.remove(self.token_key)

    # ------------------------------------------------------------------
    # Identify
    # ------------------------------------------------------------------

    async def identify(
        self,
        email: str,
        display_name: str | None = None,
        is_anonymous: bool = True,
    ) -> IdentifyResult:
        """
        Create or fetch the profile for an email and start a new session for it.

        Concurrent calls are single-flight: a second call for the same email
        while one is running receives the running call's result, a call for a
        different email is rejected. Email syntax is not validated here; see
        ``submit_email_capture`` for the form-level checks.

        Args:
            email: Email address (trimmed and lowercased before use)
            display_name: Optional label; an empty value keeps the stored one
            is_anonymous: Whether public content shows the handle instead of the name

        Returns:
            IdentifyResult with the profile on success, or an error message
        """
        normalized = normalize_email(email)

        if self._identify_running():
            inflight_email, task = self._inflight
            if inflight_email == normalized:
                logger.info("Joining in-flight identify call")
                return await asyncio.shield(task)

            error = IdentityInProgressError("Another identification is already in progress")
            logger.warning(str(error), extra={"error_type": "identify_in_progress"})
            return IdentifyResult(success=False, error=str(error))

        task = asyncio.ensure_future(self._identify(normalized, display_name, is_anonymous))
        self._inflight = (normalized, task)
        # Shielded: cancelling the caller leaves the identify running to completion
        result = await asyncio.shield(task)

        # Outside the task, so an action that identifies again does not join itself
        if result.success:
            await self._run_pending_action()
        return result

    def _identify_running(self) -> bool:
        return self._inflight is not None and not self._inflight[1].done()

    async def _identify(
        self, email: str, display_name: str | None, is_anonymous: bool
    ) -> IdentifyResult:
        generation = self._generation
        self.is_loading = True
        self._notify()

        display_name = (display_name or "").strip() or None
        token = generate_session_token()

        try:
            db = await self._get_db()
            existing = await db.get_by_field(self.table, "email", email)

            if existing is not None:
                row = await self._rotate_token(db, existing, token, display_name, is_anonymous)
                is_new = False
            else:
                try:
                    row = await db.insert_record(
                        self.table,
                        {
                            "email": email,
                            "display_name": display_name,
                            "is_anonymous": is_anonymous,
                            "session_token": stored_token_value(token),
                            "role": UserRole.USER.value,
                        },
                    )
                    is_new = True
                except ConflictError:
                    # Another client created this email between our lookup and insert
                    logger.warning("Profile created concurrently, retrying as token rotation")
                    existing = await db.get_by_field(self.table, "email", email)
                    if existing is None:
                        raise
                    row = await self._rotate_token(
                        db, existing, token, display_name, is_anonymous
                    )
                    is_new = False

            if row is None:
                raise IdentityError("Profile write returned no data")

            profile = UserProfile.model_validate(row)

            if generation != self._generation:
                logger.warning(
                    f"Session cleared while identifying profile {profile.id}, dropping result",
                    extra={"error_type": "identify_superseded"},
                )
                self.is_loading = False
                self._notify()
                return IdentifyResult(success=False, error=SESSION_CLEARED)

            self.store.set(self.token_key, token)

        except Exception as e:
            logger.error(
                f"Identity error: {e}",
                exc_info=True,
                extra={"error_type": "identify_failed"},
            )
            self.is_loading = False
            self._notify()
            self.analytics.capture(
                "anonymous", "identity_identify_failed", {"error": type(e).__name__}
            )
            return IdentifyResult(success=False, error=_error_message(e))

        self._generation += 1
        self.profile = profile
        self.is_loading = False
        self.requires_identity = False
        self._notify()

        logger.info(
            f"Profile {profile.id} identified",
            extra={"profile_id": profile.id, "is_new": is_new},
        )
        self.analytics.identify(
            profile.id,
            {
                "role": profile.role.value,
                "is_anonymous": profile.is_anonymous,
                "has_unique_id": profile.unique_id is not None,
            },
        )
        self.analytics.capture(
            profile.id,
            "identity_identified",
            {"is_new": is_new, "is_anonymous": profile.is_anonymous},
        )

        return IdentifyResult(success=True, profile=profile)

    async def _rotate_token(
        self,
        db: SupabaseQueryBuilder,
        existing: dict[str, Any],
        token: str,
        display_name: str | None,
        is_anonymous: bool,
    ) -> dict[str, Any] | None:
        patch: dict[str, Any] = {
            "session_token": stored_token_value(token),
            "is_anonymous": is_anonymous,
            "updated_at": datetime.now(UTC).isoformat(),
        }
        if display_name:
            patch["display_name"] = display_name

        return await db.update_record(self.table, existing["id"], patch)

    # ------------------------------------------------------------------
    # Identity gate
    # ------------------------------------------------------------------

    def request_identity(self) -> None:
        """Flag that a feature needs the user identified (shows the capture prompt)."""
        self.requires_identity = True
        self._notify()

    def cancel_identity_request(self) -> None:
        """Dismiss the capture prompt and drop any action waiting on identification."""
        self.requires_identity = False
        self._pending_action = None
        self._notify()

    async def with_identity(self, action: GuardedAction) -> bool:
        """
        Run ``action`` now if identified, otherwise after the next successful identify.

        Only the most recent waiting action is kept. Errors raised by an action
        run immediately propagate to the caller.

        Returns:
            True if the action ran now, False if it is waiting on identification

        Example:
            >>> ran = await identity.with_identity(lambda: like_voice(voice_id))
            >>> if not ran:
            ...     show_capture_dialog()
        """
        if self.is_identified:
            await self._call(action)
            return True

        self._pending_action = action
        self.request_identity()
        return False

    async def _run_pending_action(self) -> None:
        action, self._pending_action = self._pending_action, None
        if action is None:
            return

        try:
            await self._call(action)
        except Exception as e:
            logger.error(
                f"Action deferred until identification failed: {e}",
                exc_info=True,
                extra={"error_type": "pending_action_failed"},
            )

    @staticmethod
    async def _call(action: GuardedAction) -> None:
        result = action()
        if inspect.isawaitable(result):
            await result

    # ------------------------------------------------------------------
    # Logout
    # ------------------------------------------------------------------

    def clear_session(self) -> None:
        """
        Log out locally: forget the stored token and the cached profile.

        The profile row keeps its token; use ``revoke_session`` to also
        invalidate it server-side.
        """
        profile_id = self.profile.id if self.profile else None

        self.store.remove(self.token_key)
        self._generation += 1
        self.profile = None
        self.is_loading = False
        self.requires_identity = False
        self._pending_action = None
        self._notify()

        if profile_id:
            logger.info(f"Session cleared for profile {profile_id}")
            self.analytics.capture(profile_id, "identity_session_cleared")

    async def revoke_session(self) -> None:
        """
        Invalidate the current token server-side, then clear the local session.

        The row is only touched if it still holds this client's token, so a
        newer login from another device is left alone. Backend failures are
        logged and the local logout still happens.
        """
        token = self.store.get(self.token_key)

        if token and self.profile is not None:
            try:
                db = await self._get_db()
                await db.update_by_filter(
                    self.table,
                    {"id": self.profile.id, "session_token": stored_token_value(token)},
                    {"session_token": None},
                )
                logger.info(f"Session token revoked for profile {self.profile.id}")
            except Exception as e:
                logger.error(
                    f"Failed to revoke session token: {e}",
                    exc_info=True,
                    extra={"error_type": "session_revoke_failed"},
                )

        self.clear_session()

    # ------------------------------------------------------------------
    # Derived accessors
    # ------------------------------------------------------------------

    def get_display_name(self) -> str:
        """
        Public label for the current user.

        Anonymous profiles show their handle, then their display name, never
        anything derived from the email.
        """
        profile = self.profile
        if profile is None:
            return ANONYMOUS_LABEL
        if profile.is_anonymous:
            return profile.unique_id or profile.display_name or ANONYMOUS_LABEL
        return profile.display_name or profile.unique_id or profile.email.split("@")[0]

    def get_user_id(self) -> str | None:
        """Public handle used for short mentions, or None."""
        return self.profile.unique_id if self.profile else None

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback run after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Identity listener failed: {e}", exc_info=True)

    async def _get_db(self) -> SupabaseQueryBuilder:
        if self._db is None:
            self._db = await get_query_builder()
        return self._db
