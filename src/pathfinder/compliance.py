"""
Privacy & compliance.

Consent settings, data export and account deletion. These are
write-through-remote operations: consent and deletion only count once the
server has them, so failures are reported, not papered over.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pathfinder.auth.provider import IdentityProvider
from pathfinder.db.remote import RemoteResult, RemoteStoreAdapter
from pathfinder.errors import InputValidationError, PathfinderError
from pathfinder.models import PrivacySettings, UserDataExport
from pathfinder.sync import SynchronizationEngine

logger = logging.getLogger(__name__)

CONSENT_FIELDS = set(PrivacySettings.model_fields)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ComplianceService:
    def __init__(
        self,
        remote: RemoteStoreAdapter,
        engine: SynchronizationEngine,
        identity: IdentityProvider | None = None,
    ):
        self.remote = remote
        self.engine = engine
        self.identity = identity

    async def get_privacy_settings(self) -> PrivacySettings:
        """Stored consent, or the defaults when there is none or the remote is down."""
        result = await self.remote.fetch_privacy_settings()
        if result.ok and result.data is not None:
            return result.data
        return PrivacySettings()

    async def update_privacy_settings(self, **changes: bool) -> RemoteResult[None]:
        unknown = set(changes) - CONSENT_FIELDS
        if unknown:
            raise InputValidationError(f"Unknown privacy settings: {', '.join(sorted(unknown))}")
        result = await self.remote.upsert_privacy_settings(changes, _now())
        if not result.ok:
            logger.error(f"Privacy settings not saved: {result.error}")
        return result

    async def export_user_data(self) -> UserDataExport:
        """
        Collect everything held about the user.

        Prefers the server-side aggregate; falls back to assembling the
        export from the profile and whatever itineraries are reachable.
        """
        result = await self.remote.export_user_data()
        if result.ok and result.data:
            try:
                return UserDataExport.model_validate({"timestamp": _now(), **result.data})
            except ValueError as e:
                logger.warning(f"Server export malformed, assembling locally: {e}")

        profile = await self.engine.get_user()
        itineraries = await self.engine.get_saved_itineraries()
        return UserDataExport(
            profile=profile,
            itineraries=itineraries,
            preferences=profile.preferences() if profile else {},
            timestamp=_now(),
        )

    async def write_export(self, path: Path) -> Path:
        export = await self.export_user_data()
        path.write_text(json.dumps(export.model_dump(mode="json"), indent=2), encoding="utf-8")
        logger.info(f"Exported user data to {path}")
        return path

    async def delete_account(self) -> bool:
        """
        Delete server-side data, then everything local, then sign out.

        Returns False, leaving local state untouched, when the server-side
        deletion did not happen.
        """
        result = await self.remote.delete_account()
        if not result.ok:
            logger.error(f"Account deletion failed: {result.error}")
            return False

        self.engine.cache.wipe()
        if self.identity is not None:
            try:
                await self.identity.sign_out()
            except PathfinderError as e:
                logger.warning(f"Sign-out after deletion failed: {e}")
        return True
