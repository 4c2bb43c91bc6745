import copy
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError, ForbiddenError
from app.models.waitlist import Waitlist
from app.repositories.waitlist_repository import WaitlistRepository
from app.schemas.subscription import LimitType
from app.schemas.waitlist import WaitlistCreate, WaitlistUpdate, WaitlistSettings
from app.services.limit_service import (
    LimitService,
    FEATURE_AUTOMATION,
    FEATURE_REMOVE_BRANDING,
    FEATURE_HIDE_POSITION_COUNT,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "branding": {},
    "widget": {
        "theme": "light",
        "button_text": "Join the waitlist",
        "show_position": True,
        "show_referral_count": True,
    },
    "social": {},
    "questions": [],
    "connectors": {
        "automation": {"enabled": False, "events": {}},
    },
    "show_leaderboard": True,
    "hide_position_count": False,
}


def merge_settings(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge updates into a copy of base. Nested dicts merge key-wise;
    lists and scalars replace whatever was there.
    """
    merged = copy.deepcopy(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class WaitlistService:

    def __init__(
        self,
        db: Session,
        waitlist_repo: Optional[WaitlistRepository] = None,
        limit_service: Optional[LimitService] = None
    ):
        self.db = db
        self.waitlist_repo = waitlist_repo or WaitlistRepository(db)
        self.limit_service = limit_service or LimitService(db)

    def create_waitlist(self, owner_id: str, data: WaitlistCreate) -> Waitlist:
        self.limit_service.enforce_limit(
            owner_id,
            LimitType.MAX_WAITLISTS,
            lambda: self.waitlist_repo.count_by_owner(owner_id)
        )

        settings_document = DEFAULT_SETTINGS
        if data.settings:
            requested = self._dump_settings(data.settings)
            self._check_settings_features(owner_id, requested)
            settings_document = merge_settings(DEFAULT_SETTINGS, requested)

        waitlist = self.waitlist_repo.create(
            owner_id=owner_id,
            name=data.name,
            description=data.description,
            settings=copy.deepcopy(settings_document),
            priority_boost=(
                data.priority_boost if data.priority_boost is not None
                else settings.DEFAULT_PRIORITY_BOOST
            )
        )

        logger.info(f"Created waitlist {waitlist.id} ({waitlist.name}) for owner {owner_id}")
        return waitlist

    def get_waitlist(self, waitlist_id: str) -> Waitlist:
        waitlist = self.waitlist_repo.get_by_id(waitlist_id)

        if not waitlist:
            raise NotFoundError("Waitlist not found")

        return waitlist

    def get_owned_waitlist(self, waitlist_id: str, owner_id: str) -> Waitlist:
        waitlist = self.get_waitlist(waitlist_id)

        if waitlist.owner_id != owner_id:
            raise ForbiddenError("You do not have access to this waitlist")

        return waitlist

    def get_by_api_key(self, api_key: str) -> Waitlist:
        waitlist = self.waitlist_repo.get_by_api_key(api_key)
        if not waitlist:
            raise NotFoundError("Waitlist not found")
        return waitlist

    def get_by_automation_key(self, automation_key: str) -> Waitlist:
        waitlist = self.waitlist_repo.get_by_automation_key(automation_key)
        if not waitlist:
            raise NotFoundError("Waitlist not found")
        return waitlist

    def list_waitlists(self, owner_id: str) -> List[Waitlist]:
        return self.waitlist_repo.get_by_owner(owner_id)

    def update_waitlist(self, waitlist: Waitlist, data: WaitlistUpdate) -> Waitlist:
        changes = data.model_dump(exclude_unset=True, exclude={"settings"})
        changes = {key: value for key, value in changes.items() if value is not None}

        if data.settings is not None:
            requested = self._dump_settings(data.settings)
            self._check_settings_features(waitlist.owner_id, requested)
            changes["settings"] = merge_settings(waitlist.settings or {}, requested)

        if not changes:
            return waitlist

        waitlist = self.waitlist_repo.update(waitlist, **changes)
        logger.info(f"Updated waitlist {waitlist.id}: {', '.join(sorted(changes))}")
        return waitlist

    def regenerate_api_key(self, waitlist: Waitlist) -> Waitlist:
        waitlist = self.waitlist_repo.regenerate_api_key(waitlist)
        logger.info(f"Regenerated api key for waitlist {waitlist.id}")
        return waitlist

    def regenerate_automation_key(self, waitlist: Waitlist) -> Waitlist:
        waitlist = self.waitlist_repo.regenerate_automation_key(waitlist)
        logger.info(f"Regenerated automation key for waitlist {waitlist.id}")
        return waitlist

    def delete_waitlist(self, waitlist: Waitlist) -> None:
        waitlist_id = waitlist.id
        self.waitlist_repo.delete(waitlist)
        logger.info(f"Deleted waitlist {waitlist_id} with its signups and notification targets")

    @staticmethod
    def _dump_settings(settings_model: WaitlistSettings) -> Dict[str, Any]:
        dumped = settings_model.model_dump(exclude_unset=True, mode="json")
        # Questions replace wholesale, so store each one with its defaults filled in
        if settings_model.questions is not None:
            dumped["questions"] = [question.model_dump(mode="json") for question in settings_model.questions]
        return dumped

    def _check_settings_features(self, owner_id: str, requested: Dict[str, Any]) -> None:
        automation = (requested.get("connectors") or {}).get("automation") or {}
        if automation.get("enabled") is True:
            self.limit_service.require_feature(owner_id, FEATURE_AUTOMATION)

        if (requested.get("branding") or {}).get("remove_branding") is True:
            self.limit_service.require_feature(owner_id, FEATURE_REMOVE_BRANDING)

        if requested.get("hide_position_count") is True:
            self.limit_service.require_feature(owner_id, FEATURE_HIDE_POSITION_COUNT)
