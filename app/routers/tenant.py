"""
Tenant dashboard surface, authenticated by bearer principal. Every
waitlist-scoped route resolves the waitlist through get_owned_waitlist.
"""
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.core.config import settings
from app.core.dependencies import (
    get_dispatcher,
    get_limit_service,
    get_owned_waitlist,
    get_ranking_service,
    get_signup_service,
    get_target_service,
    get_waitlist_service,
)
from app.core.security import get_current_principal
from app.models.waitlist import Waitlist
from app.schemas.notification import (
    AutomationHookData,
    AutomationHookListResponse,
    AutomationHookUpdate,
    WebhookCreate,
    WebhookData,
    WebhookListResponse,
    WebhookResponse,
    WebhookUpdate,
)
from app.schemas.signup import AdvancePriorityRequest, SignupData, SignupListResponse, Pagination
from app.schemas.subscription import PlanLimitsResponse
from app.schemas.waitlist import WaitlistCreate, WaitlistUpdate, WaitlistStatsResponse
from app.services.limit_service import LimitService, FEATURE_MOVE_USER_POSITION
from app.services.notification_service import LifecycleEvent, NotificationDispatcher
from app.services.ranking_service import RankingService, serialize_signup
from app.services.signup_service import SignupService
from app.services.target_service import TargetService
from app.services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["Tenant"])


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": f"{settings.APP_NAME} Tenant API",
        "version": settings.APP_VERSION
    }


@router.get("/limits", response_model=PlanLimitsResponse)
def get_limits(
    principal_id: str = Depends(get_current_principal),
    limit_service: LimitService = Depends(get_limit_service)
):
    return PlanLimitsResponse(data=limit_service.resolve_limits(principal_id))


# Waitlists

@router.get("/waitlists")
def list_waitlists(
    principal_id: str = Depends(get_current_principal),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlists = waitlist_service.list_waitlists(principal_id)
    return {
        "success": True,
        "data": [waitlist.to_dict(include_credentials=True) for waitlist in waitlists]
    }


@router.post("/waitlists", status_code=status.HTTP_201_CREATED)
def create_waitlist(
    data: WaitlistCreate,
    principal_id: str = Depends(get_current_principal),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.create_waitlist(principal_id, data)
    return {"success": True, "data": waitlist.to_dict(include_credentials=True)}


@router.get("/waitlists/{waitlist_id}")
def get_waitlist(waitlist: Waitlist = Depends(get_owned_waitlist)):
    return {"success": True, "data": waitlist.to_dict(include_credentials=True)}


@router.patch("/waitlists/{waitlist_id}")
def update_waitlist(
    data: WaitlistUpdate,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.update_waitlist(waitlist, data)
    return {"success": True, "data": waitlist.to_dict(include_credentials=True)}


@router.delete("/waitlists/{waitlist_id}")
def delete_waitlist(
    waitlist: Waitlist = Depends(get_owned_waitlist),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist_service.delete_waitlist(waitlist)
    return {"success": True, "message": "Waitlist deleted"}


@router.post("/waitlists/{waitlist_id}/regenerate-key")
def regenerate_api_key(
    waitlist: Waitlist = Depends(get_owned_waitlist),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.regenerate_api_key(waitlist)
    return {"success": True, "data": {"api_key": waitlist.api_key}}


@router.post("/waitlists/{waitlist_id}/regenerate-automation-key")
def regenerate_automation_key(
    waitlist: Waitlist = Depends(get_owned_waitlist),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.regenerate_automation_key(waitlist)
    return {"success": True, "data": {"automation_key": waitlist.automation_key}}


@router.get("/waitlists/{waitlist_id}/stats", response_model=WaitlistStatsResponse)
def get_stats(
    waitlist: Waitlist = Depends(get_owned_waitlist),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    return WaitlistStatsResponse(data=ranking_service.stats(waitlist.id))


# Signups

@router.get("/waitlists/{waitlist_id}/signups", response_model=SignupListResponse)
def list_signups(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = Query("position", alias="sortBy"),
    order: str = Query("asc"),
    waitlist: Waitlist = Depends(get_owned_waitlist),
    signup_service: SignupService = Depends(get_signup_service)
):
    signups, total = signup_service.list_signups(
        waitlist, limit=limit, offset=offset, status=status_filter, sort_by=sort_by, order=order
    )
    limit = min(limit, settings.SIGNUP_LIST_MAX_LIMIT)
    return SignupListResponse(
        data=[SignupData(**serialize_signup(signup)) for signup in signups],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + len(signups) < total)
    )


@router.patch("/waitlists/{waitlist_id}/signups/{signup_id}/verify")
def verify_signup(
    signup_id: str,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    signup_service: SignupService = Depends(get_signup_service)
):
    signup = signup_service.verify(waitlist, signup_id)
    return {"success": True, "data": serialize_signup(signup)}


@router.patch("/waitlists/{waitlist_id}/signups/{signup_id}/offboard")
def offboard_signup(
    signup_id: str,
    background_tasks: BackgroundTasks,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    signup_service: SignupService = Depends(get_signup_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    signup = signup_service.offboard(waitlist, signup_id)
    dispatcher.notify(background_tasks, waitlist, LifecycleEvent.SIGNUP_ADMITTED, signup)
    return {"success": True, "data": serialize_signup(signup)}


@router.patch("/waitlists/{waitlist_id}/signups/{signup_id}/advance")
def advance_signup(
    signup_id: str,
    data: AdvancePriorityRequest,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    limit_service: LimitService = Depends(get_limit_service),
    signup_service: SignupService = Depends(get_signup_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    limit_service.require_feature(waitlist.owner_id, FEATURE_MOVE_USER_POSITION)
    signup = signup_service.advance_priority(waitlist, signup_id, data.amount)
    return {"success": True, "data": serialize_signup(signup, ranking_service.position_of(signup))}


@router.delete("/waitlists/{waitlist_id}/signups/{signup_id}")
def delete_signup(
    signup_id: str,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    signup_service: SignupService = Depends(get_signup_service)
):
    signup_service.delete(waitlist, signup_id)
    return {"success": True, "message": "Signup deleted"}


# Notification targets

@router.get(
    "/waitlists/{waitlist_id}/webhooks",
    response_model=WebhookListResponse,
    response_model_exclude_none=True
)
def list_webhooks(
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    webhooks = target_service.list_webhooks(waitlist)
    return WebhookListResponse(data=[WebhookData(**webhook.to_dict()) for webhook in webhooks])


@router.post(
    "/waitlists/{waitlist_id}/webhooks",
    response_model=WebhookResponse,
    status_code=status.HTTP_201_CREATED
)
def create_webhook(
    data: WebhookCreate,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    webhook = target_service.create_webhook(waitlist, data)
    # The secret is only returned once, at creation
    return WebhookResponse(data=WebhookData(**webhook.to_dict(include_secret=True)))


@router.patch(
    "/waitlists/{waitlist_id}/webhooks/{webhook_id}",
    response_model=WebhookResponse,
    response_model_exclude_none=True
)
def update_webhook(
    webhook_id: str,
    data: WebhookUpdate,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    webhook = target_service.update_webhook(waitlist, webhook_id, data)
    return WebhookResponse(data=WebhookData(**webhook.to_dict()))


@router.delete("/waitlists/{waitlist_id}/webhooks/{webhook_id}")
def delete_webhook(
    webhook_id: str,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    target_service.delete_webhook(waitlist, webhook_id)
    return {"success": True, "message": "Webhook deleted"}


@router.get("/waitlists/{waitlist_id}/automation-hooks", response_model=AutomationHookListResponse)
def list_automation_hooks(
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    hooks = target_service.list_automation_hooks(waitlist)
    return AutomationHookListResponse(data=[AutomationHookData(**hook.to_dict()) for hook in hooks])


@router.patch("/waitlists/{waitlist_id}/automation-hooks/{hook_id}")
def update_automation_hook(
    hook_id: str,
    data: AutomationHookUpdate,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    hook = target_service.set_automation_hook_active(waitlist, hook_id, data.is_active)
    return {"success": True, "data": AutomationHookData(**hook.to_dict())}


@router.delete("/waitlists/{waitlist_id}/automation-hooks/{hook_id}")
def delete_automation_hook(
    hook_id: str,
    waitlist: Waitlist = Depends(get_owned_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    target_service.unsubscribe(waitlist, hook_id)
    return {"success": True, "message": "Automation hook deleted"}
