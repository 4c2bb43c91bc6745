"""
Waitlist-scoped admin API for server-side integrations, authenticated
with the waitlist's X-Api-Key.
"""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.core.config import settings
from app.core.dependencies import (
    get_dispatcher,
    get_limit_service,
    get_ranking_service,
    get_signup_service,
    get_target_service,
    get_waitlist_service,
)
from app.core.security import get_api_key_waitlist
from app.models.waitlist import Waitlist
from app.schemas.notification import (
    WebhookCreate,
    WebhookData,
    WebhookListResponse,
    WebhookResponse,
    WebhookUpdate,
)
from app.schemas.signup import AdvancePriorityRequest, SignupData, SignupListResponse, Pagination
from app.schemas.waitlist import WaitlistUpdate
from app.services.limit_service import LimitService, FEATURE_MOVE_USER_POSITION
from app.services.notification_service import LifecycleEvent, NotificationDispatcher
from app.services.ranking_service import RankingService, serialize_signup
from app.services.signup_service import SignupService
from app.services.target_service import TargetService
from app.services.waitlist_service import WaitlistService

router = APIRouter(prefix="/api/v1", tags=["Admin API"])


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": f"{settings.APP_NAME} Admin API",
        "version": settings.APP_VERSION
    }


# Waitlist

@router.get("/waitlist")
def get_waitlist(
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    data = waitlist.to_dict(include_credentials=True)
    data["stats"] = ranking_service.stats(waitlist.id).model_dump()
    return {"success": True, "data": data}


@router.patch("/waitlist")
def update_waitlist(
    data: WaitlistUpdate,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.update_waitlist(waitlist, data)
    return {"success": True, "data": waitlist.to_dict(include_credentials=True)}


@router.post("/waitlist/regenerate-key")
def regenerate_api_key(
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.regenerate_api_key(waitlist)
    return {"success": True, "data": {"api_key": waitlist.api_key}}


# Signups

@router.get("/signups", response_model=SignupListResponse)
def list_signups(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = Query("position", alias="sortBy"),
    order: str = Query("asc"),
    waitlist: Waitlist = Depends(get_api_key_waitlist),
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


@router.get("/signups/{signup_id}")
def get_signup(
    signup_id: str,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    signup_service: SignupService = Depends(get_signup_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    signup = signup_service.get_signup(waitlist, signup_id)
    return {"success": True, "data": serialize_signup(signup, ranking_service.position_of(signup))}


@router.patch("/signups/{signup_id}/offboard")
def offboard_signup(
    signup_id: str,
    background_tasks: BackgroundTasks,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    signup_service: SignupService = Depends(get_signup_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    signup = signup_service.offboard(waitlist, signup_id)
    dispatcher.notify(background_tasks, waitlist, LifecycleEvent.SIGNUP_ADMITTED, signup)
    return {"success": True, "data": serialize_signup(signup)}


@router.patch("/signups/{signup_id}/advance")
def advance_signup(
    signup_id: str,
    data: AdvancePriorityRequest,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    limit_service: LimitService = Depends(get_limit_service),
    signup_service: SignupService = Depends(get_signup_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    limit_service.require_feature(waitlist.owner_id, FEATURE_MOVE_USER_POSITION)
    signup = signup_service.advance_priority(waitlist, signup_id, data.amount)
    return {"success": True, "data": serialize_signup(signup, ranking_service.position_of(signup))}


@router.delete("/signups/{signup_id}")
def delete_signup(
    signup_id: str,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    signup_service: SignupService = Depends(get_signup_service)
):
    signup_service.delete(waitlist, signup_id)
    return {"success": True, "message": "Signup deleted"}


# Webhooks

@router.get("/webhooks", response_model=WebhookListResponse, response_model_exclude_none=True)
def list_webhooks(
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    webhooks = target_service.list_webhooks(waitlist)
    return WebhookListResponse(data=[WebhookData(**webhook.to_dict()) for webhook in webhooks])


@router.post("/webhooks", response_model=WebhookResponse, status_code=status.HTTP_201_CREATED)
def create_webhook(
    data: WebhookCreate,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    webhook = target_service.create_webhook(waitlist, data)
    return WebhookResponse(data=WebhookData(**webhook.to_dict(include_secret=True)))


@router.patch("/webhooks/{webhook_id}", response_model=WebhookResponse, response_model_exclude_none=True)
def update_webhook(
    webhook_id: str,
    data: WebhookUpdate,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    webhook = target_service.update_webhook(waitlist, webhook_id, data)
    return WebhookResponse(data=WebhookData(**webhook.to_dict()))


@router.delete("/webhooks/{webhook_id}")
def delete_webhook(
    webhook_id: str,
    waitlist: Waitlist = Depends(get_api_key_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    target_service.delete_webhook(waitlist, webhook_id)
    return {"success": True, "message": "Webhook deleted"}
