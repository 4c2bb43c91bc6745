"""
Automation platform surface: auth test, polling triggers and REST-hook
subscriptions. Callers present the automation key (the api key is also
accepted) and the waitlist must have the connector enabled on a plan that
includes it.
"""
from fastapi import APIRouter, Depends, status

from app.core.config import settings
from app.core.dependencies import get_automation_waitlist, get_target_service
from app.models.waitlist import Waitlist
from app.schemas.notification import AutomationHookData, AutomationHookListResponse, AutomationSubscribe
from app.services.target_service import TargetService

router = APIRouter(prefix="/api/automation", tags=["Automation"])


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": f"{settings.APP_NAME} Automation API",
        "version": settings.APP_VERSION
    }


@router.get("/me")
def auth_test(waitlist: Waitlist = Depends(get_automation_waitlist)):
    return {
        "success": True,
        "data": {
            "waitlist_id": waitlist.id,
            "waitlist_name": waitlist.name,
            "automation_enabled": True
        }
    }


@router.get("/signups")
def poll_signups(
    waitlist: Waitlist = Depends(get_automation_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    return target_service.recent_signups(waitlist)


@router.get("/referrers")
def poll_referrers(
    waitlist: Waitlist = Depends(get_automation_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    return target_service.top_referrers(waitlist)


@router.get("/offboarded")
def poll_offboarded(
    waitlist: Waitlist = Depends(get_automation_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    return target_service.recently_offboarded(waitlist)


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
def subscribe(
    data: AutomationSubscribe,
    waitlist: Waitlist = Depends(get_automation_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    hook = target_service.subscribe(waitlist, data)
    return {
        "success": True,
        "data": {"id": hook.id, "event": hook.event_type.value, "hook_url": hook.hook_url}
    }


@router.delete("/subscribe/{hook_id}")
def unsubscribe(
    hook_id: str,
    waitlist: Waitlist = Depends(get_automation_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    target_service.unsubscribe(waitlist, hook_id)
    return {"success": True, "message": "Hook unsubscribed"}


@router.get("/hooks", response_model=AutomationHookListResponse)
def list_hooks(
    waitlist: Waitlist = Depends(get_automation_waitlist),
    target_service: TargetService = Depends(get_target_service)
):
    hooks = target_service.list_automation_hooks(waitlist)
    return AutomationHookListResponse(data=[AutomationHookData(**hook.to_dict()) for hook in hooks])
