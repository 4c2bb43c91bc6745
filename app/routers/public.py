"""
Public widget surface: joining, status lookups, leaderboard and stats.
No credentials; joins are rate limited per client address.
"""
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.dependencies import (
    get_dispatcher,
    get_ranking_service,
    get_signup_service,
    get_waitlist_service,
)
from app.core.exceptions import AlreadyRegisteredError, ForbiddenError, NotFoundError
from app.schemas.signup import (
    SignupCreate,
    SignupResponse,
    SignupData,
    RegistrationCheckResponse,
    RegistrationData,
    LeaderboardResponse,
)
from app.schemas.waitlist import (
    PublicWaitlistInfo,
    PublicWaitlistResponse,
    WaitlistStatsResponse,
)
from app.services.notification_service import LifecycleEvent, NotificationDispatcher
from app.services.ranking_service import RankingService, serialize_signup
from app.services.signup_service import SignupService
from app.services.waitlist_service import WaitlistService
from app.utils.rate_limiter import client_ip, signup_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Public"])


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": f"{settings.APP_NAME} Public API",
        "version": settings.APP_VERSION
    }


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(signup_rate_limit)],
    responses={409: {"description": "Email already registered, body carries the existing signup"}}
)
def create_signup(
    data: SignupCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    signup_service: SignupService = Depends(get_signup_service),
    ranking_service: RankingService = Depends(get_ranking_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """
    Join a waitlist. A repeat join with the same email answers 409 with the
    existing record, which widgets treat as "already on the list".
    """
    try:
        result = signup_service.join(
            data,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent")
        )
    except AlreadyRegisteredError as e:
        existing = e.signup
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "success": False,
                "message": "You're already on the waitlist",
                "data": serialize_signup(existing, ranking_service.position_of(existing), existing.waitlist)
            }
        )

    dispatcher.notify(background_tasks, result.waitlist, LifecycleEvent.SIGNUP_CREATED, result.signup)
    if result.referrer:
        dispatcher.notify(background_tasks, result.waitlist, LifecycleEvent.REFERRAL_ATTRIBUTED, result.referrer)

    current_position = ranking_service.position_of(result.signup)
    return SignupResponse(
        message="Successfully joined the waitlist",
        data=SignupData(**serialize_signup(result.signup, current_position, result.waitlist))
    )


@router.get("/signup/check/{waitlist_id}/{email}", response_model=RegistrationCheckResponse)
def check_registration(
    waitlist_id: str,
    email: str,
    waitlist_service: WaitlistService = Depends(get_waitlist_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    waitlist = waitlist_service.get_waitlist(waitlist_id)

    try:
        signup, current_position = ranking_service.current_position(waitlist_id, email)
    except NotFoundError:
        return RegistrationCheckResponse(registered=False)

    return RegistrationCheckResponse(
        registered=True,
        data=RegistrationData(
            referral_code=signup.referral_code,
            referral_count=signup.referral_count,
            current_position=None if waitlist.hides_position else current_position,
            status=signup.status.value
        )
    )


@router.get("/signup/{referral_code}", response_model=SignupResponse)
def get_signup_status(
    referral_code: str,
    signup_service: SignupService = Depends(get_signup_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    signup = signup_service.get_by_referral_code(referral_code)
    return SignupResponse(
        data=SignupData(**serialize_signup(signup, ranking_service.position_of(signup), signup.waitlist))
    )


@router.get("/waitlist/{waitlist_id}", response_model=PublicWaitlistResponse)
def get_public_waitlist(
    waitlist_id: str,
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
):
    waitlist = waitlist_service.get_waitlist(waitlist_id)
    return PublicWaitlistResponse(
        data=PublicWaitlistInfo(
            id=waitlist.id,
            name=waitlist.name,
            description=waitlist.description,
            total_signups=waitlist.total_signups,
            is_active=waitlist.is_active,
            settings=waitlist.public_settings()
        )
    )


@router.get("/waitlist/{waitlist_id}/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    waitlist_id: str,
    limit: int = Query(settings.LEADERBOARD_DEFAULT_LIMIT, ge=1),
    waitlist_service: WaitlistService = Depends(get_waitlist_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    waitlist = waitlist_service.get_waitlist(waitlist_id)

    if not waitlist.show_leaderboard:
        raise ForbiddenError("Leaderboard is disabled for this waitlist")

    return LeaderboardResponse(data=ranking_service.leaderboard(waitlist.id, limit))


@router.get("/waitlist/{waitlist_id}/stats", response_model=WaitlistStatsResponse)
def get_waitlist_stats(
    waitlist_id: str,
    waitlist_service: WaitlistService = Depends(get_waitlist_service),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    waitlist = waitlist_service.get_waitlist(waitlist_id)
    return WaitlistStatsResponse(data=ranking_service.stats(waitlist.id))
