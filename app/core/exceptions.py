"""
Typed HTTP failures raised by the service layer.

Each class pins a status code and a response body shape so that callers
(routers, tests, external collaborators) can rely on the error taxonomy
without re-mapping sentinel values.
"""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):

    def __init__(self, detail: Any = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class FeatureRestrictedError(ForbiddenError):
    """Raised when the principal's plan does not include a capability."""

    def __init__(self, feature: str, plan_name: str):
        self.feature = feature
        super().__init__(detail={
            "error": "Feature restricted",
            "feature": feature,
            "current_plan": plan_name,
            "upgrade_required": True,
            "message": (
                f"This feature requires a higher plan. Please upgrade to access "
                f"{feature.replace('_', ' ')}."
            ),
        })


class LimitExceededError(ForbiddenError):
    """Raised when current usage has reached the plan quota."""

    def __init__(self, limit_type: str, current_usage: int, limit: int, plan_name: str):
        self.limit_type = limit_type
        super().__init__(detail={
            "error": "Limit reached",
            "limit_type": limit_type,
            "current_usage": current_usage,
            "limit": limit,
            "current_plan": plan_name,
            "upgrade_required": True,
            "message": f"You've reached your {limit_type} limit. Please upgrade to create more.",
        })


class ConflictError(HTTPException):

    def __init__(self, detail: Any = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AlreadyRegisteredError(ConflictError):
    """
    Raised on a repeat join. Carries the existing signup so the caller can
    answer with the prior record instead of a bare error.
    """

    def __init__(self, signup: Any):
        self.signup = signup
        super().__init__(detail="Email already registered for this waitlist")


class BadRequestError(HTTPException):

    def __init__(self, detail: Any = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RateLimitedError(HTTPException):

    def __init__(self, retry_after: int, headers: Optional[Dict[str, str]] = None):
        self.retry_after = retry_after
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Rate limit exceeded",
                "message": "Too many requests",
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after), **(headers or {})},
        )
