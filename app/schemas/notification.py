from pydantic import BaseModel, Field
from typing import Optional, List


class WebhookCreate(BaseModel):
    url: str = Field(..., pattern="^https?://", max_length=2048)
    events: Optional[List[str]] = None
    secret: Optional[str] = Field(None, min_length=16, max_length=128)


class WebhookUpdate(BaseModel):
    url: Optional[str] = Field(None, pattern="^https?://", max_length=2048)
    events: Optional[List[str]] = None
    is_active: Optional[bool] = None


class AutomationHookUpdate(BaseModel):
    is_active: bool


class AutomationSubscribe(BaseModel):
    hookUrl: Optional[str] = None
    event: Optional[str] = None


class WebhookData(BaseModel):
    id: str
    waitlist_id: str
    url: str
    events: List[str]
    is_active: bool
    created_at: Optional[str] = None
    secret: Optional[str] = None


class AutomationHookData(BaseModel):
    id: str
    waitlist_id: str
    event: str
    hook_url: str
    is_active: bool
    created_at: Optional[str] = None


class DeliveryResult(BaseModel):
    target_id: str
    channel: str
    event: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class WebhookResponse(BaseModel):
    success: bool = True
    data: WebhookData


class WebhookListResponse(BaseModel):
    success: bool = True
    data: List[WebhookData]


class AutomationHookListResponse(BaseModel):
    success: bool = True
    data: List[AutomationHookData]
