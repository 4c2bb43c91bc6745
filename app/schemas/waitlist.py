from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from app.models.notification_target import AutomationEvent


class SettingsSection(BaseModel):
    
    class Config:
        extra = "ignore"


class BrandingSettings(SettingsSection):
    logo_url: Optional[str] = Field(None, max_length=2048)
    primary_color: Optional[str] = Field(None, max_length=32)
    background_color: Optional[str] = Field(None, max_length=32)
    font: Optional[str] = Field(None, max_length=100)
    remove_branding: Optional[bool] = None


class WidgetSettings(SettingsSection):
    theme: Optional[str] = Field(None, pattern="^(light|dark|auto)$")
    button_text: Optional[str] = Field(None, max_length=100)
    placeholder: Optional[str] = Field(None, max_length=255)
    success_message: Optional[str] = Field(None, max_length=1000)
    show_position: Optional[bool] = None
    show_referral_count: Optional[bool] = None


class SocialSettings(SettingsSection):
    twitter: Optional[str] = Field(None, max_length=255)
    linkedin: Optional[str] = Field(None, max_length=255)
    facebook: Optional[str] = Field(None, max_length=255)
    share_message: Optional[str] = Field(None, max_length=1000)


class QuestionSchema(SettingsSection):
    id: str = Field(..., min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=255)
    type: str = Field("text", pattern="^(text|select|checkbox)$")
    required: bool = False
    options: List[str] = Field(default_factory=list)


class AutomationConnectorSettings(SettingsSection):
    enabled: Optional[bool] = None
    events: Optional[Dict[AutomationEvent, bool]] = None


class ConnectorSettings(SettingsSection):
    automation: Optional[AutomationConnectorSettings] = None


class WaitlistSettings(SettingsSection):
    """
    Typed settings document. Only fields explicitly sent are merged into
    the stored document; unknown keys are dropped at validation.
    """
    branding: Optional[BrandingSettings] = None
    widget: Optional[WidgetSettings] = None
    social: Optional[SocialSettings] = None
    questions: Optional[List[QuestionSchema]] = None
    connectors: Optional[ConnectorSettings] = None
    show_leaderboard: Optional[bool] = None
    hide_position_count: Optional[bool] = None


class WaitlistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    settings: Optional[WaitlistSettings] = None
    priority_boost: Optional[int] = Field(None, ge=0)


class WaitlistUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    is_active: Optional[bool] = None
    priority_boost: Optional[int] = Field(None, ge=0)
    settings: Optional[WaitlistSettings] = None
    
    class Config:
        extra = "ignore"


class WaitlistStats(BaseModel):
    total_signups: int = 0
    waiting: int = 0
    verified: int = 0
    admitted: int = 0
    total_referrals: int = 0


class PublicWaitlistInfo(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    total_signups: int
    is_active: bool
    settings: Dict[str, Any]


class PublicWaitlistResponse(BaseModel):
    success: bool = True
    data: PublicWaitlistInfo


class WaitlistStatsResponse(BaseModel):
    success: bool = True
    data: WaitlistStats
