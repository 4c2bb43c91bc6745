from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any


class SignupCreate(BaseModel):
    email: EmailStr
    waitlist_id: str = Field(..., min_length=1)
    referral_link: Optional[str] = Field(None, max_length=2048, description="Referral code or share link carrying ?ref=")
    name: Optional[str] = Field(None, max_length=255)
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict)


class AdvancePriorityRequest(BaseModel):
    amount: int = Field(100, description="Priority delta, may be negative")


class SignupData(BaseModel):
    id: str
    waitlist_id: str
    email: str
    name: Optional[str] = None
    referral_code: str
    referred_by: Optional[str] = None
    referral_count: int
    priority: int
    position: int
    status: str
    metadata: Dict[str, Any] = {}
    verified_at: Optional[str] = None
    admitted_at: Optional[str] = None
    created_at: Optional[str] = None
    current_position: Optional[int] = None
    referral_link: Optional[str] = None


class SignupResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: SignupData


class RegistrationData(BaseModel):
    referral_code: str
    referral_count: int
    current_position: Optional[int] = None
    status: str


class RegistrationCheckResponse(BaseModel):
    registered: bool
    data: Optional[RegistrationData] = None


class LeaderboardEntry(BaseModel):
    rank: int
    email: str
    referral_count: int
    priority: int


class LeaderboardResponse(BaseModel):
    success: bool = True
    data: List[LeaderboardEntry]


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class SignupListResponse(BaseModel):
    success: bool = True
    data: List[SignupData]
    pagination: Pagination
