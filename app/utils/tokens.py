import secrets
from typing import Optional
from urllib.parse import urlparse, parse_qs


def generate_api_key() -> str:
    return f"wl_{secrets.token_urlsafe(24)}"


def generate_automation_key() -> str:
    return f"wla_{secrets.token_urlsafe(24)}"


def generate_webhook_secret() -> str:
    return f"whsec_{secrets.token_urlsafe(24)}"


def generate_referral_code() -> str:
    return secrets.token_urlsafe(8)


def extract_referral_code(referral_link: Optional[str]) -> Optional[str]:
    """
    Accept either a bare referral code or a share link carrying ?ref=<code>.
    """
    if not referral_link:
        return None
    
    referral_link = referral_link.strip()
    if "ref=" in referral_link:
        query = urlparse(referral_link).query or referral_link.split("?", 1)[-1]
        codes = parse_qs(query).get("ref")
        return codes[0] if codes else None
    
    return referral_link or None


def build_referral_link(base_url: str, waitlist_id: str, referral_code: str) -> str:
    return f"{base_url.rstrip('/')}/join/{waitlist_id}?ref={referral_code}"
