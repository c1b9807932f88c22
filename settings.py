import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    lastfm_key: Optional[str] = None
    recaptcha_secret: Optional[str] = None
    recaptcha_site_key: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_timeout: float = 30.0
    site_contact_email: Optional[str] = None
    contact_subject: str = "Contact Form | Scrobble Bubbles"
    inline_artist_images: bool = True
    app_secret: str = "dev"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            lastfm_key=os.getenv("LASTFM_KEY"),
            recaptcha_secret=os.getenv("RECAPTCHA_SECRET_KEY"),
            recaptcha_site_key=os.getenv("RECAPTCHA_SITE_KEY"),
            smtp_host=os.getenv("SMTP_HOST"),
            smtp_port=int(os.getenv("SMTP_PORT", "465") or "465"),
            smtp_user=os.getenv("SMTP_USER"),
            smtp_password=os.getenv("SMTP_PASSWORD"),
            smtp_timeout=float(os.getenv("SMTP_TIMEOUT", "30") or "30"),
            site_contact_email=os.getenv("SITE_CONTACT_EMAIL"),
            contact_subject=os.getenv("CONTACT_SUBJECT") or cls.contact_subject,
            inline_artist_images=_flag(os.getenv("INLINE_ARTIST_IMAGES"), True),
            app_secret=os.getenv("APP_SECRET", "dev"),
        )
