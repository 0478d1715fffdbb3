from pydantic import BaseModel
from functools import lru_cache
import os
from marketplace.core.config import get_settings

def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t")

class EmailSettings(BaseModel):
    """Email configuration settings"""
    MAIL_USERNAME: str = os.getenv("MAIL_USERNAME", "")
    MAIL_PASSWORD: str = os.getenv("MAIL_PASSWORD", "")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "noreply@example.com")
    MAIL_FROM_NAME: str = os.getenv("MAIL_FROM_NAME", get_settings().PROJECT_NAME)
    MAIL_PORT: int = int(os.getenv("MAIL_PORT", 587))
    MAIL_SERVER: str = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_STARTTLS: bool = _flag("MAIL_STARTTLS", "True")
    MAIL_SSL_TLS: bool = _flag("MAIL_SSL_TLS", "False")
    MAIL_USE_CREDENTIALS: bool = _flag("MAIL_USE_CREDENTIALS", "True")
    MAIL_VALIDATE_CERTS: bool = _flag("MAIL_VALIDATE_CERTS", "True")
    MAIL_SUPPRESS_SEND: bool = _flag("MAIL_SUPPRESS_SEND", "False")

@lru_cache()
def get_email_settings() -> EmailSettings:
    """Returns cached email settings"""
    return EmailSettings()
