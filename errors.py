from typing import Optional


class UpstreamError(Exception):
    """An external service (catalog, image host, reCAPTCHA, SMTP) failed."""


class CatalogError(UpstreamError):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class NoArtistsError(UpstreamError):
    def __init__(self, username: str):
        super().__init__(f"no top artists for {username!r}")
        self.username = username


class CaptchaError(UpstreamError):
    pass


class MailDeliveryError(UpstreamError):
    pass


class TransientTlsError(MailDeliveryError):
    """Server presented a self-signed certificate in its chain."""
