import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from errors import CaptchaError, MailDeliveryError, TransientTlsError
from mailer import OutgoingMail, SmtpMailer, format_sender
from recaptcha import RecaptchaVerifier

log = logging.getLogger(__name__)

CONTACT_PATH = "/contact"

_EMAIL_RE = re.compile(r"[^@\s<>\"]+@[^@\s<>\"]+\.[A-Za-z0-9-]{2,}")

MSG_NAME = "Please enter your name"
MSG_EMAIL = "Please enter a valid email address."
MSG_MESSAGE = "Please enter your message."
MSG_CAPTCHA = "reCAPTCHA validation failed."
MSG_SENT = "Email has been sent successfully!"
MSG_SEND_FAILED = "Error sending the message. Please try again shortly."


@dataclass
class ContactSubmission:
    name: str = ""
    email: str = ""
    message: str = ""
    captcha_token: str = ""


@dataclass
class Identity:
    email: str
    profile_name: Optional[str] = None


@dataclass
class ValidationError:
    message: str


@dataclass
class Notice:
    category: str  # "success" | "errors"
    message: str


@dataclass
class ContactOutcome:
    notices: List[Notice] = field(default_factory=list)
    sent: bool = False
    redirect_to: str = CONTACT_PATH


def is_email(value: Optional[str]) -> bool:
    return bool(value) and _EMAIL_RE.fullmatch(value.strip()) is not None


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def validate_fields(form: ContactSubmission, user: Optional[Identity] = None) -> List[ValidationError]:
    errors: List[ValidationError] = []
    if user is None:
        if _blank(form.name):
            errors.append(ValidationError(MSG_NAME))
        if not is_email(form.email):
            errors.append(ValidationError(MSG_EMAIL))
    if _blank(form.message):
        errors.append(ValidationError(MSG_MESSAGE))
    return errors


def resolve_sender(form: ContactSubmission, user: Optional[Identity] = None) -> str:
    if user is None:
        return format_sender(form.name, form.email)
    return format_sender(user.profile_name or "", user.email)


class ContactFormHandler:
    def __init__(self, verifier: RecaptchaVerifier, mailer: SmtpMailer,
                 to_address: Optional[str], subject: str):
        self.verifier = verifier
        self.mailer = mailer
        self.to_address = to_address
        self.subject = subject

    async def _captcha_passes(self, token: str, remote_ip: Optional[str]) -> bool:
        try:
            return await self.verifier.verify(token, remote_ip)
        except CaptchaError as e:
            log.warning("reCAPTCHA verification unavailable: %s", e)
            return False

    async def _deliver(self, mail: OutgoingMail) -> bool:
        try:
            await self.mailer.send(mail)
            return True
        except TransientTlsError:
            log.warning("Self signed certificate in certificate chain. Retrying without certificate "
                        "verification. Use a valid certificate in production.")
        except MailDeliveryError:
            log.exception("Could not send contact email")
            return False
        try:
            await self.mailer.send(mail, verify_tls=False)
            return True
        except MailDeliveryError:
            log.exception("Could not send contact email after security downgrade")
            return False

    async def submit(self, form: ContactSubmission, user: Optional[Identity] = None,
                     remote_ip: Optional[str] = None) -> ContactOutcome:
        errors = validate_fields(form, user)
        if not await self._captcha_passes(form.captcha_token, remote_ip):
            errors.append(ValidationError(MSG_CAPTCHA))
        if errors:
            return ContactOutcome(notices=[Notice("errors", e.message) for e in errors])

        mail = OutgoingMail(
            to=self.to_address or "",
            from_=resolve_sender(form, user),
            subject=self.subject,
            text=form.message,
        )
        if await self._deliver(mail):
            return ContactOutcome(notices=[Notice("success", MSG_SENT)], sent=True)
        return ContactOutcome(notices=[Notice("errors", MSG_SEND_FAILED)])
