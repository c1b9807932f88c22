import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from starlette.concurrency import run_in_threadpool

from errors import MailDeliveryError, TransientTlsError

# OpenSSL X509_V_ERR_SELF_SIGNED_CERT_IN_CHAIN
SELF_SIGNED_IN_CHAIN = 19
SELF_SIGNED_MESSAGE = "self signed certificate in certificate chain"


@dataclass
class OutgoingMail:
    to: str
    from_: str
    subject: str
    text: str

    def to_message(self) -> EmailMessage:
        msg = EmailMessage()
        msg["To"] = self.to
        msg["From"] = self.from_
        msg["Subject"] = self.subject
        msg.set_content(self.text)
        return msg


def format_sender(name: str, email: str) -> str:
    return f"{name} <{email}>"


def _tls_context(verify: bool) -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    if not verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _is_self_signed_chain(err: ssl.SSLCertVerificationError) -> bool:
    if getattr(err, "verify_code", None) == SELF_SIGNED_IN_CHAIN:
        return True
    text = (getattr(err, "verify_message", None) or str(err)).lower().replace("-", " ")
    return SELF_SIGNED_MESSAGE in text


class SmtpMailer:
    """Implicit-TLS SMTP transport (SMTP_SSL, port 465 by default)."""

    def __init__(self, host: Optional[str], user: Optional[str] = None, password: Optional[str] = None,
                 port: int = 465, timeout: float = 30):
        self.host = host
        self.user = user
        self.password = password
        self.port = port
        self.timeout = timeout

    def _send(self, mail: OutgoingMail, verify_tls: bool) -> None:
        if not self.host:
            raise MailDeliveryError("SMTP_HOST is not configured")
        try:
            # header values with CR/LF raise ValueError here, before any connection
            msg = mail.to_message()
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout,
                                  context=_tls_context(verify_tls)) as smtp:
                if self.user:
                    smtp.login(self.user, self.password or "")
                smtp.send_message(msg)
        except ssl.SSLCertVerificationError as e:
            if _is_self_signed_chain(e):
                raise TransientTlsError(SELF_SIGNED_MESSAGE) from e
            raise MailDeliveryError(str(e)) from e
        except (smtplib.SMTPException, OSError, ValueError) as e:
            raise MailDeliveryError(str(e)) from e

    async def send(self, mail: OutgoingMail, verify_tls: bool = True) -> None:
        await run_in_threadpool(self._send, mail, verify_tls)
