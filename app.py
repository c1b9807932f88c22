# app.py
import logging
import os
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from contact import CONTACT_PATH, ContactFormHandler, ContactSubmission, Identity
from errors import NoArtistsError, UpstreamError
from lastfm import ERROR_CODES_URL, LastFmClient
from mailer import SmtpMailer
from recaptcha import RecaptchaVerifier
from settings import Settings
from top_artists import TopArtistsView

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

settings = Settings.from_env()

app = FastAPI()
app.add_middleware(SessionMiddleware, secret_key=settings.app_secret)
templates = Jinja2Templates(directory=os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates"))

FLASH_KEY = "_flashes"

# ------------------ tiny utils ------------------

def _flash(request: Request, category: str, message: str) -> None:
    pending = request.session.get(FLASH_KEY) or []
    pending.append([category, message])
    request.session[FLASH_KEY] = pending

def _pop_flashes(request: Request) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for category, message in request.session.pop(FLASH_KEY, None) or []:
        out.setdefault(category, []).append(message)
    return out

def _current_user(request: Request) -> Optional[Identity]:
    # set by whatever login layer sits in front of this app
    raw = request.session.get("user")
    if not raw or not raw.get("email"):
        return None
    return Identity(email=raw["email"], profile_name=(raw.get("profile") or {}).get("name"))

def _render(request: Request, context: dict, status_code: int = 200) -> HTMLResponse:
    ctx = {
        "title": "Last.fm API",
        "user": None,
        "messages": _pop_flashes(request),
        "recaptcha_site_key": settings.recaptcha_site_key,
        **context,
    }
    return templates.TemplateResponse(request, "contact.html", ctx, status_code=status_code)

# ------------------ collaborators ------------------

def get_top_artists_view() -> TopArtistsView:
    return TopArtistsView(
        LastFmClient(settings.lastfm_key),
        inline_images=settings.inline_artist_images,
    )

def get_contact_handler() -> ContactFormHandler:
    mailer = SmtpMailer(settings.smtp_host, settings.smtp_user, settings.smtp_password,
                        port=settings.smtp_port, timeout=settings.smtp_timeout)
    return ContactFormHandler(RecaptchaVerifier(settings.recaptcha_secret), mailer,
                              settings.site_contact_email, settings.contact_subject)

# ------------------ errors ------------------

@app.exception_handler(NoArtistsError)
async def no_artists(request: Request, exc: NoArtistsError):
    log.info("%s", exc)
    return _render(request, {"error": f"{exc.username} has no listening history yet."}, status_code=404)

@app.exception_handler(UpstreamError)
async def upstream_failed(request: Request, exc: UpstreamError):
    log.error("See error codes at: %s", ERROR_CODES_URL)
    log.error("Upstream failure: %s", exc)
    return _render(request, {"error": "Couldn't load top artists right now."}, status_code=502)

# ------------------ routes ------------------

@app.get("/")
def home():
    return RedirectResponse(CONTACT_PATH)

@app.get(CONTACT_PATH, response_class=HTMLResponse)
async def get_contact(
    request: Request,
    username: Optional[str] = None,
    view: TopArtistsView = Depends(get_top_artists_view),
):
    user = None
    if username:
        user = (await view.build(username)).to_dict()
    return _render(request, {"user": user})

@app.post(CONTACT_PATH)
async def post_contact(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    message: str = Form(""),
    captcha_token: str = Form("", alias="g-recaptcha-response"),
    handler: ContactFormHandler = Depends(get_contact_handler),
):
    form = ContactSubmission(name=name, email=email, message=message, captcha_token=captcha_token)
    outcome = await handler.submit(
        form,
        user=_current_user(request),
        remote_ip=request.client.host if request.client else None,
    )
    for notice in outcome.notices:
        _flash(request, notice.category, notice.message)
    return RedirectResponse(outcome.redirect_to, status_code=303)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "8000")))
