from typing import Optional

import requests
from starlette.concurrency import run_in_threadpool

from errors import CaptchaError

VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class RecaptchaVerifier:
    def __init__(self, secret: Optional[str], timeout: float = 15):
        self.secret = secret
        self.timeout = timeout

    def _verify(self, token: str, remote_ip: Optional[str] = None) -> bool:
        data = {"secret": self.secret or "", "response": token or ""}
        if remote_ip:
            data["remoteip"] = remote_ip
        headers = {"Content-Type": "application/x-www-form-urlencoded; charset=utf-8"}
        try:
            r = requests.post(VERIFY_URL, headers=headers, data=data, timeout=self.timeout)
            r.raise_for_status()
            return bool(r.json().get("success"))
        except (requests.RequestException, ValueError) as e:
            raise CaptchaError(f"reCAPTCHA verify failed: {e}") from e

    async def verify(self, token: str, remote_ip: Optional[str] = None) -> bool:
        return await run_in_threadpool(self._verify, token, remote_ip)
