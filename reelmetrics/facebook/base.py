import json
import os
from typing import Any, Dict, List, Optional

from ..base import BaseFetcher

# name -> (httpOnly, secure)
SESSION_COOKIES = {
    "c_user": (False, True),
    "xs": (True, True),
    "datr": (True, True),
    "fr": (True, True),
    "sb": (True, True),
}


def _cookie(name: str, value: str) -> Dict[str, Any]:
    http_only, secure = SESSION_COOKIES.get(name, (False, True))
    return {
        "name": name,
        "value": value,
        "domain": ".facebook.com",
        "path": "/",
        "httpOnly": http_only,
        "secure": secure,
        "sameSite": "None",
    }


class FacebookBaseFetcher(BaseFetcher):

    def _build_cookies(self) -> List[Dict[str, Any]]:
        """
        Reads Facebook session cookies from the environment when no saved
        session file is in use.

        Supports:
        1. Individual vars: FB_COOKIE_C_USER, FB_COOKIE_XS, FB_COOKIE_DATR, FB_COOKIE_FR, FB_COOKIE_SB
        2. FACEBOOK_COOKIES as a JSON array: '[{"name": "c_user", "value": "..."}]'
        3. FACEBOOK_COOKIES as a cookie header: 'c_user=123; xs=abc'
        """
        cookies = [
            _cookie(name, os.environ[f"FB_COOKIE_{name.upper()}"])
            for name in SESSION_COOKIES
            if os.getenv(f"FB_COOKIE_{name.upper()}")
        ]
        if cookies:
            return cookies

        raw = os.getenv("FACEBOOK_COOKIES", "").strip()
        if not raw:
            return []

        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                self.logger.warning("FACEBOOK_COOKIES looks like JSON but does not parse, ignoring it.")
                return []
            result = []
            for c in parsed if isinstance(parsed, list) else []:
                if isinstance(c, dict) and "name" in c and "value" in c:
                    c.setdefault("domain", ".facebook.com")
                    c.setdefault("path", "/")
                    result.append(c)
            self.logger.info(f"Loaded {len(result)} cookies from FACEBOOK_COOKIES (JSON format).")
            return result

        result = []
        for part in raw.split(";"):
            name, _, value = part.strip().partition("=")
            if name.strip() and value.strip():
                result.append(_cookie(name.strip(), value.strip()))
        if result:
            self.logger.info(f"Loaded {len(result)} cookies from FACEBOOK_COOKIES (key=value format).")
        return result

    async def inject_cookies(self):
        """Injects session cookies unless a saved storage state already provides them."""
        if not self.context:
            self.logger.warning("No browser context to inject cookies into.")
            return
        if self.storage_state:
            return

        cookies = self._build_cookies()
        if cookies:
            await self.context.add_cookies(cookies)
            names = [c["name"] for c in cookies]
            self.logger.info(f"Injected {len(cookies)} Facebook cookies: {names}")
        else:
            self.logger.warning(
                "No Facebook session found. Run `save-session` or set FB_COOKIE_C_USER + FB_COOKIE_XS. "
                "Scraping as anonymous, counters may be missing."
            )

    def check_restricted(self) -> Optional[str]:
        """Only a redirect to login/checkpoint counts as a hard block."""
        if not self.page:
            return None
        current_url = self.page.url or ""
        if "login.php" in current_url or "/checkpoint" in current_url:
            self.logger.error(f"Hard block detected, redirected to: {current_url}")
            return f"Blocked: redirected to {current_url}"
        return None
