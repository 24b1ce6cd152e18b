"""
session_store.py

Cookie snapshot cache used to skip the captcha/OTP login on later runs.
A snapshot holds the login email, the browser cookies and the time it was
taken (epoch milliseconds) and is only reused inside its maximum age.
"""

import json
import logging
import time
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import BrowserContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_HOURS = 24


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CookieSnapshot:
    """Cookies captured after a successful login"""
    email: str
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    timestamp: int = field(default_factory=_now_ms)

    def age_ms(self, now_ms: Optional[int] = None) -> int:
        return (now_ms if now_ms is not None else _now_ms()) - self.timestamp


class SessionStore:
    """Reads and writes cookie snapshots for a single login email"""

    def __init__(self, path: str = "cookies.json", max_age_hours: float = DEFAULT_MAX_AGE_HOURS):
        self.path = Path(path)
        self.max_age_ms = int(max_age_hours * 60 * 60 * 1000)
        self.logger = logging.getLogger(f"{__name__}.SessionStore")

    async def save(self, context: BrowserContext, email: str) -> CookieSnapshot:
        """Capture the context cookies and write them next to the email"""
        snapshot = CookieSnapshot(email=email, cookies=await context.cookies())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(asdict(snapshot), f, indent=2)
        self.logger.info(f"🍪 Cookies saved for {email}")
        return snapshot

    def read_snapshot(self) -> Optional[CookieSnapshot]:
        """Return the stored snapshot, or None when missing or unreadable"""
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return CookieSnapshot(
                email=data['email'],
                cookies=list(data.get('cookies') or []),
                timestamp=int(data['timestamp']),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"🍪 Error loading cookies: {e}")
            return None

    def is_fresh(self, snapshot: CookieSnapshot, now_ms: Optional[int] = None) -> bool:
        return snapshot.age_ms(now_ms) <= self.max_age_ms

    async def load(self, context: BrowserContext, now_ms: Optional[int] = None) -> Optional[str]:
        """
        Add stored cookies to the context when they are still fresh.

        Returns:
            The email the cookies belong to, or None when no usable session exists.
        """
        snapshot = self.read_snapshot()
        if snapshot is None:
            return None

        if not self.is_fresh(snapshot, now_ms):
            self.logger.info("🍪 Cookies are too old, will need fresh login")
            return None

        try:
            await context.add_cookies(snapshot.cookies)
        except Exception as e:
            self.logger.warning(f"🍪 Error loading cookies: {e}")
            return None

        self.logger.info(f"🍪 Cookies loaded for {snapshot.email}")
        return snapshot.email

    def clear(self) -> bool:
        """Delete the snapshot file; returns True if one existed"""
        if self.path.exists():
            self.path.unlink()
            self.logger.info(f"🍪 Removed cookie snapshot {self.path}")
            return True
        return False
