"""
extraction.py

This module reads state back out of the DataFlow UI: debug snapshots of the
current page (buttons, links, dropdowns) for when a step fails, and the
summary of a verification request run.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import Page

from config_manager import VerificationRequestConfig

logger = logging.getLogger(__name__)

MAX_LINKS_LOGGED = 10

@dataclass
class DropdownState:
    """A data-testid dropdown input found on the page."""
    test_id: str
    visible: bool = False
    enabled: bool = False

@dataclass
class PageSnapshot:
    """What was on screen when a step finished or failed."""
    url: str
    title: str = ""
    buttons: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    dropdowns: List[DropdownState] = field(default_factory=list)
    checkbox_count: int = 0

@dataclass
class VerificationSummary:
    """End-of-run report for a scenario."""
    scenario: str
    email: str = ""
    phone: str = ""
    final_url: str = ""
    page_title: str = ""
    selections: Dict[str, bool] = field(default_factory=dict)
    completed_steps: List[str] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)
    manual_interventions: int = 0
    payment_amount: Optional[str] = None
    success: bool = False
    error: Optional[str] = None
    started_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))
    finished_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

class PageStateExtractor:
    """
    Collects debugging information from a Playwright page.
    Every read is best-effort: a failing read leaves its field empty.
    """

    async def snapshot(self, page: Page) -> PageSnapshot:
        snapshot = PageSnapshot(url=page.url)

        try:
            snapshot.title = await page.title()
        except Exception as e:
            logger.debug(f"Could not read page title: {e}")

        try:
            snapshot.buttons = [text.strip() for text in await page.locator('button').all_text_contents() if text.strip()]
        except Exception as e:
            logger.debug(f"Could not read buttons: {e}")

        try:
            links = [text.strip() for text in await page.locator('a').all_text_contents() if text.strip()]
            snapshot.links = links[:MAX_LINKS_LOGGED]
        except Exception as e:
            logger.debug(f"Could not read links: {e}")

        try:
            for element in await page.locator('[data-testid*="-dropdownInput"]').all():
                snapshot.dropdowns.append(DropdownState(
                    test_id=await element.get_attribute('data-testid') or '',
                    visible=await element.is_visible(),
                    enabled=await element.is_enabled(),
                ))
        except Exception as e:
            logger.debug(f"Could not read dropdowns: {e}")

        try:
            snapshot.checkbox_count = await page.locator('input[type="checkbox"]').count()
        except Exception as e:
            logger.debug(f"Could not count checkboxes: {e}")

        return snapshot

    async def log_debug_state(self, page: Page) -> PageSnapshot:
        """Log the current page state; never raises"""
        snapshot = await self.snapshot(page)
        logger.info("🔍 Debug: Current page state...")
        logger.info(f"🔍 Debug: Current URL: {snapshot.url}")
        logger.info(f"🔍 Debug: Page title: {snapshot.title}")
        logger.info(f"🔍 Debug: Available buttons: {snapshot.buttons}")
        logger.info(f"🔍 Debug: Available links: {snapshot.links}")
        logger.info(f"🔍 Debug: Found {len(snapshot.dropdowns)} dropdown inputs on page")
        for i, dropdown in enumerate(snapshot.dropdowns):
            logger.info(f"🔍 Debug: Dropdown {i}: {dropdown.test_id}, visible: {dropdown.visible}, enabled: {dropdown.enabled}")
        logger.info(f"🔍 Debug: Found {snapshot.checkbox_count} checkbox elements on page")
        return snapshot

    async def visible_texts(self, page: Page, selector: str) -> List[str]:
        """Text of every element matching selector, used to list the cards on offer"""
        try:
            return [text.strip() for text in await page.locator(selector).all_text_contents() if text.strip()]
        except Exception as e:
            logger.debug(f"Could not read texts for {selector}: {e}")
            return []

    async def extract_selections(self, page: Page, expected: Dict[str, str]) -> Dict[str, bool]:
        """
        Check which of the expected selections are shown on the page.

        Args:
            expected: mapping of selection name (e.g. "country") to the text it shows.
        """
        selections = {}
        for name, text in expected.items():
            if not text:
                continue
            try:
                selections[name] = await page.locator(f'text="{text}"').first.is_visible()
            except Exception:
                selections[name] = False
        return selections


def expected_selections(verification: VerificationRequestConfig) -> Dict[str, str]:
    return {
        'country': verification.country,
        'authority': verification.authority,
        'verification_reason': verification.verification_reason,
        'verification_type': verification.verification_type,
    }


async def extract_summary(page: Page, verification: Optional[VerificationRequestConfig],
                          summary: VerificationSummary) -> VerificationSummary:
    """
    Fill in the page-derived parts of a summary: final URL, title and which
    configured selections are visible. Selections are skipped when no
    verification config is given (onboarding runs).
    """
    extractor = PageStateExtractor()
    summary.final_url = page.url
    try:
        summary.page_title = await page.title()
    except Exception as e:
        logger.debug(f"Could not read page title: {e}")
    if verification is not None:
        summary.selections = await extractor.extract_selections(page, expected_selections(verification))
    summary.finished_at = datetime.now().isoformat(timespec='seconds')
    return summary


def save_summary(summary: VerificationSummary, path: str) -> str:
    """Write the summary as indented JSON and return the path written"""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w', encoding='utf-8') as f:
        json.dump(summary.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"📁 Summary saved to {output}")
    return str(output)


def print_summary(summary: VerificationSummary) -> None:
    """Operator-facing banner printed at the end of a run"""
    print('\n' + '=' * 60)
    print('📋 TEST EXECUTION SUMMARY')
    print('=' * 60)
    print(f"🧭 Scenario: {summary.scenario}")
    if summary.email:
        print(f"📧 Email used: {summary.email}")
    if summary.phone:
        print(f"📱 Phone used: {summary.phone}")
    print(f"🔗 Final URL: {summary.final_url}")
    for name, confirmed in summary.selections.items():
        print(f"   {'✅' if confirmed else '⚠️'} {name}")
    print(f"✅ Completed steps: {len(summary.completed_steps)}")
    if summary.failed_steps:
        print(f"❌ Failed steps: {', '.join(summary.failed_steps)}")
    print(f"👉 Manual interventions: {summary.manual_interventions}")
    print('=' * 60)
