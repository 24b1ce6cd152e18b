"""
filling.py

This module holds the interaction primitives the DataFlow page handlers are
built from. Every primitive walks an ordered list of selector strategies and,
when all of them fail, hands the page over to the operator through the
Playwright Inspector (page.pause()).
"""

import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from base_exceptions import DropdownSelectionError, ManualInterventionRequired, SelectorChainExhausted
from extraction import PageStateExtractor
from mapping import MappedField

logger = logging.getLogger(__name__)

Strategy = Tuple[str, Callable[[], Awaitable[object]]]

DROPDOWN_OPTION_SELECTORS = [
    '[role="option"]:has-text("{text}")',
    '[class*="menuItem"]:has-text("{text}")',
    '[class*="dropdown"]:has-text("{text}")',
    '.dropdown-module_menuItemLabel__VJuGM:has-text("{text}")',
    'li:has-text("{text}")',
    'div[role="listbox"] div:has-text("{text}")',
    'ul li:has-text("{text}")',
]

ALTERNATIVE_BUTTON_SELECTORS = [
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Next")',
    'button:has-text("Proceed")',
    'button:has-text("Submit")',
    '.btn-primary',
    '.continue-btn',
    '[data-testid*="continue"]',
    '[data-testid*="next"]',
]

CHECKBOX_SELECTORS = [
    'input[type="checkbox"]',
    '[type="checkbox"]',
    '.checkbox input',
    '[data-testid*="checkbox"]',
    '[role="checkbox"]',
]

CHECKBOX_ICON_SELECTOR = '.checkbox, [class*="check"], [class*="tick"]'

MENU_ITEM_LABEL_SELECTOR = '[class*="menuItemLabel"]'

UPLOAD_TRIGGER_SELECTORS = [
    'text="Click to upload"',
    '.downloadUpload-module_button__-uMBo',
]


class FormFiller:
    """
    Selector-fallback interactions against a single Playwright page.

    The filler counts every hand-off to the operator so the run summary can
    report how much of a flow still needed a human.
    """

    def __init__(self, page: Page, manual_pause_enabled: bool = True,
                 screenshot_dir: str = "screenshots", screenshots_enabled: bool = True,
                 element_wait_timeout: int = 10000):
        self.page = page
        self.manual_pause_enabled = manual_pause_enabled
        self.screenshot_dir = Path(screenshot_dir)
        self.screenshots_enabled = screenshots_enabled
        self.element_wait_timeout = element_wait_timeout
        self.manual_interventions = 0
        self.intervention_log: List[str] = []
        self.extractor = PageStateExtractor()
        self.logger = logging.getLogger(f"{__name__}.FormFiller")

    async def request_manual_intervention(self, message: str, step: Optional[str] = None):
        """
        Ask the operator to finish a step by hand.

        Raises:
            ManualInterventionRequired: when pausing is disabled (headless runs).
        """
        print(f"👉 {message}")
        self.manual_interventions += 1
        self.intervention_log.append(message)
        if not self.manual_pause_enabled:
            raise ManualInterventionRequired(message, step=step)
        await self.page.pause()
        print("▶️ Resumed by operator")

    async def wait(self, milliseconds: int):
        await self.page.wait_for_timeout(milliseconds)

    async def wait_for_network_idle(self, timeout: Optional[int] = None):
        """Wait for network idle; a timeout here is logged, not raised"""
        try:
            await self.page.wait_for_load_state('networkidle', timeout=timeout or self.element_wait_timeout * 3)
        except PlaywrightTimeoutError:
            self.logger.warning(f"⏳ Network did not go idle on {self.page.url}")

    async def screenshot(self, name: str, force: bool = False) -> Optional[str]:
        """Best-effort full page screenshot; returns the path or None"""
        if not (self.screenshots_enabled or force):
            return None
        path = self.screenshot_dir / f"{name}.png"
        try:
            self.screenshot_dir.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
            return str(path)
        except Exception as e:
            self.logger.debug(f"Screenshot {name} failed: {e}")
            return None

    async def try_strategies(self, description: str, strategies: Sequence[Strategy]) -> Optional[str]:
        """
        Run strategies in order until one completes without raising.

        Returns:
            The name of the strategy that worked, or None when all failed.
        """
        for name, strategy in strategies:
            try:
                print(f"🔄 {description}: trying {name}...")
                await strategy()
                print(f"✅ {description} ({name})")
                return name
            except ManualInterventionRequired:
                raise
            except Exception as e:
                print(f"⚠️ {description}: {name} failed: {e}")
        return None

    async def _click_when_visible(self, locator: Locator, force: bool = False, timeout: Optional[int] = None):
        await locator.wait_for(state='visible', timeout=timeout or self.element_wait_timeout)
        await locator.click(force=force)

    async def click_first_available(self, description: str, selectors: Sequence[str], force: bool = False,
                                    timeout: Optional[int] = None, manual_fallback: bool = True) -> Optional[str]:
        """
        Click the first selector that becomes visible.

        Returns:
            The selector that was clicked, or None when the operator clicked by hand.
        """
        strategies = [
            (selector, lambda s=selector: self._click_when_visible(self.page.locator(s).first, force, timeout))
            for selector in selectors
        ]
        winner = await self.try_strategies(description, strategies)
        if winner is not None:
            return winner

        await self.screenshot(f"{_slug(description)}-not-found")
        if not manual_fallback:
            raise SelectorChainExhausted(description, list(selectors))
        await self.request_manual_intervention(f"Could not click {description} automatically. Please click it, then press Resume",
                                               step=description)
        return None

    async def select_dropdown_option(self, test_id: str, option_text: str) -> bool:
        """
        Open the data-testid dropdown and pick option_text.

        Tries an exact text match, then a list of option selectors, then typing
        the option with the keyboard, and finally asks the operator.
        """
        print(f"🔍 Attempting to select \"{option_text}\" for {test_id}")
        input_selector = f'[data-testid="{test_id}-dropdownInput"]'
        try:
            await self.screenshot(f"before-{test_id}-selection")
            await self.wait_for_network_idle()
            await self.wait(2000)

            dropdown_input = self.page.locator(input_selector).first
            await dropdown_input.wait_for(state='visible', timeout=self.element_wait_timeout)
            await dropdown_input.click()
            print(f"✅ Clicked dropdown input field: {input_selector}")
            await self.wait(3000)

            selected = False
            try:
                exact = self.page.locator(f'text="{option_text}"').first
                await exact.wait_for(state='visible', timeout=5000)
                await exact.click()
                print(f"✅ Selected option using direct text: {option_text}")
                selected = True
            except Exception as e:
                print(f"⚠️ Direct text click failed ({e}), trying other methods...")

            if not selected:
                for template in DROPDOWN_OPTION_SELECTORS:
                    selector = template.format(text=option_text)
                    try:
                        option = self.page.locator(selector).first
                        if await option.is_visible():
                            await option.click()
                            print(f"✅ Successfully clicked option using selector: {selector}")
                            selected = True
                            break
                    except Exception:
                        print(f"⚠️ Selector {selector} didn't work, trying next...")

            if not selected:
                print("🔄 Trying keyboard navigation method...")
                try:
                    await dropdown_input.click()
                    await self.page.keyboard.press('Control+A')
                    await self.page.keyboard.type(option_text)
                    await self.wait(1000)
                    await self.page.keyboard.press('Enter')
                    print(f"✅ Selected option using keyboard navigation: {option_text}")
                    selected = True
                except Exception as e:
                    print(f"⚠️ Keyboard navigation failed: {e}")

            if not selected:
                await self.request_manual_intervention(
                    f"The dropdown should be open. Please click on \"{option_text}\", then press Resume", step=test_id)

            await self.wait(2000)
            await self.wait_for_network_idle()
            await self.screenshot(f"after-{test_id}-selection")
            print(f"✅ Dropdown selection completed for {test_id}")
            return True

        except ManualInterventionRequired:
            raise
        except Exception as e:
            print(f"❌ Error in dropdown selection: {e}")
            await self.screenshot(f"error-{test_id}-selection")
            await self.extractor.log_debug_state(self.page)
            await self.request_manual_intervention(
                f"Please select \"{option_text}\" for {test_id}, then press Resume", step=test_id)
            return True

    async def select_first_dropdown_option(self, test_id: str, option_text: Optional[str] = None) -> str:
        """
        Open a data-testid dropdown and click its first menu item, or the
        first one containing option_text.

        Raises:
            DropdownSelectionError: if the input is still empty afterwards.
        """
        print(f"🔍 Selecting option from {test_id} dropdown...")
        await self.page.locator(f'[data-testid="{test_id}-dropdownInputContainer"]').first.click()
        await self.wait(1000)

        menu_selector = f'[data-testid="{test_id}-menuItemContainer"]'
        await self.page.locator(menu_selector).first.wait_for(state='visible', timeout=5000)
        if option_text:
            option = self.page.locator(f'{menu_selector}:text-is("{option_text}")')
            if await option.count() == 0:
                option = self.page.locator(f'{menu_selector}:has-text("{option_text}")')
            await option.first.click()
            print(f"✅ Selected \"{option_text}\" from {test_id}")
        else:
            await self.page.locator(menu_selector).first.click()
            print(f"✅ Selected first option from {test_id}")
        await self.wait(500)

        value = await self.page.locator(f'[data-testid="{test_id}-dropdownInput"]').first.input_value()
        if not value or value == f"Select {test_id}":
            raise DropdownSelectionError(f"Failed to select option from {test_id} dropdown")
        return value

    async def open_dropdown_and_pick(self, description: str, dropdown_selectors: Sequence[str],
                                     option_templates: Sequence[str], option_text: str,
                                     resolve_option: Optional[Callable[[List[str]], Optional[str]]] = None) -> bool:
        """
        Open the first visible dropdown from dropdown_selectors and click an option.

        option_templates are selectors with a {text} placeholder. When
        resolve_option is given it receives the menu labels on screen and may
        return the label to pick instead of option_text.

        Returns False when the operator had to finish the selection.
        """
        opened = False
        for selector in dropdown_selectors:
            try:
                candidates = self.page.locator(selector)
                count = await candidates.count()
                for i in range(count):
                    element = candidates.nth(i)
                    if await element.is_visible():
                        await element.click()
                        print(f"✅ Opened {description} dropdown with {selector} (index {i})")
                        await self.wait(1500)
                        opened = True
                        break
                if opened:
                    break
            except Exception as e:
                print(f"❌ Failed with selector {selector}: {e}")

        if not opened:
            await self.request_manual_intervention(
                f"Could not open the {description} dropdown. Please select \"{option_text}\", then press Resume",
                step=description)
            return False

        if resolve_option is not None:
            labels = await self.extractor.visible_texts(self.page, MENU_ITEM_LABEL_SELECTOR)
            option_text = resolve_option(labels) or option_text

        for template in option_templates:
            selector = template.format(text=option_text)
            try:
                option = self.page.locator(selector).first
                if await option.count() > 0 and await option.is_visible():
                    await option.click()
                    print(f"✅ Selected {option_text} for {description} using {selector}")
                    await self.wait(1000)
                    return True
            except Exception as e:
                print(f"❌ Option selector {selector} failed: {e}")

        try:
            await self.wait(1000)
            matches = self.page.get_by_text(option_text, exact=True)
            for i in range(await matches.count()):
                element = matches.nth(i)
                if await element.is_visible():
                    await element.click()
                    print(f"✅ Selected {option_text} for {description} by text (index {i})")
                    await self.wait(1000)
                    return True
        except Exception as e:
            print(f"❌ Text fallback for {description} failed: {e}")

        await self.request_manual_intervention(
            f"The {description} dropdown is open. Please select \"{option_text}\", then press Resume", step=description)
        return False

    async def check_acknowledgement(self, label_text: str, selectors: Sequence[str] = CHECKBOX_SELECTORS,
                                    icon_selector: str = CHECKBOX_ICON_SELECTOR) -> str:
        """
        Tick an acknowledgement checkbox. A checkbox that is already ticked counts.

        Returns:
            How the checkbox was ticked: a selector, "label", "icon" or "manual".
        """
        for selector in list(selectors) + [f'label:has-text("{label_text}") input']:
            try:
                checkbox = self.page.locator(selector).first
                await checkbox.wait_for(state='visible', timeout=5000)
                if await checkbox.is_checked():
                    print("✅ Checkbox was already checked")
                else:
                    await checkbox.check()
                    print(f"✅ Checked the checkbox using {selector}")
                await self.wait(1000)
                return selector
            except Exception:
                print(f"⚠️ Selector {selector} didn't work, trying next...")

        try:
            await self.page.locator(f'text="{label_text}"').first.click(timeout=5000)
            print("✅ Clicked checkbox via label text")
            await self.wait(1000)
            return "label"
        except Exception:
            print("⚠️ Label text click method failed")

        try:
            await self.page.locator(icon_selector).first.click(timeout=5000)
            print("✅ Clicked checkbox via icon/area method")
            await self.wait(1000)
            return "icon"
        except Exception:
            print("⚠️ Checkbox icon click method failed")

        await self.request_manual_intervention(
            f"Please tick the checkbox that says \"{label_text}\", then press Resume", step="acknowledgement")
        return "manual"

    async def click_navigation_button(self, primary_text: str,
                                      alternatives: Sequence[str] = ALTERNATIVE_BUTTON_SELECTORS,
                                      settle_ms: int = 3000) -> str:
        """
        Click a page's primary navigation button (Continue, Proceed, Save and Continue).

        A visible but disabled button means the form is incomplete, so the
        operator is asked to finish it. When the button is missing the
        alternative selectors are tried first.

        Returns:
            The page URL after the click.
        """
        selector = f'button:has-text("{primary_text}")'
        start_url = self.page.url
        print(f"🔍 Looking for and clicking the {primary_text} button...")
        try:
            button = self.page.locator(selector).first
            await button.wait_for(state='visible', timeout=self.element_wait_timeout)
            visible = await button.is_visible()
            enabled = await button.is_enabled()
            print(f"🔍 {primary_text} button - visible: {visible}, enabled: {enabled}")

            if visible and enabled:
                await self.screenshot(f"before-{_slug(primary_text)}-click")
                await button.click()
                print(f"✅ Successfully clicked {primary_text} button")
            else:
                await self.request_manual_intervention(
                    f"{primary_text} button is not enabled. Please complete the page and click {primary_text}, then press Resume",
                    step=primary_text)
        except PlaywrightTimeoutError as e:
            print(f"❌ Could not find {primary_text} button: {e}")
            await self.screenshot(f"{_slug(primary_text)}-button-error")
            if not await self._click_alternative_button(alternatives):
                await self.request_manual_intervention(
                    f"Could not find {primary_text} button automatically. Please click it, then press Resume",
                    step=primary_text)

        await self.wait(settle_ms)
        await self.wait_for_network_idle()
        new_url = self.page.url
        print(f"📍 After {primary_text} click URL: {new_url}")
        if new_url == start_url:
            print("⚠️ URL didn't change - page content may have updated in place")
        return new_url

    async def _click_alternative_button(self, alternatives: Sequence[str]) -> bool:
        for selector in alternatives:
            try:
                print(f"🔄 Trying alternative button selector: {selector}")
                button = self.page.locator(selector).first
                if await button.is_visible() and await button.is_enabled():
                    await button.click()
                    print(f"✅ Clicked button using alternative selector: {selector}")
                    return True
            except Exception:
                continue
        return False

    async def fill_first_available(self, description: str, selectors: Sequence[str], value: str,
                                   nth: int = 0, only_if_empty: bool = False) -> Optional[str]:
        """
        Fill the first visible field from selectors with value.

        Returns:
            The selector used, or None when no field could be filled.
        """
        for selector in selectors:
            try:
                field = self.page.locator(selector).nth(nth)
                if not await field.is_visible():
                    continue
                if only_if_empty and (await field.input_value()).strip():
                    continue
                await field.fill(value)
                print(f"✅ {description} filled: {value}")
                return selector
            except Exception:
                continue
        print(f"⚠️ Could not fill {description}")
        return None

    async def fill_mapped_fields(self, mapped_fields: List[MappedField]) -> List[str]:
        """Fill every mapped field; returns the keys that could not be filled"""
        missed = []
        for field in mapped_fields:
            used = await self.fill_first_available(field.label, field.selectors, field.value_to_fill,
                                                   nth=field.nth, only_if_empty=field.only_if_empty)
            if used is None:
                missed.append(field.key)
            await self.wait(500)
        return missed

    async def fill_first_empty_text_input(self, value: str, selector: str = 'input[type="text"]') -> bool:
        inputs = self.page.locator(selector)
        for i in range(await inputs.count()):
            field = inputs.nth(i)
            if not (await field.input_value()).strip():
                await field.fill(value)
                print(f"✅ Filled first empty input (index {i}) with: {value}")
                return True
        return False

    async def upload_document(self, file_path: str, trigger_selectors: Sequence[str] = UPLOAD_TRIGGER_SELECTORS,
                              use_last_input: bool = False, settle_ms: int = 2000):
        """
        Attach file_path to the page's file input, clicking an upload trigger first when one is visible.

        Raises:
            FileNotFoundError: if file_path does not exist.
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Upload file not found: {file_path}")

        print(f"📤 Uploading {os.path.basename(file_path)}...")
        for selector in trigger_selectors:
            try:
                trigger = self.page.locator(selector).first
                if await trigger.is_visible():
                    await trigger.click()
                    print(f"📤 Clicked upload trigger: {selector}")
                    await self.wait(1000)
                    break
            except Exception:
                continue

        file_inputs = self.page.locator('input[type="file"]')
        file_input = file_inputs.last if use_last_input else file_inputs.first
        await file_input.set_input_files(file_path)
        print(f"✅ Document uploaded: {os.path.basename(file_path)}")
        await self.wait(settle_ms)

    async def enter_otp(self, otp: str):
        """Type the OTP one digit per tel input box"""
        boxes = self.page.locator('input[type="tel"]')
        await boxes.first.wait_for(state='visible', timeout=self.element_wait_timeout)
        for i, digit in enumerate(otp):
            await boxes.nth(i).click()
            await self.page.keyboard.press(digit)
            await self.wait(200)
        print(f"🔢 OTP entered ({len(otp)} digits)")


def _slug(text: str) -> str:
    return '-'.join(text.lower().split())
