"""
onboarding.py

New applicant signup: a throwaway email signs in, the OTP is typed in, and
the "about yourself" form is completed with a random Indian mobile number.
The OTP request helpers are shared with the verification request login.
"""

import logging
import random
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from base_exceptions import DropdownSelectionError, LoginFailedError, PageTransitionError
from config_manager import DataFlowAutomationConfig
from extraction import VerificationSummary
from filling import FormFiller
from mapping import generate_random_email, generate_random_phone_number, is_valid_phone_number

logger = logging.getLogger(__name__)

CONSENT_TEXT = 'I consent to receive marketing communications from DataFlow'
ABOUT_YOURSELF_PATH = '/onboarding/about-yourself'
OTP_PATH = '/verification/mobile'
VALIDATION_ERROR_SELECTOR = '.dropdown-module_error__text, [style*="color: red"]'
PROFESSION_CONTAINER = '[data-testid="profession-dropdownInputContainer"]'


async def request_otp(filler: FormFiller, signin_url: str, email: str):
    """
    Open the sign-in page, enter email, let the operator solve the captcha and
    request an OTP. Returns once the OTP page is shown.
    """
    page = filler.page
    print('🌐 Loading DataFlow login page...')
    await page.goto(signin_url)
    await filler.wait_for_network_idle()
    print('✅ Login page loaded successfully')

    await page.get_by_placeholder('Enter email ID').fill(email)
    print(f"📧 Email filled: {email}")

    await filler.request_manual_intervention('Please enter captcha manually, then press [Resume] in Playwright Inspector...',
                                             step='captcha')

    await page.get_by_text(CONSENT_TEXT).click()
    await page.get_by_role('button', name='Get OTP').click()
    await page.wait_for_url(f'**{OTP_PATH}')
    print('✅ Redirected to OTP verification page')


async def wait_until_left(filler: FormFiller, path: str, timeout: int = 10000):
    """Wait until the page URL no longer contains path"""
    await filler.page.wait_for_function(f"() => !window.location.href.includes('{path}')", timeout=timeout)


class OnboardingScenario:
    """
    Signs up a new applicant and completes the applicant details page.
    """

    def __init__(self, filler: FormFiller, config: DataFlowAutomationConfig, rng: Optional[random.Random] = None):
        self.filler = filler
        self.page = filler.page
        self.config = config
        self.applicant = config.applicant
        self.rng = rng or random.Random()
        self.email = generate_random_email(self.rng)
        self.phone = generate_random_phone_number(self.rng)
        self.logger = logging.getLogger(f"{__name__}.OnboardingScenario")

    async def run(self, summary: Optional[VerificationSummary] = None) -> VerificationSummary:
        """Run the signup; steps are recorded on summary as they complete"""
        if summary is None:
            summary = VerificationSummary(scenario='onboarding', email=self.email, phone=self.phone)
        print(f"📧 Using email: {self.email}")
        print(f"📱 Using phone: {self.phone}")

        await request_otp(self.filler, self.config.dataflow.signin_url, self.email)
        summary.completed_steps.append('Request OTP')

        await self.filler.enter_otp(self.config.dataflow.otp)
        print('⏳ Waiting for redirect after OTP...')
        await wait_until_left(self.filler, OTP_PATH)
        redirected_url = self.page.url
        print(f"➡️ Redirected to: {redirected_url}")
        summary.completed_steps.append('Enter OTP')

        if ABOUT_YOURSELF_PATH not in redirected_url:
            await self.filler.screenshot('unexpected-redirect')
            raise LoginFailedError('Redirection failed after OTP')

        print('✅ On Applicant Details page')
        await self.fill_about_yourself()
        summary.phone = self.phone
        summary.completed_steps.append('Applicant Details')

        await self.accept_terms()
        summary.completed_steps.append('Accept Terms')

        await self.submit()
        summary.completed_steps.append('Submit')

        final_url = self.page.url
        print(f"🏁 Final URL: {final_url}")
        print(f"📧 SESSION COMPLETED WITH EMAIL: {self.email}")
        print(f"📱 PHONE NUMBER USED: {self.phone}")
        if ABOUT_YOURSELF_PATH in final_url:
            print('⚠️ Still on the same page, form submission may have failed')
            summary.failed_steps.append('Submit')
        else:
            print('✅ Successfully moved to application page')
        summary.final_url = final_url
        summary.success = not summary.failed_steps
        return summary

    async def _fill_phone(self):
        phone_field = self.page.locator('input[name="inputValue"]').first
        await phone_field.clear()
        await phone_field.fill(self.phone)

        entered = await phone_field.input_value()
        print(f"📱 Phone number entered: {entered} ({len(entered)} digits)")
        if not is_valid_phone_number(entered):
            print('⚠️ Phone number is not 10 digits, regenerating...')
            self.phone = generate_random_phone_number(self.rng)
            await phone_field.clear()
            await phone_field.fill(self.phone)
            print(f"📱 New phone number: {self.phone}")

    async def _type_ahead(self, test_id: str, query: str) -> None:
        """Search a dropdown by typing; takes the first result when query is not offered"""
        await self.page.locator(f'[data-testid="{test_id}-dropdownInputContainer"]').first.click()
        await self.page.locator(f'[data-testid="{test_id}-dropdownInput"]').first.fill(query)
        await self.filler.wait(1000)

        menu = f'[data-testid="{test_id}-menuItemContainer"]'
        option = self.page.locator(f'{menu}:has-text("{query}")').first
        if await option.is_visible():
            await option.click()
            print(f"✅ Selected {query} for {test_id}")
        else:
            await self.page.locator(menu).first.click()
            print(f"✅ Selected first available {test_id}")

    async def _select_or_type(self, test_id: str, query: str):
        try:
            await self.filler.select_first_dropdown_option(test_id)
        except (DropdownSelectionError, PlaywrightTimeoutError):
            print(f"⚠️ {test_id.title()} selection failed, trying alternative approach...")
            await self._type_ahead(test_id, query)

    async def _repair_validation_errors(self):
        if await self.page.locator(VALIDATION_ERROR_SELECTOR).count() == 0:
            return
        for test_id in ('nationality', 'profession'):
            value = await self.page.locator(f'[data-testid="{test_id}-dropdownInput"]').first.input_value()
            if not value or value == f'Select {test_id}':
                print(f"🔧 Fixing {test_id} field...")
                await self.page.locator(f'[data-testid="{test_id}-dropdownInputContainer"]').first.click()
                await self.filler.wait(500)
                await self.page.locator(f'[data-testid="{test_id}-menuItemContainer"]').first.click()

    async def fill_about_yourself(self):
        await self.filler.select_first_dropdown_option('salutation', self.applicant.salutation)

        await self.page.locator('input[name="firstName"]').first.fill(self.applicant.first_name)
        await self.page.locator('input[name="lastName"]').first.fill(self.applicant.last_name)
        await self._fill_phone()

        await self.page.locator('[data-testid="dob_trigger"]').first.click()
        await self.filler.request_manual_intervention('Please select the date of birth, then press [Resume] in the Inspector.',
                                                      step='date_of_birth')

        print('🔍 Selecting gender...')
        await self.filler.select_first_dropdown_option('gender', self.applicant.gender)

        await self._select_or_type('nationality', self.applicant.nationality)
        await self._select_or_type('profession', self.applicant.profession)

        print('🔧 Closing profession dropdown display...')
        await self.page.locator('body').click()
        await self.filler.wait(1000)
        await self.page.locator('input[name="firstName"]').first.click()
        await self.filler.wait(500)

        print('🔍 Verifying all fields are filled...')
        await self._repair_validation_errors()

    async def _require_visible(self, selector: str):
        element = self.page.locator(selector).first
        if not await element.is_visible():
            raise PageTransitionError(f"{selector} is not visible")
        return element

    async def _tick_checkbox_input(self):
        checkbox = self.page.locator('input[type="checkbox"]').first
        await checkbox.wait_for(state='visible', timeout=3000)
        await checkbox.check(force=True)

    async def _click_left_of_terms(self):
        terms = await self._require_visible('text="Terms & Conditions"')
        box = await terms.bounding_box()
        if not box:
            raise PageTransitionError('Terms & Conditions has no bounding box')
        await self.page.mouse.click(box['x'] - 25, box['y'] + box['height'] / 2)

    async def _click_agree_label(self):
        label = await self._require_visible('label:has-text("I agree to the")')
        await label.click(force=True)

    async def _click_any_checkbox(self):
        checkbox = await self._require_visible('[type="checkbox"], [role="checkbox"]')
        await checkbox.click(force=True)

    async def _tab_from_profession(self):
        await self.page.locator(PROFESSION_CONTAINER).first.click()
        await self.page.keyboard.press('Tab')
        await self.page.keyboard.press('Space')

    async def _click_above_continue(self):
        box = await self.page.locator('button:has-text("Continue")').first.bounding_box()
        if not box:
            raise PageTransitionError('Continue button has no bounding box')
        await self.page.mouse.click(box['x'] - 50, box['y'] - 50)

    async def accept_terms(self) -> str:
        """Tick the terms checkbox; returns the method that worked"""
        print('🔍 Attempting to check terms and conditions...')
        await self.filler.wait(2000)
        await self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
        await self.filler.wait(500)
        try:
            await self.page.locator(PROFESSION_CONTAINER).first.hover()
            await self.filler.wait(1000)
        except Exception as e:
            self.logger.debug(f"Hover failed, continuing: {e}")

        method = await self.filler.try_strategies('Terms checkbox', [
            ('checkbox input', self._tick_checkbox_input),
            ('click beside Terms & Conditions', self._click_left_of_terms),
            ('agree label', self._click_agree_label),
            ('css checkbox', self._click_any_checkbox),
            ('keyboard navigation', self._tab_from_profession),
            ('approximate location', self._click_above_continue),
        ])
        if method is None:
            await self.filler.request_manual_intervention('Please tick the Terms & Conditions checkbox, then press Resume',
                                                          step='terms')
            method = 'manual'
        await self.filler.wait(1000)
        return method

    async def submit(self):
        try:
            await self.page.locator('button:has-text("Continue"):not([disabled])').first.wait_for(state='visible', timeout=5000)
        except PlaywrightTimeoutError:
            await self.filler.request_manual_intervention('Continue is still disabled. Please complete the form, then press Resume',
                                                          step='submit')
        await self.page.locator('button:has-text("Continue")').first.click()
        print('⏳ Form submitted, waiting for redirection...')
        await self.filler.wait(3000)

        wait_seconds = self.config.automation.onboarding_wait_seconds
        print(f"⏳ Waiting for application page ({wait_seconds}s)...")
        await self.filler.wait(wait_seconds * 1000)
        await self.filler.screenshot('onboarding-final')
