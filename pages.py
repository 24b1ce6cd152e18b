"""
pages.py

One handler per page of the DataFlow "Start New Verification" flow, from the
dashboard sidebar through country and authority cards, the verification form,
document pages and payment. Handlers run in the order of VERIFICATION_STEPS.
"""

import logging
import re
from typing import List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from base_exceptions import ManualInterventionRequired, PageTransitionError
from config_manager import DataFlowAutomationConfig
from documents import ensure_document
from extraction import PageStateExtractor, expected_selections
from filling import FormFiller
from mapping import DEGREE_NAME_FIELDS, IDENTITY_FIELDS, DataMapper

logger = logging.getLogger(__name__)

CARD_CONTAINER = '.gridCards-module_passiveTabContainer__OFKYG'
CARD_PURPOSE_TEXT = '.gridCards-module_purposeText__sUuM2'
CARD_PURPOSE_ICON = '.gridCards-module_purposeIcon__MVzdp'
CARD_LARGE_TEXT = '.gridCards-module_large__HFUti'

MANDATORY_DOCUMENTS_LABEL = 'I understand that these document(s) are mandatory for my verification application'

PROCEED_ALTERNATIVES = [
    'button:has-text("Continue")',
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Next")',
    'button:has-text("Submit")',
    '.btn-primary',
    '.proceed-btn',
]

SAVE_ALTERNATIVES = [
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Continue")',
    'button:has-text("Save")',
    'button:has-text("Next")',
    '.btn-primary',
    '.save-btn',
]

PREFILLED_EDUCATION_MARKERS = {
    'Highest educational level': 'text="Bachelors"',
    'Degree title': 'input[value="cse"]',
    'Year of completion': 'text="2024"',
}

GENDER_DROPDOWN_SELECTORS = [
    'input.dropdown-module_dropdownInput__l6tDa',
    'input[placeholder="Select"][data-testid*="dropdownInput"]',
    'input[placeholder="Select"]',
    '.dropdown-module_dropdownInput__l6tDa',
    'input[type="text"][placeholder="Select"]',
]

# :text-is keeps "Male" from matching "Female"
GENDER_OPTION_TEMPLATES = [
    'div.dropdown-module_menuItemLabel__VJuGM:text-is("{text}")',
    '.dropdown-module_menuItemLabel__VJuGM:text-is("{text}")',
    '[class*="menuItemLabel"]:text-is("{text}")',
    '[class*="menuItem"]:text-is("{text}")',
    'text="{text}"',
]

MENU_OPTION_TEMPLATES = [
    'text="{text}"',
    '[class*="menuItem"]:has-text("{text}")',
]

MODE_OF_STUDY_OPTION_TEMPLATES = [
    'div.dropdown-module_menuItem__lQ-VE:has(div.dropdown-module_menuItemLabel__VJuGM:text-is("{text}"))',
    'text="{text}"',
]

ID_NUMBER_SELECTORS = [
    'input[name*="id"]',
    'input[name*="ID"]',
    'input[id*="id"]',
    'input[id*="ID"]',
    'input[placeholder*="Type here"]',
]

DATE_OF_BIRTH_SELECTOR = 'input[placeholder*="date" i]'

PAY_BUTTON_SELECTORS = [
    'button:has-text("Proceed to Pay")',
    'button:has-text("Make Payment")',
    'button:has-text("Pay")',
]

PAYMENT_AMOUNT_SELECTORS = [
    '[class*="amount" i]',
    '[class*="price" i]',
    '[class*="total" i]',
]

CURRENCY_CODES = ('BHD', 'AED', 'SAR', 'QAR', 'KWD', 'OMR', 'USD', 'EUR', 'GBP', 'INR')

AMOUNT_PATTERN = re.compile(
    r'(?:\b(?:' + '|'.join(CURRENCY_CODES) + r')\s?|[$€£₹]\s?)\d[\d,]*(?:\.\d+)?'
)

VERIFICATION_STEPS = [
    ('Start New Verification', 'start_new_verification'),
    ('Select Country', 'select_country'),
    ('Select Authority', 'select_authority'),
    ('Verification Form', 'fill_verification_form'),
    ('Report Transfer', 'handle_report_transfer'),
    ('Verify Education', 'handle_verify_education'),
    ('Education Details', 'handle_education_details'),
    ('Pricing Estimate', 'handle_pricing_estimate'),
    ('Application Details', 'handle_application_details'),
    ('Identity Upload', 'handle_identity_upload'),
    ('Degree Upload', 'handle_degree_upload'),
    ('Payment', 'handle_payment'),
]


def parse_amount(text: str) -> Optional[str]:
    """First currency amount in text, e.g. 'BHD 45.000' or '$120'"""
    match = AMOUNT_PATTERN.search(text or '')
    return match.group(0) if match else None


class VerificationRequestPages:
    """
    Page handlers for creating a Verification Request.

    Every handler returns True once its page is done. Handlers raise
    PageTransitionError when the page cannot be completed even with the
    operator's help.
    """

    def __init__(self, filler: FormFiller, config: DataFlowAutomationConfig):
        self.filler = filler
        self.page = filler.page
        self.config = config
        self.verification = config.verification
        self.applicant = config.applicant
        self.mapper = DataMapper(config.applicant)
        self.extractor = PageStateExtractor()
        self.payment_amount: Optional[str] = None

    async def _is_visible(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).first.is_visible()
        except Exception:
            return False

    async def _click_visible(self, selector: str, timeout: int = 10000, force: bool = False):
        element = self.page.locator(selector).first
        await element.wait_for(state='visible', timeout=timeout)
        await element.click(force=force)

    async def _click_centre(self, selector: str):
        box = await self.page.locator(selector).first.bounding_box()
        if not box:
            raise PageTransitionError(f"Could not get bounding box for {selector}")
        await self.page.mouse.click(box['x'] + box['width'] / 2, box['y'] + box['height'] / 2)

    async def _select_card(self, description: str, strategies) -> str:
        await self.filler.wait_for_network_idle()
        await self.filler.wait(2000)
        await self.filler.screenshot(f"before-{description.lower()}-selection")

        winner = await self.filler.try_strategies(f"Select {description}", strategies)
        if winner is None:
            await self.filler.screenshot(f"{description.lower()}-selection-all-failed")
            available = await self.extractor.visible_texts(self.page, CARD_PURPOSE_TEXT)
            print(f"❌ All {description} selection methods failed. Available options: {available}")
            raise PageTransitionError(f"Could not select {description} after trying multiple methods")

        await self.filler.wait(3000)
        await self.filler.wait_for_network_idle()
        await self.filler.screenshot(f"after-{description.lower()}-selection")
        return winner

    async def start_new_verification(self) -> bool:
        print('🔍 Looking for Start New Verification in left sidebar...')
        await self.filler.screenshot('dashboard-before-click')
        text = 'Start New Verification'

        async def by_text():
            await self.page.locator(f'text="{text}"').first.wait_for(state='visible', timeout=10000)
            await self.page.get_by_text(text).first.click()

        async def by_link():
            await self.page.get_by_role('link', name=text).click(timeout=5000)

        async def by_css():
            await self.page.locator(
                f'a[href*="verification"], .nav-link:has-text("{text}"), [data-cy="start-verification"]'
            ).first.click(timeout=5000)

        winner = await self.filler.try_strategies(text, [
            ('sidebar text', by_text),
            ('link role', by_link),
            ('css selectors', by_css),
        ])
        if winner is None:
            await self.filler.screenshot('verification-button-not-found')
            links = await self.extractor.visible_texts(self.page, 'a')
            print(f"Available links on page: {links}")
            raise PageTransitionError('Start New Verification button not found')

        await self.filler.wait_for_network_idle()
        await self.filler.screenshot('after-start-verification-click')
        print('✅ Page loaded after clicking Start New Verification')
        return True

    async def select_country(self) -> bool:
        country = self.verification.country
        print(f"🌍 Looking for {country} selection...")
        card = f'{CARD_CONTAINER}:has-text("{country}")'
        await self._select_card(country, [
            ('card container', lambda: self._click_visible(card)),
            ('purpose text', lambda: self._click_visible(f'{CARD_PURPOSE_TEXT}:has-text("{country}")', timeout=5000)),
            ('image container', lambda: self.page.locator(
                f'{CARD_CONTAINER} {CARD_PURPOSE_ICON}:has-text("{country}")').first.click(timeout=5000)),
            ('forced text click', lambda: self.page.locator(f'text="{country}"').first.click(force=True, timeout=5000)),
            ('coordinate click', lambda: self._click_centre(card)),
        ])

        url = self.page.url
        print(f"📍 After {country} selection URL: {url}")
        if (country.lower() in url.lower()
                or (self.verification.country_code and self.verification.country_code in url)
                or await self._is_visible(f'text="{self.verification.authority_abbreviation}"')):
            print(f"✅ {country} selection confirmed")
        else:
            print(f"⚠️ {country} selection may not have worked, continuing anyway...")
        return True

    async def select_authority(self) -> bool:
        authority = self.verification.authority
        abbreviation = self.verification.authority_abbreviation
        print(f"🏛️ Looking for {abbreviation} selection...")
        await self._select_card(abbreviation, [
            ('large purpose text', lambda: self._click_visible(
                f'{CARD_PURPOSE_TEXT}{CARD_LARGE_TEXT}:has-text("{authority}")')),
            ('container', lambda: self.page.locator(
                f'{CARD_CONTAINER}:has-text("{authority}")').first.click(timeout=5000)),
            ('full text', lambda: self.page.get_by_text(f'{authority} ({abbreviation})').first.click(timeout=5000)),
            ('abbreviation', lambda: self.page.get_by_text(abbreviation).first.click(timeout=5000)),
            ('forced click', lambda: self.page.locator(f'text="{authority}"').first.click(force=True, timeout=5000)),
        ])

        url = self.page.url
        print(f"📍 After {abbreviation} selection URL: {url}")
        if abbreviation.lower() in url.lower() or 'authority' in url or await self._is_visible('text="verification"'):
            print(f"✅ {abbreviation} selection confirmed")
        else:
            print(f"⚠️ {abbreviation} selection may not have worked, but continuing...")
        return True

    async def _wait_until_enabled(self, selector: str, max_attempts: int = 10, interval_ms: int = 2000) -> bool:
        """Poll until selector is visible and enabled"""
        for attempt in range(1, max_attempts + 1):
            print(f"🔄 Attempt {attempt}: Checking {selector}...")
            try:
                element = self.page.locator(selector).first
                await element.wait_for(state='visible', timeout=3000)
                if await element.is_visible() and await element.is_enabled():
                    print('✅ Dropdown is ready')
                    return True
            except PlaywrightTimeoutError:
                pass
            print(f"⏳ Not available yet (attempt {attempt}), waiting...")
            await self.filler.wait(interval_ms)
        return False

    async def fill_verification_form(self) -> bool:
        print('📋 Starting verification form process...')
        await self.filler.wait(1000)
        await self.filler.wait_for_network_idle()
        await self.filler.screenshot('verification-form-start')

        first_dropdown = '[data-testid="testSpeciality-dropdownInput"]'
        if not await self._is_visible(first_dropdown):
            print('⚠️ First dropdown not found, waiting longer...')
            await self.filler.wait(2000)
            await self.page.locator(first_dropdown).first.wait_for(state='visible', timeout=15000)

        print(f"🔍 Step 1: Selecting verification reason - {self.verification.verification_reason}...")
        await self.filler.select_dropdown_option('testSpeciality', self.verification.verification_reason)
        await self.filler.wait(2000)
        await self.filler.wait_for_network_idle()

        print('🔍 Step 2: Checking for second dropdown availability...')
        if not await self._wait_until_enabled('[data-testid="testSubSpeciality-dropdownInput"]'):
            print('⚠️ Second dropdown did not become available, trying anyway...')

        print(f"🔍 Step 3: Selecting verification type - {self.verification.verification_type}...")
        await self.filler.select_dropdown_option('testSubSpeciality', self.verification.verification_type)
        await self.filler.wait(3000)
        await self.filler.wait_for_network_idle()

        print('📄 Section 2: Handling document requirements...')
        if await self._is_visible('text="Mandatory Document(s) Required"'):
            print('✅ Document requirements section found on same page')
        else:
            await self.filler.wait(2000)

        print('🔍 Step 4: Looking for the mandatory documents acknowledgment checkbox...')
        await self.filler.check_acknowledgement(MANDATORY_DOCUMENTS_LABEL)
        await self.filler.screenshot('after-checkbox-checked')

        print('🔍 Step 5: Clicking the Proceed button...')
        await self.filler.click_navigation_button('Proceed', alternatives=PROCEED_ALTERNATIVES)
        print('🎉 Verification form process completed successfully!')
        return True

    async def handle_report_transfer(self) -> bool:
        print('📊 Starting report transfer page handling...')
        await self.filler.wait_for_network_idle()
        await self.filler.wait(2000)
        await self.filler.screenshot('report-transfer-page')

        if await self._is_visible('text="Reuse your previous DataFlow report"'):
            print('✅ Report transfer page loaded successfully')
            selections = await self.extractor.extract_selections(self.page, expected_selections(self.verification))
            confirmed = [name for name, visible in selections.items() if visible]
            print(f"✅ Confirmed selections: {', '.join(confirmed)}")
        else:
            print('⚠️ Report transfer page may not be fully loaded')

        if await self._is_visible('button:has-text("Find Your Report")'):
            print('ℹ️ "Find Your Report" button is available but we will proceed with Continue')

        await self.filler.click_navigation_button('Continue')
        print('🎉 Report transfer page handling completed successfully!')
        return True

    async def handle_verify_education(self) -> bool:
        print('🎓 Starting verify education page handling...')
        await self.filler.wait_for_network_idle()
        await self.filler.wait(2000)
        await self.filler.screenshot('verify-education-page')

        if await self._is_visible('text="Verify your education"'):
            print('✅ Verify education page loaded successfully')
            print('📝 Form pre-filled values detected:')
            for label, selector in PREFILLED_EDUCATION_MARKERS.items():
                status = '✅' if await self._is_visible(selector) else 'Not detected ⚠️'
                print(f"   - {label}: {status}")
        else:
            print('⚠️ Verify education page may not be fully loaded')

        await self.filler.click_navigation_button('Continue')
        print('🎉 Verify education page handling completed successfully!')
        return True

    async def _dropdown_shows(self, text: str) -> bool:
        """True when the organization dropdown already holds text"""
        dropdown_input = self.page.locator('[data-testid="organization-dropdownInput"]').first
        container = self.page.locator('[data-testid="organization-dropdownInputContainer"]').first
        values = []
        try:
            values.append(await dropdown_input.input_value())
            values.append(await dropdown_input.text_content())
            values.append(await container.text_content())
        except Exception as e:
            print(f"⚠️ Error checking current value, will proceed with selection: {e}")
        print(f"🔍 Values checked: {[v for v in values if v]}")
        return any(text.lower() in value.lower() for value in values if value)

    async def handle_education_details(self) -> bool:
        print('🎓 Starting education details page handling...')
        await self.filler.wait_for_network_idle()
        await self.filler.wait(2000)

        if await self._is_visible('text="Your Education details"'):
            print('✅ Education details page loaded successfully')

        university = self.applicant.university
        if await self._dropdown_shows(university):
            print(f"✅ \"{university}\" is already selected, skipping university selection")
        else:
            print('🏫 Handling university selection...')
            dropdown_input = self.page.locator('[data-testid="organization-dropdownInput"]').first
            await self.page.locator('[data-testid="organization-dropdownInputContainer"]').first.click()
            await self.filler.wait(1000)
            await dropdown_input.fill('')
            await self.filler.wait(500)
            await dropdown_input.type(university, delay=100)
            await self.filler.wait(3500)

            specific = self.page.locator(f'text="{self.applicant.university_option}"').first
            if await specific.is_visible():
                await specific.click()
                print(f"✅ Clicked \"{self.applicant.university_option}\" option")
            else:
                options = self.page.locator(f'[data-testid="organization-menuItemContainer"]:has-text("{university}")')
                if await options.count() >= 2:
                    await options.nth(1).click()
                    print(f"✅ Clicked second option from \"{university}\" results")
                else:
                    print('⚠️ Not enough options found, trying keyboard selection...')
                    await self.page.keyboard.press('ArrowDown')
                    await self.page.keyboard.press('ArrowDown')
                    await self.page.keyboard.press('Enter')
            await self.filler.wait(1000)

        continue_button = self.page.locator('button:has-text("Continue")').first
        if await continue_button.is_visible():
            await continue_button.click()
            await self.filler.wait_for_network_idle()
            print('✅ Clicked Continue button')
        else:
            print('⚠️ Continue button not found')
        return True

    async def handle_pricing_estimate(self) -> bool:
        print('💰 Handling pricing estimate page...')
        await self.filler.wait_for_network_idle()
        await self.filler.click_navigation_button('Continue', settle_ms=1000)
        print('✅ Pricing estimate completed')
        return True

    async def _fill_company_after_label(self):
        await self.page.locator('text="Company Name"').first.click(timeout=5000)
        await self.filler.wait(500)
        await self.page.locator('input').first.fill(self.applicant.company_name)

    async def _fill_company_first_input(self):
        inputs = self.page.locator('input')
        if await inputs.count() == 0:
            raise PageTransitionError('No inputs on Application Details page')
        await inputs.first.clear()
        await inputs.first.fill(self.applicant.company_name)

    async def _type_company(self):
        await self.page.locator('input:first-of-type').first.click(timeout=5000)
        await self.page.keyboard.type(self.applicant.company_name)

    async def handle_application_details(self) -> bool:
        print('📋 Handling Application Details page...')
        await self.filler.wait_for_network_idle()
        document = ensure_document(self.config.documents.document_path, 'document')
        try:
            await self.filler.wait(2000)
            filled = await self.filler.try_strategies('Company Name', [
                ('label click', self._fill_company_after_label),
                ('first input', self._fill_company_first_input),
                ('keyboard type', self._type_company),
            ])
            if filled is None:
                print('⚠️ All Company Name strategies failed')
            await self.filler.wait(1000)

            try:
                await self.filler.upload_document(document, ['.downloadUpload-module_button__-uMBo'], settle_ms=3000)
            except ManualInterventionRequired:
                raise
            except Exception as e:
                print(f"⚠️ Document upload failed: {e}")

            await self.filler.wait(2000)
            continue_button = self.page.locator('button:has-text("Continue")').first
            if await continue_button.is_visible():
                await continue_button.click()
                await self.filler.wait_for_network_idle()
                print('✅ Application Details completed successfully')
            else:
                print('⚠️ Continue button not found, please manually proceed')
        except ManualInterventionRequired:
            raise
        except Exception as e:
            print(f"⚠️ Error in handling Application Details: {e}")
            await self.filler.request_manual_intervention(
                'Please complete the Application Details form, then press Resume', step='application_details')
        return True

    async def _fill_identity_form(self):
        await self.filler.wait(2000)
        for field in self.mapper.map_fields(IDENTITY_FIELDS):
            used = await self.filler.fill_first_available(field.label, field.selectors, field.value_to_fill,
                                                          nth=field.nth, only_if_empty=field.only_if_empty)
            if used is None and field.key == 'firstName':
                await self.filler.fill_first_empty_text_input(field.value_to_fill)
            await self.filler.wait(500)

        dob = self.page.locator(DATE_OF_BIRTH_SELECTOR).first
        try:
            if await dob.is_visible():
                print(f"✅ Date of Birth is pre-filled: {await dob.input_value()}")
        except Exception:
            print('📅 Date of Birth field status unclear, but continuing...')

        print(f"👤 Selecting Gender: {self.applicant.gender}")
        await self.filler.open_dropdown_and_pick(
            'Gender', GENDER_DROPDOWN_SELECTORS, GENDER_OPTION_TEMPLATES, self.applicant.gender,
            resolve_option=lambda labels: self.mapper.match_option('gender', self.applicant.gender, labels))
        await self.filler.wait(1000)

        await self.filler.fill_first_available('ID Number', ID_NUMBER_SELECTORS, self.applicant.id_number,
                                               nth=-1, only_if_empty=True)

        await self.filler.request_manual_intervention(
            'Please fill the Date of Expiry field, then press Resume', step='date_of_expiry')

    async def handle_identity_upload(self) -> bool:
        print('📄 Starting Upload Document - Identity page handling...')
        await self.filler.wait_for_network_idle()
        await self.filler.wait(2000)

        if await self._is_visible('text="Upload Document"') and await self._is_visible('text="Identity"'):
            print('✅ Upload Document - Identity page loaded successfully')
        else:
            print('⚠️ Upload Document - Identity page may not be fully loaded')

        passport = ensure_document(self.config.documents.passport_path, 'passport')
        try:
            await self.filler.upload_document(passport, [
                'text="Click to upload"',
                '.upload-container, [class*="upload"], [data-testid*="upload"]',
            ])
        except ManualInterventionRequired:
            raise
        except Exception as e:
            print(f"❌ Passport upload failed: {e}")
            await self.filler.request_manual_intervention(
                'Please upload a passport document, then press Resume', step='passport_upload')

        try:
            await self._fill_identity_form()
        except ManualInterventionRequired:
            raise
        except Exception as e:
            print(f"❌ Error filling identity form: {e}")
            await self.filler.request_manual_intervention(
                'Please fill any missing identity fields, then press Resume', step='identity_form')

        await self.filler.click_navigation_button('Save and Continue', alternatives=SAVE_ALTERNATIVES)
        print('🎉 Upload Document - Identity page handling completed successfully!')
        return True

    async def _select_labeled_dropdown(self, label: str, value: str, index: int):
        print(f"📋 Selecting {label}: {value}")
        await self.filler.wait(2000)
        await self.filler.open_dropdown_and_pick(label, [
            f'label:has-text("{label}") ~ * input[placeholder="Select"]',
            f'label:has-text("{label}") + * input',
            f'input[placeholder="Select"] >> nth={index}',
        ], MENU_OPTION_TEMPLATES, value)

    async def _fill_program_duration(self):
        used = await self.filler.fill_first_available('Program Duration', [
            'label:has-text("Program Duration") ~ * input',
            'input[placeholder="Type here"] >> nth=-1',
        ], self.applicant.program_duration)
        if used is None:
            await self.filler.request_manual_intervention(
                'Please fill Program Duration, then press Resume', step='program_duration')

    async def _fill_degree_names(self, names: List[str]):
        missed = await self.filler.fill_mapped_fields(self.mapper.map_fields(DEGREE_NAME_FIELDS))
        if not missed:
            return
        print('⚠️ Name fields not found, filling the last text inputs instead')
        inputs = await self.page.locator('input[type="text"]').all()
        for element, name in zip(inputs[-len(names):], names):
            if await element.is_visible():
                await element.fill(name)

    async def handle_degree_upload(self) -> bool:
        print('🎓 Handling Degree/Diploma upload page...')
        await self.filler.wait_for_network_idle()
        document = ensure_document(self.config.documents.document_path, 'document')
        try:
            await self.filler.upload_document(document, ['text="Click to upload"'], settle_ms=5000)
            print('⏭️ Skipping pre-filled fields: University Name, College/Institution Name, Degree')
            await self.filler.wait(3000)

            await self._select_labeled_dropdown('Department name', self.applicant.department, 0)
            await self._select_labeled_dropdown('Course Name', self.applicant.course, 1)
            await self._fill_program_duration()

            print(f"📋 Selecting Mode of Study: {self.applicant.mode_of_study}")
            await self.filler.open_dropdown_and_pick('Mode of Study', [
                'label:has-text("Mode of Study") + input.dropdown-module_dropdownInput__l6tDa',
                'input[data-testid*="dropdownInput"] >> nth=2',
            ], MODE_OF_STUDY_OPTION_TEMPLATES, self.applicant.mode_of_study,
                resolve_option=lambda labels: self.mapper.match_option('modeOfStudy', self.applicant.mode_of_study, labels))

            print('⏭️ Skipping Start and End dates as they will be pre-filled')
            await self._fill_degree_names([self.applicant.first_name, self.applicant.middle_name, self.applicant.last_name])
            await self.filler.wait(2000)

            save_button = self.page.locator('button:has-text("Save and Continue")').first
            if await save_button.is_visible():
                await save_button.click()
                await self.filler.wait_for_network_idle()
                print('✅ Degree/Diploma page completed successfully')
            else:
                print('⚠️ Save and Continue button not found, please manually proceed')
        except ManualInterventionRequired:
            raise
        except Exception as e:
            print(f"⚠️ Error in handling Degree/Diploma page: {e}")
            await self.filler.request_manual_intervention(
                'Please complete the Degree/Diploma form, then press Resume', step='degree_upload')
        return True

    async def read_payment_amount(self) -> Optional[str]:
        for selector in PAYMENT_AMOUNT_SELECTORS:
            for text in await self.extractor.visible_texts(self.page, selector):
                amount = parse_amount(text)
                if amount:
                    return amount
        return None

    async def handle_payment(self) -> bool:
        if not self.verification.payment_enabled:
            print('⏭️ Payment disabled in configuration, stopping before the payment page')
            return True

        print('💳 Handling payment page...')
        await self.filler.wait_for_network_idle()
        await self.filler.wait(2000)
        await self.filler.screenshot('payment-page')

        self.payment_amount = await self.read_payment_amount()
        if self.payment_amount:
            print(f"💰 Amount to pay: {self.payment_amount}")
        else:
            print('⚠️ Could not read the payment amount')

        method = self.verification.payment_method
        if method and await self._is_visible(f'text="{method}"'):
            await self.page.locator(f'text="{method}"').first.click()
            print(f"✅ Selected payment method: {method}")

        await self.filler.click_first_available('payment button', PAY_BUTTON_SELECTORS, timeout=5000)
        await self.filler.request_manual_intervention(
            'Please enter the card details and complete the payment, then press Resume', step='payment')
        await self.filler.wait_for_network_idle()
        print('✅ Payment step completed')
        return True
