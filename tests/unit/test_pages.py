from __future__ import annotations

import asyncio

import pytest

from base_exceptions import ManualInterventionRequired, PageTransitionError
from config_manager import DataFlowAutomationConfig
from fakes import FakeElement, FakePage
from filling import FormFiller
from pages import (
    CARD_CONTAINER,
    VERIFICATION_STEPS,
    VerificationRequestPages,
    parse_amount,
)


def _pages(page: FakePage, tmp_path=None, manual_pause_enabled: bool = True) -> VerificationRequestPages:
    config = DataFlowAutomationConfig()
    if tmp_path is not None:
        config.documents.document_path = str(tmp_path / "dummy-document.pdf")
        config.documents.passport_path = str(tmp_path / "dummy-passport.pdf")
    filler = FormFiller(page, manual_pause_enabled=manual_pause_enabled, screenshots_enabled=False)
    return VerificationRequestPages(filler, config)


def test_every_step_has_a_handler():
    handlers = _pages(FakePage())
    assert len(VERIFICATION_STEPS) == 12
    for _, method in VERIFICATION_STEPS:
        assert callable(getattr(handlers, method))


def test_parse_amount():
    assert parse_amount("Total: BHD 45.000") == "BHD 45.000"
    assert parse_amount("Pay $1,250.50 now") == "$1,250.50"
    assert parse_amount("No charge") is None
    assert parse_amount("") is None


def test_parse_amount_ignores_tax_labels():
    assert parse_amount("VAT 10% BHD 4.500") == "BHD 4.500"
    assert parse_amount("Incl. TAX 5 - Total AED 120.00") == "AED 120.00"
    assert parse_amount("REF 2024 only") is None


def test_start_new_verification_clicks_sidebar_text():
    page = FakePage()
    page.add('text="Start New Verification"')
    page.add("get_by_text=Start New Verification")

    assert asyncio.run(_pages(page).start_new_verification()) is True
    assert page.clicked == ["get_by_text=Start New Verification"]


def test_start_new_verification_not_found():
    page = FakePage().add("a", FakeElement(text="Home"))
    with pytest.raises(PageTransitionError):
        asyncio.run(_pages(page).start_new_verification())


def test_select_country_card_container():
    page = FakePage(url="https://app.example.test/new")

    def open_country(p):
        p.url = "https://app.example.test/new/BHR"

    page.add(f'{CARD_CONTAINER}:has-text("Bahrain")', FakeElement(on_click=open_country))

    assert asyncio.run(_pages(page).select_country()) is True
    assert page.url.endswith("/BHR")


def test_select_country_coordinate_fallback():
    page = FakePage()
    box = {"x": 10, "y": 20, "width": 100, "height": 50}
    page.add(f'{CARD_CONTAINER}:has-text("Bahrain")', FakeElement(visible=False, box=box))

    asyncio.run(_pages(page).select_country())

    assert page.mouse.clicks == [(60, 45)]


def test_select_authority_all_methods_fail():
    page = FakePage()
    with pytest.raises(PageTransitionError):
        asyncio.run(_pages(page).select_authority())


def test_select_authority_by_abbreviation():
    page = FakePage().add("get_by_text=NHRA")
    assert asyncio.run(_pages(page).select_authority()) is True
    assert page.clicked == ["get_by_text=NHRA"]


def test_fill_verification_form_happy_path():
    page = FakePage()
    page.add('[data-testid="testSpeciality-dropdownInput"]')
    page.add('text="Foreign Education Recognition"')
    page.add('[data-testid="testSubSpeciality-dropdownInput"]')
    page.add('text="Fresh Graduates - Bahraini Nationals"')
    page.add('text="Mandatory Document(s) Required"')
    page.add('input[type="checkbox"]')
    page.add('button:has-text("Proceed")')

    assert asyncio.run(_pages(page).fill_verification_form()) is True

    assert page.elements['input[type="checkbox"]'][0].checked
    assert page.elements['button:has-text("Proceed")'][0].clicks == 1
    assert page.pauses == 0


def test_report_transfer_and_verify_education_continue():
    page = FakePage()
    page.add('text="Reuse your previous DataFlow report"')
    page.add('text="Bahrain"')
    page.add('button:has-text("Continue")')
    handlers = _pages(page)

    asyncio.run(handlers.handle_report_transfer())
    asyncio.run(handlers.handle_verify_education())

    assert page.elements['button:has-text("Continue")'][0].clicks == 2


def test_education_details_skips_selected_university():
    page = FakePage()
    page.add('[data-testid="organization-dropdownInput"]', FakeElement(value="Dry College, Bengaluru"))
    page.add('button:has-text("Continue")')

    asyncio.run(_pages(page).handle_education_details())

    assert page.clicked == ['button:has-text("Continue")']


def test_education_details_types_university_and_picks_option():
    page = FakePage()
    page.add('[data-testid="organization-dropdownInput"]')
    page.add('[data-testid="organization-dropdownInputContainer"]')
    page.add('text="dry college, bengaluru, india"')

    asyncio.run(_pages(page).handle_education_details())

    assert page.elements['[data-testid="organization-dropdownInput"]'][0].value == "dry college"
    assert 'text="dry college, bengaluru, india"' in page.clicked


def test_application_details_fills_company_and_uploads(tmp_path):
    page = FakePage()
    page.add("input")
    page.add(".downloadUpload-module_button__-uMBo")
    page.add('input[type="file"]', FakeElement(visible=False))
    page.add('button:has-text("Continue")')

    assert asyncio.run(_pages(page, tmp_path).handle_application_details()) is True

    assert ("input", "Automation company") in page.filled
    assert page.uploads == [('input[type="file"]', 0, str((tmp_path / "dummy-document.pdf").resolve()))]
    assert page.elements['button:has-text("Continue")'][0].clicks == 1


def test_identity_upload_fills_form_and_saves(tmp_path):
    page = FakePage()
    page.add('text="Click to upload"')
    page.add('input[type="file"]', FakeElement(visible=False))
    page.add('input[placeholder*="Type here"]', *[FakeElement() for _ in range(4)])
    page.add("input.dropdown-module_dropdownInput__l6tDa")
    page.add('[class*="menuItemLabel"]', FakeElement(text="Female"), FakeElement(text="Male"))
    page.add('div.dropdown-module_menuItemLabel__VJuGM:text-is("Male")')
    page.add('button:has-text("Save and Continue")')

    assert asyncio.run(_pages(page, tmp_path).handle_identity_upload()) is True

    values = [element.value for element in page.elements['input[placeholder*="Type here"]']]
    assert values == ["John", "Michael", "Doe", "A12345678"]
    assert 'div.dropdown-module_menuItemLabel__VJuGM:text-is("Male")' in page.clicked
    assert (tmp_path / "dummy-passport.pdf").exists()
    # Date of Expiry is left to the operator
    assert page.pauses == 1
    assert page.elements['button:has-text("Save and Continue")'][0].clicks == 1


def test_identity_upload_without_pausing_raises(tmp_path):
    page = FakePage()
    page.add('input[type="file"]')
    with pytest.raises(ManualInterventionRequired):
        asyncio.run(_pages(page, tmp_path, manual_pause_enabled=False).handle_identity_upload())


MODE_OF_STUDY_OPTION = ('div.dropdown-module_menuItem__lQ-VE:has('
                        'div.dropdown-module_menuItemLabel__VJuGM:text-is("Active Enrollment"))')


def test_degree_upload_fills_course_details_and_saves(tmp_path):
    page = FakePage()
    page.add('text="Click to upload"')
    page.add('input[type="file"]', FakeElement(visible=False))
    page.add('label:has-text("Department name") ~ * input[placeholder="Select"]')
    page.add('text="BE"')
    page.add('label:has-text("Course Name") ~ * input[placeholder="Select"]')
    page.add('text="CSE"')
    page.add('label:has-text("Program Duration") ~ * input')
    page.add('label:has-text("Mode of Study") + input.dropdown-module_dropdownInput__l6tDa')
    page.add('[class*="menuItemLabel"]', FakeElement(text="Distance Learning"), FakeElement(text="Active Enrollment"))
    page.add(MODE_OF_STUDY_OPTION)
    page.add('input[placeholder*="First"]')
    page.add('input[placeholder*="Middle"]')
    page.add('input[placeholder*="Last"]')
    page.add('button:has-text("Save and Continue")')

    assert asyncio.run(_pages(page, tmp_path).handle_degree_upload()) is True

    assert page.uploads == [('input[type="file"]', 0, str((tmp_path / "dummy-document.pdf").resolve()))]
    assert 'text="BE"' in page.clicked
    assert 'text="CSE"' in page.clicked
    assert MODE_OF_STUDY_OPTION in page.clicked
    assert ('label:has-text("Program Duration") ~ * input', "4") in page.filled
    assert ('input[placeholder*="First"]', "John") in page.filled
    assert ('input[placeholder*="Middle"]', "Michael") in page.filled
    assert ('input[placeholder*="Last"]', "Doe") in page.filled
    assert page.pauses == 0
    assert page.elements['button:has-text("Save and Continue")'][0].clicks == 1


def test_degree_upload_falls_back_to_last_text_inputs(tmp_path):
    page = FakePage()
    page.add('input[type="file"]', FakeElement(visible=False))
    page.add('input[type="text"]', *[FakeElement() for _ in range(5)])

    assert asyncio.run(_pages(page, tmp_path).handle_degree_upload()) is True

    values = [element.value for element in page.elements['input[type="text"]']]
    assert values == ["", "", "John", "Michael", "Doe"]
    # department, course, program duration and mode of study go to the operator
    assert page.pauses == 4


def test_payment_disabled_is_skipped():
    page = FakePage()
    handlers = _pages(page)
    handlers.verification.payment_enabled = False

    assert asyncio.run(handlers.handle_payment()) is True
    assert page.clicked == []
    assert page.pauses == 0


def test_payment_reads_amount_and_hands_card_entry_to_operator():
    page = FakePage()
    page.add('[class*="amount" i]', FakeElement(text="Total: BHD 45.000"))
    page.add('text="Card"')
    page.add('button:has-text("Proceed to Pay")')
    handlers = _pages(page)

    assert asyncio.run(handlers.handle_payment()) is True

    assert handlers.payment_amount == "BHD 45.000"
    assert page.clicked == ['text="Card"', 'button:has-text("Proceed to Pay")']
    assert page.pauses == 1
