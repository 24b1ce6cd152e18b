from __future__ import annotations

import asyncio
import random

import pytest

from base_exceptions import LoginFailedError
from config_manager import DataFlowAutomationConfig
from extraction import VerificationSummary
from fakes import FakeElement, FakePage
from filling import FormFiller
from mapping import is_valid_phone_number
from onboarding import CONSENT_TEXT, PROFESSION_CONTAINER, OnboardingScenario, request_otp


def _scenario(page: FakePage, seed: int = 7) -> OnboardingScenario:
    config = DataFlowAutomationConfig()
    config.automation.onboarding_wait_seconds = 1
    filler = FormFiller(page, screenshots_enabled=False)
    return OnboardingScenario(filler, config, rng=random.Random(seed))


def _otp_page(url_after_otp: str) -> FakePage:
    page = FakePage()
    page.add("placeholder=Enter email ID")
    page.add(f"get_by_text={CONSENT_TEXT}")
    page.add("role=button[name=Get OTP]")
    page.add('input[type="tel"]', *[FakeElement() for _ in range(6)])
    page.url_after_function = url_after_otp
    return page


def test_request_otp_fills_email_and_waits_for_otp_page():
    page = _otp_page("unused")
    filler = FormFiller(page, screenshots_enabled=False)

    asyncio.run(request_otp(filler, "https://app.example.test/en/onboarding/signin", "qa@example.com"))

    assert page.visited == ["https://app.example.test/en/onboarding/signin"]
    assert ("placeholder=Enter email ID", "qa@example.com") in page.filled
    assert page.clicked == [f"get_by_text={CONSENT_TEXT}", "role=button[name=Get OTP]"]
    assert page.url.endswith("/verification/mobile")
    # captcha is solved by the operator
    assert page.pauses == 1


def test_scenario_identity_is_random_but_well_formed():
    scenario = _scenario(FakePage())
    assert scenario.email.startswith("user_") and scenario.email.endswith("@example.com")
    assert is_valid_phone_number(scenario.phone)


def test_unexpected_redirect_after_otp_raises():
    page = _otp_page("https://app.example.test/en/dashboard/home")
    scenario = _scenario(page)
    summary = VerificationSummary(scenario="onboarding")

    with pytest.raises(LoginFailedError, match="Redirection failed after OTP"):
        asyncio.run(scenario.run(summary))

    assert summary.completed_steps == ["Request OTP", "Enter OTP"]
    assert page.keyboard.pressed == list("123456")


def test_fill_phone_regenerates_invalid_number():
    page = FakePage().add('input[name="inputValue"]')
    scenario = _scenario(page)
    scenario.phone = "12345"

    asyncio.run(scenario._fill_phone())

    entered = page.elements['input[name="inputValue"]'][0].value
    assert is_valid_phone_number(entered)
    assert entered == scenario.phone


def test_select_or_type_falls_back_to_type_ahead():
    page = FakePage()
    page.add('[data-testid="nationality-dropdownInputContainer"]')
    page.add('[data-testid="nationality-menuItemContainer"]')
    page.add('[data-testid="nationality-dropdownInput"]', FakeElement(value=""))
    page.add('[data-testid="nationality-menuItemContainer"]:has-text("India")')
    scenario = _scenario(page)

    asyncio.run(scenario._select_or_type("nationality", "India"))

    assert ('[data-testid="nationality-dropdownInput"]', "India") in page.filled
    assert page.clicked[-1] == '[data-testid="nationality-menuItemContainer"]:has-text("India")'


def test_accept_terms_uses_checkbox_input():
    page = FakePage().add('input[type="checkbox"]')
    assert asyncio.run(_scenario(page).accept_terms()) == "checkbox input"
    assert page.elements['input[type="checkbox"]'][0].checked


def test_accept_terms_clicks_beside_terms_link():
    page = FakePage()
    page.add(PROFESSION_CONTAINER)
    page.add('text="Terms & Conditions"', FakeElement(box={"x": 100, "y": 200, "width": 80, "height": 20}))

    assert asyncio.run(_scenario(page).accept_terms()) == "click beside Terms & Conditions"
    assert page.mouse.clicks == [(75, 210)]


def test_accept_terms_manual_when_all_methods_fail():
    page = FakePage()
    assert asyncio.run(_scenario(page).accept_terms()) == "manual"
    assert page.pauses == 1


def test_submit_waits_for_application_page():
    page = FakePage().add('button:has-text("Continue"):not([disabled])').add('button:has-text("Continue")')
    scenario = _scenario(page)

    asyncio.run(scenario.submit())

    assert page.elements['button:has-text("Continue")'][0].clicks == 1
    assert 1000 in page.waited_ms
    assert page.pauses == 0
