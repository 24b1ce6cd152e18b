from __future__ import annotations

import asyncio
import json

from config_manager import VerificationRequestConfig
from extraction import (
    PageStateExtractor,
    VerificationSummary,
    expected_selections,
    extract_summary,
    print_summary,
    save_summary,
)
from fakes import FakeElement, FakePage


def _page() -> FakePage:
    page = FakePage(url="https://app.example.test/en/vr/report", title="Report transfer")
    page.add("button", FakeElement(text=" Continue "), FakeElement(text=""), FakeElement(text="Find Your Report"))
    page.add("a", *[FakeElement(text=f"link {i}") for i in range(12)])
    page.add('[data-testid*="-dropdownInput"]',
             FakeElement(attrs={"data-testid": "testSpeciality-dropdownInput"}),
             FakeElement(attrs={"data-testid": "testSubSpeciality-dropdownInput"}, enabled=False))
    page.add('input[type="checkbox"]', FakeElement(), FakeElement())
    return page


def test_snapshot_collects_page_state():
    snapshot = asyncio.run(PageStateExtractor().snapshot(_page()))

    assert snapshot.url == "https://app.example.test/en/vr/report"
    assert snapshot.title == "Report transfer"
    assert snapshot.buttons == ["Continue", "Find Your Report"]
    assert len(snapshot.links) == 10
    assert [d.test_id for d in snapshot.dropdowns] == ["testSpeciality-dropdownInput", "testSubSpeciality-dropdownInput"]
    assert snapshot.dropdowns[1].enabled is False
    assert snapshot.checkbox_count == 2


def test_log_debug_state_never_raises(caplog):
    class BrokenPage(FakePage):
        async def title(self):
            raise RuntimeError("page closed")

    caplog.set_level("INFO")
    snapshot = asyncio.run(PageStateExtractor().log_debug_state(BrokenPage(url="https://x.test")))

    assert snapshot.title == ""
    assert "🔍 Debug: Current URL: https://x.test" in caplog.text


def test_extract_summary_checks_visible_selections():
    page = _page()
    page.add('text="Bahrain"')
    page.add('text="National Health Regulatory Authority"', FakeElement(visible=False))
    summary = VerificationSummary(scenario="verification_request", email="qa@example.com")

    asyncio.run(extract_summary(page, VerificationRequestConfig(), summary))

    assert summary.final_url == page.url
    assert summary.page_title == "Report transfer"
    assert summary.selections == {
        "country": True,
        "authority": False,
        "verification_reason": False,
        "verification_type": False,
    }
    assert summary.finished_at is not None


def test_extract_summary_without_verification_config():
    summary = asyncio.run(extract_summary(_page(), None, VerificationSummary(scenario="onboarding")))
    assert summary.selections == {}


def test_expected_selections_skip_nothing():
    assert set(expected_selections(VerificationRequestConfig())) == {
        "country", "authority", "verification_reason", "verification_type"}


def test_save_summary_writes_indented_json(tmp_path):
    summary = VerificationSummary(scenario="onboarding", email="user_abc@example.com", phone="9876543210",
                                  completed_steps=["Request OTP"], success=True)
    path = save_summary(summary, str(tmp_path / "out" / "summary.json"))

    text = open(path, encoding="utf-8").read()
    data = json.loads(text)
    assert data["phone"] == "9876543210"
    assert data["completed_steps"] == ["Request OTP"]
    assert data["success"] is True
    assert '\n  "scenario": "onboarding"' in text


def test_print_summary(capsys):
    summary = VerificationSummary(scenario="verification_request", email="qa@example.com",
                                  selections={"country": True}, failed_steps=["Payment"], manual_interventions=3)
    print_summary(summary)

    out = capsys.readouterr().out
    assert "📋 TEST EXECUTION SUMMARY" in out
    assert "❌ Failed steps: Payment" in out
    assert "👉 Manual interventions: 3" in out
