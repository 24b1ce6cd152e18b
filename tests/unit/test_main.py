from __future__ import annotations

import asyncio
import json

import pytest

import main
from base_exceptions import AutomationCompleteException


class _FakeAutomator:
    instances = []
    succeed = True

    def __init__(self, config_manager, config=None):
        self.config = config
        self.summary_path = "verification_summary.json"
        self.ran = None
        self.automation_state = type("State", (), {"last_error": "Payment: no pay button"})()
        _FakeAutomator.instances.append(self)

    async def run_verification_request(self):
        self.ran = "verification-request"
        return _FakeAutomator.succeed

    async def run_onboarding(self):
        self.ran = "onboarding"
        return _FakeAutomator.succeed


@pytest.fixture
def fake_automator(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main, "configure_logging", lambda level="INFO": None)
    monkeypatch.setattr(main, "DataFlowAutomator", _FakeAutomator)
    monkeypatch.setattr(_FakeAutomator, "instances", [])
    monkeypatch.setattr(_FakeAutomator, "succeed", True)
    return _FakeAutomator


def test_parse_args_flags():
    args = main.parse_args(["verification-request", "--headless", "--fresh-login", "--config", "x.json"])
    assert args.scenario == "verification-request"
    assert args.headless and args.fresh_login and not args.no_pause
    assert args.config == "x.json"

    with pytest.raises(SystemExit):
        main.parse_args(["checkout"])


def test_cli_overrides_disable_pauses():
    from config_manager import DataFlowAutomationConfig

    config = main.apply_cli_overrides(DataFlowAutomationConfig(), main.parse_args(["onboarding", "--no-pause"]))
    assert config.automation_mode.headless is False
    assert config.automation_mode.manual_pause_enabled is False

    config = main.apply_cli_overrides(DataFlowAutomationConfig(), main.parse_args(["onboarding", "--headless"]))
    assert config.automation_mode.headless is True
    assert config.automation_mode.manual_pause_enabled is False


def test_main_runs_chosen_scenario(fake_automator):
    with pytest.raises(AutomationCompleteException) as excinfo:
        asyncio.run(main.main(["onboarding", "--no-pause"]))

    automator = fake_automator.instances[0]
    assert automator.ran == "onboarding"
    assert automator.config.automation_mode.manual_pause_enabled is False
    assert excinfo.value.success is True
    assert excinfo.value.summary_path == "verification_summary.json"


def test_main_reports_failure(fake_automator):
    fake_automator.succeed = False
    with pytest.raises(AutomationCompleteException) as excinfo:
        asyncio.run(main.main(["verification-request"]))

    assert excinfo.value.success is False
    assert excinfo.value.message == "Payment: no pay button"


def test_fresh_login_clears_saved_session(fake_automator, tmp_path):
    (tmp_path / "cookies.json").write_text(json.dumps({"email": "a@b.c", "cookies": [], "timestamp": 1}))

    with pytest.raises(AutomationCompleteException):
        asyncio.run(main.main(["verification-request", "--fresh-login"]))

    assert not (tmp_path / "cookies.json").exists()


def test_completion_message_exit_code(capsys):
    with pytest.raises(SystemExit) as excinfo:
        AutomationCompleteException("done", success=False, summary_path="s.json").display_completion_message()

    assert excinfo.value.code == 1
    assert "Summary saved to: s.json" in capsys.readouterr().out
