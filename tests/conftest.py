import os
import sys

import pytest

_ENV_PREFIXES = ("AUTOMATION_", "DATAFLOW_", "VR_", "ONBOARDING_", "DOCUMENT_PATH", "PASSPORT_PATH")


def pytest_configure():
    # The modules live at the repository root (flat layout)
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    if root not in sys.path:
        sys.path.insert(0, root)
    # Shared fakes in tests/unit
    unit_path = os.path.join(root, "tests", "unit")
    if unit_path not in sys.path:
        sys.path.insert(0, unit_path)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    # load_dotenv() may have pulled a developer's .env into os.environ
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
