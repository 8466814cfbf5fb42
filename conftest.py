import pytest

from calculator import Session


@pytest.fixture
def session():
    return Session()


@pytest.fixture(autouse=True)
def clean_calculator_env(monkeypatch):
    for name in ("SMART_CALC_PROMPT", "SMART_CALC_LOG_LEVEL", "SMART_CALC_HISTORY_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")
