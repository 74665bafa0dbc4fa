import pytest

from tests.fakes import FakeLanguageModel


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for configuration tests."""
    env_vars = {
        "MODEL_TYPE": "openai",
        "OPENAI_API_KEY": "test-openai-key",
        "SEARCH_PROVIDER": "tavily",
        "TAVILY_API_KEY": "test-tavily-key",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def fake_llm():
    return FakeLanguageModel()
