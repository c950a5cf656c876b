from coreprov.env import get_env_or_default


def test_returns_value_when_set(monkeypatch):
    monkeypatch.setenv("COREPROV_TEST_VAR", "hello")
    assert get_env_or_default("COREPROV_TEST_VAR", "fallback") == "hello"


def test_returns_default_when_unset(monkeypatch):
    monkeypatch.delenv("COREPROV_TEST_VAR", raising=False)
    assert get_env_or_default("COREPROV_TEST_VAR", "fallback") == "fallback"


def test_empty_value_is_not_replaced(monkeypatch):
    monkeypatch.setenv("COREPROV_TEST_VAR", "")
    assert get_env_or_default("COREPROV_TEST_VAR", "fallback") == ""