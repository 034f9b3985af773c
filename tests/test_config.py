# tests/test_config.py
from importlib import reload
import chatbridge.core.config as cfg_mod

def test_defaults_present(monkeypatch):
    # Tests that defaults apply when the provider-related variables are not set.
    for name in ("PROVIDER", "OPENAI_API_KEY", "LOCAL_HOST", "LOCAL_MODEL", "ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    reload(cfg_mod)
    assert cfg_mod.PROVIDER == "local"
    assert cfg_mod.ORIGINS == ["*"]
    cfg = cfg_mod.chat_provider_config()
    assert cfg.provider == "local"
    assert cfg.local_host == ""

def test_env_maps_to_provider_config(monkeypatch):
    # Tests that the environment is carried into the ChatProviderConfig the factory consumes.
    monkeypatch.setenv("PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
    monkeypatch.setenv("ORIGINS", "http://localhost:5173, https://app.example.com")
    reload(cfg_mod)
    cfg = cfg_mod.chat_provider_config()
    assert cfg.provider == "openai"
    assert cfg.openai_api_key == "sk-env"
    assert cfg.openai_model == "gpt-4o"
    assert cfg_mod.ORIGINS == ["http://localhost:5173", "https://app.example.com"]

    monkeypatch.undo()
    reload(cfg_mod)
