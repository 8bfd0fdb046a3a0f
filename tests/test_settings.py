import pytest

from utils.settings import Settings

ENV_NAMES = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "REPLICATE_API_TOKEN",
    "IMAGE_PROVIDER",
    "GENERATION_TIMEOUT_SECONDS",
    "ENRICHMENT_TIMEOUT_SECONDS",
    "DATABASE_DIR",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    def test_defaults(self, clean_env):
        settings = Settings.from_env()
        assert settings.default_provider == "gemini"
        assert settings.generation_timeout == 120.0
        assert settings.database_dir is None
        assert settings.openai_api_key is None

    def test_values_from_environment(self, clean_env):
        clean_env.setenv("IMAGE_PROVIDER", "FLUX")
        clean_env.setenv("REPLICATE_API_TOKEN", " r8_token ")
        clean_env.setenv("GENERATION_TIMEOUT_SECONDS", "45")
        clean_env.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()
        assert settings.default_provider == "flux"
        assert settings.replicate_api_token == "r8_token"
        assert settings.generation_timeout == 45.0
        assert settings.log_level == "DEBUG"

    def test_invalid_provider(self, clean_env):
        clean_env.setenv("IMAGE_PROVIDER", "dalle")
        with pytest.raises(RuntimeError):
            Settings.from_env()

    @pytest.mark.parametrize("value", ["soon", "0", "-5"])
    def test_invalid_timeout(self, clean_env, value):
        clean_env.setenv("GENERATION_TIMEOUT_SECONDS", value)
        with pytest.raises(RuntimeError):
            Settings.from_env()
