"""Tests for backend selection and the non-rotating backends."""

from unittest.mock import MagicMock

import pytest

from keyrelay.backends import (
    AuthMode,
    DirectKeyBackend,
    DirectKeyConfig,
    GenerationBackend,
    InteractiveSessionBackend,
    InteractiveSessionConfig,
    ManagedCloudBackend,
    ManagedCloudConfig,
    OpenAICompatibleBackend,
    OpenAICompatibleConfig,
    create_backend,
    create_backend_for_mode,
)
from keyrelay.core.exceptions import AuthenticationError, ConfigurationError

KEY_A = "csk-aaaaaaaaaaaaaaaaaaaa1111"
KEY_B = "csk-bbbbbbbbbbbbbbbbbbbb2222"
KEY_F = "csk-ffffffffffffffffffffffff9999"

MESSAGES = [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
class TestCreateBackend:
    async def test_dispatch(self):
        cases = [
            (InteractiveSessionConfig(model="gemini-2.5-flash"), InteractiveSessionBackend),
            (ManagedCloudConfig(model="gemini-2.5-flash", api_key="v"), ManagedCloudBackend),
            (DirectKeyConfig(model="gemini-2.5-flash", api_key="g"), DirectKeyBackend),
            (OpenAICompatibleConfig(model="gpt-oss-120b", api_key=KEY_F), OpenAICompatibleBackend),
        ]
        for config, expected in cases:
            backend = await create_backend(config)
            assert isinstance(backend, expected)
            assert isinstance(backend, GenerationBackend)
            assert backend.config is config

    async def test_unknown_config(self):
        with pytest.raises(ConfigurationError, match="Unsupported backend config"):
            await create_backend(object())

    async def test_missing_keys(self):
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            await create_backend(DirectKeyConfig(model="m", api_key=""))
        with pytest.raises(ConfigurationError, match="CEREBRAS_API_KEY"):
            await create_backend(OpenAICompatibleConfig(model="m", api_key=""))

    async def test_no_rotation_without_pool(self):
        config = OpenAICompatibleConfig(model="gpt-oss-120b", api_key=KEY_F)
        assert (await create_backend(config)).rotation is None
        assert (await create_backend(config, settings={"apiKeyRotation": {"apiKeys": []}})).rotation is None
        assert (await create_backend(config, settings={"apiKeyRotation": "junk"})).rotation is None

    async def test_rotation_bound_with_pool(self, today):
        config = OpenAICompatibleConfig(model="gpt-oss-120b", api_key=KEY_F)
        settings = {"apiKeyRotation": {"apiKeys": [KEY_A, KEY_B]}}

        backend = await create_backend(config, settings=settings)

        assert backend.rotation is not None
        assert backend.rotation.fallback_credential == KEY_F
        assert backend.rotation.available_credentials() == [KEY_F, KEY_A, KEY_B]

    async def test_rotation_writes_back_into_settings(self, today):
        config = OpenAICompatibleConfig(model="gpt-oss-120b", api_key=KEY_F)
        settings = {"theme": "dark", "apiKeyRotation": {"apiKeys": [KEY_A, KEY_B]}}
        backend = await create_backend(config, settings=settings)

        await backend.rotation.rotate_to_next()

        assert settings["apiKeyRotation"]["currentKeyIndex"] == 1
        assert settings["apiKeyRotation"]["apiKeys"] == [KEY_A, KEY_B]
        assert settings["theme"] == "dark"

    async def test_explicit_save_callback(self, today):
        saved = []

        async def _save(snapshot):
            saved.append(snapshot)

        config = OpenAICompatibleConfig(model="gpt-oss-120b", api_key=KEY_F)
        settings = {"apiKeyRotation": {"apiKeys": [KEY_A, KEY_B]}}
        backend = await create_backend(config, settings=settings, on_settings_update=_save)
        await backend.rotation.rotate_to_next()

        assert saved[-1]["currentKeyIndex"] == 1
        assert "currentKeyIndex" not in settings["apiKeyRotation"]

    async def test_for_mode(self, today):
        env = {"CEREBRAS_API_KEY": KEY_F, "CEREBRAS_MODEL": "llama3.1-8b"}
        backend = await create_backend_for_mode("openai", env=env, settings={"apiKeyRotation": {"apiKeys": [KEY_A]}})
        assert isinstance(backend, OpenAICompatibleBackend)
        assert backend.config.model == "llama3.1-8b"
        assert backend.rotation.available_credentials() == [KEY_F, KEY_A]

    async def test_for_mode_missing_env(self):
        with pytest.raises(ConfigurationError):
            await create_backend_for_mode("gemini-api-key", env={})


@pytest.mark.asyncio
class TestGoogleBackends:
    async def test_direct_key(self, litellm_mock):
        backend = DirectKeyBackend(DirectKeyConfig(model="gemini-2.5-flash", api_key="g-key"))
        await backend.generate(MESSAGES)
        kwargs = litellm_mock.acompletion.await_args.kwargs
        assert kwargs["model"] == "gemini/gemini-2.5-flash"
        assert kwargs["api_key"] == "g-key"

    async def test_vertex_project(self, litellm_mock):
        config = ManagedCloudConfig(model="gemini-2.5-flash", project="proj", location="us-central1")
        await ManagedCloudBackend(config).generate(MESSAGES)
        kwargs = litellm_mock.acompletion.await_args.kwargs
        assert kwargs["model"] == "vertex_ai/gemini-2.5-flash"
        assert kwargs["vertex_project"] == "proj"
        assert kwargs["vertex_location"] == "us-central1"
        assert "api_key" not in kwargs

    async def test_vertex_api_key(self, litellm_mock):
        await ManagedCloudBackend(ManagedCloudConfig(model="vertex_ai/gemini-pro", api_key="v")).generate(MESSAGES)
        kwargs = litellm_mock.acompletion.await_args.kwargs
        assert kwargs["model"] == "vertex_ai/gemini-pro"
        assert kwargs["api_key"] == "v"

    async def test_session_uses_oauth_token(self, litellm_mock):
        oauth = MagicMock()
        oauth.access_token.return_value = "tok-123"
        backend = InteractiveSessionBackend(InteractiveSessionConfig(model="gemini-2.5-flash"), oauth=oauth)

        assert backend.mode is AuthMode.INTERACTIVE_SESSION
        await backend.generate(MESSAGES)
        kwargs = litellm_mock.acompletion.await_args.kwargs
        assert kwargs["extra_headers"] == {"Authorization": "Bearer tok-123"}

    async def test_session_without_oauth(self, litellm_mock):
        backend = InteractiveSessionBackend(InteractiveSessionConfig(model="gemini-2.5-flash"))
        with pytest.raises(AuthenticationError):
            await backend.generate(MESSAGES)
        litellm_mock.acompletion.assert_not_awaited()


def test_cloud_shell_mode():
    backend = InteractiveSessionBackend(InteractiveSessionConfig(model="m", cloud_shell=True))
    assert backend.mode is AuthMode.CLOUD_SHELL
