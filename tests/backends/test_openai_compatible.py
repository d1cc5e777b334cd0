"""Tests for OpenAICompatibleBackend retry-with-rotation."""

from unittest.mock import MagicMock

import pytest

from keyrelay.backends.modes import OpenAICompatibleConfig
from keyrelay.backends.openai_compatible import OpenAICompatibleBackend
from keyrelay.core.exceptions import BackendError
from keyrelay.rotation import CredentialRotationManager, credential_id

KEY_A = "csk-aaaaaaaaaaaaaaaaaaaa1111"
KEY_B = "csk-bbbbbbbbbbbbbbbbbbbb2222"
KEY_F = "csk-ffffffffffffffffffffffff9999"

MESSAGES = [{"role": "user", "content": "hi"}]


def make_response(content):
    msg = MagicMock()
    msg.content = content
    return MagicMock(choices=[MagicMock(message=msg)])


def _config(api_key=KEY_F):
    return OpenAICompatibleConfig(model="gpt-oss-120b", api_key=api_key, base_url="https://api.example.com/v1")


def _rotation(**settings):
    return CredentialRotationManager({"apiKeys": [KEY_A, KEY_B], **settings}, fallback_credential=KEY_F)


def _keys_used(mock):
    return [call.kwargs["api_key"] for call in mock.await_args_list]


@pytest.mark.asyncio
class TestWithoutRotation:
    async def test_single_call(self, litellm_mock):
        backend = OpenAICompatibleBackend(_config())
        response = await backend.generate(MESSAGES, max_tokens=10)

        assert response.choices[0].message.content == "Hello"
        kwargs = litellm_mock.acompletion.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-oss-120b"
        assert kwargs["api_key"] == KEY_F
        assert kwargs["api_base"] == "https://api.example.com/v1"
        assert kwargs["max_tokens"] == 10

    async def test_errors_propagate(self, litellm_mock):
        litellm_mock.acompletion.side_effect = Exception("429 Too Many Requests")
        backend = OpenAICompatibleBackend(_config())
        with pytest.raises(Exception, match="429"):
            await backend.generate(MESSAGES)
        assert litellm_mock.acompletion.await_count == 1

    async def test_no_key(self, litellm_mock):
        backend = OpenAICompatibleBackend(_config(api_key=""))
        with pytest.raises(BackendError):
            await backend.generate(MESSAGES)


@pytest.mark.asyncio
class TestWithRotation:
    async def test_retries_with_next_key(self, litellm_mock, today):
        litellm_mock.acompletion.side_effect = [Exception("429 Too Many Requests"), make_response("ok")]
        rotation = _rotation()
        backend = OpenAICompatibleBackend(_config(), rotation=rotation)

        response = await backend.generate(MESSAGES)

        assert response.choices[0].message.content == "ok"
        assert _keys_used(litellm_mock.acompletion) == [KEY_F, KEY_A]
        usage = rotation.settings.daily_usage
        # one rate-limit hit on F, one success on A
        assert usage[credential_id(KEY_F)].requests == 1
        assert usage[credential_id(KEY_A)].requests == 1

    async def test_other_errors_not_retried(self, litellm_mock, today):
        litellm_mock.acompletion.side_effect = Exception("401 Unauthorized")
        rotation = _rotation()
        backend = OpenAICompatibleBackend(_config(), rotation=rotation)

        with pytest.raises(Exception, match="401"):
            await backend.generate(MESSAGES)
        assert litellm_mock.acompletion.await_count == 1
        assert rotation.settings.current_index == 0

    async def test_gives_up_after_every_key(self, litellm_mock, today):
        litellm_mock.acompletion.side_effect = Exception("rate limit exceeded")
        backend = OpenAICompatibleBackend(_config(), rotation=_rotation())

        with pytest.raises(Exception, match="rate limit"):
            await backend.generate(MESSAGES)
        assert _keys_used(litellm_mock.acompletion) == [KEY_F, KEY_A, KEY_B]

    async def test_auto_rotate_off(self, litellm_mock, today):
        litellm_mock.acompletion.side_effect = Exception("429")
        backend = OpenAICompatibleBackend(_config(), rotation=_rotation(autoRotateOnRateLimit=False))

        with pytest.raises(Exception, match="429"):
            await backend.generate(MESSAGES)
        assert litellm_mock.acompletion.await_count == 1

    async def test_starts_from_stored_pointer(self, litellm_mock, today):
        backend = OpenAICompatibleBackend(_config(), rotation=_rotation(currentKeyIndex=2))
        await backend.generate(MESSAGES)
        assert _keys_used(litellm_mock.acompletion) == [KEY_B]

    async def test_retry_across_midnight(self, litellm_mock, today):
        litellm_mock.acompletion.side_effect = [Exception("429 Too Many Requests"), make_response("ok")]
        rotation = _rotation(
            currentKeyIndex=1,
            dailyUsageTracking={credential_id(KEY_A): {"date": "2026-10-19", "requests": 3}},
        )
        backend = OpenAICompatibleBackend(_config(), rotation=rotation)

        today("2026-10-20")
        response = await backend.generate(MESSAGES)

        assert response.choices[0].message.content == "ok"
        assert _keys_used(litellm_mock.acompletion) == [KEY_A, KEY_F]
