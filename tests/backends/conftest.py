"""Backend test fixtures.

litellm is an optional dep.  Tests get a stand-in module in ``sys.modules``
whose ``acompletion``/``completion`` are mocks they can program.
"""

import sys
import types
from unittest.mock import AsyncMock, MagicMock

import pytest


def make_response(content="Hello"):
    msg = MagicMock()
    msg.content = content
    choice = MagicMock()
    choice.message = msg
    return MagicMock(choices=[choice])


@pytest.fixture
def litellm_mock():
    module = types.ModuleType("litellm")
    module.acompletion = AsyncMock(return_value=make_response())
    module.completion = MagicMock(return_value=make_response())

    old = sys.modules.get("litellm")
    sys.modules["litellm"] = module
    yield module
    if old is not None:
        sys.modules["litellm"] = old
    else:
        sys.modules.pop("litellm", None)
