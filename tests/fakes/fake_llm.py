"""Scripted stand-in for an OpenAI-compatible chat-completions backend.

Responses and chunks have the same attribute shape as the ``openai`` SDK
objects the runtime reads (``choices[0].message`` / ``choices[0].delta``),
so AgentRuntime runs against it unchanged.

Usage::

    provider, completions = fake_provider([
        message(tool_calls=[tool_call("call_1", "read_file", '{"file_path": "a"}')]),
        message("done"),
    ])
    runtime = AgentRuntime("system", registry, provider, context)
    ...
    completions.requests[1]["messages"]   # what the second round sent
"""

import copy
from types import SimpleNamespace
from typing import Any, List

from agent.providers import LLMProvider


class FakeCompletions:
    """Returns scripted responses in order; records a snapshot of each request.

    An Exception in the script is raised instead of returned.
    """

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requests: List[dict] = []

    async def create(self, **kwargs):
        self.requests.append(copy.deepcopy(kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def fake_provider(responses, name="OpenAI", model="gpt-test"):
    completions = FakeCompletions(responses)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMProvider(name=name, client=client, default_model=model), completions


# -- Blocking responses -------------------------------------------------------

def tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def message(content=None, tool_calls=None):
    return SimpleNamespace(choices=[SimpleNamespace(
        message=SimpleNamespace(content=content, tool_calls=tool_calls),
        finish_reason="tool_calls" if tool_calls else "stop",
    )])


# -- Streamed responses -------------------------------------------------------

def chunk(content=None, tool_calls=None, finish_reason=None):
    return SimpleNamespace(choices=[SimpleNamespace(
        delta=SimpleNamespace(content=content, tool_calls=tool_calls),
        finish_reason=finish_reason,
    )])


def fragment(index, id=None, name=None, arguments=None):
    return SimpleNamespace(index=index, id=id, function=SimpleNamespace(name=name, arguments=arguments))


class FakeStream:
    """Async-iterable over *chunks*; raises *error* after the last one if given."""

    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._chunks:
            yield item
        if self._error is not None:
            raise self._error


def text_stream(*pieces):
    return FakeStream([chunk(p) for p in pieces] + [chunk(finish_reason="stop")])
