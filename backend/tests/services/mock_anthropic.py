"""Mock Anthropic Client - stands in for ResilientAnthropicClient in insight tests.

Invariants:
    - _Block / _Message mirror the attributes of Anthropic SDK response objects
    - FakeAnthropicClient sequences responses (one per create_message call)
    - An Exception in the response list is raised instead of returned
    - Every call's keyword arguments are recorded in `calls`
"""


class _Block:
    """Mock content block (text, tool_use, ...)."""

    def __init__(self, **kwargs):
        self._data = kwargs
        for k, v in kwargs.items():
            setattr(self, k, v)

    def __repr__(self):
        return f"_Block({self._data})"


class _Usage:
    def __init__(self, input_tokens=100, output_tokens=50):
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens


class _Message:
    """Mock Message returned by messages.create()."""

    def __init__(self, content, stop_reason="end_turn", input_tokens=100, output_tokens=50):
        self.content = content
        self.stop_reason = stop_reason
        self.usage = _Usage(input_tokens, output_tokens)


class FakeAnthropicClient:
    """Replaces ResilientAnthropicClient. Sequences pre-configured responses."""

    def __init__(self, responses):
        self._responses = responses
        self._idx = 0
        self.calls = []

    async def create_message(self, **kwargs):
        self.calls.append(kwargs)
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"FakeAnthropicClient: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        response = self._responses[self._idx]
        self._idx += 1
        if isinstance(response, Exception):
            raise response
        return response


def text_response(text, stop_reason="end_turn"):
    """Build a text-only message."""
    return _Message([_Block(type="text", text=text)], stop_reason)
