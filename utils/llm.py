"""Language-model gateway: one send() contract over two backends.

SamplingGateway hands every exchange to a channel supplied by the host
(for example an MCP client that offers sampling). AnthropicGateway calls
the Anthropic Messages API directly and picks between a cheap and a strong
model. The backend is chosen once, from Settings, when the gateway is built.
"""

import logging

import anthropic

from config.defaults import DEFAULTS
from core.errors import GenerationUnavailable

logger = logging.getLogger(__name__)


def get_client(api_key, max_retries=None):
    """Return an async Anthropic client. Raises if no API key is set."""
    if not api_key:
        raise RuntimeError(
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )
    if max_retries is None:
        max_retries = DEFAULTS["max_retries"]
    return anthropic.AsyncAnthropic(api_key=api_key, max_retries=max_retries)


def _to_provider_messages(messages):
    return [{"role": m.role, "content": m.text} for m in messages]


async def _stream_text(client, model, system_prompt, messages, max_tokens):
    """Run one streamed Messages call and return the concatenated text.

    Streaming is required: the SDK refuses non-streamed requests whose
    max_tokens could outlast its request timeout.
    """
    async with client.messages.stream(
        model=model,
        max_tokens=max_tokens,
        system=system_prompt,
        messages=_to_provider_messages(messages),
    ) as stream:
        message = await stream.get_final_message()

    if message.stop_reason == "max_tokens":
        logger.warning("Response from %s hit the %d token limit", model, max_tokens)

    return "".join(block.text for block in message.content if block.type == "text")


class LLMGateway:
    """Send a system prompt plus conversation, get back text."""

    name = "base"

    async def send(self, exchange):
        raise NotImplementedError


class SamplingGateway(LLMGateway):
    """Delegates to a host-supplied sampling channel. No retries here."""

    name = "sampling"

    def __init__(self, channel):
        self.channel = channel

    async def send(self, exchange):
        return await self.channel.create_message(
            system_prompt=exchange.system_prompt,
            messages=exchange.messages,
            max_tokens=exchange.max_tokens,
            model_preferences=exchange.model_preferences,
        )


class AnthropicGateway(LLMGateway):
    """Calls Anthropic directly; the strong model only on intelligence_priority == 1."""

    name = "anthropic"

    def __init__(self, client, cheap_model=None, strong_model=None):
        self.client = client
        self.cheap_model = cheap_model or DEFAULTS["cheap_model"]
        self.strong_model = strong_model or DEFAULTS["strong_model"]

    def select_model(self, preferences):
        if preferences is not None and preferences.intelligence_priority == 1:
            return self.strong_model
        return self.cheap_model

    async def send(self, exchange):
        model = self.select_model(exchange.model_preferences)
        logger.debug("Sending exchange to %s (max_tokens=%d)", model, exchange.max_tokens)
        try:
            return await _stream_text(
                self.client,
                model,
                exchange.system_prompt,
                exchange.messages,
                exchange.max_tokens,
            )
        except anthropic.APIError as e:
            raise GenerationUnavailable(f"{model} request failed: {e}") from e


class DirectSamplingChannel:
    """Host-side sampling channel backed by Anthropic.

    Serves sampling requests the way an MCP client would: the strong model
    wins when the caller's intelligence priority exceeds its cost priority.
    """

    def __init__(self, client, cheap_model=None, strong_model=None):
        self.client = client
        self.cheap_model = cheap_model or DEFAULTS["cheap_model"]
        self.strong_model = strong_model or DEFAULTS["strong_model"]

    def select_model(self, preferences):
        intelligence = 0
        cost = 0
        if preferences is not None:
            intelligence = preferences.intelligence_priority or 0
            cost = preferences.cost_priority or 0
        return self.strong_model if intelligence > cost else self.cheap_model

    async def create_message(self, system_prompt, messages, max_tokens, model_preferences=None):
        model = self.select_model(model_preferences)
        return await _stream_text(self.client, model, system_prompt, messages, max_tokens)


def build_gateway(settings, channel=None, client=None):
    """Pick the backend from settings.enable_sampling.

    In sampling mode a channel is required. Otherwise an Anthropic client is
    created from settings.api_key unless one is passed in.
    """
    if settings.enable_sampling:
        if channel is None:
            raise ValueError("Sampling is enabled but no sampling channel was supplied")
        return SamplingGateway(channel)

    if client is None:
        client = get_client(settings.api_key)
    return AnthropicGateway(client, settings.cheap_model, settings.strong_model)
