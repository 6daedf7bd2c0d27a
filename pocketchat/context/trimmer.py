import math
from typing import Optional, Sequence

from ..conversation.models import Message
from .capacity import get_context_limit
from .tokens import estimate_tokens

# Share of the context window available to the prompt; the rest is left
# for the model's reply.
PROMPT_SHARE = 0.8


def message_tokens(message: Message) -> int:
    if message.tokens is not None:
        return message.tokens
    return estimate_tokens(message.text)


def context_budget(
    model_name: str,
    system_prompt: Optional[str] = None,
    max_tokens: Optional[int] = None,
) -> int:
    """Tokens left for history once the reply reserve and system prompt are taken.

    ``max_tokens`` replaces the capacity table lookup entirely. The result
    can be zero or negative when the system prompt alone is too large.
    """
    limit = max_tokens if max_tokens is not None else get_context_limit(model_name)
    system_tokens = estimate_tokens(system_prompt) if system_prompt else 0
    return math.floor(limit * PROMPT_SHARE) - system_tokens


def trim_context(
    messages: Sequence[Message],
    model_name: str,
    system_prompt: Optional[str] = None,
    max_tokens: Optional[int] = None,
) -> list[Message]:
    """Return the longest suffix of *messages* that fits the context budget.

    Messages are taken newest first until one does not fit; older messages
    are never considered after that, so the result is always a contiguous,
    order-preserving suffix. If not even the newest message fits, it is
    returned on its own so a non-empty history never trims to nothing.
    """
    available = context_budget(model_name, system_prompt, max_tokens)

    total = 0
    start = len(messages)
    for i in range(len(messages) - 1, -1, -1):
        cost = message_tokens(messages[i])
        if total + cost > available:
            break
        total += cost
        start = i

    if start == len(messages) and messages:
        return [messages[-1]]
    return list(messages[start:])
