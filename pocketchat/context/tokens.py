"""Length-based token estimation.

English text averages roughly four characters per token. The estimate is
inexact by design and is never expected to match a provider's tokenizer;
it only has to be cheap and monotonic in text length.
"""

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Return ``ceil(len(text) / 4)``, counting characters rather than bytes."""
    return -(-len(text) // CHARS_PER_TOKEN)
