"""
Token estimation.

A provider-independent heuristic averaging a character-based and a
word-based estimate. Good enough to decide when to summarize.

Dependencies: math (stdlib)
System role: Token accounting for threads
"""

import math

MESSAGE_OVERHEAD_TOKENS = 4


def count_tokens(text: str) -> int:
    if not text:
        return 0
    by_chars = math.ceil(len(text) / 3.5)
    by_words = math.ceil(len(text.split()) * 1.3)
    return math.ceil((by_chars + by_words) / 2)


def count_message_tokens(content: str) -> int:
    """Token estimate of one message including per-message overhead."""
    return count_tokens(content) + MESSAGE_OVERHEAD_TOKENS
