"""BM25 tokenizers: natural-language and keyword.

These are pure functions with no external dependencies. The NLP
tokenizer lowercases, splits on punctuation and drops English stop
words. The keyword tokenizer additionally splits camelCase and
snake_case identifiers (product codes, config keys, API names).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_SPLIT_PATTERN = re.compile(r'[\s\.\,\;\:\(\)\[\]\{\}\<\>\=\+\-\*/&|!@#$%^~`"\'\\?]+')

ENGLISH_STOP_WORDS: frozenset[str] = frozenset({
    "a", "about", "an", "and", "are", "as", "at", "be", "by", "can", "did",
    "do", "does", "for", "from", "has", "have", "how", "i", "in", "is", "it",
    "its", "me", "my", "of", "on", "or", "our", "should", "so", "that", "the",
    "their", "there", "these", "this", "those", "to", "was", "we", "were",
    "what", "when", "where", "which", "who", "why", "will", "with", "you",
    "your",
})


@dataclass(frozen=True)
class TokenizerConfig:
    """Configuration for a BM25 tokenizer."""

    split_identifiers: bool
    stop_words: frozenset[str]
    lowercase: bool
    min_length: int = 1


NLP_TOKENIZER = TokenizerConfig(
    split_identifiers=False,
    stop_words=ENGLISH_STOP_WORDS,
    lowercase=True,
)

KEYWORD_TOKENIZER = TokenizerConfig(
    split_identifiers=True,
    stop_words=ENGLISH_STOP_WORDS,
    lowercase=True,
    min_length=2,
)


def tokenize(text: str, config: TokenizerConfig = NLP_TOKENIZER) -> list[str]:
    """Tokenize text using the given configuration.

    For keywords: also splits camelCase/snake_case identifiers.
    For NLP: splits on whitespace/punctuation, lowercases.
    """
    result: list[str] = []
    for token in _SPLIT_PATTERN.split(text):
        if not token:
            continue
        if config.split_identifiers:
            expanded: list[str] = []
            for part in token.split("_"):
                if not part:
                    continue
                # camelCase split:
                #   (?<=[a-z])(?=[A-Z])     "getUser" -> "get User"
                #   (?<=[A-Z])(?=[A-Z][a-z]) "HTTPClient" -> "HTTP Client"
                split = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", part)
                split = re.sub(r"(?<=[A-Z])(?=[A-Z][a-z])", " ", split)
                expanded.extend(split.split())
            sub_tokens = expanded
        else:
            sub_tokens = [token]

        for sub in sub_tokens:
            if config.lowercase:
                sub = sub.lower()
            if len(sub) >= config.min_length and sub not in config.stop_words:
                result.append(sub)
    return result
