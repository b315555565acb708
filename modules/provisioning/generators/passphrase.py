"""
Passphrase generator backed by a bundled word list.
"""

import secrets
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from modules.provisioning.core.exceptions import ConfigurationException
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


@lru_cache(maxsize=8)
def load_wordlist(path: Path, delimiter: str = "-") -> Tuple[str, ...]:
    """
    Load and filter a word list.

    Blank lines, comments and words containing the delimiter are dropped
    so a generated passphrase always splits back into its words.

    Raises:
        ConfigurationException: If the file is unreadable or has no usable words
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationException(f"Passphrase dictionary unavailable at {path}: {e}")

    words = tuple(
        word for word in (line.strip() for line in raw.splitlines())
        if word and not word.startswith("#") and delimiter not in word
    )
    if not words:
        raise ConfigurationException(f"Passphrase dictionary at {path} contains no words")

    logger.debug(f"Loaded {len(words)} words from {path}")
    return words


def generate_passphrase(word_count: int, wordlist_path: Path, delimiter: str = "-") -> str:
    """
    Join `word_count` words drawn uniformly from the dictionary.

    Raises:
        ConfigurationException: If word_count is not positive or the dictionary is unavailable
    """
    if word_count <= 0:
        raise ConfigurationException(f"Passphrase word count must be positive, got {word_count}")

    words = load_wordlist(Path(wordlist_path), delimiter)
    return delimiter.join(secrets.choice(words) for _ in range(word_count))
