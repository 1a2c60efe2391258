from typing import Iterable, Optional

from exceptions import PathTranslationError
from schemas.relay import PrefixPair


def match_prefix(path: str, pairs: Iterable[PrefixPair]) -> Optional[PrefixPair]:
    # First match wins; RelayConfig.prefix_pairs lists the test pair first.
    for pair in pairs:
        if path.startswith(pair.socket_prefix):
            return pair
    return None


def translate_path(path: str, pairs: Iterable[PrefixPair]) -> str:
    """Map a socket-side path onto its webhook path.

    `/websocket/chat-123` becomes `/webhook/chat-123` with the default
    prefixes. Raises PathTranslationError if no socket prefix matches.
    """
    pair = match_prefix(path, pairs)
    if pair is None:
        raise PathTranslationError(path)
    return pair.http_prefix + path[len(pair.socket_prefix):]
