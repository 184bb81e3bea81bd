"""Chat id normalization.

Telegram hands out channel ids in more than one encoding: the Bot API uses
``-1001234567890`` while MTProto clients see the bare ``1234567890``. Both
are reduced to the bare form before comparison and storage.
"""

from __future__ import annotations

CHANNEL_PREFIX = "-100"

# Only these chat types carry the -100 prefix; a private chat with id N is not channel -100N.
PREFIXED_CHAT_TYPES = frozenset({"channel", "supergroup"})


def normalize_chat_id(value: int | str | None) -> str:
    """Canonical string form of a chat id (bare channel id, no ``-100`` prefix)."""
    if value is None:
        return ""
    raw = str(value).strip()
    try:
        raw = str(int(raw))
    except ValueError:
        return raw
    if raw.startswith(CHANNEL_PREFIX) and len(raw) > len(CHANNEL_PREFIX):
        return raw[len(CHANNEL_PREFIX):]
    return raw


def is_source_chat(
    chat_id: int | str | None, source_id: int | str, *, chat_type: str | None = None
) -> bool:
    if chat_type is not None and chat_type not in PREFIXED_CHAT_TYPES:
        return False
    normalized = normalize_chat_id(chat_id)
    return bool(normalized) and normalized == normalize_chat_id(source_id)


def address_renderings(channel_id: int | str, *, fallback: bool = True) -> list[int | str]:
    """Ordered chat id forms to try when addressing a channel.

    With ``fallback`` the order is: prefix-stripped string, the same as an
    integer, then the full original form. Without it only the original form
    is used (as an int when numeric), which is what the Bot API expects.
    """
    original = str(channel_id).strip()
    if not fallback:
        try:
            return [int(original)]
        except ValueError:
            return [original]

    stripped = original.removeprefix(CHANNEL_PREFIX) or original
    candidates: list[int | str] = [stripped]
    try:
        candidates.append(int(stripped))
    except ValueError:
        pass
    candidates.append(original)

    renderings: list[int | str] = []
    for candidate in candidates:
        if not any(type(c) is type(candidate) and c == candidate for c in renderings):
            renderings.append(candidate)
    return renderings
