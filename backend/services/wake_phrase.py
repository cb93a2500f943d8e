"""Wake phrase detection for in-line AI requests."""

from typing import Optional

DEFAULT_WAKE_WORD = "@ai"


def extract_command(text: str, wake_word: str = DEFAULT_WAKE_WORD) -> Optional[str]:
    """Return the AI command in a message, or None if the message is not a wake-up.

    The wake word must open the (trimmed) message; matching is case-insensitive.
    A message that is only the wake word yields "" (greet and ask).

        "@ai summarize"   -> "summarize"
        "@AI  summarize " -> "summarize"
        "@ai"             -> ""
        "hi @ai"          -> None
    """
    trimmed = text.strip()
    if trimmed.lower().startswith(wake_word.lower()):
        return trimmed[len(wake_word):].strip()
    return None
