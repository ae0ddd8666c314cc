"""
Text processing: response cleanup and token estimates.
"""

import re


def clean_model_response(text: str) -> str:
    """Trim the reply and collapse runs of blank lines."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def estimate_tokens(text: str) -> int:
    """Rough token count (about four characters per token)."""
    if not text:
        return 0
    return max(1, len(text) // 4)
