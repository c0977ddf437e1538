"""Free-text cleanup for customer-supplied fields (notes, addresses, instructions)."""
from typing import Optional


def clean_text(text: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Truncate to max_length and strip null bytes and control characters
    (newlines and tabs are kept). Empty input stays None.
    """
    if text is None:
        return None
    if len(text) > max_length:
        text = text[:max_length]
    text = text.replace('\x00', '')
    text = ''.join(char for char in text if ord(char) >= 32 or char in '\n\r\t')
    text = text.strip()
    return text or None
