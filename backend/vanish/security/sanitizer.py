"""
Input checks for the few plain-text fields the server sees.

Ciphertext, nonces and salts are opaque and pass through untouched; only
identifiers and declared MIME types are checked here.
"""
import re


class InputSanitizer:
    """Validates identifiers and content types supplied by clients."""

    CONTROL_CHAR_PATTERN = re.compile(r'[\x00-\x1f\x7f]')
    IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z0-9_.:@\-]+$')
    MIME_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9!#$&^_.+\-]*/[A-Za-z0-9][A-Za-z0-9!#$&^_.+\-]*$')

    @staticmethod
    def sanitize_identifier(value: str, max_length: int = 128) -> str:
        """
        Sender / client ids: trimmed, no control characters, restricted charset.

        Raises:
            ValueError: If the id is empty, too long or has forbidden characters
        """
        if not isinstance(value, str):
            raise ValueError("Identifier must be string")
        value = value.strip()
        if not value:
            raise ValueError("Identifier cannot be empty")
        if len(value) > max_length:
            raise ValueError(f"Identifier too long (max {max_length})")
        if InputSanitizer.CONTROL_CHAR_PATTERN.search(value):
            raise ValueError("Control characters not allowed")
        if not InputSanitizer.IDENTIFIER_PATTERN.match(value):
            raise ValueError("Identifier contains invalid characters")
        return value

    @staticmethod
    def sanitize_mime_type(value: str) -> str:
        value = (value or "").strip().lower()
        if len(value) > 127 or not InputSanitizer.MIME_PATTERN.match(value):
            raise ValueError("Invalid MIME type")
        return value

    @staticmethod
    def check_opaque(value: str, max_length: int) -> str:
        """Opaque fields: only size and control characters are checked."""
        if InputSanitizer.CONTROL_CHAR_PATTERN.search(value):
            raise ValueError("Control characters not allowed")
        if len(value) > max_length:
            raise ValueError(f"Value too long (max {max_length})")
        return value
