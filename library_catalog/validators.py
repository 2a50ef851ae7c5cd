import re
from typing import Optional

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ISBNValidator:
    """ISBN normalization shared by writes and lookups."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return re.sub(r"[\s-]", "", raw).upper()


class TextValidator:
    """Basic checks for required text fields."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def require(text: Optional[str], field_name: str) -> Optional[str]:
        """Return the stripped text, raising ValueError when it is blank.

        ``None`` passes through untouched so optional patch fields stay absent.
        """
        if text is None:
            return None
        if TextValidator.is_blank(text):
            raise ValueError(f"{field_name} must not be blank")
        return text.strip()


class EmailValidator:
    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        if not email:
            return False
        return bool(_EMAIL_RE.match(email.strip()))

    @staticmethod
    def normalize(email: Optional[str]) -> Optional[str]:
        if email is None:
            return None
        cleaned = email.strip()
        if not EmailValidator.is_valid_email(cleaned):
            raise ValueError("email must be a valid email address")
        return cleaned
