"""
Input validation

Shape checks run by the orchestrators before any state is touched. All
failures are ValidationFailed with code 400 and a user-facing message.
Length limits count characters (runes), not bytes.
"""
import re
from typing import List, Optional, Tuple

from app.core.exceptions import ValidationFailed

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PASSWORD_ALPHABET = re.compile(r"^[a-zA-Z0-9!@#$%^&*()_+\-=\[\]{};:\"\\|,.<>/?]*$")
LOGIN_PATTERN = re.compile(r"^[a-zA-Z.\-]{4,20}$")
CODE_PATTERN = re.compile(r"^[0-9]{4}$")

ALLOWED_ROLES = ("super_admin", "admin", "editor", "moderator", "content_manager")
SUPER_ADMIN_ROLE = "super_admin"

ERR_EMAIL_IS_NIL = "email/логин обязательно"
ERR_BAD_EMAIL = "email передан неправильно"
ERR_PASSWORD_IS_NIL = "пароль обязателен"
ERR_PASSWORD_TOO_SHORT = "пароль должен содержать как миниум 8 символов"
ERR_PASSWORD_TOO_WEAK = "пароль должен содержать как минимум 1 букву, 1 заглавную букву и 1 цифру"
ERR_PASSWORD_BAD_SYMBOLS = "пароль может содержать только латинские буквы, спец. символы и цифры"
ERR_BAD_CONFIRM_CODE = "код верификации передан неверно"
ERR_BAD_LOGIN = "логин передан неверно"
ERR_BAD_ROLE = "такой роли не существует"
ERR_BAD_PAGINATION = "параметры пагинации переданы неверно"


class PasswordPolicy:
    """
    Password strength rules.

    Requirements:
    - Minimum 8 characters
    - At least one letter, one uppercase letter and one digit
    - Only Latin letters, digits and the fixed punctuation set
    """

    MIN_LENGTH = 8

    @classmethod
    def check(cls, password: str) -> Tuple[bool, List[str]]:
        """
        Check a password against all rules.

        Returns:
            Tuple of (is_valid, list of failure messages)
        """
        errors = []

        if not PASSWORD_ALPHABET.fullmatch(password):
            errors.append(ERR_PASSWORD_BAD_SYMBOLS)

        if len(password) < cls.MIN_LENGTH:
            errors.append(ERR_PASSWORD_TOO_SHORT)

        has_letter = any(c.isascii() and c.isalpha() for c in password)
        has_upper = any(c.isascii() and c.isupper() for c in password)
        has_digit = any(c.isdigit() for c in password)
        if not (has_letter and has_upper and has_digit):
            errors.append(ERR_PASSWORD_TOO_WEAK)

        return len(errors) == 0, errors


def validate_email(email: Optional[str]) -> str:
    """Return the trimmed email or raise ValidationFailed."""
    if email is None or email.strip() == "":
        raise ValidationFailed(ERR_EMAIL_IS_NIL)
    email = email.strip()
    if not 5 <= len(email) <= 40 or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationFailed(ERR_BAD_EMAIL)
    return email


def validate_password(password: Optional[str]) -> str:
    if not password:
        raise ValidationFailed(ERR_PASSWORD_IS_NIL)
    ok, errors = PasswordPolicy.check(password)
    if not ok:
        raise ValidationFailed(errors[0])
    return password


def validate_credentials_present(email: Optional[str], password: Optional[str]) -> None:
    """Presence-only check used by sign-in; shape is not re-checked."""
    if email is None or email.strip() == "":
        raise ValidationFailed(ERR_EMAIL_IS_NIL)
    if not password:
        raise ValidationFailed(ERR_PASSWORD_IS_NIL)


def validate_code(code) -> int:
    """Confirmation codes are exactly four decimal digits in [1000, 9999]."""
    text = str(code).strip() if code is not None else ""
    if not CODE_PATTERN.fullmatch(text):
        raise ValidationFailed(ERR_BAD_CONFIRM_CODE)
    value = int(text)
    if not 1000 <= value <= 9999:
        raise ValidationFailed(ERR_BAD_CONFIRM_CODE)
    return value


def validate_login(login: Optional[str]) -> str:
    if not login or not LOGIN_PATTERN.fullmatch(login):
        raise ValidationFailed(ERR_BAD_LOGIN)
    return login


def validate_role(role: Optional[str]) -> str:
    if role not in ALLOWED_ROLES:
        raise ValidationFailed(ERR_BAD_ROLE)
    return role
