"""
Tests for input validation (emails, passwords, codes, admin logins and roles).
"""
import pytest

from app.core.exceptions import ValidationFailed
from app.core.validation import (
    ERR_BAD_CONFIRM_CODE,
    ERR_BAD_EMAIL,
    ERR_BAD_LOGIN,
    ERR_BAD_ROLE,
    ERR_EMAIL_IS_NIL,
    ERR_PASSWORD_BAD_SYMBOLS,
    ERR_PASSWORD_IS_NIL,
    ERR_PASSWORD_TOO_SHORT,
    ERR_PASSWORD_TOO_WEAK,
    PasswordPolicy,
    validate_code,
    validate_credentials_present,
    validate_email,
    validate_login,
    validate_password,
    validate_role,
)


class TestEmailValidation:
    """Email shape and length rules."""

    def test_valid_email_is_returned_trimmed(self):
        assert validate_email("  alice@x.io ") == "alice@x.io"

    def test_missing_email(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_email(None)
        assert exc.value.message == ERR_EMAIL_IS_NIL
        assert exc.value.code == 400

    @pytest.mark.parametrize("email", ["alice", "alice@x", "@x.io", "al ice@x.io", "alice@x.i"])
    def test_malformed_email(self, email):
        with pytest.raises(ValidationFailed) as exc:
            validate_email(email)
        assert exc.value.message == ERR_BAD_EMAIL

    def test_length_bounds(self):
        """Emails must be 5 to 40 characters long."""
        forty = "a" * 32 + "@mail.ru"
        assert len(forty) == 40
        assert validate_email(forty) == forty

        with pytest.raises(ValidationFailed):
            validate_email("a" * 33 + "@mail.ru")


class TestPasswordValidation:
    """Password strength rules."""

    def test_length_seven_rejected_eight_accepted(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_password("Passw0r")
        assert exc.value.message == ERR_PASSWORD_TOO_SHORT

        assert validate_password("Passw0rd") == "Passw0rd"

    def test_missing_uppercase_mentions_requirement(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_password("xer@0101")
        assert exc.value.message == ERR_PASSWORD_TOO_WEAK
        assert "1 заглавную букву" in exc.value.message

    def test_missing_digit(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_password("Password!")
        assert exc.value.message == ERR_PASSWORD_TOO_WEAK

    def test_non_latin_symbols_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_password("Пароль123A")
        assert exc.value.message == ERR_PASSWORD_BAD_SYMBOLS

    def test_trailing_newline_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_password("Passw0rd\n")
        assert exc.value.message == ERR_PASSWORD_BAD_SYMBOLS

    def test_punctuation_set_accepted(self):
        assert validate_password('Aa1!@#$%^&*()_+-=[]{};:"\\|,.<>/?')

    def test_missing_password(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_password("")
        assert exc.value.message == ERR_PASSWORD_IS_NIL

    def test_policy_reports_all_failures(self):
        ok, errors = PasswordPolicy.check("abc")
        assert ok is False
        assert ERR_PASSWORD_TOO_SHORT in errors
        assert ERR_PASSWORD_TOO_WEAK in errors


class TestCodeValidation:
    """Confirmation codes: four digits within [1000, 9999]."""

    @pytest.mark.parametrize("code", ["1000", "9999", 1111, " 4321 "])
    def test_accepted(self, code):
        assert 1000 <= validate_code(code) <= 9999

    @pytest.mark.parametrize("code", [999, 10000, "0999", "12a4", "12\n34", "", None])
    def test_rejected(self, code):
        with pytest.raises(ValidationFailed) as exc:
            validate_code(code)
        assert exc.value.message == ERR_BAD_CONFIRM_CODE


class TestPresenceOnly:
    def test_sign_in_does_not_check_shape(self):
        validate_credentials_present("not-an-email", "weak")

    def test_sign_in_requires_both_fields(self):
        with pytest.raises(ValidationFailed):
            validate_credentials_present("alice@x.io", "")
        with pytest.raises(ValidationFailed):
            validate_credentials_present("", "Passw0rd")


class TestAdminFields:
    @pytest.mark.parametrize("login", ["ivan", "ivan.petrov", "a-b-c-d"])
    def test_valid_logins(self, login):
        assert validate_login(login) == login

    @pytest.mark.parametrize("login", ["ivn", "ivan1", "a" * 21, "ivan\n", "", None])
    def test_invalid_logins(self, login):
        with pytest.raises(ValidationFailed) as exc:
            validate_login(login)
        assert exc.value.message == ERR_BAD_LOGIN

    def test_roles(self):
        assert validate_role("moderator") == "moderator"
        with pytest.raises(ValidationFailed) as exc:
            validate_role("root")
        assert exc.value.message == ERR_BAD_ROLE
