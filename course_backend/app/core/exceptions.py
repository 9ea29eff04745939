"""
Course Exception Hierarchy

Every failure that crosses a component boundary is a CourseError carrying a
stable numeric code and a user-facing message. Components raise, the
orchestrators pass errors upward unchanged, and only the HTTP layer
(app.core.error_handler) turns them into status codes.

Exception Hierarchy:
    CourseError
    ├── ValidationFailed       (400)
    ├── NotFoundError          (404)
    ├── ConflictError          (409)
    ├── ForbiddenError         (403)
    ├── TooManyRequestsError   (429)
    └── InternalError          (500)

Code ranges:
    10000 generic store, 11000 auth/user, 13000 content,
    15000 billing, 16000 admin, 17000 rate limiting / delivery
"""
from enum import IntEnum
from typing import Optional, Dict, Any


class ErrorCode(IntEnum):
    VALIDATION = 400

    # Generic store
    INSERT_FAILED = 10001
    READ_FAILED = 10002
    UPDATE_FAILED = 10003
    DELETE_FAILED = 10004
    COMMIT_FAILED = 10010
    REDIS_SET_FAILED = 10031
    REDIS_GET_FAILED = 10032
    REDIS_DELETE_FAILED = 10033
    BAD_REQUEST_BODY = 10101

    # Auth / user
    EMAIL_BUSY = 11001
    USER_NOT_FOUND = 11002
    BAD_CONFIRM_CODE = 11003
    CONFIRM_CODE_EXPIRED = 11004
    CONTEXT_MISSING = 11005
    TOKEN_NOT_FOUND = 11006
    TOKEN_EXPIRED = 11007
    ALREADY_VERIFIED = 11008
    COOKIE_MISSING = 11009
    USER_INACTIVE = 11010
    TOKEN_MALFORMED = 11011
    SAME_EMAIL = 11012
    HASH_FAILED = 11020
    SIGN_FAILED = 11021
    PASSWORDS_EQUAL = 11103
    BAD_OLD_PASSWORD = 11104

    # Admin
    ADMIN_LOGIN_BUSY = 16001
    ADMIN_NOT_FOUND = 16002
    ADMIN_BAD_CREDENTIALS = 16003
    ADMIN_TWO_STEP_DISABLED = 16004
    ADMIN_ROLE_INSUFFICIENT = 16005
    TOTP_FAILED = 16050
    QR_FAILED = 16051
    ADMIN_BAD_CODE = 16052

    # Rate limiting / delivery
    EMAIL_DELIVERY_FAILED = 17001
    RECOVERY_TOO_SOON = 17002


class CourseError(Exception):
    """
    Base exception for all Course errors.

    Attributes:
        message: Human-readable (user-facing) error description
        code: Stable numeric code, see ErrorCode
        cause: Underlying exception, kept for logs only
    """

    kind: str = "internal"
    default_code: int = ErrorCode.INSERT_FAILED
    default_message: str = "внутренняя ошибка сервера"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message or self.default_message
        self.code = int(code if code is not None else self.default_code)
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape returned to clients."""
        return {"error": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# KINDS
# =============================================================================

class ValidationFailed(CourseError):
    """Input rejected before any state is touched."""
    kind = "validation"
    default_code = ErrorCode.VALIDATION
    default_message = "некорректные данные"


class NotFoundError(CourseError):
    """Email, user, admin, token or code absent."""
    kind = "not_found"
    default_code = ErrorCode.USER_NOT_FOUND
    default_message = "пользователь не найден"


class ConflictError(CourseError):
    """Email or login already taken."""
    kind = "conflict"
    default_code = ErrorCode.EMAIL_BUSY
    default_message = "пользователь с таким email уже существует"


class ForbiddenError(CourseError):
    """Missing auth, bad code, wrong password on a sensitive op, role insufficient."""
    kind = "forbidden"
    default_code = ErrorCode.TOKEN_NOT_FOUND
    default_message = "доступ запрещен"


class TooManyRequestsError(CourseError):
    kind = "too_many"
    default_code = ErrorCode.RECOVERY_TOO_SOON
    default_message = "код уже был отправлен, попробуйте через минуту"


class InternalError(CourseError):
    """Store, hashing, signing or delivery failure."""
    kind = "internal"


# =============================================================================
# USER-FACING MESSAGES
# =============================================================================

MSG_EMAIL_BUSY = "пользователь с таким email уже существует"
MSG_USER_NOT_FOUND = "пользователь не найден"
MSG_USER_INACTIVE = "пользователь неактивен, обратитесь к администратору"
MSG_TOKEN_NOT_FOUND = "токен не найден"
MSG_TOKEN_EXPIRED = "срок действия токена истек"
MSG_TOKEN_MALFORMED = "токен невалиден"
MSG_NOT_AUTHORIZED = "пользователь не авторизован"
MSG_CODE_EXPIRED = "код не найден"
MSG_BAD_CODE = "код подтверждения не найден"
MSG_ALREADY_VERIFIED = "почта пользователя уже верифицирована"
MSG_SAME_EMAIL = "новая почта совпадает с текущей"
MSG_BAD_OLD_PASSWORD = "старый пароль передан неверно"
MSG_PASSWORDS_EQUAL = "новый и старый пароль не могут совпадать"
MSG_ADMIN_LOGIN_BUSY = "логин занят"
MSG_ADMIN_NOT_FOUND = "администратор не найден"
MSG_ADMIN_BAD_CREDENTIALS = "неверный логин или пароль"
MSG_ADMIN_BAD_CODE = "неверный код"
MSG_ADMIN_TWO_STEP_DISABLED = "двухэтапная аутентификация не подтверждена"
MSG_ADMIN_ROLE_INSUFFICIENT = "недостаточно прав"
MSG_RECOVERY_TOO_SOON = "код уже был отправлен, попробуйте через минуту"
MSG_BAD_REQUEST_BODY = "не получилось обработать тело запроса"
