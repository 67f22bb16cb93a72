ERR_SERVICE_UNAVAILABLE = "Service unavailable"
ERR_LOGIN_FAILED = "Username and/or password incorrect"
ERR_AUTHENTICATION = "Authentication error"
ERR_LOGOUT_FAILED = "Could not log out"
ERR_NO_DATA_FOUND = "No data found"
ERR_ITEM_ALREADY_EXISTS = "Item already exists"


class LedgerError(Exception):
    """Base for every error a core operation can report to its caller."""

    status_code = 400
    default_detail = "Invalid request"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(LedgerError):
    status_code = 400

    def __init__(self, field: str, detail: str):
        self.field = field
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "field": self.field}


class DuplicateError(LedgerError):
    status_code = 409
    default_detail = ERR_ITEM_ALREADY_EXISTS


class AuthenticationError(LedgerError):
    status_code = 401
    default_detail = ERR_AUTHENTICATION


class AuthenticationFailed(AuthenticationError):
    default_detail = ERR_LOGIN_FAILED


class LogoutError(LedgerError):
    status_code = 400
    default_detail = ERR_LOGOUT_FAILED


class NotFoundError(LedgerError):
    status_code = 404
    default_detail = ERR_NO_DATA_FOUND


class StoreUnavailableError(LedgerError):
    status_code = 503
    default_detail = ERR_SERVICE_UNAVAILABLE
