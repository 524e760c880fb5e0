"""Application error type shared by every layer of the request chain."""

from __future__ import annotations

from http import HTTPStatus

CATEGORY_CLIENT = "client"
CATEGORY_SERVER = "server"


class AppError(Exception):
    """Error carrying an HTTP status, a user-safe message and a category.

    The optional ``cause`` is only used for logging; it is never rendered
    back to the caller.
    """

    def __init__(
        self,
        code: int,
        message: str,
        category: str = CATEGORY_SERVER,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = int(code)
        self.message = message
        self.category = category
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.code} ({self.category}): {self.message} - {self.cause}"
        return f"{self.code} ({self.category}): {self.message}"

    @property
    def is_client_error(self) -> bool:
        return self.category == CATEGORY_CLIENT


def bad_request(message: str = "Bad request", cause: BaseException | None = None) -> AppError:
    return AppError(HTTPStatus.BAD_REQUEST, message, CATEGORY_CLIENT, cause)


def unauthorized(message: str = "Unauthorized", cause: BaseException | None = None) -> AppError:
    return AppError(HTTPStatus.UNAUTHORIZED, message, CATEGORY_CLIENT, cause)


def forbidden(message: str = "Forbidden", cause: BaseException | None = None) -> AppError:
    return AppError(HTTPStatus.FORBIDDEN, message, CATEGORY_CLIENT, cause)


def not_found(message: str = "Not found", cause: BaseException | None = None) -> AppError:
    return AppError(HTTPStatus.NOT_FOUND, message, CATEGORY_CLIENT, cause)


def internal_error(
    message: str = "Internal server error", cause: BaseException | None = None
) -> AppError:
    return AppError(HTTPStatus.INTERNAL_SERVER_ERROR, message, CATEGORY_SERVER, cause)
