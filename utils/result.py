from enum import Enum
from typing import Generic, TypeVar, Optional, Any, Dict, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable


class ErrorKind(str, Enum):
    """Failure categories surfaced by the upload/parse pipeline."""
    MISSING_FILE = "MissingFile"
    INVALID_FILE_TYPE = "InvalidFileType"
    FILE_TOO_LARGE = "FileTooLarge"
    EMPTY_SHEET = "EmptySheet"
    INTERNAL_PARSE_ERROR = "InternalParseError"


class Result(Generic[T]):
    """
    Outcome of a pipeline step: either data or an error with its kind.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Human readable message (only present when success is False)
        kind (Optional[ErrorKind]): Failure category (only present when success is False)
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        self.success = success
        self.data = data
        self.error = error
        self.kind = kind

        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        elif isinstance(status_code, HTTPStatus):
            self.status_code = status_code
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data, status_code=HTTPStatus.OK)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        error: str,
        status_code: Union[int, HTTPStatus] = HTTPStatus.BAD_REQUEST
    ) -> "Result[T]":
        """
        Create a failed Result of the given kind.

        Args:
            kind (ErrorKind): Failure category
            error (str): The error message describing the failure
            status_code (Union[int, HTTPStatus], optional): Defaults to 400 BAD_REQUEST.

        Returns:
            Result[T]: A failed Result
        """
        return cls(success=False, error=error, kind=kind, status_code=status_code)

    @classmethod
    def missing_file(cls, error: str = "Please upload an Excel file") -> "Result[T]":
        return cls.fail(ErrorKind.MISSING_FILE, error)

    @classmethod
    def invalid_file_type(
        cls, error: str = "Please upload a valid Excel file (.xlsx, .xls or .csv)"
    ) -> "Result[T]":
        return cls.fail(ErrorKind.INVALID_FILE_TYPE, error)

    @classmethod
    def file_too_large(cls, max_size: int) -> "Result[T]":
        """
        Create a FileTooLarge failure naming the limit in megabytes.

        Args:
            max_size (int): Upload limit in bytes
        """
        max_mb = max_size / 1024 / 1024
        limit = f"{max_mb:g}"
        return cls.fail(
            ErrorKind.FILE_TOO_LARGE,
            f"File too large, maximum supported size is {limit}MB"
        )

    @classmethod
    def empty_sheet(cls, error: str = "Excel file is empty") -> "Result[T]":
        return cls.fail(ErrorKind.EMPTY_SHEET, error)

    @classmethod
    def parse_error(cls, error: str = "Internal server error") -> "Result[T]":
        """
        Create an InternalParseError failure with 500 status code.

        Args:
            error (str, optional): The error message. Defaults to "Internal server error".

        Returns:
            Result[T]: A failed Result with 500 status code
        """
        return cls.fail(
            ErrorKind.INTERNAL_PARSE_ERROR,
            error,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR
        )

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def to_error_body(self) -> Dict[str, Any]:
        """
        Convert a failed Result to the error body returned by the API.

        Returns:
            Dict[str, Any]: {"success": False, "message": <error>}

        Raises:
            ValueError: If the Result is a success
        """
        if self.is_success():
            raise ValueError("Cannot build an error body from a successful Result")
        return {
            "success": False,
            "message": self.error or self.status_code.phrase
        }

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}, {self.kind.value}): {self.error}"

    def __repr__(self) -> str:
        return (
            f"Result(success={self.success}, status_code={self.status_code!r}, "
            f"kind={self.kind!r}, data={self.data!r}, error={self.error!r})"
        )
