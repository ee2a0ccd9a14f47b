from __future__ import annotations


class ArgoBooksError(Exception):
    """Base class for application errors."""


class CompanyFileError(ArgoBooksError):
    """A company file could not be read or written."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path
        self.message = message


class NoCompanyOpenError(ArgoBooksError):
    """An operation needed an open company and there is none."""

    def __init__(self, message: str = "No company is open."):
        super().__init__(message)
