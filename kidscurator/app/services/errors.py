from __future__ import annotations


class CurationServiceError(Exception):
    pass


class SearchProviderError(CurationServiceError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchResponseFormatError(SearchProviderError):
    pass


class InvalidContinuationError(CurationServiceError):
    pass
