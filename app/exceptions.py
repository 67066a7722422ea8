class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} '{resource_id}' not found", code="NOT_FOUND")


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class QuoteFetchError(AppError):
    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        super().__init__(f"Failed to fetch data for {symbol}: {reason}", code="QUOTE_FETCH_ERROR")


class AnalysisFailedError(AppError):
    def __init__(self, message: str = "Failed to fetch data for any symbols"):
        super().__init__(message, code="ANALYSIS_FAILED")
