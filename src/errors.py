from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for every failure the benchmark records or raises."""


class ConfigurationError(BenchmarkError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"configuration error in {field}: {message}")


class ValidationError(BenchmarkError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"validation error in {field}: {message}")


class ProviderError(BenchmarkError):
    def __init__(
        self, provider: str, message: str, cause: BaseException | None = None
    ) -> None:
        self.provider = provider
        self.message = message
        self.cause = cause
        if cause is not None:
            text = f"provider {provider} error: {message} (caused by: {cause})"
        else:
            text = f"provider {provider} error: {message}"
        super().__init__(text)
        self.__cause__ = cause


class RateLimitError(ProviderError):
    def __init__(
        self,
        provider: str,
        retry_after_s: float | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.retry_after_s = retry_after_s
        if retry_after_s is not None:
            message = f"rate limit exceeded, retry after {retry_after_s:g}s"
        else:
            message = "rate limit exceeded"
        super().__init__(provider, message, cause)


class RequestTimeoutError(BenchmarkError):
    def __init__(self, operation: str, duration_s: float) -> None:
        self.operation = operation
        self.duration_s = duration_s
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"timeout error in {self.operation} after {self.duration_s:g}s"


class RequestCancelledError(RequestTimeoutError):
    def _describe(self) -> str:
        return f"{self.operation} cancelled after {self.duration_s:.3f}s"


class PromptLoadError(BenchmarkError):
    pass
