class ResourceError(Exception):
    """Base class for every error raised by the resource backends."""


class ResourceNotFoundError(ResourceError, FileNotFoundError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ResourceParseError(ResourceError, ValueError):
    def __init__(
        self,
        message: str,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.line = line
        self.column = column

    def __str__(self) -> str:
        message = super().__str__()
        if self.line is None:
            return message
        if self.column is None:
            return f"{message} (line {self.line})"
        return f"{message} (line {self.line}, column {self.column})"


class BackendNotSupportedError(ResourceError, ValueError):
    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(
            f"Backend '{name}' is not supported. Available: {', '.join(available)}"
        )
        self.name = name
        self.available = available


class LanguageExistsError(ResourceError, FileExistsError):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InvalidCultureError(ResourceError, ValueError):
    pass


class DefaultLanguageError(ResourceError, ValueError):
    pass


class ConfigurationError(ResourceError, ValueError):
    pass
