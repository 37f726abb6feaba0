# httpipe exceptions


class HttpipeError(Exception):
    """Base exception for all httpipe errors."""

    def __init__(
        self, *args, status_code: int | None = None, detail: str | None = None, session: int | None = None
    ):
        super().__init__(*args)
        self.status_code = status_code
        # Use the first arg as detail if detail kwarg is not provided and args exist
        self.detail = detail or (args[0] if args else None)
        # Id of the proxied call the error was raised in, when there is one
        self.session = session


class UpstreamConfigurationError(ValueError, HttpipeError):
    """Raised when the upstream target is not a usable http(s) URL."""

    def __init__(self, *args, status_code: int | None = None, detail: str | None = None):
        HttpipeError.__init__(self, *args, status_code=status_code, detail=detail)


class HandlerError(HttpipeError):
    """Raised when a handler is registered or invoked incorrectly."""

    def __init__(
        self,
        *args,
        handler_name: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
        session: int | None = None,
    ):
        super().__init__(*args, status_code=status_code, detail=detail, session=session)
        self.handler_name = handler_name


class EmptyResponseError(HttpipeError):
    """Raised when the response chain discards a successful upstream response."""

    def __init__(
        self,
        detail: str = "Response handler chain produced no response",
        status_code: int = 500,
        session: int | None = None,
    ):
        super().__init__(detail, status_code=status_code, detail=detail, session=session)
