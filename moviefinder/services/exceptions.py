"""Domain-specific exceptions."""


class ServiceError(Exception):
    pass


class FetchFailure(ServiceError):
    """The catalog request failed at the transport layer."""


class ApplicationFailure(ServiceError):
    """The catalog answered, but its payload carries a failure sentinel."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "catalog reported a failure")
        self.message = message


class AnalyticsFailure(ServiceError):
    pass


class ControllerBusy(ServiceError):
    pass


class PageOutOfRange(ServiceError):
    pass
