class LiveTranslateError(Exception):
    pass


class ConfigurationError(LiveTranslateError):
    pass


class UpstreamTransportError(LiveTranslateError):
    def __init__(self, message: str, status: int | None = None, details: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.details = details or None


class UpstreamContractError(LiveTranslateError):
    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class AudioCaptureError(LiveTranslateError):
    pass


class ConnectionNotOpenError(LiveTranslateError):
    pass


class SessionBusyError(LiveTranslateError):
    pass
