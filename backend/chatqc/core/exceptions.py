"""Error taxonomy for the sync pipeline."""


class ChatQCError(Exception):
    """Base class for every error raised by this service."""


class ConfigurationError(ChatQCError):
    """A required credential or setting is missing."""


class LiveChatAPIError(ChatQCError):
    def __init__(self, page: int, status_code: int, detail: str | None = None) -> None:
        self.page = page
        self.status_code = status_code
        self.detail = detail
        message = f"LiveChat API error on page {page}: HTTP {status_code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class RetryExhaustedError(ChatQCError):
    def __init__(self, url: str, attempts: int, last_error: BaseException | None) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Request to {url} failed after {attempts} attempts: {last_error}")


class InvalidJobTransition(ChatQCError):
    def __init__(self, job_id: int, from_status: str | None, to_status: str) -> None:
        self.job_id = job_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Sync job {job_id} cannot move from {from_status} to {to_status}")
