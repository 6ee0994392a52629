"""
Error taxonomy shared by the tools, the orchestrator and the HTTP layer.
"""


class AssistantError(Exception):
    """Base class; `user_message` is what the conversation gets to see."""

    default_message = "Đã có lỗi xảy ra."

    def __init__(self, message: str | None = None, *, user_message: str | None = None):
        super().__init__(message or user_message or self.default_message)
        self.user_message = user_message or self.default_message


class ValidationError(AssistantError):
    """Malformed tool input. Raised before any side effect."""

    default_message = "Dữ liệu lịch trình không hợp lệ."


class NotFoundError(AssistantError):
    default_message = "Không tìm thấy lịch trình."


class ForbiddenError(AssistantError):
    default_message = "Bạn không có quyền thao tác trên lịch trình này."


class UpstreamError(AssistantError):
    """Search, generation or storage collaborator failed or timed out."""

    default_message = "Dịch vụ bên ngoài đang gặp sự cố, vui lòng thử lại sau."


class AmbiguousReferenceError(AssistantError):
    """A selection like "the second one" could not be resolved to exactly one itinerary."""

    default_message = "Mình chưa xác định được bạn muốn chọn lịch trình nào."

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        candidates: list[dict] | None = None,
    ):
        super().__init__(message, user_message=user_message)
        self.candidates = candidates or []


__all__ = [
    "AssistantError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "UpstreamError",
    "AmbiguousReferenceError",
]
