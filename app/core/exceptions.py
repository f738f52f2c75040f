from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from app.models.social_account import SocialAccount


class LinkError(Exception):
    """Base class for account-linking failures surfaced to API callers.

    Each subclass carries a stable ``kind`` that clients can switch on, the HTTP
    status the API layer responds with, and a user-facing message. Provider-side
    failures additionally carry the upstream payload in ``diagnostics``; it is
    logged but never returned to the client.
    """

    kind: ClassVar[str] = "LinkError"
    status_code: ClassVar[int] = 400
    default_message: ClassVar[str] = "帳號連結失敗"

    def __init__(self, message: str | None = None, *, diagnostics: Any = None) -> None:
        self.message = message or self.default_message
        self.diagnostics = diagnostics
        super().__init__(self.message)


class UnknownProviderError(LinkError):
    kind = "UnknownProvider"
    status_code = 400
    default_message = "不支援的社群平台"


class InvalidProfileError(LinkError):
    kind = "InvalidProfile"
    status_code = 422
    default_message = "無效的網紅 ID"


class ProviderNotConfiguredError(LinkError):
    kind = "ProviderNotConfigured"
    status_code = 503
    default_message = "此社群平台的 OAuth 尚未設定"


class StateNotFoundError(LinkError):
    kind = "StateNotFound"
    status_code = 400
    default_message = "無效或已過期的 OAuth 狀態 Token"


class StateAlreadyConsumedError(LinkError):
    kind = "StateAlreadyConsumed"
    status_code = 409
    default_message = "此 OAuth 狀態 Token 已被使用"


class ExchangeFailedError(LinkError):
    kind = "ExchangeFailed"
    status_code = 502
    default_message = "Token 交換失敗，請重新連結"


class IdentityLookupFailedError(LinkError):
    kind = "IdentityLookupFailed"
    status_code = 502
    default_message = "無法取得社群帳號資訊，請重新連結"


class ProfileNotFoundError(LinkError):
    kind = "ProfileNotFound"
    status_code = 404
    default_message = "找不到網紅"


class DuplicateAccountError(LinkError):
    """Raised by the profile store when the profile already holds the account.

    The attachment gate converts this into a successful no-op.
    """

    kind = "DuplicateAccount"
    status_code = 200
    default_message = "此社群帳號已連結"

    def __init__(self, message: str | None = None, *, existing: SocialAccount) -> None:
        self.existing = existing
        super().__init__(
            message,
            diagnostics={"platform": existing.platform, "platform_id": existing.platform_id},
        )


class AccountLinkedElsewhereError(LinkError):
    kind = "AccountLinkedElsewhere"
    status_code = 409
    default_message = "此社群帳號已連結至其他網紅"


class AccountNotFoundError(LinkError):
    kind = "AccountNotFound"
    status_code = 404
    default_message = "找不到社群帳號"
