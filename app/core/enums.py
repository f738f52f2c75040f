from enum import StrEnum


class Provider(StrEnum):
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    TIKTOK = "tiktok"
    FACEBOOK = "facebook"
    YOUTUBE = "youtube"
    LINKEDIN = "linkedin"


class HandshakeStatus(StrEnum):
    INITIATED = "initiated"
    CALLBACK_RECEIVED = "callback_received"
    EXCHANGED = "exchanged"
    ATTACHED = "attached"
    FAILED = "failed"
