"""Event tags accepted by the usage accounting engine."""

from enum import Enum


class MessageKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"
    VIDEO = "video"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACT = "contact"
    DOCUMENT = "document"


EVENT_ONLINE = "online"
EVENT_DISCONNECTED = "disconnected"

# message kind -> counter column on users / user_daily_usages
COUNTER_COLUMNS: dict[str, str] = {kind.value: f"count_{kind.value}_msg" for kind in MessageKind}
