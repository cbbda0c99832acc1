from datetime import date, datetime

from pydantic import BaseModel


class DailyUsageResponse(BaseModel):
    user_id: int
    date: date
    count_text_msg: int
    count_image_msg: int
    count_voice_msg: int
    count_video_msg: int
    count_sticker_msg: int
    count_location_msg: int
    count_contact_msg: int
    count_document_msg: int
    is_online: bool
    connected_at: datetime | None = None
    disconnected_at: datetime | None = None

    model_config = {"from_attributes": True}
