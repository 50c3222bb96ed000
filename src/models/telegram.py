"""Telegram Bot API update models (only the fields the webhook consumes)."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: Optional[str] = None
    username: Optional[str] = None


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    first_name: Optional[str] = None
    username: Optional[str] = None


class PhotoSize(BaseModel):
    """Один вариант разрешения фотографии."""
    model_config = ConfigDict(extra="ignore")

    file_id: str
    file_unique_id: Optional[str] = None
    width: int = 0
    height: int = 0
    file_size: Optional[int] = None

    @property
    def area(self) -> int:
        return self.width * self.height


class TelegramMessage(BaseModel):
    """Входящее сообщение от клиента."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    date: Optional[int] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: List[PhotoSize] = Field(default_factory=list)

    @property
    def has_photo(self) -> bool:
        return bool(self.photo)

    def largest_photo(self) -> Optional[PhotoSize]:
        """
        Вариант фото с наибольшим разрешением.

        Telegram присылает варианты по возрастанию, но порядок здесь не
        предполагается: сравниваются площадь, размер файла, затем позиция.
        """
        if not self.photo:
            return None
        ranked = max(
            enumerate(self.photo),
            key=lambda pair: (pair[1].area, pair[1].file_size or 0, pair[0]),
        )
        return ranked[1]


class TelegramUpdate(BaseModel):
    """Webhook update."""
    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None
