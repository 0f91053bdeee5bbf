"""
Pydantic schemas for the parts of the Telegram Bot API we read.

Only the fields the callback handler uses are declared; the
rest of Telegram's payload is ignored.
"""

from pydantic import BaseModel, Field


class TelegramChat(BaseModel):
    id: int


class TelegramMessage(BaseModel):
    message_id: int
    chat: TelegramChat
    text: str | None = None


class TelegramUser(BaseModel):
    id: int
    username: str | None = None


class CallbackQuery(BaseModel):
    id: str
    # "from" is a Python keyword
    from_user: TelegramUser | None = Field(default=None, alias="from")
    data: str | None = None
    message: TelegramMessage | None = None

    model_config = {"populate_by_name": True}


class TelegramUpdate(BaseModel):
    update_id: int
    message: TelegramMessage | None = None
    callback_query: CallbackQuery | None = None


class WebhookSetup(BaseModel):
    """Override for the configured webhook URL."""
    url: str | None = Field(default=None, max_length=500)


class PingMessage(BaseModel):
    text: str = Field(
        default="Test notification from the admin panel",
        min_length=1,
        max_length=4096,
    )
