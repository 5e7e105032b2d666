from pydantic import BaseModel, Field


class PendingActionRequest(BaseModel):
    user_id: str = Field(min_length=1)
    action_id: int = Field(ge=1)


class SnoozeRequest(BaseModel):
    reminder_id: int = Field(ge=1)
    user_id: str = Field(min_length=1)
    minutes: int = Field(default=10, ge=1, le=24 * 60)


class ReminderDoneRequest(BaseModel):
    reminder_id: int = Field(ge=1)
    user_id: str = Field(min_length=1)


class MessageResponse(BaseModel):
    message: str
