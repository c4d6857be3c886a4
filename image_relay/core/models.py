import time
from enum import Enum
from pathlib import Path
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class SourceKind(str, Enum):
    HTTP_UPLOAD = "http_upload"
    MESSAGING_PHOTO = "messaging_photo"


class InboundImage(BaseModel):
    """An image that has reached us and been written to the staging directory."""
    source_kind: SourceKind
    path: Path
    original_name: str
    received_at: float = Field(default_factory=time.time)


class PublishRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    repo_owner: str
    repo_name: str
    target_path: str
    branch: str = "main"
    commit_message: str
    content_base64: str
    existing_revision_id: Optional[str] = None

    def to_payload(self) -> dict:
        """Body for the contents API PUT; `sha` only when overwriting."""
        payload = {
            "message": self.commit_message,
            "content": self.content_base64,
            "branch": self.branch,
        }
        if self.existing_revision_id is not None:
            payload["sha"] = self.existing_revision_id
        return payload


class PublishResult(BaseModel):
    public_url: str


class UploadResponse(BaseModel):
    imageUrl: str


class ErrorResponse(BaseModel):
    error: str


# Telegram update payloads; only the fields we read are declared.

class Chat(BaseModel):
    id: int


class PhotoSize(BaseModel):
    file_id: str
    file_unique_id: Optional[str] = None
    width: int = 0
    height: int = 0
    file_size: Optional[int] = None


class Message(BaseModel):
    message_id: int
    chat: Chat
    text: Optional[str] = None
    photo: Optional[List[PhotoSize]] = None


class Update(BaseModel):
    update_id: int
    message: Optional[Message] = None
