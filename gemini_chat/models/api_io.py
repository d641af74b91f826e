"""Request/response schemas of the HTTP surface."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model: Optional[str] = None
    max_tokens: Optional[int] = Field(default=None, gt=0)
    messages: List[ChatMessage] = []


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class RelayResponse(BaseModel):
    content: List[TextPart]
    model: str


class ErrorResponse(BaseModel):
    error: str
    details: str
    troubleshooting: Optional[List[str]] = None


class AvailableModelsView(BaseModel):
    text: str
    vision: str
    allModels: List[str]


class StatusResponse(BaseModel):
    status: str
    timestamp: str
    apiKeySet: bool
    availableModels: AvailableModelsView


class TrackTextRequest(BaseModel):
    text: str


class ThemeRequest(BaseModel):
    theme: Literal["dark", "light"]


class ThemeResponse(BaseModel):
    theme: Optional[Literal["dark", "light"]] = None


class DailyHistoryRow(BaseModel):
    date: str
    user: int
    ai: int
    total: int


class ChartData(BaseModel):
    messageRatio: Dict[str, int]
    responseTimes: Dict[str, list]
    tokenUsage: Dict[str, int]
