from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────────────────────────────────────
# Model discovery
# ──────────────────────────────────────────────────────────────────────────────
class ModelInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    supports_text: bool = True
    supports_vision: bool = False
    probed_vision: bool = False  # vision learned from a live probe, not the name


class AvailableModels(BaseModel):
    """Immutable snapshot of the discovered models."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    vision: Optional[str] = None
    all_models: Tuple[str, ...] = ()

    def as_public(self) -> Dict[str, object]:
        return {"text": self.text, "vision": self.vision, "allModels": list(self.all_models)}


class RelayResult(BaseModel):
    text: str
    model: str


# ──────────────────────────────────────────────────────────────────────────────
# Conversation analytics (camelCase on the wire / on disk)
# ──────────────────────────────────────────────────────────────────────────────
class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DailyCounts(_CamelModel):
    user: int = 0
    ai: int = 0


class TokenUsage(_CamelModel):
    input: int = 0
    output: int = 0
    total: int = 0


class CharacterCounts(_CamelModel):
    user: int = 0
    ai: int = 0


class ResponseTimeSample(_CamelModel):
    time: str  # ISO-8601 UTC, e.g. 2024-05-01T10:00:00.000Z
    duration: float  # seconds


class ConversationStats(_CamelModel):
    total_messages: int = Field(default=0, alias="totalMessages")
    user_messages: int = Field(default=0, alias="userMessages")
    ai_messages: int = Field(default=0, alias="aiMessages")
    avg_response_time: float = Field(default=0.0, alias="avgResponseTime")
    total_response_time: float = Field(default=0.0, alias="totalResponseTime")
    messages_by_date: Dict[str, DailyCounts] = Field(default_factory=dict, alias="messagesByDate")
    token_usage: TokenUsage = Field(default_factory=TokenUsage, alias="tokenUsage")
    image_counts: int = Field(default=0, alias="imageCounts")
    character_counts: CharacterCounts = Field(default_factory=CharacterCounts, alias="characterCounts")
    response_time_history: List[ResponseTimeSample] = Field(default_factory=list, alias="responseTimeHistory")
    last_query: Optional[float] = Field(default=None, alias="lastQuery")  # epoch milliseconds
