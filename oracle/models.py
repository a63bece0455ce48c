from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal, Dict, Any

Suit = Literal["Major Arcana", "Cups", "Pentacles", "Swords", "Wands"]

class Card(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    suit: Suit
    number: int = Field(..., ge=0)
    meaning: str

class Reading(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reading: str = Field(..., min_length=1)
    cards: List[Card] = Field(..., min_length=1)
    timestamp: str
    question: str
    is_offline: bool = Field(False, alias="isOffline")

class QuickReading(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reading: str = Field(..., min_length=1)
    card: Card
    timestamp: str
    question: str
    is_offline: bool = Field(False, alias="isOffline")

class ReadingRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)
    user_id: Optional[str] = Field(None, min_length=1, max_length=100)
    session_id: Optional[str] = None  # continue an existing session instead of creating one

class ReadingResponse(BaseModel):
    session_id: Optional[str] = None
    result: Reading

class QuickReadingResponse(BaseModel):
    session_id: Optional[str] = None
    result: QuickReading

class SessionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    is_favorite: Optional[bool] = None

class Session(BaseModel):
    id: str
    user_id: str
    title: str
    is_favorite: bool = False
    reading: Optional[Dict[str, Any]] = None
    created_at: str
    updated_at: str

class Message(BaseModel):
    id: int
    session_id: str
    role: Literal["user", "assistant"]
    content: str
    cards: Optional[List[Dict[str, Any]]] = None
    has_cards: bool = False
    timestamp: int
    created_at: str

class SessionDetail(Session):
    messages: List[Message]
