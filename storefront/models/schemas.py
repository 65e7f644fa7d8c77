from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, StringConstraints, computed_field


# --- Catalog schemas ---

class Product(BaseModel):
    id: str
    name: str
    description: str = ""
    price: float = Field(ge=0)
    image_url: str | None = None
    category: str | None = None


class SimilarProduct(Product):
    similarity: float


class RecommendedProduct(SimilarProduct):
    reason: str


class EmbeddingRequest(BaseModel):
    embedding: list[float]


class MatchRequest(BaseModel):
    embedding: list[float]
    match_threshold: float = 0.7
    match_count: int = Field(default=3, ge=1, le=50)


# --- Cart schemas ---

class ProductSnapshot(BaseModel):
    name: str = "Producto sin nombre"
    price: float = 0
    image_url: str | None = None


class CartLine(BaseModel):
    id: str
    product_id: str
    quantity: int = Field(ge=1)
    product: ProductSnapshot


class CartView(BaseModel):
    lines: list[CartLine] = []

    @computed_field
    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @computed_field
    @property
    def total_price(self) -> float:
        return round(sum(line.product.price * line.quantity for line in self.lines), 2)


class AddItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)


class SetQuantityRequest(BaseModel):
    quantity: int


class Notification(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class CartResponse(BaseModel):
    session_id: str
    cart: CartView
    notifications: list[Notification] = []


# --- Assistant schemas ---

class IntentLabel(str, Enum):
    COMPARE = "compare"
    RECOMMEND = "recommend"
    BUY = "buy"
    CHARACTERISTICS = "characteristics"
    PRICE = "price"
    GENERAL = "general"


class IntentResult(BaseModel):
    intent: IntentLabel
    triggers: list[str] = []
    entities: list[str] = []
    confidence: float


class AssistantState(str, Enum):
    IDLE = "idle"
    CAPTURING_AUDIO = "capturing_audio"
    AWAITING_RESPONSE = "awaiting_response"
    SPEAKING_RESPONSE = "speaking_response"


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CreateConversationRequest(BaseModel):
    product_id: str | None = None
    modality: Literal["text", "voice"] = "text"


class QueryRequest(BaseModel):
    query: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ConversationInfo(BaseModel):
    conversation_id: str
    product_id: str | None
    modality: str
    state: AssistantState
    transcript: str
    pending_speech: str | None = None
    turns: list[ConversationTurn]
    notifications: list[Notification] = []


# --- Checkout schemas ---

class CheckoutForm(BaseModel):
    email: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    cardholder_name: str = ""
    payment_method: Literal["credit", "debit", "paypal"] = "credit"


class OrderSummary(BaseModel):
    reference: str
    total_items: int
    total_price: float
    notifications: list[Notification] = []


# --- Admin schemas ---

class PopularProduct(BaseModel):
    id: str
    name: str
    additions: int


class CategorySlice(BaseModel):
    name: str
    value: int
    color: str


class HourlyCount(BaseModel):
    hour: str
    count: int


class DashboardMetrics(BaseModel):
    total_products: int
    active_sessions: int
    total_conversations: int
    avg_response_time_ms: int
    popular_products: list[PopularProduct]
    conversations_by_hour: list[HourlyCount]
    category_distribution: list[CategorySlice]
