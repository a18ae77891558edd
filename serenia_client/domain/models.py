"""Pydantic models mirroring the Serenia REST payloads."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

_ROLE_ALIASES = {
    "user": ROLE_USER,
    "assistant": ROLE_ASSISTANT,
    "model": ROLE_ASSISTANT,
}

FREE_PLAN = "FREE"


def normalize_role(value: object) -> str:
    """Map backend role spellings (``USER``, ``MODEL``...) onto the two client roles."""

    if not isinstance(value, str):
        raise ValueError(f"Unsupported message role: {value!r}")
    role = _ROLE_ALIASES.get(value.strip().lower())
    if role is None:
        raise ValueError(f"Unsupported message role: {value!r}")
    return role


class WireModel(BaseModel):
    """Base for payloads exchanged with the backend in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Message(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    role: Literal["user", "assistant"]
    content: str
    timestamp: str | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value):
        return normalize_role(value)


class ConversationSnapshot(WireModel):
    conversation_id: str | None = None
    messages: list[Message] = Field(default_factory=list)


class AssistantReply(WireModel):
    conversation_id: str
    role: Literal["user", "assistant"] = ROLE_ASSISTANT
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value):
        return normalize_role(value)


class PlanType(str, Enum):
    FREE = "FREE"
    PLUS = "PLUS"
    MAX = "MAX"


class QuotaType(str, Enum):
    DAILY_MESSAGE_LIMIT = "DAILY_MESSAGE_LIMIT"
    MONTHLY_TOKEN_LIMIT = "MONTHLY_TOKEN_LIMIT"
    MESSAGE_TOKEN_LIMIT = "MESSAGE_TOKEN_LIMIT"


class QuotaError(WireModel):
    quota_type: QuotaType
    limit: int = 0
    current: int = 0
    requested: int = 0
    message: str = ""


class SubscriptionStatus(WireModel):
    """Authoritative snapshot returned by ``/subscription/status``.

    Replaced wholesale on every refresh; never merged field by field.
    """

    plan_name: str = FREE_PLAN
    tokens_remaining_this_month: int = 0
    messages_remaining_today: int = 0
    per_message_token_limit: int = 0
    monthly_token_limit: int = 0
    daily_message_limit: int = 0
    tokens_used_this_month: int = 0
    messages_sent_today: int = 0
    monthly_reset_date: str = ""
    daily_reset_date: str = ""
    status: str = "ACTIVE"
    has_stripe_subscription: bool = False
    cancel_at_period_end: bool = False
    current_period_end: str | None = None
    price_cents: int = 0
    currency: str = "EUR"
    has_active_discount: bool = False
    discount_description: str = ""
    discount_end_date: str | None = None


class Plan(WireModel):
    type: PlanType
    name: str
    monthly_token_limit: int
    daily_message_limit: int
    per_message_token_limit: int
    price_cents: int = 0
    currency: str = "EUR"


PLAN_CONFIGS: tuple[Plan, ...] = (
    Plan(
        type=PlanType.FREE,
        name="Gratuit",
        monthly_token_limit=10_000,
        daily_message_limit=10,
        per_message_token_limit=1_000,
        price_cents=0,
    ),
    Plan(
        type=PlanType.PLUS,
        name="Plus",
        monthly_token_limit=100_000,
        daily_message_limit=50,
        per_message_token_limit=4_000,
        price_cents=999,
    ),
    Plan(
        type=PlanType.MAX,
        name="Max",
        monthly_token_limit=500_000,
        daily_message_limit=200,
        per_message_token_limit=8_000,
        price_cents=2_999,
    ),
)


def get_plan_config(plan_type: PlanType | str) -> Plan | None:
    try:
        wanted = PlanType(plan_type)
    except ValueError:
        return None
    for plan in PLAN_CONFIGS:
        if plan.type == wanted:
            return plan
    return None


class User(WireModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    roles: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @property
    def is_admin(self) -> bool:
        return any(role.upper() == "ADMIN" for role in self.roles)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AuthResponse(WireModel):
    user: User
    token: str


class ApiMessage(WireModel):
    message: str = ""


class RedirectSession(WireModel):
    """Hosted checkout or customer-portal session; only the URL matters."""

    url: str
    session_id: str | None = None


# Admin dashboard ----------------------------------------------------


class UserStats(WireModel):
    total_users: int = 0
    activated_users: int = 0
    free_users: int = 0
    plus_users: int = 0
    max_users: int = 0
    new_users_last7_days: int = Field(default=0, alias="newUsersLast7Days")
    new_users_last30_days: int = Field(default=0, alias="newUsersLast30Days")


class MessageStats(WireModel):
    total_user_messages: int = 0
    messages_today: int = 0
    messages_last7_days: int = Field(default=0, alias="messagesLast7Days")
    messages_last30_days: int = Field(default=0, alias="messagesLast30Days")


class EngagementStats(WireModel):
    active_users: int = 0
    activation_rate: float = 0.0
    avg_messages_per_user: float = 0.0


class SubscriptionStats(WireModel):
    total_tokens_consumed: int = 0
    estimated_revenue_cents: int = 0
    currency: str = "EUR"


class Dashboard(WireModel):
    users: UserStats = Field(default_factory=UserStats)
    messages: MessageStats = Field(default_factory=MessageStats)
    engagement: EngagementStats = Field(default_factory=EngagementStats)
    subscriptions: SubscriptionStats = Field(default_factory=SubscriptionStats)


class TimelinePoint(WireModel):
    date: str
    value: float = 0


class Timeline(WireModel):
    metric: str
    data: list[TimelinePoint] = Field(default_factory=list)


class UserDetail(WireModel):
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = ""
    plan_type: str = FREE_PLAN
    activated: bool = False
    created_at: str | None = None
    message_count: int = 0
    tokens_used_this_month: int = 0
    messages_sent_today: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class UserPage(WireModel):
    users: list[UserDetail] = Field(default_factory=list)
    total_count: int = 0
    page: int = 0
    size: int = 0

    @property
    def has_next(self) -> bool:
        return (self.page + 1) * self.size < self.total_count


__all__ = [
    "ApiMessage",
    "AssistantReply",
    "AuthResponse",
    "ConversationSnapshot",
    "Dashboard",
    "EngagementStats",
    "FREE_PLAN",
    "Message",
    "MessageStats",
    "PLAN_CONFIGS",
    "Plan",
    "PlanType",
    "QuotaError",
    "QuotaType",
    "ROLE_ASSISTANT",
    "ROLE_USER",
    "RedirectSession",
    "SubscriptionStats",
    "SubscriptionStatus",
    "Timeline",
    "TimelinePoint",
    "User",
    "UserDetail",
    "UserPage",
    "UserStats",
    "get_plan_config",
    "normalize_role",
]
