"""
Pydantic schemas shared by routers and services.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from shared.config.constants import (
    BookingStatus,
    Limits,
    OrderItemStatus,
    OrderStatus,
    SessionStatus,
    normalize_status,
)
from shared.utils.validators import normalize_notes, validate_hhmm, validate_image_url


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["ADMIN", "OWNER", "STAFF", "CUSTOMER"]
StaffRole = Literal["OWNER", "STAFF"]
TableState = Literal["available", "occupied"]


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str


class UserInfo(BaseModel):
    """Basic user information included in auth responses."""

    id: int
    email: str
    name: str | None = None
    role: Role
    restaurant_id: int | None = None


class LoginResponse(BaseModel):
    """Login response with JWT token."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds
    user: UserInfo


# =============================================================================
# Customer access
# =============================================================================


class TableLookupOutput(BaseModel):
    """What the QR landing page needs before asking for the PIN."""

    table_id: int
    table_number: str
    restaurant_id: int
    restaurant_name: str
    has_open_session: bool
    restaurant_open: bool


class PinAccessRequest(BaseModel):
    """PIN typed by the customer. Whitespace around it is ignored."""

    pin: str = Field(min_length=1, max_length=16)


class TableAccessResponse(BaseModel):
    """Issued when a customer joins a table's open session."""

    table_token: str
    session_id: int
    table_id: int
    restaurant_id: int


# =============================================================================
# Sessions
# =============================================================================


class OpenSessionRequest(BaseModel):
    """Staff opening a table."""

    customer_count: int = Field(ge=Limits.MIN_CUSTOMER_COUNT, le=Limits.MAX_CUSTOMER_COUNT)
    coperto_enabled: bool | None = None  # None: follow the restaurant's current pricing
    ayce_enabled: bool | None = None


class SessionOutput(BaseModel):
    """Session as seen by customers (no PIN)."""

    id: int
    table_id: int
    restaurant_id: int
    status: SessionStatus
    opened_at: datetime
    closed_at: datetime | None = None
    customer_count: int
    coperto_enabled: bool
    ayce_enabled: bool


class StaffSessionOutput(SessionOutput):
    """Session as seen by staff."""

    session_pin: str


class OpenSessionResponse(BaseModel):
    """Result of opening (or re-opening) a table."""

    session: StaffSessionOutput
    table_token: str
    created: bool


class TableCard(BaseModel):
    """Summary of a table for the waiter dashboard."""

    table_id: int
    number: str
    seats: int
    status: TableState
    session_id: int | None = None
    session_pin: str | None = None
    customer_count: int | None = None
    open_orders: int = 0
    pending_items: int = 0
    ready_items: int = 0


# =============================================================================
# Cart
# =============================================================================


class AddToCartRequest(BaseModel):
    """Add a dish to the session cart."""

    dish_id: int
    quantity: int = Field(default=1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)

    @field_validator("notes")
    @classmethod
    def _blank_notes(cls, v: str | None) -> str | None:
        return normalize_notes(v)


class UpdateCartItemRequest(BaseModel):
    """New quantity for a cart line. Zero or less removes the line."""

    quantity: int = Field(le=Limits.MAX_QUANTITY)


class CartItemOutput(BaseModel):
    """A cart line with its dish."""

    id: int
    session_id: int
    dish_id: int
    dish_name: str
    unit_price: float
    quantity: int
    notes: str | None = None
    created_at: datetime | None = None


class CartOutput(BaseModel):
    """Full cart of a session."""

    session_id: int
    items: list[CartItemOutput]
    total: float
    item_count: int


# =============================================================================
# Orders
# =============================================================================


class OrderLineInput(BaseModel):
    """A line of a staff-entered order."""

    dish_id: int
    quantity: int = Field(ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    note: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)

    @field_validator("note")
    @classmethod
    def _blank_note(cls, v: str | None) -> str | None:
        return normalize_notes(v)


class StaffOrderRequest(BaseModel):
    """Order entered by a waiter for a table."""

    items: list[OrderLineInput] = Field(min_length=1)


class OrderItemOutput(BaseModel):
    """One order line with its dish."""

    id: int
    order_id: int
    dish_id: int
    dish_name: str
    unit_price: float
    quantity: int
    note: str | None = None
    status: OrderItemStatus
    created_at: datetime | None = None


class OrderOutput(BaseModel):
    """An order with its lines."""

    id: int
    restaurant_id: int
    table_session_id: int
    status: OrderStatus
    total_amount: float
    created_at: datetime | None = None
    closed_at: datetime | None = None
    items: list[OrderItemOutput]
    table_id: int | None = None
    table_number: str | None = None


class UpdateOrderItemStatusRequest(BaseModel):
    """Kitchen/waiter status change. Legacy spellings are accepted."""

    status: OrderItemStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Any:
        try:
            return normalize_status(OrderItemStatus, v)
        except ValueError:
            return v


class UpdateOrderStatusRequest(BaseModel):
    """Staff order status change. Legacy spellings are accepted."""

    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Any:
        try:
            return normalize_status(OrderStatus, v)
        except ValueError:
            return v


# =============================================================================
# Billing
# =============================================================================


class BillLine(BaseModel):
    """A bill line. Cover and AYCE lines are virtual (no order item)."""

    kind: Literal["dish", "coperto", "ayce"]
    description: str
    quantity: int
    unit_price: float
    total: float
    dish_id: int | None = None
    order_item_id: int | None = None


class BillOutput(BaseModel):
    """Bill of a session."""

    session_id: int
    table_id: int
    customer_count: int
    lines: list[BillLine]
    subtotal_dishes: float
    coperto_total: float
    ayce_total: float
    total: float


# =============================================================================
# Catalog
# =============================================================================


class CategoryInput(BaseModel):
    """Create or replace a category."""

    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    order: int = 0


class CategoryUpdate(BaseModel):
    """Partial category update."""

    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    order: int | None = None


class CategoryOutput(BaseModel):
    id: int
    restaurant_id: int
    name: str
    order: int


class DishInput(BaseModel):
    """Create a dish."""

    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=Limits.MAX_DESCRIPTION_LENGTH)
    price: float = Field(ge=0)
    vat_rate: float = Field(default=10, ge=0, le=100)
    category_id: int | None = None
    is_active: bool = True
    image_url: str | None = None

    @field_validator("image_url")
    @classmethod
    def _image(cls, v: str | None) -> str | None:
        return validate_image_url(v)


class DishUpdate(BaseModel):
    """Partial dish update."""

    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=Limits.MAX_DESCRIPTION_LENGTH)
    price: float | None = Field(default=None, ge=0)
    vat_rate: float | None = Field(default=None, ge=0, le=100)
    category_id: int | None = None
    is_active: bool | None = None
    image_url: str | None = None

    @field_validator("image_url")
    @classmethod
    def _image(cls, v: str | None) -> str | None:
        return validate_image_url(v)


class DishOutput(BaseModel):
    id: int
    restaurant_id: int
    category_id: int | None = None
    name: str
    description: str | None = None
    price: float
    vat_rate: float
    is_active: bool
    image_url: str | None = None


class MenuCategoryOutput(BaseModel):
    id: int
    name: str
    order: int
    dishes: list[DishOutput]


class CopertoOutput(BaseModel):
    enabled: bool
    price: float


class AyceOutput(BaseModel):
    enabled: bool
    price: float
    max_orders: int


class ActiveMenuOutput(BaseModel):
    """Custom menu in force, when the menu is not the full one."""

    id: int
    name: str


class MenuOutput(BaseModel):
    """Customer menu of the table's restaurant."""

    restaurant_id: int
    restaurant_name: str
    logo_url: str | None = None
    categories: list[MenuCategoryOutput]
    uncategorized: list[DishOutput] = Field(default_factory=list)
    coperto: CopertoOutput
    ayce: AyceOutput
    restaurant_open: bool
    custom_menu: ActiveMenuOutput | None = None


class TableInput(BaseModel):
    number: str = Field(min_length=1, max_length=50)
    seats: int = Field(default=4, ge=1, le=Limits.MAX_CUSTOMER_COUNT)
    is_active: bool = True


class TableUpdate(BaseModel):
    number: str | None = Field(default=None, min_length=1, max_length=50)
    seats: int | None = Field(default=None, ge=1, le=Limits.MAX_CUSTOMER_COUNT)
    is_active: bool | None = None


class TableOutput(BaseModel):
    id: int
    restaurant_id: int
    number: str
    seats: int
    is_active: bool
    token: str
    qr_url: str


# =============================================================================
# Custom menus
# =============================================================================


class CustomMenuInput(BaseModel):
    """Create a custom menu, optionally with its dishes."""

    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=Limits.MAX_DESCRIPTION_LENGTH)
    dish_ids: list[int] = Field(default_factory=list)


class CustomMenuUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    description: str | None = Field(default=None, max_length=Limits.MAX_DESCRIPTION_LENGTH)


class CustomMenuDishesInput(BaseModel):
    """Replace the dishes of a custom menu."""

    dish_ids: list[int]


class CustomMenuScheduleInput(BaseModel):
    """
    When the menu is in force. ``day_of_week`` is 0 for Monday to 6 for
    Sunday, null for every day.
    """

    day_of_week: int | None = Field(default=None, ge=0, le=6)
    meal_type: Literal["lunch", "dinner", "all"] = "all"


class CustomMenuScheduleOutput(BaseModel):
    id: int
    day_of_week: int | None
    meal_type: str
    is_active: bool


class CustomMenuOutput(BaseModel):
    id: int
    restaurant_id: int
    name: str
    description: str | None = None
    is_active: bool
    activated_at: datetime | None = None
    dish_ids: list[int]
    schedules: list[CustomMenuScheduleOutput]


# =============================================================================
# Restaurants (admin / owner settings)
# =============================================================================


class OwnerInput(BaseModel):
    """Owner account created together with a restaurant."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)


class RestaurantCreate(BaseModel):
    """Admin creating a restaurant and its owner."""

    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    address: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    logo_url: str | None = None
    cover_charge_per_person: float = Field(default=0, ge=0)
    all_you_can_eat: bool = False
    ayce_price: float = Field(default=0, ge=0)
    ayce_max_orders: int = Field(default=0, ge=0)
    owner: OwnerInput

    @field_validator("logo_url")
    @classmethod
    def _logo(cls, v: str | None) -> str | None:
        return validate_image_url(v)


class RestaurantUpdate(BaseModel):
    """
    Partial restaurant update. Send snake_case or the camelCase mirrors
    (isActive, allYouCanEat, coverChargePerPerson); routers fold mirrors into
    snake_case before validation.
    """

    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    address: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    logo_url: str | None = None
    is_active: bool | None = None
    cover_charge_per_person: float | None = Field(default=None, ge=0)
    all_you_can_eat: bool | None = None
    ayce_price: float | None = Field(default=None, ge=0)
    ayce_max_orders: int | None = Field(default=None, ge=0)
    weekly_coperto: dict[str, Any] | None = None
    weekly_ayce: dict[str, Any] | None = None
    weekly_service_hours: dict[str, Any] | None = None
    lunch_time_start: str | None = None
    dinner_time_start: str | None = None
    reservation_duration: int | None = Field(default=None, ge=15, le=600)

    @field_validator("logo_url")
    @classmethod
    def _logo(cls, v: str | None) -> str | None:
        return validate_image_url(v)

    @field_validator("lunch_time_start", "dinner_time_start")
    @classmethod
    def _hhmm(cls, v: str | None) -> str | None:
        return validate_hhmm(v)


class StaffCreate(BaseModel):
    """Owner adding a staff account."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    role: StaffRole = "STAFF"


class StaffOutput(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: Role
    restaurant_id: int | None = None
    is_active: bool


# =============================================================================
# Bookings
# =============================================================================


class BookingCreate(BaseModel):
    """Public or owner-entered reservation."""

    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    date_time: datetime
    guests: int = Field(ge=1, le=Limits.MAX_CUSTOMER_COUNT)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    table_id: int | None = None


class BookingUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    phone: str | None = Field(default=None, max_length=40)
    date_time: datetime | None = None
    guests: int | None = Field(default=None, ge=1, le=Limits.MAX_CUSTOMER_COUNT)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    table_id: int | None = None
    status: BookingStatus | None = None


class BookingOutput(BaseModel):
    id: int
    restaurant_id: int
    table_id: int | None = None
    name: str
    email: str | None = None
    phone: str | None = None
    date_time: datetime
    guests: int
    notes: str | None = None
    status: BookingStatus
