import base64
import re
from typing import List, Optional, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Currency = Literal["USD", "EUR", "BAM", "RSD", "GBP"]
BusinessType = Literal["Service", "Product"]
Frequency = Literal["One-time", "Monthly", "Yearly"]
SlotStatus = Literal["pending", "ready", "failed"]
LocationStatus = Literal["idle", "valid", "invalid"]
Tab = Literal["identity", "budget", "products"]


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire; either accepted as input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BusinessRequest(CamelModel):
    model_config = ConfigDict(frozen=True)

    description: str = Field(..., min_length=1, description="The business concept.")
    location: str = Field(..., min_length=1)
    budget: float = Field(..., gt=0, description="Total available capital.")
    currency: Currency = "USD"
    existing_name: Optional[str] = None
    existing_slogan: Optional[str] = None
    existing_colors: Optional[str] = Field(None, description="Comma separated color preferences.")


class FormState(CamelModel):
    description: str = ""
    location: str = ""
    budget: float = 1000
    currency: Currency = "USD"
    existing_name: str = ""
    existing_slogan: str = ""
    existing_colors: str = ""

    def is_complete(self) -> bool:
        return bool(self.description.strip() and self.location.strip() and self.budget > 0)

    def to_request(self) -> BusinessRequest:
        return BusinessRequest(
            description=self.description.strip(),
            location=self.location.strip(),
            budget=self.budget,
            currency=self.currency,
            existing_name=self.existing_name.strip() or None,
            existing_slogan=self.existing_slogan.strip() or None,
            existing_colors=self.existing_colors.strip() or None,
        )


class FormUpdate(CamelModel):
    description: Optional[str] = None
    location: Optional[str] = None
    budget: Optional[float] = Field(None, gt=0, description="Total available capital.")
    currency: Optional[Currency] = None
    existing_name: Optional[str] = None
    existing_slogan: Optional[str] = None
    existing_colors: Optional[str] = None


class LocationValidation(CamelModel):
    is_valid: bool
    normalized_name: str


class LocationCheck(CamelModel):
    location_status: LocationStatus
    location: str


class BudgetItem(CamelModel):
    category: str
    item: str
    cost: float = Field(..., ge=0)
    frequency: Frequency
    reasoning: str
    search_query: Optional[str] = None


class BudgetPlan(CamelModel):
    items: List[BudgetItem]
    total_estimated_monthly: float
    total_one_time_startup: float
    estimated_monthly_revenue: float
    break_even_months: float
    currency: str
    advice: str
    is_feasible: bool
    suggested_minimum_budget: float
    missing_budget: float


class ProductIdea(CamelModel):
    name: str
    description: str
    price: float
    visual_prompt: str


class BrandIdentity(CamelModel):
    model_config = ConfigDict(frozen=True)

    company_name: str
    slogan: str
    description: str
    color_palette: List[str]
    logo_style: str
    business_type: BusinessType
    normalized_location: str
    location_valid: bool
    products: List[ProductIdea]
    budget_plan: BudgetPlan


class GeneratedImage(CamelModel):
    model_config = ConfigDict(ser_json_bytes="base64")

    data: bytes
    mime_type: str = "image/png"

    @field_validator("data")
    @classmethod
    def _not_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("image payload is empty")
        return value

    @property
    def encoded(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.encoded}"

    @staticmethod
    def download_name(company_name: str) -> str:
        return re.sub(r"\s+", "_", company_name) + "_logo.png"


class CategoryTotal(CamelModel):
    name: str
    value: float
    share: float


class BudgetSummary(CamelModel):
    categories: List[CategoryTotal]
    top_costs: List[CategoryTotal]
    total_item_cost: float
    funding_progress: float
    search_links: Dict[int, str] = Field(default_factory=dict)


class SlotView(CamelModel):
    slot_id: str
    status: SlotStatus
    error: Optional[str] = None
    has_image: bool = False
    mime_type: Optional[str] = None


class SessionSnapshot(CamelModel):
    session_id: str
    status: str
    notice: Optional[str] = None
    form: FormState
    location_status: LocationStatus
    identity: Optional[BrandIdentity] = None
    budget_summary: Optional[BudgetSummary] = None
    slots: List[SlotView] = Field(default_factory=list)
    image_quota_blocked: bool = False
    active_tab: Tab = "identity"
