import enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class AlertType(str, enum.Enum):
    warning = "warning"
    error = "error"
    info = "info"
    success = "success"


class AlertCategory(str, enum.Enum):
    inventory = "inventory"
    financial = "financial"
    customers = "customers"
    sales = "sales"
    system = "system"


class AlertPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class SmartAlert(BaseModel):
    id: str
    kind: str
    type: AlertType
    category: AlertCategory
    title: str
    message: str
    priority: AlertPriority
    action_required: bool = False
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    created_at: datetime
    read_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class AlertListResponse(BaseModel):
    total: int
    alerts: List[SmartAlert]


class AlertStatistics(BaseModel):
    total: int = 0
    unread: int = 0
    unresolved: int = 0
    action_required: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)
