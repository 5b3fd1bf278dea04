import enum
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date

DateType = date


class ConflictPolicy(str, enum.Enum):
    keep_manual = "keep_manual"
    keep_system = "keep_system"
    merge = "merge"


DEFAULT_SUGGESTIONS = [
    "Remove the manual entry from the cash register",
    "Merge the data into the originating subsystem",
    "Ignore if these are different transactions",
]


class ConflictMatch(BaseModel):
    entry_id: str
    reference_id: str
    reference_type: str
    description: str
    amount: Decimal
    date: DateType


class ConflictCandidate(BaseModel):
    """A manual ledger entry that probably duplicates one or more subsystem entries."""
    type: str = "potential_duplicate"
    manual_entry_id: str
    manual_reference_id: str
    description: str
    amount: Decimal
    date: Optional[DateType] = None
    matches: List[ConflictMatch] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=lambda: list(DEFAULT_SUGGESTIONS))


class ConflictListResponse(BaseModel):
    total: int
    policy: ConflictPolicy
    conflicts: List[ConflictCandidate]


class ResolveConflictsRequest(BaseModel):
    policy: ConflictPolicy
