# app/domain/models.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

SOURCE_TYPE_VADEMECUM = "vademecum"
DEFAULT_CURRENCY = "TRY"
UNKNOWN = "Unknown"


class SupplementForm(str, Enum):
    TABLET = "tablet"
    CAPSULE = "capsule"
    POWDER = "powder"
    LIQUID = "liquid"
    GUMMY = "gummy"
    CREAM = "cream"
    OTHER = "other"


class Ingredient(BaseModel):
    name: str
    amount: float | None = None
    unit: str = ""


class Supplement(BaseModel):
    """
    Internal catalog item, stored in the `supplements` collection.
    Natural key: (source_id, source_type).
    """
    id: str | None = None
    name: str
    brand: str = UNKNOWN
    manufacturer: str = UNKNOWN
    form: SupplementForm = SupplementForm.OTHER
    ingredients: List[Ingredient] = Field(default_factory=list)
    category: List[str] = Field(default_factory=list)
    description: str = ""
    approved_uses: List[str] = Field(default_factory=list)
    price: float | None = None
    currency: str = DEFAULT_CURRENCY
    image_url: str | None = None
    is_active: bool = True
    availability: bool = True
    rating: float = 0
    review_count: int = 0
    source_type: str = SOURCE_TYPE_VADEMECUM
    source_id: str
    last_synced: dt.datetime | None = None

    def to_document(self) -> Dict[str, Any]:
        """Mongo payload for `$set` (id is owned by the store)."""
        doc = self.model_dump(mode="python", exclude={"id"})
        doc["form"] = self.form.value
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Supplement":
        data = dict(doc)
        _id = data.pop("_id", None)
        if _id is not None:
            data["id"] = str(_id)
        # older documents keep the indication under medical_info
        if not data.get("description"):
            data["description"] = (data.get("medical_info") or {}).get("description") or ""
        return cls.model_validate(data)


class GoalScore(BaseModel):
    score: int = 0
    reason: str = "Genel uyum"


class MatchedIngredient(BaseModel):
    name: str
    amount: float | None = None
    unit: str = ""


class ProductMatchResult(BaseModel):
    id: str | None = None
    vademecum_id: int = 0
    name: str
    image_url: str | None = None
    price: float | None = None
    currency: str | None = None
    manufacturer: str | None = None
    match_score: int
    match_reason: str
    category: List[str] = Field(default_factory=list)
    form: str | None = None
    ingredients: List[MatchedIngredient] = Field(default_factory=list)
    indication: str | None = None


class RecommendationResponse(BaseModel):
    recommendations: List[ProductMatchResult] = Field(default_factory=list)
    total_matches: int = 0
    user_goals: List[str] = Field(default_factory=list)


class SyncStats(BaseModel):
    total: int = 0
    synced: int = 0
    failed: int = 0
    skipped: int = 0


class SyncResult(BaseModel):
    success: bool
    message: str
    stats: SyncStats
    errors: List[str] = Field(default_factory=list)
    brand_counts: Optional[Dict[str, int]] = None
    duration_seconds: float = 0.0

    @property
    def listing_failed(self) -> bool:
        # nothing was listed, so nothing was attempted
        return not self.success and self.stats.total == 0


class FormData(BaseModel):
    supplement_goals: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    id: str
    is_form_filled: bool = False
    form_data: FormData | None = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserProfile":
        form = doc.get("form_data")
        return cls(
            id=str(doc.get("_id") or doc.get("id")),
            is_form_filled=bool(doc.get("is_form_filled")),
            form_data=FormData(supplement_goals=list((form or {}).get("supplement_goals") or []))
            if isinstance(form, dict) else None,
        )
