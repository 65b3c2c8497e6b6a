# app/domain/services/goal_scorer.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from app.domain.models import GoalScore, Supplement
from app.domain.text import normalize_turkish

# Whole-goal signals
GOAL_IN_DESCRIPTION = 50
GOAL_IS_CATEGORY = 50
GOAL_IN_NAME = 30
GOAL_IN_INGREDIENT = 20     # per matching ingredient

# Per goal word (len >= MIN_WORD_LEN)
WORD_WEIGHTS = {
    "description": 10,
    "name": 5,
    "ingredients": 5,
    "category": 5,
}
MIN_WORD_LEN = 3

GENERIC_REASON = "Genel uyum"
R_DESCRIPTION = "Kullanım amacı hedefle uyumlu"
R_DESCRIPTION_PARTIAL = "Kullanım amacı kısmen uyumlu"
R_CATEGORY = "Kategori hedefle eşleşiyor"
R_CATEGORY_PARTIAL = "Kategori kısmen eşleşiyor"
R_NAME = "Ürün adı hedefle eşleşiyor"
R_NAME_PARTIAL = "Ürün adı kısmen eşleşiyor"
R_INGREDIENT_PARTIAL = "İçerik kısmen uyumlu"


@dataclass
class _Searchable:
    description: str
    name: str
    ingredients: List[tuple] = field(default_factory=list)   # (display, folded)
    category: List[str] = field(default_factory=list)        # folded


def _searchable(product: Union[Supplement, Dict[str, Any]]) -> _Searchable:
    if isinstance(product, Supplement):
        description = product.description
        name = product.name
        ingredients = [i.name for i in product.ingredients]
        category = list(product.category)
    else:
        description = product.get("description") or (product.get("medical_info") or {}).get("description")
        name = product.get("name")
        ingredients = [(i or {}).get("name") for i in (product.get("ingredients") or []) if isinstance(i, dict)]
        category = product.get("category") or []
        if isinstance(category, str):
            category = [category]

    folded_ings = [(ing, normalize_turkish(ing)) for ing in ingredients if ing]
    return _Searchable(
        description=normalize_turkish(description),
        name=normalize_turkish(name),
        ingredients=[(d, f) for d, f in folded_ings if f],
        category=[c for c in (normalize_turkish(x) for x in category if isinstance(x, str)) if c],
    )


def goal_words(normalized_goal: str) -> List[str]:
    return [w for w in normalized_goal.split(" ") if len(w) >= MIN_WORD_LEN]


def score_product_for_goal(product: Union[Supplement, Dict[str, Any]], goal: str | None) -> GoalScore:
    """
    Additive multi-signal match of one product against one free-text goal.

    Everything is compared after `normalize_turkish`, so "BAĞIŞIKLIK" and
    "bağışıklık" score the same. Whole-goal hits carry the big bonuses; each
    goal word of 3+ characters then adds smaller per-field bonuses, which
    lets "enerji artırıcı" partially match a product that only says
    "enerji". No signal -> score 0, reason "Genel uyum".
    """
    g = normalize_turkish(goal)
    if not g:
        return GoalScore(score=0, reason=GENERIC_REASON)

    p = _searchable(product)
    score = 0
    reasons: List[str] = []

    if p.description and g in p.description:
        score += GOAL_IN_DESCRIPTION
        reasons.append(R_DESCRIPTION)

    if g in p.category:
        score += GOAL_IS_CATEGORY
        reasons.append(R_CATEGORY)

    if p.name and g in p.name:
        score += GOAL_IN_NAME
        reasons.append(R_NAME)

    ing_hits = [
        display for display, folded in p.ingredients
        if g in folded or (len(folded) >= MIN_WORD_LEN and folded in g)
    ]
    if ing_hits:
        score += GOAL_IN_INGREDIENT * len(ing_hits)
        reasons.append(f"İçerik hedefle uyumlu ({', '.join(ing_hits)})")

    hits = {fld: 0 for fld in WORD_WEIGHTS}
    for w in goal_words(g):
        if w in p.description:
            hits["description"] += 1
        if w in p.name:
            hits["name"] += 1
        if any(w in folded for _, folded in p.ingredients):
            hits["ingredients"] += 1
        if any(w in c for c in p.category):
            hits["category"] += 1

    for fld, n in hits.items():
        score += WORD_WEIGHTS[fld] * n

    # partial reasons only where the whole goal did not already match
    if hits["description"] and R_DESCRIPTION not in reasons:
        reasons.append(R_DESCRIPTION_PARTIAL)
    if hits["name"] and R_NAME not in reasons:
        reasons.append(R_NAME_PARTIAL)
    if hits["ingredients"] and not ing_hits:
        reasons.append(R_INGREDIENT_PARTIAL)
    if hits["category"] and R_CATEGORY not in reasons:
        reasons.append(R_CATEGORY_PARTIAL)

    return GoalScore(score=max(score, 0), reason=", ".join(reasons) if reasons else GENERIC_REASON)
