# app/domain/services/product_mapper.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional, Tuple

from app.domain.models import (
    DEFAULT_CURRENCY, SOURCE_TYPE_VADEMECUM, UNKNOWN,
    Ingredient, Supplement, SupplementForm,
)
from app.domain.text import html_to_text, normalize_turkish
from app.domain.vendor import VendorCardDetails, VendorProductCard

# keyword (folded) -> form; first hit wins
FORM_RULES: List[Tuple[Tuple[str, ...], SupplementForm]] = [
    (("tablet",), SupplementForm.TABLET),
    (("kapsul", "capsule"), SupplementForm.CAPSULE),
    (("surup", "suspansiyon", "damla", "solusyon", "sivi"), SupplementForm.LIQUID),
    (("toz", "sase", "powder"), SupplementForm.POWDER),
    (("sakiz", "gummy", "jelibon"), SupplementForm.GUMMY),
    (("krem", "jel", "merhem"), SupplementForm.CREAM),
]

# keyword (folded) -> category tag as stored
CATEGORY_RULES: List[Tuple[str, str]] = [
    ("vitamin", "vitamin"),
    ("mineral", "mineral"),
    ("protein", "protein"),
    ("enerji", "enerji"),
    ("bagisiklik", "bağışıklık"),
    ("agri", "ağrı kesici"),
    ("ates", "ateş düşürücü"),
    ("uyku", "uyku"),
    ("kemik", "kemik sağlığı"),
    ("eklem", "eklem sağlığı"),
]


def classify_form(drug_type_name: Optional[str]) -> SupplementForm:
    name = normalize_turkish(drug_type_name)
    if not name:
        return SupplementForm.OTHER
    for keywords, form in FORM_RULES:
        if any(k in name for k in keywords):
            return form
    return SupplementForm.OTHER


def categorize_indication(indication: Optional[str]) -> List[str]:
    text = normalize_turkish(indication)
    if not text:
        return []
    tags: List[str] = []
    for keyword, tag in CATEGORY_RULES:
        if keyword in text and tag not in tags:
            tags.append(tag)
    return tags


def _meaningful(s: Optional[str]) -> Optional[str]:
    s = (s or "").strip()
    return s if s and s != "-" else None


def _ingredients(card: VendorCardDetails) -> List[Ingredient]:
    return [
        Ingredient(
            name=ing.name,
            amount=ing.amount,
            unit=_meaningful(ing.unit.name if ing.unit else None) or "",
        )
        for ing in card.ingredients
    ]


def map_product_card_to_supplement(card_data: VendorProductCard, now: Optional[dt.datetime] = None) -> Supplement:
    """
    Vendor detail card -> unsaved `Supplement`.

    Total over missing data: absent company -> "Unknown", absent form type ->
    other, absent ingredients -> [], absent price -> price None with TRY.
    """
    product, card = card_data.product, card_data.card
    company = card.licensee_company
    brand = _meaningful(company.name if company else None) or UNKNOWN
    manufacturer = (
        _meaningful(company.officialname if company else None)
        or _meaningful(company.name if company else None)
        or UNKNOWN
    )

    indication = html_to_text(card.indication)
    price = card.price
    image_url = next((img.url for img in card.image if img.url), None)

    return Supplement(
        name=product.name.strip(),
        brand=brand,
        manufacturer=manufacturer,
        form=classify_form(card.drug_type.name if card.drug_type else None),
        ingredients=_ingredients(card),
        category=categorize_indication(indication),
        description=indication,
        approved_uses=[indication] if indication else [],
        price=price.retail if price else None,
        currency=_meaningful(price.currency_code if price else None) or DEFAULT_CURRENCY,
        image_url=image_url,
        is_active=True,
        availability=True,
        source_type=SOURCE_TYPE_VADEMECUM,
        source_id=str(product.id),
        last_synced=now or dt.datetime.now(dt.timezone.utc),
    )
