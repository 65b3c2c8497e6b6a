import datetime as dt
import itertools

import pytest

from app.domain.models import SupplementForm
from app.domain.services.product_mapper import (
    categorize_indication, classify_form, map_product_card_to_supplement,
)
from app.domain.vendor import VendorProductCard

NOW = dt.datetime(2024, 5, 1, 3, 0, tzinfo=dt.timezone.utc)


def _map(card: dict, product=None):
    payload = {"product": product or {"id": 1234, "name": "  Vitamin D3 1000 IU  "}, "card": card}
    return map_product_card_to_supplement(VendorProductCard.model_validate(payload), now=NOW)


def test_full_card():
    s = _map({
        "drugType": {"id": 3, "name": "Film Kaplı Tablet"},
        "licenseeCompany": {"id": 9, "name": "Abdi İbrahim", "officialname": "Abdi İbrahim İlaç San. A.Ş."},
        "prescriptionType": {"id": 1, "name": "Beyaz Reçete"},
        "indication": "Kemik sağlığı ve bağışıklık için D vitamini takviyesi",
        "ingredients": [
            {"id": 1, "name": "Kolekalsiferol", "amount": 25, "unit": {"id": 2, "name": "mcg"}},
        ],
        "image": [{"url": "https://cdn.test/d3.jpg", "thumbnailUrl": "https://cdn.test/d3_t.jpg"}],
        "price": {"retail": 89.9, "currencyCode": "TRY"},
    })

    assert s.name == "Vitamin D3 1000 IU"
    assert s.brand == "Abdi İbrahim"
    assert s.manufacturer == "Abdi İbrahim İlaç San. A.Ş."
    assert s.form is SupplementForm.TABLET
    assert [(i.name, i.amount, i.unit) for i in s.ingredients] == [("Kolekalsiferol", 25.0, "mcg")]
    assert s.category == ["vitamin", "bağışıklık", "kemik sağlığı"]
    assert s.description == "Kemik sağlığı ve bağışıklık için D vitamini takviyesi"
    assert s.approved_uses == [s.description]
    assert s.price == 89.9 and s.currency == "TRY"
    assert s.image_url == "https://cdn.test/d3.jpg"
    assert s.source_type == "vademecum" and s.source_id == "1234"
    assert s.is_active and s.availability
    assert s.rating == 0 and s.review_count == 0
    assert s.last_synced == NOW


def test_empty_card_uses_defaults():
    s = _map({})
    assert s.brand == "Unknown"
    assert s.manufacturer == "Unknown"
    assert s.form is SupplementForm.OTHER
    assert s.ingredients == [] and s.category == []
    assert s.description == "" and s.approved_uses == []
    assert s.price is None and s.currency == "TRY"
    assert s.image_url is None


def test_missing_card_block():
    card = VendorProductCard.model_validate({"product": {"id": 5, "name": "X"}})
    s = map_product_card_to_supplement(card)
    assert s.source_id == "5"
    assert s.last_synced.tzinfo is not None


OPTIONAL_BLOCKS = {
    "drugType": {"name": "Kapsül"},
    "licenseeCompany": {"name": "Brand"},
    "indication": "Enerji",
    "ingredients": [{"name": "Demir"}],
    "image": [{"url": "u"}],
    "price": {"retail": 10},
}


@pytest.mark.parametrize("present", [
    combo for n in range(len(OPTIONAL_BLOCKS) + 1)
    for combo in itertools.combinations(sorted(OPTIONAL_BLOCKS), n)
])
def test_every_combination_of_missing_blocks_maps(present):
    card = {k: (OPTIONAL_BLOCKS[k] if k in present else None) for k in OPTIONAL_BLOCKS}
    s = _map(card)
    assert s.name
    assert (s.brand == "Brand") == ("licenseeCompany" in present)
    assert (s.price == 10) == ("price" in present)
    assert s.currency == "TRY"


@pytest.mark.parametrize("drug_type, expected", [
    ("Tablet", SupplementForm.TABLET),
    ("Efervesan TABLET", SupplementForm.TABLET),
    ("Yumuşak Kapsül", SupplementForm.CAPSULE),
    ("Şurup", SupplementForm.LIQUID),
    ("Oral Damla", SupplementForm.LIQUID),
    ("Süspansiyon", SupplementForm.LIQUID),
    ("Toz", SupplementForm.POWDER),
    ("Saşe", SupplementForm.POWDER),
    ("Jelibon", SupplementForm.GUMMY),
    ("Çiğneme Sakızı", SupplementForm.GUMMY),
    ("Krem", SupplementForm.CREAM),
    ("Jel", SupplementForm.CREAM),
    ("Merhem", SupplementForm.CREAM),
    ("Ampul", SupplementForm.OTHER),
    ("", SupplementForm.OTHER),
    (None, SupplementForm.OTHER),
])
def test_classify_form(drug_type, expected):
    assert classify_form(drug_type) is expected


def test_categorize_indication_folds_case_and_diacritics():
    assert categorize_indication("AĞRI ve ATEŞ durumlarında") == ["ağrı kesici", "ateş düşürücü"]
    assert categorize_indication("Uyku düzeni, eklem ve mineral") == ["mineral", "uyku", "eklem sağlığı"]
    assert categorize_indication("Cilt bakımı") == []
    assert categorize_indication(None) == []


def test_ingredient_without_unit_gets_empty_unit():
    s = _map({"ingredients": [
        {"name": "Çinko", "amount": "15", "unit": None},
        {"name": "Selenyum", "amount": "eser", "unit": {"name": "-"}},
        {"name": "Bakır"},
    ]})
    assert [(i.name, i.amount, i.unit) for i in s.ingredients] == [
        ("Çinko", 15.0, ""), ("Selenyum", None, ""), ("Bakır", None, ""),
    ]


def test_single_image_object_and_string():
    assert _map({"image": {"url": "https://cdn.test/a.png"}}).image_url == "https://cdn.test/a.png"
    assert _map({"image": "https://cdn.test/b.png"}).image_url == "https://cdn.test/b.png"
    assert _map({"image": [{"url": None}, {"url": "https://cdn.test/c.png"}]}).image_url == "https://cdn.test/c.png"


def test_manufacturer_falls_back_to_company_name():
    s = _map({"licenseeCompany": {"name": "Solgar", "officialname": None}})
    assert s.brand == s.manufacturer == "Solgar"
    s = _map({"licenseeCompany": {"name": "-", "officialname": "Solgar Vitamin Ltd."}})
    assert s.brand == "Unknown"
    assert s.manufacturer == "Solgar Vitamin Ltd."


def test_price_as_list_and_foreign_currency():
    s = _map({"price": [{"retail": "120.5", "currencyCode": "EUR"}]})
    assert s.price == 120.5 and s.currency == "EUR"
    s = _map({"price": {"retail": None}})
    assert s.price is None and s.currency == "TRY"


def test_html_indication_is_flattened():
    s = _map({"indication": "<p>Bağışıklık sistemini<br/>destekler.</p>"})
    assert "<" not in s.description
    assert "Bağışıklık sistemini" in s.description
    assert s.category == ["bağışıklık"]
