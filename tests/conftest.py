"""Shared fixtures: in-memory repos and a small catalog."""

import pytest

from app.domain.models import FormData, Ingredient, Supplement, SupplementForm, UserProfile
from tests.fakes import FakeSupplementRepo, FakeUserRepo


def make_supplement(source_id: str, name: str, **kw) -> Supplement:
    return Supplement(source_id=source_id, name=name, **kw)


@pytest.fixture
def catalog():
    return [
        make_supplement(
            "101", "Imuneks Bağışıklık Şurubu",
            brand="Imuneks", form=SupplementForm.LIQUID,
            description="Bağışıklık sistemini destekler",
            category=["bağışıklık"],
            ingredients=[Ingredient(name="Ekinezya", amount=100, unit="mg"), Ingredient(name="Vitamin C")],
            price=150.0,
        ),
        make_supplement(
            "102", "Enerji Plus Tablet",
            brand="Vitaday", form=SupplementForm.TABLET,
            description="Enerji ve yorgunluk için vitamin desteği",
            category=["enerji", "vitamin"],
            ingredients=[Ingredient(name="Vitamin B12", amount=500, unit="mcg")],
        ),
        make_supplement(
            "103", "Kalsiyum D3",
            brand="Osteo", description="Kemik sağlığı için kalsiyum",
            category=["kemik sağlığı", "mineral"],
            ingredients=[Ingredient(name="Kalsiyum"), Ingredient(name="D3 vitamini")],
        ),
        make_supplement("104", "Nemlendirici Krem", brand="Derma", form=SupplementForm.CREAM),
        make_supplement(
            "105", "Pasif Bağışıklık Kapsül", is_active=False,
            description="Bağışıklık sistemini destekler", category=["bağışıklık"],
        ),
    ]


@pytest.fixture
def supplement_repo(catalog):
    return FakeSupplementRepo(catalog)


@pytest.fixture
def user_repo():
    return FakeUserRepo({
        "u-goals": UserProfile(
            id="u-goals", is_form_filled=True,
            form_data=FormData(supplement_goals=["bağışıklık", "enerji"]),
        ),
        "u-nogoals": UserProfile(id="u-nogoals", is_form_filled=True, form_data=FormData(supplement_goals=[])),
        "u-noform": UserProfile(id="u-noform", is_form_filled=False),
    })
