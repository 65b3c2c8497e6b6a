import pytest

from app.application.recommend_use_case import RecommendProductsUseCase
from app.domain.errors import FormNotFilledError, RecommendationError, UserNotFoundError
from app.domain.models import FormData, Supplement, UserProfile
from tests.fakes import BrokenSupplementRepo, FakeSupplementRepo, FakeUserRepo


async def test_user_not_found(user_repo, supplement_repo):
    uc = RecommendProductsUseCase(user_repo, supplement_repo)
    with pytest.raises(UserNotFoundError):
        await uc.get_recommended_products("nobody")


async def test_form_not_filled(user_repo, supplement_repo):
    uc = RecommendProductsUseCase(user_repo, supplement_repo)
    with pytest.raises(FormNotFilledError):
        await uc.get_recommended_products("u-noform")


async def test_empty_goals_short_circuit(user_repo):
    uc = RecommendProductsUseCase(user_repo, BrokenSupplementRepo())
    out = await uc.get_recommended_products("u-nogoals")
    assert out.recommendations == [] and out.total_matches == 0 and out.user_goals == []


async def test_recommendations_for_user(user_repo, supplement_repo):
    uc = RecommendProductsUseCase(user_repo, supplement_repo)
    out = await uc.get_recommended_products("u-goals")

    assert out.user_goals == ["bağışıklık", "enerji"]
    assert out.total_matches == 2
    # inactive 105 never shows up; 103/104 score zero
    assert [r.vademecum_id for r in out.recommendations] == [101, 102]

    top = out.recommendations[0]
    assert top.id is not None
    assert top.name == "Imuneks Bağışıklık Şurubu"
    assert top.match_score == 150
    assert top.form == "liquid"
    assert top.price == 150.0 and top.currency == "TRY"
    assert [(i.name, i.unit) for i in top.ingredients] == [("Ekinezya", "mg"), ("Vitamin C", "")]
    assert top.indication == "Bağışıklık sistemini destekler"


async def test_best_goal_wins(supplement_repo):
    uc = RecommendProductsUseCase(FakeUserRepo(), supplement_repo)
    both = await uc.match_products_to_goals(["uyku", "enerji artırıcı"])
    assert [m.vademecum_id for m in both] == [102]
    assert both[0].match_score == 20


async def test_blank_goals_are_ignored(supplement_repo):
    uc = RecommendProductsUseCase(FakeUserRepo(), supplement_repo)
    assert await uc.match_products_to_goals(["", "   "]) == []


def _ranked_catalog(n):
    out = []
    for i in range(1, n + 1):
        out.append(Supplement(
            source_id=str(i),
            name=f"Ürün {i}",
            description="günlük enerji desteği" if i % 2 else "",
            category=["enerji"] if i % 3 == 0 else [],
            ingredients=[],
        ))
        if i % 5 == 0:
            out[-1] = out[-1].model_copy(update={"name": f"Enerji {i}"})
    return out


async def test_ranking_and_limits():
    users = FakeUserRepo({"u": UserProfile(id="u", is_form_filled=True, form_data=FormData(supplement_goals=["Enerji"]))})
    repo = FakeSupplementRepo(_ranked_catalog(60))
    uc = RecommendProductsUseCase(users, repo, match_limit=20, recommendation_limit=10)

    out = await uc.get_recommended_products("u")

    assert out.total_matches == 20
    assert len(out.recommendations) == 10
    scores = [r.match_score for r in out.recommendations]
    assert scores == sorted(scores, reverse=True)
    assert all(s > 0 for s in scores)

    everything = await uc.match_products_to_goals(["enerji"])
    assert len(everything) == 20
    assert [r.match_score for r in everything][:10] == scores


async def test_equal_scores_keep_catalog_order():
    repo = FakeSupplementRepo([
        Supplement(source_id=str(i), name=f"Magnezyum {i}") for i in (5, 3, 9)
    ])
    uc = RecommendProductsUseCase(FakeUserRepo(), repo)
    out = await uc.match_products_to_goals(["magnezyum"])
    assert [m.vademecum_id for m in out] == [5, 3, 9]


async def test_store_failure_raises_recommendation_error():
    uc = RecommendProductsUseCase(FakeUserRepo(), BrokenSupplementRepo())
    with pytest.raises(RecommendationError):
        await uc.match_products_to_goals(["enerji"])
