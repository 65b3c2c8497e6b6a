# app/application/recommend_use_case.py
from __future__ import annotations

import os
import logging
from typing import List, Tuple

from app.domain.errors import FormNotFilledError, RecommendationError, UserNotFoundError
from app.domain.models import (
    SOURCE_TYPE_VADEMECUM, GoalScore, MatchedIngredient, ProductMatchResult,
    RecommendationResponse, Supplement,
)
from app.domain.ports import SupplementRepoPort, UserRepoPort
from app.domain.services.goal_scorer import score_product_for_goal

logger = logging.getLogger("suppadvisor.recommend")

MATCH_LIMIT = int(os.getenv("RECOMMEND_MATCH_LIMIT", "20"))
RECOMMENDATION_LIMIT = int(os.getenv("RECOMMEND_LIMIT", "10"))


def best_score(supplement: Supplement, goals: List[str]) -> GoalScore:
    """Best single-goal score; the reason is the one of the winning goal."""
    best = GoalScore(score=0, reason="")
    for goal in goals:
        s = score_product_for_goal(supplement, goal)
        if s.score > best.score:
            best = s
    return best


def to_match_result(supplement: Supplement, score: GoalScore) -> ProductMatchResult:
    try:
        vademecum_id = int(supplement.source_id or 0)
    except ValueError:
        vademecum_id = 0
    return ProductMatchResult(
        id=supplement.id,
        vademecum_id=vademecum_id,
        name=supplement.name,
        image_url=supplement.image_url,
        price=supplement.price,
        currency=supplement.currency,
        manufacturer=supplement.manufacturer,
        match_score=score.score,
        match_reason=score.reason,
        category=list(supplement.category),
        form=supplement.form.value,
        ingredients=[MatchedIngredient(name=i.name, amount=i.amount, unit=i.unit) for i in supplement.ingredients],
        indication=supplement.description or None,
    )


class RecommendProductsUseCase:
    def __init__(
        self,
        users: UserRepoPort,
        supplements: SupplementRepoPort,
        match_limit: int = MATCH_LIMIT,
        recommendation_limit: int = RECOMMENDATION_LIMIT,
    ):
        self.users = users
        self.supplements = supplements
        self.match_limit = match_limit
        self.recommendation_limit = recommendation_limit

    async def match_products_to_goals(self, goals: List[str]) -> List[ProductMatchResult]:
        goals = [g for g in goals if isinstance(g, str) and g.strip()]
        if not goals:
            return []
        try:
            catalog = await self.supplements.find_many({"is_active": True, "source_type": SOURCE_TYPE_VADEMECUM})
        except Exception as e:
            logger.error("Error matching products: %s", e)
            raise RecommendationError(f"Failed to match products: {e}") from e

        logger.info("Matching %d products against %d goals", len(catalog), len(goals))

        scored: List[Tuple[Supplement, GoalScore]] = []
        for supplement in catalog:
            s = best_score(supplement, goals)
            if s.score > 0:
                scored.append((supplement, s))

        # stable sort: equal scores keep catalog order
        scored.sort(key=lambda pair: pair[1].score, reverse=True)
        if self.match_limit:
            scored = scored[:self.match_limit]

        results = [to_match_result(sup, s) for sup, s in scored]
        logger.info("Found %d matching products", len(results))
        return results

    async def get_recommended_products(self, user_id: str) -> RecommendationResponse:
        user = await self.users.find_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        if not user.is_form_filled or user.form_data is None:
            raise FormNotFilledError()

        goals = list(user.form_data.supplement_goals)
        if not goals:
            logger.warning("User %s has no supplement goals", user_id)
            return RecommendationResponse(recommendations=[], total_matches=0, user_goals=[])

        logger.info("Getting recommendations for user %s with goals: %s", user_id, goals)
        matches = await self.match_products_to_goals(goals)

        return RecommendationResponse(
            recommendations=matches[:self.recommendation_limit],
            total_matches=len(matches),
            user_goals=goals,
        )
