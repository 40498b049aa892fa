"""Shared test fixtures."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID, uuid4

import pytest

from meal_planner.config import Settings
from meal_planner.containers import AppContainer
from meal_planner.domain.errors import PlanAlreadyExistsError, TransactionFailedError
from meal_planner.domain.foods import (
    CatalogFood,
    EmbeddingStats,
    FoodCandidate,
    FoodEmbedding,
    FoodMacros,
)
from meal_planner.domain.meal_plans import (
    MealPlan,
    MealPlanDraft,
    MealPlanItem,
    MealPlanItemDraft,
    MealSlot,
)
from meal_planner.domain.nutrition import (
    Gender,
    Goal,
    MealNutrition,
    NutritionTarget,
    Objective,
    UserProfile,
)
from meal_planner.services.cache import InMemoryCache
from meal_planner.services.candidates import (
    FoodCandidateSource,
    FoodLookup,
    SearchFilters,
)
from meal_planner.services.catalog import FoodCatalogRepository, FoodCatalogService
from meal_planner.services.embeddings import EmbeddingClient, EmbeddingService
from meal_planner.services.meal_plans import (
    MealPlanRepository,
    MealPlanService,
    MealSlotRepository,
    NutritionTargetRepository,
    UserDataRepository,
)
from meal_planner.services.recommendations import MealRecommendationEngine
from meal_planner.services.scoring import RecommendationTuning


def make_food(  # noqa: PLR0913
    name: str,
    category: str | None,
    calories: float = 150,
    protein_g: float = 5,
    carbs_g: float = 10,
    fat_g: float = 3,
    similarity: float = 0.5,
    name_vi: str | None = None,
) -> FoodCandidate:
    """Build a food candidate with a fresh id."""
    return FoodCandidate(
        id=uuid4(),
        name=name,
        name_vi=name_vi,
        raw_category=category,
        macros=FoodMacros(
            calories=calories, protein_g=protein_g, carbs_g=carbs_g, fat_g=fat_g
        ),
        similarity=similarity,
    )


def make_slot(code: str, percentage: float, order: int = 1) -> MealSlot:
    return MealSlot(
        id=uuid4(),
        code=code,
        name=code.capitalize(),
        display_order=order,
        default_percentage=percentage,
    )


@dataclass
class FakeEmbeddingClient(EmbeddingClient):
    """Fake embedding client that records requested texts."""

    calls: list[str] = field(default_factory=list)
    failing_texts: set[str] = field(default_factory=set)
    fail_all: bool = False

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_all or text in self.failing_texts:
            raise RuntimeError("embedding provider unavailable")
        return [float(len(text)), 1.0, 0.0]


@dataclass
class FakeCandidateSource(FoodCandidateSource, FoodLookup):
    """In-memory similarity search honoring filters and exclusions."""

    foods: list[FoodCandidate] = field(default_factory=list)
    slot_tags: dict[UUID, set[str]] = field(default_factory=dict)
    calls: list[tuple[SearchFilters, frozenset[UUID], int]] = field(
        default_factory=list
    )
    fail_after: int | None = None

    def search(
        self,
        query_embedding: list[float],
        filters: SearchFilters,
        excluded_ids: Iterable[UUID],
        limit: int,
    ) -> list[FoodCandidate]:
        excluded = frozenset(excluded_ids)
        self.calls.append((filters, excluded, limit))
        if self.fail_after is not None and len(self.calls) > self.fail_after:
            raise RuntimeError("vector search unavailable")
        matches = [
            food
            for food in self.foods
            if food.id not in excluded and self._matches(food, filters)
        ]
        matches.sort(key=lambda food: food.similarity, reverse=True)
        return matches[:limit]

    def get_food(self, food_id: UUID) -> FoodCandidate | None:
        return next((food for food in self.foods if food.id == food_id), None)

    def _matches(self, food: FoodCandidate, filters: SearchFilters) -> bool:
        if filters.category and food.raw_category != filters.category:
            return False
        if filters.meal_slot and filters.meal_slot not in self.slot_tags.get(
            food.id, {filters.meal_slot}
        ):
            return False
        if filters.min_protein is not None and food.macros.protein_g < (
            filters.min_protein
        ):
            return False
        if filters.max_calories is not None and food.macros.calories > (
            filters.max_calories
        ):
            return False
        return True


@dataclass
class InMemoryUserDataRepository(UserDataRepository):
    """In-memory user data repository for tests."""

    profiles: dict[UUID, UserProfile] = field(default_factory=dict)
    goals: dict[UUID, Goal] = field(default_factory=dict)
    workouts: set[tuple[UUID, date]] = field(default_factory=set)

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        return self.profiles.get(user_id)

    def get_active_goal(self, user_id: UUID) -> Goal | None:
        return self.goals.get(user_id)

    def has_scheduled_workout(self, user_id: UUID, plan_date: date) -> bool:
        return (user_id, plan_date) in self.workouts


@dataclass
class InMemoryMealSlotRepository(MealSlotRepository):
    """In-memory meal slot repository for tests."""

    slots: list[MealSlot] = field(default_factory=list)

    def list_slots(self) -> list[MealSlot]:
        return sorted(self.slots, key=lambda slot: slot.display_order)


@dataclass
class InMemoryNutritionTargetRepository(NutritionTargetRepository):
    """In-memory nutrition target repository for tests."""

    targets: dict[tuple[UUID, UUID, bool], NutritionTarget] = field(
        default_factory=dict
    )
    saved: list[NutritionTarget] = field(default_factory=list)

    def get_active_target(
        self, user_id: UUID, goal_id: UUID, is_training_day: bool
    ) -> NutritionTarget | None:
        return self.targets.get((user_id, goal_id, is_training_day))

    def save_target(
        self, user_id: UUID, goal_id: UUID, target: NutritionTarget
    ) -> None:
        self.targets = {
            key: value for key, value in self.targets.items() if key[1] == goal_id
        }
        self.targets[(user_id, goal_id, target.is_training_day)] = target
        self.saved.append(target)


@dataclass
class InMemoryMealPlanRepository(MealPlanRepository):
    """In-memory meal plan repository for tests."""

    plans: dict[UUID, MealPlan] = field(default_factory=dict)
    drafts: list[MealPlanDraft] = field(default_factory=list)
    completed_food_ids: dict[UUID, set[UUID]] = field(default_factory=dict)
    recent_queries: list[tuple[UUID, date, date]] = field(default_factory=list)
    fail_create: bool = False
    conflict_plan: MealPlan | None = None

    def get_plan(self, user_id: UUID, plan_date: date) -> MealPlan | None:
        for plan in self.plans.values():
            if plan.user_id == user_id and plan.plan_date == plan_date:
                return plan
        return None

    def get_plan_by_id(self, plan_id: UUID) -> MealPlan | None:
        return self.plans.get(plan_id)

    def create_plan(self, draft: MealPlanDraft) -> UUID:
        self.drafts.append(draft)
        if self.fail_create:
            raise TransactionFailedError("insert failed")
        if self.conflict_plan is not None:
            self.plans[self.conflict_plan.id] = self.conflict_plan
            raise PlanAlreadyExistsError("plan exists")
        if self.get_plan(draft.user_id, draft.plan_date) is not None:
            raise PlanAlreadyExistsError("plan exists")
        plan_id = uuid4()
        meals: dict[str, list[MealPlanItem]] = {}
        for item in draft.items:
            meals.setdefault(item.slot_code, []).append(
                MealPlanItem(
                    id=uuid4(),
                    meal_plan_id=plan_id,
                    slot_id=item.slot_id,
                    slot_code=item.slot_code,
                    food_id=item.food_id,
                    food_name=item.food_name,
                    category=item.category,
                    grams=item.grams,
                    calories=item.calories,
                    protein_g=item.protein_g,
                    carbs_g=item.carbs_g,
                    fat_g=item.fat_g,
                    display_order=item.display_order,
                    reason=item.reason,
                )
            )
        self.plans[plan_id] = MealPlan(
            id=plan_id,
            user_id=draft.user_id,
            plan_date=draft.plan_date,
            is_training_day=draft.is_training_day,
            target=draft.target,
            actual=MealNutrition(0.0, 0.0, 0.0, 0.0),
            meals=meals,
        )
        return plan_id

    def list_recent_completed_food_ids(
        self, user_id: UUID, since: date, until: date
    ) -> set[UUID]:
        self.recent_queries.append((user_id, since, until))
        return set(self.completed_food_ids.get(user_id, set()))

    def get_item(self, item_id: UUID) -> MealPlanItem | None:
        for plan in self.plans.values():
            for item in plan.items:
                if item.id == item_id:
                    return item
        return None

    def add_item(self, plan_id: UUID, draft: MealPlanItemDraft) -> MealPlanItem:
        item = MealPlanItem(
            id=uuid4(),
            meal_plan_id=plan_id,
            slot_id=draft.slot_id,
            slot_code=draft.slot_code,
            food_id=draft.food_id,
            food_name=draft.food_name,
            category=draft.category,
            grams=draft.grams,
            calories=draft.calories,
            protein_g=draft.protein_g,
            carbs_g=draft.carbs_g,
            fat_g=draft.fat_g,
            display_order=draft.display_order,
            reason=draft.reason,
        )
        plan = self.plans[plan_id]
        meals = {code: list(items) for code, items in plan.meals.items()}
        meals.setdefault(draft.slot_code, []).append(item)
        self.plans[plan_id] = _replace_plan(plan, meals=meals)
        return item

    def set_item_completed(self, item_id: UUID, completed: bool) -> None:
        for plan_id, plan in self.plans.items():
            meals = {
                code: [
                    _with_completed(item, completed) if item.id == item_id else item
                    for item in items
                ]
                for code, items in plan.meals.items()
            }
            self.plans[plan_id] = _replace_plan(plan, meals=meals)

    def update_actual_totals(self, plan_id: UUID, totals: MealNutrition) -> None:
        self.plans[plan_id] = _replace_plan(self.plans[plan_id], actual=totals)


def _with_completed(item: MealPlanItem, completed: bool) -> MealPlanItem:
    return MealPlanItem(
        id=item.id,
        meal_plan_id=item.meal_plan_id,
        slot_id=item.slot_id,
        slot_code=item.slot_code,
        food_id=item.food_id,
        food_name=item.food_name,
        category=item.category,
        grams=item.grams,
        calories=item.calories,
        protein_g=item.protein_g,
        carbs_g=item.carbs_g,
        fat_g=item.fat_g,
        display_order=item.display_order,
        completed=completed,
        reason=item.reason,
    )


def _replace_plan(plan: MealPlan, **changes: object) -> MealPlan:
    return MealPlan(
        id=plan.id,
        user_id=plan.user_id,
        plan_date=plan.plan_date,
        is_training_day=plan.is_training_day,
        target=plan.target,
        actual=changes.get("actual", plan.actual),  # type: ignore[arg-type]
        meals=changes.get("meals", plan.meals),  # type: ignore[arg-type]
    )


@dataclass
class InMemoryFoodCatalogRepository(FoodCatalogRepository):
    """In-memory catalog repository for tests."""

    foods: list[CatalogFood] = field(default_factory=list)
    embeddings: dict[UUID, FoodEmbedding] = field(default_factory=dict)
    upsert_batches: list[int] = field(default_factory=list)

    def list_foods(self) -> list[CatalogFood]:
        return list(self.foods)

    def upsert_embeddings(self, embeddings: list[FoodEmbedding]) -> None:
        self.upsert_batches.append(len(embeddings))
        for embedding in embeddings:
            self.embeddings[embedding.food_id] = embedding

    def embedding_stats(self) -> EmbeddingStats:
        return EmbeddingStats(total=len(self.embeddings), last_updated=None)


def balanced_catalog() -> list[FoodCandidate]:
    """A small catalog covering every food group."""
    return [
        make_food("Grilled chicken breast", "protein", 165, 31, 0, 3.6, 0.92),
        make_food("Steamed salmon", "protein", 208, 20, 0, 13, 0.9),
        make_food("Boiled eggs", "protein", 155, 13, 1.1, 11, 0.88),
        make_food("Lean beef steak", "protein", 180, 26, 0, 8, 0.86),
        make_food("Brown rice", "carbs", 111, 2.6, 23, 0.9, 0.8),
        make_food("Whole wheat bread", "carbs", 247, 13, 41, 3.4, 0.78),
        make_food("Steamed broccoli", "vegetables", 35, 2.4, 7, 0.4, 0.7),
        make_food("Spinach", "vegetables", 23, 2.9, 3.6, 0.4, 0.68),
        make_food("Banana", "fruits", 89, 1.1, 23, 0.3, 0.6),
        make_food("Greek yogurt", "dairy", 59, 10, 3.6, 0.4, 0.62),
        make_food("Almonds", "fats", 579, 21, 22, 50, 0.55),
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def candidate_source() -> FakeCandidateSource:
    return FakeCandidateSource(foods=balanced_catalog())


@pytest.fixture
def engine(
    embedding_client: FakeEmbeddingClient, candidate_source: FakeCandidateSource
) -> MealRecommendationEngine:
    return MealRecommendationEngine(
        embeddings=EmbeddingService(client=embedding_client, cache=InMemoryCache()),
        source=candidate_source,
        tuning=RecommendationTuning(),
    )


@pytest.fixture
def meal_slots() -> list[MealSlot]:
    return [
        make_slot("breakfast", 25, 1),
        make_slot("lunch", 40, 2),
        make_slot("dinner", 35, 3),
    ]


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def user_data(user_id: UUID) -> InMemoryUserDataRepository:
    return InMemoryUserDataRepository(
        profiles={
            user_id: UserProfile(
                gender=Gender.MALE, weight_kg=80, height_cm=180, age=25
            )
        },
        goals={
            user_id: Goal(
                id=uuid4(), objective=Objective.GAIN_MUSCLE, sessions_per_week=5
            )
        },
    )


@pytest.fixture
def target_repository() -> InMemoryNutritionTargetRepository:
    return InMemoryNutritionTargetRepository()


@pytest.fixture
def plan_repository() -> InMemoryMealPlanRepository:
    return InMemoryMealPlanRepository()


@pytest.fixture
def meal_plan_service(
    user_data: InMemoryUserDataRepository,
    meal_slots: list[MealSlot],
    target_repository: InMemoryNutritionTargetRepository,
    plan_repository: InMemoryMealPlanRepository,
    engine: MealRecommendationEngine,
    candidate_source: FakeCandidateSource,
) -> MealPlanService:
    return MealPlanService(
        users=user_data,
        slots=InMemoryMealSlotRepository(meal_slots),
        targets=target_repository,
        plans=plan_repository,
        engine=engine,
        foods=candidate_source,
    )


@pytest.fixture
def catalog_repository() -> InMemoryFoodCatalogRepository:
    return InMemoryFoodCatalogRepository()


@pytest.fixture
def container(
    settings: Settings,
    meal_plan_service: MealPlanService,
    catalog_repository: InMemoryFoodCatalogRepository,
    embedding_client: FakeEmbeddingClient,
) -> AppContainer:
    catalog_service = FoodCatalogService(
        repository=catalog_repository, embedding_client=embedding_client
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        meal_plan_service=meal_plan_service,
        catalog_service=catalog_service,
        close_resources=close_resources,
    )
