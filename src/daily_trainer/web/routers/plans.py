"""Daily plan routes."""

from datetime import date

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, Field

from ...config import MAX_EXERCISES, MAX_SETS, MIN_EXERCISES, MIN_SETS
from ...core.stats import DEFAULT_ADHERENCE_WINDOW_DAYS
from ...models.survey import SubscriptionTier, SurveyInput
from ...services.orchestrator import PlanOrchestrator

router = APIRouter(prefix="/plans", tags=["plans"])


class SurveyBody(BaseModel):
    """Survey answers for plan generation."""

    exercises_count: int = Field(default=4, ge=MIN_EXERCISES, le=MAX_EXERCISES)
    categories: list[str] = Field(default_factory=list)
    time_minutes: int = Field(default=30, gt=0)
    tier: SubscriptionTier = SubscriptionTier.FREE

    def to_survey(self) -> SurveyInput:
        return SurveyInput(
            exercises_count=self.exercises_count,
            categories=frozenset(self.categories),
            time_minutes=self.time_minutes,
            tier=self.tier,
        )


class SetProgressBody(BaseModel):
    """Set progress; omit `value` to add one set."""

    value: int | None = Field(default=None, ge=0)


class SetsTotalBody(BaseModel):
    """New number of sets (clamped to the allowed range)."""

    sets_total: int = Field(ge=MIN_SETS, le=MAX_SETS)


def get_orchestrator(request: Request) -> PlanOrchestrator:
    """Get the orchestrator from app state."""
    return request.app.state.orchestrator


def get_owner(x_user_id: str = Header(..., min_length=1)) -> str:
    """Owner id from the X-User-Id header."""
    return x_user_id


@router.get("/today")
async def today_plan(
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Today's plan with its items."""
    today = await orchestrator.get_today_plan(owner_id)
    if today is None:
        return {"plan": None, "items": []}
    return today.to_dict()


@router.post("/today/generate")
async def generate_plan(
    body: SurveyBody,
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Generate or top up today's plan from survey answers."""
    today = await orchestrator.generate_from_survey(owner_id, body.to_survey())
    return today.to_dict()


@router.post("/today/ensure")
async def ensure_plan(
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Silently generate today's plan if it is empty or short."""
    today = await orchestrator.ensure_today_plan_if_empty(owner_id)
    return {
        "generated": today is not None,
        "plan": today.to_dict() if today else None,
    }


@router.get("/today/summary")
async def today_summary(
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Completion summary for today."""
    summary = await orchestrator.get_today_summary(owner_id)
    return summary.to_dict()


@router.get("/progress")
async def user_progress(
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Cumulative active minutes and training days."""
    progress = await orchestrator.get_user_progress(owner_id)
    return progress.to_dict()


@router.get("/progress/streak")
async def user_streak(
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Current and best streak of app days with a completed exercise."""
    streak = await orchestrator.get_user_streak(owner_id)
    return streak.to_dict()


@router.get("/progress/stats")
async def daily_stats(
    from_date: date | None = None,
    to_date: date | None = None,
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Per-day totals, most recent day first."""
    stats = await orchestrator.get_daily_stats(
        owner_id,
        from_date.isoformat() if from_date else None,
        to_date.isoformat() if to_date else None,
    )
    return [day.to_dict() for day in stats]


@router.get("/progress/adherence")
async def plan_adherence(
    window_days: int = Query(default=DEFAULT_ADHERENCE_WINDOW_DAYS, ge=1, le=366),
    target_per_day: int | None = Query(default=None, ge=1),
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Days in the trailing window that met the daily target."""
    adherence = await orchestrator.get_plan_adherence(owner_id, window_days, target_per_day)
    return adherence.to_dict()


@router.post("/items/{item_id}/sets")
async def mark_set(
    item_id: int,
    body: SetProgressBody | None = None,
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Record a completed set, or set the completed count."""
    value = body.value if body else None
    update = await orchestrator.mark_set_completed(owner_id, item_id, value)
    return update.to_dict()


@router.post("/items/{item_id}/complete")
async def complete_item(
    item_id: int,
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Mark every set of an item as done."""
    update = await orchestrator.mark_item_completed(owner_id, item_id)
    return update.to_dict()


@router.put("/items/{item_id}/sets-total")
async def update_sets_total(
    item_id: int,
    body: SetsTotalBody,
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Change the number of sets for an item."""
    update = await orchestrator.update_item_sets_total(owner_id, item_id, body.sets_total)
    return update.to_dict()


@router.post("/items/{item_id}/skip")
async def skip_item(
    item_id: int,
    owner_id: str = Depends(get_owner),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
):
    """Skip an item for today."""
    update = await orchestrator.skip_item(owner_id, item_id)
    return update.to_dict()
