"""Tests for the aiosqlite repositories."""

import json
from datetime import datetime, timezone

import aiosqlite
import pytest

from daily_trainer.config import EngineConfig
from daily_trainer.data.catalog_loader import load_catalog, seed_catalog_from_json
from daily_trainer.db import (
    ExerciseCatalogRepository,
    PlanProposalRepository,
    PlanRepository,
    TrainingEventRepository,
    UserProgressRepository,
    init_db,
    seed_catalog,
)
from daily_trainer.errors import TransientGatewayError
from daily_trainer.models.exercises import DEFAULT_CATALOG
from daily_trainer.models.plan import ItemStatus, Plan, PlanItem, PlanStatus
from daily_trainer.models.progress import (
    PlanProposal,
    ProgressRollup,
    ProposalSource,
    TrainingEvent,
    TrainingEventType,
)
from daily_trainer.models.survey import SubscriptionTier, SurveyInput
from daily_trainer.services.orchestrator import PlanOrchestrator


def _item(plan_id, ref, order_index, sets_total=3):
    return PlanItem(
        plan_id=plan_id,
        exercise_ref=ref,
        order_index=order_index,
        sets_total=sets_total,
        rest_seconds=30,
        estimated_minutes=5,
        category_tag="technique",
    )


class TestPlanRepository:
    """Tests for PlanRepository."""

    @pytest.mark.asyncio
    async def test_create_is_idempotent_per_day(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)

        first = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        second = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        other_day = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-11"))

        assert first.id == second.id
        assert other_day.id != first.id
        assert first.status == PlanStatus.ACTIVE
        assert first.created_at is not None

    @pytest.mark.asyncio
    async def test_aborted_plan_frees_the_day(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        await repo.update_plan(plan.id, {"status": PlanStatus.ABORTED})

        assert await repo.get_plan("alice", "2024-05-10") is None
        replacement = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        assert replacement.id != plan.id

    @pytest.mark.asyncio
    async def test_update_plan_expected_status(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))

        completed = await repo.update_plan(
            plan.id, {"status": PlanStatus.COMPLETED}, expected_status=PlanStatus.ACTIVE
        )
        assert completed.status == PlanStatus.COMPLETED

        again = await repo.update_plan(
            plan.id, {"status": PlanStatus.COMPLETED}, expected_status=PlanStatus.ACTIVE
        )
        assert again is None

    @pytest.mark.asyncio
    async def test_update_plan_rejects_unknown_columns(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        with pytest.raises(ValueError):
            await repo.update_plan(plan.id, {"owner_id": "mallory"})

    @pytest.mark.asyncio
    async def test_items_round_trip_in_order(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))

        inserted = await repo.insert_items([_item(plan.id, "b", 1), _item(plan.id, "a", 0)])

        assert all(item.id is not None for item in inserted)
        listed = await repo.list_items(plan.id)
        assert [item.exercise_ref for item in listed] == ["a", "b"]
        assert listed[0].status == ItemStatus.PENDING
        assert listed[0].category_tag == "technique"

    @pytest.mark.asyncio
    async def test_update_item_compare_and_swap(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        [item] = await repo.insert_items([_item(plan.id, "a", 0)])
        done_at = datetime(2024, 5, 10, 9, 30, tzinfo=timezone.utc)

        updated = await repo.update_item(
            item.id,
            {"sets_completed": 3, "status": ItemStatus.COMPLETED, "completed_at": done_at},
            expected={"sets_completed": 0, "sets_total": 3},
        )
        assert updated.sets_completed == 3
        assert updated.completed_at == done_at

        stale = await repo.update_item(item.id, {"sets_completed": 1}, expected={"sets_completed": 0})
        assert stale is None
        assert (await repo.get_item(item.id)).sets_completed == 3

    @pytest.mark.asyncio
    async def test_update_item_guard_on_several_columns(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        [item] = await repo.insert_items([_item(plan.id, "a", 0)])
        await repo.update_item(item.id, {"sets_total": 5, "estimated_minutes": 8})

        stale = await repo.update_item(
            item.id,
            {"sets_completed": 1},
            expected={"sets_completed": 0, "sets_total": 3, "status": ItemStatus.PENDING},
        )
        assert stale is None

        updated = await repo.update_item(
            item.id,
            {"sets_completed": 1, "status": ItemStatus.IN_PROGRESS},
            expected={"sets_completed": 0, "sets_total": 5, "status": ItemStatus.PENDING},
        )
        assert updated.sets_completed == 1
        assert updated.sets_total == 5
        assert updated.estimated_minutes == 8

    @pytest.mark.asyncio
    async def test_complete_plan_applies_rollup_once(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        progress = UserProgressRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        rollup = ProgressRollup(owner_id="alice", plan_id=plan.id, active_minutes=17)

        completed = await repo.complete_plan(plan.id, PlanStatus.ACTIVE, rollup)
        again = await repo.complete_plan(plan.id, PlanStatus.ACTIVE, rollup)

        assert completed.status == PlanStatus.COMPLETED
        assert again is None
        stored = await progress.get_progress("alice")
        assert stored.minutes_active == 17
        assert stored.training_days == 1

    @pytest.mark.asyncio
    async def test_complete_plan_rolls_back_when_counters_fail(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        rollup = ProgressRollup(owner_id="alice", plan_id=plan.id, active_minutes=17)
        async with aiosqlite.connect(seeded_db_path) as db:
            await db.execute("DROP TABLE user_progress")
            await db.commit()

        with pytest.raises(TransientGatewayError) as exc_info:
            await repo.complete_plan(plan.id, PlanStatus.ACTIVE, rollup)

        assert exc_info.value.operation == "complete_plan"
        assert (await repo.get_plan_by_id(plan.id)).status == PlanStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_sets_check_constraint(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        [item] = await repo.insert_items([_item(plan.id, "a", 0)])

        with pytest.raises(TransientGatewayError):
            await repo.update_item(item.id, {"sets_completed": 5})

    @pytest.mark.asyncio
    async def test_delete_items(self, seeded_db_path):
        repo = PlanRepository(seeded_db_path)
        plan = await repo.create_plan(Plan(owner_id="alice", plan_date="2024-05-10"))
        await repo.insert_items([_item(plan.id, "a", 0), _item(plan.id, "b", 1)])

        await repo.delete_items(plan.id)

        assert await repo.list_items(plan.id) == []

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        repo = PlanRepository(tmp_path / "missing" / "nested" / "test.db")
        with pytest.raises(TransientGatewayError) as exc_info:
            await repo.get_plan("alice", "2024-05-10")
        assert exc_info.value.operation == "get_plan"


class TestExerciseCatalogRepository:
    """Tests for the catalog repository and seeding."""

    @pytest.mark.asyncio
    async def test_seeded_catalog(self, seeded_db_path):
        repo = ExerciseCatalogRepository(seeded_db_path)
        exercises = await repo.list_exercises(SubscriptionTier.FREE)

        assert len(exercises) == len(DEFAULT_CATALOG)
        assert [ex.id for ex in exercises] == [ex.id for ex in DEFAULT_CATALOG]
        # Premium exercises keep their catalog position
        assert exercises[2].is_premium
        assert not exercises[3].is_premium

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, seeded_db_path):
        assert await seed_catalog(seeded_db_path) == 0
        assert await ExerciseCatalogRepository(seeded_db_path).count() == len(DEFAULT_CATALOG)

    @pytest.mark.asyncio
    async def test_get_exercise(self, seeded_db_path):
        repo = ExerciseCatalogRepository(seeded_db_path)
        exercise = await repo.get_exercise("physical-plyometric-jumps")
        assert exercise.duration_seconds == 120
        assert exercise.is_premium
        assert await repo.get_exercise("nope") is None

    @pytest.mark.asyncio
    async def test_seed_from_json(self, temp_db_path, tmp_path):
        catalog_file = tmp_path / "exercise_catalog.json"
        catalog_file.write_text(
            json.dumps(
                {
                    "exercises": [
                        {"id": "juggling", "name": "Juggling", "duration_seconds": 45, "category_tag": "technique"},
                        {"name": "Missing id"},
                        {"id": "sprint", "name": "Sprint", "duration_seconds": 30, "is_premium": True},
                    ]
                }
            )
        )
        await init_db(temp_db_path)

        count = await seed_catalog_from_json(temp_db_path, catalog_file)

        assert count == 2
        stored = await ExerciseCatalogRepository(temp_db_path).list_exercises(SubscriptionTier.FREE)
        assert [ex.id for ex in stored] == ["juggling", "sprint"]

    def test_load_catalog_missing_file(self, tmp_path):
        assert load_catalog(tmp_path / "absent.json") == []

    def test_load_catalog_list_format(self, tmp_path):
        catalog_file = tmp_path / "catalog.json"
        catalog_file.write_text(json.dumps([{"id": 7, "name": "Rondo", "duration_seconds": "90"}]))

        [exercise] = load_catalog(catalog_file)

        assert exercise.id == "7"
        assert exercise.duration_seconds == 90
        assert exercise.order_index == 0


class TestUserProgressRepository:
    """Tests for cumulative progress counters."""

    @pytest.mark.asyncio
    async def test_counters_accumulate(self, seeded_db_path):
        repo = UserProgressRepository(seeded_db_path)

        await repo.add_active_minutes("alice", 12)
        await repo.add_active_minutes("alice", 8)
        await repo.increment_training_days("alice")

        progress = await repo.get_progress("alice")
        assert progress.minutes_active == 20
        assert progress.training_days == 1

    @pytest.mark.asyncio
    async def test_missing_owner_starts_at_zero(self, seeded_db_path):
        progress = await UserProgressRepository(seeded_db_path).get_progress("bob")
        assert progress.minutes_active == 0
        assert progress.training_days == 0


class TestPlanProposalRepository:
    """Tests for the proposal ledger."""

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, seeded_db_path):
        repo = PlanProposalRepository(seeded_db_path)
        proposal = PlanProposal(
            owner_id="alice", plan_date="2024-05-10", source=ProposalSource.AUTO_SILENT, plan_id=1
        )

        first = await repo.upsert_proposal(proposal)
        second = await repo.upsert_proposal(proposal)
        await repo.upsert_proposal(
            PlanProposal(owner_id="alice", plan_date="2024-05-10", source=ProposalSource.USER_SURVEY)
        )

        assert first.id == second.id
        assert second.idempotency_key == "alice:2024-05-10:auto_silent"
        assert len(await repo.list_for_owner("alice", "2024-05-10")) == 2


class TestTrainingEventRepository:
    """Tests for the local event store."""

    @pytest.mark.asyncio
    async def test_record_and_list(self, seeded_db_path):
        repo = TrainingEventRepository(seeded_db_path)
        occurred = datetime(2024, 5, 10, 9, 30, tzinfo=timezone.utc)

        await repo.record(
            TrainingEvent(
                event_type=TrainingEventType.ITEM_SET_COMPLETED,
                owner_id="alice",
                plan_id=1,
                item_id=2,
                exercise_ref="technique-wall-passing",
                sets_completed=1,
                plan_date="2024-05-10",
                occurred_at=occurred,
                metadata={"previous_sets_completed": 0},
            )
        )

        [event] = await repo.list_events("alice", plan_id=1)
        assert event.event_type == TrainingEventType.ITEM_SET_COMPLETED
        assert event.plan_date == "2024-05-10"
        assert event.occurred_at == occurred
        assert event.metadata == {"previous_sets_completed": 0}
        assert await repo.list_events("alice", plan_id=99) == []

    @pytest.mark.asyncio
    async def test_list_events_by_day(self, seeded_db_path):
        repo = TrainingEventRepository(seeded_db_path)
        for plan_date, event_type in [
            ("2024-05-08", TrainingEventType.ITEM_COMPLETED),
            ("2024-05-09", TrainingEventType.ITEM_SKIPPED),
            ("2024-05-10", TrainingEventType.ITEM_COMPLETED),
            (None, TrainingEventType.ITEM_COMPLETED),
        ]:
            await repo.record(TrainingEvent(event_type=event_type, owner_id="alice", plan_date=plan_date))
        await repo.record(
            TrainingEvent(
                event_type=TrainingEventType.ITEM_COMPLETED, owner_id="bob", plan_date="2024-05-10"
            )
        )

        everything = await repo.list_events_by_day("alice")
        assert [e.plan_date for e in everything] == ["2024-05-08", "2024-05-09", "2024-05-10"]

        ranged = await repo.list_events_by_day("alice", from_date="2024-05-09", to_date="2024-05-09")
        assert [e.event_type for e in ranged] == [TrainingEventType.ITEM_SKIPPED]

        completions = await repo.list_events_by_day(
            "alice", event_types=[TrainingEventType.ITEM_COMPLETED]
        )
        assert [e.plan_date for e in completions] == ["2024-05-08", "2024-05-10"]


class TestOrchestratorOnSqlite:
    """The orchestrator against the real repositories."""

    @pytest.mark.asyncio
    async def test_full_day(self, tmp_path):
        config = EngineConfig(data_dir=tmp_path)
        await init_db(config.db_path)
        await seed_catalog(config.db_path)
        orchestrator = PlanOrchestrator.from_config(config)

        today = await orchestrator.generate_from_survey("alice", SurveyInput(exercises_count=2))
        for item in today.items:
            update = await orchestrator.mark_item_completed("alice", item.id)

        assert update.plan_completed
        progress = await orchestrator.get_user_progress("alice")
        assert progress.training_days == 1
        assert progress.minutes_active == sum(item.estimated_minutes for item in today.items)

        events = await TrainingEventRepository(config.db_path).list_events("alice")
        assert [event.event_type for event in events][0] == TrainingEventType.PLAN_GENERATED
        assert events[-1].event_type == TrainingEventType.PLAN_COMPLETED

    @pytest.mark.asyncio
    async def test_history_reads(self, tmp_path):
        config = EngineConfig(data_dir=tmp_path)
        await init_db(config.db_path)
        await seed_catalog(config.db_path)
        orchestrator = PlanOrchestrator.from_config(config)

        today = await orchestrator.generate_from_survey("alice", SurveyInput(exercises_count=1))
        await orchestrator.mark_item_completed("alice", today.items[0].id)

        streak = await orchestrator.get_user_streak("alice")
        assert streak.current == 1
        [day] = await orchestrator.get_daily_stats("alice")
        assert day.stat_date == today.plan.plan_date
        assert day.minutes_completed == today.items[0].estimated_minutes
        adherence = await orchestrator.get_plan_adherence("alice", window_days=1)
        assert adherence.adherence_pct == 100
