from datetime import date, timedelta

import pytest

from core.errors import ProgramNotFoundError, ProgressNotFoundError, TransientProgressConflict
from core.services.progress import (
    ProgressService,
    ResolveAction,
    StartOption,
    TodayStatus,
    locate_slot,
    next_after,
    order_workouts,
)
from fakes import CatalogUnavailable

TODAY = date(2026, 10, 19)
USER = "user-1"


def _service(memdb):
    return ProgressService(memdb.uow, clock=lambda: TODAY)


def _beginner(memdb, program_id=1):
    """14 weeks x 6 authored days; day 7 is a rest day with no entry."""
    memdb.add_program(program_id, duration_weeks=14, sessions_per_week=6)
    memdb.add_grid(program_id, weeks=14, days=6)


# --- pure helpers ---


def test_order_workouts_sorts_by_week_then_day(memdb):
    memdb.add_program(1)
    for week, day in [(2, 1), (1, 3), (1, 1), (10, 2), (2, 0 + 5)]:
        memdb.add_workout(1, week, day)
    assert [w.slot for w in order_workouts(memdb.workouts)] == [(1, 1), (1, 3), (2, 1), (2, 5), (10, 2)]


def test_locate_slot_branches(memdb):
    memdb.add_program(1)
    for week, day in [(1, 1), (1, 3), (2, 2)]:
        memdb.add_workout(1, week, day)
    seq = order_workouts(memdb.workouts)
    assert locate_slot(seq, (1, 3)) == (seq[1], ResolveAction.EXACT)
    assert locate_slot(seq, (1, 2)) == (seq[1], ResolveAction.CATCH_UP)
    assert locate_slot(seq, (1, 9)) == (seq[2], ResolveAction.CATCH_UP)
    assert locate_slot(seq, (2, 3)) == (seq[0], ResolveAction.CYCLE)
    assert next_after(seq, (2, 2)) is None


def test_locate_slot_requires_workouts():
    with pytest.raises(ValueError):
        locate_slot([], (1, 1))


# --- resolve_today ---


def test_rest_day_catches_up_to_next_week(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 1, 7)

    result = _service(memdb).resolve_today(USER)

    assert result.status == TodayStatus.WORKOUT
    assert result.action == ResolveAction.CATCH_UP
    assert result.workout.slot == (2, 1)
    assert memdb.progress[USER].position == (2, 1)
    assert memdb.progress_updates == 1


def test_past_last_entry_cycles_to_first(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 14, 7)

    result = _service(memdb).resolve_today(USER)

    assert result.action == ResolveAction.CYCLE
    assert result.workout.slot == (1, 1)
    assert memdb.progress[USER].position == (1, 1)


def test_position_on_last_entry_is_exact_not_cycled(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 14, 6)

    result = _service(memdb).resolve_today(USER)

    assert result.action == ResolveAction.EXACT
    assert result.workout.slot == (14, 6)


def test_exact_match_is_idempotent(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 3, 2)
    service = _service(memdb)

    first = service.resolve_today(USER)
    second = service.resolve_today(USER)

    assert first.workout == second.workout
    assert first.action == second.action == ResolveAction.EXACT
    assert memdb.progress_updates == 0


def test_second_call_after_catch_up_writes_nothing(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 5, 7)
    service = _service(memdb)

    first = service.resolve_today(USER)
    second = service.resolve_today(USER)

    assert first.workout == second.workout
    assert second.action == ResolveAction.EXACT
    assert memdb.progress_updates == 1


def test_catch_up_only_moves_forward(memdb):
    memdb.add_program(1, duration_weeks=4)
    for week, day in [(1, 1), (1, 3), (2, 2), (4, 1)]:
        memdb.add_workout(1, week, day)
    memdb.assign(USER, 1)
    service = _service(memdb)

    for start in [(1, 2), (1, 4), (2, 1), (2, 3), (3, 5)]:
        memdb.place(USER, 1, *start)
        result = service.resolve_today(USER)
        assert result.action == ResolveAction.CATCH_UP
        assert result.workout.slot > start


def test_unsorted_catalog_is_ordered_before_cycling(memdb):
    memdb.add_program(1, duration_weeks=3)
    for week, day in [(3, 2), (2, 1), (1, 2), (1, 1)]:
        memdb.add_workout(1, week, day)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 3, 4)

    result = _service(memdb).resolve_today(USER)

    assert result.action == ResolveAction.CYCLE
    assert result.workout.slot == (1, 1)


def test_program_switch_resets_progress(memdb):
    _beginner(memdb, program_id=1)
    memdb.add_program(2, duration_weeks=4, sessions_per_week=4, name="Maintenance")
    memdb.add_grid(2, weeks=4, days=4)
    memdb.place(USER, 1, 9, 4, completed_workouts_count=40, start_date=date(2026, 7, 1))
    memdb.assign(USER, 2)

    result = _service(memdb).resolve_today(USER)

    progress = memdb.progress[USER]
    assert progress.program_id == 2
    assert progress.position == (1, 1)
    assert progress.completed_workouts_count == 0
    assert progress.start_date == TODAY
    assert progress.total_workouts_count == 16
    assert result.workout.program_id == 2
    assert result.workout.slot == (1, 1)


def test_first_request_creates_progress_at_program_start(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)

    result = _service(memdb).resolve_today(USER)

    assert memdb.progress_creates == 1
    assert memdb.progress_updates == 0
    assert result.action == ResolveAction.EXACT
    progress = memdb.progress[USER]
    assert progress.position == (1, 1)
    assert progress.start_date == TODAY
    assert progress.phase == "MAIN"
    assert progress.total_workouts_count == 84


def test_first_request_with_event_seeds_from_schedule(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1, event_date=TODAY + timedelta(days=50))

    result = _service(memdb).resolve_today(USER)

    # Seeded at week 7 day 7, a rest day, so the resolver catches up.
    assert result.action == ResolveAction.CATCH_UP
    assert result.workout.slot == (8, 1)
    progress = memdb.progress[USER]
    assert progress.start_date == TODAY - timedelta(days=48)
    assert progress.event_date == TODAY + timedelta(days=50)


def test_unassigned_user_gets_no_program(memdb):
    _beginner(memdb)

    result = _service(memdb).resolve_today(USER)

    assert result.status == TodayStatus.NO_PROGRAM
    assert result.workout is None
    assert memdb.progress == {}


def test_empty_catalog_gets_no_workout(memdb):
    memdb.add_program(1)
    memdb.assign(USER, 1)

    result = _service(memdb).resolve_today(USER)

    assert result.status == TodayStatus.NO_WORKOUT
    assert result.workout is None
    assert result.progress.position == (1, 1)


def test_assigned_program_missing_from_catalog(memdb):
    memdb.assign(USER, 99)
    with pytest.raises(ProgramNotFoundError):
        _service(memdb).resolve_today(USER)


def test_catalog_failure_propagates_without_writes(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 1, 7)
    memdb.fail_catalog = True

    with pytest.raises(CatalogUnavailable):
        _service(memdb).resolve_today(USER)

    assert memdb.progress[USER].position == (1, 7)
    assert memdb.progress_updates == 0


def test_conflict_is_retried_once(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 1, 7)
    memdb.pending_conflicts = 1

    result = _service(memdb).resolve_today(USER)

    assert result.workout.slot == (2, 1)
    assert memdb.progress[USER].position == (2, 1)
    assert memdb.progress_updates == 2


def test_second_conflict_surfaces_transient_error(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 1, 7)
    memdb.pending_conflicts = 2

    with pytest.raises(TransientProgressConflict) as excinfo:
        _service(memdb).resolve_today(USER)

    assert excinfo.value.attempts == 2
    assert memdb.progress[USER].position == (1, 7)


def test_malformed_exercises_are_passed_through(memdb):
    memdb.add_program(1, duration_weeks=1)
    memdb.add_workout(1, 1, 1, exercises="not json{")
    memdb.assign(USER, 1)

    result = _service(memdb).resolve_today(USER)

    assert result.workout.exercises == "not json{"


# --- assign_program ---


def test_assign_program_seeds_schedule(memdb):
    _beginner(memdb)
    event = TODAY + timedelta(days=50)

    progress = _service(memdb).assign_program(USER, 1, event)

    assert progress.phase == "MAIN"
    assert progress.position == (7, 7)
    assert progress.event_date == event
    assert memdb.assignments[USER].program_id == 1
    assert memdb.assignments[USER].event_date == event


def test_assign_program_restarts_existing_progress(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    memdb.place(USER, 1, 6, 3, completed_workouts_count=30, last_workout_date=TODAY)

    progress = _service(memdb).assign_program(USER, 1, TODAY - timedelta(days=3))

    assert progress.phase == "MAINTENANCE"
    assert progress.position == (1, 1)
    assert progress.completed_workouts_count == 0
    assert progress.last_workout_date is None


def test_assign_unknown_program(memdb):
    with pytest.raises(ProgramNotFoundError):
        _service(memdb).assign_program(USER, 5)
    assert USER not in memdb.assignments


def test_assign_continue_keeps_position_and_count(memdb):
    _beginner(memdb)
    memdb.assign(USER, 1)
    last = TODAY - timedelta(days=1)
    memdb.place(USER, 1, 6, 3, completed_workouts_count=30, last_workout_date=last)
    event = TODAY + timedelta(days=50)

    progress = _service(memdb).assign_program(USER, 1, event, start_option=StartOption.CONTINUE)

    assert progress.position == (6, 3)
    assert progress.completed_workouts_count == 30
    assert progress.last_workout_date == last
    assert progress.start_date == TODAY
    assert progress.phase == "MAIN"
    assert progress.event_date == event


def test_assign_continue_without_progress_starts_at_beginning(memdb):
    _beginner(memdb)

    progress = _service(memdb).assign_program(USER, 1, TODAY + timedelta(days=50), start_option=StartOption.CONTINUE)

    assert progress.position == (1, 1)
    assert progress.completed_workouts_count == 0
    assert memdb.progress_creates == 1


def test_assign_beginning_ignores_event_position(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 6, 3, completed_workouts_count=30, last_workout_date=TODAY)

    progress = _service(memdb).assign_program(USER, 1, TODAY + timedelta(days=50), start_option=StartOption.BEGINNING)

    assert progress.position == (1, 1)
    assert progress.start_date == TODAY
    assert progress.phase == "MAIN"
    assert progress.completed_workouts_count == 0
    assert progress.last_workout_date is None


def test_assign_event_date_option_accepts_wire_value(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 2, 2, completed_workouts_count=4)

    progress = _service(memdb).assign_program(USER, 1, TODAY + timedelta(days=50), start_option="eventDate")

    assert progress.position == (7, 7)
    assert progress.start_date == TODAY - timedelta(days=48)
    assert progress.completed_workouts_count == 0


def test_assign_unknown_start_option(memdb):
    _beginner(memdb)
    with pytest.raises(ValueError):
        _service(memdb).assign_program(USER, 1, start_option="tomorrow")
    assert memdb.progress == {}


# --- advance_after_completion ---


def test_advance_moves_to_next_entry_and_counts(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 1, 6, completed_workouts_count=5)

    progress = _service(memdb).advance_after_completion(USER)

    assert progress.position == (2, 1)
    assert progress.completed_workouts_count == 6
    assert progress.last_workout_date == TODAY


def test_advance_skip_does_not_count(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 2, 2, completed_workouts_count=5)

    progress = _service(memdb).advance_after_completion(USER, skipped=True)

    assert progress.position == (2, 3)
    assert progress.completed_workouts_count == 5
    assert progress.last_workout_date is None


def test_advance_from_last_entry_cycles(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 14, 6)

    progress = _service(memdb).advance_after_completion(USER)

    assert progress.position == (1, 1)


def test_advance_on_empty_catalog_leaves_progress(memdb):
    memdb.add_program(1)
    placed = memdb.place(USER, 1, 3, 3, completed_workouts_count=2)

    progress = _service(memdb).advance_after_completion(USER)

    assert progress == placed
    assert memdb.progress_updates == 0


def test_advance_without_progress(memdb):
    _beginner(memdb)
    with pytest.raises(ProgressNotFoundError):
        _service(memdb).advance_after_completion(USER)


def test_skip_keeps_previous_workout_date(memdb):
    _beginner(memdb)
    last = TODAY - timedelta(days=2)
    memdb.place(USER, 1, 2, 2, last_workout_date=last)

    progress = _service(memdb).advance_after_completion(USER, skipped=True)

    assert progress.last_workout_date == last


# --- check_phase_transition ---


def test_event_passed_moves_main_to_maintenance(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 14, 6, phase="MAIN", event_date=TODAY - timedelta(days=1), completed_workouts_count=80)

    progress = _service(memdb).check_phase_transition(USER)

    assert progress.phase == "MAINTENANCE"
    assert progress.position == (1, 1)
    assert progress.start_date == TODAY
    assert progress.completed_workouts_count == 80
    assert memdb.progress_updates == 1


@pytest.mark.parametrize(
    "fields",
    [
        {"phase": "MAIN", "event_date": TODAY},
        {"phase": "MAIN", "event_date": None},
        {"phase": "PREP", "event_date": TODAY + timedelta(days=200)},
        {"phase": "MAINTENANCE", "event_date": TODAY - timedelta(days=30)},
    ],
)
def test_phase_unchanged_without_passed_event(memdb, fields):
    _beginner(memdb)
    placed = memdb.place(USER, 1, 4, 2, **fields)

    progress = _service(memdb).check_phase_transition(USER)

    assert progress == placed
    assert memdb.progress_updates == 0


def test_phase_transition_retries_conflict(memdb):
    _beginner(memdb)
    memdb.place(USER, 1, 14, 6, phase="MAIN", event_date=TODAY - timedelta(days=1))
    memdb.pending_conflicts = 1

    progress = _service(memdb).check_phase_transition(USER)

    assert progress.phase == "MAINTENANCE"
    assert memdb.progress_updates == 2


def test_phase_check_without_progress(memdb):
    _beginner(memdb)
    with pytest.raises(ProgressNotFoundError):
        _service(memdb).check_phase_transition(USER)
