"""Tests for templates, day overrides and blocks administration."""

from datetime import datetime, time, timedelta

import pytest

from agenda.core.errors import InvalidIntervalError, InvalidRangeError, NotFoundError
from agenda.services import agenda
from agenda.services.slots import generate_slots

from conftest import MONDAY, local

PROF = "prof-1"
BEFORE = local(MONDAY - timedelta(days=1), 12)


def _template(db, **kw):
    data = dict(
        professional_id=PROF, day_of_week=1, start_time=time(9), end_time=time(12), slot_duration_minutes=30
    )
    data.update(kw)
    return agenda.create_template(db, **data)


class TestTemplates:
    def test_create_and_list(self, db):
        t = _template(db)
        _template(db, day_of_week=3, start_time=time(14), end_time=time(18))
        _template(db, professional_id="prof-2")
        listed = agenda.list_templates(db, PROF)
        assert [x.day_of_week for x in listed] == [1, 3]
        assert listed[0].id == t.id
        assert t.active and t.created_at is not None

    @pytest.mark.parametrize(
        "changes",
        [
            {"start_time": time(12), "end_time": time(9)},
            {"start_time": time(9), "end_time": time(9)},
            {"day_of_week": 7},
            {"day_of_week": -1},
            {"slot_duration_minutes": 0},
            {"valid_from": MONDAY, "valid_to": MONDAY - timedelta(days=1)},
        ],
    )
    def test_invalid_template_is_rejected(self, db, changes):
        with pytest.raises(InvalidIntervalError):
            _template(db, **changes)
        assert agenda.list_templates(db, PROF) == []

    def test_update_changes_generated_slots(self, db):
        t = _template(db)
        t = agenda.update_template(db, t.id, {"end_time": time(10), "slot_duration_minutes": 20, "id": 99})
        assert t.end_time == time(10)
        assert t.id != 99
        assert len(generate_slots(db, PROF, MONDAY, MONDAY, BEFORE)) == 3

    def test_invalid_update_leaves_template_untouched(self, db):
        t = _template(db)
        with pytest.raises(InvalidIntervalError):
            agenda.update_template(db, t.id, {"end_time": time(8)})
        assert agenda.get_template(db, t.id).end_time == time(12)

    def test_deactivate_and_activate(self, db):
        t = _template(db)
        agenda.deactivate_template(db, t.id)
        assert generate_slots(db, PROF, MONDAY, MONDAY, BEFORE) == []
        assert agenda.list_templates(db, PROF, active=True) == []
        assert len(agenda.list_templates(db, PROF, active=False)) == 1

        agenda.activate_template(db, t.id)
        assert len(generate_slots(db, PROF, MONDAY, MONDAY, BEFORE)) == 6

    def test_current_on_hides_history(self, db):
        _template(db, valid_to=MONDAY - timedelta(days=1))
        current = _template(db, valid_from=MONDAY)
        assert [t.id for t in agenda.list_templates(db, PROF, current_on=MONDAY)] == [current.id]

    def test_explicit_nulls_are_ignored_for_required_fields(self, db):
        t = _template(db, valid_to=MONDAY + timedelta(days=30))
        t = agenda.update_template(
            db,
            t.id,
            {"start_time": None, "end_time": None, "day_of_week": None,
             "slot_duration_minutes": None, "active": None, "valid_to": None},
        )
        assert (t.start_time, t.end_time, t.day_of_week) == (time(9), time(12), 1)
        assert t.slot_duration_minutes == 30 and t.active is True
        # la vigenza invece si può azzerare
        assert t.valid_to is None

    def test_unknown_template(self, db):
        with pytest.raises(NotFoundError):
            agenda.update_template(db, 123, {"active": False})
        with pytest.raises(NotFoundError):
            agenda.deactivate_template(db, 123)


class TestWeekSchedule:
    def test_replacement_closes_old_templates_the_day_before(self, db):
        old = _template(db)
        next_monday = MONDAY + timedelta(days=7)
        new_rows = agenda.replace_week_schedule(
            db,
            PROF,
            [
                {"day_of_week": 1, "start_time": time(14), "end_time": time(16), "slot_duration_minutes": 60},
                {"day_of_week": 2, "start_time": time(9), "end_time": time(10)},
            ],
            next_monday,
        )
        assert len(new_rows) == 2
        assert all(r.valid_from == next_monday and r.valid_to is None for r in new_rows)
        assert agenda.get_template(db, old.id).valid_to == next_monday - timedelta(days=1)

        assert len(generate_slots(db, PROF, MONDAY, MONDAY, BEFORE)) == 6
        later = generate_slots(db, PROF, next_monday, next_monday, BEFORE)
        assert [s.duration_minutes for s in later] == [60, 60]
        tuesday = next_monday + timedelta(days=1)
        assert len(generate_slots(db, PROF, tuesday, tuesday, BEFORE)) == 2

    def test_future_templates_are_deactivated(self, db):
        next_monday = MONDAY + timedelta(days=7)
        planned = _template(db, valid_from=next_monday + timedelta(days=7))
        agenda.replace_week_schedule(
            db, PROF, [{"day_of_week": 1, "start_time": time(8), "end_time": time(9)}], next_monday
        )
        assert agenda.get_template(db, planned.id).active is False

    def test_invalid_entry_changes_nothing(self, db):
        old = _template(db)
        with pytest.raises(InvalidIntervalError):
            agenda.replace_week_schedule(
                db, PROF, [{"day_of_week": 1, "start_time": time(10), "end_time": time(9)}], MONDAY
            )
        assert agenda.get_template(db, old.id).valid_to is None


class TestOverrides:
    def test_create_list_delete(self, db):
        o = agenda.create_override(
            db, professional_id=PROF, day=MONDAY, start_time=time(8), end_time=time(10), notes="Feriado puente"
        )
        agenda.create_override(
            db, professional_id=PROF, day=MONDAY + timedelta(days=10), start_time=time(8), end_time=time(9)
        )
        assert len(agenda.list_overrides(db, PROF)) == 2
        assert [x.id for x in agenda.list_overrides(db, PROF, MONDAY, MONDAY + timedelta(days=1))] == [o.id]

        agenda.delete_override(db, o.id)
        assert len(agenda.list_overrides(db, PROF)) == 1
        with pytest.raises(NotFoundError):
            agenda.delete_override(db, o.id)

    def test_update_moves_override(self, db):
        o = agenda.create_override(
            db, professional_id=PROF, day=MONDAY, start_time=time(8), end_time=time(10), notes="Guardia"
        )
        tuesday = MONDAY + timedelta(days=1)
        o = agenda.update_override(
            db, o.id, {"date": tuesday, "end_time": time(9), "start_time": None, "notes": None}
        )
        assert o.date == tuesday
        assert (o.start_time, o.end_time) == (time(8), time(9))
        assert o.notes is None
        assert len(generate_slots(db, PROF, tuesday, tuesday, BEFORE)) == 2

    def test_invalid_update_leaves_override_untouched(self, db):
        o = agenda.create_override(db, professional_id=PROF, day=MONDAY, start_time=time(8), end_time=time(10))
        with pytest.raises(InvalidIntervalError):
            agenda.update_override(db, o.id, {"end_time": time(7)})
        assert agenda.get_override(db, o.id).end_time == time(10)
        with pytest.raises(NotFoundError):
            agenda.update_override(db, 999, {"notes": "x"})

    def test_invalid_window(self, db):
        with pytest.raises(InvalidIntervalError):
            agenda.create_override(db, professional_id=PROF, day=MONDAY, start_time=time(10), end_time=time(9))
        with pytest.raises(InvalidIntervalError):
            agenda.create_override(
                db, professional_id=PROF, day=MONDAY, start_time=time(9), end_time=time(10), slot_duration_minutes=0
            )


class TestBlocks:
    def test_create_update_delete(self, db):
        b = agenda.create_block(
            db, professional_id=PROF, start_at=local(MONDAY, 10), end_at=local(MONDAY, 11), reason="Vacaciones"
        )
        assert b.start_at == local(MONDAY, 10)

        b = agenda.update_block(db, b.id, {"end_at": local(MONDAY, 12)})
        assert b.end_at == local(MONDAY, 12)
        assert b.reason == "Vacaciones"

        agenda.delete_block(db, b.id)
        with pytest.raises(NotFoundError):
            agenda.get_block(db, b.id)

    def test_invalid_blocks(self, db):
        with pytest.raises(InvalidIntervalError):
            agenda.create_block(db, professional_id=PROF, start_at=local(MONDAY, 11), end_at=local(MONDAY, 10))
        with pytest.raises(InvalidIntervalError):
            agenda.create_block(
                db, professional_id=PROF, start_at=datetime(2024, 6, 3, 10), end_at=datetime(2024, 6, 3, 11)
            )
        b = agenda.create_block(db, professional_id=PROF, start_at=local(MONDAY, 10), end_at=local(MONDAY, 11))
        with pytest.raises(InvalidIntervalError):
            agenda.update_block(db, b.id, {"start_at": local(MONDAY, 12)})

    def test_list_by_dates(self, db):
        a = agenda.create_block(db, professional_id=PROF, start_at=local(MONDAY, 10), end_at=local(MONDAY, 11))
        # vacanza di più giorni che inizia prima dell'intervallo
        b = agenda.create_block(
            db, professional_id=PROF,
            start_at=local(MONDAY - timedelta(days=3), 0), end_at=local(MONDAY + timedelta(days=1), 0),
        )
        agenda.create_block(
            db, professional_id=PROF,
            start_at=local(MONDAY + timedelta(days=5), 9), end_at=local(MONDAY + timedelta(days=5), 10),
        )
        assert [x.id for x in agenda.list_blocks(db, PROF, MONDAY, MONDAY)] == [b.id, a.id]
        assert len(agenda.list_blocks(db, PROF)) == 3
        with pytest.raises(InvalidRangeError):
            agenda.list_blocks(db, PROF, MONDAY, MONDAY - timedelta(days=1))
