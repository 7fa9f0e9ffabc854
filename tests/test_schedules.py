"""
Exam schedule, participation, attachment and sweep tests.
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from scoreboard.core import scheduler as scheduler_module
from scoreboard.core.config import settings
from scoreboard.core.dependencies import get_today
from scoreboard.core.exceptions import StorageError, ValidationError
from scoreboard.models import ExamParticipant, ExamSchedule, ScheduleFile
from scoreboard.services.schedule import Attachment, ScheduleService, validate_schedule_input

API = "/api/v1/schedules"


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar()


def stored_files(storage):
    if not storage.root.exists():
        return []
    return [p for p in storage.root.rglob("*") if p.is_file()]


class TestValidation:
    """Input checks made before anything is written"""

    def test_yesterday_rejected(self, today):
        with pytest.raises(ValidationError):
            validate_schedule_input("Mock", today - timedelta(days=1), today)

    def test_today_and_later_accepted(self, today):
        assert validate_schedule_input(" Mock ", today, today) == "Mock"
        assert validate_schedule_input("Mock", today + timedelta(days=30), today) == "Mock"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_name_required(self, today, name):
        with pytest.raises(ValidationError):
            validate_schedule_input(name, today, today)

    def test_date_required(self, today):
        with pytest.raises(ValidationError):
            validate_schedule_input("Mock", None, today)


class TestScheduleService:
    """Schedule writes against the database and blob storage"""

    def test_create_materializes_participants(self, db, students, storage, today):
        service = ScheduleService(db, storage)
        schedule = service.create_schedule(
            "Mock 3",
            today,
            today,
            [Attachment(file_name="seating plan.pdf", content=b"%PDF", content_type="application/pdf")],
        )
        db.commit()

        participants = service.list_participants(schedule.id)
        assert len(participants) == len(students)
        assert not any(p.is_participating for p in participants)

        [record] = service.list_files(schedule.id)
        assert record.file_name == "seating plan.pdf"
        assert record.file_size == 4
        assert record.storage_path.startswith(f"schedules/{schedule.id}/")
        assert storage.read(record.storage_path) == b"%PDF"

    def test_failed_upload_removes_stored_blobs(self, db, students, storage, today, monkeypatch):
        real_save = storage.save
        calls = []

        def flaky_save(path, data):
            calls.append(path)
            if len(calls) == 2:
                raise StorageError("disk full")
            real_save(path, data)

        monkeypatch.setattr(storage, "save", flaky_save)

        with pytest.raises(StorageError):
            ScheduleService(db, storage).create_schedule(
                "Mock",
                today,
                today,
                [Attachment("a.txt", b"a"), Attachment("b.txt", b"b")],
            )
        db.rollback()

        assert len(calls) == 2
        assert stored_files(storage) == []
        assert count(db, ExamSchedule) == 0

    def test_participation_upsert_is_idempotent(self, db, students, storage, today):
        service = ScheduleService(db, storage)
        schedule = service.create_schedule("Mock", today, today)
        db.commit()
        student_id = students[1].id

        service.set_participation(schedule.id, student_id, True)
        service.set_participation(schedule.id, student_id, True)
        db.commit()

        rows = [p for p in service.list_participants(schedule.id) if p.student_id == student_id]
        assert len(rows) == 1
        assert rows[0].is_participating is True

    def test_participation_inserts_missing_row(self, db, students, storage, today):
        service = ScheduleService(db, storage)
        schedule = service.create_schedule("Mock", today, today)
        db.commit()
        db.execute(ExamParticipant.__table__.delete())
        db.commit()

        participant = service.set_participation(schedule.id, students[0].id, True)
        db.commit()

        assert participant.is_participating is True
        assert count(db, ExamParticipant) == 1

    def test_delete_tolerates_missing_file(self, db, students, storage, today):
        service = ScheduleService(db, storage)
        schedule = service.create_schedule(
            "Mock", today, today, [Attachment("a.txt", b"a"), Attachment("b.txt", b"b")]
        )
        db.commit()
        first_path = service.list_files(schedule.id)[0].storage_path
        storage.delete(first_path)

        service.delete_schedule(schedule.id)
        db.commit()

        assert count(db, ExamSchedule) == 0
        assert count(db, ExamParticipant) == 0
        assert count(db, ScheduleFile) == 0
        assert stored_files(storage) == []

    def test_sweep_deletes_only_past_schedules(self, db, students, storage, today):
        service = ScheduleService(db, storage)
        two_days_ago = today - timedelta(days=2)
        past = service.create_schedule("Past", two_days_ago, two_days_ago, [Attachment("old.txt", b"old")])
        upcoming = service.create_schedule("Upcoming", today + timedelta(days=1), today, [Attachment("new.txt", b"new")])
        db.commit()
        past_id, upcoming_id = past.id, upcoming.id

        result = service.sweep_expired(today)

        assert result.deleted == [past_id]
        assert result.failed == []
        assert [s.id for s in service.list_schedules()] == [upcoming_id]
        assert {p.schedule_id for p in service.list_participants()} == {upcoming_id}
        assert [f.schedule_id for f in service.list_files()] == [upcoming_id]
        assert [p.name.split("_", 1)[1] for p in stored_files(storage)] == ["new.txt"]

    def test_sweep_keeps_today(self, db, students, storage, today):
        service = ScheduleService(db, storage)
        service.create_schedule("Today", today, today)
        db.commit()

        assert service.sweep_expired(today).deleted == []
        assert count(db, ExamSchedule) == 1

    def test_sweep_skips_failures(self, db, students, storage, today, monkeypatch):
        service = ScheduleService(db, storage)
        earlier = today - timedelta(days=5)
        broken = service.create_schedule("Broken", earlier, earlier, [Attachment("x.txt", b"x")])
        fine = service.create_schedule("Fine", earlier + timedelta(days=1), earlier)
        db.commit()
        broken_id, fine_id = broken.id, fine.id

        def failing_delete(path):
            raise StorageError("permission denied")

        monkeypatch.setattr(storage, "delete", failing_delete)
        result = service.sweep_expired(today)

        assert result.failed == [broken_id]
        assert result.deleted == [fine_id]
        assert [s.id for s in service.list_schedules()] == [broken_id]

    def test_sweep_job_uses_own_session(self, session_factory, db, students, today, monkeypatch):
        earlier = today - timedelta(days=1)
        schedule = ScheduleService(db).create_schedule("Past", earlier, earlier)
        db.commit()

        monkeypatch.setattr(scheduler_module, "get_db_session", session_factory)
        result = scheduler_module.sweep_expired_schedules_job(today)

        assert result.deleted == [schedule.id]
        assert count(db, ExamSchedule) == 0

    def test_sweep_job_defaults_to_zone_today(self, session_factory, db, students, today, monkeypatch):
        earlier = today - timedelta(days=1)
        schedule = ScheduleService(db).create_schedule("Past", earlier, earlier)
        db.commit()

        monkeypatch.setattr(scheduler_module, "get_db_session", session_factory)
        monkeypatch.setattr(scheduler_module, "get_today", lambda: today)
        result = scheduler_module.sweep_expired_schedules_job()

        assert result.deleted == [schedule.id]

    def test_today_follows_configured_zone(self, monkeypatch):
        monkeypatch.setattr(settings, "SCHEDULER_TIMEZONE", "Pacific/Kiritimati")
        ahead = get_today()
        monkeypatch.setattr(settings, "SCHEDULER_TIMEZONE", "Etc/GMT+12")
        behind = get_today()

        # UTC+14 and UTC-12 are always on different calendar days
        assert ahead > behind

    def test_scheduler_registers_daily_sweep(self, monkeypatch):
        monkeypatch.setattr(scheduler_module, "scheduler", None)
        sched = scheduler_module.init_scheduler()
        job = sched.get_job("sweep_expired_schedules")
        assert job is not None
        assert job.func is scheduler_module.sweep_expired_schedules_job


class TestScheduleAPI:
    """Schedule endpoints"""

    def _create(self, client, headers, exam_date, files=None, name="Mock 4"):
        return client.post(
            API,
            data={"name": name, "exam_date": exam_date.isoformat()},
            files=files,
            headers=headers,
        )

    def test_yesterday_rejected_before_any_store_call(self, client, students, storage, gate_headers, today, db, monkeypatch):
        saved = []
        monkeypatch.setattr(storage, "save", lambda path, data: saved.append(path))

        response = self._create(
            client,
            gate_headers,
            today - timedelta(days=1),
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert saved == []
        assert count(db, ExamSchedule) == 0

    def test_create_today_with_attachment(self, client, students, gate_headers, today):
        response = self._create(
            client,
            gate_headers,
            today,
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )

        assert response.status_code == 200
        data = response.json()
        assert data["exam_date"] == today.isoformat()
        assert [p["student_name"] for p in data["participants"]] == ["Alice", "Bob", "Chris", "Dana"]
        assert not any(p["is_participating"] for p in data["participants"])
        [file_info] = data["files"]
        assert file_info["file_name"] == "notes.txt"
        assert "storage_path" not in file_info

        download = client.get(f"{API}/{data['id']}/files/{file_info['id']}")
        assert download.status_code == 200
        assert download.content == b"hello"
        assert "notes.txt" in download.headers["content-disposition"]

    def test_create_requires_gate(self, client, students, today):
        response = self._create(client, {}, today)
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Password confirmation required"

        response = self._create(client, {"X-Gate-Password": "wrong"}, today)
        assert response.status_code == 401

    def test_gate_token_accepted(self, client, students, today):
        verify = client.post("/api/v1/gate/verify", json={"password": settings.GATE_PASSWORD})
        assert verify.status_code == 200
        token = verify.json()["token"]

        response = self._create(client, {"X-Gate-Token": token}, today)
        assert response.status_code == 200

    def test_upload_size_limit(self, client, students, gate_headers, today, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
        response = self._create(
            client,
            gate_headers,
            today,
            files=[("files", ("big.bin", b"x", "application/octet-stream"))],
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UPLOAD_FAILED"

    def test_participation_toggle_and_delete(self, client, students, gate_headers, today):
        schedule_id = self._create(client, gate_headers, today).json()["id"]
        bob = students[1].id

        for _ in range(2):
            response = client.put(
                f"{API}/{schedule_id}/participants/{bob}",
                json={"is_participating": True},
            )
            assert response.status_code == 200
            assert response.json()["is_participating"] is True

        participants = client.get(f"{API}/{schedule_id}").json()["participants"]
        assert [p["student_name"] for p in participants if p["is_participating"]] == ["Bob"]

        assert client.delete(f"{API}/{schedule_id}").status_code == 401
        assert client.delete(f"{API}/{schedule_id}", headers=gate_headers).status_code == 200
        assert client.get(f"{API}/{schedule_id}").status_code == 404

    def test_file_listing_hides_storage_path(self, client, students, gate_headers, today):
        created = self._create(
            client,
            gate_headers,
            today,
            files=[("files", ("plan.pdf", b"%PDF", "application/pdf"))],
        ).json()

        [listed] = client.get(f"{API}/{created['id']}/files").json()

        assert listed["file_name"] == "plan.pdf"
        assert listed["file_size"] == 4
        assert "storage_path" not in listed

    def test_list_ordered_by_date(self, client, students, gate_headers, today):
        self._create(client, gate_headers, today + timedelta(days=7), name="Later")
        self._create(client, gate_headers, today, name="Sooner")

        names = [s["name"] for s in client.get(API).json()]
        assert names == ["Sooner", "Later"]

    def test_sweep_endpoint(self, client, db, students, gate_headers, today):
        earlier = today - timedelta(days=2)
        past = ScheduleService(db).create_schedule("Past", earlier, earlier)
        db.commit()

        response = client.post(f"{API}/sweep", headers=gate_headers)

        assert response.status_code == 200
        assert response.json() == {"deleted": [past.id], "failed": []}
