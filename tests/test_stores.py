"""Tests for the in-memory and JSON file stores."""
import json

import pytest

from talentnest.models import ApplicationStatus, JobPosting, TalentProfile
from talentnest.stores import JsonFileStore, MemoryStore, get_store


@pytest.fixture(params=["memory", "jsonfile"])
def any_store(request, tmp_path, backend_job):
    if request.param == "memory":
        store = MemoryStore()
    else:
        store = JsonFileStore(tmp_path / "data" / "talentnest.json")
    store.save_job(backend_job)
    store.save_talent(TalentProfile(id="t-1", profession="Backend Developer", experience_years="4",
                                    resume_url="https://files.example.com/t-1.pdf"))
    store.apply("job-1", "t-1")
    return store


class TestStoreContract:
    def test_find_job(self, any_store):
        job = any_store.find_job_by_id("job-1")
        assert job.title == "Backend Engineer"
        assert job.skills == ["Go", "SQL"]
        assert any_store.find_job_by_id("nope") is None

    def test_job_embedding_roundtrip(self, any_store):
        any_store.update_job_embedding("job-1", [0.1, 0.2])
        assert any_store.find_job_by_id("job-1").embedding == [0.1, 0.2]

    def test_find_applications_joins_talent(self, any_store):
        [application] = any_store.find_applications_by_job("job-1")
        assert application.talent.profession == "Backend Developer"
        assert application.status is ApplicationStatus.UNDER_REVIEW
        assert application.score == 0.0
        assert any_store.find_applications_by_job("other") == []

    def test_talent_embedding_is_visible_through_applications(self, any_store):
        any_store.update_talent_embedding("t-1", [0.3, 0.4])
        [application] = any_store.find_applications_by_job("job-1")
        assert application.talent.embedding == [0.3, 0.4]

    def test_upsert_updates_existing_row(self, any_store):
        updated = any_store.upsert_application_score(
            "job-1", "t-1", score=0.72, status=ApplicationStatus.SHORTLISTED, feedback="Good fit.",
        )
        assert updated.status is ApplicationStatus.SHORTLISTED
        [application] = any_store.find_applications_by_job("job-1")
        assert application.score == pytest.approx(0.72)
        assert application.feedback == "Good fit."

    def test_upsert_without_feedback_keeps_previous(self, any_store):
        any_store.upsert_application_score("job-1", "t-1", score=0.7, status=ApplicationStatus.SHORTLISTED,
                                           feedback="First pass.")
        any_store.upsert_application_score("job-1", "t-1", score=0.75, status=ApplicationStatus.SHORTLISTED)
        [application] = any_store.find_applications_by_job("job-1")
        assert application.feedback == "First pass."
        assert application.score == pytest.approx(0.75)

    def test_upsert_creates_missing_row(self, any_store):
        any_store.save_talent(TalentProfile(id="t-2"))
        any_store.upsert_application_score("job-1", "t-2", score=0.6, status=ApplicationStatus.SHORTLISTED)
        assert {a.talent.id for a in any_store.find_applications_by_job("job-1")} == {"t-1", "t-2"}

    @pytest.mark.parametrize(
        "stored, expected",
        [
            (ApplicationStatus.UNDER_REVIEW, ApplicationStatus.SHORTLISTED),
            (ApplicationStatus.SHORTLISTED, ApplicationStatus.SHORTLISTED),
            (ApplicationStatus.INTERVIEW, ApplicationStatus.INTERVIEW),
            (ApplicationStatus.HIRED, ApplicationStatus.HIRED),
            (ApplicationStatus.DECLINED, ApplicationStatus.DECLINED),
        ],
    )
    def test_promote_from_checks_stored_status(self, any_store, stored, expected):
        promotable = {ApplicationStatus.UNDER_REVIEW, ApplicationStatus.SHORTLISTED}
        any_store.upsert_application_score("job-1", "t-1", score=0.1, status=stored)
        saved = any_store.upsert_application_score(
            "job-1", "t-1", score=0.8, status=ApplicationStatus.SHORTLISTED,
            feedback="Good fit.", promote_from=promotable,
        )
        assert saved.status is expected
        [application] = any_store.find_applications_by_job("job-1")
        assert application.status is expected
        assert application.score == pytest.approx(0.8)
        assert application.feedback == ("Good fit." if expected is ApplicationStatus.SHORTLISTED else "")

    def test_apply_is_idempotent(self, any_store):
        any_store.upsert_application_score("job-1", "t-1", score=0.9, status=ApplicationStatus.INTERVIEW)
        any_store.apply("job-1", "t-1")
        [application] = any_store.find_applications_by_job("job-1")
        assert application.status is ApplicationStatus.INTERVIEW

    def test_editing_job_text_clears_embedding(self, any_store):
        any_store.update_job_embedding("job-1", [0.1, 0.2])
        job = any_store.find_job_by_id("job-1")
        job.skills = ["Go", "SQL", "Kafka"]
        any_store.save_job(job)
        assert any_store.find_job_by_id("job-1").embedding == []

    def test_saving_unchanged_job_keeps_embedding(self, any_store):
        any_store.update_job_embedding("job-1", [0.1, 0.2])
        job = any_store.find_job_by_id("job-1")
        job.status = "Closed"
        any_store.save_job(job)
        assert any_store.find_job_by_id("job-1").embedding == [0.1, 0.2]

    def test_new_resume_clears_talent_embedding(self, any_store):
        any_store.update_talent_embedding("t-1", [0.3, 0.4])
        any_store.set_resume("t-1", "https://files.example.com/t-1-new.docx", "cv.docx")
        [application] = any_store.find_applications_by_job("job-1")
        assert application.talent.embedding == []
        assert application.talent.resume_url.endswith("t-1-new.docx")
        assert application.talent.resume_original_name == "cv.docx"


class TestMemoryStore:
    def test_returned_jobs_are_copies(self, store):
        job = store.find_job_by_id("job-1")
        job.embedding.append(9.9)
        assert store.find_job_by_id("job-1").embedding == []


class TestJsonFileStore:
    def test_creates_file(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        JsonFileStore(path)
        assert json.loads(path.read_text()) == {"jobs": {}, "talents": {}, "applications": []}

    def test_status_is_stored_as_text(self, tmp_path, backend_job):
        path = tmp_path / "store.json"
        store = JsonFileStore(path)
        store.save_job(backend_job)
        store.save_talent(TalentProfile(id="t-1"))
        store.apply("job-1", "t-1")
        store.upsert_application_score("job-1", "t-1", score=0.8, status=ApplicationStatus.SHORTLISTED)
        [row] = json.loads(path.read_text())["applications"]
        assert row["status"] == "Shortlisted"

    def test_persists_across_instances(self, tmp_path, backend_job):
        path = tmp_path / "store.json"
        JsonFileStore(path).save_job(backend_job)
        assert JsonFileStore(path).find_job_by_id("job-1").company_name == "Acme"

    def test_reads_legacy_lowercase_status(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "jobs": {"j": JobPosting(id="j", title="T", description="D", role="R").to_dict()},
            "talents": {"t": TalentProfile(id="t").to_dict()},
            "applications": [{"job_id": "j", "talent_id": "t", "score": 0.4, "status": "under review"}],
        }))
        [application] = JsonFileStore(path).find_applications_by_job("j")
        assert application.status is ApplicationStatus.UNDER_REVIEW
        assert application.feedback == ""


class TestGetStore:
    def test_memory_from_environment(self):
        assert isinstance(get_store(lambda key: "memory"), MemoryStore)

    def test_json_file_by_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TALENTNEST_DATA_FILE", str(tmp_path / "db.json"))
        store = get_store(lambda key: "")
        assert isinstance(store, JsonFileStore)
        assert store.path == tmp_path / "db.json"
