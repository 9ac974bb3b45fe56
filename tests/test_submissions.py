"""
Submission lifecycle: upsert, deadlines, grading and visibility
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from database.models import AssignmentSubmission, Submission
from services.errors import DeadlineExceeded, ValidationError
from services.submissions import is_late, task_submissions

PAST = "2000-01-01T00:00:00Z"


def _future():
    return (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()


@pytest.fixture
def classroom_setup(make_course, make_classroom, make_lecturer, make_student):
    """Lecturer L teaching classroom C with one enrolled student S"""
    lecturer = make_lecturer()
    course_id = make_course()["id"]
    classroom = make_classroom(course_id, lecturer_ids=[lecturer["profile"]["id"]])
    student = make_student(course_id)
    return {"lecturer": lecturer, "classroom": classroom, "student": student, "course_id": course_id}


@pytest.fixture
def make_task(client, classroom_setup):
    def _make(deadline=None, title="Essay", headers=None, class_id=None):
        body = {"title": title, "class_id": class_id or classroom_setup["classroom"]["id"],
                "deadline": deadline if deadline is not None else _future()}
        response = client.post("/tasks", json=body,
                               headers=headers or classroom_setup["lecturer"]["headers"])
        assert response.status_code == 201, response.text
        return response.json()["task"]

    return _make


def _submit(client, task_id, headers, answer="my answer"):
    return client.post(f"/submissions/{task_id}", json={"answer": answer}, headers=headers)


class TestSubmit:

    def test_double_submit_keeps_one_row_with_latest_answer(self, client, db, classroom_setup, make_task):
        task = make_task()
        headers = classroom_setup["student"]["headers"]

        first = _submit(client, task["id"], headers, "first")
        second = _submit(client, task["id"], headers, "  second  ")
        assert first.status_code == 201
        assert second.status_code == 200
        assert first.json()["submission"]["id"] == second.json()["submission"]["id"]

        rows = db.query(Submission).filter(Submission.task_id == task["id"]).all()
        assert len(rows) == 1
        assert rows[0].answer == "second"

    def test_late_submission_is_rejected_without_a_row(self, client, db, classroom_setup, make_task):
        task = make_task(deadline=PAST)

        response = _submit(client, task["id"], classroom_setup["student"]["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Deadline has passed"
        assert db.query(Submission).count() == 0

    @pytest.mark.parametrize("answer", ["", "   "])
    def test_blank_answer_is_rejected(self, client, classroom_setup, make_task, answer):
        task = make_task()
        response = _submit(client, task["id"], classroom_setup["student"]["headers"], answer)
        assert response.status_code == 400
        assert response.json()["message"] == "Answer is required"

    def test_unknown_task(self, client, classroom_setup):
        response = _submit(client, 999, classroom_setup["student"]["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Task not found"

    def test_lifecycle_rejects_late_submission_directly(self, db, classroom_setup, make_task):
        task = make_task(deadline=_future())
        later = datetime.now(timezone.utc) + timedelta(days=30)
        with pytest.raises(DeadlineExceeded):
            task_submissions.submit(db, task["id"], 1, "answer", now=later)
        with pytest.raises(ValidationError):
            task_submissions.submit(db, task["id"], 1, None)

    def test_concurrent_first_submission_becomes_an_update(self, db, monkeypatch, classroom_setup, make_task):
        task = make_task()
        student_user_id = classroom_setup["student"]["user"]["id"]
        first, created = task_submissions.submit(db, task["id"], student_user_id, "a")
        assert created is True

        # the existence check misses the row another request just inserted
        real_find = task_submissions._find
        lookups = []

        def find_misses_once(session, work_id, student_id):
            lookups.append(work_id)
            if len(lookups) == 1:
                return None
            return real_find(session, work_id, student_id)

        monkeypatch.setattr(task_submissions, "_find", find_misses_once)
        second, created = task_submissions.submit(db, task["id"], student_user_id, "b")

        assert created is False
        assert len(lookups) == 2
        assert second.id == first.id
        assert second.answer == "b"
        assert db.query(Submission).filter(Submission.task_id == task["id"]).count() == 1


class TestGrade:

    def _graded_setup(self, client, classroom_setup, make_task):
        task = make_task()
        submission = _submit(client, task["id"], classroom_setup["student"]["headers"]).json()["submission"]
        return task, submission

    def test_submit_then_grade(self, client, classroom_setup, make_task):
        task, submission = self._graded_setup(client, classroom_setup, make_task)
        lecturer = classroom_setup["lecturer"]

        response = client.put(f"/submissions/{submission['id']}/grade",
                              json={"grade": 85, "feedback": "Good work"}, headers=lecturer["headers"])
        assert response.status_code == 200

        response = client.get(f"/submissions/{submission['id']}", headers=classroom_setup["student"]["headers"])
        assert response.status_code == 200
        graded = response.json()
        assert graded["grade"] == 85
        assert graded["feedback"] == "Good work"
        assert graded["graded_by"] == lecturer["user"]["id"]
        assert graded["is_graded"] is True
        assert graded["graded_at"] is not None

    @pytest.mark.parametrize("grade", [-1, 101, 150])
    def test_out_of_range_grade_leaves_prior_grade(self, client, classroom_setup, make_task, grade):
        task, submission = self._graded_setup(client, classroom_setup, make_task)
        headers = classroom_setup["lecturer"]["headers"]
        url = f"/submissions/{submission['id']}/grade"

        assert client.put(url, json={"grade": 70}, headers=headers).status_code == 200
        response = client.put(url, json={"grade": grade}, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Grade must be between 0 and 100", "errors": {"grade": grade}}

        current = client.get(f"/submissions/{submission['id']}", headers=headers).json()
        assert current["grade"] == 70

    def test_other_lecturer_cannot_grade(self, client, classroom_setup, make_task, make_lecturer):
        task, submission = self._graded_setup(client, classroom_setup, make_task)
        stranger = make_lecturer("stranger@school.edu")

        response = client.put(f"/submissions/{submission['id']}/grade",
                              json={"grade": 50}, headers=stranger["headers"])
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to grade this submission"

    def test_admin_can_grade(self, client, admin_headers, classroom_setup, make_task):
        task, submission = self._graded_setup(client, classroom_setup, make_task)
        response = client.put(f"/submissions/{submission['id']}/grade",
                              json={"grade": 100}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["submission"]["grade"] == 100

    def test_student_cannot_grade(self, client, classroom_setup, make_task):
        task, submission = self._graded_setup(client, classroom_setup, make_task)
        response = client.put(f"/submissions/{submission['id']}/grade",
                              json={"grade": 100}, headers=classroom_setup["student"]["headers"])
        assert response.status_code == 403

    def test_resubmission_keeps_grade(self, client, classroom_setup, make_task):
        task, submission = self._graded_setup(client, classroom_setup, make_task)
        client.put(f"/submissions/{submission['id']}/grade", json={"grade": 60},
                   headers=classroom_setup["lecturer"]["headers"])

        response = _submit(client, task["id"], classroom_setup["student"]["headers"], "improved")
        assert response.status_code == 200
        resubmitted = response.json()["submission"]
        assert resubmitted["answer"] == "improved"
        assert resubmitted["grade"] == 60


class TestVisibility:

    def test_students_cannot_list_task_submissions(self, client, classroom_setup, make_task):
        task = make_task()
        response = client.get(f"/submissions/task/{task['id']}", headers=classroom_setup["student"]["headers"])
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to view submissions"

    def test_owner_lists_newest_first(self, client, classroom_setup, make_task, make_student):
        task = make_task()
        other = make_student(classroom_setup["course_id"], email="other@school.edu")
        _submit(client, task["id"], classroom_setup["student"]["headers"], "one")
        _submit(client, task["id"], other["headers"], "two")

        response = client.get(f"/submissions/task/{task['id']}", headers=classroom_setup["lecturer"]["headers"])
        assert response.status_code == 200
        assert [s["answer"] for s in response.json()] == ["two", "one"]

    def test_other_student_cannot_read_submission(self, client, classroom_setup, make_task, make_student):
        task = make_task()
        submission = _submit(client, task["id"], classroom_setup["student"]["headers"]).json()["submission"]
        other = make_student(classroom_setup["course_id"], email="other@school.edu")

        response = client.get(f"/submissions/{submission['id']}", headers=other["headers"])
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to view this submission"

    def test_my_submissions(self, client, classroom_setup, make_task):
        first = make_task(title="One")
        second = make_task(title="Two")
        headers = classroom_setup["student"]["headers"]
        _submit(client, first["id"], headers)
        _submit(client, second["id"], headers)

        response = client.get("/submissions/my", headers=headers)
        assert response.status_code == 200
        assert {s["task"]["title"] for s in response.json()} == {"One", "Two"}

    def test_students_see_only_their_classroom_tasks(self, client, classroom_setup, make_task,
                                                     make_course, make_classroom):
        mine = make_task(title="Mine")
        elsewhere = make_classroom(make_course()["id"], class_name="Elsewhere")
        make_task(title="Theirs", class_id=elsewhere["id"])

        response = client.get("/tasks", headers=classroom_setup["student"]["headers"])
        assert [t["id"] for t in response.json()] == [mine["id"]]

        response = client.get("/tasks", headers=classroom_setup["lecturer"]["headers"])
        assert len(response.json()) == 2


class TestTasks:

    def test_task_view_counts_submissions(self, client, classroom_setup, make_task):
        task = make_task()
        _submit(client, task["id"], classroom_setup["student"]["headers"])

        view = client.get(f"/tasks/{task['id']}", headers=classroom_setup["student"]["headers"]).json()
        assert view["submission_count"] == 1
        assert view["is_overdue"] is False
        assert view["class"]["id"] == classroom_setup["classroom"]["id"]

    def test_only_owner_updates_task(self, client, classroom_setup, make_task, make_lecturer):
        task = make_task()
        stranger = make_lecturer("stranger@school.edu")

        response = client.put(f"/tasks/{task['id']}", json={"title": "Hijacked"}, headers=stranger["headers"])
        assert response.status_code == 403

        response = client.put(f"/tasks/{task['id']}", json={"title": "Renamed"},
                              headers=classroom_setup["lecturer"]["headers"])
        assert response.status_code == 200
        assert response.json()["task"]["title"] == "Renamed"

    def test_deleting_task_removes_its_submissions(self, client, db, classroom_setup, make_task):
        task = make_task()
        _submit(client, task["id"], classroom_setup["student"]["headers"])

        response = client.delete(f"/tasks/{task['id']}", headers=classroom_setup["lecturer"]["headers"])
        assert response.status_code == 200
        assert db.query(Submission).count() == 0

    def test_my_tasks(self, client, classroom_setup, make_task):
        make_task(title="A")
        response = client.get("/tasks/my", headers=classroom_setup["lecturer"]["headers"])
        assert [t["title"] for t in response.json()] == ["A"]


class TestAssignments:

    @pytest.fixture
    def assignment(self, client, classroom_setup):
        body = {"title": "Worksheet", "class_id": classroom_setup["classroom"]["id"], "deadline": _future()}
        response = client.post("/assignments", json=body, headers=classroom_setup["lecturer"]["headers"])
        assert response.status_code == 201, response.text
        return response.json()

    def test_submit_and_grade(self, client, db, classroom_setup, assignment):
        student_headers = classroom_setup["student"]["headers"]
        lecturer_headers = classroom_setup["lecturer"]["headers"]
        url = f"/assignments/{assignment['id']}/submit"

        assert client.post(url, json={"answer": "a"}, headers=student_headers).status_code == 201
        response = client.post(url, json={"answer": "b"}, headers=student_headers)
        assert response.status_code == 200
        assert db.query(AssignmentSubmission).count() == 1

        submissions = client.get(f"/assignments/{assignment['id']}/submissions", headers=lecturer_headers)
        assert submissions.status_code == 200
        submission_id = submissions.json()[0]["id"]
        assert submissions.json()[0]["assignment"]["title"] == "Worksheet"

        response = client.patch(f"/assignments/submissions/{submission_id}/grade",
                                json={"grade": 90}, headers=lecturer_headers)
        assert response.status_code == 200
        assert response.json()["grade"] == 90
        assert response.json()["answer"] == "b"

    def test_only_students_submit(self, client, classroom_setup, assignment):
        response = client.post(f"/assignments/{assignment['id']}/submit", json={"answer": "a"},
                               headers=classroom_setup["lecturer"]["headers"])
        assert response.status_code == 403

    def test_class_listing(self, client, classroom_setup, assignment):
        response = client.get(f"/assignments/class/{classroom_setup['classroom']['id']}",
                              headers=classroom_setup["student"]["headers"])
        assert [a["id"] for a in response.json()] == [assignment["id"]]


def test_is_late_uses_deadline():
    deadline = datetime(2024, 1, 1, tzinfo=timezone.utc)
    work = SimpleNamespace(deadline=deadline)
    on_time = Submission(answer="x", submitted_at=deadline - timedelta(minutes=1))
    # naive timestamps, as SQLite returns them, are read as UTC
    late = Submission(answer="x", submitted_at=deadline.replace(tzinfo=None) + timedelta(minutes=1))
    assert is_late(on_time, work) is False
    assert is_late(late, work) is True
    assert is_late(late, SimpleNamespace(deadline=None)) is False
