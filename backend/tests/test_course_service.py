import pytest
from lms.exceptions import DuplicateEntryError, InvalidInputError, NotFoundError
from lms.services import CourseService, LearningPlanService, ModuleService


def test_save_and_filter_by_level(session):
    svc = CourseService(session)
    java = svc.save("Java", "Beginner")
    svc.save("Kubernetes", "Difficult")
    assert [c.id for c in svc.get_by_level("Beginner")] == [java.id]
    assert svc.get_by_level("Intermediate") == []
    assert len(svc.get_all()) == 2


@pytest.mark.parametrize("name,level", [(None, "Beginner"), ("", "Beginner"), ("  ", "Beginner"),
                                        ("Java", None), ("Java", "Expert")])
def test_save_rejects_incomplete_course(session, name, level):
    with pytest.raises(InvalidInputError):
        CourseService(session).save(name, level)


def test_save_rejects_duplicate_name(session):
    svc = CourseService(session)
    svc.save("Java", "Beginner")
    with pytest.raises(DuplicateEntryError):
        svc.save("Java", "Difficult")


def test_get_by_level_rejects_unknown_level(session):
    with pytest.raises(InvalidInputError):
        CourseService(session).get_by_level("Expert")


def test_get_by_id_missing(session):
    with pytest.raises(NotFoundError):
        CourseService(session).get_by_id(42)


def test_dto_projection(session):
    svc = CourseService(session)
    c = svc.save("Python", "Intermediate")
    dtos = svc.get_all_dtos()
    assert len(dtos) == 1
    assert dtos[0].course_id == c.id
    assert dtos[0].course_name == "Python"
    assert dtos[0].level == "Intermediate"


def test_update_name(session):
    svc = CourseService(session)
    c = svc.save("Pyton", "Beginner")
    other = svc.save("Go", "Beginner")
    assert svc.update_name(c.id, "Python").name == "Python"
    with pytest.raises(DuplicateEntryError):
        svc.update_name(other.id, "Python")
    with pytest.raises(InvalidInputError):
        svc.update_name(c.id, "")
    with pytest.raises(NotFoundError):
        svc.update_name(999, "Rust")


def test_delete_refuses_course_used_by_module(session, make_module):
    svc = CourseService(session)
    course = svc.save("Java", "Beginner")
    plan = LearningPlanService(session).save("Java FS", "Tech", [1])
    ModuleService(session).save(make_module(plan.id, course.id))
    with pytest.raises(InvalidInputError):
        svc.delete(course.id)
    with pytest.raises(InvalidInputError):
        svc.delete_many([course.id])
    assert svc.get_by_id(course.id).name == "Java"


def test_delete_and_delete_many(session):
    svc = CourseService(session)
    a = svc.save("A", "Beginner")
    b = svc.save("B", "Beginner")
    c = svc.save("C", "Beginner")
    svc.delete(a.id)
    with pytest.raises(NotFoundError):
        svc.delete(a.id)
    # absent ids are ignored
    assert svc.delete_many([b.id, c.id, 12345]) == 2
    assert svc.get_all() == []


def test_rename_store_conflict_is_reported_as_duplicate(monkeypatch, session):
    svc = CourseService(session)
    svc.save("Python", "Beginner")
    go = svc.save("Go", "Beginner")
    # simulate a concurrent rename slipping past the name check
    monkeypatch.setattr(svc.course_repo, "get_by_name", lambda name: None)
    with pytest.raises(DuplicateEntryError):
        svc.update_name(go.id, "Python")
    monkeypatch.undo()
    assert svc.get_by_id(go.id).name == "Go"
    assert sorted(c.name for c in svc.get_all()) == ["Go", "Python"]
