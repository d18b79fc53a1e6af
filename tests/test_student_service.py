import pytest

from time_tracking_app.errors import DuplicateStudentError, StudentNotFound
from time_tracking_app.models import DEFAULT_PHOTO_URL, Student, StudentStatus


def test_create_and_fetch_student(student_service, alice):
    fetched = student_service.get_by_student_id("2024-0001")

    assert fetched == alice
    assert fetched.display_name == "Reyes, Alice M."
    assert fetched.initials == "AR"
    assert fetched.status is StudentStatus.ACTIVE
    assert fetched.photo_url == DEFAULT_PHOTO_URL
    assert student_service.get_student(alice.id) == alice


def test_duplicate_student_id_is_rejected(student_service, alice):
    with pytest.raises(DuplicateStudentError):
        student_service.create_student(Student(student_id=" 2024-0001 ", last_name="Other", first_name="Person"))


def test_missing_names_are_rejected(student_service):
    with pytest.raises(ValueError):
        student_service.create_student(Student(student_id="2024-0100", last_name=" ", first_name="Solo"))


def test_list_students_sorted_by_name(student_service):
    for code, last, first in (("3", "Zamora", "Ana"), ("1", "abad", "Carl"), ("2", "Abad", "Bea")):
        student_service.create_student(Student(student_id=code, last_name=last, first_name=first))

    names = [student.sort_name for student in student_service.list_students()]

    assert names == ["Abad, Bea", "abad, Carl", "Zamora, Ana"]


def test_update_and_deactivate_student(student_service, alice):
    updated = student_service.update_student(alice.id, course="BSIT", year_level="3rd Year")
    assert updated.course == "BSIT"

    deactivated = student_service.set_status(alice.id, StudentStatus.INACTIVE)
    assert not deactivated.is_active
    assert student_service.get_by_student_id("2024-0001").status is StudentStatus.INACTIVE
    assert student_service.list_students(status=StudentStatus.ACTIVE) == []


def test_update_rejects_taken_student_id(student_service, alice):
    other = student_service.create_student(Student(student_id="2024-0002", last_name="Lim", first_name="Dan"))

    with pytest.raises(DuplicateStudentError):
        student_service.update_student(other.id, student_id="2024-0001")


def test_delete_student(student_service, alice):
    student_service.delete_student(alice.id)

    assert student_service.find_by_student_id("2024-0001") is None
    with pytest.raises(StudentNotFound):
        student_service.delete_student(alice.id)
