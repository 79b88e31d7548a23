"""Tests für die lesenden Abfragen und Berichte (QueryFacade)."""

import pytest

from engine.errors import NotFoundError


class TestGroupQueries:
    def test_available_groups(self, session):
        """Aktiv und nicht voll; inaktive und archivierte Gruppen fehlen."""
        ids = [g.id for g in session.queries.get_available_groups()]
        assert ids == ["g-small", "g-big", "g-other"]

        session.capacity.assign_student_to_group("s-2", "g-small")
        ids = [g.id for g in session.queries.get_available_groups()]
        assert "g-small" not in ids

    def test_active_and_archived(self, session):
        assert len(session.queries.get_active_groups()) == 4
        assert [g.id for g in session.queries.get_archived_groups()] == ["g-archived"]

    def test_students_by_group(self, session):
        assert [s.id for s in session.queries.get_students_by_group("g-small")] == ["s-1"]
        assert session.queries.get_students_by_group("g-missing") == []

    def test_by_level_and_tutor(self, session):
        assert [g.id for g in session.queries.get_groups_by_level("lvl-2")] == ["g-other"]
        assert [g.id for g in session.queries.get_groups_by_tutor("t-2")] == ["g-other"]

    def test_results_reflect_latest_state(self, session):
        """Kein Caching: Abfrage nach einer Mutation sieht den neuen Stand."""
        before = session.queries.get_students_by_group("g-big")
        session.capacity.assign_student_to_group("s-3", "g-big")
        after = session.queries.get_students_by_group("g-big")
        assert before == [] and [s.id for s in after] == ["s-3"]


class TestSubjectQueries:
    def test_available_subject_groups(self, session):
        ids = [g.id for g in session.queries.get_available_subject_groups("mat", "mat-b")]
        assert ids == ["mat-a", "mat-bb"]
        session.capacity.enroll_student("s-2", "mat", "mat-b", "mat-a")
        ids = [g.id for g in session.queries.get_available_subject_groups("mat", "mat-b")]
        assert ids == ["mat-bb"]
        assert session.queries.get_available_subject_groups("xyz", "mat-b") == []

    def test_enrollments_only_active(self, session):
        assert [e.id for e in session.queries.get_enrollments_by_student("s-1")] == ["enr-1"]
        session.capacity.remove_student("s-1", "mat")
        assert session.queries.get_enrollments_by_student("s-1") == []
        assert session.queries.get_enrollments_by_subject("mat") == []

    def test_search_subjects(self, session):
        assert {s.id for s in session.queries.search_subjects("ciencias")} == {"mat", "fis"}
        assert [s.id for s in session.queries.search_subjects("his101")] == ["his"]
        assert len(session.queries.search_subjects("  ")) == 3

    def test_filter_by_department(self, session):
        assert [s.id for s in session.queries.filter_subjects_by_department("Humanidades")] \
            == ["his"]
        assert len(session.queries.filter_subjects_by_department("all")) == 3


class TestReports:
    def test_subject_stats(self, session):
        stats = session.queries.subject_stats()
        assert stats.total_subjects == 3
        assert stats.active_subjects == 2
        assert stats.total_enrollments == 1
        assert stats.average_enrollment_per_subject == 0.5
        assert stats.subjects_by_department == {"Ciencias Exactas": 2, "Humanidades": 1}
        assert stats.enrollments_by_level == {"Básico": 1}

    def test_group_report(self, session):
        report = session.queries.group_report("g-small")
        assert report.level_name == "Educación Primaria"
        assert report.occupancy == 1 and report.utilisation == 0.5
        assert report.members == ["Schüler 1"]
        assert report.enrollments_by_level == {"MAT101 Básico": 1}
        assert report.average_attendance == 90.0

    def test_group_report_empty_group(self, session):
        report = session.queries.group_report("g-big")
        assert report.members == [] and report.average_attendance is None

    def test_group_report_unknown(self, session):
        with pytest.raises(NotFoundError):
            session.queries.group_report("g-missing")

    def test_level_report_ignores_archived(self, session):
        report = session.queries.level_report("lvl-1")
        assert report.group_count == 3
        assert report.active_group_count == 2
        assert report.student_count == 1
        assert report.total_capacity == 62

    def test_dashboard_counts(self, session):
        session.capacity.assign_student_to_group("s-2", "g-small")
        counts = session.queries.dashboard_counts()
        assert counts.total_groups == 4
        assert counts.active_groups == 3
        assert counts.inactive_groups == 1
        assert counts.archived_groups == 1
        assert counts.assigned_students == 2
        assert counts.average_utilisation == 25
        assert counts.total_students == 5
        assert counts.active_students == 4
        assert counts.total_subjects == 3
        assert counts.active_enrollments == 1
