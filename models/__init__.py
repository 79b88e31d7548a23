from models.group import AcademicGroup, EducationalLevel, LevelSubject, EvaluationCriteria
from models.subject import Subject, SubjectLevel, SubjectGroup, ClassSchedule
from models.student import Student
from models.enrollment import Enrollment, EnrollmentStatus, GroupAssignment
from models.history import AssignmentHistory, HistoryFilter, HistoryType
from models.school_data import SchoolData

__all__ = [
    "AcademicGroup",
    "EducationalLevel",
    "LevelSubject",
    "EvaluationCriteria",
    "Subject",
    "SubjectLevel",
    "SubjectGroup",
    "ClassSchedule",
    "Student",
    "Enrollment",
    "EnrollmentStatus",
    "GroupAssignment",
    "AssignmentHistory",
    "HistoryFilter",
    "HistoryType",
    "SchoolData",
]
