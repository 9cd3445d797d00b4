"""
Tutor lookup for enrollment notifications.
Tutors are matched through approved tutor applications whose
selected_courses list contains the course *name*.
"""
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.models.academy_course import AcademyCourse
from app.models.tutor_application import TutorApplication


@dataclass
class TutorRecipient:
    name: str
    email: str
    course_names: list[str] = field(default_factory=list)


class TutorService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def course_names(self, course_ids: list[str]) -> list[str]:
        if not course_ids:
            return []
        courses = self.db.query(AcademyCourse).filter(AcademyCourse.id.in_(course_ids)).all()
        by_id = {c.id: c.name for c in courses}
        return [by_id[cid] for cid in course_ids if cid in by_id]

    def tutors_for_courses(self, course_ids: list[str]) -> list[TutorRecipient]:
        names = self.course_names(course_ids)
        if not names:
            return []
        applications = (
            self.db.query(TutorApplication)
            .filter(TutorApplication.status == "approved")
            .all()
        )
        recipients: list[TutorRecipient] = []
        for application in applications:
            taught = application.selected_courses or []
            matching = [name for name in names if name in taught]
            if matching and application.email:
                recipients.append(
                    TutorRecipient(name=application.full_name, email=application.email, course_names=matching)
                )
        return recipients
