import logging

from sqlalchemy.exc import IntegrityError

from app.models.enrollment import Enrollment
from app.models.payment import Payment
from app.services.entitlements.base import (
    ActivationError,
    EntitlementActivator,
    EntitlementOutcome,
    NotificationIntent,
    ProductType,
)
from app.utils.dates import add_months

logger = logging.getLogger(__name__)

TUTOR_ENROLLMENT = "tutor_enrollment"


class AcademyActivator(EntitlementActivator):
    """
    Upsert one active enrollment per course in metadata.selectedCourses,
    then ask the tutors of those courses to be notified (after commit).
    """

    product_type = ProductType.ACADEMY

    def activate(self, payment: Payment) -> EntitlementOutcome:
        course_ids = list(dict.fromkeys(payment.selected_courses))
        if not course_ids:
            raise ActivationError(f"Academy payment {payment.id} has no selected courses")

        expires_at = add_months(self.now, self.settings.enrollment_period_months)
        granted: list[str] = []
        for course_id in course_ids:
            enrollment = self._upsert(payment.user_id, course_id, expires_at)
            granted.append(enrollment.id)
            logger.info(
                "enrollment_activated",
                extra={"payment_id": payment.id, "user_id": payment.user_id, "course_id": course_id},
            )

        return EntitlementOutcome(
            product_type=self.product_type,
            granted=granted,
            notifications=[
                NotificationIntent(
                    kind=TUTOR_ENROLLMENT,
                    payload={"student_user_id": payment.user_id, "course_ids": course_ids},
                )
            ],
        )

    def _upsert(self, user_id: str, course_id: str, expires_at) -> Enrollment:
        enrollment = self._get_for_update(user_id, course_id)
        if enrollment is None:
            try:
                with self.db.begin_nested():
                    enrollment = Enrollment(user_id=user_id, course_id=course_id, enrolled_at=self.now)
                    self.db.add(enrollment)
            except IntegrityError:
                enrollment = self._get_for_update(user_id, course_id)
        enrollment.status = "active"
        enrollment.expires_at = expires_at
        self.db.flush()
        return enrollment

    def _get_for_update(self, user_id: str, course_id: str) -> Enrollment | None:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .with_for_update()
            .one_or_none()
        )
