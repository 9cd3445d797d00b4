"""
Email bodies for payment notifications. Returns (subject, html).
"""
from datetime import datetime
from html import escape

BRAND = "LMV Academy"


def _layout(title: str, content: str, name: str | None = None) -> str:
    greeting = f"Hi{', ' + escape(name) if name else ''},"
    return (
        "<!DOCTYPE html><html lang=\"en\"><body style=\"font-family: Arial, sans-serif; color: #1f2937;\">"
        f"<h1 style=\"color: #2A5A6A;\">{escape(title)}</h1>"
        f"<p>{greeting}</p>"
        f"{content}"
        f"<p style=\"margin-top: 30px; color: #6b7280; font-size: 12px;\">&copy; {datetime.now().year} {BRAND}</p>"
        "</body></html>"
    )


def payment_confirmation(amount: str, product_label: str, payment_id: str, name: str | None = None) -> tuple[str, str]:
    content = (
        "<p>Your payment was confirmed. Thank you!</p>"
        "<table cellpadding=\"6\">"
        f"<tr><td>Product</td><td><strong>{escape(product_label)}</strong></td></tr>"
        f"<tr><td>Amount</td><td><strong>{escape(amount)}</strong></td></tr>"
        f"<tr><td>Reference</td><td>{escape(payment_id)}</td></tr>"
        "</table>"
    )
    return f"Payment Confirmed - {BRAND}", _layout("Payment Confirmed", content, name)


def payment_failure(amount: str, product_label: str, payment_id: str, name: str | None = None) -> tuple[str, str]:
    content = (
        f"<p>We could not complete your payment of <strong>{escape(amount)}</strong> "
        f"for <strong>{escape(product_label)}</strong>.</p>"
        "<p>No money was taken for this attempt. You can try again from the checkout page.</p>"
        f"<p>Reference: {escape(payment_id)}</p>"
    )
    return f"Payment Failed - {BRAND}", _layout("Payment Failed", content, name)


def _format_schedule(scheduled_at: str | None) -> str:
    if not scheduled_at:
        return "TBD"
    try:
        return datetime.fromisoformat(scheduled_at).strftime("%A, %B %d, %Y %H:%M %Z").strip()
    except ValueError:
        return scheduled_at


def class_join(class_title: str, scheduled_at: str | None, join_url: str) -> tuple[str, str]:
    content = (
        "<p>Your purchase was successful! You're registered for this class:</p>"
        f"<h2>{escape(class_title)}</h2>"
        f"<p>When: {escape(_format_schedule(scheduled_at))}</p>"
        f"<p><a href=\"{escape(join_url, quote=True)}\">Join Class</a></p>"
        "<p>Join a few minutes early and check your audio and camera.</p>"
    )
    return f"Your Class Access: {class_title}", _layout("You're Registered!", content)


def tutor_enrollment(tutor_name: str, student_name: str, student_email: str | None, course_names: list[str]) -> tuple[str, str]:
    courses = "".join(f"<li><strong>{escape(c)}</strong></li>" for c in course_names)
    content = (
        "<p>Great news! A new student has enrolled in your course(s).</p>"
        f"<p><strong>{escape(student_name)}</strong>"
        f"{'<br/>' + escape(student_email) if student_email else ''}</p>"
        f"<h3>Enrolled Course(s):</h3><ul>{courses}</ul>"
        "<p>Log in to your Tutor Dashboard to view all enrolled students.</p>"
    )
    return "New Student Enrolled", _layout("New Student Enrolled!", content, tutor_name)
