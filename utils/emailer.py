import smtplib
from email.message import EmailMessage

from flask import current_app

STATUS_SUBJECTS = {
    "pending": "Booking request sent",
    "approved": "Your booking was approved",
    "rejected": "Your booking was declined",
    "confirmed": "Your booking is confirmed",
    "cancelled": "Your booking was cancelled",
    "completed": "Thanks for renting with BorrowMyCar",
}


def send_email(to_email: str, subject: str, body: str):
    """Returns (sent, error). Never raises; mail is best effort."""
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"
    if not to_email:
        return False, "No recipient"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def notify_booking_status(booking):
    renter = booking.renter
    car = booking.car
    status = booking.status.value
    subject = STATUS_SUBJECTS.get(status, "Booking update")
    body = (
        f"Hi {renter.full_name or renter.email},\n\n"
        f"Booking #{booking.id} for {car.title} "
        f"({booking.start_date:%Y-%m-%d} to {booking.end_date:%Y-%m-%d}) is now {status}.\n"
        f"Total: {booking.total_amount} {current_app.config.get('CURRENCY', 'AED')}\n"
    )
    if booking.cancellation_reason:
        body += f"Reason: {booking.cancellation_reason}\n"
    return send_email(renter.email, subject, body)
