"""
Optional e-mail delivery of the generated report.

Delivery is best effort: a failure is logged and the run still succeeds,
since the report file on disk is the primary artifact.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText


def send_report_email(email, subject, report_html):
    """Send ``report_html`` using the EmailSettings ``email``.

    Returns True when the message was handed to the SMTP server.
    """
    if not email.enabled:
        logging.debug("Email delivery disabled.")
        return False
    if not email.to or not email.user or not email.password:
        logging.warning("Email reports enabled but credentials/recipient not fully set in .env.")
        return False

    msg = MIMEMultipart("alternative")
    msg.attach(MIMEText(report_html, "html"))
    msg["Subject"] = subject
    msg["From"] = email.sender or email.user
    msg["To"] = ", ".join(email.to)

    smtp_server = email.smtp or "smtp.gmail.com"
    logging.info("Connecting to SMTP server %s:%s for email...", smtp_server, email.port)
    try:
        if email.port == 465:
            with smtplib.SMTP_SSL(smtp_server, email.port, timeout=10) as s:
                s.login(email.user, email.password)
                s.sendmail(msg["From"], list(email.to), msg.as_string())
        else:
            with smtplib.SMTP(smtp_server, email.port, timeout=10) as s:
                s.ehlo()
                s.starttls()
                s.ehlo()
                s.login(email.user, email.password)
                s.sendmail(msg["From"], list(email.to), msg.as_string())
    except (smtplib.SMTPException, OSError):
        logging.exception("Failed to send report email")
        return False

    logging.info("Successfully sent email: %s", subject)
    return True
