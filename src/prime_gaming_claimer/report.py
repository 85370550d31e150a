import logging
import subprocess
from email.message import EmailMessage

from .models import ClaimRecord

logger = logging.getLogger(__name__)
# Separate logger for reports - can be configured with its own file handler
report_logger = logging.getLogger("prime_gaming_claimer.reports")


def build_report(records: list[ClaimRecord], user_name: str | None = None) -> str:
    """Build the text report of games claimed in this run."""
    lines = [
        "Prime Gaming Claim Report",
        "=" * 40,
        "",
    ]
    if user_name:
        lines.append(f"Account: {user_name}")
    lines.append(f"Newly claimed: {len(records)}")
    lines.append("")

    internal = [r for r in records if r.store == "internal"]
    external = [r for r in records if r.store != "internal"]

    if internal:
        lines.append("Claimed on Prime Gaming:")
        lines.append("-" * 20)
        for record in internal:
            lines.append(f"  - {record.title}")
        lines.append("")

    if external:
        lines.append("Claimed for other stores:")
        lines.append("-" * 20)
        for record in external:
            lines.append(f"  - {record.title} ({record.store})")
            if record.code:
                lines.append(f"    Code: {record.code}")
            if record.url:
                lines.append(f"    {record.url}")

    return "\n".join(lines)


def log_report(records: list[ClaimRecord], user_name: str | None = None) -> str:
    """Log the report to the report logger and return the report text."""
    report = build_report(records, user_name)
    report_logger.info("\n" + report)
    return report


def send_claim_report(
    records: list[ClaimRecord],
    sender: str,
    recipient: str,
    user_name: str | None = None,
    sendmail_path: str = "/usr/sbin/sendmail",
) -> bool:
    """
    Send an email report of claimed games.

    Args:
        records: Claim records added in this run
        sender: Email sender address (required)
        recipient: Email recipient address (required)
        user_name: Prime Gaming account the games were claimed for
        sendmail_path: Path to sendmail binary

    Returns:
        True if email was sent successfully, False otherwise
    """
    codes = sum(1 for r in records if r.code)
    subject = f"Prime Gaming: {len(records)} games claimed"
    if codes:
        subject += f" ({codes} codes to redeem)"

    msg = EmailMessage()
    msg["To"] = recipient
    msg["From"] = sender
    msg["Subject"] = subject
    msg.set_content(build_report(records, user_name))

    logger.info(f"Sending email to {recipient}")
    logger.debug(f"Email:\n{msg}")
    try:
        result = subprocess.run([sendmail_path, "-f", sender, "-t"], input=msg.as_bytes())
    except OSError as e:
        logger.error(f"Could not run {sendmail_path}: {e}")
        return False
    if result.returncode != 0:
        logger.error(f"sendmail exited with code {result.returncode}")
        return False
    logger.info("Email sent successfully")
    return True
