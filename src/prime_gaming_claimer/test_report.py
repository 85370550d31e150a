"""
Unit tests for the run report.

Run with: pytest -m unit_build
"""

from unittest.mock import MagicMock, patch

import pytest

from prime_gaming_claimer.models import ClaimRecord
from prime_gaming_claimer.report import build_report, log_report, send_claim_report


@pytest.fixture
def records() -> list[ClaimRecord]:
    return [
        ClaimRecord(title="Game A", time="t", store="internal"),
        ClaimRecord(title="Game C", time="t", store="gog.com", code="ABCD-1234", url="https://gaming.amazon.com/c"),
        ClaimRecord(title="Game E", time="t", store="epic games", url="https://gaming.amazon.com/e"),
    ]


@pytest.mark.unit_build
class TestBuildReport:
    def test_lists_records_by_kind(self, records: list[ClaimRecord]) -> None:
        report = build_report(records, "Alex")

        assert "Account: Alex" in report
        assert "Newly claimed: 3" in report
        assert "Claimed on Prime Gaming:" in report
        assert "  - Game A" in report
        assert "  - Game C (gog.com)" in report
        assert "Code: ABCD-1234" in report
        assert "https://gaming.amazon.com/e" in report

    def test_empty_run(self) -> None:
        report = build_report([])
        assert "Newly claimed: 0" in report
        assert "Claimed for other stores" not in report

    def test_log_report_uses_report_logger(self, records: list[ClaimRecord], caplog) -> None:
        with caplog.at_level("INFO", logger="prime_gaming_claimer.reports"):
            log_report(records)
        assert "Prime Gaming Claim Report" in caplog.text


@pytest.mark.unit_build
class TestSendClaimReport:
    def test_pipes_message_to_sendmail(self, records: list[ClaimRecord]) -> None:
        with patch("prime_gaming_claimer.report.subprocess.run", return_value=MagicMock(returncode=0)) as run:
            assert send_claim_report(records, sender="bot@example.com", recipient="alex@example.com") is True

        assert run.call_args.args[0] == ["/usr/sbin/sendmail", "-f", "bot@example.com", "-t"]
        message = run.call_args.kwargs["input"].decode()
        assert "Subject: Prime Gaming: 3 games claimed (1 codes to redeem)" in message
        assert "To: alex@example.com" in message
        assert "Code: ABCD-1234" in message

    def test_subject_without_codes(self) -> None:
        records = [ClaimRecord(title="Game A", time="t", store="internal")]
        with patch("prime_gaming_claimer.report.subprocess.run", return_value=MagicMock(returncode=0)) as run:
            send_claim_report(records, sender="a@example.com", recipient="b@example.com")

        message = run.call_args.kwargs["input"].decode()
        assert "Subject: Prime Gaming: 1 games claimed\n" in message

    def test_sendmail_failure(self, records: list[ClaimRecord]) -> None:
        with patch("prime_gaming_claimer.report.subprocess.run", return_value=MagicMock(returncode=1)):
            assert send_claim_report(records, sender="a@example.com", recipient="b@example.com") is False

    def test_missing_sendmail(self, records: list[ClaimRecord], caplog) -> None:
        with patch("prime_gaming_claimer.report.subprocess.run", side_effect=FileNotFoundError("sendmail")):
            assert send_claim_report(records, sender="a@example.com", recipient="b@example.com") is False
        assert "Could not run /usr/sbin/sendmail" in caplog.text
