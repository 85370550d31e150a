import json
import logging
from pathlib import Path
from typing import Any

from .models import ClaimRecord

logger = logging.getLogger(__name__)

# keys of the old single-account layout: {"claimed": [record, ...], "runs": n}
LEGACY_CLAIMED_KEY = "claimed"
LEGACY_RUNS_KEY = "runs"


class JsonDb:
    """A JSON document kept in memory and written back on demand."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.data: dict[str, Any] = {}

    def load(self) -> dict[str, Any]:
        if self.path.exists():
            self.data = json.loads(self.path.read_text(encoding="utf-8")) or {}
        else:
            logger.debug(f"{self.path} does not exist yet, starting with an empty document")
            self.data = {}
        return self.data

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.debug(f"Wrote {self.path}")


class ClaimLedger:
    """
    Claimed offers per account: `{account: {title: record}}`.

    Records are only ever added, never replaced, so running the claimer again
    cannot lose or rewrite what an earlier run recorded.
    """

    def __init__(self, db: JsonDb):
        self.db = db

    @property
    def data(self) -> dict[str, Any]:
        return self.db.data

    def migrate(self, account: str) -> bool:
        """
        Move records from the old account-less layout into the bucket of `account`.

        Does nothing if `account` already has a bucket or there is nothing to migrate.
        Returns True if records were migrated.
        """
        if account in self.data or LEGACY_CLAIMED_KEY not in self.data:
            return False
        bucket: dict[str, Any] = {}
        for record in self.data[LEGACY_CLAIMED_KEY]:
            bucket[record["title"]] = record
        self.data[account] = bucket
        del self.data[LEGACY_CLAIMED_KEY]
        self.data.pop(LEGACY_RUNS_KEY, None)
        logger.info(f"Migrated {len(bucket)} claimed offers to account {account}")
        return True

    def load(self, account: str) -> dict[str, Any]:
        """Return the bucket of `account`, migrating old data and creating it if needed."""
        self.migrate(account)
        return self.data.setdefault(account, {})

    @staticmethod
    def insert_if_absent(bucket: dict[str, Any], title: str, record: ClaimRecord) -> bool:
        """Store `record` under `title` unless there already is one. Returns True if it was stored."""
        if title in bucket:
            logger.debug(f"Already have a record for {title!r}, keeping it")
            return False
        bucket[title] = record.to_dict()
        return True

    def flush(self) -> None:
        self.db.write()
