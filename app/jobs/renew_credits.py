# app/jobs/renew_credits.py
# Periodic credit renewal, meant for a daily cron / Cloud Scheduler run.
#
#   1. every organization whose next_renewal_date has passed gets its balance
#      reset to credits_per_period and the date moved one billing cycle ahead
#   2. teacher monthly usage counters from an earlier month are zeroed
#
# Usage:
#   python -m app.jobs.renew_credits
#   python -m app.jobs.renew_credits --dry-run     # list due organizations only
#
# Idempotent: a second run on the same day finds nothing due.

import argparse
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import select

import app.db.base  # noqa: F401
from app.db.session import SessionLocal
from app.models.organization import Organization
from app.services.credit_service import renew_due_organizations

log = logging.getLogger("aigrader.jobs.renew_credits")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def list_due(db, now: datetime) -> list:
    return db.execute(
        select(Organization.id, Organization.name, Organization.next_renewal_date)
        .where(Organization.next_renewal_date <= now)
        .order_by(Organization.next_renewal_date.asc())
    ).all()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Renew organization credits and reset monthly usage.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only list the organizations that are due; change nothing",
    )
    args = parser.parse_args(argv)

    now = datetime.now(timezone.utc)
    db = SessionLocal()
    try:
        if args.dry_run:
            due = list_due(db, now)
            for org_id, name, renewal_date in due:
                log.info(f"Due: {name} ({org_id}) renewal date {renewal_date}")
            log.info(f"{len(due)} organization(s) due for renewal")
            return 0

        summary = renew_due_organizations(db, now=now)
        log.info(
            f"Renewal finished: due={summary['due']} renewed={summary['renewed']} "
            f"failed={summary['failed']} usage_reset={summary['usage_reset']}"
        )
        return 1 if summary["failed"] else 0
    except Exception:
        db.rollback()
        log.exception("Credit renewal job failed")
        return 2
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
