# app/services/credit_service.py
# Credit metering for AI grading
#
# The only write paths for organizations.credits_remaining and
# profiles.monthly_credits_used live in this module. Every mutation is a
# conditional UPDATE ... RETURNING, so concurrent requests can never push
# a balance below zero or a teacher past the monthly limit.
#
#   reserve_for_submission()  -- claim + debit org + charge teacher, one transaction
#   refund_reservation()      -- compensating entry after a failed grading call
#   assign_plan()             -- Basic / Pro / Enterprise
#   renew_due_organizations() -- periodic credit reset (cron job + admin endpoint)
#   reset_monthly_usage()     -- zero teacher usage counters at month rollover

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.credit import CreditTransaction
from app.models.exam import Submission
from app.models.organization import Organization
from app.models.user import Profile

logger = logging.getLogger("aigrader.credits")

PLAN_CREDITS = {
    "Basic": 15000,
    "Pro": 30000,
    "Enterprise": 99999,
}


# ── Errors ────────────────────────────────────────────────────────────────────

class CreditError(Exception):
    """Base class for metering refusals. Nothing was written when raised."""


class SubmissionBusy(CreditError):
    """The submission is already being graded by another request."""


class InsufficientCredits(CreditError):
    """The organization balance cannot cover the cost (HTTP 402)."""


class MonthlyLimitExceeded(CreditError):
    """The teacher's monthly credit limit would be exceeded (HTTP 403)."""


@dataclass
class Reservation:
    submission_id: UUID
    organization_id: UUID
    profile_id: UUID
    credits: int
    credits_remaining: int
    monthly_credits_used: int
    monthly_credit_limit: int
    previous_status: str = "pending"


# ── Date helpers ──────────────────────────────────────────────────────────────

def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-aware month addition; the day is clamped to the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def next_renewal(moment: datetime, billing_cycle: str) -> datetime:
    return add_months(moment, 12 if billing_cycle == "annual" else 1)


# ── Reservation ───────────────────────────────────────────────────────────────

def reserve_for_submission(
    db: Session,
    submission_id: UUID,
    organization_id: UUID,
    profile_id: UUID,
    cost: int,
    previous_status: str = "pending",
) -> Reservation:
    """
    Claim the submission and charge `cost` credits in ONE transaction:

        1. submissions.status → processing   WHERE status <> 'processing'
        2. organizations.credits_remaining -= cost
                                             WHERE credits_remaining >= cost
        3. profiles.monthly_credits_used += cost
                                             WHERE used + cost <= limit
        4. debit row in credit_transactions

    Any guard matching zero rows rolls the whole transaction back, so a
    refusal (409 / 402 / 403) leaves every row untouched.
    """
    if cost < 1:
        raise ValueError("Credit cost must be at least 1.")

    try:
        claimed = db.execute(
            update(Submission)
            .where(Submission.id == submission_id, Submission.status != "processing")
            .values(status="processing")
            .returning(Submission.id)
            .execution_options(synchronize_session=False)
        ).first()
        if claimed is None:
            raise SubmissionBusy("This submission is already being graded.")

        org_row = db.execute(
            update(Organization)
            .where(
                Organization.id == organization_id,
                Organization.credits_remaining >= cost,
            )
            .values(credits_remaining=Organization.credits_remaining - cost)
            .returning(Organization.credits_remaining)
            .execution_options(synchronize_session=False)
        ).first()
        if org_row is None:
            raise InsufficientCredits(
                f"Insufficient organization credits: {cost} required."
            )

        profile_row = db.execute(
            update(Profile)
            .where(
                Profile.id == profile_id,
                Profile.monthly_credits_used + cost <= Profile.monthly_credit_limit,
            )
            .values(monthly_credits_used=Profile.monthly_credits_used + cost)
            .returning(Profile.monthly_credits_used, Profile.monthly_credit_limit)
            .execution_options(synchronize_session=False)
        ).first()
        if profile_row is None:
            raise MonthlyLimitExceeded(
                f"Monthly credit limit exceeded: {cost} required."
            )

        db.add(CreditTransaction(
            organization_id=organization_id,
            profile_id=profile_id,
            submission_id=submission_id,
            kind="debit",
            credits=cost,
            balance_after=org_row.credits_remaining,
            description=f"Grading submission {submission_id}",
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Reserved {cost} credits: org={organization_id} balance={org_row.credits_remaining} "
        f"teacher={profile_id} usage={profile_row.monthly_credits_used}/{profile_row.monthly_credit_limit}"
    )
    return Reservation(
        submission_id=submission_id,
        organization_id=organization_id,
        profile_id=profile_id,
        credits=cost,
        credits_remaining=org_row.credits_remaining,
        monthly_credits_used=profile_row.monthly_credits_used,
        monthly_credit_limit=profile_row.monthly_credit_limit,
        previous_status=previous_status,
    )


def refund_reservation(db: Session, reservation: Reservation, reason: str, refund: bool = True) -> None:
    """
    Compensating transaction after the AI call failed.
    Returns the submission to its previous state and, when `refund` is set,
    gives the credits back to both counters with a durable refund row.
    """
    try:
        db.execute(
            update(Submission)
            .where(Submission.id == reservation.submission_id)
            .values(status=reservation.previous_status)
            .execution_options(synchronize_session=False)
        )
        if refund:
            org_row = db.execute(
                update(Organization)
                .where(Organization.id == reservation.organization_id)
                .values(credits_remaining=Organization.credits_remaining + reservation.credits)
                .returning(Organization.credits_remaining)
                .execution_options(synchronize_session=False)
            ).first()
            # The month may have rolled over since the reservation; never go below zero
            db.execute(
                update(Profile)
                .where(
                    Profile.id == reservation.profile_id,
                    Profile.monthly_credits_used >= reservation.credits,
                )
                .values(monthly_credits_used=Profile.monthly_credits_used - reservation.credits)
                .execution_options(synchronize_session=False)
            )
            db.add(CreditTransaction(
                organization_id=reservation.organization_id,
                profile_id=reservation.profile_id,
                submission_id=reservation.submission_id,
                kind="refund",
                credits=reservation.credits,
                balance_after=org_row.credits_remaining if org_row else None,
                description=f"Refund after failed grading: {reason}"[:500],
            ))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            f"Compensation FAILED for submission {reservation.submission_id} "
            f"({reservation.credits} credits, org={reservation.organization_id})"
        )
        raise

    logger.warning(
        f"Compensated submission {reservation.submission_id}: "
        f"{'refunded ' + str(reservation.credits) + ' credits' if refund else 'no refund'} ({reason})"
    )


# ── Plans ─────────────────────────────────────────────────────────────────────

def assign_plan(db: Session, organization: Organization, plan_name: str, now: Optional[datetime] = None) -> Organization:
    """Set plan, reset the balance to the plan's credits and schedule the next renewal."""
    if plan_name not in PLAN_CREDITS:
        raise ValueError(f"Unknown plan '{plan_name}'.")
    now = now or datetime.now(timezone.utc)
    credits = PLAN_CREDITS[plan_name]

    organization.subscription_plan = plan_name
    organization.credits_per_period = credits
    organization.credits_remaining = credits
    organization.next_renewal_date = add_months(now, 1)
    db.add(CreditTransaction(
        organization_id=organization.id,
        kind="adjustment",
        credits=credits,
        balance_after=credits,
        description=f"Plan assigned: {plan_name}",
    ))
    db.flush()
    logger.info(f"Plan {plan_name} assigned to org={organization.id} ({credits} credits)")
    return organization


# ── Renewal ───────────────────────────────────────────────────────────────────

def renew_due_organizations(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Reset credits for every organization whose renewal date has passed.
    Each organization runs in its own savepoint; one failure does not stop the rest.
    """
    now = now or datetime.now(timezone.utc)
    due = db.execute(
        select(Organization).where(Organization.next_renewal_date <= now)
    ).scalars().all()

    renewed, failed = 0, 0
    for org in due:
        try:
            with db.begin_nested():
                org.credits_remaining = org.credits_per_period
                org.next_renewal_date = next_renewal(now, org.billing_cycle)
                db.add(CreditTransaction(
                    organization_id=org.id,
                    kind="renewal",
                    credits=org.credits_per_period,
                    balance_after=org.credits_per_period,
                    description=f"Periodic renewal ({org.billing_cycle})",
                ))
            renewed += 1
            logger.info(f"Renewed org={org.id} credits={org.credits_per_period} next={org.next_renewal_date}")
        except Exception as e:
            failed += 1
            logger.error(f"Renewal failed for org={org.id}: {e}")

    usage_reset = reset_monthly_usage(db, today=now.date())
    db.commit()
    return {
        "due": len(due),
        "renewed": renewed,
        "failed": failed,
        "usage_reset": usage_reset,
    }


def reset_monthly_usage(db: Session, today: Optional[date] = None) -> int:
    """Zero the teacher usage counters that belong to an earlier month."""
    today = today or datetime.now(timezone.utc).date()
    period_start = today.replace(day=1)
    result = db.execute(
        update(Profile)
        .where(Profile.usage_period_start < period_start)
        .values(monthly_credits_used=0, usage_period_start=period_start)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info(f"Monthly usage reset for {result.rowcount} profiles (period {period_start})")
    return result.rowcount or 0
