# services/recipes/quota.py
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import pytz
from exceptions import ProfileError, QuotaExceededError
from models import QuotaStatus, UserProfile

from shared.database import Database

logger = logging.getLogger(__name__)

DAILY_CREDIT_ALLOTMENT = 10
CREDIT_RESET_HOURS = 24


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def _as_utc(value: datetime) -> datetime:
    # Timestamps without tzinfo are stored in UTC
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def hours_since_reset(last_reset: Optional[datetime], now: datetime) -> float:
    """Hours elapsed since the last reset; a missing reset counts as overdue"""
    if last_reset is None:
        return float("inf")
    return (_as_utc(now) - _as_utc(last_reset)).total_seconds() / 3600


def is_reset_due(last_reset: Optional[datetime], now: datetime) -> bool:
    return hours_since_reset(last_reset, now) >= CREDIT_RESET_HOURS


class ProfileStore(ABC):
    """Persistence for the credit columns of a user profile"""

    @abstractmethod
    async def fetch_profile(self, user_id: UUID) -> Optional[UserProfile]:
        """Return the profile, or None when no row exists"""

    @abstractmethod
    async def reset_credits(self, user_id: UUID, credits: int, reset_at: datetime) -> None:
        """Set the balance and the reset timestamp"""

    @abstractmethod
    async def decrement_credits(self, user_id: UUID) -> Optional[int]:
        """Atomically take one credit if the balance is positive.

        Returns the new balance, or None when nothing was debited.
        """


class PostgresProfileStore(ProfileStore):
    def __init__(self, db: Database):
        self.db = db

    async def fetch_profile(self, user_id: UUID) -> Optional[UserProfile]:
        row = await self.db.fetch_one(
            "SELECT user_id, credits, last_credit_reset FROM profiles WHERE user_id = $1",
            user_id,
        )
        if not row:
            return None
        return UserProfile(
            user_id=str(row["user_id"]),
            credits=row["credits"],
            last_credit_reset=row["last_credit_reset"],
        )

    async def reset_credits(self, user_id: UUID, credits: int, reset_at: datetime) -> None:
        result = await self.db.execute(
            """
            UPDATE profiles
            SET credits = $1, last_credit_reset = $2, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = $3
            """,
            credits,
            reset_at,
            user_id,
        )
        if result == "UPDATE 0":
            raise ProfileError(detail=f"Profile {user_id} disappeared during credit reset")

    async def decrement_credits(self, user_id: UUID) -> Optional[int]:
        # Conditional update: concurrent requests can never push the balance below zero
        row = await self.db.fetch_one(
            """
            UPDATE profiles
            SET credits = credits - 1, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = $1 AND credits > 0
            RETURNING credits
            """,
            user_id,
        )
        return row["credits"] if row else None


class QuotaLedger:
    """
    Daily credit quota.

    The balance is checked before generation and debited after it, without a
    lock in between. Two concurrent requests can both pass the check; the
    conditional debit keeps the balance non-negative, so a race costs at most
    one extra generation.
    """

    def __init__(self, store: ProfileStore, allotment: int = DAILY_CREDIT_ALLOTMENT):
        self.store = store
        self.allotment = allotment

    async def get_status(self, user_id: UUID, now: Optional[datetime] = None) -> QuotaStatus:
        """Load the profile and apply a due reset. Does not check exhaustion."""
        now = now or utc_now()

        try:
            profile = await self.store.fetch_profile(user_id)
        except ProfileError:
            raise
        except Exception as e:
            logger.error(f"❌ QUOTA: Profile fetch failed for user {user_id}: {e}")
            raise ProfileError(detail=f"Could not retrieve user profile: {e}")

        if profile is None:
            logger.error(f"❌ QUOTA: No profile row for user {user_id}")
            raise ProfileError(detail="Could not retrieve user profile")

        credits = profile.credits
        last_reset = profile.last_credit_reset
        was_reset = False

        if is_reset_due(last_reset, now):
            logger.info(f"💳 QUOTA: Resetting credits to {self.allotment} for user {user_id}")
            try:
                await self.store.reset_credits(user_id, self.allotment, now)
            except ProfileError:
                raise
            except Exception as e:
                logger.error(f"❌ QUOTA: Credit reset failed for user {user_id}: {e}")
                raise ProfileError(detail=f"Failed to reset credits: {e}")
            credits = self.allotment
            last_reset = now
            was_reset = True

        last_reset = _as_utc(last_reset)
        return QuotaStatus(
            credits=credits,
            last_credit_reset=last_reset,
            next_reset_at=last_reset + timedelta(hours=CREDIT_RESET_HOURS),
            was_reset=was_reset,
        )

    async def evaluate(self, user_id: UUID, now: Optional[datetime] = None) -> QuotaStatus:
        """Apply a due reset, then refuse when no credit is left"""
        status = await self.get_status(user_id, now)

        if status.credits <= 0:
            logger.info(f"🚫 QUOTA: No credits remaining for user {user_id}")
            raise QuotaExceededError()

        logger.info(f"💳 QUOTA: User {user_id} has {status.credits} credits")
        return status

    async def debit(self, user_id: UUID) -> Optional[int]:
        """Take one credit after a successful generation"""
        new_balance = await self.store.decrement_credits(user_id)
        if new_balance is None:
            logger.warning(f"⚠️ QUOTA: Nothing debited for user {user_id} (balance already 0)")
        else:
            logger.info(f"💳 QUOTA: Debited 1 credit, user {user_id} now has {new_balance}")
        return new_balance
