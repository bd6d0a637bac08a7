import logging
from datetime import timedelta

from sqlalchemy import DateTime, Integer, Text, func, insert, literal, select
from sqlalchemy.exc import SQLAlchemyError

from snaplink.exceptions import BackingStoreUnavailable, FeedbackRateLimited
from snaplink.models.feedback import Feedback
from snaplink.models.link import utcnow

logger = logging.getLogger(__name__)


class FeedbackService:
    """Stores user feedback, at most one entry per owner per interval"""

    def __init__(self, session_factory, interval_days: int = 7):
        self.session_factory = session_factory
        self.interval = timedelta(days=interval_days)

    def _insert_if_allowed(self, session, owner_id: int, message: str, now) -> bool:
        """
        Insert the entry only when the owner has none within the interval.

        Check and insert are one INSERT ... SELECT ... WHERE NOT EXISTS, so
        concurrent submissions cannot both pass. PostgreSQL additionally takes
        a per-owner transaction lock, since READ COMMITTED alone would let two
        such statements run side by side.
        """
        if session.get_bind().dialect.name == "postgresql":
            session.execute(select(func.pg_advisory_xact_lock(owner_id)))

        recent = (
            select(Feedback.id)
            .where(Feedback.owner_id == owner_id, Feedback.created_at > now - self.interval)
            .exists()
        )
        row = select(
            literal(owner_id, Integer()),
            literal(message, Text()),
            literal(now, DateTime()),
        ).where(~recent)
        result = session.execute(
            insert(Feedback).from_select(["owner_id", "message", "created_at"], row)
        )
        return result.rowcount > 0

    async def submit(self, owner_id: int, message: str) -> Feedback:
        """
        Raises:
            ValueError: empty message
            FeedbackRateLimited: owner already gave feedback within the interval
            BackingStoreUnavailable: database failure
        """
        message = (message or "").strip()
        if not message:
            raise ValueError("Feedback message must not be empty")

        now = utcnow()
        try:
            with self.session_factory() as session:
                if not self._insert_if_allowed(session, owner_id, message, now):
                    session.rollback()
                    raise FeedbackRateLimited()
                feedback = session.scalars(
                    select(Feedback)
                    .where(Feedback.owner_id == owner_id)
                    .order_by(Feedback.created_at.desc(), Feedback.id.desc())
                    .limit(1)
                ).one()
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Saving feedback for owner %s failed: %s", owner_id, e)
            raise BackingStoreUnavailable() from e

        logger.info("Feedback saved from owner %s", owner_id)
        return feedback
