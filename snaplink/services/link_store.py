"""
Durable store of links and their click aggregates.

Every operation opens its own short-lived session from the session factory,
so the store can be shared between request handlers and aggregator threads.
Database failures are translated to BackingStoreUnavailable; the details
stay in the logs.
"""

import logging
from contextlib import contextmanager
from typing import List

from sqlalchemy import case, delete, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from snaplink.analytics.models import ClickMetadata
from snaplink.exceptions import BackingStoreUnavailable, DuplicateCode, NotFound
from snaplink.models.link import Link, LinkAttribute

logger = logging.getLogger(__name__)


class LinkStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def _session(self, operation: str):
        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Link store %s failed: %s", operation, e)
            raise BackingStoreUnavailable() from e

    def create(self, link: Link) -> Link:
        """
        Persist a new link.

        Raises:
            DuplicateCode: a link with this code already exists
        """
        with self._session("create") as session:
            if session.get(Link, link.code) is not None:
                raise DuplicateCode(f"Short code {link.code} already exists")
            session.add(link)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateCode(f"Short code {link.code} already exists") from e
            logger.info("Created link %s for owner %s", link.code, link.owner_id)
            return link

    def find_by_code(self, code: str) -> Link:
        """
        Raises:
            NotFound: no link has this code
        """
        with self._session("find_by_code") as session:
            link = session.get(Link, code)
            if link is None:
                raise NotFound()
            return link

    def exists(self, code: str) -> bool:
        with self._session("exists") as session:
            return session.scalar(select(Link.code).where(Link.code == code)) is not None

    def find_by_owner(self, owner_id: int) -> List[Link]:
        """All links created by owner_id, newest first"""
        with self._session("find_by_owner") as session:
            stmt = (
                select(Link)
                .where(Link.owner_id == owner_id)
                .order_by(Link.created_at.desc(), Link.code)
            )
            return list(session.scalars(stmt))

    def delete_by_code_and_owner(self, code: str, owner_id: int) -> bool:
        """
        Delete a link if, and only if, owner_id created it.

        Returns:
            True if a link was deleted, False when nothing matched
            (unknown code or someone else's link)
        """
        with self._session("delete") as session:
            result = session.execute(
                delete(Link).where(Link.code == code, Link.owner_id == owner_id)
            )
            deleted = result.rowcount > 0
            if deleted:
                session.execute(delete(LinkAttribute).where(LinkAttribute.link_code == code))
            session.commit()
        if deleted:
            logger.info("Deleted link %s for owner %s", code, owner_id)
        return deleted

    def record_click(self, code: str, metadata: ClickMetadata) -> None:
        """
        Fold one click into the link's aggregates, in one transaction.

        The counters and timestamps change through a single conditional
        UPDATE, so concurrent clicks can neither lose an increment nor both
        claim the first click: first_click_at keeps the earliest observation
        and last_click_at the latest. Metadata values are set-union inserts
        that ignore rows already present.

        Raises:
            NotFound: the link does not exist (e.g. deleted meanwhile)
        """
        observed = metadata.observed_at
        stmt = (
            update(Link)
            .where(Link.code == code)
            .values(
                clicks=Link.clicks + 1,
                first_click_at=case(
                    (or_(Link.first_click_at.is_(None), Link.first_click_at > observed), observed),
                    else_=Link.first_click_at,
                ),
                last_click_at=case(
                    (or_(Link.last_click_at.is_(None), Link.last_click_at < observed), observed),
                    else_=Link.last_click_at,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        rows = [
            {"link_code": code, "kind": kind.value, "value": value}
            for kind, value in metadata.attribute_items()
        ]

        with self._session("record_click") as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                session.rollback()
                raise NotFound()
            if rows:
                self._add_attributes(session, code, rows)
            session.commit()

    def _add_attributes(self, session, code: str, rows: List[dict]) -> None:
        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            session.execute(sqlite_insert(LinkAttribute).values(rows).on_conflict_do_nothing())
        elif dialect == "postgresql":
            session.execute(pg_insert(LinkAttribute).values(rows).on_conflict_do_nothing())
        else:
            # The UPDATE above holds the link's row lock until commit, which
            # serializes writers of this code's attributes.
            existing = set(
                session.execute(
                    select(LinkAttribute.kind, LinkAttribute.value)
                    .where(LinkAttribute.link_code == code)
                ).all()
            )
            missing = [row for row in rows if (row["kind"], row["value"]) not in existing]
            if missing:
                session.execute(insert(LinkAttribute), missing)
