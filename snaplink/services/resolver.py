import logging
from typing import List, Optional

from snaplink.analytics.models import ClickEvent
from snaplink.cache.strategies import CacheStrategy, DEFAULT_TTL
from snaplink.exceptions import DuplicateCode, NotFound, Unauthorized
from snaplink.models.link import Link, utcnow
from snaplink.services.link_store import LinkStore
from snaplink.services.short_code import CodeGenerator

logger = logging.getLogger(__name__)


class RedirectResolver:
    """
    Owns the redirect decision and the link lifecycle operations.

    Dependencies are injected:
    - generator: next short code from the durable counter
    - store: authoritative link records
    - cache: code -> URL read accelerator (optional)
    - aggregator: background click enrichment (optional)

    Store and generator errors propagate as SnapLink errors; cache errors
    never reach this layer.
    """

    def __init__(
        self,
        generator: CodeGenerator,
        store: LinkStore,
        cache: Optional[CacheStrategy] = None,
        aggregator=None,
        cache_ttl: int = DEFAULT_TTL,
    ):
        self.generator = generator
        self.store = store
        self.cache = cache
        self.aggregator = aggregator
        self.cache_ttl = cache_ttl

    async def resolve(
        self,
        code: str,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """
        Get the destination URL using the Cache-Aside pattern.

        Flow:
        1. Check cache first
        2. On a miss, query the link store (NotFound is terminal)
        3. Populate the cache for next time (best effort), then confirm the
           link was not deleted meanwhile
        4. Dispatch a click event and return the URL; the caller never
           waits for aggregation

        Raises:
            NotFound: unknown code
            BackingStoreUnavailable: the store could not be queried
        """
        url = None
        if self.cache:
            url = await self.cache.get(code)

        if url is None:
            link = self.store.find_by_code(code)
            url = link.original_url
            if self.cache:
                await self._populate(code, url)

        if self.aggregator:
            self.aggregator.dispatch(
                ClickEvent(code=code, client_ip=client_ip, user_agent=user_agent)
            )
        return url

    async def _populate(self, code: str, url: str) -> None:
        """
        Cache code -> url after a store hit.

        A delete may land between the store read and the cache write and
        clear the cache before we fill it. Re-checking the store after the
        write closes that window: either the check sees the delete, or the
        delete runs after the write and clears it itself.
        """
        await self.cache.set(code, url, ttl=self.cache_ttl)
        if not self.store.exists(code):
            await self.cache.delete(code)
            raise NotFound()

    async def shorten(self, owner_id: int, original_url: str) -> Link:
        """
        Create a new short link for owner_id.

        A DuplicateCode from the store triggers one regeneration; a second
        collision is raised. Nothing is persisted unless the whole link is.

        Raises:
            BackingStoreUnavailable: counter or store unreachable
            DuplicateCode: two consecutive collisions
        """
        if not original_url:
            raise ValueError("original_url must not be empty")

        for attempt in range(2):
            code = self.generator.next()
            link = Link(
                code=code,
                owner_id=owner_id,
                original_url=original_url,
                created_at=utcnow(),
                clicks=0,
                first_click_at=None,
                last_click_at=None,
                attributes=[],
            )
            try:
                link = self.store.create(link)
                break
            except DuplicateCode:
                if attempt == 1:
                    raise
                logger.warning("Short code %s already taken, regenerating", code)

        if self.cache:
            await self.cache.set(link.code, link.original_url, ttl=self.cache_ttl)
        return link

    async def links_for_owner(self, owner_id: int) -> List[Link]:
        return self.store.find_by_owner(owner_id)

    async def stats(self, code: str, owner_id: int) -> Link:
        """
        Get a link with its click aggregates. Only its owner may see them.

        Raises:
            NotFound: unknown code
            Unauthorized: owner_id did not create the link
        """
        link = self.store.find_by_code(code)
        if link.owner_id != owner_id:
            raise Unauthorized("You are not authorized to view stats for this URL")
        return link

    async def delete(self, code: str, owner_id: int) -> bool:
        """
        Delete a link owned by owner_id and invalidate its cache entry.

        Returns:
            False when there was nothing to delete (unknown or not owned)
        """
        deleted = self.store.delete_by_code_and_owner(code, owner_id)
        if deleted and self.cache:
            await self.cache.delete(code)
        return deleted
