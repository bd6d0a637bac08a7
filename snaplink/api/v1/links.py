from typing import List

from fastapi import APIRouter, Depends, status

from snaplink.dependencies import get_owner_id, get_resolver
from snaplink.exceptions import NotFound
from snaplink.schemas.link import LinkCreate, LinkResponse, LinkStats
from snaplink.services.resolver import RedirectResolver

router = APIRouter(prefix="/links", tags=["links"])


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    payload: LinkCreate,
    owner_id: int = Depends(get_owner_id),
    resolver: RedirectResolver = Depends(get_resolver),
):
    """Shorten a URL for the calling owner"""
    return await resolver.shorten(owner_id, str(payload.url))


@router.get("", response_model=List[LinkResponse])
async def list_links(
    owner_id: int = Depends(get_owner_id),
    resolver: RedirectResolver = Depends(get_resolver),
):
    return await resolver.links_for_owner(owner_id)


@router.get("/{code}/stats", response_model=LinkStats)
async def get_link_stats(
    code: str,
    owner_id: int = Depends(get_owner_id),
    resolver: RedirectResolver = Depends(get_resolver),
):
    """Click statistics, visible to the link's owner only"""
    link = await resolver.stats(code, owner_id)
    return LinkStats.model_validate(link)


@router.delete("/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    code: str,
    owner_id: int = Depends(get_owner_id),
    resolver: RedirectResolver = Depends(get_resolver),
):
    if not await resolver.delete(code, owner_id):
        raise NotFound("Unable to delete URL. Make sure it exists and is yours")
