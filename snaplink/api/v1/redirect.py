from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from snaplink.dependencies import get_resolver
from snaplink.services.resolver import RedirectResolver

router = APIRouter(tags=["redirect"])


@router.get("/{code}")
async def redirect_to_original_url(
    code: str,
    request: Request,
    resolver: RedirectResolver = Depends(get_resolver),
):
    """
    Redirect to the original URL.

    The click is handed to the aggregator inside resolve() and processed in
    the background, so the redirect never waits for analytics. Unknown codes
    raise NotFound, rendered as a 404 {status, message} body.
    """
    url = await resolver.resolve(
        code,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
