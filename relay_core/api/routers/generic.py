"""
Relay router module generic functionalities
"""

from fastapi import APIRouter, Depends

from ..dependency import MinimalRequestData


router = APIRouter(tags=["Generic"])


@router.get("/health", response_model=dict)
async def verify_running_backend(_: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Return 200 OK with an empty object as body to only verify that the service and the middlewares work

    This endpoint doesn't require the API key.
    """

    return {}
