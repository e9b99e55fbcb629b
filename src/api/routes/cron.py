"""
Cron API.

Entry point for the external scheduler that triggers rescoring.
Guarded by a shared bearer secret (TRENDBOARD_CRON_SECRET).
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel

from src.adapters.dev_jobs import RescoreJob
from src.api.deps import get_cron_secret, get_rescore_job

logger = logging.getLogger(__name__)

router = APIRouter()


class UpdateScoresResponse(BaseModel):
    success: bool
    updated_count: int
    failed_count: int = 0


def is_authorized(authorization: str | None, secret: str | None) -> bool:
    """Constant-time bearer check. No configured secret means nothing is authorized."""
    if not secret or not authorization:
        return False
    return secrets.compare_digest(authorization, f"Bearer {secret}")


@router.api_route("/update-scores", methods=["GET", "POST"], response_model=UpdateScoresResponse)
def update_scores(
    authorization: str | None = Header(None),
    secret: str | None = Depends(get_cron_secret),
    job: RescoreJob = Depends(get_rescore_job),
) -> UpdateScoresResponse:
    """Recompute trending and quality scores for every listing."""
    if not is_authorized(authorization, secret):
        logger.warning("Unauthorized cron access attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    logger.info("Starting trending score update")
    try:
        result = job()
    except Exception:
        logger.exception("Trending score update failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error",
        ) from None

    return UpdateScoresResponse(
        success=result.success,
        updated_count=result.updated_count,
        failed_count=len(result.failed),
    )
