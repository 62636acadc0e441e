"""
EVTC router - Upload summaries, history and guild lookups
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from exceptions import EVTCError
from services.file_validator import validate_upload_file
from services.gw2_api_service import GW2APIError, GW2APIService, get_gw2_api
from services.summary_service import SummaryHistory, get_summary_history, summarize_upload
from logger import get_logger

router = APIRouter(prefix="/api", tags=["EVTC"])
logger = get_logger('evtc_router')


@router.post("/evtc/summary")
async def summarize_evtc(
    file: UploadFile = File(...),
    history: SummaryHistory = Depends(get_summary_history),
):
    """
    Summarize one .evtc/.zevtc/.zip combat log

    Validation failures answer 400/413, unparseable logs 422.
    """
    data = await validate_upload_file(file)
    logger.info(f"Received file: {file.filename}, size: {len(data)} bytes")

    try:
        return await summarize_upload(file.filename, data, history)
    except EVTCError as e:
        logger.warning(f"Rejected {file.filename}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=422, detail=f"{type(e).__name__}: {e}")


@router.get("/evtc/history")
async def summary_history(
    limit: int = Query(20, ge=1, le=200),
    history: SummaryHistory = Depends(get_summary_history),
):
    """Most recent summaries, newest first"""
    summaries = history.recent(limit)
    return {"count": len(summaries), "summaries": summaries}


@router.get("/guild/{guild_id}")
async def guild_details(guild_id: str, api: GW2APIService = Depends(get_gw2_api)):
    """Guild name and tag for a guild id from a summary"""
    try:
        guild = await api.get_guild(guild_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GW2APIError:
        raise HTTPException(status_code=502, detail="GW2 API unavailable")

    if guild is None:
        raise HTTPException(status_code=404, detail="Guild not found")
    return guild.to_dict()
