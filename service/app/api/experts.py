from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app import messages
from app.logging_config import get_logger
from app.services.dataset_cache import DatasetCacheManager, get_dataset_cache
from app.services.errors import DataSourceUnavailable

router = APIRouter(tags=["experts"])
logger = get_logger("api.experts")

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


@router.get("/experts")
@router.get("/data")
async def get_experts(dataset_cache: DatasetCacheManager = Depends(get_dataset_cache)):
    """
    Raw expert database snapshot (served from cache while fresh).
    """
    try:
        dataset = await dataset_cache.get_dataset()
    except DataSourceUnavailable:
        return JSONResponse({"error": messages.DATA_SOURCE_UNAVAILABLE}, status_code=500, headers=CORS_HEADERS)
    except Exception as e:
        logger.error(f"Unexpected error reading expert data: {e}", exc_info=True)
        return JSONResponse({"error": messages.DATA_SOURCE_UNAVAILABLE}, status_code=500, headers=CORS_HEADERS)

    return JSONResponse(dataset.data, headers=CORS_HEADERS)
