import inspect
import json
import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from adminserver.adapters.logging.levels import LogLevelController
from adminserver.adapters.stats.registry import StatsRegistry
from adminserver.config import ServerConfig
from adminserver.domain import errors as de
from adminserver.infra.deps import get_config, get_log_levels, get_stats

logger = logging.getLogger(__name__)

STATS_CONTENT_TYPE = 'application/json; charset=utf-8'

router = APIRouter(prefix='/admin', tags=['admin'])


@router.get('/health', status_code=status.HTTP_204_NO_CONTENT)
async def health(config: ServerConfig = Depends(get_config)):
    check = config.health_check
    if check is None:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED)

    try:
        if inspect.iscoroutinefunction(check):
            await check()
        else:
            result = await run_in_threadpool(check)
            if inspect.isawaitable(result):
                await result
    except Exception as e:
        raise de.InternalServerError(str(e) or type(e).__name__)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _stream_stats(stats: StatsRegistry) -> Iterator[str]:
    yield '{\n'
    first = True
    for name, var in stats.items():
        if not first:
            yield ',\n'
        first = False
        yield f'{json.dumps(name)}: {var.json()}'
    yield '\n}\n'


@router.get('/stats')
async def stats_handler(stats: StatsRegistry = Depends(get_stats)):
    return StreamingResponse(_stream_stats(stats), media_type=STATS_CONTENT_TYPE)


@router.post('/logging/{level}')
async def log_handler(level: str, log_levels: LogLevelController = Depends(get_log_levels)):
    try:
        log_levels.set_level(level)
    except de.InvalidLogLevel as e:
        raise de.BadRequest(str(e))

    logger.info('Log level set to %s', log_levels.level)
    return Response(status_code=status.HTTP_200_OK)
