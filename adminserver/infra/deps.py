from fastapi import Request

from adminserver.adapters.logging.levels import LogLevelController
from adminserver.adapters.stats.registry import StatsRegistry
from adminserver.config import ServerConfig


def get_config(request: Request) -> ServerConfig:
    return request.app.state.config


def get_stats(request: Request) -> StatsRegistry:
    return request.app.state.config.stats


def get_log_levels(request: Request) -> LogLevelController:
    return request.app.state.config.log_levels
