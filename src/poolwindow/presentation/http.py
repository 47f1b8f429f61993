from __future__ import annotations

import logging
from typing import Callable

from flask import Flask, jsonify, request

from ..adapters.rpc_httpx import HttpxRPC
from ..application.use_cases import checked_address, fetch_activity_report, get_pool_activity
from ..application.utils import now_ts, parse_timestamp
from ..config import Settings
from ..domain.errors import (
    FutureTimestampError, NodeUnavailableError, PoolNotFoundError, PoolWindowError,
)
from ..domain.models import TimeWindow
from ..domain.value_types import Address
from .serialize import report_to_dict

logger = logging.getLogger(__name__)


def err(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _status_for(e: Exception) -> int:
    if isinstance(e, PoolNotFoundError):
        return 404
    if isinstance(e, NodeUnavailableError):
        return 502
    if isinstance(e, (FutureTimestampError, ValueError)):
        return 400
    return 500


def create_app(
    settings: Settings | None = None,
    *,
    rpc_factory: Callable[[Settings], HttpxRPC] = HttpxRPC.from_settings,
    now: Callable[[], int] = now_ts,
) -> Flask:
    """Flask app exposing GET /pool-data.

    Query parameters: token_a, token_b (or pool), start_timestamp,
    end_timestamp, and optionally fee and end_resolution. Timestamps accept
    "YYYY-MM-DD HH:MM:SS" (UTC), ISO-8601 or unix seconds.
    """
    settings = settings or Settings.from_env()
    app = Flask(__name__)

    @app.get("/pool-data")
    async def pool_data():
        args = request.args
        pool = args.get("pool", "").strip()
        token_a = args.get("token_a", "").strip()
        token_b = args.get("token_b", "").strip()
        if not pool and not (token_a and token_b):
            return err("Invalid input: Token addresses cannot be empty")
        if not args.get("start_timestamp") or not args.get("end_timestamp"):
            return err("Invalid input: start_timestamp and end_timestamp are required")
        try:
            if pool:
                pool = checked_address(pool)
            window = TimeWindow(parse_timestamp(args["start_timestamp"]), parse_timestamp(args["end_timestamp"]))
            fee = int(args.get("fee", settings.fee))
            end_resolution = args.get("end_resolution", settings.end_resolution)
            if end_resolution not in ("projected", "exact"):
                raise ValueError(f"Invalid end_resolution: {end_resolution!r}")
        except ValueError as e:
            return err(f"Invalid input: {e}")

        options = dict(
            sample_size=settings.sample_size,
            end_resolution=end_resolution,
            log_step=settings.log_step,
            concurrency=settings.concurrency,
            now=now,
        )
        try:
            async with rpc_factory(settings) as rpc:
                if pool:
                    report = await fetch_activity_report(rpc, pool, window, **options)
                else:
                    report = await get_pool_activity(
                        rpc, settings.factory_address, Address(token_a), Address(token_b), window,
                        fee=fee, **options,
                    )
        except (PoolWindowError, ValueError) as e:
            status = _status_for(e)
            logger.log(logging.ERROR if status >= 500 else logging.INFO, "pool-data failed (%d): %s", status, e)
            return err(f"Error fetching data: {e}", status)

        body = report_to_dict(report)
        body.update(token_a=token_a or None, token_b=token_b or None)
        return jsonify(body)

    return app
