"""
FastAPI server for the simulator dashboard.

REST routes for settings, opportunities, trades, analytics, backtests
and notifications, plus a websocket streaming engine events.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import orjson
import pydantic
from fastapi import Body, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from arbsim.config.settings import get_app_settings
from arbsim.core.engine import ArbitrageEngine, ManualExecutionRequest
from arbsim.core.errors import CollaboratorUnavailable, ValidationError
from arbsim.dashboard.broadcaster import EventBroadcaster
from arbsim.telemetry.metrics import build_analytics


logger = logging.getLogger(__name__)


class BacktestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    initial_capital: float = Field(gt=0)
    days: float = Field(ge=0, le=3650)
    min_profit: float = Field(default=0.0, ge=0)


def create_app(engine: ArbitrageEngine | None = None, start_timers: bool = True) -> FastAPI:
    """
    Build the dashboard application.

    Args:
        engine: Engine to serve (default: built from AppSettings at startup).
        start_timers: Start the engine's price and detection timers.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = engine or ArbitrageEngine(get_app_settings())
        broadcaster = EventBroadcaster(
            active.event_bus,
            queue_size=active.app_settings.subscriber_queue_size,
            metrics=active.metrics,
        )
        broadcaster.attach()
        app.state.engine = active
        app.state.broadcaster = broadcaster

        if start_timers:
            active.start()
        try:
            yield
        finally:
            await active.stop()
            broadcaster.detach()

    app = FastAPI(title="Arbitrage Simulator", version="1.0.0", lifespan=lifespan)
    app.add_exception_handler(ValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(CollaboratorUnavailable, handle_unavailable)  # type: ignore[arg-type]

    app.get("/api/settings")(get_settings)
    app.put("/api/settings")(update_settings)
    app.get("/api/opportunities")(get_opportunities)
    app.post("/api/trades/execute")(execute_trade)
    app.get("/api/trades")(get_trades)
    app.get("/api/analytics")(get_analytics)
    app.post("/api/backtest/run")(run_backtest)
    app.get("/api/notifications")(get_notifications)
    app.post("/api/notifications/{notification_id}/read")(mark_notification_read)
    app.get("/api/status")(get_status)
    app.websocket("/ws")(websocket_endpoint)
    return app


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def handle_unavailable(request: Request, exc: CollaboratorUnavailable) -> JSONResponse:
    logger.warning(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"error": str(exc)})


def _engine(request: Request) -> ArbitrageEngine:
    return request.app.state.engine


# =============================================================================
# REST Routes
# =============================================================================


async def get_settings(request: Request) -> dict[str, Any]:
    settings = await _engine(request).store.get_settings()
    return settings.model_dump()


async def update_settings(
    request: Request,
    payload: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    settings = await _engine(request).store.update_settings(payload)
    return settings.model_dump()


async def get_opportunities(request: Request) -> list[dict[str, Any]]:
    opportunities = await _engine(request).store.get_active_opportunities()
    return [opp.to_dict() for opp in opportunities]


async def execute_trade(
    request: Request,
    payload: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    trade = await _engine(request).execute_manual(ManualExecutionRequest.parse(payload))
    return trade.to_dict()


async def get_trades(
    request: Request,
    limit: int | None = Query(default=None, ge=1),
) -> list[dict[str, Any]]:
    store = _engine(request).store
    if limit is not None:
        trades = await store.get_recent_trades(limit)
    else:
        trades = await store.get_all_trades()
    return [trade.to_dict() for trade in trades]


async def get_analytics(request: Request) -> dict[str, Any]:
    trades = await _engine(request).store.get_all_trades()
    return build_analytics(trades)


async def run_backtest(
    request: Request,
    payload: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    try:
        params = BacktestRequest.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid backtest request: {e}") from e

    report = await _engine(request).run_backtest(
        params.initial_capital, params.days, params.min_profit
    )
    return report.to_dict()


async def get_notifications(request: Request, unread_only: bool = False) -> list[dict[str, Any]]:
    notifications = await _engine(request).store.get_notifications(unread_only=unread_only)
    return [n.to_dict() for n in notifications]


async def mark_notification_read(request: Request, notification_id: str) -> dict[str, Any]:
    if not await _engine(request).store.mark_notification_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"id": notification_id, "is_read": True}


async def get_status(request: Request) -> dict[str, Any]:
    broadcaster: EventBroadcaster = request.app.state.broadcaster
    return {
        **_engine(request).status(),
        "subscribers": broadcaster.subscriber_count,
        "dropped_events": broadcaster.dropped_count,
    }


# =============================================================================
# WebSocket
# =============================================================================


async def websocket_endpoint(websocket: WebSocket) -> None:
    engine: ArbitrageEngine = websocket.app.state.engine
    broadcaster: EventBroadcaster = websocket.app.state.broadcaster

    await websocket.accept()
    queue = broadcaster.subscribe()

    await websocket.send_text(
        orjson.dumps({"type": "init", "data": {"running": engine.is_running}}).decode()
    )

    async def send_events() -> None:
        while True:
            message = await queue.get()
            await websocket.send_text(message.decode())

    async def receive_commands() -> None:
        while True:
            try:
                msg = orjson.loads(await websocket.receive_text())
            except orjson.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue
            if msg.get("action") == "start":
                engine.start()
            elif msg.get("action") == "stop":
                await engine.stop()

    sender = asyncio.create_task(send_events())
    receiver = asyncio.create_task(receive_commands())
    try:
        done, pending = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.warning(f"WebSocket closed with error: {exc}")
    finally:
        sender.cancel()
        receiver.cancel()
        broadcaster.unsubscribe(queue)


app = create_app()


def main() -> None:
    import uvicorn

    from arbsim.telemetry.logger import setup_logging

    settings = get_app_settings()
    async_logger = setup_logging(settings.log_level, settings.log_file)

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║              ARBITRAGE SIMULATOR - DASHBOARD                  ║
╚═══════════════════════════════════════════════════════════════╝

Dashboard API: http://{settings.host}:{settings.port}
Press Ctrl+C to stop.
    """
    )
    try:
        uvicorn.run(
            "arbsim.dashboard.server:app",
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level="warning",
        )
    finally:
        async_logger.stop()


if __name__ == "__main__":
    main()
