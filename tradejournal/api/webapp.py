from __future__ import annotations

import math
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tradejournal.journal.models import Activity, Trade, parse_day
from tradejournal.journal.progress_service import ProgressService
from tradejournal.journal.rule_preferences import (
    RulePreferences, behavior_after_loss_message, has_completed_rule_setup,
    journal_reminder, session_time_range, should_show_trade_confirmation,
)
from tradejournal.journal.store import JournalStore
from tradejournal.journal.trade_metrics import compute_trade_metrics
from tradejournal.journal.xp_rules import xp_table
from tradejournal.utils.config import get_settings
from tradejournal.utils.exceptions import ErrorCategory, JournalError
from tradejournal.utils.logger import (
    bind_request_context, clear_request_context, get_logger, sanitize_log_data,
)

logger = get_logger(__name__)

app = FastAPI(title="Trade Journal", version="1.0")

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.STORAGE: 500,
    ErrorCategory.SYSTEM: 500,
}


class CloseTradeRequest(BaseModel):
    exit_price: float
    pnl: float
    exit_date: str = ""


class ActivityNotesRequest(BaseModel):
    notes: str


class CheckInRequest(BaseModel):
    followed: List[Optional[bool]]
    honesty_confirmed: Optional[bool] = None
    date: Optional[str] = None


def get_store(request: Request) -> JournalStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = JournalStore(get_settings().journal_db_path)
        request.app.state.store = store
    return store


def get_service(request: Request) -> ProgressService:
    return ProgressService(get_store(request))


def owned_trade(store: JournalStore, user_id: str, trade_id: str) -> Trade:
    trade = store.get_trade(trade_id)
    if not trade or trade.user_id != user_id:
        raise HTTPException(404, "Trade not found")
    return trade


def owned_activity(store: JournalStore, user_id: str, activity_id: str) -> Activity:
    activity = store.get_activity(activity_id)
    if not activity or activity.user_id != user_id:
        raise HTTPException(404, "Activity not found")
    return activity


def json_safe(value: Any) -> Any:
    """Infinite profit factors are sent as the string "Infinity"."""
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return None
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


@app.exception_handler(JournalError)
async def journal_error_handler(request: Request, exc: JournalError):
    status = STATUS_BY_CATEGORY.get(exc.category, 500)
    if status >= 500:
        logger.error("journal_error", error=str(exc))
    else:
        logger.info("journal_request_rejected", error=str(exc))
    return JSONResponse(
        {"error": exc.message, "category": exc.category.value, "id": exc.resource_id},
        status_code=status,
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    bind_request_context(request.method, request.url.path)
    try:
        return await call_next(request)
    finally:
        clear_request_context()


# ── Trades ──────────────────────────────────────────────────

@app.get("/api/users/{user_id}/trades")
async def list_trades(request: Request, user_id: str, status: str = "") -> dict[str, Any]:
    trades = get_store(request).list_trades(user_id, status=status)
    return {"trades": [t.to_dict() for t in trades], "count": len(trades)}


@app.post("/api/users/{user_id}/trades")
async def create_trade(request: Request, user_id: str) -> dict[str, Any]:
    body = await request.json()
    logger.info("trade_create", user_id=user_id, body=sanitize_log_data(body))
    trade = Trade.from_dict({**body, "user_id": user_id})
    get_store(request).record_trade(trade)
    return {"success": True, "trade": trade.to_dict()}


@app.get("/api/users/{user_id}/trades/{trade_id}")
async def get_trade(request: Request, user_id: str, trade_id: str) -> dict[str, Any]:
    trade = owned_trade(get_store(request), user_id, trade_id)
    metrics = compute_trade_metrics(trade, get_settings().account_size)
    return {"trade": trade.to_dict(), "metrics": metrics.to_dict()}


@app.put("/api/users/{user_id}/trades/{trade_id}")
async def update_trade(request: Request, user_id: str, trade_id: str) -> dict[str, Any]:
    body = await request.json()
    store = get_store(request)
    owned_trade(store, user_id, trade_id)
    trade = store.update_trade(trade_id, body)
    return {"success": True, "trade": trade.to_dict()}


@app.post("/api/users/{user_id}/trades/{trade_id}/close")
async def close_trade(request: Request, user_id: str, trade_id: str,
                      payload: CloseTradeRequest) -> dict[str, Any]:
    store = get_store(request)
    owned_trade(store, user_id, trade_id)
    trade = store.close_trade(trade_id, payload.exit_price, payload.pnl, payload.exit_date)
    return {"success": True, "trade": trade.to_dict()}


@app.delete("/api/users/{user_id}/trades/{trade_id}")
async def delete_trade(request: Request, user_id: str, trade_id: str) -> dict[str, Any]:
    store = get_store(request)
    owned_trade(store, user_id, trade_id)
    if not store.delete_trade(trade_id):
        raise HTTPException(404, "Trade not found")
    return {"success": True}


# ── Activities ──────────────────────────────────────────────

@app.get("/api/users/{user_id}/activities")
async def list_activities(request: Request, user_id: str) -> dict[str, Any]:
    activities = get_store(request).list_activities(user_id)
    return {"activities": [a.to_dict() for a in activities]}


@app.post("/api/users/{user_id}/activities")
async def create_activity(request: Request, user_id: str) -> dict[str, Any]:
    body = await request.json()
    activity = Activity.from_dict({**body, "user_id": user_id})
    get_store(request).add_activity(activity)
    return {"success": True, "activity": activity.to_dict()}


@app.put("/api/users/{user_id}/activities/{activity_id}")
async def update_activity(request: Request, user_id: str, activity_id: str,
                          payload: ActivityNotesRequest) -> dict[str, Any]:
    store = get_store(request)
    owned_activity(store, user_id, activity_id)
    activity = store.update_activity_notes(activity_id, payload.notes)
    return {"success": True, "activity": activity.to_dict()}


@app.delete("/api/users/{user_id}/activities/{activity_id}")
async def delete_activity(request: Request, user_id: str, activity_id: str) -> dict[str, Any]:
    store = get_store(request)
    owned_activity(store, user_id, activity_id)
    if not store.delete_activity(activity_id):
        raise HTTPException(404, "Activity not found")
    return {"success": True}


# ── Statistics & progress ───────────────────────────────────

@app.get("/api/users/{user_id}/stats")
async def stats(request: Request, user_id: str) -> dict[str, Any]:
    return json_safe(get_service(request).get_stats(user_id).to_dict())


@app.post("/api/users/{user_id}/progress")
async def create_progress(request: Request, user_id: str) -> dict[str, Any]:
    return get_store(request).create_progress(user_id).to_dict()


@app.get("/api/users/{user_id}/progress")
async def get_progress(request: Request, user_id: str) -> dict[str, Any]:
    return get_service(request).get_progress(user_id).to_dict()


@app.post("/api/users/{user_id}/progress/refresh")
async def refresh_progress(request: Request, user_id: str) -> dict[str, Any]:
    return get_service(request).refresh_progress(user_id).to_dict()


@app.get("/api/users/{user_id}/today")
async def today(request: Request, user_id: str, date: Optional[str] = None) -> dict[str, Any]:
    return get_service(request).today_summary(user_id, date)


@app.get("/api/users/{user_id}/week")
async def week(request: Request, user_id: str, date: Optional[str] = None) -> dict[str, Any]:
    days = get_service(request).week(user_id, date)
    return {"days": [d.to_dict() for d in days]}


@app.get("/api/users/{user_id}/nudges")
async def nudges(request: Request, user_id: str, date: Optional[str] = None) -> dict[str, Any]:
    return {"nudges": [n.to_dict() for n in get_service(request).nudges(user_id, date)]}


@app.get("/api/users/{user_id}/export")
async def export(request: Request, user_id: str) -> dict[str, Any]:
    return get_store(request).export_user(user_id)


# ── Rules ───────────────────────────────────────────────────

@app.get("/api/users/{user_id}/rules")
async def get_rules(request: Request, user_id: str) -> dict[str, Any]:
    svc = get_service(request)
    stored = svc.store.get_rule_preferences(user_id)
    preferences = svc.rule_preferences(user_id)
    trades_today = len(svc.trades_on(user_id))
    return {
        "configured": has_completed_rule_setup(stored),
        "preferences": preferences.to_dict(),
        "session": session_time_range(preferences.session),
        "after_loss": behavior_after_loss_message(preferences.behavior_after_loss),
        "journal_reminder": journal_reminder(preferences.journal_review_frequency),
        "trade_confirmation": should_show_trade_confirmation(preferences, trades_today),
    }


@app.put("/api/users/{user_id}/rules")
async def save_rules(request: Request, user_id: str) -> dict[str, Any]:
    body = await request.json()
    preferences = RulePreferences.from_dict(body)
    get_store(request).save_rule_preferences(user_id, preferences)
    return {"success": True, "preferences": preferences.to_dict()}


@app.post("/api/users/{user_id}/checkin")
async def checkin(request: Request, user_id: str, payload: CheckInRequest) -> dict[str, Any]:
    svc = get_service(request)
    answers = svc.answers_for(user_id, payload.followed)
    result = svc.submit_checkin(user_id, answers, payload.honesty_confirmed, payload.date)
    score = result["score"]
    return {
        "tier": score.tier,
        "xp_awarded": score.xp_awarded,
        "streak": score.new_streak,
        "rules_followed": score.rules_followed,
        "rules_broken": score.rules_broken,
        "message": result["message"],
        "progress": result["progress"].to_dict(),
    }


@app.get("/api/users/{user_id}/checkin")
async def get_checkin(request: Request, user_id: str, date: str) -> dict[str, Any]:
    record = get_store(request).get_checkin(user_id, parse_day(date).isoformat())
    return {"checked_in": record is not None, "checkin": record.to_dict() if record else None}


@app.get("/api/xp-table")
async def get_xp_table() -> dict[str, Any]:
    return xp_table()
