"""
Journal Storage Engine — SQLite-backed document store
=====================================================

One JSON document per row, plus the indexed columns we filter on.

Tables:
  trades          — Trade documents, keyed by trade id, scoped by user
  activities      — Activity documents
  user_progress   — one UserProgress document per user
  rule_checkins   — one RuleCheckIn per (user, date); the primary key
                    makes a second check-in for the same day impossible
  rule_preferences — one RulePreferences document per user

Writes are whole-document overwrites (last write wins), except for
save_progress(expected_updated_at=...) which refuses to overwrite a
document that changed since it was read. record_checkin_with_progress()
writes a check-in and its progress update in a single transaction.
"""

from __future__ import annotations
import json
import os
import sqlite3
import threading
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from tradejournal.journal.models import (
    Activity, RuleCheckIn, Trade, UserProgress, TradeStatus,
)
from tradejournal.journal.rule_preferences import RulePreferences
from tradejournal.utils.exceptions import (
    CheckInAlreadyRecordedError, NotFoundError, ProgressConflictError, StorageError, ValidationError,
)

logger = logging.getLogger("journal_store")


class JournalStore:
    """
    SQLite journal store.
    Thread-safe (one connection per thread), whole-document writes.
    """

    def __init__(self, db_path: str = "data/tradejournal.db"):
        self._db_path = db_path
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._local = threading.local()
        try:
            self._init_db()
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Cannot open journal database {db_path}: {e}") from e
        logger.info("JournalStore initialized: %s", db_path)

    def _get_conn(self) -> sqlite3.Connection:
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(self._db_path, timeout=10)
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA synchronous=NORMAL")
        return self._local.conn

    def close(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def _init_db(self):
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS trades (
                trade_id        TEXT PRIMARY KEY,
                user_id         TEXT NOT NULL,
                symbol          TEXT DEFAULT '',
                strategy        TEXT DEFAULT '',
                status          TEXT DEFAULT 'open',
                entry_date      TEXT DEFAULT '',
                exit_date       TEXT DEFAULT '',
                pnl             REAL,
                created_at      TEXT DEFAULT '',
                last_modified   TEXT DEFAULT '',
                data            TEXT DEFAULT '{}'
            );

            CREATE TABLE IF NOT EXISTS activities (
                activity_id     TEXT PRIMARY KEY,
                user_id         TEXT NOT NULL,
                activity_type   TEXT DEFAULT '',
                date            TEXT DEFAULT '',
                created_at      TEXT DEFAULT '',
                data            TEXT DEFAULT '{}'
            );

            CREATE TABLE IF NOT EXISTS user_progress (
                user_id     TEXT PRIMARY KEY,
                updated_at  TEXT DEFAULT '',
                data        TEXT DEFAULT '{}'
            );

            CREATE TABLE IF NOT EXISTS rule_checkins (
                user_id     TEXT NOT NULL,
                date        TEXT NOT NULL,
                xp_awarded  INTEGER DEFAULT 0,
                timestamp   TEXT DEFAULT '',
                data        TEXT DEFAULT '{}',
                PRIMARY KEY (user_id, date)
            );

            CREATE TABLE IF NOT EXISTS rule_preferences (
                user_id     TEXT PRIMARY KEY,
                data        TEXT DEFAULT '{}'
            );

            CREATE INDEX IF NOT EXISTS idx_tr_user ON trades(user_id);
            CREATE INDEX IF NOT EXISTS idx_tr_entry_date ON trades(entry_date);
            CREATE INDEX IF NOT EXISTS idx_tr_exit_date ON trades(exit_date);
            CREATE INDEX IF NOT EXISTS idx_tr_status ON trades(status);
            CREATE INDEX IF NOT EXISTS idx_ac_user ON activities(user_id);
            CREATE INDEX IF NOT EXISTS idx_ac_date ON activities(date);
        """)
        conn.commit()

    # ─── TRADES ─────────────────────────────────────────────────

    def record_trade(self, trade: Trade) -> str:
        """Insert or replace a trade document."""
        if not trade.user_id:
            raise ValidationError("Trade must belong to a user")
        trade.validate()
        trade.last_modified = datetime.now().isoformat()
        conn = self._get_conn()
        d = trade.to_dict()
        conn.execute("""
            INSERT OR REPLACE INTO trades
            (trade_id, user_id, symbol, strategy, status, entry_date, exit_date,
             pnl, created_at, last_modified, data)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            d["id"], d["user_id"], d["symbol"], d["strategy"], d["status"],
            d["entry_date"], d["exit_date"] or "", d["pnl"],
            d["created_at"], d["last_modified"], json.dumps(d, default=str),
        ))
        conn.commit()
        return trade.id

    def get_trade(self, trade_id: str) -> Optional[Trade]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM trades WHERE trade_id = ?", (trade_id,)).fetchone()
        if row:
            return Trade.from_dict(json.loads(row["data"]))
        return None

    def _require_trade(self, trade_id: str) -> Trade:
        trade = self.get_trade(trade_id)
        if not trade:
            raise NotFoundError("Trade not found", trade_id)
        return trade

    def list_trades(self, user_id: str, status: str = "", from_date: str = "",
                    to_date: str = "") -> List[Trade]:
        """All of a user's trades, newest entry first."""
        conn = self._get_conn()
        conditions, params = ["user_id = ?"], [user_id]
        if status:
            conditions.append("status = ?"); params.append(status)
        if from_date:
            conditions.append("entry_date >= ?"); params.append(from_date)
        if to_date:
            conditions.append("entry_date <= ?"); params.append(to_date)
        where = " AND ".join(conditions)
        rows = conn.execute(
            f"SELECT data FROM trades WHERE {where} ORDER BY entry_date DESC, created_at DESC",
            params).fetchall()
        trades = []
        for row in rows:
            try:
                trades.append(Trade.from_dict(json.loads(row["data"])))
            except (TypeError, ValueError) as e:
                logger.error("Failed to parse trade document: %s", e)
        return trades

    def update_trade(self, trade_id: str, updates: Dict[str, Any]) -> Trade:
        """Edit the journal side of a trade: notes, screenshot, strategy, risk."""
        trade = self._require_trade(trade_id)
        editable = {"notes", "screenshot", "strategy", "risk_amount", "risk_reward_ratio", "company"}
        for key, value in updates.items():
            if key in editable:
                setattr(trade, key, value)
        self.record_trade(trade)
        return trade

    def close_trade(self, trade_id: str, exit_price: float, pnl: float, exit_date: str = "") -> Trade:
        trade = self._require_trade(trade_id)
        if trade.status == TradeStatus.CLOSED.value:
            logger.warning("Re-closing trade %s", trade_id)
        trade.close_trade(exit_price, pnl, exit_date)
        self.record_trade(trade)
        return trade

    def delete_trade(self, trade_id: str) -> bool:
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM trades WHERE trade_id = ?", (trade_id,))
        conn.commit()
        return cur.rowcount > 0

    # ─── ACTIVITIES ─────────────────────────────────────────────

    def add_activity(self, activity: Activity) -> str:
        if not activity.user_id:
            raise ValidationError("Activity must belong to a user")
        activity.validate()
        self._write_activity(activity)
        return activity.id

    def _write_activity(self, activity: Activity):
        conn = self._get_conn()
        d = activity.to_dict()
        conn.execute("""
            INSERT OR REPLACE INTO activities
            (activity_id, user_id, activity_type, date, created_at, data)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (d["id"], d["user_id"], d["activity_type"], d["date"], d["created_at"],
              json.dumps(d, default=str)))
        conn.commit()

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM activities WHERE activity_id = ?",
                           (activity_id,)).fetchone()
        if row:
            return Activity.from_dict(json.loads(row["data"]))
        return None

    def update_activity_notes(self, activity_id: str, notes: str) -> Activity:
        activity = self.get_activity(activity_id)
        if not activity:
            raise NotFoundError("Activity not found", activity_id)
        activity.notes = notes
        activity.updated_at = datetime.now().isoformat()
        activity.validate()
        self._write_activity(activity)
        return activity

    def delete_activity(self, activity_id: str) -> bool:
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM activities WHERE activity_id = ?", (activity_id,))
        conn.commit()
        return cur.rowcount > 0

    def list_activities(self, user_id: str) -> List[Activity]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT data FROM activities WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,)).fetchall()
        return [Activity.from_dict(json.loads(r["data"])) for r in rows]

    # ─── USER PROGRESS ──────────────────────────────────────────

    def create_progress(self, user_id: str) -> UserProgress:
        """Fresh level-1 record, written once when the account is created."""
        existing = self.get_progress(user_id)
        if existing:
            return existing
        progress = UserProgress(user_id=user_id)
        self.save_progress(progress)
        logger.info("Progress created for %s", user_id)
        return progress

    def get_progress(self, user_id: str) -> Optional[UserProgress]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM user_progress WHERE user_id = ?",
                           (user_id,)).fetchone()
        if row:
            return UserProgress.from_dict(json.loads(row["data"]))
        return None

    def save_progress(self, progress: UserProgress,
                      expected_updated_at: Optional[str] = None) -> UserProgress:
        conn = self._get_conn()
        try:
            self._write_progress(conn, progress, expected_updated_at)
            conn.commit()
        except ProgressConflictError:
            conn.rollback()
            raise
        return progress

    def _write_progress(self, conn: sqlite3.Connection, progress: UserProgress,
                        expected_updated_at: Optional[str]):
        """Guarded upsert; the caller owns the transaction."""
        if expected_updated_at is not None:
            row = conn.execute("SELECT updated_at FROM user_progress WHERE user_id = ?",
                               (progress.user_id,)).fetchone()
            current = row["updated_at"] if row else None
            if current != expected_updated_at:
                raise ProgressConflictError(progress.user_id)
        progress.updated_at = datetime.now().isoformat()
        d = progress.to_dict()
        conn.execute("""
            INSERT OR REPLACE INTO user_progress (user_id, updated_at, data)
            VALUES (?, ?, ?)
        """, (d["user_id"], d["updated_at"], json.dumps(d, default=str)))

    # ─── RULE CHECK-INS ─────────────────────────────────────────

    def get_checkin(self, user_id: str, date: str) -> Optional[RuleCheckIn]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM rule_checkins WHERE user_id = ? AND date = ?",
                           (user_id, date)).fetchone()
        if row:
            return RuleCheckIn.from_dict(json.loads(row["data"]))
        return None

    def record_checkin(self, checkin: RuleCheckIn) -> None:
        conn = self._get_conn()
        try:
            self._insert_checkin(conn, checkin)
            conn.commit()
        except CheckInAlreadyRecordedError:
            conn.rollback()
            raise

    def _insert_checkin(self, conn: sqlite3.Connection, checkin: RuleCheckIn):
        d = checkin.to_dict()
        try:
            conn.execute("""
                INSERT INTO rule_checkins (user_id, date, xp_awarded, timestamp, data)
                VALUES (?, ?, ?, ?, ?)
            """, (d["user_id"], d["date"], d["xp_awarded"], d["timestamp"],
                  json.dumps(d, default=str)))
        except sqlite3.IntegrityError:
            raise CheckInAlreadyRecordedError(checkin.user_id, checkin.date)

    def record_checkin_with_progress(self, checkin: RuleCheckIn, progress: UserProgress,
                                     expected_updated_at: Optional[str] = None) -> UserProgress:
        """
        Insert the check-in and write the progress it produced in one
        transaction. A duplicate day or a stale progress document rolls
        both back.
        """
        conn = self._get_conn()
        conn.execute("BEGIN IMMEDIATE")
        try:
            self._insert_checkin(conn, checkin)
            self._write_progress(conn, progress, expected_updated_at)
        except Exception:
            conn.rollback()
            raise
        conn.commit()
        return progress

    def list_checkins(self, user_id: str) -> List[RuleCheckIn]:
        conn = self._get_conn()
        rows = conn.execute("SELECT data FROM rule_checkins WHERE user_id = ? ORDER BY date",
                            (user_id,)).fetchall()
        return [RuleCheckIn.from_dict(json.loads(r["data"])) for r in rows]

    # ─── RULE PREFERENCES ───────────────────────────────────────

    def get_rule_preferences(self, user_id: str) -> Optional[RulePreferences]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM rule_preferences WHERE user_id = ?",
                           (user_id,)).fetchone()
        if row:
            return RulePreferences.from_dict(json.loads(row["data"]))
        return None

    def save_rule_preferences(self, user_id: str, preferences: RulePreferences) -> None:
        conn = self._get_conn()
        conn.execute("INSERT OR REPLACE INTO rule_preferences (user_id, data) VALUES (?, ?)",
                     (user_id, json.dumps(preferences.to_dict())))
        conn.commit()

    # ─── EXPORT ─────────────────────────────────────────────────

    def export_user(self, user_id: str) -> Dict[str, Any]:
        progress = self.get_progress(user_id)
        preferences = self.get_rule_preferences(user_id)
        return {
            "user_id": user_id,
            "trades": [t.to_dict() for t in self.list_trades(user_id)],
            "activities": [a.to_dict() for a in self.list_activities(user_id)],
            "checkins": [c.to_dict() for c in self.list_checkins(user_id)],
            "progress": progress.to_dict() if progress else None,
            "rule_preferences": preferences.to_dict() if preferences else None,
        }
