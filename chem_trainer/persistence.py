from __future__ import annotations

import os
import sqlite3
import time
from pathlib import Path

from .results import ProgressTotals, SessionSummary

SCHEMA_VERSION = 1

DB_PATH_ENV = "CHEM_TRAINER_DB_PATH"


def default_db_path() -> Path:
    override = os.environ.get(DB_PATH_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".chem_trainer" / "progress.sqlite3"


def open_db(path: Path) -> sqlite3.Connection:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session_result (
                id INTEGER PRIMARY KEY,
                game_code TEXT NOT NULL,
                app_version TEXT NOT NULL,
                rng_seed INTEGER NOT NULL,
                difficulty TEXT NOT NULL,
                game_mode TEXT NOT NULL,
                timer_mode INTEGER NOT NULL,
                total_problems INTEGER NOT NULL,
                problems_completed INTEGER NOT NULL,
                correct INTEGER NOT NULL,
                score INTEGER NOT NULL,
                max_score INTEGER NOT NULL,
                best_streak INTEGER NOT NULL,
                hints_used INTEGER NOT NULL,
                solutions_revealed INTEGER NOT NULL,
                achievements TEXT NOT NULL,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS answer_event (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL REFERENCES session_result(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                problem_id TEXT NOT NULL,
                problem_type TEXT NOT NULL,
                prompt TEXT NOT NULL,
                expected REAL NOT NULL,
                response TEXT NOT NULL,
                is_correct INTEGER NOT NULL,
                timed_out INTEGER NOT NULL,
                hint_level INTEGER NOT NULL,
                points INTEGER NOT NULL,
                presented_at_ms INTEGER NOT NULL,
                answered_at_ms INTEGER NOT NULL,
                rt_ms INTEGER NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_session_result_game ON session_result(game_code);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_answer_event_session_seq ON answer_event(session_id, seq);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def record_session(*, db_path: Path, summary: SessionSummary, game_code: str, app_version: str) -> int:
    """
    Store one finished session:
      session_result + answer_event rows
    """
    conn = open_db(db_path)
    try:
        return _insert_session(conn=conn, summary=summary, game_code=game_code, app_version=app_version)
    finally:
        conn.close()


def load_progress(*, db_path: Path, game_code: str) -> ProgressTotals:
    """Fold every stored session for ``game_code`` into running totals."""

    conn = open_db(db_path)
    try:
        row = conn.execute(
            """
            SELECT
                COALESCE(SUM(score), 0),
                COALESCE(SUM(problems_completed), 0),
                COALESCE(SUM(correct), 0),
                COALESCE(MAX(best_streak), 0),
                COUNT(*)
            FROM session_result
            WHERE game_code = ?
            """,
            (str(game_code),),
        ).fetchone()
    finally:
        conn.close()

    return ProgressTotals(
        total_score=int(row[0]),
        total_questions=int(row[1]),
        total_correct=int(row[2]),
        best_streak=int(row[3]),
        games_played=int(row[4]),
    )


def _insert_session(*, conn: sqlite3.Connection, summary: SessionSummary, game_code: str, app_version: str) -> int:
    with conn:
        cur = conn.execute(
            """
            INSERT INTO session_result(
                game_code, app_version, rng_seed, difficulty, game_mode, timer_mode,
                total_problems, problems_completed, correct, score, max_score,
                best_streak, hints_used, solutions_revealed, achievements,
                completed_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(game_code),
                app_version,
                int(summary.seed),
                str(summary.difficulty.value),
                str(summary.game_mode.value),
                1 if summary.timer_mode else 0,
                int(summary.total_problems),
                int(summary.problems_completed),
                int(summary.correct),
                int(summary.score),
                int(summary.max_score),
                int(summary.best_streak),
                int(summary.hints_used),
                int(summary.solutions_revealed),
                ",".join(summary.achievements),
                _utc_now_iso(),
            ),
        )
        session_id = int(cur.lastrowid)

        for e in summary.events:
            response_text = "" if e.timed_out else (e.raw or "").strip()
            conn.execute(
                """
                INSERT INTO answer_event(
                    session_id, seq, problem_id, problem_type, prompt, expected,
                    response, is_correct, timed_out, hint_level, points,
                    presented_at_ms, answered_at_ms, rt_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    int(e.index),
                    str(e.problem_id),
                    str(e.problem_type.value),
                    str(e.prompt),
                    float(e.expected),
                    response_text,
                    1 if e.is_correct else 0,
                    1 if e.timed_out else 0,
                    int(e.hint_level),
                    int(e.score_event.total),
                    int(round(e.presented_at_s * 1000.0)),
                    int(round(e.answered_at_s * 1000.0)),
                    int(round(e.response_time_s * 1000.0)),
                ),
            )

    return session_id
