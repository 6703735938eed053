import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone

from .models import CaseQuery, LogEntry

logger = logging.getLogger(__name__)

DB_NAME = "queries.db"


def init_db(path=DB_NAME):
    conn = sqlite3.connect(path)
    try:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS queries_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                case_type TEXT,
                case_number TEXT,
                filing_year TEXT,
                response_data TEXT,
                captcha_attempt TEXT
            )
        ''')
        conn.commit()
    finally:
        conn.close()
    logger.info('Table "queries_log" ready in %s', path)


class QueryLog:
    """Append-only log of case queries and their outcomes."""

    def __init__(self, path=DB_NAME):
        self.path = path
        self._write_lock = threading.Lock()

    def _connect(self):
        return sqlite3.connect(self.path)

    def append(self, query, outcome, captcha_attempt=None):
        """Record one resolved query.

        Store failures are logged and swallowed so the caller's request still
        completes; the returned entry then has no id.
        """
        entry = LogEntry(
            id=None,
            timestamp=datetime.now(timezone.utc).isoformat(),
            query=query,
            outcome=outcome.to_log_dict(),
            captcha_attempt=captcha_attempt,
        )
        try:
            with self._write_lock:
                conn = self._connect()
                try:
                    cursor = conn.execute('''
                        INSERT INTO queries_log (timestamp, case_type, case_number, filing_year,
                                                 response_data, captcha_attempt)
                        VALUES (?, ?, ?, ?, ?, ?)
                    ''', (entry.timestamp, query.case_type, query.case_number, query.filing_year,
                          json.dumps(entry.outcome), captcha_attempt))
                    conn.commit()
                    entry.id = cursor.lastrowid
                finally:
                    conn.close()
        except sqlite3.Error:
            logger.exception("Error logging query %s", query)
            return entry

        logger.info("Query logged with ID: %s", entry.id)
        return entry

    def list(self):
        conn = self._connect()
        try:
            rows = conn.execute('''
                SELECT id, timestamp, case_type, case_number, filing_year, response_data, captcha_attempt
                FROM queries_log
                ORDER BY id DESC
            ''').fetchall()
        finally:
            conn.close()
        return [_row_to_entry(row) for row in rows]


def _row_to_entry(row):
    entry_id, timestamp, case_type, case_number, filing_year, response_data, captcha_attempt = row
    try:
        outcome = json.loads(response_data) if response_data else {}
    except ValueError:
        outcome = {"kind": "unreadable", "message": response_data}
    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        query=CaseQuery(case_type or "", case_number or "", filing_year or ""),
        outcome=outcome,
        captcha_attempt=captcha_attempt,
    )
