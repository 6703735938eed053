import sqlite3

from case_fetcher.database import QueryLog, init_db
from case_fetcher.lookup import ExactLookupResolver
from case_fetcher.models import CaseQuery, Outcome, OutcomeKind


def _found(query):
    return ExactLookupResolver().resolve(query)


def test_init_db_is_idempotent(db_path) -> None:
    init_db(db_path)
    init_db(db_path)
    conn = sqlite3.connect(db_path)
    try:
        columns = [row[1] for row in conn.execute("PRAGMA table_info(queries_log)")]
    finally:
        conn.close()
    assert columns == ["id", "timestamp", "case_type", "case_number", "filing_year",
                       "response_data", "captcha_attempt"]


def test_append_assigns_increasing_ids_and_timestamp(query_log) -> None:
    first = query_log.append(CaseQuery("criminal", "101", "2023"), Outcome.not_found())
    second = query_log.append(CaseQuery("civil", "201", "2022"), Outcome.not_found())
    assert first.id is not None
    assert second.id > first.id
    assert "T" in first.timestamp


def test_list_is_newest_first(query_log) -> None:
    query_log.append(CaseQuery("criminal", "101", "2023"), Outcome.not_found())
    newest = query_log.append(CaseQuery("writ", "301", "2021"), Outcome.not_found())

    entries = query_log.list()
    assert entries[0].id == newest.id
    assert entries[0].query == CaseQuery("writ", "301", "2021")


def test_list_is_stable_without_appends(query_log) -> None:
    query_log.append(CaseQuery("criminal", "101", "2023"), Outcome.not_found())
    assert [e.to_dict() for e in query_log.list()] == [e.to_dict() for e in query_log.list()]


def test_success_outcome_round_trips_to_case_record(query_log) -> None:
    query = CaseQuery("criminal", "101", "2023")
    outcome = _found(query)
    query_log.append(query, outcome)

    entry = query_log.list()[0]
    assert entry.succeeded
    record = entry.case_record()
    assert record == outcome.record
    assert record.orders[0].pdf_link == outcome.record.orders[0].pdf_link


def test_failure_outcome_is_stored_as_error_descriptor(query_log) -> None:
    outcome = Outcome.failure(OutcomeKind.PARSE_ERROR, "table missing", detail="<html></html>")
    query_log.append(CaseQuery("civil", "1", "2020"), outcome, captcha_attempt="4821")

    entry = query_log.list()[0]
    assert not entry.succeeded
    assert entry.case_record() is None
    assert entry.outcome == {"kind": "parse_error", "message": "table missing", "detail": "<html></html>"}
    assert entry.captcha_attempt == "4821"


def test_store_failure_is_swallowed(tmp_path, caplog) -> None:
    # no table was created, so the insert fails
    broken = QueryLog(str(tmp_path / "empty.db"))
    entry = broken.append(CaseQuery("criminal", "101", "2023"), Outcome.not_found())
    assert entry.id is None
    assert entry.outcome["kind"] == "not_found"
    assert "Error logging query" in caplog.text
