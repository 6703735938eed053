from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class CaseQuery:
    case_type: str
    case_number: str
    filing_year: str

    def to_dict(self):
        return {
            "caseType": self.case_type,
            "caseNumber": self.case_number,
            "filingYear": self.filing_year,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            case_type=data.get("caseType", ""),
            case_number=data.get("caseNumber", ""),
            filing_year=data.get("filingYear", ""),
        )


@dataclass(frozen=True)
class OrderRecord:
    date: str
    description: str
    pdf_link: str

    def to_dict(self):
        return {"date": self.date, "description": self.description, "pdfLink": self.pdf_link}

    @classmethod
    def from_dict(cls, data):
        return cls(
            date=data.get("date", ""),
            description=data.get("description", ""),
            pdf_link=data.get("pdfLink", ""),
        )


@dataclass(frozen=True)
class CaseRecord:
    case_type: str
    case_number: str
    filing_year: str
    parties: str
    filing_date: str
    next_hearing_date: str
    orders: Tuple[OrderRecord, ...] = ()
    raw_response: str = ""

    def to_dict(self, include_raw=True):
        data = {
            "caseType": self.case_type,
            "caseNumber": self.case_number,
            "filingYear": self.filing_year,
            "parties": self.parties,
            "filingDate": self.filing_date,
            "nextHearingDate": self.next_hearing_date,
            "orders": [order.to_dict() for order in self.orders],
        }
        if include_raw:
            data["rawResponse"] = self.raw_response
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            case_type=data.get("caseType", ""),
            case_number=data.get("caseNumber", ""),
            filing_year=data.get("filingYear", ""),
            parties=data.get("parties", ""),
            filing_date=data.get("filingDate", ""),
            next_hearing_date=data.get("nextHearingDate", ""),
            orders=tuple(OrderRecord.from_dict(o) for o in data.get("orders", [])),
            raw_response=data.get("rawResponse", ""),
        )


class OutcomeKind(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    CAPTCHA_NOT_FOUND = "captcha_not_found"
    CAPTCHA_UNSOLVED = "captcha_unsolved"
    PARSE_ERROR = "parse_error"


NOT_FOUND_MESSAGE = "No case found for the given details."


@dataclass(frozen=True)
class Outcome:
    """Result of resolving one CaseQuery.

    Exactly one of ``record`` (for FOUND) or ``message`` (for every other
    kind) is meaningful. ``detail`` carries raw HTML or a traceback and is
    only ever written to the query log.
    """

    kind: OutcomeKind
    record: Optional[CaseRecord] = None
    message: str = ""
    detail: Optional[str] = None

    @classmethod
    def found(cls, record):
        return cls(kind=OutcomeKind.FOUND, record=record)

    @classmethod
    def not_found(cls, detail=None):
        return cls(kind=OutcomeKind.NOT_FOUND, message=NOT_FOUND_MESSAGE, detail=detail)

    @classmethod
    def failure(cls, kind, message, detail=None):
        if kind in (OutcomeKind.FOUND, OutcomeKind.NOT_FOUND):
            raise ValueError(f"{kind.value} is not a failure kind")
        return cls(kind=kind, message=message, detail=detail)

    @property
    def ok(self):
        return self.kind is OutcomeKind.FOUND

    def to_log_dict(self):
        if self.ok:
            return self.record.to_dict()
        data = {"kind": self.kind.value, "message": self.message}
        if self.detail:
            data["detail"] = self.detail
        return data


@dataclass
class LogEntry:
    id: Optional[int]
    timestamp: str
    query: CaseQuery
    outcome: dict = field(default_factory=dict)
    captcha_attempt: Optional[str] = None

    @property
    def succeeded(self):
        # error descriptors always carry a "kind"; serialised records never do
        return "kind" not in self.outcome

    def case_record(self):
        if not self.succeeded:
            return None
        return CaseRecord.from_dict(self.outcome)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "query": self.query.to_dict(),
            "outcome": self.outcome,
            "captchaAttempt": self.captcha_attempt,
        }
