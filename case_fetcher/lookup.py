"""Table-backed resolvers for demos and offline runs.

Two lookup modes share the same table:

* exact: ``criminal-101-2023`` must match a record exactly.
* category: any query under a known category succeeds with a random record
  from that category. This is a simulation mode and has to be switched on
  explicitly (``RESOLVER = "category"``).
"""
import logging
import random

from .models import CaseRecord, OrderRecord, Outcome
from .resolver import Resolver

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    "criminal": "Criminal Case",
    "civil": "Civil Suit",
    "writ": "Writ Petition",
}

_PDF = "https://placehold.co/600x400/{colour}/FFFFFF?text=Mock+PDF+{n}"


def _case(category, number, year, parties, filed, next_hearing, order_date, order_text, pdf_link):
    return CaseRecord(
        case_type=CATEGORY_LABELS[category],
        case_number=number,
        filing_year=year,
        parties=parties,
        filing_date=filed,
        next_hearing_date=next_hearing,
        orders=(OrderRecord(order_date, order_text, pdf_link),),
        raw_response=f"<html><body>mock {category} case {number}/{year}</body></html>",
    )


MOCK_CASES = {
    "criminal": [
        _case("criminal", "101", "2023", "State vs. A", "2023-01-01", "2024-09-01",
              "2024-08-01", "Order on bail.", _PDF.format(colour="FF0000", n=1)),
        _case("criminal", "102", "2023", "State vs. B", "2023-02-01", "2024-10-01",
              "2024-08-05", "Next hearing date set.", _PDF.format(colour="FF0000", n=2)),
        _case("criminal", "103", "2024", "State vs. C", "2024-03-01", "2024-11-01",
              "2024-07-20", "Final order.", _PDF.format(colour="FF0000", n=3)),
        _case("criminal", "104", "2024", "State vs. D", "2024-04-01", "2024-12-01",
              "2024-08-10", "Interim order on evidence.", _PDF.format(colour="FF0000", n=4)),
        _case("criminal", "105", "2024", "State vs. E", "2024-05-01", "2025-01-01",
              "2024-08-15", "Arguments heard.", _PDF.format(colour="FF0000", n=5)),
        _case("criminal", "123", "2023", "State of Delhi vs. John Doe", "2023-01-15", "2025-09-01",
              "2024-07-28", "Final order on bail application.",
              "https://placehold.co/600x400/FF0000/FFFFFF?text=Mock+Order+PDF"),
    ],
    "civil": [
        _case("civil", "201", "2022", "Plaintiff F vs. Defendant G", "2022-01-01", "2024-09-02",
              "2024-08-02", "Case review.", _PDF.format(colour="0000FF", n=6)),
        _case("civil", "202", "2023", "Plaintiff H vs. Defendant I", "2023-02-02", "2024-10-02",
              "2024-08-06", "Witness deposition.", _PDF.format(colour="0000FF", n=7)),
        _case("civil", "203", "2023", "Plaintiff J vs. Defendant K", "2023-03-03", "2024-11-02",
              "2024-07-21", "Mediation ordered.", _PDF.format(colour="0000FF", n=8)),
        _case("civil", "204", "2024", "Plaintiff L vs. Defendant M", "2024-04-04", "2024-12-02",
              "2024-08-11", "Interim relief granted.", _PDF.format(colour="0000FF", n=9)),
        _case("civil", "205", "2024", "Plaintiff N vs. Defendant O", "2024-05-05", "2025-01-02",
              "2024-08-16", "Case dismissed.", _PDF.format(colour="0000FF", n=10)),
        _case("civil", "456", "2024", "Jane Doe vs. ABC Corp", "2024-03-20", "2025-10-15",
              "2024-08-01", "Case listed for final arguments.",
              "https://placehold.co/600x400/0000FF/FFFFFF?text=Mock+Order+PDF"),
    ],
    "writ": [
        _case("writ", "301", "2021", "Petitioner P vs. State", "2021-01-01", "2024-09-03",
              "2024-08-03", "Notice issued.", _PDF.format(colour="008000", n=11)),
        _case("writ", "302", "2022", "Petitioner Q vs. Union of India", "2022-02-02", "2024-10-03",
              "2024-08-07", "Directions for compliance.", _PDF.format(colour="008000", n=12)),
        _case("writ", "303", "2023", "Petitioner R vs. State", "2023-03-03", "2024-11-03",
              "2024-07-22", "Interim stay granted.", _PDF.format(colour="008000", n=13)),
        _case("writ", "304", "2024", "Petitioner S vs. Union of India", "2024-04-04", "2024-12-03",
              "2024-08-12", "Final arguments heard.", _PDF.format(colour="008000", n=14)),
        _case("writ", "305", "2024", "Petitioner T vs. State", "2024-05-05", "2025-01-03",
              "2024-08-17", "Petition dismissed.", _PDF.format(colour="008000", n=15)),
    ],
}


def lookup_key(category, case_number, filing_year):
    return f"{category}-{case_number}-{filing_year}"


class ExactLookupResolver(Resolver):
    name = "exact"

    def __init__(self, cases=None, min_latency=0.0):
        super().__init__(min_latency=min_latency)
        cases = MOCK_CASES if cases is None else cases
        self.index = {
            lookup_key(category, record.case_number, record.filing_year): record
            for category, records in cases.items()
            for record in records
        }

    def _resolve(self, query):
        key = lookup_key(query.case_type, query.case_number, query.filing_year)
        record = self.index.get(key)
        if record is None:
            logger.info("No mock case for %s", key)
            return Outcome.not_found()
        logger.info("Mock case hit: %s", key)
        return Outcome.found(record)


class CategoryRandomLookupResolver(Resolver):
    name = "category"

    def __init__(self, cases=None, rng=None, min_latency=0.0):
        super().__init__(min_latency=min_latency)
        self.cases = MOCK_CASES if cases is None else cases
        self.rng = rng or random.Random()

    def _resolve(self, query):
        records = self.cases.get(query.case_type)
        if not records:
            logger.info("Simulated lookup: no data for type %r", query.case_type)
            return Outcome.not_found()
        record = self.rng.choice(records)
        logger.info("Simulated lookup: random %s case %s/%s",
                    query.case_type, record.case_number, record.filing_year)
        return Outcome.found(record)
