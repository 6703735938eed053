"""HTML parsing for the court's case status result page."""
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .errors import ParseError
from .models import CaseRecord, OrderRecord

DETAILS_ROWS = "table.grid_new tr"
ORDERS_ROWS = "table.list_box tr"

PARTIES_LABELS = ("Parties", "Party Name", "Case Title")
PETITIONER_LABELS = ("Petitioner", "Petitioner Name", "Plaintiff")
RESPONDENT_LABELS = ("Respondent", "Respondent Name", "Defendant")
FILING_DATE_LABELS = ("Filing Date", "Date of Filing", "Registration Date")
NEXT_HEARING_LABELS = ("Next Date", "Next Hearing Date", "Next Hearing")


def _soup(html):
    return BeautifulSoup(html, "html.parser")


def _clean_label(text):
    label = text.strip()
    if label.endswith(":"):
        label = label[:-1].rstrip()
    return label


def parse_case_details(html):
    """Key/value pairs from the two-column metadata table."""
    details = {}
    for row in _soup(html).select(DETAILS_ROWS):
        cells = row.find_all("td")
        if len(cells) != 2:
            continue
        label = _clean_label(cells[0].get_text())
        if label:
            details[label] = cells[1].get_text().strip()
    return details


def parse_latest_order(html, base_url):
    rows = _soup(html).select(ORDERS_ROWS)[1:]  # header row
    if not rows:
        return None

    cells = rows[0].find_all("td")
    if len(cells) <= 3:
        return None
    anchor = cells[3].find("a", href=True)
    if anchor is None:
        return None

    return OrderRecord(
        date=cells[0].get_text().strip(),
        description=cells[1].get_text().strip(),
        pdf_link=urljoin(base_url, anchor["href"]),
    )


def _first(details, labels):
    for label in labels:
        if details.get(label):
            return details[label]
    return ""


def build_case_record(query, html, base_url):
    details = parse_case_details(html)
    if not details:
        raise ParseError("Case details table not found in result page")

    parties = _first(details, PARTIES_LABELS)
    if not parties:
        petitioner = _first(details, PETITIONER_LABELS)
        respondent = _first(details, RESPONDENT_LABELS)
        if petitioner or respondent:
            parties = f"{petitioner or 'Petitioner'} vs. {respondent or 'Respondent'}"

    order = parse_latest_order(html, base_url)

    return CaseRecord(
        case_type=query.case_type,
        case_number=query.case_number,
        filing_year=query.filing_year,
        parties=parties,
        filing_date=_first(details, FILING_DATE_LABELS),
        next_hearing_date=_first(details, NEXT_HEARING_LABELS),
        orders=(order,) if order else (),
        raw_response=html,
    )
