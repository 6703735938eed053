"""Live case status fetch against the court website.

One resolve() call walks the search flow: load page, fill form, extract and
solve the CAPTCHA, submit, then inspect and parse the result page. The court
session (an HTTP session or a Chrome driver) lives for exactly that call.
"""
import functools
import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from selenium import webdriver
from selenium.common.exceptions import NoSuchElementException, TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import Select, WebDriverWait

from .captcha import VisionCaptchaSolver
from .errors import FetchFailure, ParseError
from .models import Outcome, OutcomeKind
from .parser import build_case_record
from .resolver import Resolver

logger = logging.getLogger(__name__)

BASE_URL = "https://delhihighcourt.nic.in/"
SEARCH_URL = "https://delhihighcourt.nic.in/case_status_main.asp"

# query field -> the court form's own input name
SITE_FIELDS = {
    "case_type": "ca_type",
    "case_number": "ca_no",
    "filing_year": "ca_year",
    "captcha": "image",
}
SUBMIT_FIELD = ("SUBMIT", "Submit")

CASE_TYPE_CODES = {
    "criminal": "CRL.A.",
    "civil": "CS(OS)",
    "writ": "W.P.(C)",
}

INVALID_CAPTCHA_MARKERS = ("Invalid Captcha",)
NOT_FOUND_MARKERS = ("No Case Found", "No Record Found")

FETCH_BACKENDS = ("http", "browser")
CAPTCHA_MODES = ("image", "numeric")

USER_AGENT = ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36")


def site_form(query):
    """Map a CaseQuery onto the court's form fields.

    Unknown case types are sent empty; the court then answers "No Case Found".
    """
    return {
        SITE_FIELDS["case_type"]: CASE_TYPE_CODES.get(query.case_type.lower(), ""),
        SITE_FIELDS["case_number"]: query.case_number,
        SITE_FIELDS["filing_year"]: query.filing_year,
    }


class CourtSession:
    """A single-use conversation with the court's search page."""

    def __init__(self, search_url=SEARCH_URL, captcha_selector='img[alt="CAPTCHA"]',
                 captcha_code_selector="#captcha-code", timeout=30):
        self.search_url = search_url
        self.captcha_selector = captcha_selector
        self.captcha_code_selector = captcha_code_selector
        self.timeout = timeout

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False

    def load_search_page(self):
        raise NotImplementedError

    def fill_form(self, form):
        raise NotImplementedError

    def captcha_image(self):
        """Return ``(image_bytes, mime_type)`` for the current challenge."""
        raise NotImplementedError

    def captcha_code(self):
        """Return a challenge code printed in the page markup."""
        raise NotImplementedError

    def submit(self, captcha):
        """Submit the filled form and return the result page HTML."""
        raise NotImplementedError

    def close(self):
        pass


class HttpCourtSession(CourtSession):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self.page = ""
        self.form = {}

    def _request(self, method, url, **kwargs):
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchFailure(OutcomeKind.UPSTREAM_UNAVAILABLE,
                               f"Court website unavailable: {e}") from e
        return response

    def load_search_page(self):
        self.page = self._request("GET", self.search_url).text
        logger.info("Search page loaded (%d bytes)", len(self.page))

    def fill_form(self, form):
        # the form lives client side; it is posted in submit()
        self.form = dict(form)

    def _select(self, selector):
        element = BeautifulSoup(self.page, "html.parser").select_one(selector)
        if element is None:
            raise FetchFailure(OutcomeKind.CAPTCHA_NOT_FOUND,
                               "Could not find CAPTCHA on the page.", detail=self.page)
        return element

    def captcha_image(self):
        src = self._select(self.captcha_selector).get("src")
        if not src:
            raise FetchFailure(OutcomeKind.CAPTCHA_NOT_FOUND,
                               "CAPTCHA image has no source.", detail=self.page)
        response = self._request("GET", urljoin(self.search_url, src))
        mime_type = response.headers.get("Content-Type", "image/jpeg").split(";")[0].strip()
        return response.content, mime_type

    def captcha_code(self):
        code = self._select(self.captcha_code_selector).get_text().strip()
        if not code:
            raise FetchFailure(OutcomeKind.CAPTCHA_NOT_FOUND,
                               "CAPTCHA code is empty.", detail=self.page)
        return code

    def submit(self, captcha):
        data = dict(self.form)
        data[SITE_FIELDS["captcha"]] = captcha
        data[SUBMIT_FIELD[0]] = SUBMIT_FIELD[1]
        return self._request("POST", self.search_url, data=data).text

    def close(self):
        self.session.close()


def make_driver(headless=True, driver_path=None, page_timeout=60):
    opts = Options()
    if headless:
        opts.add_argument("--headless=new")
    opts.add_argument("--disable-gpu")
    opts.add_argument("--no-sandbox")
    opts.add_argument("--window-size=1400,1000")
    opts.add_argument(f"user-agent={USER_AGENT}")

    service = Service(executable_path=driver_path) if driver_path else Service()
    driver = webdriver.Chrome(service=service, options=opts)
    driver.set_page_load_timeout(page_timeout)
    return driver


def _browser_step(method):
    """Report browser timeouts and crashes as an unavailable upstream."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except FetchFailure:
            raise
        except TimeoutException as e:
            raise FetchFailure(OutcomeKind.UPSTREAM_UNAVAILABLE,
                               f"Timed out waiting for court website during {method.__name__}") from e
        except NoSuchElementException as e:
            raise FetchFailure(OutcomeKind.PARSE_ERROR,
                               f"Court page changed: {e.msg}") from e
        except WebDriverException as e:
            raise FetchFailure(OutcomeKind.UPSTREAM_UNAVAILABLE,
                               f"Browser session failed: {e.msg}") from e
    return wrapper


class BrowserCourtSession(CourtSession):
    def __init__(self, headless=True, driver_path=None, driver_factory=None, **kwargs):
        super().__init__(**kwargs)
        self.driver_factory = driver_factory or functools.partial(
            make_driver, headless=headless, driver_path=driver_path, page_timeout=self.timeout)
        self.driver = None

    def _wait(self):
        return WebDriverWait(self.driver, self.timeout)

    @_browser_step
    def load_search_page(self):
        if self.driver is None:
            self.driver = self.driver_factory()
        self.driver.get(self.search_url)
        self._wait().until(EC.presence_of_element_located((By.NAME, SITE_FIELDS["case_number"])))
        logger.info("Search page loaded in browser")

    @_browser_step
    def fill_form(self, form):
        case_type = form.get(SITE_FIELDS["case_type"])
        if case_type:
            Select(self.driver.find_element(By.NAME, SITE_FIELDS["case_type"])).select_by_value(case_type)
        for name in (SITE_FIELDS["case_number"], SITE_FIELDS["filing_year"]):
            field = self.driver.find_element(By.NAME, name)
            field.clear()
            field.send_keys(form.get(name, ""))

    def _captcha_element(self, selector):
        try:
            return self.driver.find_element(By.CSS_SELECTOR, selector)
        except NoSuchElementException as e:
            raise FetchFailure(OutcomeKind.CAPTCHA_NOT_FOUND, "Could not find CAPTCHA on the page.",
                               detail=self.driver.page_source) from e

    @_browser_step
    def captcha_image(self):
        png = self._captcha_element(self.captcha_selector).screenshot_as_png
        logger.info("CAPTCHA captured (%d bytes)", len(png))
        return png, "image/png"

    @_browser_step
    def captcha_code(self):
        code = self._captcha_element(self.captcha_code_selector).text.strip()
        if not code:
            raise FetchFailure(OutcomeKind.CAPTCHA_NOT_FOUND, "CAPTCHA code is empty.",
                               detail=self.driver.page_source)
        return code

    @_browser_step
    def submit(self, captcha):
        field = self.driver.find_element(By.NAME, SITE_FIELDS["captcha"])
        field.clear()
        field.send_keys(captcha)
        self.driver.find_element(By.NAME, SUBMIT_FIELD[0]).click()
        self._wait().until(lambda d: d.execute_script("return document.readyState") == "complete")
        return self.driver.page_source

    def close(self):
        if self.driver is None:
            return
        try:
            self.driver.quit()
        except WebDriverException:
            logger.warning("Browser did not shut down cleanly", exc_info=True)
        finally:
            self.driver = None


class LiveFetchResolver(Resolver):
    name = "live"

    def __init__(self, session_factory, solver=None, captcha_mode="image",
                 base_url=BASE_URL, attempts=3, min_latency=0.0):
        super().__init__(min_latency=min_latency)
        if captcha_mode not in CAPTCHA_MODES:
            raise ValueError(f"Unknown CAPTCHA mode {captcha_mode!r}")
        if captcha_mode == "image" and solver is None:
            raise ValueError("Image CAPTCHA mode needs a solver")
        self.session_factory = session_factory
        self.solver = solver
        self.captcha_mode = captcha_mode
        self.base_url = base_url
        self.attempts = max(1, int(attempts))

    @classmethod
    def from_config(cls, config, min_latency=0.0):
        backend = config.get("FETCH_BACKEND", "http")
        session_kwargs = dict(
            search_url=config.get("COURT_SEARCH_URL", SEARCH_URL),
            captcha_selector=config.get("CAPTCHA_SELECTOR", 'img[alt="CAPTCHA"]'),
            captcha_code_selector=config.get("CAPTCHA_CODE_SELECTOR", "#captcha-code"),
        )
        if backend == "http":
            session_factory = functools.partial(
                HttpCourtSession, timeout=config.get("REQUEST_TIMEOUT", 30), **session_kwargs)
        elif backend == "browser":
            session_factory = functools.partial(
                BrowserCourtSession,
                headless=config.get("HEADLESS", True),
                driver_path=config.get("CHROMEDRIVER_PATH"),
                timeout=config.get("PAGE_TIMEOUT", 60),
                **session_kwargs,
            )
        else:
            raise ValueError(f"Unknown fetch backend {backend!r}; expected one of {', '.join(FETCH_BACKENDS)}")

        captcha_mode = config.get("CAPTCHA_MODE", "image")
        solver = None
        if captcha_mode == "image":
            solver = VisionCaptchaSolver(
                api_key=config.get("GEMINI_API_KEY"),
                model=config.get("GEMINI_MODEL", "gemini-2.5-flash"),
                timeout=config.get("REQUEST_TIMEOUT", 30),
            )

        return cls(
            session_factory,
            solver=solver,
            captcha_mode=captcha_mode,
            base_url=config.get("COURT_BASE_URL", BASE_URL),
            attempts=config.get("CAPTCHA_ATTEMPTS", 3),
            min_latency=min_latency,
        )

    def _resolve(self, query):
        try:
            with self.session_factory() as session:
                return self._fetch(session, query)
        except FetchFailure as e:
            logger.warning("Live fetch for %s failed: %s (%s)", query, e.message, e.kind.value)
            return Outcome.failure(e.kind, e.message, detail=e.detail)

    def _fetch(self, session, query):
        form = site_form(query)
        failure = None
        for attempt in range(1, self.attempts + 1):
            try:
                return self._attempt(session, query, form)
            except FetchFailure as e:
                if e.kind is not OutcomeKind.CAPTCHA_UNSOLVED:
                    raise
                failure = e
                logger.warning("CAPTCHA rejected (attempt %d/%d)", attempt, self.attempts)
        raise failure

    def _attempt(self, session, query, form):
        session.load_search_page()
        session.fill_form(form)

        if self.captcha_mode == "numeric":
            answer = session.captcha_code()
        else:
            image, mime_type = session.captcha_image()
            answer = self.solver.solve(image, mime_type=mime_type)

        html = session.submit(answer)
        logger.info("Submitted search for %s", query)
        return self._inspect(query, html)

    def _inspect(self, query, html):
        if any(marker in html for marker in INVALID_CAPTCHA_MARKERS):
            raise FetchFailure(OutcomeKind.CAPTCHA_UNSOLVED,
                               "Invalid CAPTCHA submitted. Please try again.", detail=html)

        if any(marker in html for marker in NOT_FOUND_MARKERS):
            logger.info("Court reports no case for %s", query)
            return Outcome.not_found(detail=html)

        try:
            record = build_case_record(query, html, self.base_url)
        except ParseError as e:
            logger.error("Could not parse result page for %s: %s", query, e)
            return Outcome.failure(OutcomeKind.PARSE_ERROR, str(e), detail=html)

        logger.info("✅ Case data extracted for %s", query)
        return Outcome.found(record)
