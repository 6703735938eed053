import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

ENV_PREFIX = "CASE_FETCHER"


class DefaultConfig:
    SECRET_KEY = "dev"
    DATABASE = "queries.db"
    LOG_LEVEL = "INFO"

    # exact | category | live
    RESOLVER = "exact"
    MIN_LATENCY = 0.5

    # live fetch
    FETCH_BACKEND = "http"  # http | browser
    CAPTCHA_MODE = "image"  # image | numeric
    COURT_BASE_URL = "https://delhihighcourt.nic.in/"
    COURT_SEARCH_URL = "https://delhihighcourt.nic.in/case_status_main.asp"
    CAPTCHA_SELECTOR = 'img[alt="CAPTCHA"]'
    CAPTCHA_CODE_SELECTOR = "#captcha-code"
    CAPTCHA_ATTEMPTS = 3
    GEMINI_API_KEY = None
    GEMINI_MODEL = "gemini-2.5-flash"
    REQUEST_TIMEOUT = 30
    PAGE_TIMEOUT = 60
    HEADLESS = True
    CHROMEDRIVER_PATH = None

    # numeric challenge issued by /api/captcha
    REQUIRE_CAPTCHA = False
    CAPTCHA_TTL = 300


def configure_logging(level="INFO"):
    logging.basicConfig(level=level, format=LOG_FORMAT)
