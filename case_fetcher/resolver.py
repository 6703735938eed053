import logging
import time
import traceback

from .models import Outcome, OutcomeKind

logger = logging.getLogger(__name__)

RESOLVERS = ("exact", "category", "live")


class Resolver:
    """Answers a CaseQuery with an Outcome.

    Subclasses implement ``_resolve``. ``resolve`` never raises: anything a
    strategy lets escape is reported as an upstream failure.
    """

    name = "base"

    def __init__(self, min_latency=0.0):
        self.min_latency = min_latency

    def resolve(self, query):
        started = time.monotonic()
        try:
            outcome = self._resolve(query)
        except Exception as e:
            logger.exception("Resolver %s crashed on %s", self.name, query)
            outcome = Outcome.failure(
                OutcomeKind.UPSTREAM_UNAVAILABLE,
                f"Unexpected resolver failure: {e}",
                detail=traceback.format_exc(),
            )

        # keep loading states visible in the UI
        remaining = self.min_latency - (time.monotonic() - started)
        if remaining > 0:
            time.sleep(remaining)
        return outcome

    def _resolve(self, query):
        raise NotImplementedError


def build_resolver(config):
    """Pick the resolver strategy named by ``config["RESOLVER"]``."""
    kind = config.get("RESOLVER", "exact")
    min_latency = float(config.get("MIN_LATENCY", 0.0))

    if kind == "exact":
        from .lookup import ExactLookupResolver
        return ExactLookupResolver(min_latency=min_latency)

    if kind == "category":
        from .lookup import CategoryRandomLookupResolver
        return CategoryRandomLookupResolver(min_latency=min_latency)

    if kind == "live":
        from .scraper import LiveFetchResolver
        return LiveFetchResolver.from_config(config, min_latency=min_latency)

    raise ValueError(f"Unknown resolver {kind!r}; expected one of {', '.join(RESOLVERS)}")
