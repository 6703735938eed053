from case_fetcher.models import Outcome


class SpyResolver:
    """Resolver double that records calls and returns a fixed outcome."""

    name = "spy"

    def __init__(self, outcome=None):
        self.outcome = outcome or Outcome.not_found()
        self.calls = []

    def resolve(self, query):
        self.calls.append(query)
        return self.outcome
