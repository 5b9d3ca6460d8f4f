"""
Request Sequencing — discard out-of-order async results
========================================================

Every query takes a ticket when it is issued. When the response arrives,
it is applied only if its ticket is still the latest one issued; an older
in-flight response that resolves late is dropped.
"""

import itertools


class RequestSequencer:
    """Monotonically increasing request tickets."""

    def __init__(self):
        self._counter = itertools.count(1)
        self.latest = 0

    def issue(self) -> int:
        """Take a ticket for a new request."""
        self.latest = next(self._counter)
        return self.latest

    def is_current(self, ticket: int) -> bool:
        """True if no newer request was issued after ``ticket``."""
        return ticket == self.latest
