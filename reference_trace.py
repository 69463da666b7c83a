import re

from pagesim_errors import ConfigurationError

# Reference string used throughout the textbook examples.
CANONICAL_REFERENCE_STRING = (7, 0, 1, 2, 0, 3, 0, 4, 2, 3, 0, 3, 2, 1, 2, 0, 1, 7, 0, 1)

DEFAULT_TICK_INTERVAL = 4

_SEPARATORS = re.compile(r"[,\s]+")


def _is_non_negative_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class ReferenceTrace:
    """
    Ordered, read-only sequence of page accesses.
    """

    def __init__(self, pages):
        pages = tuple(pages)
        if not pages:
            raise ConfigurationError("Reference trace is empty")
        for position, page in enumerate(pages):
            if not _is_non_negative_int(page):
                raise ConfigurationError(
                    f"Invalid page id {page!r} at position {position}")
        self.pages = pages

    def __len__(self):
        return len(self.pages)

    def __getitem__(self, position):
        return self.pages[position]

    def __iter__(self):
        return iter(self.pages)

    def __eq__(self, other):
        if isinstance(other, ReferenceTrace):
            return self.pages == other.pages
        return NotImplemented

    def __hash__(self):
        return hash(self.pages)

    def __repr__(self):
        return f"ReferenceTrace({list(self.pages)})"

    def distinct_pages(self):
        return sorted(set(self.pages))

    @classmethod
    def from_string(cls, text):
        pages = []
        for token in _SEPARATORS.split(text.strip()):
            if token == '':
                continue
            try:
                pages.append(int(token))
            except ValueError:
                raise ConfigurationError(f"Invalid page id {token!r}") from None
        return cls(pages)

    @classmethod
    def from_file(cls, filename):
        pages = []
        with open(filename, 'r') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                for token in _SEPARATORS.split(line):
                    if token == '':
                        continue
                    try:
                        pages.append(int(token))
                    except ValueError:
                        raise ConfigurationError(
                            f"{filename}:{line_num}: invalid page id {token!r}") from None
        return cls(pages)

    @classmethod
    def canonical(cls):
        return cls(CANONICAL_REFERENCE_STRING)


class TickSchedule:
    """
    When the aging timer fires, counted in accesses.

    TickSchedule.every(k) fires after accesses k, 2k, 3k, ...;
    TickSchedule.at([3, 10]) fires after the 3rd and the 10th access.
    """

    def __init__(self, interval=None, positions=None):
        if (interval is None) == (positions is None):
            raise ConfigurationError("Give either a tick interval or tick positions")
        if interval is not None and not (_is_non_negative_int(interval) and interval > 0):
            raise ConfigurationError(f"Tick interval must be a positive integer, got {interval!r}")
        if positions is not None:
            positions = frozenset(positions)
            for count in positions:
                if not (_is_non_negative_int(count) and count > 0):
                    raise ConfigurationError(
                        f"Tick positions must be positive integers, got {count!r}")
        self.interval = interval
        self.positions = positions

    @classmethod
    def every(cls, interval):
        return cls(interval=interval)

    @classmethod
    def at(cls, positions):
        return cls(positions=positions)

    @classmethod
    def from_string(cls, text):
        counts = []
        for token in _SEPARATORS.split(text.strip()):
            if token == '':
                continue
            try:
                counts.append(int(token))
            except ValueError:
                raise ConfigurationError(f"Invalid tick position {token!r}") from None
        return cls.at(counts)

    def fires_after(self, position):
        """True if a tick follows the access at zero-based position."""
        count = position + 1
        if self.interval is not None:
            return count % self.interval == 0
        return count in self.positions

    def __repr__(self):
        if self.interval is not None:
            return f"TickSchedule.every({self.interval})"
        return f"TickSchedule.at({sorted(self.positions)})"
