import logging
from bisect import bisect_right
from collections import OrderedDict, deque, namedtuple

from pagesim_errors import ConfigurationError, InvariantViolation

logger = logging.getLogger(__name__)

AGE_BITS = 8
AGE_MSB = 1 << (AGE_BITS - 1)


class Outcome(namedtuple('Outcome', ['hit', 'evicted'])):
    __slots__ = ()

    @property
    def is_fault(self):
        return not self.hit

    def __str__(self):
        if self.hit:
            return "HIT"
        if self.evicted is None:
            return "MISS"
        return f"MISS (evict {self.evicted})"


HIT = Outcome(True, None)


def fault(evicted=None):
    return Outcome(False, evicted)


class ReplacementPolicy:
    """
    Shared fault handling for every policy.

    A hit calls on_hit(). A fault fills the lowest free frame when one
    exists, otherwise asks select_victim() for a frame, evicts its page
    and installs the new one there, then calls on_insert().
    """

    name = None
    tracks_reference = False
    tracks_age = False
    # victim-selection details for the last access, if the policy keeps any
    analysis = None

    def __init__(self, physical_memory):
        self.physical_memory = physical_memory

    @property
    def hand(self):
        return None

    def _handle_access(self, page):
        memory = self.physical_memory
        frame_num = memory.frame_of(page)
        if frame_num is not None:
            self.on_hit(page, frame_num)
            return HIT

        evicted = None
        frame_num = memory.find_free_frame()
        if frame_num is None:
            frame_num = self.select_victim()
            evicted = memory.evict(frame_num)
            logger.debug("%s: evict page %d from frame %d for page %d",
                         self.name, evicted, frame_num, page)
        memory.install(frame_num, page)
        self.on_insert(page, frame_num, evicted)
        return fault(evicted)

    def on_hit(self, page, frame_num):
        pass

    def on_insert(self, page, frame_num, evicted):
        pass

    def select_victim(self):
        raise NotImplementedError

    def on_tick(self):
        pass


class OnlinePolicy(ReplacementPolicy):
    """Sees only the current access and what came before it."""

    def on_access(self, page):
        return self._handle_access(page)


class OfflinePolicy(ReplacementPolicy):
    """Gets the whole trace up front and the position of every access."""

    def __init__(self, physical_memory, trace):
        super().__init__(physical_memory)
        self.trace = trace
        self.position = None

    def on_access(self, page, position):
        if position < 0 or position >= len(self.trace):
            raise ConfigurationError(
                f"Position {position} is outside the {len(self.trace)}-entry trace")
        if self.trace[position] != page:
            raise ConfigurationError(
                f"Trace holds page {self.trace[position]} at position {position}, not {page}")
        self.position = position
        self.analysis = None
        return self._handle_access(page)


class FIFOPolicy(OnlinePolicy):
    name = 'FIFO'

    def __init__(self, physical_memory):
        super().__init__(physical_memory)
        self.queue = deque()

    # Hits leave the insertion order alone.

    def on_insert(self, page, frame_num, evicted):
        self.queue.append(page)

    def select_victim(self):
        if not self.queue:
            raise InvariantViolation("FIFO queue is empty but memory is full")
        page = self.queue.popleft()
        frame_num = self.physical_memory.frame_of(page)
        if frame_num is None:
            raise InvariantViolation(f"FIFO queue head {page} is not resident")
        return frame_num


class LRUPolicy(OnlinePolicy):
    name = 'LRU'

    def __init__(self, physical_memory):
        super().__init__(physical_memory)
        # least recently used first, most recently used last
        self.recency = OrderedDict()

    def on_hit(self, page, frame_num):
        self.recency.move_to_end(page)

    def on_insert(self, page, frame_num, evicted):
        self.recency[page] = frame_num

    def select_victim(self):
        if not self.recency:
            raise InvariantViolation("LRU list is empty but memory is full")
        page, frame_num = self.recency.popitem(last=False)
        if self.physical_memory.frame_of(page) != frame_num:
            raise InvariantViolation(
                f"LRU entry for page {page} points at frame {frame_num}")
        return frame_num


class ClockPolicy(OnlinePolicy):
    name = 'CLOCK'
    tracks_reference = True

    def __init__(self, physical_memory):
        super().__init__(physical_memory)
        self._hand = 0

    @property
    def hand(self):
        return self._hand

    def on_hit(self, page, frame_num):
        self.physical_memory.get_frame_info(frame_num).referenced = True

    def on_insert(self, page, frame_num, evicted):
        self.physical_memory.get_frame_info(frame_num).referenced = True
        # free frames are filled without moving the hand
        if evicted is not None:
            self._hand = (frame_num + 1) % self.physical_memory.num_frames

    def select_victim(self):
        num_frames = self.physical_memory.num_frames
        for _ in range(2 * num_frames):
            frame = self.physical_memory.get_frame_info(self._hand)
            if not frame.referenced:
                return self._hand
            frame.referenced = False
            self._hand = (self._hand + 1) % num_frames
        raise InvariantViolation(
            f"Clock sweep found no victim in {2 * num_frames} steps")


class AgingPolicy(OnlinePolicy):
    name = 'AGING'
    tracks_reference = True
    tracks_age = True

    # A hit only sets the reference bit; the counter changes on the next tick.
    def on_hit(self, page, frame_num):
        self.physical_memory.get_frame_info(frame_num).referenced = True

    def on_insert(self, page, frame_num, evicted):
        frame = self.physical_memory.get_frame_info(frame_num)
        frame.age = 0
        frame.referenced = True

    def on_tick(self):
        for frame in self.physical_memory.frames:
            if frame.is_free():
                continue
            frame.age >>= 1
            if frame.referenced:
                frame.age |= AGE_MSB
            frame.referenced = False
        logger.debug("AGING: tick, ages %s",
                     [frame.age for frame in self.physical_memory.frames])

    def select_victim(self):
        victim_frame = None
        min_age = None
        for frame in self.physical_memory.frames:
            # strict < keeps the lowest index on ties
            if min_age is None or frame.age < min_age:
                min_age = frame.age
                victim_frame = frame.frame_num
        return victim_frame


class OptimalPolicy(OfflinePolicy):
    name = 'OPT'

    def __init__(self, physical_memory, trace):
        super().__init__(physical_memory, trace)
        # page -> ascending positions where it is referenced
        self.trace_indices = {}
        for position, page in enumerate(trace):
            self.trace_indices.setdefault(page, []).append(position)

    def next_use(self, page, position):
        """
        Position of the next reference to page strictly after position,
        or None if the page is never referenced again.
        """
        used_at = self.trace_indices.get(page, [])
        i = bisect_right(used_at, position)
        if i == len(used_at):
            return None
        return used_at[i]

    def select_victim(self):
        """
        Replace the page that will be used furthest in the future
        (or never used again). Frames are scanned from index 0 and the
        first maximal one wins.

        The (page, next use) pairs looked at are kept in self.analysis;
        the scan stops at the first page that is never used again.
        """
        farthest = -1
        victim_frame = None
        analysis = []
        for frame in self.physical_memory.frames:
            next_ref = self.next_use(frame.page, self.position)
            analysis.append((frame.page, next_ref))
            if next_ref is None:
                victim_frame = frame.frame_num
                break
            if next_ref > farthest:
                farthest = next_ref
                victim_frame = frame.frame_num
        self.analysis = tuple(analysis)
        return victim_frame


POLICIES = OrderedDict([
    ('fifo', FIFOPolicy),
    ('lru', LRUPolicy),
    ('clock', ClockPolicy),
    ('aging', AgingPolicy),
    ('opt', OptimalPolicy),
])

ALIASES = {
    'optimal': 'opt',
    'belady': 'opt',
    'second-chance': 'clock',
}


def normalize_policy_name(name):
    if not isinstance(name, str):
        raise ConfigurationError(f"Unknown algorithm: {name!r}")
    key = name.strip().lower()
    key = ALIASES.get(key, key)
    if key not in POLICIES:
        raise ConfigurationError(
            f"Unknown algorithm: {name} (expected one of {', '.join(POLICIES)})")
    return key


def create_policy(name, physical_memory, trace=None):
    policy_class = POLICIES[normalize_policy_name(name)]
    if issubclass(policy_class, OfflinePolicy):
        if trace is None:
            raise ConfigurationError(
                f"{policy_class.name} algorithm requires the full reference trace")
        return policy_class(physical_memory, trace)
    return policy_class(physical_memory)
