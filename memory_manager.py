from collections import namedtuple

from page_table import PageDirectory
from pagesim_errors import InvariantViolation


class Frame:
    def __init__(self, frame_num):
        self.frame_num = frame_num
        self.page = None  # None means the frame is free
        self.referenced = False  # Clock and Aging
        self.age = 0  # Aging, 8 bits

    def is_free(self):
        return self.page is None

    def reset(self):
        self.page = None
        self.referenced = False
        self.age = 0


class PhysicalMemory:
    def __init__(self, num_frames=3, directory=None):
        self.num_frames = num_frames
        self.frames = [Frame(i) for i in range(num_frames)]
        self.directory = directory if directory is not None else PageDirectory()

    def contains(self, page):
        return self.directory.contains(page)

    def frame_of(self, page):
        return self.directory.get_frame(page)

    def find_free_frame(self):
        for i, frame in enumerate(self.frames):
            if frame.is_free():
                return i
        return None

    def is_full(self):
        return self.find_free_frame() is None

    def get_frame_info(self, frame_num):
        return self.frames[frame_num]

    def resident_count(self):
        return len(self.directory)

    def install(self, frame_num, page):
        frame = self.frames[frame_num]
        if not frame.is_free():
            raise InvariantViolation(
                f"Frame {frame_num} still holds page {frame.page}")
        self.directory.bind(page, frame_num)
        frame.page = page

    def evict(self, frame_num):
        frame = self.frames[frame_num]
        if frame.is_free():
            raise InvariantViolation(f"Frame {frame_num} has no page to evict")
        page = frame.page
        if self.directory.unbind(page) != frame_num:
            raise InvariantViolation(
                f"Directory maps page {page} somewhere other than frame {frame_num}")
        frame.reset()
        return page

    def check_consistency(self):
        """
        Verify the directory is a bijection onto the resident pages.
        """
        resident = 0
        for frame in self.frames:
            if frame.is_free():
                continue
            resident += 1
            if self.directory.get_frame(frame.page) != frame.frame_num:
                raise InvariantViolation(
                    f"Frame {frame.frame_num} holds page {frame.page} "
                    f"but directory says {self.directory.get_frame(frame.page)}")
        if resident != len(self.directory):
            raise InvariantViolation(
                f"{len(self.directory)} directory entries for {resident} resident pages")


class StatisticsSnapshot(namedtuple('StatisticsSnapshot', ['hits', 'faults'])):
    __slots__ = ()

    @property
    def total_accesses(self):
        return self.hits + self.faults

    @property
    def hit_ratio(self):
        total = self.total_accesses
        return self.hits / total if total > 0 else 0.0

    @property
    def fault_rate(self):
        total = self.total_accesses
        return self.faults / total if total > 0 else 0.0

    def __str__(self):
        return (f"Total Accesses: {self.total_accesses}\n"
                f"Page Faults: {self.faults}\n"
                f"Hits: {self.hits}\n"
                f"Hit Ratio: {self.hit_ratio * 100:.2f}%")


class Statistics:
    def __init__(self):
        self.hits = 0
        self.faults = 0

    def record_hit(self):
        self.hits += 1

    def record_fault(self):
        self.faults += 1

    def record(self, outcome):
        if outcome.hit:
            self.record_hit()
        else:
            self.record_fault()

    def snapshot(self):
        return StatisticsSnapshot(self.hits, self.faults)

    @property
    def total_accesses(self):
        return self.hits + self.faults

    @property
    def hit_ratio(self):
        return self.snapshot().hit_ratio

    @property
    def fault_rate(self):
        return self.snapshot().fault_rate

    def __str__(self):
        return str(self.snapshot())
