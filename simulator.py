import argparse
import logging
import sys
from collections import namedtuple

from memory_manager import PhysicalMemory, Statistics
from page_table import PageDirectory
from pagesim_errors import ConfigurationError
from policies import AGE_BITS, POLICIES, OfflinePolicy, create_policy, normalize_policy_name
from reference_trace import DEFAULT_TICK_INTERVAL, ReferenceTrace, TickSchedule

logger = logging.getLogger(__name__)

FrameView = namedtuple('FrameView', ['index', 'page', 'referenced', 'age'])

AccessRecord = namedtuple('AccessRecord', ['position', 'page', 'outcome', 'frames', 'hand',
                                           'ticked', 'analysis'])

SimulationResult = namedtuple('SimulationResult', ['policy', 'capacity', 'records', 'statistics'])


class Simulator:
    """
    Runs one replacement policy over a reference trace.

    Configuration is checked here, before any access is processed. Every
    call to run() starts from empty frames, so running twice gives the
    same records and statistics.
    """

    def __init__(self, algorithm, capacity, trace, tick_schedule=None):
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise ConfigurationError(f"Frame count must be an integer, got {capacity!r}")
        if capacity < 1:
            raise ConfigurationError(f"Frame count must be positive, got {capacity}")
        if not isinstance(trace, ReferenceTrace):
            trace = ReferenceTrace(trace)
        if isinstance(tick_schedule, int):
            tick_schedule = TickSchedule.every(tick_schedule)
        elif tick_schedule is not None and not isinstance(tick_schedule, TickSchedule):
            try:
                positions = list(tick_schedule)
            except TypeError:
                raise ConfigurationError(
                    f"Tick schedule must be an interval or tick positions, "
                    f"got {tick_schedule!r}") from None
            tick_schedule = TickSchedule.at(positions)

        self.algorithm = normalize_policy_name(algorithm)
        self.capacity = capacity
        self.trace = trace
        self.tick_schedule = tick_schedule
        self.reset()

    def reset(self):
        self.directory = PageDirectory()
        self.physical_memory = PhysicalMemory(self.capacity, self.directory)
        self.stats = Statistics()
        self.policy = create_policy(self.algorithm, self.physical_memory, self.trace)

    def snapshot_frames(self):
        views = []
        for frame in self.physical_memory.frames:
            referenced = age = None
            if not frame.is_free():
                if self.policy.tracks_reference:
                    referenced = frame.referenced
                if self.policy.tracks_age:
                    age = frame.age
            views.append(FrameView(frame.frame_num, frame.page, referenced, age))
        return tuple(views)

    def step(self, position):
        page = self.trace[position]
        if isinstance(self.policy, OfflinePolicy):
            outcome = self.policy.on_access(page, position)
        else:
            outcome = self.policy.on_access(page)
        self.stats.record(outcome)
        self.physical_memory.check_consistency()

        record = AccessRecord(position, page, outcome, self.snapshot_frames(),
                              self.policy.hand, False, self.policy.analysis)
        if self.tick_schedule is not None and self.tick_schedule.fires_after(position):
            self.policy.on_tick()
            record = record._replace(ticked=True)
        return record

    def run(self):
        self.reset()
        logger.debug("Running %s with %d frames over %d references",
                     self.policy.name, self.capacity, len(self.trace))
        records = [self.step(position) for position in range(len(self.trace))]
        return SimulationResult(self.policy.name, self.capacity, tuple(records),
                                self.stats.snapshot())


def run_simulation(algorithm, capacity, trace, tick_interval=None, ticks=None):
    if tick_interval is not None and ticks is not None:
        raise ConfigurationError("Give either a tick interval or tick positions, not both")
    schedule = None
    if tick_interval is not None:
        schedule = TickSchedule.every(tick_interval)
    elif ticks is not None:
        schedule = TickSchedule.at(ticks)
    return Simulator(algorithm, capacity, trace, schedule).run()


def format_frames(record):
    cells = []
    for view in record.frames:
        if view.page is None:
            cell = "-"
        else:
            cell = str(view.page)
            if view.referenced is not None:
                cell += f" R:{int(view.referenced)}"
            if view.age is not None:
                cell += f" Age:{view.age:0{AGE_BITS}b}"
        if record.hand == view.index:
            cell += " <-"
        cells.append(cell)
    return "[" + ", ".join(cells) + "]"


def format_record(record):
    line = f"Page {record.page:>3} | Frames {format_frames(record)} | {record.outcome}"
    if record.ticked:
        line += " | TICK"
    if record.analysis:
        line += " | Analysis: " + format_analysis(record.analysis)
    return line


def format_analysis(analysis):
    parts = []
    for page, next_ref in analysis:
        parts.append(f"{page}->never" if next_ref is None else f"{page}->pos.{next_ref}")
    return ", ".join(parts)


def print_result(result, quiet=False):
    print(f"\n{'='*60}")
    print(f"Running {result.policy} algorithm with {result.capacity} frames")
    print(f"{'='*60}")
    if not quiet:
        for record in result.records:
            print(format_record(record))
    print(f"\nResults:")
    print(result.statistics)
    print(f"{'='*60}\n")


def print_summary(results):
    print("\n" + "="*60)
    print("SUMMARY OF ALL RESULTS")
    print("="*60)
    print(f"{'Algorithm':<10} {'Page Faults':<15} {'Hits':<15} {'Hit Ratio':<15}")
    print("-" * 60)
    for result in results:
        stats = result.statistics
        print(f"{result.policy:<10} {stats.faults:<15} {stats.hits:<15} "
              f"{stats.hit_ratio * 100:<15.2f}")


def algorithm_name(value):
    try:
        return normalize_policy_name(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Page replacement simulator for FIFO, LRU, Clock, Aging and OPT')
    parser.add_argument('-a', '--algorithm', type=algorithm_name, default='fifo',
                        help=f"Replacement algorithm: {', '.join(POLICIES)}")
    parser.add_argument('--all', action='store_true',
                        help='Run every algorithm and print a summary')
    parser.add_argument('-n', '--numframes', type=int, default=3, help='Number of frames')
    parser.add_argument('-r', '--refresh', type=int, default=None,
                        help=f'Aging tick interval in accesses (default {DEFAULT_TICK_INTERVAL})')
    parser.add_argument('--ticks', type=str, default=None,
                        help='Comma separated access counts after which Aging ticks')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('-t', '--trace', type=str, help='Trace file of page ids')
    source.add_argument('--refs', type=str, help='Comma separated reference string')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only print statistics')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log evictions and ticks')
    return parser.parse_args(argv)


def load_trace(args):
    if args.trace:
        return ReferenceTrace.from_file(args.trace)
    if args.refs:
        return ReferenceTrace.from_string(args.refs)
    return ReferenceTrace.canonical()


def tick_schedule_for(algorithm, args):
    if algorithm != 'aging':
        return None
    if args.ticks is not None:
        if args.refresh is not None:
            raise ConfigurationError("Use either --refresh or --ticks, not both")
        return TickSchedule.from_string(args.ticks)
    interval = args.refresh if args.refresh is not None else DEFAULT_TICK_INTERVAL
    return TickSchedule.every(interval)


def main(argv=None):
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')

    algorithms = list(POLICIES) if args.all else [args.algorithm]
    try:
        trace = load_trace(args)
        simulators = [Simulator(algorithm, args.numframes, trace,
                                tick_schedule_for(algorithm, args))
                      for algorithm in algorithms]
    except (ConfigurationError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    results = []
    for simulator in simulators:
        result = simulator.run()
        print_result(result, quiet=args.quiet or args.all)
        results.append(result)

    if args.all:
        print_summary(results)
    return 0


if __name__ == '__main__':
    sys.exit(main())
