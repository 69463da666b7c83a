import pytest

from pagesim_errors import ConfigurationError, InvariantViolation
from policies import POLICIES
from reference_trace import CANONICAL_REFERENCE_STRING, ReferenceTrace, TickSchedule
from simulator import Simulator, main, run_simulation

TRACES = [
    CANONICAL_REFERENCE_STRING,
    (1, 2, 3, 4, 1, 2, 5, 1, 2, 3, 4, 5),
    (0, 0, 0, 1, 1, 0),
    (5, 9, 5, 2, 8, 9, 2, 5, 3, 3, 8, 1, 9, 0, 5, 2),
]


def run(algorithm, capacity, trace, tick_interval=4):
    interval = tick_interval if algorithm == 'aging' else None
    return run_simulation(algorithm, capacity, trace, tick_interval=interval)


# -- Properties shared by every policy ----------------------------------------


@pytest.mark.parametrize('algorithm', list(POLICIES))
@pytest.mark.parametrize('trace', TRACES)
@pytest.mark.parametrize('capacity', [1, 2, 3, 5])
def test_every_access_is_counted_once(algorithm, trace, capacity):
    result = run(algorithm, capacity, trace)
    stats = result.statistics
    assert stats.hits + stats.faults == len(trace)
    assert stats.total_accesses == len(result.records) == len(trace)
    assert stats.hits == sum(r.outcome.hit for r in result.records)


@pytest.mark.parametrize('algorithm', list(POLICIES))
@pytest.mark.parametrize('trace', TRACES)
def test_frames_stay_within_capacity(algorithm, trace):
    capacity = 3
    for record in run(algorithm, capacity, trace).records:
        pages = [view.page for view in record.frames if view.page is not None]
        assert len(record.frames) == capacity
        assert len(pages) == len(set(pages))
        assert record.page in pages
        if record.outcome.evicted is not None:
            assert record.outcome.evicted not in pages
            assert len(pages) == capacity


@pytest.mark.parametrize('algorithm', list(POLICIES))
def test_enough_frames_means_only_cold_misses(algorithm):
    trace = TRACES[3]
    distinct = len(set(trace))
    result = run(algorithm, distinct, trace)
    assert result.statistics.faults == distinct
    assert all(r.outcome.evicted is None for r in result.records)


@pytest.mark.parametrize('algorithm', list(POLICIES))
def test_runs_are_repeatable(algorithm):
    trace = TRACES[3]
    schedule = TickSchedule.every(3)
    simulator = Simulator(algorithm, 3, trace, schedule)
    first = simulator.run()
    second = simulator.run()
    third = Simulator(algorithm, 3, trace, schedule).run()
    assert first == second == third


# -- Reference figures ---------------------------------------------------------


@pytest.mark.parametrize('algorithm,faults,hits', [
    ('fifo', 15, 5),
    ('lru', 12, 8),
    ('clock', 14, 6),
    ('aging', 14, 6),
    ('opt', 9, 11),
])
def test_canonical_scenario(algorithm, faults, hits):
    stats = run(algorithm, 3, CANONICAL_REFERENCE_STRING).statistics
    assert (stats.faults, stats.hits) == (faults, hits)


def test_fifo_belady_anomaly():
    trace = TRACES[1]
    assert run('fifo', 3, trace).statistics.faults == 9
    assert run('fifo', 4, trace).statistics.faults == 10


def test_hit_ratio():
    stats = run('lru', 3, CANONICAL_REFERENCE_STRING).statistics
    assert stats.hit_ratio == pytest.approx(8 / 20)


# -- Records -------------------------------------------------------------------


def test_record_fields_for_fifo():
    result = run_simulation('fifo', 2, [1, 2, 3])
    last = result.records[-1]
    assert result.policy == 'FIFO'
    assert result.capacity == 2
    assert last.position == 2
    assert last.page == 3
    assert last.outcome.evicted == 1
    assert [(v.index, v.page, v.referenced, v.age) for v in last.frames] == \
        [(0, 3, None, None), (1, 2, None, None)]
    assert last.hand is None
    assert last.ticked is False


def test_clock_records_hand():
    result = run_simulation('clock', 3, [1, 2, 3, 4])
    assert [r.hand for r in result.records] == [0, 0, 0, 1]
    assert [v.referenced for v in result.records[-1].frames] == [True, False, False]


def test_aging_records_are_taken_before_tick():
    result = run_simulation('aging', 2, [1, 2, 1, 3], ticks=[2, 3])
    records = result.records
    assert [r.ticked for r in records] == [False, True, True, False]
    assert [(v.referenced, v.age) for v in records[1].frames] == [(True, 0), (True, 0)]
    assert [(v.referenced, v.age) for v in records[2].frames] == [(True, 0x80), (False, 0x80)]
    assert records[3].outcome.evicted == 2
    assert [(v.page, v.referenced, v.age) for v in records[3].frames] == \
        [(1, False, 0xC0), (3, True, 0)]


def test_aging_without_schedule_never_ages():
    result = run_simulation('aging', 2, [1, 2, 1, 3, 1, 4])
    assert all(v.age == 0 for r in result.records for v in r.frames)
    # every counter ties at zero, so frame 0 is always the victim
    assert [r.outcome.evicted for r in result.records
            if r.outcome.evicted is not None] == [1, 3, 1]
    assert [v.page for v in result.records[-1].frames] == [4, 2]


def test_tick_schedule_ignored_by_other_policies():
    plain = run_simulation('lru', 3, CANONICAL_REFERENCE_STRING)
    ticked = run_simulation('lru', 3, CANONICAL_REFERENCE_STRING, tick_interval=2)
    assert plain.statistics == ticked.statistics


# -- Configuration -------------------------------------------------------------


def test_error_types():
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(InvariantViolation, RuntimeError)


@pytest.mark.parametrize('capacity', [0, -1, True, 2.5, '3', None])
def test_bad_capacity(capacity):
    with pytest.raises(ConfigurationError):
        Simulator('fifo', capacity, [1, 2])


def test_empty_trace():
    with pytest.raises(ConfigurationError):
        Simulator('lru', 3, [])


def test_unknown_algorithm():
    with pytest.raises(ConfigurationError):
        Simulator('random', 3, [1])


def test_tick_interval_and_positions_are_exclusive():
    with pytest.raises(ConfigurationError):
        run_simulation('aging', 3, [1], tick_interval=2, ticks=[1])


def test_integer_tick_schedule_is_an_interval():
    simulator = Simulator('aging', 3, [1, 2], 2)
    assert simulator.tick_schedule.interval == 2


def test_tick_positions_list_is_accepted():
    simulator = Simulator('aging', 3, CANONICAL_REFERENCE_STRING, [4, 8, 12, 16, 20])
    assert simulator.tick_schedule.positions == frozenset([4, 8, 12, 16, 20])
    result = simulator.run()
    assert result.statistics == run('aging', 3, CANONICAL_REFERENCE_STRING).statistics
    assert [r.position for r in result.records if r.ticked] == [3, 7, 11, 15, 19]


def test_tick_positions_tuple_is_accepted():
    simulator = Simulator('aging', 2, [1, 2, 1, 3], (2, 3))
    assert [r.ticked for r in simulator.run().records] == [False, True, True, False]


@pytest.mark.parametrize('schedule', [2.5, [0], [1, -4], 0])
def test_bad_tick_schedule(schedule):
    with pytest.raises(ConfigurationError):
        Simulator('aging', 3, [1, 2], schedule)


def test_opt_records_carry_next_use_analysis():
    records = run_simulation('opt', 3, CANONICAL_REFERENCE_STRING).records
    assert records[3].outcome.evicted == 7
    assert records[3].analysis == ((7, 17), (0, 4), (1, 13))
    # page 4 is never used again, so the scan stops there
    assert records[10].outcome.evicted == 4
    assert records[10].analysis == ((2, 12), (4, None))
    assert records[0].analysis is None
    assert records[4].outcome.hit
    assert records[4].analysis is None


def test_online_records_have_no_analysis():
    records = run_simulation('lru', 3, CANONICAL_REFERENCE_STRING).records
    assert all(r.analysis is None for r in records)


def test_corrupted_directory_is_detected():
    simulator = Simulator('fifo', 2, [1, 2])
    simulator.directory.entries[99] = 1
    with pytest.raises(InvariantViolation):
        simulator.step(0)


# -- Command line --------------------------------------------------------------


def test_main_default_run(capsys):
    assert main(['-a', 'lru', '-q']) == 0
    out = capsys.readouterr().out
    assert "Running LRU algorithm with 3 frames" in out
    assert "Page Faults: 12" in out
    assert "Hit Ratio: 40.00%" in out


def test_main_prints_each_access(capsys):
    assert main(['-a', 'clock', '--refs', '1,2,3,4', '-n', '3']) == 0
    out = capsys.readouterr().out
    assert "Page   1 | Frames [1 R:1 <-, -, -] | MISS" in out
    assert "Page   4 | Frames [4 R:1, 2 R:0 <-, 3 R:0] | MISS (evict 1)" in out


def test_main_aging_output(capsys):
    assert main(['-a', 'aging', '--refs', '1,2', '-n', '2', '-r', '2']) == 0
    out = capsys.readouterr().out
    assert "Page   2 | Frames [1 R:1 Age:00000000, 2 R:1 Age:00000000] | MISS | TICK" in out


def test_main_opt_prints_analysis(capsys):
    assert main(['-a', 'opt']) == 0
    out = capsys.readouterr().out
    assert "Page   2 | Frames [2, 0, 1] | MISS (evict 7) | Analysis: 7->pos.17, 0->pos.4, 1->pos.13" in out
    assert "Page   0 | Frames [2, 0, 3] | MISS (evict 4) | Analysis: 2->pos.12, 4->never" in out


@pytest.mark.parametrize('name,expected', [
    ('optimal', 'OPT'),
    ('belady', 'OPT'),
    ('Second-Chance', 'CLOCK'),
    ('LRU', 'LRU'),
])
def test_main_accepts_algorithm_aliases(capsys, name, expected):
    assert main(['-a', name, '-q']) == 0
    assert f"Running {expected} algorithm" in capsys.readouterr().out


def test_main_aging_default_interval(capsys):
    assert main(['-a', 'aging', '-q']) == 0
    assert "Page Faults: 14" in capsys.readouterr().out


def test_main_aging_explicit_ticks(capsys):
    assert main(['-a', 'aging', '--ticks', '4,8,12,16,20', '-q']) == 0
    assert "Page Faults: 14" in capsys.readouterr().out


def test_main_all_prints_summary(capsys):
    assert main(['--all']) == 0
    out = capsys.readouterr().out
    assert "SUMMARY OF ALL RESULTS" in out
    for name in ('FIFO', 'LRU', 'CLOCK', 'AGING', 'OPT'):
        assert f"Running {name} algorithm" in out


def test_main_trace_file(tmp_path, capsys):
    path = tmp_path / 'trace.txt'
    path.write_text("1 2 1 2\n")
    assert main(['-a', 'opt', '-n', '2', '-t', str(path), '-q']) == 0
    assert "Hits: 2" in capsys.readouterr().out


def test_main_rejects_zero_frames(capsys):
    assert main(['-n', '0']) == 2
    assert "error: Frame count must be positive" in capsys.readouterr().err


def test_main_missing_trace_file(tmp_path, capsys):
    assert main(['-t', str(tmp_path / 'missing.txt')]) == 2
    assert "error:" in capsys.readouterr().err


def test_main_refresh_and_ticks_conflict(capsys):
    assert main(['-a', 'aging', '-r', '2', '--ticks', '1']) == 2
    assert "error:" in capsys.readouterr().err


def test_main_unknown_algorithm():
    with pytest.raises(SystemExit):
        main(['-a', 'random'])
