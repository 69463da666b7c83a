import matplotlib.pyplot as plt

from policies import POLICIES
from reference_trace import DEFAULT_TICK_INTERVAL, ReferenceTrace
from simulator import run_simulation


def compare_policies(trace, capacity, tick_interval=DEFAULT_TICK_INTERVAL):
    results = {}
    for algorithm in POLICIES:
        interval = tick_interval if algorithm == 'aging' else None
        result = run_simulation(algorithm, capacity, trace, tick_interval=interval)
        results[result.policy] = result.statistics
    return results


def sweep_capacities(trace, capacities, tick_interval=DEFAULT_TICK_INTERVAL):
    return {capacity: compare_policies(trace, capacity, tick_interval)
            for capacity in capacities}


def plot_comparison(results, path='algorithm_comparison.png', title=None):
    algorithms = list(results)
    faults = [results[alg].faults for alg in algorithms]
    hits = [results[alg].hits for alg in algorithms]

    fig, ax = plt.subplots(figsize=(9, 5))
    fig.suptitle(title or 'Page Replacement Algorithm Comparison',
                 fontsize=14, fontweight='bold')

    x = range(len(algorithms))
    width = 0.35
    bars1 = ax.bar([i - width/2 for i in x], faults, width, label='Page Faults')
    bars2 = ax.bar([i + width/2 for i in x], hits, width, label='Hits')

    for bar in list(bars1) + list(bars2):
        height = bar.get_height()
        ax.text(bar.get_x() + bar.get_width()/2., height,
                f'{int(height)}', ha='center', va='bottom', fontsize=9)

    ax.set_xticks(list(x))
    ax.set_xticklabels(algorithms)
    ax.grid(axis='y', alpha=0.3)
    ax.legend(loc='upper right', frameon=True)

    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return path


def main():
    trace = ReferenceTrace.canonical()
    capacities = range(1, 7)

    print("Running simulations...")
    sweep = sweep_capacities(trace, capacities)
    for capacity in capacities:
        row = "  ".join(f"{name}={stats.faults}" for name, stats in sweep[capacity].items())
        print(f"{capacity} frames: {row}")

    path = plot_comparison(sweep[3], title='Page Replacement Algorithm Comparison (3 frames)')
    print(f"\nGraph saved as '{path}'")


if __name__ == '__main__':
    main()
