# visualize.py
import os
import matplotlib.pyplot as plt
import numpy as np

from cache import EventType

EVENT_COLORS = {
    EventType.HIT: "tab:green",
    EventType.MISS: "tab:orange",
    EventType.FALSE_SHARING: "tab:purple",
}


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_core_stats(stats, outpath):
    """Grouped bars of hits, misses and false sharing for each core."""
    _ensure_dir(outpath)
    cores = np.arange(len(stats))
    width = 0.25
    plt.figure(figsize=(8, 4))
    plt.bar(cores - width, [s.hits for s in stats], width, label="Hits", color="tab:green")
    plt.bar(cores, [s.misses for s in stats], width, label="Misses", color="tab:orange")
    plt.bar(cores + width, [s.false_sharing_count for s in stats], width,
            label="False sharing", color="tab:purple")
    plt.xticks(cores, [f"Core {c}" for c in cores])
    plt.ylabel("Accesses")
    plt.title("Per-core Cache Events")
    plt.legend()
    plt.grid(True, axis="y")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_event_timeline(events, num_cores, outpath):
    """One marker per access at (step, core), coloured by event type; evictions get a ring."""
    _ensure_dir(outpath)
    plt.figure(figsize=(10, 3))
    for event_type, color in EVENT_COLORS.items():
        selected = [e for e in events if e.type == event_type]
        if selected:
            plt.scatter([e.step for e in selected], [e.core_id for e in selected],
                        color=color, label=event_type.name.replace("_", " ").title())
    evicted = [e for e in events if e.evicted]
    if evicted:
        plt.scatter([e.step for e in evicted], [e.core_id for e in evicted],
                    s=160, facecolors="none", edgecolors="tab:red", label="Eviction")
    plt.yticks(range(num_cores), [f"Core {c}" for c in range(num_cores)])
    plt.xlabel("Step")
    plt.title("Cache Event Timeline")
    plt.legend(loc="upper right", fontsize="small")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_hit_miss_rate(hit_rate, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(4, 4))
    labels = ['Hit', 'Miss']
    sizes = [hit_rate, 1.0 - hit_rate]
    plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title("Cache Hit/Miss Rate")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
