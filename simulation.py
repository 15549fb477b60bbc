# simulation.py
import os
import json
import logging
import threading

import numpy as np

from cache import DEFAULT_CAPACITY, DEFAULT_LINE_SIZE, format_caches, initialize
from coherence import step as simulate_step
from generator import DEFAULT_ADDRESS_RANGE, DEFAULT_READ_RATIO, generate
from stats import fold, total, zero_stats

logger = logging.getLogger(__name__)

NUM_CORES = 4
INITIAL_ACCESSES = 30
FALSE_SHARING_PROBABILITY = 0.4
MAX_LOG_EVENTS = 15


class SimulationRunner:
    """
    Drives one simulation run: owns the (caches, step) state, the access
    sequence, the event log and per-core stats.
    """

    def __init__(self, cfg):
        self.cfg = cfg
        sim_cfg = cfg.get("simulation", {})
        cache_cfg = cfg.get("cache", {})
        gen_cfg = cfg.get("generator", {})
        self.num_cores = sim_cfg.get("num_cores", NUM_CORES)
        self.num_accesses = sim_cfg.get("num_accesses", INITIAL_ACCESSES)
        self.false_sharing_probability = sim_cfg.get(
            "false_sharing_probability", FALSE_SHARING_PROBABILITY)
        self.seed = sim_cfg.get("random_seed", None)
        self.capacity = cache_cfg.get("capacity", DEFAULT_CAPACITY)
        self.line_size = cache_cfg.get("line_size_words", DEFAULT_LINE_SIZE)
        self.address_range = gen_cfg.get("address_range", DEFAULT_ADDRESS_RANGE)
        self.read_ratio = gen_cfg.get("read_ratio", DEFAULT_READ_RATIO)
        self.max_events = cfg.get("log", {}).get("max_events", MAX_LOG_EVENTS)
        self.rng = np.random.default_rng(self.seed)
        self.accesses = []
        self.reset()
        self.generate_sequence()

    def generate_sequence(self, num_accesses=None, num_cores=None):
        """
        Replace the access sequence and start over from empty caches.
        Draws from the runner's rng, so each call gives a new sequence and the
        series of sequences is reproducible from the configured seed.
        """
        num_accesses = self.num_accesses if num_accesses is None else num_accesses
        num_cores = self.num_cores if num_cores is None else num_cores
        accesses = generate(
            num_accesses,
            num_cores,
            self.false_sharing_probability,
            seed=self.rng,
            line_size=self.line_size,
            address_range=self.address_range,
            read_ratio=self.read_ratio,
        )
        self.num_accesses = num_accesses
        self.num_cores = num_cores
        self.accesses = accesses
        self.reset()
        return self.accesses

    def reset(self):
        self.caches = initialize(self.num_cores, self.capacity)
        self.current_step = 0
        self.stats = zero_stats(self.num_cores)
        self.events = []
        self.current_event = None

    @property
    def is_finished(self):
        return self.current_step >= len(self.accesses)

    @property
    def progress(self):
        return self.current_step / len(self.accesses) if self.accesses else 1.0

    def step(self):
        """Execute the next access. Returns its event, or None once the sequence is done."""
        if self.is_finished:
            return None
        access = self.accesses[self.current_step]
        event, self.caches = simulate_step(access, self.caches, self.line_size)
        self.current_event = event
        self.events.append(event)
        self.stats[access.core_id] = fold(event, self.stats[access.core_id])
        self.current_step += 1
        return event

    def run(self):
        while not self.is_finished:
            self.step()
        summary = self.summary()
        logger.info("run finished: %d steps, overall hit rate %.2f",
                    summary["steps_done"], summary["overall"]["hit_rate"])
        return summary

    def recent_events(self, max_events=None):
        n = self.max_events if max_events is None else max_events
        return self.events[-n:] if n > 0 else []

    def summary(self):
        per_core = []
        for core_id, s in enumerate(self.stats):
            per_core.append({
                "core": core_id,
                "hits": s.hits,
                "misses": s.misses,
                "false_sharing": s.false_sharing_count,
                "total_accesses": s.total_accesses,
                "hit_rate": s.hit_rate,
            })
        overall = total(self.stats)
        return {
            "seed": self.seed,
            "steps_done": self.current_step,
            "total_steps": len(self.accesses),
            "per_core": per_core,
            "overall": {
                "hits": overall.hits,
                "misses": overall.misses,
                "false_sharing": overall.false_sharing_count,
                "total_accesses": overall.total_accesses,
                "hit_rate": overall.hit_rate,
            },
        }

    def describe_caches(self):
        return format_caches(self.caches)

    def save_results(self, summary, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, "results.json")
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return path


def run_batch(cfg, seeds):
    """
    Run one independent simulation per seed on its own thread.
    Returns the summaries in seed order.
    """
    results = {}
    errors = []
    results_lock = threading.Lock()

    def _worker(seed):
        run_cfg = dict(cfg)
        run_cfg["simulation"] = dict(cfg.get("simulation", {}), random_seed=seed)
        try:
            summary = SimulationRunner(run_cfg).run()
        except Exception as exc:
            with results_lock:
                errors.append(exc)
            return
        with results_lock:
            results[seed] = summary

    threads = []
    for seed in seeds:
        t = threading.Thread(target=_worker, args=(seed,))
        t.start()
        threads.append(t)
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return [results[seed] for seed in seeds]
