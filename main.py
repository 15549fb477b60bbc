# main.py
import argparse
import json
import logging

from simulation import SimulationRunner, run_batch
from visualize import plot_core_stats, plot_event_timeline, plot_hit_miss_rate


def load_config(path="config.json"):
    with open(path, "r") as f:
        return json.load(f)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Multicore LRU cache and false sharing simulator")
    parser.add_argument("--config", default="config.json", help="path to the JSON config")
    parser.add_argument("--verbose", action="store_true", help="log every simulated step")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")
    cfg = load_config(args.config)
    runner = SimulationRunner(cfg)
    print("Starting simulation with config:", cfg.get("simulation", {}))
    summary = runner.run()
    out_cfg = cfg.get("output", {})
    results_path = runner.save_results(summary, out_cfg)

    print("Final cache state:")
    print(runner.describe_caches())
    print("Last events:")
    for event in runner.recent_events():
        print(f"  step {event.step:>3} core {event.core_id} addr {event.address:>3} "
              f"{event.type.name}" + (f" (evicted block {event.evicted_tag})" if event.evicted else ""))
    print("Simulation Summary:", summary["overall"])
    print("Results saved to:", results_path)

    seeds = cfg.get("simulation", {}).get("batch_seeds", [])
    if seeds:
        for batch_summary in run_batch(cfg, seeds):
            print(f"Seed {batch_summary['seed']}: {batch_summary['overall']}")

    # Plots
    plot_core_stats(runner.stats, out_cfg.get("stats_plot", "results/core_stats.png"))
    plot_event_timeline(runner.events, runner.num_cores,
                        out_cfg.get("timeline_plot", "results/event_timeline.png"))
    plot_hit_miss_rate(summary["overall"]["hit_rate"],
                       out_cfg.get("hitmiss_plot", "results/hit_miss_rate.png"))
    print("Plots saved in", out_cfg.get("results_dir", "results") + "/")
    return summary


if __name__ == "__main__":
    main()
