import json

import visualize
from cache import CacheEvent, EventType
from main import main
from simulation import SimulationRunner
from visualize import plot_core_stats, plot_event_timeline, plot_hit_miss_rate


def test_plots_written(small_cfg, outdir):
    runner = SimulationRunner(small_cfg)
    summary = runner.run()

    plot_core_stats(runner.stats, str(outdir / "plots" / "core_stats.png"))
    plot_event_timeline(runner.events, runner.num_cores, str(outdir / "plots" / "timeline.png"))
    plot_hit_miss_rate(summary["overall"]["hit_rate"], str(outdir / "plots" / "pie.png"))

    for name in ("core_stats.png", "timeline.png", "pie.png"):
        assert (outdir / "plots" / name).stat().st_size > 0


def test_main_end_to_end(small_cfg, outdir, tmp_path):
    small_cfg["simulation"]["batch_seeds"] = [1, 2]
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(small_cfg))

    summary = main(["--config", str(config_path)])

    assert summary["steps_done"] == 30
    assert (outdir / "results.json").exists()
    assert (outdir / "core_stats.png").exists()
    assert (outdir / "event_timeline.png").exists()
    assert (outdir / "hit_miss_rate.png").exists()


def test_timeline_legend_labels_unique(outdir, monkeypatch):
    events = [
        CacheEvent(step=0, core_id=0, address=0, type=EventType.MISS),
        CacheEvent(step=1, core_id=1, address=4, type=EventType.MISS, evicted_tag=3),
        CacheEvent(step=2, core_id=0, address=8, type=EventType.EVICTION),
        CacheEvent(step=3, core_id=1, address=1, type=EventType.FALSE_SHARING),
    ]
    labels = []

    def _capture(outpath):
        legend = visualize.plt.gca().get_legend()
        labels.extend(t.get_text() for t in legend.get_texts())

    monkeypatch.setattr(visualize.plt, "savefig", _capture)
    plot_event_timeline(events, 2, str(outdir / "timeline.png"))

    assert labels.count("Eviction") == 1
    assert len(labels) == len(set(labels))
