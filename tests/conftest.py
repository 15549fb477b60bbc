from __future__ import annotations

from pathlib import Path

import matplotlib
import pytest

matplotlib.use("Agg")


@pytest.fixture
def outdir(tmp_path: Path) -> Path:
    out = tmp_path / "results"
    out.mkdir(parents=True, exist_ok=True)
    return out


@pytest.fixture
def small_cfg(outdir: Path) -> dict:
    return {
        "simulation": {
            "num_cores": 4,
            "num_accesses": 30,
            "false_sharing_probability": 0.4,
            "random_seed": 7,
        },
        "cache": {"capacity": 4, "line_size_words": 4},
        "generator": {"address_range": 64, "read_ratio": 0.7},
        "log": {"max_events": 15},
        "output": {
            "results_dir": str(outdir),
            "stats_plot": str(outdir / "core_stats.png"),
            "timeline_plot": str(outdir / "event_timeline.png"),
            "hitmiss_plot": str(outdir / "hit_miss_rate.png"),
        },
    }
