import json
import sys

import pytest

import run_cluster_preview
from viewport_clustering import make_grid

RICHMOND_BBOX = ["-77.7", "37.3", "-77.2", "37.8"]


@pytest.fixture
def points_csv(tmp_path):
    grid = make_grid("h3")
    center = grid.cell_to_lat_lng(grid.lat_lng_to_cell(37.5407, -77.4360, grid.resolution_for_zoom(10)))
    rows = ["lat,lng,case_id"]
    for i, (dlat, dlng) in enumerate([(0.0, 0.0), (1e-7, 0.0), (0.0, 1e-7), (-1e-7, -1e-7)]):
        rows.append(f"{center.lat + dlat!r},{center.lng + dlng!r},GRD-{i}")
    rows.append("40.7128,-74.0060,GRD-ny")
    path = tmp_path / "points.csv"
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path


def test_preview_exports_clusters(points_csv, tmp_path, monkeypatch):
    out = tmp_path / "out" / "clusters.json"
    monkeypatch.setattr(sys, "argv", [
        "run_cluster_preview.py", "--input", str(points_csv),
        "--bbox", *RICHMOND_BBOX, "--zoom", "10", "--out", str(out),
    ])

    run_cluster_preview.main()

    items = json.loads(out.read_text(encoding="utf-8"))
    assert len(items) == 1
    assert items[0]["count"] == 4
    assert len(items[0]["key"]) == 40


def test_preview_omit_clustering(points_csv, tmp_path, monkeypatch):
    out = tmp_path / "clusters.json"
    monkeypatch.setattr(sys, "argv", [
        "run_cluster_preview.py", "--input", str(points_csv),
        "--bbox", *RICHMOND_BBOX, "--omit-clustering", "--out", str(out),
    ])

    run_cluster_preview.main()

    items = json.loads(out.read_text(encoding="utf-8"))
    assert [item["count"] for item in items] == [1, 1, 1, 1]


def test_preview_bad_input(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "run_cluster_preview.py", "--input", str(tmp_path / "missing.csv"),
    ])

    with pytest.raises(SystemExit) as exc:
        run_cluster_preview.main()

    assert exc.value.code == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_preview_bad_config(points_csv, tmp_path, monkeypatch, capsys):
    config = tmp_path / "clustering_config.json"
    config.write_text(json.dumps({"clustering": {"throttle_ms": -1}}), encoding="utf-8")
    monkeypatch.setattr(sys, "argv", [
        "run_cluster_preview.py", "--input", str(points_csv), "--config", str(config),
    ])

    with pytest.raises(SystemExit):
        run_cluster_preview.main()

    assert "Invalid configuration" in capsys.readouterr().out
