"""Unit tests for viewport_clustering.utils module.

Tests canonical JSON hashing, point file loading and cluster export.
"""

import json

import pandas as pd
import pytest

from viewport_clustering import Cluster, GeoPoint, LatLng
from viewport_clustering.utils import (
    canonical_json,
    clusters_to_records,
    hash_from_json,
    load_points_df,
    points_from_dataframe,
    validate_coordinates,
    write_clusters_json,
)


class TestCanonicalJson:
    """Test suite for canonical_json and hash_from_json."""

    def test_sorted_compact(self):
        assert canonical_json({"b": 1, "a": {"y": 2, "x": 1}}) == '{"a":{"x":1,"y":2},"b":1}'

    def test_non_ascii_preserved(self):
        assert canonical_json({"name": "Chesapeake Bay é"}) == '{"name":"Chesapeake Bay é"}'

    def test_hash_length(self):
        payload = canonical_json({"a": 1})

        assert len(hash_from_json(payload)) == 10
        assert len(hash_from_json(payload, length=None)) == 40
        assert hash_from_json(payload, length=None).startswith(hash_from_json(payload))

    def test_hash_deterministic(self):
        assert hash_from_json('{"a":1}') == hash_from_json('{"a":1}')
        assert hash_from_json('{"a":1}') != hash_from_json('{"a":2}')


class TestValidateCoordinates:
    def test_drops_invalid_rows(self):
        df = pd.DataFrame({
            "lat": [37.5, "bad", 95.0, float("inf"), None],
            "lng": [-77.4, -77.0, -77.0, -77.0, -77.0],
        })

        cleaned = validate_coordinates(df)

        assert len(cleaned) == 1
        assert cleaned.loc[0, "lat"] == 37.5


class TestLoadPointsDf:
    """Test suite for load_points_df."""

    def test_csv_with_lon_column(self, tmp_path):
        path = tmp_path / "points.csv"
        path.write_text("lat,lon,name\n37.5,-77.4,a\n37.6,-77.5,b\n", encoding="utf-8")

        df = load_points_df(str(path))

        assert list(df["lng"]) == [-77.4, -77.5]
        assert list(df["name"]) == ["a", "b"]

    def test_jsonl_skips_bad_lines(self, tmp_path):
        path = tmp_path / "points.jsonl"
        path.write_text(
            '{"lat": 37.5, "lng": -77.4}\nnot json\n\n{"lat": 37.6, "lng": -77.5}\n',
            encoding="utf-8",
        )

        assert len(load_points_df(str(path))) == 2

    def test_json_single_object(self, tmp_path):
        path = tmp_path / "points.json"
        path.write_text(json.dumps({"lat": 37.5, "lng": -77.4}), encoding="utf-8")

        assert len(load_points_df(str(path))) == 1

    def test_jsonl_without_records(self, tmp_path):
        path = tmp_path / "points.jsonl"
        path.write_text("garbage\n", encoding="utf-8")

        with pytest.raises(ValueError, match="No valid JSON records"):
            load_points_df(str(path))

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "points.parquet"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValueError, match="Unsupported file format"):
            load_points_df(str(path))

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "points.csv"
        path.write_text("latitude,longitude\n37.5,-77.4\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Missing required columns"):
            load_points_df(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_points_df(str(tmp_path / "absent.csv"))


class TestPointsFromDataframe:
    def test_weights_and_payload(self):
        df = pd.DataFrame({
            "lat": [37.5, 37.6],
            "lng": [-77.4, -77.5],
            "weight": [2.0, float("nan")],
            "name": ["a", "b"],
        })

        points = points_from_dataframe(df)

        assert points[0] == GeoPoint(37.5, -77.4, 2.0)
        assert points[1].weight is None
        assert points[1].payload == {"name": "b"}

    def test_without_weight_column(self):
        df = pd.DataFrame({"lat": [1.0], "lng": [2.0]})

        (point,) = points_from_dataframe(df)

        assert point.weight is None and point.payload == {}


class TestClusterExport:
    """Test suite for clusters_to_records and write_clusters_json."""

    def test_records(self):
        cluster = Cluster("8a2a", LatLng(37.5, -77.4), (GeoPoint(37.5, -77.4), GeoPoint(37.5, -77.4)))

        assert clusters_to_records([cluster]) == [{"id": "8a2a", "lat": 37.5, "lng": -77.4, "count": 2}]
        assert clusters_to_records([cluster], {"8a2a": "k1"})[0]["key"] == "k1"

    def test_write_creates_directories(self, tmp_path):
        out = tmp_path / "nested" / "dir" / "clusters.json"
        items = [{"id": "a", "lat": 1.0, "lng": 2.0, "count": 1}]

        write_clusters_json(items, str(out))

        assert json.loads(out.read_text(encoding="utf-8")) == items
