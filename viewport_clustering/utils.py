"""Utility functions for clustering operations.

Provides helpers for canonical JSON hashing, coordinate validation, loading
point files into DataFrames, and exporting clusters.
"""

import hashlib
import json
import os
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from viewport_clustering.models import Cluster, GeoPoint


def canonical_json(fields: Dict[str, Any]) -> str:
    """Create canonical JSON representation of a flat field mapping.

    Args:
        fields: Explicitly enumerated fields to serialize.

    Returns:
        Canonical JSON string (sorted keys, compact separators).

    Note:
        Nested mappings are sorted too, so the output does not depend on
        key insertion order.
    """
    return json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_from_json(payload: str, length: Optional[int] = 10) -> str:
    """Generate deterministic SHA-1 hash from canonical JSON.

    Args:
        payload: Canonical JSON string.
        length: Number of hex characters to keep (None keeps all 40).

    Returns:
        Hex digest of the SHA-1 hash.
    """
    digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()
    return digest if length is None else digest[:length]


def validate_coordinates(
    df: pd.DataFrame,
    lat_col: str = "lat",
    lng_col: str = "lng",
) -> pd.DataFrame:
    """Validate and clean coordinate data.

    Args:
        df: DataFrame with coordinate columns.
        lat_col: Name of latitude column.
        lng_col: Name of longitude column.

    Returns:
        Cleaned DataFrame with missing, non-finite and out-of-range
        coordinates removed.
    """
    df = df.copy()
    df[lat_col] = pd.to_numeric(df[lat_col], errors="coerce")
    df[lng_col] = pd.to_numeric(df[lng_col], errors="coerce")
    df = df.replace([np.inf, -np.inf], np.nan).dropna(subset=[lat_col, lng_col])
    df = df[
        (df[lng_col] >= -180) & (df[lng_col] <= 180) &
        (df[lat_col] >= -90) & (df[lat_col] <= 90)
    ]

    return df.reset_index(drop=True)


def load_points_df(path: str, lat_col: str = "lat", lng_col: str = "lng") -> pd.DataFrame:
    """Load DataFrame from JSONL/JSON/CSV with coordinate validation.

    A ``lon`` column is accepted as the longitude when ``lng_col`` is absent.

    Args:
        path: Path to input file (.jsonl, .json, or .csv).
        lat_col: Name of latitude column (default: "lat").
        lng_col: Name of longitude column (default: "lng").

    Returns:
        DataFrame with validated coordinate columns.

    Raises:
        FileNotFoundError: If input file doesn't exist.
        ValueError: If required columns are missing or file format is unsupported.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    ext = os.path.splitext(path)[1].lower()
    if ext == ".jsonl":
        records = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    try:
                        records.append(json.loads(line))
                    except json.JSONDecodeError:
                        continue
        if not records:
            raise ValueError(f"No valid JSON records found in {path}")
        df = pd.DataFrame(records)
    elif ext == ".json":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = [data]
        df = pd.DataFrame(data)
    elif ext == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported file format: {ext} (use .jsonl, .json, or .csv)")

    if lng_col not in df.columns and "lon" in df.columns:
        df = df.rename(columns={"lon": lng_col})

    required = {lat_col, lng_col}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}. "
                         f"Available columns: {sorted(df.columns.tolist())}")

    return validate_coordinates(df, lat_col, lng_col)


def points_from_dataframe(
    df: pd.DataFrame,
    lat_col: str = "lat",
    lng_col: str = "lng",
    weight_col: str = "weight",
) -> List[GeoPoint]:
    """Convert DataFrame rows into GeoPoints.

    Columns other than the coordinate and weight columns become the payload.
    Missing weights fall back to the default weight.
    """
    points = []
    for record in df.to_dict("records"):
        lat = float(record.pop(lat_col))
        lng = float(record.pop(lng_col))
        weight = record.pop(weight_col, None)
        if weight is not None and pd.isna(weight):
            weight = None
        points.append(GeoPoint(lat, lng, weight, record))
    return points


def clusters_to_records(clusters: Iterable[Cluster], keys: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
    """Flatten clusters into JSON-ready dictionaries.

    Args:
        clusters: Clusters to export.
        keys: Optional cluster id -> reconciliation key mapping.

    Returns:
        List of {"id", "lat", "lng", "count"[, "key"]} dictionaries.
    """
    items = []
    for cluster in clusters:
        item = {
            "id": cluster.id,
            "lat": float(cluster.center.lat),
            "lng": float(cluster.center.lng),
            "count": cluster.size,
        }
        if keys and cluster.id in keys:
            item["key"] = keys[cluster.id]
        items.append(item)
    return items


def write_clusters_json(items: List[Dict[str, Any]], out_path: str) -> None:
    """Write cluster records as a JSON array, creating parent directories."""
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(items, f, separators=(",", ":"), ensure_ascii=False, indent=2)
