"""Unit tests for grouping.utils module."""

import json

import pytest
import pandas as pd
import geopandas as gpd

from grouping.base import GeoPoint, Marker, OverlayItem, from_e6, to_e6
from grouping.utils import (
    validate_coordinates,
    load_points_df,
    items_from_df,
    visible_to_gdf,
    gdf_to_points_json,
    canonical_params_json,
    param_hash_from_json,
)


@pytest.fixture
def sample_df():
    """Fixture providing sample DataFrame with geographic coordinates.

    Returns:
        pd.DataFrame: DataFrame with 'lon', 'lat' and 'name' columns.
    """
    return pd.DataFrame({
        "lon": [-77.1, -77.2, -77.0],
        "lat": [38.88, 38.89, 38.87],
        "name": ["alpha", "beta", "gamma"],
    })


class TestMicrodegrees:
    """Test suite for microdegree conversion helpers."""

    def test_to_e6(self):
        """Test conversion to rounded microdegrees."""
        assert to_e6(38.88) == 38880000
        assert to_e6(-77.4360004) == -77436000

    def test_from_e6(self):
        """Test conversion back to degrees."""
        assert from_e6(-77436000) == pytest.approx(-77.436)

    def test_geopoint_uses_same_rounding(self):
        """Test that GeoPoint.from_degrees rounds like to_e6."""
        point = GeoPoint.from_degrees(37.5407004, -77.4360006)
        assert point == GeoPoint(to_e6(37.5407004), to_e6(-77.4360006))
        assert point.longitude == from_e6(point.lon_e6)


class TestValidateCoordinates:
    """Test suite for coordinate cleaning."""

    def test_drops_invalid_rows(self):
        """Test that missing and out-of-range coordinates are dropped."""
        df = pd.DataFrame({
            "lon": [-77.1, None, 200.0, -77.0],
            "lat": [38.88, 38.0, 38.0, 95.0],
        })
        cleaned = validate_coordinates(df)
        assert len(cleaned) == 1
        assert cleaned.loc[0, "lon"] == -77.1


class TestLoadPointsDf:
    """Test suite for point file loading."""

    def test_load_csv(self, tmp_path, sample_df):
        """Test loading a CSV file."""
        path = tmp_path / "points.csv"
        sample_df.to_csv(path, index=False)
        df = load_points_df(str(path))
        assert len(df) == 3
        assert list(df["name"]) == ["alpha", "beta", "gamma"]

    def test_load_jsonl_with_nested_location(self, tmp_path):
        """Test that nested location objects fill missing coordinates."""
        path = tmp_path / "points.jsonl"
        path.write_text(
            '{"id": 1, "lon": -77.1, "lat": 38.88}\n'
            '{"id": 2, "location": {"lon": -77.2, "lat": 38.89}}\n',
            encoding="utf-8",
        )
        df = load_points_df(str(path))
        assert len(df) == 2
        assert df.loc[1, "lon"] == -77.2

    def test_load_json_array(self, tmp_path):
        """Test loading a JSON array file."""
        path = tmp_path / "points.json"
        path.write_text(json.dumps([{"lon": 1.0, "lat": 2.0}, {"lon": 3.0, "lat": 4.0}]), encoding="utf-8")
        df = load_points_df(str(path))
        assert len(df) == 2

    def test_invalid_rows_warn(self, tmp_path):
        """Test that dropped rows are reported with a warning."""
        path = tmp_path / "points.csv"
        path.write_text("lon,lat\n-77.1,38.88\n500,38.0\n", encoding="utf-8")
        with pytest.warns(UserWarning, match="Dropped 1 rows"):
            df = load_points_df(str(path))
        assert len(df) == 1

    def test_missing_file(self):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_points_df("nonexistent.csv")

    def test_unsupported_format(self, tmp_path):
        """Test that unknown extensions raise ValueError."""
        path = tmp_path / "points.txt"
        path.write_text("lon lat", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported file format"):
            load_points_df(str(path))

    def test_missing_columns(self, tmp_path):
        """Test that files without coordinate columns raise ValueError."""
        path = tmp_path / "points.csv"
        path.write_text("x,y\n1,2\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Missing required columns"):
            load_points_df(str(path))


class TestItemsFromDf:
    """Test suite for DataFrame to item conversion."""

    def test_positions_and_titles(self, sample_df):
        """Test microdegree positions and title column."""
        items = items_from_df(sample_df, title_col="name")
        assert [i.title for i in items] == ["alpha", "beta", "gamma"]
        assert items[0].point == GeoPoint(38880000, -77100000)
        assert all(isinstance(i.point.lat_e6, int) for i in items)

    def test_default_titles_use_index(self, sample_df):
        """Test that titles default to the row index."""
        items = items_from_df(sample_df)
        assert [i.title for i in items] == ["0", "1", "2"]

    def test_markers_unset(self, sample_df):
        """Test that new items use the overlay default marker."""
        assert all(i.marker is None for i in items_from_df(sample_df))


class TestVisibleExport:
    """Test suite for visible list export."""

    def test_visible_to_gdf(self):
        """Test GeoDataFrame columns and group flag."""
        group_marker = Marker("group", 30, 30)
        single = OverlayItem(GeoPoint(38880000, -77100000), title="one")
        group = OverlayItem(GeoPoint(38890000, -77200000), title="group", marker=group_marker)
        gdf = visible_to_gdf([single, group], group_marker)
        assert isinstance(gdf, gpd.GeoDataFrame)
        assert gdf.crs == "EPSG:4326"
        assert list(gdf["is_group"]) == [False, True]
        assert list(gdf["marker"]) == [None, "group"]
        assert gdf["marker"].dtype == object
        assert gdf.geometry.iloc[0].x == pytest.approx(-77.1)
        assert gdf.geometry.iloc[0].y == pytest.approx(38.88)

    def test_unmarked_items_keep_none(self):
        """Test that a list without any marked item stores None markers."""
        items = [OverlayItem(GeoPoint(0, 0), title="a"), OverlayItem(GeoPoint(1, 1), title="b")]
        gdf = visible_to_gdf(items)
        assert gdf["marker"].tolist() == [None, None]
        assert not gdf["is_group"].any()

    def test_empty_visible_list(self):
        """Test that an empty list exports an empty GeoDataFrame."""
        gdf = visible_to_gdf([])
        assert len(gdf) == 0
        assert "is_group" in gdf.columns

    def test_points_json(self, tmp_path):
        """Test JSON export of a visible list."""
        group_marker = Marker("group", 30, 30)
        items = [
            OverlayItem(GeoPoint(1000000, 2000000), title="a"),
            OverlayItem(GeoPoint(3000000, 4000000), title="g", marker=group_marker),
        ]
        out_path = tmp_path / "nested" / "visible.json"
        gdf_to_points_json(visible_to_gdf(items, group_marker), str(out_path))

        data = json.loads(out_path.read_text(encoding="utf-8"))
        assert data[0] == {"lon": 2.0, "lat": 1.0, "title": "a", "marker": None, "is_group": False}
        assert data[1]["is_group"] is True
        assert data[1]["marker"] == "group"

    def test_empty_points_json(self, tmp_path):
        """Test that an empty visible list exports an empty array."""
        out_path = tmp_path / "visible.json"
        gdf_to_points_json(visible_to_gdf([]), str(out_path))
        assert json.loads(out_path.read_text(encoding="utf-8")) == []


class TestParameterHashing:
    """Test suite for deterministic parameter hashing."""

    def test_param_hash_deterministic(self):
        """Test that parameter hash is deterministic and key-order independent."""
        json1 = canonical_params_json("proximity", {"min_per_group": 3, "a": 1})
        json2 = canonical_params_json("proximity", {"a": 1, "min_per_group": 3})
        assert json1 == json2
        assert param_hash_from_json(json1) == param_hash_from_json(json2)
        assert len(param_hash_from_json(json1)) == 10

    def test_param_json_includes_method(self):
        """Test that the method name is part of the canonical JSON."""
        params = {"min_per_group": 3}
        assert canonical_params_json("proximity", params) != canonical_params_json("grid", params)
        assert '"__method__":"proximity"' in canonical_params_json("proximity", params)
