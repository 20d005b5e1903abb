"""
Integration tests for ObservationRepository.

Run with: SERIESDB_ENV=test pytest src/seriesdb/observation/repository_test.py -v
"""

from decimal import Decimal

import pytest
from shapely.geometry import Point

from seriesdb.conftest import at
from seriesdb.dataset import DatasetRepository
from seriesdb.models import Column
from seriesdb.observation import ObservationRepository
from seriesdb.query import BoundingBox, Interval, Query


@pytest.fixture
def load_dataset(db_connection):
    """Load a dataset record by id."""

    def _load(dataset_id: int):
        return DatasetRepository().get_by_id(db_connection, dataset_id)

    return _load


@pytest.fixture
def series(insert_dataset, insert_observation, load_dataset):
    """A quantity dataset with observations at t=1, 5 and 10."""
    dataset_id = insert_dataset("ph")
    for hours, value in [(10, "7.4"), (1, "7.0"), (5, "7.2")]:
        insert_observation(dataset_id, hours, Decimal(value))
    return load_dataset(dataset_id)


class TestFindAll:
    """Tests for ObservationRepository.find_all()"""

    def test_ordered_by_sampling_end(self, db_connection, series):
        observations = ObservationRepository().find_all(db_connection, series, Query())

        assert [o.sampling_time_end for o in observations] == [at(1), at(5), at(10)]

    def test_timespan_filter(self, db_connection, series):
        query = Query(timespan=Interval(at(4), at(10)))

        observations = ObservationRepository().find_all(db_connection, series, query)

        assert [o.sampling_time_end for o in observations] == [at(5), at(10)]

    def test_deleted_observations_excluded(
        self, db_connection, insert_dataset, insert_observation, load_dataset
    ):
        dataset_id = insert_dataset("ph")
        insert_observation(dataset_id, 1, Decimal("7.0"))
        insert_observation(dataset_id, 2, Decimal("7.1"), is_deleted=True)

        observations = ObservationRepository().find_all(db_connection, load_dataset(dataset_id), Query())

        assert [o.sampling_time_end for o in observations] == [at(1)]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"is_published": False},
            {"is_deleted": True},
            {"first_value_at": None},
            {"last_value_at": None},
        ],
    )
    def test_invisible_dataset_yields_nothing(
        self, db_connection, insert_dataset, insert_observation, load_dataset, overrides
    ):
        dataset_id = insert_dataset("ph", **overrides)
        insert_observation(dataset_id, 1, Decimal("7.0"))

        observations = ObservationRepository().find_all(db_connection, load_dataset(dataset_id), Query())

        assert observations == []

    def test_parent_filter(self, db_connection, insert_dataset, insert_observation, load_dataset):
        dataset_id = insert_dataset("ph")
        insert_observation(dataset_id, 1, Decimal("7.0"))
        insert_observation(dataset_id, 2, None, is_parent=True)
        dataset = load_dataset(dataset_id)
        repo = ObservationRepository()

        plain = repo.find_all(db_connection, dataset, Query())
        parents = repo.find_all(db_connection, dataset, Query(complex_parent=True))

        assert [o.sampling_time_end for o in plain] == [at(1)]
        assert [o.sampling_time_end for o in parents] == [at(2)]

    def test_spatial_filter(self, db_connection, insert_dataset, insert_observation, load_dataset):
        dataset_id = insert_dataset("ph")
        insert_observation(dataset_id, 1, Decimal("7.0"), geom="SRID=4326;POINT(7.5 51.9)")
        insert_observation(dataset_id, 2, Decimal("7.1"), geom="SRID=4326;POINT(13.4 52.5)")
        query = Query(bbox=BoundingBox(7.0, 51.0, 8.0, 52.0))

        observations = ObservationRepository().find_all(db_connection, load_dataset(dataset_id), query)

        assert len(observations) == 1
        assert observations[0].geometry.equals(Point(7.5, 51.9))

    def test_spatial_filter_falls_back_to_dataset_geometry(
        self, db_connection, insert_dataset, insert_observation, load_dataset
    ):
        inside_id = insert_dataset("ph-muenster", geom="SRID=4326;POINT(7.5 51.9)")
        outside_id = insert_dataset("ph-berlin", geom="SRID=4326;POINT(13.4 52.5)")
        insert_observation(inside_id, 1, Decimal("7.0"))
        insert_observation(outside_id, 1, Decimal("7.1"))
        query = Query(bbox=BoundingBox(7.0, 51.0, 8.0, 52.0))
        repo = ObservationRepository()

        inside = repo.find_all(db_connection, load_dataset(inside_id), query)
        outside = repo.find_all(db_connection, load_dataset(outside_id), query)

        assert [o.value for o in inside] == [Decimal("7.0")]
        assert inside[0].geometry is None
        assert outside == []

    def test_parameters_loaded(self, db_connection, insert_dataset, insert_observation, load_dataset):
        dataset_id = insert_dataset("ph")
        insert_observation(
            dataset_id, 1, Decimal("7.0"), parameters=[("depth", "2"), ("cruise", "A1")]
        )

        observations = ObservationRepository().find_all(db_connection, load_dataset(dataset_id), Query())

        assert observations[0].parameters == [
            {"name": "cruise", "value": "A1"},
            {"name": "depth", "value": "2"},
        ]

    def test_complex_components(self, db_connection, insert_dataset, insert_observation, load_dataset):
        parent_dataset = insert_dataset("profile", value_type="complex")
        child_dataset = insert_dataset("profile-temp")
        parent_id = insert_observation(parent_dataset, 1, None, is_parent=True)
        insert_observation(child_dataset, 1, Decimal("12.5"), parent_id=parent_id)

        observations = ObservationRepository().find_all(
            db_connection, load_dataset(parent_dataset), Query(complex_parent=True)
        )

        assert observations[0].value == [{"dataset_id": child_dataset, "value": "12.5"}]


class TestResultTime:
    """Tests for result-time resolution"""

    @pytest.fixture
    def versions(self, insert_dataset, insert_observation, load_dataset):
        dataset_id = insert_dataset("ph")
        insert_observation(dataset_id, 0, Decimal("7.10"), result_time=at(100))
        insert_observation(dataset_id, 0, Decimal("7.12"), result_time=at(200))
        insert_observation(dataset_id, 1, Decimal("7.30"))
        return load_dataset(dataset_id)

    def test_latest_version_per_timestamp(self, db_connection, versions):
        observations = ObservationRepository().find_all(db_connection, versions, Query())

        assert [(o.sampling_time_end, o.value) for o in observations] == [
            (at(0), Decimal("7.12")),
            (at(1), Decimal("7.30")),
        ]

    def test_pinned_result_time(self, db_connection, versions):
        query = Query(result_time=at(100))

        observations = ObservationRepository().find_all(db_connection, versions, query)

        assert [o.value for o in observations] == [Decimal("7.10")]

    def test_all_result_times(self, db_connection, versions):
        query = Query(all_result_times=True)

        observations = ObservationRepository().find_all(db_connection, versions, query)

        assert [o.value for o in observations] == [Decimal("7.10"), Decimal("7.12"), Decimal("7.30")]

    def test_find_at_uses_latest_version(self, db_connection, versions):
        observation = ObservationRepository().find_at(
            db_connection, versions, at(0), Column.SAMPLING_TIME_END, Query()
        )

        assert observation.value == Decimal("7.12")


class TestClosestValues:
    """Tests for find_closest_before() and find_closest_after()"""

    def test_closest_before_and_after(self, db_connection, series):
        query = Query(timespan=Interval(at(4), at(8)))
        repo = ObservationRepository()

        before = repo.find_closest_before(db_connection, series, query)
        after = repo.find_closest_after(db_connection, series, query)

        assert before.sampling_time_end == at(1)
        assert after.sampling_time_end == at(10)

    def test_absent_at_series_edges(self, db_connection, series):
        query = Query(timespan=Interval(at(0), at(12)))
        repo = ObservationRepository()

        assert repo.find_closest_before(db_connection, series, query) is None
        assert repo.find_closest_after(db_connection, series, query) is None


class TestFindAt:
    """Tests for find_at() and find_geometry_at()"""

    def test_find_at_sampling_start(self, db_connection, insert_dataset, insert_observation, load_dataset):
        dataset_id = insert_dataset("ph")
        insert_observation(
            dataset_id, 0, Decimal("7.0"), sampling_time_start=at(0), sampling_time_end=at(1)
        )
        dataset = load_dataset(dataset_id)
        repo = ObservationRepository()

        by_start = repo.find_at(db_connection, dataset, at(0), Column.SAMPLING_TIME_START, Query())
        by_end = repo.find_at(db_connection, dataset, at(0), Column.SAMPLING_TIME_END, Query())

        assert by_start.value == Decimal("7.0")
        assert by_end is None

    def test_find_geometry_at(self, db_connection, insert_dataset, insert_observation, load_dataset):
        dataset_id = insert_dataset("ph")
        insert_observation(dataset_id, 10, Decimal("7.0"), geom="SRID=4326;POINT(7.5 51.9)")

        geometry = ObservationRepository().find_geometry_at(
            db_connection, load_dataset(dataset_id), at(10), Query()
        )

        assert geometry.equals(Point(7.5, 51.9))
