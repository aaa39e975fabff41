import pytest

from bsr import db
from bsr.buckets import add_bucket, has_bucket, remove_bucket
from bsr.cluster_ops import ClusterError
from bsr.errors import BucketCreationError, BucketRemovalError


@pytest.fixture
def manager(fake_cluster):
    return fake_cluster.cluster_manager()


def test_add_bucket_uses_fixed_defaults(manager, fake_cluster):
    add_bucket(manager, "Orders")
    assert fake_cluster.calls == [("insert", "Orders", 100, "couchbase")]
    assert "Orders" in fake_cluster.buckets

    ev = db.latest_events(limit=1, bucket="Orders")[0]
    assert ev["level"] == "INFO"
    assert "added" in ev["message"]


def test_add_bucket_wraps_cluster_error(manager, fake_cluster):
    boom = ClusterError("HTTP 400 ram quota", status_code=400)
    fake_cluster.fail["insert"] = boom

    with pytest.raises(BucketCreationError) as exc:
        add_bucket(manager, "Orders")

    assert exc.value.bucket == "Orders"
    assert exc.value.cause is boom
    assert exc.value.__cause__ is boom
    assert db.latest_events(limit=1)[0]["level"] == "ERROR"


def test_remove_bucket_false_is_failure(manager, fake_cluster):
    fake_cluster.buckets["Orders"] = set()
    fake_cluster.remove_result = False

    with pytest.raises(BucketRemovalError) as exc:
        remove_bucket(manager, "Orders")

    assert exc.value.bucket == "Orders"
    assert exc.value.cause is None
    assert not any("removed" in e["message"] for e in db.latest_events())


def test_remove_missing_bucket_is_failure(manager):
    with pytest.raises(BucketRemovalError):
        remove_bucket(manager, "Nope")


def test_remove_bucket_wraps_cluster_error(manager, fake_cluster):
    fake_cluster.fail["remove"] = ClusterError("connection reset")
    with pytest.raises(BucketRemovalError) as exc:
        remove_bucket(manager, "Orders")
    assert isinstance(exc.value.cause, ClusterError)


def test_remove_bucket_logs_success(manager, fake_cluster):
    fake_cluster.buckets["Orders"] = {"orders_primary"}
    remove_bucket(manager, "Orders")
    assert "Orders" not in fake_cluster.buckets
    assert db.latest_events(limit=1)[0]["message"] == "Bucket [Orders] is removed!"


def test_has_bucket_always_asks_cluster(manager, fake_cluster):
    assert has_bucket(manager, "Orders") is False
    fake_cluster.buckets["Orders"] = set()
    assert has_bucket(manager, "Orders") is True
    assert fake_cluster.calls == [("has", "Orders"), ("has", "Orders")]
