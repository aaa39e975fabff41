import sys
from dataclasses import replace

import pytest

# Ensure project root is importable (so `import main` / `import cli` work reliably across environments)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from bsr import db
from bsr.cluster_ops import ClusterError
from bsr.schema_manager import SchemaManager
from bsr.settings import settings

MUTATING_OPS = {"insert", "remove", "create_index"}


class FakeBucketHandle:
    def __init__(self, cluster, name):
        self.cluster = cluster
        self.name = name
        self.close_count = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def create_primary_index(self, index_name, ignore_if_exists=False, defer=False):
        self.cluster.calls.append(("create_index", self.name, index_name, ignore_if_exists, defer))
        if "index" in self.cluster.fail:
            raise self.cluster.fail["index"]
        if self.cluster.index_result is not None:
            return self.cluster.index_result
        indexes = self.cluster.buckets[self.name]
        if index_name in indexes and not ignore_if_exists:
            return False
        indexes.add(index_name)
        return True

    def close(self):
        self.close_count += 1


class FakeClusterManager:
    def __init__(self, cluster, auth):
        self.cluster = cluster
        self.auth = auth

    def list_buckets(self):
        return set(self.cluster.buckets)

    def has_bucket(self, name):
        self.cluster.calls.append(("has", name))
        if "has" in self.cluster.fail:
            raise self.cluster.fail["has"]
        return name in self.cluster.buckets

    def insert_bucket(self, bucket):
        self.cluster.calls.append(("insert", bucket.name, bucket.ram_quota_mb, bucket.bucket_type))
        if "insert" in self.cluster.fail:
            raise self.cluster.fail["insert"]
        if bucket.name in self.cluster.buckets:
            raise ClusterError(f"Bucket '{bucket.name}' already exists.", status_code=400)
        self.cluster.buckets[bucket.name] = set()

    def remove_bucket(self, name):
        self.cluster.calls.append(("remove", name))
        if "remove" in self.cluster.fail:
            raise self.cluster.fail["remove"]
        if self.cluster.remove_result is not None:
            return self.cluster.remove_result
        return self.cluster.buckets.pop(name, None) is not None


class FakeCluster:
    """In-memory stand-in for bsr.cluster_ops.Cluster: bucket name -> set of index names."""

    def __init__(self, buckets=None):
        self.buckets = {k: set(v) for k, v in (buckets or {}).items()}
        self.calls = []
        self.fail = {}
        self.remove_result = None
        self.index_result = None
        self.hosts = None
        self.manager = None
        self.handles = []
        self.disconnected = 0

    def connect(self, hosts):
        self.hosts = list(hosts)
        return self

    def cluster_manager(self, username=None, password=None):
        auth = (username, password) if username is not None and password is not None else None
        self.manager = FakeClusterManager(self, auth)
        return self.manager

    def open_bucket(self, name, auth=None):
        self.calls.append(("open", name))
        if "open" in self.fail:
            raise self.fail["open"]
        if name not in self.buckets:
            raise ClusterError(f"Bucket '{name}' does not exist.", status_code=404)
        handle = FakeBucketHandle(self, name)
        self.handles.append(handle)
        return handle

    def disconnect(self):
        self.disconnected += 1

    def mutating_calls(self):
        return [c for c in self.calls if c[0] in MUTATING_OPS]


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "bsr.db")


@pytest.fixture(autouse=True)
def event_db(db_path):
    """Every test gets its own sqlite event log."""
    db.configure(db_path)
    db.init_db()
    yield db
    db.configure(None)


@pytest.fixture
def fake_cluster():
    return FakeCluster()


@pytest.fixture
def make_manager(fake_cluster, db_path):
    def _make(mode="update", **overrides):
        fields = {
            "operation_mode": mode,
            "hosts": ("cb1.local",),
            "username": None,
            "password": None,
            "db_path": db_path,
        }
        fields.update(overrides)
        cfg = replace(settings, **fields)
        return SchemaManager(cfg, cluster_factory=fake_cluster.connect)

    return _make
