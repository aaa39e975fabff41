from __future__ import annotations

from .cluster_ops import BucketSettings, ClusterError, ClusterManager
from .db import log_event
from .errors import BucketCreationError, BucketRemovalError


DEFAULT_RAM_QUOTA_MB = 100


def has_bucket(manager: ClusterManager, name: str) -> bool:
    # Always asked of the cluster; other actors may add or drop buckets at any time.
    return manager.has_bucket(name)


def add_bucket(manager: ClusterManager, name: str, ram_quota_mb: int = DEFAULT_RAM_QUOTA_MB) -> None:
    bucket = BucketSettings(name=name, ram_quota_mb=ram_quota_mb, bucket_type="couchbase")
    try:
        manager.insert_bucket(bucket)
    except ClusterError as e:
        log_event("ERROR", f"Not able to add bucket [{name}]: {e}", bucket=name)
        raise BucketCreationError(name, cause=e) from e
    log_event("INFO", f"Bucket [{name}] is added!", bucket=name)


def remove_bucket(manager: ClusterManager, name: str) -> None:
    """Drop a bucket (and with it, its indexes). A False result from the cluster is an error."""
    try:
        removed = manager.remove_bucket(name)
    except ClusterError as e:
        log_event("ERROR", f"Not able to remove bucket [{name}]: {e}", bucket=name)
        raise BucketRemovalError(name, cause=e) from e

    if not removed:
        log_event("ERROR", f"Not able to remove bucket [{name}].", bucket=name)
        raise BucketRemovalError(name)
    log_event("INFO", f"Bucket [{name}] is removed!", bucket=name)
