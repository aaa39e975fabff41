from __future__ import annotations

from .cluster_ops import Auth, Cluster, ClusterError
from .db import log_event
from .errors import BucketOpenError, IndexProvisioningError


INDEX_SUFFIX = "_primary"


def build_index_name(bucket_name: str) -> str:
    if not bucket_name:
        raise ValueError("Bucket name can't be empty.")
    return (bucket_name + INDEX_SUFFIX).lower()


def ensure_primary_index(cluster: Cluster, bucket_name: str, auth: Auth | None = None) -> str:
    """Create the primary query index of a bucket and return its name.

    The index is built synchronously so the bucket can be queried as soon as
    this returns. The bucket handle is closed on every path.
    """
    index_name = build_index_name(bucket_name)
    try:
        bucket = cluster.open_bucket(bucket_name, auth=auth)
    except ClusterError as e:
        log_event("ERROR", f"Not able to open bucket [{bucket_name}]: {e}", bucket=bucket_name)
        raise BucketOpenError(bucket_name, cause=e) from e

    with bucket:
        try:
            created = bucket.create_primary_index(index_name, ignore_if_exists=True, defer=False)
        except ClusterError as e:
            log_event("ERROR", f"Not able to create primary index [{index_name}]: {e}", bucket=bucket_name)
            raise IndexProvisioningError(bucket_name, index_name, cause=e) from e

        if not created:
            log_event("ERROR", f"Not able to create primary index [{index_name}].", bucket=bucket_name)
            raise IndexProvisioningError(bucket_name, index_name)

    log_event("INFO", f"Primary index [{index_name}] is created.", bucket=bucket_name)
    return index_name
