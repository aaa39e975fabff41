from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Sequence

import httpx


# Query service error code for "index already exists".
INDEX_EXISTS_CODE = 4300


class ClusterError(Exception):
    """Transport or administrative failure reported by the cluster."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class BucketSettings:
    name: str
    ram_quota_mb: int = 100
    bucket_type: str = "couchbase"

    def as_form(self) -> dict[str, str]:
        return {
            "name": self.name,
            "ramQuotaMB": str(self.ram_quota_mb),
            "bucketType": self.bucket_type,
        }


Auth = tuple[str, str]


class Cluster:
    """Connection to a cluster, talking to its REST admin API and query service.

    Hosts are tried in order; the first one that answers serves the request.
    """

    def __init__(
        self,
        hosts: Sequence[str],
        admin_port: int = 8091,
        query_port: int = 8093,
        timeout_s: float = 10.0,
        bucket_ready_timeout_s: float = 30.0,
        poll_interval_s: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ):
        self.hosts = list(hosts)
        self.admin_port = admin_port
        self.query_port = query_port
        self._timeout_s = timeout_s
        self.bucket_ready_timeout_s = bucket_ready_timeout_s
        self.poll_interval_s = poll_interval_s
        self._transport = transport
        self._http = self._new_client()

    @classmethod
    def connect(cls, hosts: Sequence[str], **kwargs: Any) -> "Cluster":
        return cls(hosts, **kwargs)

    def _new_client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout_s, follow_redirects=False, transport=self._transport)

    def request(
        self,
        method: str,
        port: int,
        path: str,
        auth: Auth | None = None,
        client: httpx.Client | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        http = client or self._http
        last: Exception | None = None
        for host in self.hosts:
            url = f"http://{host}:{int(port)}{path}"
            try:
                return http.request(method, url, auth=auth, **kwargs)
            except httpx.TransportError as e:
                last = e
        raise ClusterError(f"No cluster host reachable ({type(last).__name__}: {last})")

    def cluster_manager(self, username: str | None = None, password: str | None = None) -> "ClusterManager":
        auth = (username, password) if username is not None and password is not None else None
        return ClusterManager(self, auth)

    def open_bucket(self, name: str, auth: Auth | None = None) -> "BucketHandle":
        """Open a short-lived handle for index DDL.

        A freshly inserted bucket is accepted by the admin API before its
        nodes have warmed up, so this polls until every node reports the
        bucket healthy. Raises ClusterError if the bucket is missing or is
        not ready within ``bucket_ready_timeout_s``.
        """
        deadline = time.monotonic() + self.bucket_ready_timeout_s
        while True:
            resp = self.request("GET", self.admin_port, f"/pools/default/buckets/{name}", auth=auth)
            if resp.status_code == 404:
                raise ClusterError(f"Bucket '{name}' does not exist.", status_code=404)
            _raise_for_status(resp, f"open bucket '{name}'")
            if _bucket_ready(resp):
                return BucketHandle(self, name, auth, self._new_client())
            if time.monotonic() >= deadline:
                raise ClusterError(f"Bucket '{name}' not ready after {self.bucket_ready_timeout_s}s.")
            time.sleep(self.poll_interval_s)

    def disconnect(self) -> None:
        self._http.close()


class ClusterManager:
    """Administrative session used for bucket existence checks, inserts and removals."""

    def __init__(self, cluster: Cluster, auth: Auth | None = None):
        self._cluster = cluster
        self._auth = auth

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return self._cluster.request(method, self._cluster.admin_port, path, auth=self._auth, **kwargs)

    def list_buckets(self) -> set[str]:
        resp = self._request("GET", "/pools/default/buckets")
        _raise_for_status(resp, "list buckets")
        return {b["name"] for b in resp.json()}

    def has_bucket(self, name: str) -> bool:
        resp = self._request("GET", f"/pools/default/buckets/{name}")
        if resp.status_code == 404:
            return False
        _raise_for_status(resp, f"get bucket '{name}'")
        return True

    def insert_bucket(self, bucket: BucketSettings) -> None:
        resp = self._request("POST", "/pools/default/buckets", data=bucket.as_form())
        _raise_for_status(resp, f"insert bucket '{bucket.name}'")

    def remove_bucket(self, name: str) -> bool:
        """Returns False when the cluster reports nothing to remove."""
        resp = self._request("DELETE", f"/pools/default/buckets/{name}")
        if resp.status_code == 404:
            return False
        _raise_for_status(resp, f"remove bucket '{name}'")
        return True


class BucketHandle:
    def __init__(self, cluster: Cluster, name: str, auth: Auth | None, http: httpx.Client):
        self._cluster = cluster
        self.name = name
        self._auth = auth
        self._http = http
        self.closed = False

    def __enter__(self) -> "BucketHandle":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def create_primary_index(self, index_name: str, ignore_if_exists: bool = False, defer: bool = False) -> bool:
        """Run CREATE PRIMARY INDEX on the query service.

        Returns True when the index was created, or already existed and
        ignore_if_exists is set. Returns False for any other query failure.
        """
        with_clause = json.dumps({"defer_build": bool(defer)})
        statement = f"CREATE PRIMARY INDEX `{index_name}` ON `{self.name}` USING GSI WITH {with_clause}"
        resp = self._cluster.request(
            "POST",
            self._cluster.query_port,
            "/query/service",
            auth=self._auth,
            client=self._http,
            data={"statement": statement},
        )
        try:
            payload = resp.json()
        except ValueError:
            raise ClusterError(f"Invalid query service response (HTTP {resp.status_code})", resp.status_code)

        if payload.get("status") == "success":
            return True
        codes = {e.get("code") for e in payload.get("errors") or []}
        return ignore_if_exists and INDEX_EXISTS_CODE in codes

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._http.close()


def _raise_for_status(resp: httpx.Response, action: str) -> None:
    if resp.is_success:
        return
    detail = resp.text.strip()[:200]
    raise ClusterError(f"Failed to {action}: HTTP {resp.status_code} {detail}", status_code=resp.status_code)


def _bucket_ready(resp: httpx.Response) -> bool:
    try:
        nodes = resp.json().get("nodes") or []
    except ValueError:
        raise ClusterError(f"Invalid bucket details response (HTTP {resp.status_code})", resp.status_code)
    return bool(nodes) and all(n.get("status") == "healthy" for n in nodes)
