from __future__ import annotations

from typing import Callable, Sequence

from . import db
from .api_models import TableInfo
from .buckets import add_bucket, has_bucket, remove_bucket
from .cluster_ops import Auth, Cluster, ClusterManager
from .errors import InvalidConfigurationError, SchemaMismatchError
from .indexes import ensure_primary_index
from .modes import Mode
from .settings import Settings, settings as default_settings


ClusterFactory = Callable[[Sequence[str]], Cluster]


class SchemaManager:
    """Reconciles the buckets of a cluster with a desired set of tables.

    Lifecycle: ``initialize()`` once, ``reconcile()`` per schema pass,
    ``teardown()`` once at orderly shutdown. The manager owns its cluster
    connection and admin session; it does no locking, so one pass at a time.
    """

    def __init__(self, settings: Settings | None = None, cluster_factory: ClusterFactory | None = None):
        self.settings = settings or default_settings
        db.configure(self.settings.db_path)
        db.init_db()
        self.mode = Mode.parse(self.settings.operation_mode)
        self._cluster_factory = cluster_factory or self._default_factory
        self._cluster: Cluster | None = None
        self._manager: ClusterManager | None = None
        self._auth: Auth | None = None
        self.tables: list[TableInfo] = []
        self.state = "uninitialized"  # uninitialized|ready|closed

    def _default_factory(self, hosts: Sequence[str]) -> Cluster:
        return Cluster.connect(
            hosts,
            admin_port=self.settings.admin_port,
            query_port=self.settings.query_port,
            timeout_s=self.settings.http_timeout_s,
            bucket_ready_timeout_s=self.settings.bucket_ready_timeout_s,
        )

    # ---- lifecycle ----

    def initialize(self) -> None:
        hosts = list(self.settings.hosts)
        if not hosts:
            db.log_event("ERROR", "No cluster hosts configured.")
            raise InvalidConfigurationError("At least one host must be configured.")
        for host in hosts:
            if not host:
                db.log_event("ERROR", "Host name should not be null.")
                raise InvalidConfigurationError("Host name should not be null.")
        self._cluster = self._cluster_factory(hosts)
        username, password = self.settings.username, self.settings.password
        if username and password:
            self._auth = (username, password)
            self._manager = self._cluster.cluster_manager(username, password)
        else:
            self._manager = self._cluster.cluster_manager()
        self.state = "ready"
        db.log_event("INFO", f"Connected to cluster {', '.join(hosts)} (mode={self.mode.value})")

    def reconcile(self, tables: Sequence[TableInfo]) -> db.RunRow:
        """Run one pass over ``tables`` in order, stopping at the first failure.

        Returns the finished run record.
        """
        if self.state != "ready":
            raise RuntimeError(f"SchemaManager is {self.state}; call initialize() first.")
        self.tables = list(tables)

        run = db.start_run(self.mode.value, [t.name for t in self.tables])
        try:
            if self.mode is Mode.VALIDATE:
                self._validate(self.tables)
            elif self.mode is Mode.UPDATE:
                self._update(self.tables)
            elif self.mode in (Mode.CREATE, Mode.CREATE_DROP):
                self._create(self.tables)
            elif self.mode is Mode.DROP:
                # Buckets are only dropped on shutdown, and only in create-drop mode.
                pass
            else:
                raise AssertionError(f"Unhandled mode {self.mode!r}")
        except Exception as e:
            db.finish_run(run.id, "failed", str(e))
            raise
        return db.finish_run(run.id, "done")

    def teardown(self) -> None:
        if self.state != "ready":
            return
        try:
            if self.mode.drops_on_shutdown:
                for table in self.tables:
                    remove_bucket(self.manager, table.name)
        finally:
            self.cluster.disconnect()
            self._cluster = None
            self._manager = None
            self.state = "closed"
            db.log_event("INFO", "Disconnected from cluster")

    # ---- strategies ----

    def _validate(self, tables: list[TableInfo]) -> None:
        for table in tables:
            if not has_bucket(self.manager, table.name):
                db.log_event("ERROR", f"Bucket [{table.name}] does not exist.", bucket=table.name)
                raise SchemaMismatchError(table.name)

    def _update(self, tables: list[TableInfo]) -> None:
        for table in tables:
            if not has_bucket(self.manager, table.name):
                self._provision(table)

    def _create(self, tables: list[TableInfo]) -> None:
        for table in tables:
            if has_bucket(self.manager, table.name):
                # Removing the bucket drops its indexes too.
                remove_bucket(self.manager, table.name)
            self._provision(table)

    def _provision(self, table: TableInfo) -> None:
        add_bucket(self.manager, table.name, ram_quota_mb=self.settings.bucket_ram_mb)
        ensure_primary_index(self.cluster, table.name, auth=self._auth)

    # ---- handles ----

    @property
    def cluster(self) -> Cluster:
        if self._cluster is None:
            raise RuntimeError("SchemaManager is not connected.")
        return self._cluster

    @property
    def manager(self) -> ClusterManager:
        if self._manager is None:
            raise RuntimeError("SchemaManager is not connected.")
        return self._manager

    def bucket_exists(self, name: str) -> bool:
        return has_bucket(self.manager, name)
