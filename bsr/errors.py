from __future__ import annotations


class SchemaError(Exception):
    """Base class for every failure that aborts a reconciliation pass."""

    def __init__(self, message: str, bucket: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.bucket = bucket
        self.cause = cause


class InvalidConfigurationError(SchemaError):
    pass


class SchemaMismatchError(SchemaError):
    def __init__(self, bucket: str):
        super().__init__(f"Bucket [{bucket}] does not exist.", bucket=bucket)


class BucketCreationError(SchemaError):
    def __init__(self, bucket: str, cause: BaseException | None = None):
        super().__init__(f"Not able to add bucket [{bucket}].", bucket=bucket, cause=cause)


class BucketRemovalError(SchemaError):
    def __init__(self, bucket: str, cause: BaseException | None = None):
        super().__init__(f"Not able to remove bucket [{bucket}].", bucket=bucket, cause=cause)


class BucketOpenError(SchemaError):
    def __init__(self, bucket: str, cause: BaseException | None = None):
        super().__init__(f"Not able to open bucket [{bucket}].", bucket=bucket, cause=cause)


class IndexProvisioningError(SchemaError):
    def __init__(self, bucket: str, index: str, cause: BaseException | None = None):
        super().__init__(
            f"Not able to create primary index [{index}] for bucket [{bucket}].",
            bucket=bucket,
            cause=cause,
        )
        self.index = index
