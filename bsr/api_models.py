from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class TableInfo(BaseModel):
    """One desired bucket, as produced by the data-mapping layer."""

    model_config = {"frozen": True}

    name: str = Field(..., pattern=r"^[A-Za-z0-9._%-]{1,100}$", description="Bucket name")
    size_hint_mb: int = Field(100, ge=1, description="Size/tuning hint in MB")


class DesiredState(BaseModel):
    tables: list[TableInfo] = Field(default_factory=list)

    @field_validator("tables")
    @classmethod
    def _unique_names(cls, tables: list[TableInfo]) -> list[TableInfo]:
        seen: set[str] = set()
        for t in tables:
            if t.name in seen:
                raise ValueError(f"Duplicate table name '{t.name}'.")
            seen.add(t.name)
        return tables


def load_desired_state(path: str | Path) -> DesiredState:
    return DesiredState.model_validate_json(Path(path).read_text(encoding="utf-8"))


class BucketStatus(BaseModel):
    name: str
    exists: bool
    index_name: str


class HealthResponse(BaseModel):
    state: str
    mode: str
    tables: int


class RunOut(BaseModel):
    id: int
    mode: str
    state: str
    tables: list[str]
    message: str | None = None
    started_at: str
    finished_at: str | None = None
