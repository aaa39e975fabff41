from __future__ import annotations

from enum import Enum

from .errors import InvalidConfigurationError


class Mode(str, Enum):
    VALIDATE = "validate"
    UPDATE = "update"
    CREATE = "create"
    CREATE_DROP = "create-drop"
    DROP = "drop"

    @classmethod
    def parse(cls, raw: str | None) -> "Mode":
        """Case-insensitive lookup. Unknown tokens are a configuration error, not a no-op."""
        token = (raw or "").strip().lower()
        for mode in cls:
            if mode.value == token:
                return mode
        choices = ", ".join(m.value for m in cls)
        raise InvalidConfigurationError(f"Unknown operation mode {raw!r}. Expected one of: {choices}.")

    @property
    def drops_on_shutdown(self) -> bool:
        return self is Mode.CREATE_DROP
