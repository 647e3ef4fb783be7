"""Resolution-related domain types."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["Row", "Direction", "ResolutionRequest"]


class Row(BaseModel):
    """A single lookup result: the identifier value and its human-readable label."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="Identifier value of the row (textual form)")
    label: str = Field(..., description="Human-readable label shown in the proxy field")

    @field_validator("value", "label", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:
        # Transports commonly deliver integer ids
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Direction(str, Enum):
    """Direction of a resolution request."""

    FORWARD = "forward"  # identifier -> label
    REVERSE = "reverse"  # typed text -> identifier


@dataclass(frozen=True)
class ResolutionRequest:
    """A sequenced lookup issued by a binder."""

    sequence: int
    column: str
    value: str
    direction: Direction
    is_string: bool = False
