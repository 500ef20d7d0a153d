"""Persisted session state."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SessionRecord(BaseModel):
    """The single active focus session.

    While running, `start_time` is the time anchor: remaining time is always recomputed
    as `duration_ms - (now - start_time)`. While paused, `remaining_at_pause` is the frozen
    snapshot taken at the pause instant.
    """

    model_config = ConfigDict(frozen=True)

    start_time: int = Field(description="Epoch ms anchor from which elapsed time is computed")
    duration_ms: int = Field(gt=0, description="Planned session length in ms")
    activity_id: str = Field(description="Opaque reference to an externally-owned activity")
    music_choice: str = Field(default="none", description="Opaque music selection, passed through unmodified")
    is_paused: bool = False
    paused_at: int | None = None
    remaining_at_pause: int | None = None

    @model_validator(mode="after")
    def check_pause_fields(self) -> Self:
        if self.is_paused:
            if self.paused_at is None or self.remaining_at_pause is None:
                raise ValueError("paused session requires paused_at and remaining_at_pause")
            if not 0 <= self.remaining_at_pause <= self.duration_ms:
                raise ValueError("remaining_at_pause must be within [0, duration_ms]")
        elif self.paused_at is not None or self.remaining_at_pause is not None:
            raise ValueError("running session must not carry pause fields")
        return self
