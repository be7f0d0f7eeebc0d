"""Base cursor class for incremental ingestion tracking."""

from pydantic import BaseModel, ConfigDict


class BaseCursor(BaseModel):
    """Base cursor class for incremental ingestion tracking.

    Cursors are immutable values: a poll cycle receives one and returns a new
    one. Leverages Pydantic's built-in serialization:
    - model_dump() for dict serialization
    - model_validate() for deserialization
    - model_copy(update=...) to derive the next state

    All cursor classes should inherit from this base class.
    """

    model_config = ConfigDict(
        frozen=True,
        # Offsets written by older versions may carry keys we no longer use
        extra="ignore",
    )
