"""Engine configuration."""

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """Configuration for the Unlock Engine."""

    publish_unlock_topics: bool = True      # Pulse "<prefix><unlock_id>" on achievement
    unlock_topic_prefix: str = Field(default="unlock:", min_length=1)
    settle_on_start: bool = True            # Evaluate topic-less definitions at start
    poll_interval_seconds: float = Field(default=0.5, gt=0)  # run_async stop-check cadence
