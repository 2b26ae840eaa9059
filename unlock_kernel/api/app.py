"""
Unlock Kernel API — FastAPI endpoints.

Exposes the engine for producers, tooling and save/load glue:
- Signal ingestion
- Registry and topic inspection
- Signal store inspection
- Ledger snapshot, restore and archiving
- Reward dispatch inspection
- Engine status, config and reset
"""

from pathlib import Path
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from unlock_kernel.conditions.language import describe
from unlock_kernel.engine.engine import EngineStateError, UnlockEngine
from unlock_kernel.ledger.store import LedgerArchive
from unlock_kernel.models.engine import EngineConfig
from unlock_kernel.models.signal import CompletedSignal, ValueChangedSignal
from unlock_kernel.models.unlock import UnlockAchieved, UnlockDefinition
from unlock_kernel.registry.registry import UnknownUnlockError
from unlock_kernel.rewards.dispatcher import RewardDispatcher


# --- Request/Response Models ---

class CompletedRequest(BaseModel):
    topic: str = Field(min_length=1)


class ValueChangedRequest(BaseModel):
    topic: str = Field(min_length=1)
    value: float


class RestoreRequest(BaseModel):
    ids: List[str]


class NotificationsResponse(BaseModel):
    notifications: List[UnlockAchieved]


# --- Application Factory ---

def create_app(
    engine: Optional[UnlockEngine] = None,
    archive: Optional[LedgerArchive] = None,
    definitions: Optional[List[UnlockDefinition]] = None,
    config: Optional[EngineConfig] = None,
    content_path: Optional[Union[str, Path]] = None,
    dispatcher: Optional[RewardDispatcher] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Content comes from an existing engine, explicit definitions, or a content
    file/directory, in that order of precedence.
    """

    app = FastAPI(
        title="Unlock Kernel API",
        description="Condition evaluation and reward dispatch",
        version="0.1.0",
    )

    if engine is not None:
        eng = engine
    elif definitions is None and content_path is not None:
        eng = UnlockEngine.from_content(content_path, config=config)
    else:
        eng = UnlockEngine(definitions or [], config=config)
    arc = archive or LedgerArchive()
    rewards = dispatcher or RewardDispatcher()
    eng.subscribe(rewards.handle)

    app.state.engine = eng
    app.state.archive = arc
    app.state.dispatcher = rewards

    def _unlock_view(definition: UnlockDefinition) -> dict:
        data = definition.model_dump(mode="json")
        data["state"] = eng.registry.state_of(definition.id).value
        data["expression"] = describe(definition.condition)
        return data

    # === SIGNALS ===

    @app.post("/signals/completed", response_model=NotificationsResponse)
    def signal_completed(req: CompletedRequest):
        """Inbound StatusCompleted."""
        notifications = eng.submit(CompletedSignal(topic=req.topic))
        return NotificationsResponse(notifications=notifications)

    @app.post("/signals/value", response_model=NotificationsResponse)
    def signal_value(req: ValueChangedRequest):
        """Inbound ValueChanged."""
        notifications = eng.submit(
            ValueChangedSignal(topic=req.topic, value=req.value)
        )
        return NotificationsResponse(notifications=notifications)

    @app.get("/signals/state")
    def get_signal_state():
        """Current signal store snapshot."""
        return eng.store.get_state_snapshot()

    # === REGISTRY ===

    @app.get("/unlocks")
    def list_unlocks():
        """All loaded definitions with their runtime state."""
        return [_unlock_view(d) for d in eng.registry.definitions()]

    @app.get("/unlocks/{unlock_id}")
    def get_unlock(unlock_id: str):
        """A single definition with its runtime state."""
        try:
            definition = eng.registry.get(unlock_id)
        except UnknownUnlockError:
            raise HTTPException(404, "Unlock not found")
        return _unlock_view(definition)

    @app.get("/topics/{topic}/candidates")
    def get_topic_candidates(topic: str):
        """Pending unlocks that listen on a topic."""
        return {"topic": topic, "candidates": eng.registry.candidates_for(topic)}

    # === LEDGER ===

    @app.get("/ledger")
    def get_ledger():
        """Ledger entries in append order."""
        return [e.model_dump(mode="json") for e in eng.ledger.entries()]

    @app.get("/ledger/snapshot")
    def get_ledger_snapshot():
        """Achieved ids, the only state that needs persisting."""
        return {"ids": sorted(eng.snapshot())}

    @app.post("/ledger/restore", response_model=NotificationsResponse)
    def restore_ledger(req: RestoreRequest):
        """Restore a snapshot and return the replayed notifications."""
        try:
            notifications = eng.restore(req.ids)
        except EngineStateError as exc:
            raise HTTPException(409, str(exc))
        return NotificationsResponse(notifications=notifications)

    @app.post("/ledger/save")
    def save_ledger():
        """Persist the ledger to the archive."""
        written = arc.save(eng.ledger)
        return {
            "written": written,
            "total_archived": arc.count(),
            "integrity_valid": arc.verify_chain_integrity(),
        }

    @app.post("/ledger/load", response_model=NotificationsResponse)
    def load_ledger():
        """Restore the engine from the archive."""
        try:
            notifications = eng.restore(arc.load())
        except EngineStateError as exc:
            raise HTTPException(409, str(exc))
        return NotificationsResponse(notifications=notifications)

    # === REWARDS ===

    @app.get("/rewards")
    def get_rewards():
        """Reward ids with a registered handler and notifications nobody claimed."""
        return {
            "handled_reward_ids": rewards.reward_ids(),
            "unhandled": [n.model_dump(mode="json") for n in rewards.unhandled],
        }

    # === ENGINE ===

    @app.get("/engine/status")
    def engine_status():
        """Current engine counters."""
        return eng.status()

    @app.post("/engine/reset")
    def reset_engine():
        """Forget all signals and achievements."""
        eng.reset()
        return {"status": "reset"}

    @app.get("/engine/config")
    def get_engine_config():
        """Current engine configuration."""
        return eng.config.model_dump()

    @app.put("/engine/config")
    def update_engine_config(new_config: EngineConfig):
        """Update engine configuration."""
        eng.config = new_config
        return new_config.model_dump()

    return app


# Default application instance
app = create_app()
