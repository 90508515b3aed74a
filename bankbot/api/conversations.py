"""API routes for inspecting and clearing conversations."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from bankbot.dialogue.orchestrator import DialogueOrchestrator
from bankbot.dialogue.store import SessionStore


def create_conversations_router(orchestrator: DialogueOrchestrator, store: SessionStore) -> APIRouter:
    router = APIRouter(prefix="/conversations", tags=["conversations"])

    @router.get("")
    async def list_conversations() -> list[str]:
        """List known conversation identifiers (development helper)."""

        return list(store.iter_conversations())

    @router.get("/{conversation_id}")
    async def get_conversation(conversation_id: str) -> dict:
        context = await orchestrator.get_context(conversation_id)
        if context is None:
            raise HTTPException(status_code=404, detail="conversation not found")
        return context.to_dict()

    @router.delete("/{conversation_id}", status_code=204)
    async def delete_conversation(conversation_id: str) -> Response:
        await orchestrator.clear_conversation(conversation_id)
        return Response(status_code=204)

    return router
