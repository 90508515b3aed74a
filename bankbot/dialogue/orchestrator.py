"""Per-conversation dialogue state machine.

Each turn loads the context under the conversation's lock, hands the
utterance to the handler for the current phase and stores the result. A
handler that raises never leaves the conversation half-updated: the turn
falls back to the pre-turn context, reset to intent detection.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from bankbot.core.metrics import MetricsCollector
from bankbot.operations.executor import TASK_NAMES, OperationExecutor, format_money

from .catalog import TaskCatalog, TaskDefinition
from .extractor import SlotExtractor
from .models import ConversationContext, Message, Phase, Role, TaskProgress, TaskType, utcnow
from .router import IntentRouter
from .store import SessionStore
from .vocabulary import (
    is_affirmative,
    is_cancel,
    is_closing,
    is_greeting,
    is_negative,
    match_task,
    normalize,
    signals_another_need,
)

logger = logging.getLogger("bankbot.dialogue")

WELCOME = (
    "Hello! I'm your banking assistant. I can check your balance, show recent transactions, "
    "transfer money, block a card, take a loan application, file a complaint or answer "
    "questions about our products. What would you like to do today?"
)
CAPABILITIES = (
    "I'm not sure I understood. I can help with balance inquiries, recent transactions, "
    "transfers, card blocking, loan applications, complaints and banking information. "
    "What would you like to do?"
)
FALLBACK = "I'm having trouble understanding right now. Could you rephrase what you'd like to do?"
APOLOGY = "I'm sorry, something went wrong on my side. Let's start again: what can I help you with?"
ANYTHING_ELSE = "Is there anything else I can help you with?"
WHAT_ELSE = "Sure. What else can I help you with?"
CLOSING = "Thank you for banking with us. Have a great day!"
CANCELLED = "No problem, I've cancelled that request. What else can I help you with?"
GIVE_UP = (
    "I still couldn't get that detail, so I've stopped this request. "
    "Let's start over: what would you like to do?"
)
EMPTY = "I didn't catch that. Could you type your message again?"


@dataclass(slots=True)
class TurnResult:
    """Reply for one user turn together with the updated context."""

    reply: str
    context: ConversationContext


class DialogueOrchestrator:
    """Drive a conversation through greeting, slot filling, confirmation and execution."""

    def __init__(
        self,
        store: SessionStore,
        catalog: TaskCatalog,
        router: IntentRouter,
        extractor: SlotExtractor,
        executor: OperationExecutor,
        *,
        metrics: MetricsCollector | None = None,
        max_field_attempts: int = 3,
        history_tail_size: int = 5,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._router = router
        self._extractor = extractor
        self._executor = executor
        self._metrics = metrics
        self._max_field_attempts = max_field_attempts
        self._history_tail_size = history_tail_size
        self._handlers: Mapping[Phase, Callable[[ConversationContext, str, str | None], Awaitable[str]]] = {
            Phase.GREETING: self._handle_greeting,
            Phase.INTENT_DETECTION: self._handle_intent_detection,
            Phase.SLOT_FILLING: self._handle_slot_filling,
            Phase.CONFIRMATION: self._handle_confirmation,
            Phase.EXECUTION: self._handle_execution,
            Phase.COMPLETION: self._handle_completion,
        }

    async def process_message(
        self,
        conversation_id: str,
        user_id: str | None,
        text: str,
        auth_token: str | None = None,
    ) -> TurnResult:
        async with self._store.lock(conversation_id):
            context = await self._store.get(conversation_id)
            if context is None:
                context = ConversationContext(id=conversation_id, user_id=user_id or "anonymous")
                logger.debug("Started conversation %s", conversation_id)

            utterance = text.strip()
            if not utterance:
                # Blank input is not a turn: only the re-prompt is recorded.
                context.messages.append(Message(role=Role.ASSISTANT, text=EMPTY))
                context.updated_at = utcnow()
                await self._store.put(context)
                return TurnResult(reply=EMPTY, context=context)

            context.messages.append(Message(role=Role.USER, text=utterance))
            snapshot = copy.deepcopy(context)
            starting_phase = context.phase

            try:
                reply = await self._handlers[context.phase](context, utterance, auth_token)
            except Exception:  # noqa: BLE001
                logger.exception("Turn failed in phase %s for %s", starting_phase.value, conversation_id)
                context = snapshot
                self._reset_task(context)
                reply = APOLOGY

            if context.phase is not starting_phase:
                logger.debug("%s: %s -> %s", conversation_id, starting_phase.value, context.phase.value)

            context.messages.append(Message(role=Role.ASSISTANT, text=reply))
            context.updated_at = utcnow()
            await self._store.put(context)

        if self._metrics is not None:
            self._metrics.record_turn(context.phase.value)
        return TurnResult(reply=reply, context=context)

    async def get_context(self, conversation_id: str) -> ConversationContext | None:
        return await self._store.get(conversation_id)

    async def clear_conversation(self, conversation_id: str) -> None:
        async with self._store.lock(conversation_id):
            await self._store.delete(conversation_id)
        logger.debug("Cleared conversation %s", conversation_id)

    # Phase handlers. Each mutates ``context`` in place and returns the reply.

    async def _handle_greeting(self, context: ConversationContext, text: str, auth_token: str | None) -> str:
        if is_greeting(text) and match_task(text) is None:
            return WELCOME
        context.phase = Phase.INTENT_DETECTION
        return await self._handle_intent_detection(context, text, auth_token)

    async def _handle_intent_detection(
        self, context: ConversationContext, text: str, auth_token: str | None
    ) -> str:
        context.phase = Phase.INTENT_DETECTION
        history = context.history_tail(self._history_tail_size + 1)[:-1]
        decision = await self._router.detect_intent(text, history)

        if self._metrics is not None:
            self._metrics.record_intent(decision.task.value if decision.task else "unrecognized")

        if decision.failed:
            return FALLBACK
        if decision.task is None:
            return decision.clarification_question or CAPABILITIES
        return await self._start_task(context, decision.task, text, auth_token, entities=decision.entities)

    async def _handle_slot_filling(self, context: ConversationContext, text: str, auth_token: str | None) -> str:
        definition = self._catalog.get_task_definition(context.current_task)
        known = context.known_fields()
        missing = self._catalog.compute_missing_fields(definition.task, known)
        awaited = missing[0] if missing else None

        # A reply that is exactly one of the awaited field's choices ("loan" as a
        # complaint category) answers the question rather than switching.
        if not self._is_choice_reply(definition, awaited, text):
            switched = self._router.detect_interruption(text, context.current_task)
            if switched is not None:
                logger.info("Switching %s from %s to %s", context.id, _task_value(context.current_task), switched.value)
                return await self._start_task(context, switched, text, auth_token)

        if is_cancel(text):
            logger.info("Cancelled %s for %s", _task_value(context.current_task), context.id)
            self._reset_task(context)
            return CANCELLED

        if awaited is None:
            return await self._fields_complete(context, definition, auth_token)

        wanted = [spec.name for spec in definition.fields if known.get(spec.name) is None]
        candidates = await self._extractor.extract(definition.task, text, awaited=awaited, wanted=wanted)
        error = self._merge_fields(context, definition, candidates)

        if context.collected_fields.get(awaited) is not None:
            context.task_progress.attempts.pop(awaited, None)
            if error is None:
                return await self._after_fields(context, definition, auth_token)
            self._update_step(context, definition)
            return error

        attempts = context.task_progress.attempts.get(awaited, 0) + 1
        context.task_progress.attempts[awaited] = attempts
        if attempts >= self._max_field_attempts:
            logger.info("Giving up on %s for %s after %d attempts", awaited, context.id, attempts)
            self._reset_task(context)
            return GIVE_UP

        self._update_step(context, definition)
        if error is not None:
            return error
        return self._prompt_for(definition, awaited)

    async def _handle_confirmation(self, context: ConversationContext, text: str, auth_token: str | None) -> str:
        definition = self._catalog.get_task_definition(context.current_task)
        negative = is_negative(text)
        if is_affirmative(text) and not negative:
            context.phase = Phase.EXECUTION
            return await self._execute(context, definition, auth_token)

        if negative:
            context.collected_fields = {}
            context.entities = {}
            context.task_progress.attempts = {}
            context.phase = Phase.SLOT_FILLING
            self._update_step(context, definition)
            missing = self._catalog.compute_missing_fields(definition.task, context.known_fields())
            first = missing[0] if missing else definition.fields[0].name
            return "No problem, let's go through the details again. " + self._prompt_for(definition, first)

        switched = self._router.detect_interruption(text, context.current_task)
        if switched is not None:
            logger.info("Switching %s from %s to %s", context.id, _task_value(context.current_task), switched.value)
            return await self._start_task(context, switched, text, auth_token)

        return "Please reply yes to proceed or no to change the details.\n\n" + self._summary(context, definition)

    async def _handle_execution(self, context: ConversationContext, text: str, auth_token: str | None) -> str:
        definition = self._catalog.get_task_definition(context.current_task)
        return await self._execute(context, definition, auth_token)

    async def _handle_completion(self, context: ConversationContext, text: str, auth_token: str | None) -> str:
        task = match_task(text)
        if task is not None:
            self._reset_task(context)
            return await self._handle_intent_detection(context, text, auth_token)
        if is_closing(text):
            return CLOSING
        if signals_another_need(text) or is_affirmative(text):
            self._reset_task(context)
            return WHAT_ELSE
        return ANYTHING_ELSE

    # Task lifecycle

    async def _start_task(
        self,
        context: ConversationContext,
        task: TaskType,
        text: str,
        auth_token: str | None,
        *,
        entities: Mapping[str, Any] | None = None,
    ) -> str:
        definition = self._catalog.get_task_definition(task)
        context.current_task = definition.task
        context.required_fields = definition.required_fields
        context.collected_fields = {}
        specs = {spec.name: spec for spec in definition.fields}
        context.entities = {}
        for name, value in (entities or {}).items():
            if name not in specs or value is None:
                continue
            value = self._extractor.normalise(definition.task, name, value)
            if specs[name].validate(value).valid:
                context.entities[name] = value
        context.task_progress = TaskProgress(total_steps=len(definition.steps))
        if definition.task is TaskType.INFORMATION_LOOKUP:
            context.task_progress.data["query"] = text

        extracted = self._extractor.extract_deterministic(
            definition.task, text, wanted=[spec.name for spec in definition.fields]
        )
        candidates = {**context.entities, **extracted}
        error = self._merge_fields(context, definition, candidates)
        logger.info("Started %s for %s", definition.task.value, context.id)
        return await self._after_fields(context, definition, auth_token, error=error)

    async def _after_fields(
        self,
        context: ConversationContext,
        definition: TaskDefinition,
        auth_token: str | None,
        *,
        error: str | None = None,
    ) -> str:
        missing = self._catalog.compute_missing_fields(definition.task, context.known_fields())
        self._update_step(context, definition)
        if not missing:
            return await self._fields_complete(context, definition, auth_token)

        context.phase = Phase.SLOT_FILLING
        prompt = self._prompt_for(definition, missing[0])
        return f"{error} {prompt}" if error else prompt

    async def _fields_complete(
        self, context: ConversationContext, definition: TaskDefinition, auth_token: str | None
    ) -> str:
        if definition.requires_confirmation:
            context.phase = Phase.CONFIRMATION
            return self._summary(context, definition)
        context.phase = Phase.EXECUTION
        return await self._execute(context, definition, auth_token)

    async def _execute(self, context: ConversationContext, definition: TaskDefinition, auth_token: str | None) -> str:
        outcome = await self._executor.execute(definition.task, context.known_fields(), auth_token=auth_token)
        if self._metrics is not None:
            self._metrics.record_operation(definition.task.value, outcome.success)

        context.phase = Phase.COMPLETION
        context.task_progress.completed = outcome.success
        context.task_progress.failed = not outcome.success
        if outcome.success:
            context.task_progress.step = context.task_progress.total_steps
            return f"{outcome.message}\n\n{ANYTHING_ELSE}"
        return outcome.message

    def _merge_fields(
        self,
        context: ConversationContext,
        definition: TaskDefinition,
        candidates: Mapping[str, Any],
    ) -> str | None:
        """Write valid candidates into ``collected_fields`` in catalog order.

        Returns the first validation error; fields after it are left untouched.
        """

        for spec in definition.fields:
            if spec.name not in candidates or context.collected_fields.get(spec.name) is not None:
                continue
            value = candidates[spec.name]
            result = spec.validate(value)
            if not result.valid:
                return result.error
            context.collected_fields[spec.name] = value
        return None

    def _reset_task(self, context: ConversationContext) -> None:
        context.phase = Phase.INTENT_DETECTION
        context.current_task = None
        context.required_fields = []
        context.collected_fields = {}
        context.entities = {}
        context.task_progress = TaskProgress()

    def _update_step(self, context: ConversationContext, definition: TaskDefinition) -> None:
        known = context.known_fields()
        step = 0
        for descriptor in definition.steps:
            if not descriptor.fields or any(known.get(name) is None for name in descriptor.fields):
                break
            step += 1
        context.task_progress.step = step

    def _is_choice_reply(self, definition: TaskDefinition, awaited: str | None, text: str) -> bool:
        spec = definition.field_spec(awaited) if awaited is not None else None
        if spec is None or not spec.choices:
            return False
        reply = normalize(text).strip(" .!").replace(" ", "_")
        return spec.is_choice(reply)

    def _prompt_for(self, definition: TaskDefinition, name: str) -> str:
        spec = definition.field_spec(name)
        return spec.prompt if spec is not None else f"Please provide your {name.replace('_', ' ')}."

    def _summary(self, context: ConversationContext, definition: TaskDefinition) -> str:
        known = context.known_fields()
        lines = [f"Please confirm your {TASK_NAMES.get(definition.task, 'request')} details:"]
        for spec in definition.fields:
            value = known.get(spec.name)
            if value is None:
                continue
            shown = format_money(value) if spec.name == "amount" else value
            lines.append(f"- {spec.label}: {shown}")
        lines.append("")
        lines.append("Shall I proceed? (yes/no)")
        return "\n".join(lines)


def _task_value(task: TaskType | None) -> str:
    return task.value if task is not None else "none"
