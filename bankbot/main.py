"""FastAPI application entry point for the banking assistant."""

import logging

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from bankbot.api.conversations import create_conversations_router
from bankbot.classifier.base import Classifier
from bankbot.classifier.gemini import GeminiClassifier
from bankbot.classifier.simple import RuleBasedClassifier
from bankbot.core.config import Settings, get_settings
from bankbot.core.errors import unhandled_exception_handler
from bankbot.core.logging import configure_logging, request_id_middleware
from bankbot.core.metrics import MetricsCollector
from bankbot.dialogue.catalog import TaskCatalog
from bankbot.dialogue.extractor import SlotExtractor
from bankbot.dialogue.orchestrator import DialogueOrchestrator
from bankbot.dialogue.router import IntentRouter
from bankbot.dialogue.store import InMemorySessionStore, SessionStore
from bankbot.operations.base import BankingBackend
from bankbot.operations.executor import OperationExecutor
from bankbot.operations.http import HttpBankingBackend
from bankbot.operations.mock import MockBankingBackend

settings = get_settings()
logger = logging.getLogger("bankbot.app")


def build_classifier(settings: Settings) -> Classifier:
    if settings.gemini_enabled:
        return GeminiClassifier(
            settings.gemini_api_key or "",
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            temperature=settings.gemini_temperature,
            timeout=settings.classifier_timeout_seconds,
        )
    return RuleBasedClassifier()


def build_backend(settings: Settings) -> BankingBackend:
    if settings.use_mock_banking:
        return MockBankingBackend()
    return HttpBankingBackend(settings.banking_api_base_url, timeout=settings.operation_timeout_seconds)


def build_orchestrator(
    settings: Settings,
    *,
    store: SessionStore,
    classifier: Classifier,
    backend: BankingBackend,
    metrics: MetricsCollector | None = None,
) -> DialogueOrchestrator:
    """Wire the dialogue engine from settings and its collaborators."""

    catalog = TaskCatalog.from_settings(settings)
    return DialogueOrchestrator(
        store,
        catalog,
        IntentRouter(
            classifier,
            confidence_threshold=settings.intent_confidence_threshold,
            timeout=settings.classifier_timeout_seconds,
        ),
        SlotExtractor(catalog, classifier, timeout=settings.classifier_timeout_seconds),
        OperationExecutor(backend, timeout=settings.operation_timeout_seconds),
        metrics=metrics,
        max_field_attempts=settings.max_field_attempts,
        history_tail_size=settings.history_tail_size,
    )


session_store = InMemorySessionStore()
classifier = build_classifier(settings)
banking_backend = build_backend(settings)
metrics = MetricsCollector()
orchestrator = build_orchestrator(
    settings,
    store=session_store,
    classifier=classifier,
    backend=banking_backend,
    metrics=metrics,
)

app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

app.include_router(create_conversations_router(orchestrator, session_store))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return basic service status for monitoring."""

    return {"status": "ok", "classifier": classifier.describe()}


@app.post("/chat", tags=["chat"])
async def chat(message: dict, authorization: str | None = Header(default=None)) -> dict:
    """Run one dialogue turn for a conversation."""

    conversation_id = message.get("conversation_id")
    content = message.get("content")

    if not conversation_id or not content:
        raise HTTPException(status_code=400, detail="conversation_id and content are required")

    auth_token = None
    if authorization and authorization.lower().startswith("bearer "):
        auth_token = authorization[7:].strip() or None

    result = await orchestrator.process_message(
        str(conversation_id),
        message.get("user_id"),
        str(content),
        auth_token=auth_token,
    )
    context = result.context

    return {
        "conversation_id": context.id,
        "reply": result.reply,
        "phase": context.phase.value,
        "current_task": context.current_task.value if context.current_task else None,
        "collected_fields": dict(context.collected_fields),
        "required_fields": list(context.required_fields),
    }


@app.on_event("startup")
async def startup() -> None:
    configure_logging(settings)
    logger.info("Intent classification: %s", classifier.describe())
    logger.info("Banking operations: %s", banking_backend.describe())


app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/metrics", tags=["metrics"])
async def metrics_endpoint() -> dict:
    snapshot = metrics.snapshot()
    return {
        "total_turns": snapshot.total_turns,
        "intents": snapshot.intents,
        "phases": snapshot.phases,
        "operations": snapshot.operations,
    }
