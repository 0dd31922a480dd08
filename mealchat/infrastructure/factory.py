"""Provider factory.

Environment-based selection between stub and HTTP adapters, and assembly
of a ConversationSession.
Strategy:
- MEALCHAT_SCORER_PROVIDER=http / MEALCHAT_MEAL_API_PROVIDER=http: real API
- Default: stub (safe fallback if env vars not set)

Usage:
    from mealchat.config import EngineSettings
    from mealchat.infrastructure.factory import create_session

    session = create_session(EngineSettings.from_env())
"""

from typing import Optional

from mealchat.application.local_state import LocalStateStore
from mealchat.application.reconciler import AnalysisReconciler
from mealchat.application.session import ConversationSession
from mealchat.config import EngineSettings
from mealchat.domain.conversation.context import ConversationContextStore
from mealchat.domain.conversation.dialogue import DialogueStateMachine
from mealchat.domain.conversation.normalizer import InputNormalizer
from mealchat.domain.ports.event_bus import IEventBus
from mealchat.domain.ports.meal_api import IMealApi
from mealchat.domain.ports.scorer import INutritionScorer
from mealchat.infrastructure.cache.in_memory_idempotency_cache import InMemoryIdempotencyCache
from mealchat.infrastructure.events.in_memory_bus import InMemoryEventBus
from mealchat.infrastructure.http.meal_api_client import MealApiClient
from mealchat.infrastructure.http.scoring_client import HttpNutritionScorer
from mealchat.infrastructure.stub.in_memory_meal_api import InMemoryMealApi
from mealchat.infrastructure.stub.stub_scorer import StubNutritionScorer


def create_scorer(settings: EngineSettings) -> INutritionScorer:
    """Create the nutrition scorer selected by MEALCHAT_SCORER_PROVIDER.

    Raises:
        ValueError: provider "http" without MEALCHAT_API_BASE_URL
    """
    if settings.scorer_provider == "http":
        if not settings.api_base_url:
            raise ValueError(
                "MEALCHAT_SCORER_PROVIDER=http but MEALCHAT_API_BASE_URL not set. "
                "Set MEALCHAT_API_BASE_URL in .env or use MEALCHAT_SCORER_PROVIDER=stub"
            )
        return HttpNutritionScorer(
            settings.api_base_url,
            token=settings.api_token,
            timeout_s=settings.api_timeout_s,
        )

    return StubNutritionScorer()


def create_meal_api(settings: EngineSettings) -> IMealApi:
    """Create the meal API selected by MEALCHAT_MEAL_API_PROVIDER.

    Raises:
        ValueError: provider "http" without MEALCHAT_API_BASE_URL
    """
    if settings.meal_api_provider == "http":
        if not settings.api_base_url:
            raise ValueError(
                "MEALCHAT_MEAL_API_PROVIDER=http but MEALCHAT_API_BASE_URL not set. "
                "Set MEALCHAT_API_BASE_URL in .env or use MEALCHAT_MEAL_API_PROVIDER=stub"
            )
        return MealApiClient(
            settings.api_base_url,
            token=settings.api_token,
            timeout_s=settings.api_timeout_s,
        )

    return InMemoryMealApi(
        idempotency_cache=InMemoryIdempotencyCache(),
        idempotency_ttl_s=settings.idempotency_ttl_s,
    )


def create_session(
    settings: EngineSettings,
    store: Optional[LocalStateStore] = None,
    event_bus: Optional[IEventBus] = None,
    scorer: Optional[INutritionScorer] = None,
    meal_api: Optional[IMealApi] = None,
) -> ConversationSession:
    """Assemble a ConversationSession; explicit collaborators override the providers."""
    context_store = ConversationContextStore()
    bus = event_bus or InMemoryEventBus()
    machine = DialogueStateMachine(
        scorer or create_scorer(settings),
        context_store,
        confidence_threshold=settings.confidence_threshold,
    )
    reconciler = AnalysisReconciler(
        meal_api or create_meal_api(settings),
        store if store is not None else LocalStateStore(),
        bus,
    )
    return ConversationSession(
        normalizer=InputNormalizer(),
        machine=machine,
        context_store=context_store,
        reconciler=reconciler,
        event_bus=bus,
    )


async def close_providers(*providers: object) -> None:
    """Close the HTTP adapters among providers; stubs hold no connections."""
    for provider in providers:
        if isinstance(provider, (HttpNutritionScorer, MealApiClient)):
            await provider.aclose()
