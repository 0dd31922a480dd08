"""Shared fixtures: engine collaborators wired with in-memory adapters."""

from typing import Any, List

import pytest

from mealchat.application.local_state import LocalStateStore
from mealchat.application.reconciler import AnalysisReconciler
from mealchat.application.session import ConversationSession
from mealchat.domain.conversation.context import ConversationContextStore
from mealchat.domain.conversation.dialogue import DialogueStateMachine
from mealchat.domain.conversation.estimate import NutritionEstimate
from mealchat.domain.conversation.normalizer import InputNormalizer
from mealchat.domain.conversation.turns import BarcodeProduct
from mealchat.domain.events import DomainEvent
from mealchat.infrastructure.events.in_memory_bus import InMemoryEventBus
from mealchat.infrastructure.stub.in_memory_meal_api import InMemoryMealApi
from mealchat.infrastructure.stub.stub_scorer import StubNutritionScorer


@pytest.fixture
def scorer() -> StubNutritionScorer:
    return StubNutritionScorer()


@pytest.fixture
def context_store() -> ConversationContextStore:
    return ConversationContextStore()


@pytest.fixture
def machine(scorer: StubNutritionScorer, context_store: ConversationContextStore) -> DialogueStateMachine:
    return DialogueStateMachine(scorer, context_store, confidence_threshold=0.5)


@pytest.fixture
def store() -> LocalStateStore:
    return LocalStateStore()


@pytest.fixture
def meal_api() -> InMemoryMealApi:
    return InMemoryMealApi()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def published(event_bus: InMemoryEventBus) -> List[Any]:
    """Every event published on the bus, in order."""
    events: List[Any] = []

    async def record(event: DomainEvent) -> None:
        events.append(event)

    event_bus.subscribe(DomainEvent, record)
    return events


@pytest.fixture
def reconciler(
    meal_api: InMemoryMealApi, store: LocalStateStore, event_bus: InMemoryEventBus
) -> AnalysisReconciler:
    return AnalysisReconciler(meal_api, store, event_bus)


@pytest.fixture
def session(
    machine: DialogueStateMachine,
    context_store: ConversationContextStore,
    reconciler: AnalysisReconciler,
    event_bus: InMemoryEventBus,
) -> ConversationSession:
    return ConversationSession(
        normalizer=InputNormalizer(),
        machine=machine,
        context_store=context_store,
        reconciler=reconciler,
        event_bus=event_bus,
    )


@pytest.fixture
def eggs_estimate() -> NutritionEstimate:
    return NutritionEstimate(
        description="2 eggs and toast",
        detected_foods=["egg", "toast"],
        protein_g=15.25,
        calories=221.25,
        confidence=0.9,
        estimated_weight_g=125.0,
    )


@pytest.fixture
def nutella() -> BarcodeProduct:
    return BarcodeProduct(
        barcode="3017620422003",
        name="Nutella",
        brand="Ferrero",
        protein_100g=6.3,
        calories_100g=539.0,
        carbs_100g=57.5,
        fat_100g=30.9,
        serving_size_g=15.0,
    )
