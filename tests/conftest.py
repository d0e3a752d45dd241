from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from weather_bot.core.composer import NotificationComposer, TextGenerator
from weather_bot.core.dispatcher import Dispatcher
from weather_bot.core.types import ChoiceOption
from weather_bot.runtime_state import MeasurementStore, StateGateway, SubscriberRegistry


class FakeBus:
    def __init__(self, *, connected: bool = True) -> None:
        self.connected = connected
        self.published: List[Tuple[str, str]] = []

    async def publish(self, topic: str, payload: str) -> bool:
        if not self.connected:
            return False
        self.published.append((topic, payload))
        return True


class FakeChat:
    def __init__(self, failing: Sequence[int] = ()) -> None:
        self.failing = set(failing)
        self.texts: List[Tuple[int, str]] = []
        self.prompts: List[Tuple[int, str, List[ChoiceOption]]] = []

    async def send_text(self, chat_id: int, text: str) -> bool:
        if chat_id in self.failing:
            return False
        self.texts.append((chat_id, text))
        return True

    async def send_choice_prompt(self, chat_id: int, text: str, options: Sequence[ChoiceOption]) -> bool:
        self.prompts.append((chat_id, text, list(options)))
        return True


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def make_dispatcher(tmp_path, bus, chat) -> Callable[..., Dispatcher]:
    def _make(
        *,
        enrichment_enabled: bool = False,
        generator: Optional[TextGenerator] = None,
        schema: str = "envelope",
        page_size: int = 10,
        subscribers: Sequence[int] = (),
    ) -> Dispatcher:
        store = MeasurementStore()
        return Dispatcher(
            registry=SubscriberRegistry(subscribers),
            store=store,
            composer=NotificationComposer(
                store,
                enrichment_enabled=enrichment_enabled,
                generator=generator,
            ),
            gateway=StateGateway(tmp_path / "data.json"),
            bus=bus,
            chat=chat,
            request_topic="measurements/RequestSetting",
            sender="testBot",
            schema=schema,
            device_page_size=page_size,
        )

    return _make
