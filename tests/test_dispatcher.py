from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from kitchen_agents.agents import AgentDispatcher, CookAgent, FoodFinderAgent, IntentVerdict, RecipeCard
from kitchen_agents.agents.base import Agent
from kitchen_agents.agents.dispatcher import CLARIFICATION_PROMPT
from kitchen_agents.agents.suggestions import DEFAULT_SUGGESTIONS
from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.exceptions import AgentError, TransportError, UnknownAgentError
from kitchen_agents.llm_core.messages import Role

from conftest import reply, scripted_client, tool_call


def make_dispatcher(recipe_book, places, settings, ui, *steps) -> AgentDispatcher:
    dispatcher = AgentDispatcher(recipe_book, places, settings)
    dispatcher.init(None, ui, client=scripted_client(*steps))
    return dispatcher


def fake_agent(name: str, score: int) -> MagicMock:
    agent = MagicMock(spec=Agent)
    agent.name = name
    agent.can_handle.return_value = score
    return agent


@pytest.fixture
def intent_settings() -> ChatSettings:
    return ChatSettings(api_key="test-key", intent_classification=True)


class TestSelection:
    def test_highest_score_wins(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)

        assert dispatcher.select_agent("麻婆豆腐怎么做？").name == CookAgent.name
        assert dispatcher.select_agent("附近有什么好吃的？").name == FoodFinderAgent.name

    def test_scores_at_or_below_threshold_go_to_cook(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)

        # 周边 alone scores 25 for the food finder
        assert dispatcher.get_agent(FoodFinderAgent.name).can_handle("周边") == 25
        assert dispatcher.select_agent("周边").name == CookAgent.name
        assert dispatcher.select_agent("你好").name == CookAgent.name

    def test_ties_go_to_the_earlier_agent(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)
        first, second = fake_agent("First", 50), fake_agent("Second", 50)

        dispatcher.agents = [first, second]
        assert dispatcher.select_agent("anything") is first

        dispatcher.agents = [second, first]
        assert dispatcher.select_agent("anything") is second

    def test_confident_hint_overrides_scores(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)
        hint = IntentVerdict(intent="restaurant", confidence=0.9)

        assert dispatcher.select_agent("麻婆豆腐怎么做？", hint=hint).name == FoodFinderAgent.name

    def test_weak_hint_is_ignored(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)
        hint = IntentVerdict(intent="restaurant", confidence=0.3)

        assert dispatcher.select_agent("麻婆豆腐怎么做？", hint=hint).name == CookAgent.name


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_before_init_raises(self, recipe_book, places, settings):
        dispatcher = AgentDispatcher(recipe_book, places, settings)

        with pytest.raises(AgentError, match="not initialized"):
            await dispatcher.dispatch("麻婆豆腐怎么做？")

    @pytest.mark.asyncio
    async def test_full_turn_records_reply_and_shows_suggestions(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(
            recipe_book,
            places,
            settings,
            ui,
            reply(tool_calls=[tool_call("getRecipe", {"dishName": "麻婆豆腐"})]),
            reply("需要什么食材？\n1. 怎么调味？\n可以不放辣吗？"),
        )

        await dispatcher.dispatch("麻婆豆腐怎么做？")

        assert isinstance(ui.last["structured"], RecipeCard)
        assert ui.suggestions == [["需要什么食材？", "可以不放辣吗？"]]
        assert dispatcher.get_current_agent().name == CookAgent.name
        assert dispatcher.last_user_message == "麻婆豆腐怎么做？"
        assert dispatcher.last_assistant_message == "已为用户显示了《麻婆豆腐》的详细做法。"
        assert [(m.role, m.content) for m in dispatcher.dispatcher_log] == [
            (Role.USER, "麻婆豆腐怎么做？"),
            (Role.ASSISTANT, "已为用户显示了《麻婆豆腐》的详细做法。"),
        ]

        suggestion_messages, suggestion_options = dispatcher.suggestion_agent.client.requests[-1]
        assert [m.content for m in suggestion_messages[1:3]] == [
            "麻婆豆腐怎么做？",
            "已为用户显示了《麻婆豆腐》的详细做法。",
        ]
        assert suggestion_options.temperature == 0.8

    @pytest.mark.asyncio
    async def test_agent_histories_stay_separate(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(
            recipe_book,
            places,
            settings,
            ui,
            reply("麻婆豆腐要用嫩豆腐。"),
            reply("用什么豆腐？"),
            reply("附近有家川菜馆。"),
            reply("远吗？"),
        )

        await dispatcher.dispatch("麻婆豆腐怎么做？")
        await dispatcher.dispatch("附近有什么好吃的？")

        cook = dispatcher.get_agent(CookAgent.name)
        food_finder = dispatcher.get_agent(FoodFinderAgent.name)
        assert [m.content for m in cook.conversation_history[1:]] == ["麻婆豆腐怎么做？", "麻婆豆腐要用嫩豆腐。"]
        assert [m.content for m in food_finder.conversation_history[1:]] == ["附近有什么好吃的？", "附近有家川菜馆。"]
        assert len(dispatcher.dispatcher_log) == 4

    @pytest.mark.asyncio
    async def test_suggestion_failure_falls_back_to_defaults(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(
            recipe_book, places, settings, ui, reply("好的。"), TransportError("Service unavailable", status_code=503)
        )

        await dispatcher.dispatch("今天吃什么？")

        assert ui.suggestions[-1] in [list(group) for group in DEFAULT_SUGGESTIONS]

    @pytest.mark.asyncio
    async def test_agent_failure_is_reported_as_system_error(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)
        cook = dispatcher.get_agent(CookAgent.name)
        cook.handle_message = AsyncMock(side_effect=RuntimeError("boom"))

        await dispatcher.dispatch("麻婆豆腐怎么做？")

        assert ui.last["text"] == "❌ 系统错误: boom"
        assert ui.suggestions == []

    @pytest.mark.asyncio
    async def test_dispatch_to_unknown_agent(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)

        with pytest.raises(UnknownAgentError, match="未找到Agent: Nope"):
            await dispatcher.dispatch_to_agent("Nope", "hi")

    @pytest.mark.asyncio
    async def test_reset_clears_every_history(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui, reply("好的。"), reply("还有吗？"))
        await dispatcher.dispatch("今天吃什么？")

        dispatcher.reset_all_agents()

        assert dispatcher.dispatcher_log == []
        assert dispatcher.get_current_agent() is None
        assert dispatcher.last_user_message == ""
        for agent in dispatcher.get_all_agents():
            assert [m.role for m in agent.conversation_history] == [Role.SYSTEM]

    def test_agent_lookup(self, recipe_book, places, settings, ui):
        dispatcher = make_dispatcher(recipe_book, places, settings, ui)

        assert dispatcher.get_agent("Nope") is None
        agents: List[Agent] = dispatcher.get_all_agents()
        agents.clear()
        assert [agent.name for agent in dispatcher.get_all_agents()] == [CookAgent.name, FoodFinderAgent.name]


class TestIntentRouting:
    @pytest.mark.asyncio
    async def test_confident_verdict_routes_directly(self, recipe_book, places, intent_settings, ui):
        dispatcher = make_dispatcher(
            recipe_book,
            places,
            intent_settings,
            ui,
            reply('{"intent": "restaurant", "confidence": 0.92}'),
            reply("想吃火锅还是烧烤？"),
            reply("想吃火锅\n想吃烧烤"),
        )

        # keyword scores alone would pick the cook
        await dispatcher.dispatch("今天吃什么？")

        assert dispatcher.get_current_agent().name == FoodFinderAgent.name
        classifier_messages, classifier_options = dispatcher.intent_classifier.client.requests[0]
        assert classifier_messages[-1].content == "今天吃什么？"
        assert classifier_options.temperature == 0.1

    @pytest.mark.asyncio
    async def test_classifier_failure_falls_back_to_keywords(self, recipe_book, places, intent_settings, ui):
        dispatcher = make_dispatcher(
            recipe_book,
            places,
            intent_settings,
            ui,
            reply("I think they want food"),
            reply("附近有家川菜馆。"),
            reply("远吗？"),
        )

        await dispatcher.dispatch("附近有什么好吃的？")

        assert dispatcher.get_current_agent().name == FoodFinderAgent.name
        assert ui.last["text"] == "附近有家川菜馆。"

    @pytest.mark.asyncio
    async def test_unclear_intent_asks_and_follows_the_choice(self, recipe_book, places, intent_settings, ui):
        dispatcher = make_dispatcher(
            recipe_book,
            places,
            intent_settings,
            ui,
            reply('{"intent": "unclear", "confidence": 0.5}'),
            reply("附近有很多选择，想吃什么？"),
            reply("想吃火锅\n要便宜的"),
        )

        await dispatcher.dispatch("饿了")

        assert ui.last["text"] == CLARIFICATION_PROMPT
        assert ui.suggestions[-1] == ["我自己做饭", "找地方吃饭"]
        assert dispatcher.get_current_agent() is None
        assert ui.on_pick is not None

        await ui.on_pick("找地方吃饭")

        food_finder = dispatcher.get_agent(FoodFinderAgent.name)
        assert food_finder.conversation_history[1].content == "帮我找个地方吃饭：饿了"
        assert dispatcher.last_user_message == "帮我找个地方吃饭：饿了"
        assert [m.content for m in dispatcher.dispatcher_log] == [
            "饿了",
            CLARIFICATION_PROMPT,
            "找地方吃饭",
            "附近有很多选择，想吃什么？",
        ]
        assert ui.suggestions[-1] == ["想吃火锅", "要便宜的"]

    @pytest.mark.asyncio
    async def test_unknown_choice_is_treated_as_a_new_message(self, recipe_book, places, intent_settings, ui):
        dispatcher = make_dispatcher(
            recipe_book,
            places,
            intent_settings,
            ui,
            reply('{"intent": "unclear", "confidence": 0.5}'),
            reply('{"intent": "cook", "confidence": 0.9}'),
            reply("好的，来做麻婆豆腐。"),
            reply("要放肉末吗？"),
        )

        await dispatcher.dispatch("饿了")
        await ui.on_pick("麻婆豆腐怎么做？")

        assert dispatcher.get_current_agent().name == CookAgent.name
        assert dispatcher.last_user_message == "麻婆豆腐怎么做？"
