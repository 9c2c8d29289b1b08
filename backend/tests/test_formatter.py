from survey.client.formatter import render_conversation

from conftest import make_row, make_sample


class TestRenderConversation:
    def test_think_block_is_split(self):
        rendered = render_conversation(make_sample("tides"))
        kinds = [m.kind for m in rendered.messages]
        assert kinds == ["human", "think", "post-think"]
        assert rendered.messages[1].content == "**__QwQ Thoughts__**\n\nThinking about tides"
        assert rendered.messages[2].content == "**__QwQ Response__**\n\nAnswer about tides"

    def test_system_prompt_collected(self):
        rendered = render_conversation(make_row("tides"))
        assert rendered.system == "You are a helpful AI assistant."
        assert all(m.kind != "system" for m in rendered.messages)

    def test_plain_turns_get_speaker_headers(self):
        row = make_row("x", conversations=[
            {"from": "human", "value": "Hi"},
            {"from": "gpt", "value": "Hello there"},
        ])
        rendered = render_conversation(row)
        assert [m.content for m in rendered.messages] == [
            "**__User__**\n\nHi",
            "**__Assistant__**\n\nHello there",
        ]
        assert rendered.system == ""

    def test_named_roles_prefix_speaker(self):
        row = make_row("x", conversations=[
            {"from": "human-chat", "value": "Hey", "name": "Ann"},
            {"from": "gpt-chat", "value": "Hi Ann", "name": "Bot"},
        ])
        rendered = render_conversation(row)
        assert rendered.messages[0].content.endswith("Ann: Hey")
        assert rendered.messages[0].name == "Ann"
        assert rendered.messages[1].kind == "gpt"
        assert rendered.messages[1].content.endswith("Bot: Hi Ann")

    def test_empty_turns_dropped(self):
        row = make_row("x", conversations=[
            {"from": "human", "value": "   "},
            {"from": "gpt", "value": "Only this"},
        ])
        rendered = render_conversation(row)
        assert len(rendered.messages) == 1
        assert rendered.messages[0].key == "gpt-0"

    def test_missing_model_name(self):
        row = make_row("x", model_name=None)
        rendered = render_conversation(row)
        titles = [m.content.split("\n", 1)[0] for m in rendered.messages]
        assert "**__Thoughts__**" in titles
        assert "**__Response__**" in titles
