"""
Prompt templates for the writing assistant.

Templates use `{placeholder}` markers filled with str.replace, so user text
containing braces is never interpreted as a format field.
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from rulegraph.llm.provider import Message


DEFAULT_RULES_STRING = "*no rules have been set yet*"


RULES_PROMPT = """The user has defined two sets of rules. The first set is for style guidelines, and the second set is for content guidelines.

<style_rules>
{styleRules}
</style_rules>

<content_rules>
{contentRules}
</content_rules>"""


SYSTEM_PROMPT = """You are a helpful assistant tasked with thoughtfully fulfilling the requests of the user.

System rules:

<system_rules>
{systemRules}
</system_rules>

{rulesPrompt}"""


INSIGHTS_PROMPT = """This conversation contains back and forth between an AI assistant, and a user who is using the assistant to generate text.

User messages which are prefixed with "REVISED MESSAGE" contain the entire revised text the user made to the assistant message directly before in the conversation.
Revisions are made directly by users, so you should pay VERY close attention to every single change made, no matter how small. These should be heavily considered when generating rules.

Important aspects of revisions to consider:
- Deletions: What did the user remove? Do you need a rule to avoid adding this in the future?
- Tone: Did they change the overall tone? Do you need a rule to ensure this tone is maintained?
- Structure: Did they change the structure of the text? This is important to remember, as it may be a common pattern.

There also may be additional back and forth between the user and the assistant.

Based on the conversation, and paying particular attention to any changes made in the "REVISED MESSAGE", your job is to create a list of rules to use in the future to help the AI assistant better generate text.

These rules should be split into two categories:
1. Style guidelines: These rules should focus on the style, tone, and structure of the text.
2. Content guidelines: These rules should focus on the content, context, and purpose of the text. Think of this as the business logic or domain-specific rules.

In your response, include every single rule you want the AI assistant to follow in the future. You should list rules based on a combination of the existing conversation as well as previous rules.
You can modify previous rules if you think the new conversation has helpful information, or you can delete old rules if they don't seem relevant, or you can add new rules based on the conversation.

Refrain from adding overly generic rules like "follow instructions". These generic rules are already outlined in the "system_rules" below.
Instead, focus your attention on specific details, writing style, or other aspects of the conversation that you think are important for the AI to follow.

The user has defined the following rules:

<style_rules>
{styleRules}
</style_rules>

<content_rules>
{contentRules}
</content_rules>

Here is the conversation:

<conversation>
{conversation}
</conversation>

And here are the default system rules:

<system_rules>
{systemRules}
</system_rules>

Respond with updated rules to keep in mind for future conversations. Try to keep the rules you list high signal-to-noise - don't include unnecessary ones, but make sure the ones you do add are descriptive. Combine ones that seem similar and/or contradictory"""


CONTENT_CHECK_PROMPT = """Given the following conversation between a user and an AI assistant, determine whether or not writing content (think, a blog post, or tweet) was generated by the assistant, or if it's just a conversation.
If writing content was generated, set 'contentGenerated' to true, otherwise set it to false.

<conversation>
{conversation}
</conversation>"""


def format_rule_list(rules: Optional[Iterable[str]]) -> Optional[str]:
    """Render rules as a markdown bullet list, or None when there are none."""
    items = [r for r in (rules or []) if r]
    if not items:
        return None
    return "\n".join(f"- {r}" for r in items)


def render_rules(user_rules: Optional[Mapping[str, Any]]) -> tuple:
    """Return the (style, content) rule lists as bullet strings or None."""
    user_rules = user_rules or {}
    return (
        format_rule_list(user_rules.get("styleRules")),
        format_rule_list(user_rules.get("contentRules")),
    )


def build_system_prompt(system_rules: str, user_rules: Optional[Mapping[str, Any]]) -> str:
    """
    Build the reply system prompt.

    When the user has no rules at all, the rules section is replaced by an
    empty string. When only one category exists, the other says so.
    """
    style_rules, content_rules = render_rules(user_rules)
    prompt = SYSTEM_PROMPT.replace("{systemRules}", system_rules)
    if style_rules or content_rules:
        rules_prompt = (
            RULES_PROMPT
            .replace("{styleRules}", style_rules or DEFAULT_RULES_STRING)
            .replace("{contentRules}", content_rules or DEFAULT_RULES_STRING)
        )
        return prompt.replace("{rulesPrompt}", rules_prompt)
    return prompt.replace("{rulesPrompt}", "").rstrip() + "\n"


def build_insights_prompt(
    system_rules: str,
    user_rules: Optional[Mapping[str, Any]],
    conversation: str
) -> str:
    """Build the prompt asking the model to regenerate the user's rules."""
    style_rules, content_rules = render_rules(user_rules)
    return (
        INSIGHTS_PROMPT
        .replace("{systemRules}", system_rules)
        .replace("{styleRules}", style_rules or DEFAULT_RULES_STRING)
        .replace("{contentRules}", content_rules or DEFAULT_RULES_STRING)
        .replace("{conversation}", conversation)
    )


def build_content_check_prompt(conversation: str) -> str:
    return CONTENT_CHECK_PROMPT.replace("{conversation}", conversation)


def format_conversation(messages: Sequence[Any]) -> str:
    """
    Render messages as tagged blocks, e.g. `<human_message index=0>...`.

    Accepts Message objects or `{role, content}` dicts.
    """
    blocks: List[str] = []
    for i, raw in enumerate(messages):
        message = Message.coerce(raw)
        tag = f"{message.type}_message"
        blocks.append(f"<{tag} index={i}>\n{message.content}\n</{tag}>")
    return "\n\n".join(blocks)
