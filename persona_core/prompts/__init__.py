"""人设 prompt 组装。

把人设系统指令、固定的回答规则、few-shot 示例、最近的对话历史和当前用户消息
按固定顺序拼成最终发给模型的单段 prompt 文本。相同输入必然得到相同输出。

为控制 prompt 长度：few-shot 只取第一条示例，历史只取最后 6 条。
空的可选块整体省略，不留多余分隔。
"""

from typing import List, Sequence

from persona_core.domain.models import ConversationTurn, PersonaConfig


HISTORY_LIMIT = 6
FEW_SHOT_LIMIT = 1
BLOCK_SEPARATOR = "\n\n"


class PromptAssembler:
    def __init__(self, history_limit: int = HISTORY_LIMIT, few_shot_limit: int = FEW_SHOT_LIMIT):
        self.history_limit = history_limit
        self.few_shot_limit = few_shot_limit

    def assemble(self, persona: PersonaConfig, message: str, history: Sequence[ConversationTurn] = ()) -> str:
        blocks = [
            persona.system_instruction,
            self.guidelines_block(persona),
            self.examples_block(persona),
            self.history_block(history),
            f"Current User Message: {message}",
            f"Now respond as {persona.name} in a concise answer that follows the STRICT guidelines:",
        ]
        return BLOCK_SEPARATOR.join(b for b in blocks if b)

    @staticmethod
    def guidelines_block(persona: PersonaConfig) -> str:
        return "\n".join([
            "IMPORTANT RESPONSE GUIDELINES (STRICT):",
            f"- Always respond in character as {persona.name}",
            "- Answer the user's question directly; do NOT repeat training data or persona background",
            "- Be concise: 2-5 sentences OR up to 5 short bullets (<= 100-120 words)",
            "- No greetings, no sign-offs, no emojis, no disclaimers",
            f"- Keep a {persona.tone} tone; include a signature phrase only if it fits naturally",
            "- If unclear, ask ONE short clarifying question instead of long filler",
        ])

    def examples_block(self, persona: PersonaConfig) -> str:
        examples = list(persona.training_examples)[: self.few_shot_limit]
        if not examples:
            return ""
        rendered = [
            f"Example {i}:\nUser: {ex.user_input}\nAssistant ({persona.id}): {ex.expected_response}"
            for i, ex in enumerate(examples, start=1)
        ]
        return "FEW-SHOT EXAMPLES (style reference only, do not copy):\n" + BLOCK_SEPARATOR.join(rendered)

    def history_block(self, history: Sequence[ConversationTurn]) -> str:
        lines = render_history(history, self.history_limit)
        if not lines:
            return ""
        return "RECENT CONVERSATION:\n" + "\n".join(lines)


def render_history(history: Sequence[ConversationTurn], limit: int = HISTORY_LIMIT) -> List[str]:
    """最后 limit 条历史，按原始时间顺序渲染为 "User: ..." / "Assistant: ..."。"""

    if limit <= 0:
        return []
    trimmed = list(history)[-limit:]
    return [f"{'User' if turn.sender == 'user' else 'Assistant'}: {turn.content}" for turn in trimmed]
