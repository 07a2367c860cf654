from persona_core.domain.models import ConversationTurn, PersonaConfig, TrainingExample
from persona_core.prompts import PromptAssembler, render_history


PERSONA = PersonaConfig(
    id="hitesh",
    name="Hitesh Choudhary",
    system_instruction="You are Hitesh.",
    training_examples=(
        TrainingExample(user_input="first q", expected_response="first a"),
        TrainingExample(user_input="second q", expected_response="second a"),
    ),
    tone="Hinglish",
)


def turns(n):
    return [
        ConversationTurn(sender="user" if i % 2 == 0 else "assistant", content=f"m{i}")
        for i in range(n)
    ]


def test_assemble_is_deterministic():
    assembler = PromptAssembler()
    history = turns(9)
    assert assembler.assemble(PERSONA, "hi", history) == assembler.assemble(PERSONA, "hi", history)


def test_block_order():
    prompt = PromptAssembler().assemble(PERSONA, "what is a closure?", turns(2))
    markers = [
        "You are Hitesh.",
        "IMPORTANT RESPONSE GUIDELINES (STRICT):",
        "FEW-SHOT EXAMPLES (style reference only, do not copy):",
        "RECENT CONVERSATION:",
        "Current User Message: what is a closure?",
        "Now respond as Hitesh Choudhary in a concise answer that follows the STRICT guidelines:",
    ]
    positions = [prompt.index(m) for m in markers]
    assert positions == sorted(positions)
    assert prompt.startswith("You are Hitesh.\n\n")
    assert prompt.endswith("follows the STRICT guidelines:")


def test_guidelines_mention_persona_and_tone():
    prompt = PromptAssembler().assemble(PERSONA, "hi")
    assert "- Always respond in character as Hitesh Choudhary" in prompt
    assert "- Keep a Hinglish tone; include a signature phrase only if it fits naturally" in prompt
    assert "(<= 100-120 words)" in prompt
    assert "ask ONE short clarifying question" in prompt


def test_only_first_example_is_used():
    prompt = PromptAssembler().assemble(PERSONA, "hi")
    assert "Example 1:\nUser: first q\nAssistant (hitesh): first a" in prompt
    assert "second q" not in prompt


def test_history_keeps_last_six_in_order():
    prompt = PromptAssembler().assemble(PERSONA, "hi", turns(10))
    block = prompt.split("RECENT CONVERSATION:\n", 1)[1].split("\n\n", 1)[0]
    assert block.splitlines() == [
        "User: m4",
        "Assistant: m5",
        "User: m6",
        "Assistant: m7",
        "User: m8",
        "Assistant: m9",
    ]


def test_short_history_is_kept_whole():
    for n in range(0, 7):
        assert render_history(turns(n)) == [
            f"{'User' if i % 2 == 0 else 'Assistant'}: m{i}" for i in range(n)
        ]


def test_empty_optional_blocks_are_omitted():
    bare = PersonaConfig(id="p", name="P", system_instruction="sys")
    prompt = PromptAssembler().assemble(bare, "hello", [])
    assert "FEW-SHOT" not in prompt
    assert "RECENT CONVERSATION" not in prompt
    assert "\n\n\n" not in prompt
    assert prompt.split("\n\n") == [
        "sys",
        PromptAssembler.guidelines_block(bare),
        "Current User Message: hello",
        "Now respond as P in a concise answer that follows the STRICT guidelines:",
    ]


def test_custom_limits():
    assembler = PromptAssembler(history_limit=2, few_shot_limit=2)
    prompt = assembler.assemble(PERSONA, "hi", turns(5))
    assert "Example 2:\nUser: second q" in prompt
    assert "User: m4" in prompt
    assert "m2" not in prompt


def test_default_tone_reads_cleanly():
    bare = PersonaConfig(id="p", name="P", system_instruction="sys")
    guidelines = PromptAssembler.guidelines_block(bare)
    assert "- Keep a natural, conversational tone; include a signature phrase" in guidelines
    assert "tone naturally" not in guidelines
