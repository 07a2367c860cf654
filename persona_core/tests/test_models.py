from persona_core.domain.models import ChatRequest, ConversationTurn


def test_request_from_payload():
    req = ChatRequest.from_payload({
        "message": "hi",
        "persona": "hitesh",
        "history": [
            {"content": "a", "sender": "user", "timestamp": "t1"},
            {"content": "b", "sender": "ai", "timestamp": "t2"},
        ],
    })
    assert req.message == "hi"
    assert req.persona_id == "hitesh"
    assert req.history == (
        ConversationTurn(sender="user", content="a", timestamp="t1"),
        ConversationTurn(sender="assistant", content="b", timestamp="t2"),
    )


def test_request_from_empty_payload():
    req = ChatRequest.from_payload({"history": "not-a-list"})
    assert req.message == ""
    assert req.persona_id == ""
    assert req.history == ()
