from support_bot.services.log_context import describe_log_context, get_log_context, request_context


def test_request_context_is_scoped():
    assert describe_log_context() == "context=none"
    with request_context(user_id=42, role="user", event=None) as context:
        assert context == {"user_id": "42", "role": "user"}
        assert describe_log_context() == "context=user_id=42,role=user"
    assert get_log_context() == {}
