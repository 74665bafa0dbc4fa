from utils.errors import AppError, ErrorCode, ExtractionError, SearchError, handle_error


def test_app_error_defaults_and_serialization():
    error = SearchError("provider down", details={"provider": "tavily"})

    assert error.code == ErrorCode.SEARCH
    assert str(error) == "[search] provider down"
    assert error.to_dict() == {
        "name": "SearchError",
        "code": "search",
        "message": "provider down",
        "details": {"provider": "tavily"},
    }


def test_explicit_code_overrides_default():
    error = SearchError("too many requests", ErrorCode.SEARCH_LIMIT_EXCEEDED)
    assert error.code == ErrorCode.SEARCH_LIMIT_EXCEEDED


def test_handle_error_keeps_app_errors():
    error = ExtractionError("bad page")
    assert handle_error(error) is error


def test_handle_error_wraps_other_exceptions():
    wrapped = handle_error(KeyError("results"), default_code=ErrorCode.SEARCH)

    assert isinstance(wrapped, AppError)
    assert wrapped.code == ErrorCode.SEARCH
    assert wrapped.details == {"original_error": "KeyError"}


def test_handle_error_uses_default_message_for_blank_errors():
    assert handle_error(RuntimeError(), "Search failed").message == "Search failed"
