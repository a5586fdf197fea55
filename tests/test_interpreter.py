import pytest

from walkguide import Backend, CommandRule, IntentKind, interpret, normalize_command_text


@pytest.mark.parametrize(
    "text, kind, backend",
    [
        ("ヘルプ", IntentKind.HELP, None),
        ("help me", IntentKind.HELP, None),
        ("とまれ", IntentKind.STOP, None),
        ("ストップして", IntentKind.STOP, None),
        ("ジェミニに変えて", IntentKind.SWITCH_BACKEND, Backend.GEMINI),
        ("クロード", IntentKind.SWITCH_BACKEND, Backend.CLAUDE),
        ("チャットGPTにして", IntentKind.SWITCH_BACKEND, Backend.CHATGPT),
        ("どのAIを使ってる", IntentKind.CURRENT_BACKEND, None),
        ("景色を説明して", IntentKind.DESCRIBE_IN_DETAIL, None),
        ("詳しく教えて", IntentKind.DESCRIBE_IN_DETAIL, None),
        ("こんにちは", IntentKind.UNKNOWN, None),
    ],
)
def test_interpret_maps_keywords(text, kind, backend):
    intent = interpret(text)
    assert intent.kind is kind
    assert intent.backend is backend


def test_stop_outranks_backend_switch():
    intent = interpret("とまれ ジェミニ")
    assert intent.kind is IntentKind.STOP
    assert intent.backend is None
    assert intent.matched == "とまれ"


def test_help_outranks_backend_mentioned_inside_request():
    assert interpret("クロードのヘルプ").kind is IntentKind.HELP


def test_backend_switch_outranks_detail_request():
    intent = interpret("ジェミニで景色を説明")
    assert intent.kind is IntentKind.SWITCH_BACKEND
    assert intent.backend is Backend.GEMINI


def test_full_width_latin_is_normalized():
    intent = interpret("ＧＰＴ")
    assert intent.kind is IntentKind.SWITCH_BACKEND
    assert intent.backend is Backend.CHATGPT


def test_empty_and_none_are_unknown():
    assert interpret("").kind is IntentKind.UNKNOWN
    assert interpret(None).kind is IntentKind.UNKNOWN
    assert interpret("   ").text == ""


def test_normalize_command_text_collapses_whitespace():
    assert normalize_command_text("  Stop　 NOW ") == "stop now"


def test_custom_table_order_is_respected():
    table = (
        CommandRule(IntentKind.DESCRIBE_IN_DETAIL, ("説明",)),
        CommandRule(IntentKind.HELP, ("ヘルプ",)),
    )
    assert interpret("ヘルプの説明", table).kind is IntentKind.DESCRIBE_IN_DETAIL
    assert interpret("ヘルプの説明").kind is IntentKind.HELP
