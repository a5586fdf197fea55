from walkguide import Backend, load_config
from walkguide.constants import DEFAULT_CAPTURE_INTERVAL_S, DEFAULT_PREFS_PATH


def test_defaults():
    cfg = load_config({})
    assert cfg.capture_interval_s == DEFAULT_CAPTURE_INTERVAL_S
    assert cfg.failure_threshold == 3
    assert cfg.locale == "ja-JP"
    assert cfg.min_command_chars == 2
    assert cfg.max_relisten_attempts == 2
    assert cfg.default_backend is Backend.GEMINI
    assert cfg.prefs_path == DEFAULT_PREFS_PATH
    assert cfg.event_log_path is None
    assert cfg.gemini_api_key is None
    assert cfg.debug is False


def test_env_overrides():
    cfg = load_config(
        {
            "WALKGUIDE_CAPTURE_INTERVAL_S": "2.5",
            "WALKGUIDE_FAILURE_THRESHOLD": "5",
            "WALKGUIDE_LOCALE": "en-US",
            "WALKGUIDE_BACKEND": "Claude",
            "WALKGUIDE_RETRIES": "3",
            "WALKGUIDE_EVENT_LOG": "/tmp/walkguide.jsonl",
            "WALKGUIDE_DEBUG": "yes",
            "ANTHROPIC_API_KEY": "sk-ant-test",
        }
    )
    assert cfg.capture_interval_s == 2.5
    assert cfg.failure_threshold == 5
    assert cfg.locale == "en-US"
    assert cfg.default_backend is Backend.CLAUDE
    assert cfg.retries == 3
    assert cfg.event_log_path == "/tmp/walkguide.jsonl"
    assert cfg.debug is True
    assert cfg.claude_api_key == "sk-ant-test"


def test_bad_values_fall_back_to_defaults():
    cfg = load_config(
        {
            "WALKGUIDE_CAPTURE_INTERVAL_S": "-1",
            "WALKGUIDE_FAILURE_THRESHOLD": "zero",
            "WALKGUIDE_BACKEND": "bard",
            "WALKGUIDE_RETRIES": "-4",
        }
    )
    assert cfg.capture_interval_s == DEFAULT_CAPTURE_INTERVAL_S
    assert cfg.failure_threshold == 3
    assert cfg.default_backend is Backend.GEMINI
    assert cfg.retries == 0


def test_placeholder_keys_are_ignored():
    cfg = load_config(
        {
            "GEMINI_API_KEY": "your_gemini_api_key_here",
            "GOOGLE_API_KEY": "real-google-key",
            "OPENAI_API_KEY": "your_openai_api_key_here",
        }
    )
    assert cfg.gemini_api_key == "real-google-key"
    assert cfg.openai_api_key is None


def test_backend_parse():
    assert Backend.parse(" ChatGPT ") is Backend.CHATGPT
    assert Backend.parse("unknown") is None
    assert Backend.parse(None, Backend.CLAUDE) is Backend.CLAUDE
