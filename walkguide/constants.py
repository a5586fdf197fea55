"""Module-wide constants for the walking guide."""

DEFAULT_CAPTURE_INTERVAL_S = 5.0
DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_LOCALE = "ja-JP"
DEFAULT_MIN_COMMAND_CHARS = 2
DEFAULT_LISTEN_TIMEOUT_S = 10.0
DEFAULT_MAX_RELISTEN_ATTEMPTS = 2
DEFAULT_MAX_SPEECH_CHARS = 200
DEFAULT_DEBUG = False

# Vision backends
DEFAULT_BACKEND = "gemini"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_CHATGPT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT_S = 15.0
DEFAULT_RETRY_COUNT = 1
DEFAULT_RETRY_BACKOFF_S = 0.5
DEFAULT_MAX_OUTPUT_TOKENS = 300
IMAGE_MIME_TYPE = "image/jpeg"

GEMINI_API_KEY_ENV_CANDIDATES = ("GEMINI_API_KEY", "GOOGLE_API_KEY")
CLAUDE_API_KEY_ENV_CANDIDATES = ("CLAUDE_API_KEY", "ANTHROPIC_API_KEY")
OPENAI_API_KEY_ENV_CANDIDATES = ("OPENAI_API_KEY",)
# Placeholder values shipped in sample .env files
API_KEY_PLACEHOLDERS = ("your_claude_api_key_here", "your_openai_api_key_here", "your_gemini_api_key_here")

DEFAULT_PREFS_PATH = "~/.walkguide/preferences.json"
DEFAULT_EVENT_LOG_MAX_BYTES = 1_000_000
DOTENV_FILENAME = ".walking_guide.env"

BACKEND_DISPLAY_NAMES: dict[str, str] = {
    "gemini": "Google Gemini",
    "claude": "Claude (Anthropic)",
    "chatgpt": "ChatGPT (OpenAI)",
}

# Prompts
QUICK_PROMPT_JA = (
    "あなたは視覚障害者の歩行支援AIです。画像を見て、前方の状況を"
    "「前方OK」「前方危険」、または障害物の位置を「○時の方向」で短く答えてください。"
)
DETAILED_PROMPT_JA = (
    "目の不自由な方のための詳細な風景説明をお願いします。"
    "前方に見える景色、道の状況、障害物、建物、人、車両、信号機、標識など、"
    "すべての重要な情報を具体的に日本語で説明してください。"
)

# Urgency vocabulary; a description containing any of these is spoken with priority.
URGENT_KEYWORDS = (
    "危険",
    "障害",
    "段差",
    "衝突",
    "danger",
    "obstacle",
    "hazard",
)
URGENT_PREFIX_JA = "緊急: "

# Spoken phrases
LISTEN_PROMPT_JA = "どうぞ"
HELP_TEXT_JA = (
    "使えるコマンドです。AI変更は、ジェミニ、クロード、GPT。"
    "詳細説明は、景色、説明。現在のAIは、どのAI。停止は、とまれ。"
)
STOP_CONFIRM_JA = "すべての機能を停止しました"
SWITCH_CONFIRM_JA = "AIを{name}に変更しました"
CURRENT_BACKEND_JA = "現在のAIは、{name} です"
DETAIL_START_JA = "詳細に説明します"
NO_SNAPSHOT_JA = "分析する画像がありません"
DETAIL_ERROR_JA = "詳細な画像解析でエラーが発生しました"
UNKNOWN_COMMAND_JA = "コマンドが理解できませんでした。ヘルプと言うと使い方を聞けます。"
RECOGNITION_FAILED_JA = "音声認識を開始できませんでした"
NOT_HEARD_JA = "聞き取れませんでした。もう一度ボタンを押してください。"
EMPTY_ANALYSIS_JA = "解析できませんでした"

SPOKEN_BACKEND_NAMES_JA: dict[str, str] = {
    "gemini": "ジェミニ",
    "claude": "クロード",
    "chatgpt": "チャットGPT",
}
