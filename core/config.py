import os
from dotenv import load_dotenv

# .env 파일에서 환경변수 로드
load_dotenv()

def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./app.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# 생성 API
GOOGLE_AI_API_KEY = os.getenv("GOOGLE_AI_API_KEY", "")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
PROVIDER_TIMEOUT = float(os.getenv("PROVIDER_TIMEOUT", "120"))
VIDEO_POLL_INTERVAL = float(os.getenv("VIDEO_POLL_INTERVAL", "5"))
VIDEO_POLL_ATTEMPTS = int(os.getenv("VIDEO_POLL_ATTEMPTS", "24"))

# 대화 메모리
MEMORY_MAX_MESSAGES = int(os.getenv("MEMORY_MAX_MESSAGES", "50"))
MEMORY_CONTEXT_WINDOW = int(os.getenv("MEMORY_CONTEXT_WINDOW", "10"))

# false면 같은 id의 모듈 재등록 시 DuplicateModule
MODULE_OVERWRITE = _bool_env("MODULE_OVERWRITE", True)

MEDIA_DIR = os.getenv("MEDIA_DIR", "./data/media")
