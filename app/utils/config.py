import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+asyncpg://localhost:5432/storyline")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Text generation (timeline + title) can run on either provider; embeddings are OpenAI only.
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").strip().lower()
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))

DERIVATION_TIMEOUT_SECONDS = float(os.getenv("DERIVATION_TIMEOUT_SECONDS", "25"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))

APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
COOKIE_SECURE = APP_ENV == "production"
SESSION_COOKIE_NAME = "sessionId"
SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 365  # 1 year

# Set by the auth proxy after token verification
AUTH_USER_HEADER = "x-auth-user-id"
AUTH_USERNAME_HEADER = "x-auth-username"
