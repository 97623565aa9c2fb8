"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Query limits (requests outside these bounds are rejected before any side effect)
MAX_QUERY_LENGTH: int = 2000

# Confidence gate: answers scoring below this get one review pass and are
# stored as "pending" if they still fall short.
CONFIDENCE_THRESHOLD: float = float(os.getenv("CONFIDENCE_THRESHOLD", "0.6"))

# Cache maintenance: never-accessed entries older than this are evicted
CACHE_RETENTION_DAYS: int = 30
DEFAULT_MIN_ACCESS_COUNT: int = 1

# Agent lifecycle
DEFAULT_INACTIVE_THRESHOLD_MINUTES: int = 5
AGENT_DEFAULT_MEMORY_MB: int = int(os.getenv("AGENT_DEFAULT_MEMORY_MB", "256"))
AGENT_DEFAULT_CPU_USAGE: float = float(os.getenv("AGENT_DEFAULT_CPU_USAGE", "12.5"))

# Store backend: "memory" (process-local) or "sqlite" (file at STORE_DB_PATH)
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory").strip().lower() or "memory"
STORE_DB_PATH: str = os.getenv("STORE_DB_PATH", "data/query_service.db").strip() or "data/query_service.db"

# System stats windows
STATS_RECENT_LOGS: int = 20
STATS_RECENT_CONFIDENCE: int = 100

# API timeouts (seconds)
LLM_API_TIMEOUT: float = float(os.getenv("LLM_API_TIMEOUT", "60"))
LLM_MAX_TOKENS: int = 1024

# Hugging Face chat (fallback LLM)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"

# OpenAI (primary LLM). When set, generation uses OpenAI instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# HF LLM (fallback when OPENAI_API_KEY is not set). Router chat completions require a chat model.
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)
